# mips_runner/tests/test_loader.py
import pytest
from mips_runner.mips_consts import DATA_BASE, EMPTY_PROGRAM_MESSAGE
from mips_runner.mips_loader import EMPTY_PROGRAM, MipsLoader, decode_instruction
from mips_runner.mips_numbers import MemoryOperand, parse_memory_operand, parse_number, to_signed_32


@pytest.fixture
def loader():
    """Provides a new MipsLoader instance for each test."""
    return MipsLoader()


# --- Numeric helpers ---

@pytest.mark.parametrize("raw, expected", [
    ("42", 42),
    ("-7", -7),
    ("0x10", 16),
    ("0XfF", 255),
    ("-0x10", -16),
    ("  12  ", 12),
    ("0xFFFFFFFF", -1),
    ("4294967296", 0),
])
def test_parse_number_valid(raw, expected):
    assert parse_number(raw) == expected

@pytest.mark.parametrize("raw", ["", "abc", "12abc", "1.5", "0x", "--1", None])
def test_parse_number_invalid(raw):
    assert parse_number(raw) is None

def test_to_signed_32_wraps():
    assert to_signed_32(0x7FFFFFFF + 1) == -2147483648
    assert to_signed_32(-2147483648 - 1) == 2147483647
    assert to_signed_32(-5) == -5

def test_parse_memory_operand_forms():
    data = {"arr": DATA_BASE + 8}
    assert parse_memory_operand("4($sp)", data) == MemoryOperand(offset=4, base="$sp")
    assert parse_memory_operand("-8($T0)", data) == MemoryOperand(offset=-8, base="$t0")
    assert parse_memory_operand("($29)", data) == MemoryOperand(offset=0, base="$sp")
    assert parse_memory_operand("arr", data) == MemoryOperand(offset=DATA_BASE + 8)
    assert parse_memory_operand("0x100", data) == MemoryOperand(offset=256)
    assert parse_memory_operand("4($nope)", data) is None
    assert parse_memory_operand("missing", data) is None

def test_memory_operand_resolve_wraps():
    operand = MemoryOperand(offset=1, base="$t0")
    assert operand.resolve({"$t0": 0x7FFFFFFF}) == -2147483648


# --- Loading ---

def test_load_hello_world(loader):
    source = '.data\nmsg: .asciiz "Hi\\n"\n.text\nli $v0,4\nla $a0,msg\nsyscall\nli $v0,10\nsyscall\n'
    result = loader.load(source)
    assert result.ok, f"Expected load to succeed, got: {result.error}"
    program = result.program
    assert program.instructions == ("li $v0,4", "la $a0,msg", "syscall", "li $v0,10", "syscall")
    assert program.data_addresses["msg"] == DATA_BASE
    assert program.data_by_address[DATA_BASE] == "Hi\n"

def test_load_without_text_directive_defaults_to_code(loader):
    result = loader.load("li $t0,5\nli $t1,7\nadd $t2,$t0,$t1\n")
    assert result.ok
    assert len(result.program) == 3

def test_load_strips_comments_and_blank_lines(loader):
    source = """
    # header comment
    .text
        li $t0, 1   # load one

        syscall
    """
    result = loader.load(source)
    assert result.program.instructions == ("li $t0, 1", "syscall")

def test_load_empty_program(loader):
    result = loader.load(".data\nx: .word 1\n.text\n# nothing here\n")
    assert not result.ok
    assert result.program is None
    assert result.error.kind == EMPTY_PROGRAM
    assert result.error.message == EMPTY_PROGRAM_MESSAGE

def test_text_labels_point_at_next_instruction(loader):
    source = """
    .text
    .globl main
    main:
        li $t0, 1
    loop: addi $t0, $t0, 1
        j loop
    end:
    """
    program = loader.load(source).program
    assert program.labels["main"] == 0
    assert program.labels["loop"] == 1
    assert program.labels["end"] == 3, "Trailing label maps past the last instruction"
    assert program.instructions[1] == "addi $t0, $t0, 1", "Inline label is stripped"

def test_data_allocation_is_sequential(loader):
    source = """
    .data
    a: .asciiz "abc"
    b: .word 1, 2, 3
    c: .word
    d: .asciiz "say \\"hi\\""
    e:
       .word 9
    .text
    syscall
    """
    program = loader.load(source).program
    assert program.data_addresses["a"] == DATA_BASE
    assert program.data_addresses["b"] == DATA_BASE + 4      # "abc" + null
    # '.word' with no values does not match the directive and allocates nothing
    assert program.data_addresses["c"] == DATA_BASE + 16     # 3 words
    assert program.data_addresses["d"] == DATA_BASE + 16
    assert program.data_by_address[DATA_BASE + 16] == 'say "hi"'
    assert program.data_addresses["e"] == DATA_BASE + 16 + 9
    assert program.data_by_address[DATA_BASE] == "abc"
    assert DATA_BASE + 4 not in program.data_by_address, ".word values are not retained"

def test_unsupported_data_directives_are_ignored(loader):
    source = ".data\nbuf: .space 16\nmsg: .asciiz \"x\"\n.text\nsyscall\n"
    program = loader.load(source).program
    assert program.data_addresses["buf"] == DATA_BASE
    assert program.data_addresses["msg"] == DATA_BASE, ".space reserves nothing"

def test_first_data_label_definition_wins(loader):
    source = ".data\nx: .word 1\nx: .word 2\n.text\nsyscall\n"
    program = loader.load(source).program
    assert program.data_addresses["x"] == DATA_BASE

def test_program_tables_are_read_only(loader):
    program = loader.load("j end\nend: syscall\n").program
    with pytest.raises(TypeError):
        program.labels["other"] = 0


# --- Decoding ---

def test_decode_supported_forms():
    data = {"msg": DATA_BASE}
    assert decode_instruction("LI $T0, 0x10", data).operands == ("$t0", 16)
    assert decode_instruction("la $a0, msg", data).operands == ("$a0", "msg")
    assert decode_instruction("move $8, $9", data).operands == ("$t0", "$t1")
    assert decode_instruction("addi $t0, $t0, -1", data).operands == ("$t0", "$t0", -1)
    assert decode_instruction("SUB $t0,$t1,$t2", data).opcode == "sub"
    assert decode_instruction("lw $t0, msg", data).operands == ("$t0", MemoryOperand(offset=DATA_BASE))
    assert decode_instruction("bne $t0, $zero, loop", data).operands == ("$t0", "$zero", "loop")
    assert decode_instruction("j loop", data).opcode == "j"
    assert decode_instruction("Syscall", data).opcode == "syscall"

def test_decode_errors_are_deferred():
    bad_imm = decode_instruction("li $t0, 12abc", {})
    assert bad_imm.opcode == "invalid"
    assert bad_imm.error == "Invalid immediate value: 12abc"

    bad_mem = decode_instruction("sw $t0, nowhere", {})
    assert bad_mem.error == "Invalid memory operand: nowhere"

    unknown = decode_instruction("foo $t0,$t1", {})
    assert unknown.error == "Unsupported instruction: foo $t0,$t1"

    # 'add' with an immediate matches no form
    assert decode_instruction("add $t0, $t1, 5", {}).opcode == "invalid"

@pytest.mark.parametrize("char", ["\x0b", "\x0c", "\x1c", "\x1e", "\x85", "\u2028", "\u2029"])
def test_only_newline_ends_a_line(loader, char):
    source = f'.data\nmsg: .asciiz "a{char}b"\n.text\nli $v0,4\nla $a0,msg\nsyscall\n'
    program = loader.load(source).program
    assert program.data_by_address[DATA_BASE] == f"a{char}b", "String must survive intact"
    assert program.data_addresses["msg"] == DATA_BASE
    assert len(program) == 3

def test_crlf_line_endings(loader):
    program = loader.load('.data\r\nmsg: .asciiz "x"\r\n.text\r\nla $a0, msg\r\n').program
    assert program.data_by_address[DATA_BASE] == "x"
    assert program.instructions == ("la $a0, msg",)
