# mips_runner/tests/test_driver.py
from mips_runner.mips_consts import MAX_STEPS
from mips_runner.mips_driver import NO_OUTPUT, run_source, run_to_end
from mips_runner.mips_machine import initialize_machine

HELLO_WORLD = '.data\nmsg: .asciiz "Hi\\n"\n.text\nli $v0,4\nla $a0,msg\nsyscall\nli $v0,10\nsyscall\n'

COUNTDOWN = """
.text
.globl main
main:
    li $t0, 3
loop:
    beq $t0, $zero, done
    move $a0, $t0
    li $v0, 1
    syscall
    li $a0, 32          # space
    li $v0, 11
    syscall
    addi $t0, $t0, -1
    j loop
done:
    li $v0, 10
    syscall
"""


def test_scenario_hello_world():
    state = run_to_end(initialize_machine(HELLO_WORLD))
    assert state.status == "halted"
    assert state.output == "Hi\n"
    assert state.error == ""

def test_scenario_arithmetic_falls_off_end():
    state = run_to_end(initialize_machine("li $t0,5\nli $t1,7\nadd $t2,$t0,$t1\n"))
    assert state.registers["$t2"] == 12
    assert state.status == "halted"
    assert state.steps == 3
    assert state.touched_registers == ("$t0", "$t1", "$t2")

def test_scenario_infinite_loop_times_out():
    state = run_to_end(initialize_machine("loop:\nbeq $zero,$zero,loop\n"))
    assert state.status == "error"
    assert state.steps == MAX_STEPS
    assert "timed out" in state.error

def test_scenario_bad_instruction():
    state = run_to_end(initialize_machine("foo $t0,$t1\n"))
    assert state.status == "error"
    assert "foo $t0,$t1" in state.error
    assert state.steps == 1

def test_scenario_unresolved_label():
    state = run_to_end(initialize_machine("j nowhere\n"))
    assert state.status == "error"
    assert "nowhere" in state.error

def test_countdown_loop():
    state = run_to_end(initialize_machine(COUNTDOWN))
    assert state.status == "halted"
    assert state.output == "3 2 1 "
    assert state.registers["$t0"] == 0

def test_run_to_end_on_terminal_state_is_noop():
    finished = run_to_end(initialize_machine("li $t0, 1"))
    assert run_to_end(finished) is finished

def test_run_to_end_with_initial_values():
    source = "lw $t0, 0x100\nadd $a0, $t0, $t1\nli $v0, 1\nsyscall\n"
    state = run_to_end(initialize_machine(source, {"$t1": 2}, {"0x100": 40}))
    assert state.output == "42"


# --- Terminal summaries ---

def test_run_source_success():
    result = run_source(HELLO_WORLD)
    assert result.status == "success"
    assert result.output == "Hi\n"

def test_run_source_success_without_output():
    result = run_source("li $t0, 1")
    assert result.status == "success"
    assert result.output == NO_OUTPUT

def test_run_source_error_appends_message():
    result = run_source("li $v0, 1\nli $a0, 7\nsyscall\nbogus\n")
    assert result.status == "error"
    assert result.output == "7\nUnsupported instruction: bogus"

def test_run_source_load_error():
    result = run_source("# only a comment\n")
    assert result.status == "error"
    assert result.output == "No MIPS instructions found in .text section."

def test_run_source_respects_step_limit():
    result = run_source("loop: j loop", max_steps=50)
    assert result.status == "error"
    assert "timed out" in result.output

def test_run_source_prints_string_with_form_feed():
    source = '.data\nmsg: .asciiz "a\x0cb"\n.text\nli $v0,4\nla $a0,msg\nsyscall\n'
    result = run_source(source)
    assert result.status == "success"
    assert result.output == "a\x0cb"
