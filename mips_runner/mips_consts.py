# mips_runner/mips_consts.py
import re

# MIPS register names in display order (index == register number)
REGISTER_NAMES = (
    "$zero", "$at",
    "$v0", "$v1",
    "$a0", "$a1", "$a2", "$a3",
    "$t0", "$t1", "$t2", "$t3", "$t4", "$t5", "$t6", "$t7",
    "$s0", "$s1", "$s2", "$s3", "$s4", "$s5", "$s6", "$s7",
    "$t8", "$t9",
    "$k0", "$k1",
    "$gp", "$sp", "$fp", "$ra",
)

# Order the register view is shown in (temporaries grouped together)
REGISTER_DISPLAY_ORDER = (
    "$zero", "$at",
    "$v0", "$v1",
    "$a0", "$a1", "$a2", "$a3",
    "$t0", "$t1", "$t2", "$t3", "$t4", "$t5", "$t6", "$t7", "$t8", "$t9",
    "$s0", "$s1", "$s2", "$s3", "$s4", "$s5", "$s6", "$s7",
    "$k0", "$k1",
    "$gp", "$sp", "$fp", "$ra",
)

REGISTER_SET = frozenset(REGISTER_NAMES)

# Numeric aliases ($0..$31) -> canonical name
REGISTER_ALIASES = {f"${number}": name for number, name in enumerate(REGISTER_NAMES)}

ZERO_REGISTER = "$zero"
SYSCALL_REGISTER = "$v0" # Syscall selector
ARGUMENT_REGISTER = "$a0"

# --- Syscall codes ---
SYSCALL_PRINT_INT = 1
SYSCALL_PRINT_STRING = 4
SYSCALL_EXIT = 10
SYSCALL_PRINT_CHAR = 11

# --- Machine status values ---
STATUS_READY = "ready"
STATUS_HALTED = "halted"
STATUS_ERROR = "error"

# --- Limits and layout ---
MAX_STEPS = 10000
DATA_BASE = 0x10010000
WORD_SIZE = 4

TIMEOUT_MESSAGE = "MIPS execution timed out."
EMPTY_PROGRAM_MESSAGE = "No MIPS instructions found in .text section."

# --- Source-level patterns ---
COMMENT_PATTERN = re.compile(r'#.*$')
LABEL_PATTERN = re.compile(r'^([A-Za-z_.$][\w.$]*):\s*(.*)$')
SEGMENT_PATTERN = re.compile(r'^\.(text|data)\b', re.IGNORECASE)
GLOBL_PATTERN = re.compile(r'^\.globl\b', re.IGNORECASE)
ASCIIZ_PATTERN = re.compile(r'^\.asciiz\s+"(.*)"$', re.IGNORECASE | re.DOTALL)
WORD_PATTERN = re.compile(r'^\.word\s+(.+)$', re.IGNORECASE)

NUMBER_PATTERN = re.compile(r'^-?(?:0x[0-9a-f]+|\d+)$', re.IGNORECASE)
OFFSET_BASE_PATTERN = re.compile(r'^(.*)\(\s*(\$\w+)\s*\)$')

# --- Instruction patterns ---
# Matched in this order against each .text line; first match wins.
_REG = r'(\$\w+)'
_LABEL = r'([A-Za-z_.$][\w.$]*)'
_SEP = r'\s*,\s*'

INSTRUCTION_PATTERNS = (
    ("li", re.compile(rf'^li\s+{_REG}{_SEP}([^,\s]+)$', re.IGNORECASE)),
    ("la", re.compile(rf'^la\s+{_REG}{_SEP}{_LABEL}$', re.IGNORECASE)),
    ("move", re.compile(rf'^move\s+{_REG}{_SEP}{_REG}$', re.IGNORECASE)),
    ("addi", re.compile(rf'^addi\s+{_REG}{_SEP}{_REG}{_SEP}([^,\s]+)$', re.IGNORECASE)),
    ("arith", re.compile(rf'^(add|sub)\s+{_REG}{_SEP}{_REG}{_SEP}{_REG}$', re.IGNORECASE)),
    ("lw", re.compile(rf'^lw\s+{_REG}{_SEP}(.+)$', re.IGNORECASE)),
    ("sw", re.compile(rf'^sw\s+{_REG}{_SEP}(.+)$', re.IGNORECASE)),
    ("branch", re.compile(rf'^(beq|bne)\s+{_REG}{_SEP}{_REG}{_SEP}{_LABEL}$', re.IGNORECASE)),
    ("j", re.compile(rf'^j\s+{_LABEL}$', re.IGNORECASE)),
    ("syscall", re.compile(r'^syscall$', re.IGNORECASE)),
)
