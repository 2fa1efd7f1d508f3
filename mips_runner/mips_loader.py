# mips_runner/mips_loader.py
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional

from mips_runner.mips_consts import (
    ASCIIZ_PATTERN, COMMENT_PATTERN, DATA_BASE, EMPTY_PROGRAM_MESSAGE,
    GLOBL_PATTERN, INSTRUCTION_PATTERNS, LABEL_PATTERN, SEGMENT_PATTERN,
    WORD_PATTERN, WORD_SIZE
)
from mips_runner.mips_numbers import canonical_register, parse_memory_operand, parse_number

logger = logging.getLogger(__name__)

EMPTY_PROGRAM = "empty_program"


@dataclass(frozen=True)
class Instruction:
    """
    One decoded .text line.
    'invalid' instructions keep the message they fail with when executed,
    so unreachable lines with bad syntax never stop a program.
    """
    opcode: str
    operands: tuple
    text: str
    error: Optional[str] = None


@dataclass(frozen=True)
class Program:
    """Loaded source: instruction lines, their decoded forms, and label/data tables."""
    instructions: tuple = ()
    decoded: tuple = ()
    labels: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    data_addresses: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    data_by_address: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    def __len__(self):
        return len(self.instructions)


@dataclass(frozen=True)
class LoadError:
    kind: str
    message: str


@dataclass(frozen=True)
class LoadResult:
    """Either a program or a LoadError, never both."""
    program: Optional[Program] = None
    error: Optional[LoadError] = None

    @property
    def ok(self):
        return self.error is None


def _unescape(text):
    """Expands the escapes .asciiz understands: \\n and \\"."""
    return text.replace('\\n', '\n').replace('\\"', '"')


def _invalid(text, message):
    """An instruction that fails with message once it is executed."""
    return Instruction(opcode="invalid", operands=(), text=text, error=message)


def decode_instruction(text, data_addresses):
    """Matches one instruction line against the supported forms."""
    for kind, pattern in INSTRUCTION_PATTERNS:
        match = pattern.match(text)
        if not match:
            continue

        if kind == "li":
            value = parse_number(match.group(2))
            if value is None:
                return _invalid(text, f"Invalid immediate value: {match.group(2)}")
            return Instruction("li", (canonical_register(match.group(1)), value), text)

        if kind == "la":
            return Instruction("la", (canonical_register(match.group(1)), match.group(2)), text)

        if kind == "move":
            return Instruction("move", (canonical_register(match.group(1)), canonical_register(match.group(2))), text)

        if kind == "addi":
            value = parse_number(match.group(3))
            if value is None:
                return _invalid(text, f"Invalid immediate value: {match.group(3)}")
            regs = (canonical_register(match.group(1)), canonical_register(match.group(2)))
            return Instruction("addi", regs + (value,), text)

        if kind == "arith":
            regs = tuple(canonical_register(match.group(i)) for i in (2, 3, 4))
            return Instruction(match.group(1).lower(), regs, text)

        if kind in ("lw", "sw"):
            operand = parse_memory_operand(match.group(2), data_addresses)
            if operand is None:
                return _invalid(text, f"Invalid memory operand: {match.group(2)}")
            return Instruction(kind, (canonical_register(match.group(1)), operand), text)

        if kind == "branch":
            regs = (canonical_register(match.group(2)), canonical_register(match.group(3)))
            return Instruction(match.group(1).lower(), regs + (match.group(4),), text)

        if kind == "j":
            return Instruction("j", (match.group(1),), text)

        if kind == "syscall":
            return Instruction("syscall", (), text)

    return _invalid(text, f"Unsupported instruction: {text}")


class MipsLoader:
    """Turns assembly source text into an immutable Program."""

    def __init__(self, data_base=DATA_BASE):
        self.data_base = data_base
        self._reset()

    def _reset(self):
        """Clears per-load tables; the data cursor restarts at data_base."""
        self.instructions = []
        self.labels = {}
        self.data_addresses = {}
        self.data_by_address = {}
        self.next_data_address = self.data_base
        self.in_text = True # Source without a segment directive is code

    def _clean_lines(self, source):
        """Strips comments and whitespace, drops empty lines."""
        # Only '\n' ends a line; strip() removes a trailing '\r'
        for line_num, raw in enumerate(source.split('\n'), start=1):
            line = COMMENT_PATTERN.sub('', raw).strip()
            if line:
                yield line_num, line

    def _handle_data_line(self, line, line_num):
        """Allocates space for .asciiz/.word; other data lines are skipped."""
        asciiz = ASCIIZ_PATTERN.match(line)
        if asciiz:
            text = _unescape(asciiz.group(1))
            address = self.next_data_address
            self.data_by_address[address] = text
            self.next_data_address = address + len(text) + 1 # Null terminator
            logger.debug(f"Line {line_num}: .asciiz of {len(text)} chars at 0x{address:08x}")
            return

        words = WORD_PATTERN.match(line)
        if words:
            values = [part.strip() for part in words.group(1).split(',') if part.strip()]
            address = self.next_data_address
            self.next_data_address = address + max(1, len(values)) * WORD_SIZE
            logger.debug(f"Line {line_num}: .word x{len(values)} at 0x{address:08x}")
            return

        logger.debug(f"Line {line_num}: ignoring unsupported data line '{line}'")

    def load(self, source):
        """Scans the source once, then decodes every collected instruction."""
        self._reset()

        for line_num, line in self._clean_lines(source or ""):
            segment = SEGMENT_PATTERN.match(line)
            if segment:
                self.in_text = segment.group(1).lower() == "text"
                continue
            if GLOBL_PATTERN.match(line):
                continue

            label_match = LABEL_PATTERN.match(line)
            if label_match:
                label = label_match.group(1)
                if self.in_text:
                    self.labels[label] = len(self.instructions)
                elif label not in self.data_addresses:
                    self.data_addresses[label] = self.next_data_address
                line = label_match.group(2).strip()
                if not line:
                    continue

            if not self.in_text:
                self._handle_data_line(line, line_num)
                continue

            if line.startswith('.'):
                logger.debug(f"Line {line_num}: skipping directive '{line}' in .text")
                continue

            self.instructions.append(line)

        if not self.instructions:
            logger.info("Load failed: no instructions in .text")
            return LoadResult(error=LoadError(kind=EMPTY_PROGRAM, message=EMPTY_PROGRAM_MESSAGE))

        decoded = tuple(decode_instruction(text, self.data_addresses) for text in self.instructions)
        program = Program(
            instructions=tuple(self.instructions),
            decoded=decoded,
            labels=MappingProxyType(dict(self.labels)),
            data_addresses=MappingProxyType(dict(self.data_addresses)),
            data_by_address=MappingProxyType(dict(self.data_by_address)),
        )
        logger.info(f"Loaded {len(program)} instructions, {len(self.labels)} labels, "
                    f"{len(self.data_addresses)} data labels.")
        return LoadResult(program=program)


def load_program(source):
    """Loads source text with a fresh MipsLoader. Returns a LoadResult."""
    return MipsLoader().load(source)
