# mips_runner/mips_numbers.py
"""Literal parsing, 32-bit normalisation and memory-operand syntax."""
from dataclasses import dataclass
from typing import Optional

from mips_runner.mips_consts import (
    NUMBER_PATTERN, OFFSET_BASE_PATTERN, REGISTER_ALIASES, REGISTER_SET
)


def to_signed_32(value):
    """Wraps an arbitrary Python int into the signed 32-bit range."""
    value &= 0xFFFFFFFF
    if value >= (1 << 31): # Sign bit set
        return value - (1 << 32)
    return value


def parse_number(raw):
    """
    Parses a decimal or 0x-prefixed hex literal, optionally negative.
    Returns the value wrapped to 32 bits, or None if the text is not a number.
    """
    if raw is None:
        return None
    text = raw.strip()
    if not text or not NUMBER_PATTERN.match(text):
        return None
    negative = text.startswith('-')
    digits = text[1:] if negative else text
    value = int(digits, 16) if digits.lower().startswith('0x') else int(digits, 10)
    return to_signed_32(-value if negative else value)


def canonical_register(name):
    """Lower-cases a register operand and resolves numeric aliases ($8 -> $t0)."""
    lowered = name.strip().lower()
    return REGISTER_ALIASES.get(lowered, lowered)


@dataclass(frozen=True)
class MemoryOperand:
    """A decoded lw/sw address: either base register + offset, or a fixed address."""
    offset: int
    base: Optional[str] = None

    def resolve(self, registers):
        if self.base is None:
            return self.offset
        return to_signed_32(registers.get(self.base, 0) + self.offset)


def parse_memory_operand(text, data_addresses):
    """
    Parses 'offset($reg)', '($reg)', a data label or a literal address.
    Returns a MemoryOperand, or None when the syntax is invalid.
    """
    operand = text.strip()
    match = OFFSET_BASE_PATTERN.match(operand)
    if match:
        offset_str = match.group(1).strip()
        base = canonical_register(match.group(2))
        offset = parse_number(offset_str) if offset_str else 0
        if offset is None or base not in REGISTER_SET:
            return None
        return MemoryOperand(offset=offset, base=base)

    if operand in data_addresses:
        return MemoryOperand(offset=data_addresses[operand])

    address = parse_number(operand)
    if address is None:
        return None
    return MemoryOperand(offset=address)
