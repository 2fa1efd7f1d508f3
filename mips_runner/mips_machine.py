# mips_runner/mips_machine.py
import logging
from dataclasses import dataclass, field
from types import MappingProxyType

from mips_runner.mips_consts import (
    REGISTER_DISPLAY_ORDER, REGISTER_NAMES, REGISTER_SET, STATUS_ERROR,
    STATUS_READY, ZERO_REGISTER
)
from mips_runner.mips_loader import Program, load_program
from mips_runner.mips_numbers import canonical_register, parse_number, to_signed_32

logger = logging.getLogger(__name__)


def _frozen(mapping):
    """Read-only view over a private copy of mapping."""
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class MachineState:
    """
    One snapshot of the machine. Snapshots are never mutated: the executor
    builds a new one per step, so older states stay valid for inspection.
    """
    program: Program
    source: str = ""
    registers: MappingProxyType = field(default_factory=lambda: _frozen({name: 0 for name in REGISTER_NAMES}))
    memory: MappingProxyType = field(default_factory=lambda: _frozen({}))
    output: str = ""
    status: str = STATUS_READY
    error: str = ""
    pc: int = 0
    steps: int = 0
    touched_registers: tuple = ()
    touched_memory: tuple = ()

    @property
    def current_instruction(self):
        if 0 <= self.pc < len(self.program.instructions):
            return self.program.instructions[self.pc]
        return None


def _parse_value(value):
    """
    Coerces a caller-supplied initial value to a 32-bit word.
    Numbers are truncated and wrapped; strings are parsed like immediates.
    Returns None for anything that is not a number.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return to_signed_32(value)
    if isinstance(value, float):
        if value != value or value in (float('inf'), float('-inf')): # NaN / inf
            return None
        return to_signed_32(int(value))
    if isinstance(value, str):
        return parse_number(value)
    return None


def _initial_registers(overrides):
    registers = {name: 0 for name in REGISTER_NAMES}
    for name, value in (overrides or {}).items():
        reg = canonical_register(name)
        if reg not in REGISTER_SET:
            logger.warning(f"Ignoring initial value for unknown register '{name}'")
            continue
        if reg == ZERO_REGISTER:
            continue
        parsed = _parse_value(value)
        if parsed is None:
            logger.warning(f"Ignoring invalid initial value {value!r} for register '{name}'")
            continue
        registers[reg] = parsed
    registers[ZERO_REGISTER] = 0 # $zero is never overridden
    return registers


def _initial_memory(overrides):
    memory = {}
    for key, value in (overrides or {}).items():
        address = _parse_value(key)
        if address is None:
            logger.warning(f"Ignoring initial memory value at invalid address '{key}'")
            continue
        parsed = _parse_value(value)
        if parsed is None:
            logger.warning(f"Ignoring invalid initial value {value!r} at address '{key}'")
            continue
        memory[address] = parsed
    return memory


def create_machine(program, source="", initial_registers=None, initial_memory=None):
    """Builds a ready machine for a loaded program plus caller overrides."""
    return MachineState(
        program=program,
        source=source,
        registers=_frozen(_initial_registers(initial_registers)),
        memory=_frozen(_initial_memory(initial_memory)),
    )


def initialize_machine(source, initial_registers=None, initial_memory=None):
    """
    Loads the source and builds a machine for it. A load failure produces a
    machine already in the error state, carrying the load error message.
    """
    result = load_program(source)
    if not result.ok:
        return MachineState(
            program=Program(),
            source=source,
            status=STATUS_ERROR,
            error=result.error.message,
        )
    return create_machine(result.program, source, initial_registers, initial_memory)


def read_register(state, name):
    """Reads a register from a snapshot; accepts aliases like $8 or $T0."""
    return state.registers.get(canonical_register(name), 0)


def read_memory(state, address):
    """Reads a word from a snapshot; unset addresses read as 0."""
    return state.memory.get(to_signed_32(address), 0)


def state_to_dict(state):
    """JSON-ready view of a snapshot for the register/memory/output panes."""
    return {
        "status": state.status,
        "error": state.error,
        "output": state.output,
        "pc": state.pc,
        "steps": state.steps,
        "instruction_count": len(state.program.instructions),
        "current_instruction": state.current_instruction,
        "registers": {name: state.registers.get(name, 0) for name in REGISTER_DISPLAY_ORDER},
        "memory": {str(address): value for address, value in sorted(state.memory.items())},
        "touched_registers": list(state.touched_registers),
        "touched_memory": [str(address) for address in state.touched_memory],
    }
