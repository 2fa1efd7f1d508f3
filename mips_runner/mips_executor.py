# mips_runner/mips_executor.py
import logging
from dataclasses import replace
from types import MappingProxyType

from mips_runner.mips_consts import (
    ARGUMENT_REGISTER, MAX_STEPS, REGISTER_SET, STATUS_ERROR, STATUS_HALTED,
    STATUS_READY, SYSCALL_EXIT, SYSCALL_PRINT_CHAR, SYSCALL_PRINT_INT,
    SYSCALL_PRINT_STRING, SYSCALL_REGISTER, TIMEOUT_MESSAGE, ZERO_REGISTER
)
from mips_runner.mips_numbers import to_signed_32

logger = logging.getLogger(__name__)


class MipsError(Exception):
    """Base class for errors raised by the MIPS runner."""


class ExecutionError(MipsError):
    """Raised while executing an instruction; turns the machine into the error state."""


class _Cpu:
    """Working copy of one snapshot's mutable parts while a single step runs."""

    def __init__(self, state):
        # Copies, so the caller's snapshot is never touched
        self.program = state.program # Shared, read-only
        self.registers = dict(state.registers)
        self.memory = dict(state.memory)
        self.touched_registers = list(state.touched_registers)
        self.touched_memory = list(state.touched_memory)
        self.output = state.output
        self.pc = state.pc
        self.status = state.status

    def read(self, name):
        """Reads a register by canonical name. Unknown names read as 0."""
        return self.registers.get(name, 0)

    def write(self, name, value):
        """Writes a register (wrapped to 32 bits) and records it as touched."""
        # Writes to $zero or unknown names are dropped
        if name not in REGISTER_SET or name == ZERO_REGISTER:
            return
        self.registers[name] = to_signed_32(value)
        if name not in self.touched_registers:
            self.touched_registers.append(name)

    def touch_memory(self, address):
        """Records a loaded/stored address for highlighting (first-touch order)."""
        if address not in self.touched_memory:
            self.touched_memory.append(address)

    def label_target(self, label):
        """Resolves a .text label to its instruction index."""
        target = self.program.labels.get(label)
        if target is None:
            raise ExecutionError(f"Unknown label: {label}")
        return target

    def snapshot(self, state, **changes):
        """Freezes the working copy into the next MachineState."""
        self.registers[ZERO_REGISTER] = 0 # Re-assert $zero after every instruction
        return replace(
            state,
            registers=MappingProxyType(self.registers),
            memory=MappingProxyType(self.memory),
            touched_registers=tuple(self.touched_registers),
            touched_memory=tuple(self.touched_memory),
            output=self.output,
            pc=self.pc,
            status=self.status,
            **changes
        )


def _exec_syscall(cpu):
    """Dispatches on $v0: 1 print int, 4 print string, 10 exit, 11 print char."""
    selector = cpu.read(SYSCALL_REGISTER)
    argument = cpu.read(ARGUMENT_REGISTER)
    if selector == SYSCALL_PRINT_INT:
        cpu.output += str(argument)
    elif selector == SYSCALL_PRINT_STRING:
        cpu.output += cpu.program.data_by_address.get(argument, "")
    elif selector == SYSCALL_EXIT:
        cpu.status = STATUS_HALTED
        logger.info(f"Program exited via syscall {SYSCALL_EXIT} at pc={cpu.pc}")
        return # pc stays on the exit syscall
    elif selector == SYSCALL_PRINT_CHAR:
        cpu.output += chr(argument & 0xFF)
    else:
        raise ExecutionError(f"Unsupported syscall: {selector}")
    cpu.pc += 1 # Fall through to the next instruction


def _execute(cpu, instruction):
    """Applies one decoded instruction to the working copy."""
    op = instruction.opcode
    args = instruction.operands

    if op == "invalid":
        raise ExecutionError(instruction.error)

    if op == "li": # li $rd, imm
        cpu.write(args[0], args[1])
    elif op == "la": # la $rd, label (data segment address)
        address = cpu.program.data_addresses.get(args[1])
        if address is None:
            raise ExecutionError(f"Unknown data label: {args[1]}")
        cpu.write(args[0], address)
    elif op == "move": # move $rd, $rs
        cpu.write(args[0], cpu.read(args[1]))
    elif op == "addi": # addi $rd, $rs, imm (wraps, no overflow trap)
        cpu.write(args[0], cpu.read(args[1]) + args[2])
    elif op == "add":
        cpu.write(args[0], cpu.read(args[1]) + cpu.read(args[2]))
    elif op == "sub":
        cpu.write(args[0], cpu.read(args[1]) - cpu.read(args[2]))
    elif op == "lw": # lw $rd, addr (unwritten words read as 0)
        address = args[1].resolve(cpu.registers)
        cpu.write(args[0], cpu.memory.get(address, 0))
        cpu.touch_memory(address)
    elif op == "sw": # sw $rs, addr
        address = args[1].resolve(cpu.registers)
        cpu.memory[address] = to_signed_32(cpu.read(args[0]))
        cpu.touch_memory(address)
    elif op in ("beq", "bne"): # Label is only resolved when the branch is taken
        equal = cpu.read(args[0]) == cpu.read(args[1])
        if equal == (op == "beq"):
            cpu.pc = cpu.label_target(args[2])
            return
    elif op == "j": # j label
        cpu.pc = cpu.label_target(args[0])
        return
    elif op == "syscall":
        _exec_syscall(cpu)
        return
    else:
        raise ExecutionError(f"Unsupported instruction: {instruction.text}")

    cpu.pc += 1 # Fall through to the next instruction


def step(state, max_steps=MAX_STEPS):
    """
    Executes the instruction at state.pc and returns the next snapshot.
    Terminal states are returned unchanged; the given state is never modified.
    """
    if state.status != STATUS_READY:
        return state

    if not 0 <= state.pc < len(state.program.instructions):
        logger.info(f"Execution finished by running off the end at pc={state.pc}")
        return replace(state, status=STATUS_HALTED)

    if state.steps >= max_steps:
        logger.error(f"Step limit of {max_steps} reached at pc={state.pc}")
        return replace(state, status=STATUS_ERROR, error=TIMEOUT_MESSAGE)

    instruction = state.program.decoded[state.pc]
    logger.debug(f"Step {state.steps + 1}: pc={state.pc} '{instruction.text}'")

    cpu = _Cpu(state)
    try:
        _execute(cpu, instruction)
    except ExecutionError as e:
        logger.error(f"Execution failed at pc={state.pc}: {e}")
        # Partial writes of the failing instruction are discarded
        return replace(state, status=STATUS_ERROR, error=str(e), steps=state.steps + 1)

    return cpu.snapshot(state, steps=state.steps + 1)
