# mips_runner/mips_driver.py
import logging
from dataclasses import dataclass

from mips_runner.mips_consts import MAX_STEPS, STATUS_HALTED, STATUS_READY
from mips_runner.mips_executor import step
from mips_runner.mips_machine import initialize_machine

logger = logging.getLogger(__name__)

NO_OUTPUT = "(no output)"


@dataclass(frozen=True)
class RunResult:
    """What the editor's terminal pane shows after a run."""
    status: str # "success" or "error"
    output: str


def run_to_end(state, max_steps=MAX_STEPS):
    """Steps until the machine halts or fails. Bounded by the executor's step limit."""
    while state.status == STATUS_READY:
        state = step(state, max_steps=max_steps)
    logger.info(f"Run finished: status={state.status}, steps={state.steps}")
    return state


def summarize(state):
    """Collapses a finished machine into terminal text."""
    if state.status == STATUS_HALTED:
        return RunResult(status="success", output=state.output or NO_OUTPUT)
    lines = [part for part in (state.output.rstrip('\n'), state.error) if part]
    return RunResult(status="error", output='\n'.join(lines) or NO_OUTPUT)


def run_source(source, initial_registers=None, initial_memory=None, max_steps=MAX_STEPS):
    """Loads, runs and summarises a program in one call."""
    machine = initialize_machine(source, initial_registers, initial_memory)
    return summarize(run_to_end(machine, max_steps=max_steps))
