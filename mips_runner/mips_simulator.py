# mips_runner/mips_simulator.py
import logging
from collections import OrderedDict

from mips_runner.mips_consts import MAX_STEPS
from mips_runner.mips_driver import run_to_end
from mips_runner.mips_executor import MipsError, step
from mips_runner.mips_machine import initialize_machine, state_to_dict

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 1000
DEFAULT_MAX_SESSIONS = 256


class SimulatorNotLoadedError(MipsError):
    """Raised when a session is stepped or reset before any source was loaded."""


class MipsSimulator:
    """
    One document's MIPS session: the source, the initial register/memory
    values the user entered, the current snapshot, and earlier snapshots
    for stepping backwards.
    """
    def __init__(self, history_limit=DEFAULT_HISTORY_LIMIT, max_steps=MAX_STEPS):
        self.history_limit = history_limit
        self.max_steps = max_steps
        self.source = None
        self.initial_registers = {}
        self.initial_memory = {}
        self.machine = None
        self.history = []

    def _require_machine(self):
        if self.machine is None:
            raise SimulatorNotLoadedError("No program loaded. Load a program first.")
        return self.machine

    def _push_history(self, previous):
        self.history.append(previous)
        if len(self.history) > self.history_limit:
            del self.history[0]

    def load(self, source, initial_registers=None, initial_memory=None):
        """Loads source text and builds a fresh machine. Returns the state view."""
        registers = self.initial_registers if initial_registers is None else dict(initial_registers)
        memory = self.initial_memory if initial_memory is None else dict(initial_memory)
        # Build first so a failure leaves the previous session untouched
        machine = initialize_machine(source, registers, memory)

        self.source = source
        self.initial_registers = registers
        self.initial_memory = memory
        self.history = []
        self.machine = machine
        if self.machine.error:
            logger.warning(f"Load produced error state: {self.machine.error}")
        return self.get_state()

    def reset(self):
        """Re-initialises from the same source and initial values."""
        if self.source is None:
            raise SimulatorNotLoadedError("No program loaded. Load a program first.")
        return self.load(self.source)

    def set_initial_register(self, name, value):
        """Stores a starting register value; applied on the next load or reset."""
        self.initial_registers[name] = value

    def set_initial_memory(self, address, value):
        """Stores a starting memory word (address may be text like '0x10')."""
        self.initial_memory[address] = value

    def step(self):
        """Executes one instruction. Steps on a finished machine leave history alone."""
        machine = self._require_machine()
        next_machine = step(machine, max_steps=self.max_steps)
        if next_machine is not machine:
            self._push_history(machine)
        self.machine = next_machine
        return self.get_state()

    def step_back(self):
        """Restores the snapshot before the last step, if any."""
        self._require_machine()
        if self.history:
            self.machine = self.history.pop()
        return self.get_state()

    def run(self):
        """Runs to completion; the whole run is undone by a single step_back."""
        machine = self._require_machine()
        finished = run_to_end(machine, max_steps=self.max_steps)
        if finished is not machine:
            self._push_history(machine)
        self.machine = finished
        return self.get_state()

    def get_state(self):
        """State view of the current snapshot plus whether step_back is possible."""
        state = state_to_dict(self._require_machine())
        state["can_step_back"] = bool(self.history)
        return state


class SimulatorRegistry:
    """
    Sessions keyed by document id. At most max_sessions are kept; when a new
    document needs a session, the least recently used one is evicted.
    """

    def __init__(self, history_limit=DEFAULT_HISTORY_LIMIT, max_steps=MAX_STEPS,
                 max_sessions=DEFAULT_MAX_SESSIONS):
        self.history_limit = history_limit
        self.max_steps = max_steps
        self.max_sessions = max(1, max_sessions)
        self.sessions = OrderedDict() # Oldest access first

    def get(self, doc_id):
        """Returns the document's session, creating it (and evicting if full) when needed."""
        if doc_id in self.sessions:
            self.sessions.move_to_end(doc_id)
            return self.sessions[doc_id]

        logger.debug(f"Creating simulator session for document '{doc_id}'")
        while len(self.sessions) >= self.max_sessions:
            evicted, _ = self.sessions.popitem(last=False)
            logger.info(f"Evicted least recently used simulator session '{evicted}'")
        session = MipsSimulator(history_limit=self.history_limit, max_steps=self.max_steps)
        self.sessions[doc_id] = session
        return session

    def discard(self, doc_id):
        """Drops a document's session. Returns True if one existed."""
        return self.sessions.pop(doc_id, None) is not None
