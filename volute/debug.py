# volute/debug.py
# Passive observers of thread state. Threads call them after every step;
# observers only read what they are given and never touch the program.
#
# `key` identifies one thread. Names are not unique: every handler started by
# the same click shares its "mouse:r:c" name.

from __future__ import annotations
import logging
from typing import Any, Dict, Hashable, List, Optional

from .program import Location, Word

logger = logging.getLogger(__name__)


class DebugObserver:
    """No-op observer; subclass and override what you need."""

    def update_thread_state(
        self,
        thread_name: str,
        location: Location,
        instruction: Word,
        memory: List[str],
        key: Optional[Hashable] = None,
    ) -> None:
        pass

    def update_thread_ended(self, thread_name: str, key: Optional[Hashable] = None) -> None:
        pass


class ThreadStateRecorder(DebugObserver):
    """Keeps the live thread table and a chronological trace for receipts."""

    def __init__(self, *, keep_trace: bool = True):
        self.keep_trace = keep_trace
        self._states: Dict[Hashable, Dict[str, Any]] = {}
        self.trace: List[Dict[str, Any]] = []

    @property
    def thread_states(self) -> List[Dict[str, Any]]:
        return list(self._states.values())

    def update_thread_state(self, thread_name, location, instruction, memory, key=None):
        # replacing an existing key keeps its place in the table
        self._states[thread_name if key is None else key] = {
            "name": thread_name,
            "location": location,
            "instruction": instruction.text,
            "memory": list(memory),
        }
        if self.keep_trace:
            self.trace.append({
                "event": "state",
                "thread": thread_name,
                "location": location.encode(),
                "instruction": instruction.text,
                "memory": list(memory),
            })

    def update_thread_ended(self, thread_name, key=None):
        self._states.pop(thread_name if key is None else key, None)
        if self.keep_trace:
            self.trace.append({"event": "ended", "thread": thread_name})

    def state_of(self, thread_name: str) -> Optional[Dict[str, Any]]:
        for state in self._states.values():
            if state["name"] == thread_name:
                return state
        return None

    def render(self) -> str:
        if not self._states:
            return "Nothing is running."
        blocks = []
        for state in self._states.values():
            memory = " ".join(f"[{item}]" for item in state["memory"]) or "(empty)"
            blocks.append(
                f"Thread name: {state['name']}\n"
                f"Instruction: {state['instruction']} ({state['location'].encode()})\n"
                f"Memory: {memory}"
            )
        return "\n\n".join(blocks)


class LoggingObserver(DebugObserver):
    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.DEBUG):
        self.log = log or logger
        self.level = level

    def update_thread_state(self, thread_name, location, instruction, memory, key=None):
        self.log.log(self.level, "[%s] %s %s memory=%s", thread_name, location.encode(), instruction.text, memory)

    def update_thread_ended(self, thread_name, key=None):
        self.log.log(self.level, "[%s] ended", thread_name)


class ObserverGroup(DebugObserver):
    """Fan one notification out to several observers."""

    def __init__(self, *observers: DebugObserver):
        self.observers = [o for o in observers if o is not None]

    def update_thread_state(self, thread_name, location, instruction, memory, key=None):
        for observer in self.observers:
            observer.update_thread_state(thread_name, location, instruction, list(memory), key=key)

    def update_thread_ended(self, thread_name, key=None):
        for observer in self.observers:
            observer.update_thread_ended(thread_name, key=key)
