# volute/machine.py
# Cooperative round-robin scheduler: every live thread shares one Program,
# exactly one instruction runs per step(), and the driver decides when to step.

from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from .program import Location, Program
from .thread import Thread

logger = logging.getLogger(__name__)

MAIN_THREAD = "main"


class Machine:
    def __init__(self, program: Program, debug_view=None):
        self._program = program
        self._debug_view = debug_view
        self._threads: List[Thread] = []
        self._current = 0
        self.step_count = 0

    @property
    def threads(self) -> List[Thread]:
        return list(self._threads)

    def start_thread(self, name: str, start_location: Optional[Location], input: Optional[Sequence[str]] = None) -> Optional[Thread]:
        if start_location is None:
            return None
        thread = Thread(name, self._program, start_location, list(input or []), self._debug_view)
        self._threads.append(thread)
        logger.info("thread %s started at %s", name, start_location.encode())
        return thread

    def start_main_thread(self) -> Optional[Thread]:
        return self.start_thread(MAIN_THREAD, self._program.entry_point, [])

    def is_running(self) -> bool:
        return len(self._threads) > 0

    def is_finished(self) -> bool:
        """No live thread and nothing left that a click could start."""
        return not self.is_running() and not self._program.get_click_handler_locations()

    def step(self) -> None:
        if not self.is_running():
            return
        thread = self._threads[self._current]
        thread.step()
        self.step_count += 1
        if thread.is_running():
            self._current += 1
        else:
            del self._threads[self._current]
            logger.debug("thread %s removed, %d left", thread.name, len(self._threads))
        if self._current >= len(self._threads):
            self._current = 0
