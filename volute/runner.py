# volute/runner.py
# Headless driver: start / step / run / stop plus click events, and a receipt
# describing the run. Fatal thread errors stop the whole run with reason ERROR.

from __future__ import annotations
import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .buffer import TextBuffer
from .debug import DebugObserver, ObserverGroup, ThreadStateRecorder
from .errors import RuntimeErrorVolute
from .machine import Machine
from .program import Location, Program
from .receipt import make_base_receipt

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 100_000


class StopReason(Enum):
    HALTED = "halted"      # nothing running, nothing a click could start
    WAITING = "waiting"    # nothing running, click handlers present
    ERROR = "error"        # a thread hit a fatal condition
    TIMEOUT = "timeout"    # step budget used up
    STOPPED = "stopped"    # driver asked to stop


@dataclass
class RunOptions:
    immediate_updates: bool = False
    max_steps: int = DEFAULT_MAX_STEPS
    trace: bool = True


class Session:
    def __init__(
        self,
        source: Union[str, TextBuffer],
        options: Optional[RunOptions] = None,
        observer: Optional[DebugObserver] = None,
        *,
        path: Optional[str] = None,
    ):
        self.view = source if isinstance(source, TextBuffer) else TextBuffer(source)
        self.source = self.view.text
        self.options = options or RunOptions()
        self.path = path
        self.recorder = ThreadStateRecorder(keep_trace=self.options.trace)
        self._observer = ObserverGroup(self.recorder, observer)
        self.program: Optional[Program] = None
        self.machine: Optional[Machine] = None
        self.status: Optional[StopReason] = None
        self.error: Optional[RuntimeErrorVolute] = None
        self._receipt: Dict[str, Any] = make_base_receipt(self.source, path)

    # ---------- lifecycle
    def start(self) -> "Session":
        self.view.set_program(self.source)
        self.recorder = ThreadStateRecorder(keep_trace=self.options.trace)
        self._observer.observers[0] = self.recorder
        self.program = Program(self.view, self.options.immediate_updates)
        self.machine = Machine(self.program, self._observer)
        self.status = None
        self.error = None
        self._receipt = make_base_receipt(self.source, self.path)

        entry = self.program.entry_point
        if entry is None:
            self._log("warning", "start", "no volute header found; nothing to run")
        else:
            self._log("info", "start", f"entry point {entry.encode()}")
        self.machine.start_main_thread()
        if not self.machine.is_running():
            self._settle()
        return self

    @property
    def started(self) -> bool:
        return self.machine is not None

    def is_running(self) -> bool:
        return self.machine is not None and self.machine.is_running() and self.status is None

    def step(self) -> bool:
        """Run one instruction of one thread. Returns False when nothing was executed."""
        if self.machine is None:
            self.start()
        if self.status is StopReason.ERROR:
            return False
        if not self.machine.is_running():
            self._settle()
            return False
        try:
            self.machine.step()
        except RuntimeErrorVolute as exc:
            self._fail(exc)
            return False
        if not self.machine.is_running():
            self._settle()
        return True

    def run(self, max_steps: Optional[int] = None) -> StopReason:
        if self.machine is None:
            self.start()
        if self.status is StopReason.ERROR:
            return self.status
        limit = self.options.max_steps if max_steps is None else max_steps
        self.status = None
        executed = 0
        while self.machine.is_running():
            if executed >= limit:
                self.status = StopReason.TIMEOUT
                self._log("warning", "timeout", f"stopped after {executed} steps")
                break
            if not self.step():
                break
            executed += 1
        if self.status is None:
            self._settle()
        self._sync_view()
        return self.status

    def stop(self) -> None:
        if self.status is StopReason.ERROR:
            return
        self.status = StopReason.STOPPED
        self._log("info", "stop", "stopped by driver")
        self._sync_view()

    def click(self, location: Location) -> List[str]:
        """Start one thread per click handler, each with the clicked location in memory."""
        if self.machine is None:
            self.start()
        if self.status is StopReason.ERROR:
            return []
        name = f"mouse:{location.encode()}"
        started = []
        for handler in self.program.get_click_handler_locations():
            if self.machine.start_thread(name, handler, [location.encode()]) is not None:
                started.append(name)
        self._receipt["clicks"].append({"location": location.encode(), "threads": started})
        self._log("info", "click", f"click at {location.encode()} started {len(started)} thread(s)")
        if started:
            self.status = None
        return started

    # ---------- bookkeeping
    def _settle(self) -> None:
        self.status = StopReason.HALTED if self.machine.is_finished() else StopReason.WAITING

    def _fail(self, exc: RuntimeErrorVolute) -> None:
        self.status = StopReason.ERROR
        self.error = exc
        logger.error("run stopped: %s", exc)
        self._receipt.setdefault("logs", []).append({"level": "error", "event": "fatal", "message": str(exc)})
        self._sync_view()

    def _sync_view(self) -> None:
        if self.program is not None and not self.options.immediate_updates:
            self.program.update_view()

    def _log(self, level: str, event: str, message: str) -> None:
        logger.log(getattr(logging, level.upper()), message)
        self._receipt["logs"].append({"level": level, "event": event, "message": message})

    def receipt(self) -> Dict[str, Any]:
        receipt = copy.deepcopy(self._receipt)
        if self.program is not None:
            entry = self.program.entry_point
            receipt["program"]["entryPoint"] = entry.encode() if entry is not None else None
            receipt["program"]["lines"] = self.program.line_count
            receipt["clickHandlers"] = [loc.encode() for loc in self.program.get_click_handler_locations()]
            receipt["text"] = self.program.text()
        if self.machine is not None:
            receipt["stepCount"] = self.machine.step_count
            receipt["threads"] = [
                {"name": t.name, "location": t.instruction_pointer.encode(), "memory": t.memory}
                for t in self.machine.threads
                if t.instruction_pointer is not None
            ]
        receipt["status"] = self.status.value if self.status is not None else "running"
        receipt["steps"] = copy.deepcopy(self.recorder.trace)
        if self.error is not None:
            receipt["error"] = self.error.to_receipt()
        return receipt


def run_volute_text(
    text: str,
    *,
    clicks: Iterable[Location] = (),
    options: Optional[RunOptions] = None,
    observer: Optional[DebugObserver] = None,
    path: Optional[str] = None,
) -> Tuple[str, Dict[str, Any]]:
    """Run a program until it settles, replay clicks in order, return (final text, receipt)."""
    session = Session(text, options, observer, path=path).start()
    status = session.run()
    for location in clicks:
        if status in (StopReason.ERROR, StopReason.TIMEOUT):
            break
        session.click(location)
        status = session.run()
    return session.program.text(), session.receipt()
