# volute/__init__.py
# Toot Volute: programs that live in a post and edit the text they live in.

from .buffer import Letter, NEWLINE, TextBuffer, split_graphemes
from .debug import DebugObserver, LoggingObserver, ThreadStateRecorder
from .errors import LocationError, MathOperandError, RuntimeErrorVolute, StackUnderflowError
from .machine import Machine
from .program import Location, Program, Word
from .runner import DEFAULT_MAX_STEPS, RunOptions, Session, StopReason, run_volute_text
from .thread import Thread

__version__ = "0.3.0"

__all__ = [
    "DEFAULT_MAX_STEPS",
    "DebugObserver",
    "Letter",
    "Location",
    "LocationError",
    "LoggingObserver",
    "Machine",
    "MathOperandError",
    "NEWLINE",
    "Program",
    "RunOptions",
    "RuntimeErrorVolute",
    "Session",
    "StackUnderflowError",
    "StopReason",
    "TextBuffer",
    "Thread",
    "ThreadStateRecorder",
    "Word",
    "run_volute_text",
    "split_graphemes",
]
