# volute/errors.py
# Fatal conditions of a running program. Lookup misses are not errors; these are.

from __future__ import annotations
from typing import Any, Dict, Optional


class RuntimeErrorVolute(Exception):
    """A thread hit an operation with no defined meaning (empty pop, bad number, ...)."""

    def __init__(self, message: str, *, thread: Optional[str] = None, location: Any = None):
        super().__init__(message)
        self.message = message
        self.thread = thread
        self.location = location

    def __str__(self) -> str:
        where = []
        if self.thread is not None:
            where.append(f"thread {self.thread}")
        if self.location is not None:
            where.append(f"at {self.location.encode()}")
        if where:
            return f"{self.message} ({', '.join(where)})"
        return self.message

    def to_receipt(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "thread": self.thread,
            "location": self.location.encode() if self.location is not None else None,
        }


class StackUnderflowError(RuntimeErrorVolute):
    pass


class MathOperandError(RuntimeErrorVolute):
    pass


class LocationError(RuntimeErrorVolute):
    """Location outside the letter grid, or an encoded location that does not parse."""
