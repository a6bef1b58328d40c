# volute/thread.py
"""Volute thread: one instruction pointer, one memory stack, one word per step.

- The word under the instruction pointer is the instruction.
- Pictographic synonyms (🔼, 🔽, 🧮, ...) are rewritten to their letter opcode first.
- The first letter picks the handler; the rest of the word is the operand.
- Memory holds strings only. Locations travel through memory as "row:col" (1-indexed).
- Edits made by the thread itself shift the instruction pointer so it keeps
  pointing at the same letter.
"""

from __future__ import annotations
import logging
import operator
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .errors import LocationError, MathOperandError, RuntimeErrorVolute, StackUnderflowError
from .program import Location, Program, Word

logger = logging.getLogger(__name__)

# Checked in order; the first matching prefix wins.
SYNONYMS: Tuple[Tuple[str, str], ...] = (
    ("🔼", "l"),
    ("🔽", "s"),
    ("🧮", "m"),
    ("❓", "j"),
    ("❗", "J"),
    ("⛔", "h"),
    ("🔍", "f"),
    ("✏️", "p"),
    ("✏", "p"),
    ("🗑️", "d"),
    ("🗑", "d"),
)

# opcode -> handler name. A handler returns True when it has set the
# instruction pointer itself (jump, halt) and the normal advance must be skipped.
OPCODES: Dict[str, str] = {
    "l": "_perform_load",
    "s": "_perform_save",
    "m": "_perform_math",
    "j": "_perform_branch",
    "J": "_perform_jump",
    "h": "_perform_halt",
    "f": "_perform_find",
    "p": "_perform_append_word",
    "o": "_perform_add_line_after",
    "d": "_perform_delete_word",
    "c": "_perform_delete_letter",
    "n": "_perform_paste",
    "t": "_perform_move",
    "u": "_perform_drop",
    "v": "_perform_swap",
    "w": "_perform_dup",
    "y": "_perform_read_letter",
    "r": "_perform_indirect_jump",
}

DIRECTIONS: Dict[str, Tuple[int, int]] = {
    "up": (-1, 0),
    "down": (1, 0),
    "left": (0, -1),
    "right": (0, 1),
}

UNARY: Dict[str, Callable[[int], int]] = {
    "!": lambda x: int(x == 0),
}

BINARY: Dict[str, Callable[[int, int], int]] = {
    "<": lambda x, y: int(x < y),
    ">": lambda x, y: int(x > y),
    "+": operator.add,
    "&": operator.and_,
}

_NUMBER_RE = re.compile(r"^\s*([+-]?[0-9]+)")
_FALSY = ("", "0")


def normalize_instruction(instruction: str) -> str:
    for synonym, opcode in SYNONYMS:
        if instruction.startswith(synonym):
            return opcode + instruction[len(synonym):]
    return instruction


def is_true(value: Any) -> bool:
    return value not in _FALSY and value != 0


def parse_number(value: str) -> int:
    """Leading integer of a memory value ("12abc" -> 12); no digits is fatal."""
    m = _NUMBER_RE.match(str(value))
    if not m:
        raise MathOperandError(f"not a number: {value!r}")
    return int(m.group(1))


class Thread:
    def __init__(
        self,
        name: str,
        program: Program,
        start_location: Optional[Location],
        input: Optional[Sequence[str]] = None,
        debug_view=None,
    ):
        self._name = name
        self._program = program
        self._instruction_pointer = start_location
        self._memory: List[str] = [str(v) for v in (input or [])]
        self._debug_view = debug_view
        self._update_debug_view()

    @property
    def name(self) -> str:
        return self._name

    @property
    def instruction_pointer(self) -> Optional[Location]:
        return self._instruction_pointer

    @property
    def memory(self) -> List[str]:
        return list(self._memory)

    def is_running(self) -> bool:
        return self._instruction_pointer is not None

    def current_instruction(self) -> Optional[Word]:
        if self._instruction_pointer is None:
            return None
        return self._program.read_word(self._instruction_pointer)

    def step(self) -> None:
        if not self.is_running():
            return
        location = self._instruction_pointer
        instruction = self._program.read_word(location)
        logger.debug("%s @%s: %s %s", self._name, location.encode(), instruction.text, self._memory)
        try:
            self._perform_instruction(instruction)
        except RuntimeErrorVolute as exc:
            if exc.thread is None:
                exc.thread = self._name
            if exc.location is None:
                exc.location = location
            raise
        if not self.is_running():
            logger.info("thread %s halted", self._name)
        self._update_debug_view()

    def _update_debug_view(self) -> None:
        if self._debug_view is None:
            return
        if self.is_running():
            instruction = self._program.read_word(self._instruction_pointer)
            self._debug_view.update_thread_state(
                self._name, self._instruction_pointer, instruction, list(self._memory), key=id(self)
            )
        else:
            self._debug_view.update_thread_ended(self._name, key=id(self))

    # ---------- dispatch
    def _perform_instruction(self, instruction_word: Word) -> None:
        instruction = normalize_instruction(instruction_word.text)
        handler = OPCODES.get(instruction[:1])
        if handler is not None and getattr(self, handler)(instruction[1:]):
            return
        self._instruction_pointer = self._program.next_word_location(
            self._instruction_pointer.moved(dcol=instruction_word.length)
        )

    # ---------- memory
    def _push(self, value: Any) -> None:
        self._memory.append(str(value))

    def _pop(self) -> str:
        if not self._memory:
            raise StackUnderflowError("pop from empty memory")
        return self._memory.pop()

    def _push_location(self, location: Location) -> None:
        self._push(location.encode())

    def _pop_location(self) -> Location:
        return Location.decode(self._pop())

    def _rebase(self, edit: Location, delta: int, *, inclusive: bool = False) -> None:
        """Keep the instruction pointer on its letter after `delta` letters appeared/vanished at `edit`."""
        ip = self._instruction_pointer
        if ip is None or delta == 0 or edit.row != ip.row:
            return
        if edit.col < ip.col or (inclusive and edit.col == ip.col):
            self._instruction_pointer = ip.moved(dcol=delta)

    # ---------- instructions
    def _perform_load(self, prefix: str) -> bool:
        location = self._program.find_by_prefix(prefix)
        if location is not None:
            self._push(self._program.read_word(location).text[len(prefix):])
        return False

    def _perform_save(self, prefix: str) -> bool:
        value = self._pop()
        location = self._program.find_by_prefix(prefix)
        if location is None:
            return False
        length = self._program.read_word(location).length
        inserted = self._program.replace(location, length, prefix + value)
        self._rebase(location, inserted - length)
        return False

    def _perform_math(self, operand: str) -> bool:
        op, argument = operand[:1], operand[1:]
        if op == "=":
            arg2 = argument if argument else self._pop()
            arg1 = self._pop()
            self._push("1" if arg1 == arg2 else "0")
        elif op in UNARY:
            arg = parse_number(argument if argument else self._pop())
            self._push(UNARY[op](arg))
        elif op in BINARY:
            arg2 = parse_number(argument if argument else self._pop())
            arg1 = parse_number(self._pop())
            self._push(BINARY[op](arg1, arg2))
        return False

    def _perform_branch(self, label: str) -> bool:
        if is_true(self._pop()):
            self._jump(label)
            return True
        return False

    def _perform_jump(self, label: str) -> bool:
        self._jump(label)
        return True

    def _perform_halt(self, _: str) -> bool:
        self._instruction_pointer = None
        return True

    def _jump(self, label: str) -> None:
        self._instruction_pointer = self._program.find_word(label)

    def _perform_find(self, prefix: str) -> bool:
        location = self._program.find_by_prefix(prefix)
        if location is not None:
            self._push_location(location)
        return False

    def _perform_append_word(self, _: str) -> bool:
        word = self._pop()
        location = self._pop_location()
        current = self._program.read_word(location)
        insert_at = location.moved(dcol=current.length)
        inserted = self._program.replace(insert_at, 0, " " + word)
        self._rebase(insert_at, inserted)
        self._push_location(insert_at.moved(dcol=1))
        return False

    def _perform_add_line_after(self, _: str) -> bool:
        row = self._pop_location().row
        self._program.add_line(row + 1)
        ip = self._instruction_pointer
        if ip is not None and row + 1 <= ip.row:
            self._instruction_pointer = ip.moved(drow=1)
        self._push_location(Location(row + 1, 0))
        return False

    def _perform_delete_word(self, _: str) -> bool:
        location = self._pop_location()
        length = self._program.read_word(location, True).length
        self._program.replace(location, length, "")
        self._rebase(location, -length)
        self._push_location(location)
        return False

    def _perform_delete_letter(self, _: str) -> bool:
        location = self._pop_location()
        self._program.get_letter_at(location)
        self._program.replace(location, 1, "")
        self._rebase(location, -1)
        self._push_location(location)
        return False

    def _perform_paste(self, _: str) -> bool:
        text = self._pop()
        location = self._pop_location()
        inserted = self._program.replace(location, 0, text)
        self._rebase(location, inserted, inclusive=True)
        return False

    def _perform_move(self, direction: str) -> bool:
        location = self._pop_location()
        shift = DIRECTIONS.get(direction)
        if shift is not None:
            self._push_location(location.moved(*shift))
        return False

    def _perform_drop(self, _: str) -> bool:
        self._pop()
        return False

    def _perform_swap(self, _: str) -> bool:
        a = self._pop()
        b = self._pop()
        self._push(a)
        self._push(b)
        return False

    def _perform_dup(self, _: str) -> bool:
        x = self._pop()
        self._push(x)
        self._push(x)
        return False

    def _perform_read_letter(self, _: str) -> bool:
        self._push(self._program.get_letter_at(self._pop_location()))
        return False

    def _perform_indirect_jump(self, _: str) -> bool:
        location = self._pop_location()
        # column 0 of an existing row is a target even when the row is empty
        row_start = location.col == 0 and 0 <= location.row < self._program.line_count
        if not (row_start or self._program.is_valid(location)):
            raise LocationError(f"indirect jump to {location.encode()} is outside the program")
        self._instruction_pointer = location
        return True
