# volute/program.py
# The program text as a grid of letters. Threads address it only by Location,
# so every edit goes through Program and nothing can dangle.
#
# Words are maximal runs of non-whitespace letters inside one row.
# The executable part of a post starts after a header paragraph:
#   a row of snails (🐌🐌🐌) or "-- volute ..." preceded by a blank row (or row 0).

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from .buffer import Letter, NEWLINE, TextBuffer
from .errors import LocationError

logger = logging.getLogger(__name__)

HEADER_RE = re.compile(r"^(🐌+|--+\s+volute(\s.*)?)$")
WHITESPACE_RE = re.compile(r"\s")
CLICK_HANDLER_MARKER = "MOUSE"


@dataclass(frozen=True)
class Location:
    row: int
    col: int

    def moved(self, drow: int = 0, dcol: int = 0) -> "Location":
        return Location(self.row + drow, self.col + dcol)

    def encode(self) -> str:
        """1-indexed "row:col", the form threads keep in memory."""
        return f"{self.row + 1}:{self.col + 1}"

    @classmethod
    def decode(cls, text: str) -> "Location":
        parts = str(text).split(":")
        if len(parts) != 2:
            raise LocationError(f"not an encoded location: {text!r}")
        try:
            row, col = int(parts[0]), int(parts[1])
        except ValueError:
            raise LocationError(f"not an encoded location: {text!r}") from None
        return cls(row - 1, col - 1)


@dataclass(frozen=True)
class Word:
    text: str
    length: int


def is_whitespace(letter: str) -> bool:
    return WHITESPACE_RE.search(letter) is not None


class Program:
    def __init__(self, view: TextBuffer, immediate_updates: bool = False):
        self._view = view
        self._immediate_updates = bool(immediate_updates)
        self._lines: List[List[Letter]] = view.get_lines()
        self._entry_point: Optional[Location] = None
        self._update_entry_points()

    # ---------- queries
    @property
    def entry_point(self) -> Optional[Location]:
        return self._entry_point

    def get_start_location(self) -> Optional[Location]:
        return self._entry_point

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def line_length(self, row: int) -> int:
        return len(self._lines[row])

    def line_text(self, row: int) -> str:
        return "".join(cell.letter for cell in self._lines[row])

    def text(self) -> str:
        return "\n".join(self.line_text(row) for row in range(len(self._lines)))

    def is_valid(self, location: Location) -> bool:
        return 0 <= location.row < len(self._lines) and 0 <= location.col < len(self._lines[location.row])

    def read_word(self, location: Location, include_trailing_spaces: bool = False) -> Word:
        if not 0 <= location.row < len(self._lines) or location.col < 0:
            return Word("", 0)
        line = self._lines[location.row]
        col = location.col
        letters: List[str] = []
        while col < len(line) and not is_whitespace(line[col].letter):
            letters.append(line[col].letter)
            col += 1
        if include_trailing_spaces:
            while col < len(line) and is_whitespace(line[col].letter):
                letters.append(line[col].letter)
                col += 1
        return Word("".join(letters), len(letters))

    def next_word_location(self, location: Location) -> Optional[Location]:
        row, col = location.row, max(location.col, 0)
        if row < 0:
            row, col = 0, 0
        while row < len(self._lines):
            line = self._lines[row]
            while col < len(line):
                if not is_whitespace(line[col].letter):
                    return Location(row, col)
                col += 1
            row += 1
            col = 0
        return None

    def _words_from(self, location: Optional[Location]):
        while location is not None:
            word = self.read_word(location)
            yield location, word
            location = self.next_word_location(location.moved(dcol=word.length))

    def find_by_prefix(self, prefix: str) -> Optional[Location]:
        for location, word in self._words_from(self.next_word_location(Location(0, 0))):
            if word.text.startswith(prefix):
                return location
        return None

    def find_word(self, label: str) -> Optional[Location]:
        for location, word in self._words_from(self.next_word_location(Location(0, 0))):
            if word.text == label:
                return location
        return None

    def get_letter_at(self, location: Location) -> str:
        if not self.is_valid(location):
            raise LocationError(f"no letter at {location.encode()}")
        return self._lines[location.row][location.col].letter

    def get_click_handler_locations(self) -> List[Location]:
        return [
            location
            for location, word in self._words_from(self._entry_point)
            if word.text.startswith(CLICK_HANDLER_MARKER)
        ]

    # ---------- edits
    def _flat_offset(self, row: int, col: int) -> int:
        return sum(len(line) + 1 for line in self._lines[:row]) + col

    def replace(self, location: Location, length: int, text: str) -> int:
        """Replace `length` letters at `location` with `text`; returns the inserted letter count."""
        if not 0 <= location.row < len(self._lines):
            raise LocationError(f"no row {location.row + 1} to edit")
        line = self._lines[location.row]
        if not 0 <= location.col <= len(line):
            raise LocationError(f"column {location.col + 1} is outside row {location.row + 1}")

        letters = [Letter(g) for g in self._view.split_graphemes(text)]
        deleted = min(max(length, 0), len(line) - location.col)
        line[location.col:location.col + deleted] = letters
        if self._immediate_updates:
            self._view.replace_range(self._flat_offset(location.row, location.col), deleted, letters)

        if self._entry_point is None or location.row <= self._entry_point.row:
            self._update_entry_points()
        return len(letters)

    def add_line(self, before_row: int) -> None:
        if not 0 <= before_row <= len(self._lines):
            raise LocationError(f"cannot insert a row before row {before_row + 1}")
        appended = before_row == len(self._lines)
        self._lines.insert(before_row, [])
        if self._immediate_updates:
            if appended:
                offset = self._flat_offset(before_row - 1, len(self._lines[before_row - 1]))
            else:
                offset = self._flat_offset(before_row, 0)
            self._view.replace_range(offset, 0, [NEWLINE])

        if self._entry_point is not None and before_row <= self._entry_point.row:
            self._entry_point = self._entry_point.moved(drow=1)

    def update_view(self) -> None:
        """Rewrite the whole backend from the grid (used when edits were not mirrored)."""
        combined = []
        for row, line in enumerate(self._lines):
            if row:
                combined.append(NEWLINE)
            combined.extend(line)
        self._view.replace_range(0, None, combined)
        logger.debug("backend rewritten: %d rows", len(self._lines))

    # ---------- entry point
    def _update_entry_points(self) -> None:
        self._entry_point = None
        new_paragraph = True
        for row in range(len(self._lines) - 1):
            line = self._lines[row]
            if new_paragraph and self._is_volute_header(line):
                self._entry_point = self.next_word_location(Location(row + 1, 0))
                break
            new_paragraph = len(line) == 0

    @staticmethod
    def _is_volute_header(line: List[Letter]) -> bool:
        return HEADER_RE.fullmatch("".join(cell.letter for cell in line)) is not None
