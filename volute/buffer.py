# volute/buffer.py
# In-memory text buffer backend: a flat run of letter cells and line breaks.
#
# Program reads the grid once through get_lines() and, when immediate updates
# are on, mirrors every edit back through replace_range() at a flat offset
# (each preceding line counts its letters plus one for the break).

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import regex

logger = logging.getLogger(__name__)

_GRAPHEME_RE = regex.compile(r"\X")


@dataclass(frozen=True)
class Letter:
    letter: str
    formatting: Optional[Dict[str, Any]] = None  # reserved


class _NewlineMark:
    def __repr__(self) -> str:
        return "NEWLINE"


NEWLINE = _NewlineMark()

Mark = Union[Letter, _NewlineMark]


def split_graphemes(text: str) -> List[str]:
    """Split text into extended grapheme clusters."""
    return _GRAPHEME_RE.findall(text or "")


class TextBuffer:
    def __init__(self, text: str = ""):
        self._cells: List[Mark] = []
        self.set_program(text)

    def set_program(self, text: str) -> None:
        text = (text or "").replace("\r\n", "\n").replace("\r", "\n")
        cells: List[Mark] = []
        for grapheme in split_graphemes(text):
            if grapheme == "\n":
                cells.append(NEWLINE)
            else:
                cells.append(Letter(grapheme))
        self._cells = cells

    def split_graphemes(self, text: str) -> List[str]:
        return split_graphemes(text)

    def get_lines(self) -> List[List[Letter]]:
        lines: List[List[Letter]] = [[]]
        for cell in self._cells:
            if cell is NEWLINE:
                lines.append([])
            else:
                lines[-1].append(cell)
        return lines

    def replace_range(self, offset: int, length: Optional[int], marks: Sequence[Mark]) -> None:
        if offset < 0:
            raise ValueError(f"negative buffer offset: {offset}")
        offset = min(offset, len(self._cells))
        end = len(self._cells) if length is None else min(offset + length, len(self._cells))
        self._cells[offset:end] = list(marks)
        logger.debug("buffer splice at %d: -%d +%d", offset, end - offset, len(marks))

    def __len__(self) -> int:
        return len(self._cells)

    @property
    def text(self) -> str:
        return "".join("\n" if cell is NEWLINE else cell.letter for cell in self._cells)
