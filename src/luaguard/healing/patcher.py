#!/usr/bin/env python3
"""
LUAGUARD PATCH SIMULATOR
------------------------
Materializes the buffer an edit would produce, without touching disk.
A plain line-array splice; the input string is never modified.

Line counting ignores the empty remainder after a final newline, so
"y = 2\\n" has one line and inserting at line 2 appends.
Spliced text is written with the buffer's line ending (CRLF or LF), so
an edit never mixes terminators into a file.

Author: LuaGuard Team
Date: 2026-10-17
"""

from typing import List, Tuple

from luaguard.core.errors import InvalidEditError, InvalidRange
from luaguard.core.models import EditDescriptor, EditOperation


def split_lines(text: str) -> Tuple[List[str], bool]:
    """Returns (lines, has_trailing_newline). A CR before each LF stays in the line."""
    if not text:
        return [], False
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
        return lines, True
    return lines, False


def join_lines(lines: List[str], trailing_newline: bool, eol: str = "\n") -> str:
    if not lines:
        return ""
    return eol.join(lines) + (eol if trailing_newline else "")


def line_ending(text: str) -> str:
    """The buffer's line terminator: CRLF as soon as one is present, LF otherwise."""
    return "\r\n" if "\r\n" in text else "\n"


def strip_cr(lines: List[str]) -> List[str]:
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def line_count(text: str) -> int:
    return len(split_lines(text)[0])



class PatchSimulator:

    def check_range(self, original_text: str, edit: EditDescriptor) -> int:
        """Raises for a descriptor that does not fit the buffer; returns the line count."""
        if not isinstance(edit.operation, EditOperation):
            raise InvalidEditError(f"Unknown edit operation: {edit.operation!r}")
        count = line_count(original_text)
        start, end = edit.line_start, edit.effective_end

        if edit.operation is EditOperation.INSERT:
            if not 1 <= start <= count + 1:
                raise InvalidRange(
                    f"Insert at line {start} is outside 1..{count + 1}", start, end, count)
        elif not 1 <= start <= end <= count:
            raise InvalidRange(
                f"{edit.operation.value.capitalize()} of lines {start}-{end} is outside 1..{count}",
                start, end, count)

        if edit.operation is not EditOperation.DELETE and edit.new_text is None:
            raise InvalidEditError(f"new_text is required for {edit.operation.value}")
        return count

    def simulate(self, original_text: str, edit: EditDescriptor) -> str:
        self.check_range(original_text, edit)
        lines, trailing = split_lines(original_text)
        # Spliced lines take the buffer's own terminator, an empty buffer takes new_text's
        eol = line_ending(original_text or edit.new_text or "")
        if eol == "\r\n":
            lines = strip_cr(lines)
        start = edit.line_start - 1

        if edit.operation is EditOperation.INSERT:
            lines[start:start] = self._new_lines(edit.new_text)
        elif edit.operation is EditOperation.REPLACE:
            lines[start:edit.effective_end] = self._new_lines(edit.new_text)
        else:
            del lines[start:edit.effective_end]

        # Inserting into an empty buffer keeps the inserted text's own ending
        if not trailing and not original_text and edit.new_text and edit.new_text.endswith("\n"):
            trailing = True
        return join_lines(lines, trailing, eol)

    def _new_lines(self, new_text: str) -> List[str]:
        # A final newline in new_text terminates its last line, it does not add an empty one
        lines = new_text.split("\n")
        if len(lines) > 1 and lines[-1] == "":
            lines.pop()
        return strip_cr(lines)


def simulate(original_text: str, edit: EditDescriptor) -> str:
    return PatchSimulator().simulate(original_text, edit)
