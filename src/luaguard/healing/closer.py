#!/usr/bin/env python3
"""
LUAGUARD CLOSER - Bounded Auto-Fix
----------------------------------
Handles exactly one repair: blocks opened but never closed while every
bracket is balanced. The missing 'end' keywords are appended at the end
of the buffer. There is no second attempt and no other heuristic; the
validator re-checks the result once and discards it if anything is
still wrong.

Author: LuaGuard Team
Date: 2026-10-17
"""

from luaguard.core.models import BlockAnalysis, BracketAnalysis
from luaguard.healing.patcher import join_lines, line_ending, split_lines, strip_cr


class BlockCloser:

    def applies_to(self, blocks: BlockAnalysis, brackets: BracketAnalysis) -> bool:
        return blocks.missing_closers > 0 and brackets.error_count == 0

    def apply(self, text: str, blocks: BlockAnalysis) -> str:
        """
        Appends ``missing_closers`` 'end' lines after the last non-blank
        line. Trailing blank lines are dropped; everything else, including
        the buffer's line ending, is kept.
        """
        eol = line_ending(text)
        lines, trailing = split_lines(text)
        if eol == "\r\n":
            lines = strip_cr(lines)
        while lines and not lines[-1].strip():
            lines.pop()
        lines.extend(["end"] * blocks.missing_closers)
        return join_lines(lines, trailing, eol)
