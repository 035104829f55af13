#!/usr/bin/env python3
"""
LUAGUARD BLOCK ANALYZER - Keyword Balance (Phase 2.1)
-----------------------------------------------------
Walks the code-only view of a buffer token by token and keeps a stack
of open block markers (function / if / for / while / do / repeat).

Openers closed within the same statement ("if x then return end",
"f(function() end)") push and pop on the same line and never reach the
final stack. A 'do' that follows a pending for/while header belongs to
that loop and does not open a block of its own.

A Luau if-expression ("local y = if c then 1 else 2") has no 'end':
an 'if' after an operator, an opening bracket, a comma or 'return'
is an expression and pushes nothing. So is an 'if' right after the
'then'/'else' of an if-expression already seen on the same line.

Every 'end' pops the top marker whatever its kind; whether that 'end'
was meant for the opener it closes is not checked. 'until' only pops a
'repeat'.

Author: LuaGuard Team
Date: 2026-10-17
"""

import re
from typing import List

from luaguard.core.models import (
    BlockAnalysis, BlockKind, BlockMarker, Finding, FindingKind, Span,
)
from luaguard.healing.scanner import mask_code

KEYWORD_PATTERN = re.compile(r"(?<![\w.:])(function|if|for|while|do|repeat|end|until)\b")

# Code ending like this leaves the next token in expression position
EXPRESSION_LEAD = re.compile(r"(?:[=(,{\[+\-*/%^#<>~]|\.\.|(?<![\w.:])(?:return|and|or|not|in))\s*$")
BRANCH_LEAD = re.compile(r"(?<![\w.:])(?:then|else)\s*$")

OPENERS = {
    "function": BlockKind.FUNCTION,
    "if": BlockKind.IF,
    "for": BlockKind.FOR,
    "while": BlockKind.WHILE,
    "do": BlockKind.DO,
    "repeat": BlockKind.REPEAT,
}


class BlockAnalyzer:
    """Pure analyzer: no state survives between ``analyze`` calls."""

    def analyze(self, spans: List[Span], lines: List[str]) -> BlockAnalysis:
        result = BlockAnalysis()
        stack: List[BlockMarker] = []

        for line_no, code in enumerate(mask_code(spans, lines), 1):
            expression_ifs = 0
            for match in KEYWORD_PATTERN.finditer(code):
                word = match.group(1)
                column = match.start() + 1

                if word == "if" and self._is_if_expression(code[:match.start()], expression_ifs):
                    expression_ifs += 1
                elif word == "do" and stack and stack[-1].awaiting_do:
                    stack[-1].awaiting_do = False
                elif word in OPENERS:
                    kind = OPENERS[word]
                    stack.append(BlockMarker(
                        kind=kind,
                        open_line=line_no,
                        open_column=column,
                        awaiting_do=kind in (BlockKind.FOR, BlockKind.WHILE),
                    ))
                    if kind is not BlockKind.REPEAT:
                        result.expected_closers += 1
                elif word == "end":
                    result.found_closers += 1
                    self._close_with_end(stack, line_no, column, result)
                else:
                    self._close_with_until(stack, line_no, column, result)

        # The final stack is exactly what never got closed
        result.unclosed = list(stack)
        for marker in stack:
            closer = "until" if marker.kind is BlockKind.REPEAT else "end"
            result.findings.append(Finding(
                kind=FindingKind.UNCLOSED_BLOCK,
                message=f"'{marker.kind.value}' block opened on line {marker.open_line} is never closed (missing '{closer}')",
                line=marker.open_line,
                column=marker.open_column,
            ))
        return result

    def _is_if_expression(self, before: str, expression_ifs: int) -> bool:
        if EXPRESSION_LEAD.search(before):
            return True
        # 'then if' opens a nested statement unless the 'then' belongs to an if-expression
        return expression_ifs > 0 and bool(BRANCH_LEAD.search(before))

    def _close_with_end(self, stack: List[BlockMarker], line_no: int, column: int,
                        result: BlockAnalysis):
        if stack:
            stack.pop()
            return
        result.extra_closer_lines.append(line_no)
        result.findings.append(Finding(
            kind=FindingKind.EXTRA_CLOSER,
            message="'end' without a matching open block",
            line=line_no,
            column=column,
        ))

    def _close_with_until(self, stack: List[BlockMarker], line_no: int, column: int,
                          result: BlockAnalysis):
        if stack and stack[-1].kind is BlockKind.REPEAT:
            stack.pop()
            return
        result.extra_closer_lines.append(line_no)
        if stack:
            top = stack[-1]
            message = (f"'until' cannot close the '{top.kind.value}' block opened on "
                       f"line {top.open_line}; it only closes 'repeat'")
        else:
            message = "'until' without a matching 'repeat'"
        result.findings.append(Finding(
            kind=FindingKind.MISMATCHED_UNTIL,
            message=message,
            line=line_no,
            column=column,
        ))


def analyze_blocks(spans: List[Span], lines: List[str]) -> BlockAnalysis:
    return BlockAnalyzer().analyze(spans, lines)
