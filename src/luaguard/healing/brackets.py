#!/usr/bin/env python3
"""
LUAGUARD BRACKET ANALYZER - Delimiter Balance (Phase 2.2)
---------------------------------------------------------
One stack for all three bracket families over the code-only view.
Long-bracket delimiters never reach this phase: the scanner already
classified '[[', '[=[' and their closers as string/comment spans.

Author: LuaGuard Team
Date: 2026-10-17
"""

from typing import List

from luaguard.core.models import (
    BracketAnalysis, BracketMarker, Finding, FindingKind, Span,
)
from luaguard.healing.scanner import mask_code

PAIRS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {v: k for k, v in PAIRS.items()}


class BracketAnalyzer:

    def analyze(self, spans: List[Span], lines: List[str]) -> BracketAnalysis:
        result = BracketAnalysis()
        stack: List[BracketMarker] = []

        for line_no, code in enumerate(mask_code(spans, lines), 1):
            for idx, char in enumerate(code):
                if char in PAIRS:
                    stack.append(BracketMarker(char=char, line=line_no, col=idx + 1))
                elif char in CLOSERS:
                    if not stack:
                        result.findings.append(Finding(
                            kind=FindingKind.UNEXPECTED_CLOSER,
                            message=f"Unexpected '{char}' with no open bracket",
                            line=line_no,
                            column=idx + 1,
                        ))
                        continue
                    opener = stack.pop()
                    if PAIRS[opener.char] != char:
                        result.findings.append(Finding(
                            kind=FindingKind.BRACKET_MISMATCH,
                            message=(f"'{char}' does not close '{opener.char}' opened on line "
                                     f"{opener.line}, column {opener.col}; expected '{PAIRS[opener.char]}'"),
                            line=line_no,
                            column=idx + 1,
                            related_line=opener.line,
                            related_column=opener.col,
                        ))

        result.unclosed = list(stack)
        for opener in stack:
            result.findings.append(Finding(
                kind=FindingKind.UNCLOSED_BRACKET,
                message=f"'{opener.char}' is never closed (expected '{PAIRS[opener.char]}')",
                line=opener.line,
                column=opener.col,
            ))
        return result


def analyze_brackets(spans: List[Span], lines: List[str]) -> BracketAnalysis:
    return BracketAnalyzer().analyze(spans, lines)
