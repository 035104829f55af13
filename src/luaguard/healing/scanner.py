#!/usr/bin/env python3
"""
LUAGUARD SCANNER - Content Classifier (Phase 1)
-----------------------------------------------
Splits a Lua buffer into line-local spans tagged as code, short string,
long bracket (string or comment, with its '=' level) or line comment.
Every later phase reads only the Code spans, so string and comment
content can never unbalance a block or a bracket.

A single left-to-right pass; state is limited to the open short string
(and its quote), the open long bracket (level + comment flag) and the
current position. Malformed input never raises: an unterminated short
string is reported and closed at end-of-line, an unterminated long
bracket is reported at end-of-buffer.

Author: LuaGuard Team
Date: 2026-10-17
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from luaguard.core.models import Finding, FindingKind, Span, SpanKind

QUOTES = ('"', "'")


@dataclass
class ScanResult:
    """Spans plus the findings the scanner recovered from."""
    lines: List[str]
    spans: List[Span] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)

    def code_lines(self) -> List[str]:
        return mask_code(self.spans, self.lines)


class LuaScanner:
    """
    Stateless between calls: all scanning state lives in local variables
    of ``scan`` so one instance can be shared freely.
    """

    def scan(self, text: str) -> ScanResult:
        lines = text.split("\n")
        result = ScanResult(lines=lines)

        # (level, is_comment, open_line, open_col) of the open long bracket
        long_state: Optional[Tuple[int, bool, int, int]] = None

        for line_no, line in enumerate(lines, 1):
            long_state = self._scan_line(line_no, line, long_state, result)

        if long_state is not None:
            level, is_comment, open_line, open_col = long_state
            what = "long comment" if is_comment else "long string"
            result.findings.append(Finding(
                kind=FindingKind.UNTERMINATED_LONG_BRACKET,
                message=f"Unterminated {what} (level {level}) opened here; expected ']{'=' * level}]'",
                line=open_line,
                column=open_col + 1,
            ))
        return result

    def _scan_line(self, line_no: int, line: str,
                   long_state: Optional[Tuple[int, bool, int, int]],
                   result: ScanResult) -> Optional[Tuple[int, bool, int, int]]:
        n = len(line)
        i = 0
        start = 0

        while i < n:
            # 1. Inside a long bracket: only the closer of the same level counts
            if long_state is not None:
                level, is_comment = long_state[0], long_state[1]
                close_at = line.find("]" + "=" * level + "]", i)
                if close_at == -1:
                    i = n
                    break
                end = close_at + level + 2
                self._emit(result, line_no, start, end, SpanKind.LONG_BRACKET, level, is_comment)
                long_state = None
                start = i = end
                continue

            ch = line[i]

            # 2. Comments: '--[=*[' is a long comment, plain '--' eats the line
            if ch == "-" and line.startswith("--", i):
                self._emit(result, line_no, start, i, SpanKind.CODE)
                level = self._long_open_level(line, i + 2)
                if level is not None:
                    long_state = (level, True, line_no, i)
                    start = i
                    i += 2 + level + 2
                    continue
                self._emit(result, line_no, i, n, SpanKind.LINE_COMMENT)
                return None

            # 3. Long strings
            if ch == "[":
                level = self._long_open_level(line, i)
                if level is not None:
                    self._emit(result, line_no, start, i, SpanKind.CODE)
                    long_state = (level, False, line_no, i)
                    start = i
                    i += level + 2
                    continue

            # 4. Short strings
            if ch in QUOTES:
                self._emit(result, line_no, start, i, SpanKind.CODE)
                close_at = self._find_string_end(line, i)
                if close_at == -1:
                    self._emit(result, line_no, i, n, SpanKind.STRING)
                    result.findings.append(Finding(
                        kind=FindingKind.UNTERMINATED_STRING,
                        message=f"Unterminated string: missing closing {ch} before end of line",
                        line=line_no,
                        column=i + 1,
                    ))
                    return None
                self._emit(result, line_no, i, close_at + 1, SpanKind.STRING)
                start = i = close_at + 1
                continue

            i += 1

        if long_state is not None:
            self._emit(result, line_no, start, n, SpanKind.LONG_BRACKET, long_state[0], long_state[1])
        else:
            self._emit(result, line_no, start, n, SpanKind.CODE)
        return long_state

    def _long_open_level(self, line: str, pos: int) -> Optional[int]:
        """Level of a '[=*[' opener starting at ``pos``, or None."""
        if pos >= len(line) or line[pos] != "[":
            return None
        j = pos + 1
        while j < len(line) and line[j] == "=":
            j += 1
        if j < len(line) and line[j] == "[":
            return j - pos - 1
        return None

    def _find_string_end(self, line: str, open_at: int) -> int:
        """
        Index of the quote closing the string opened at ``open_at``, or -1.
        A quote closes the string only when preceded by an even number of
        backslashes, so '\\\\"' ends the string while '\\"' does not.
        """
        quote = line[open_at]
        j = line.find(quote, open_at + 1)
        while j != -1:
            backslashes = 0
            k = j - 1
            while k > open_at and line[k] == "\\":
                backslashes += 1
                k -= 1
            if backslashes % 2 == 0:
                return j
            j = line.find(quote, j + 1)
        return -1

    def _emit(self, result: ScanResult, line_no: int, start: int, end: int,
              kind: SpanKind, level: Optional[int] = None, is_comment: bool = False):
        if end <= start:
            return
        result.spans.append(Span(line=line_no, start_col=start, end_col=end,
                                 kind=kind, level=level, is_comment=is_comment))


def scan(text: str) -> ScanResult:
    """Module-level shortcut for ``LuaScanner().scan(text)``."""
    return LuaScanner().scan(text)


def mask_code(spans: List[Span], lines: List[str]) -> List[str]:
    """
    Returns every line with non-code characters blanked to spaces.
    Columns are preserved, so positions found in the mask are positions
    in the real buffer.
    """
    masked = [[" "] * len(line) for line in lines]
    for span in spans:
        if span.kind is SpanKind.CODE:
            source = lines[span.line - 1]
            masked[span.line - 1][span.start_col:span.end_col] = source[span.start_col:span.end_col]
    return ["".join(row) for row in masked]
