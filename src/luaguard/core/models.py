#!/usr/bin/env python3
"""
LUAGUARD CORE MODELS
--------------------
Defines the fundamental data structures shared by the scanner, the
analyzers, the validator and the history store. Everything that crosses
the public boundary (EditDescriptor, ValidationReport, HistoryEntry) can
be flattened to plain dicts for JSON transport.

Author: LuaGuard Team
Date: 2026-10-17
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from luaguard.core.errors import InvalidEditError


class SpanKind(str, Enum):
    CODE = "code"
    STRING = "string"
    LONG_BRACKET = "long_bracket"
    LINE_COMMENT = "line_comment"


@dataclass(frozen=True)
class Span:
    """
    A line-local run of characters sharing one lexical classification.

    Columns are 0-based and half-open, so ``line_text[start_col:end_col]``
    is the covered text. ``level`` and ``is_comment`` only carry meaning
    for LONG_BRACKET spans.
    """
    line: int               # 1-based line number
    start_col: int
    end_col: int
    kind: SpanKind
    level: Optional[int] = None
    is_comment: bool = False


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class FindingKind(str, Enum):
    UNTERMINATED_STRING = "UnterminatedString"
    UNTERMINATED_LONG_BRACKET = "UnterminatedLongBracket"
    UNCLOSED_BLOCK = "UnclosedBlock"
    EXTRA_CLOSER = "ExtraCloser"
    MISMATCHED_UNTIL = "MismatchedUntil"
    BRACKET_MISMATCH = "BracketMismatch"
    UNCLOSED_BRACKET = "UnclosedBracket"
    UNEXPECTED_CLOSER = "UnexpectedCloser"
    DEPRECATED_API = "DeprecatedApi"
    IMPLICIT_GLOBAL = "ImplicitGlobal"
    NAMING_CONVENTION = "NamingConvention"


# Severity is a property of the kind, never of the individual finding.
# UnterminatedString is the one kind that may be escalated (see Finding).
SEVERITY_BY_KIND: Dict[FindingKind, Severity] = {
    FindingKind.UNTERMINATED_STRING: Severity.WARNING,
    FindingKind.UNTERMINATED_LONG_BRACKET: Severity.ERROR,
    FindingKind.UNCLOSED_BLOCK: Severity.ERROR,
    FindingKind.EXTRA_CLOSER: Severity.ERROR,
    FindingKind.MISMATCHED_UNTIL: Severity.ERROR,
    FindingKind.BRACKET_MISMATCH: Severity.ERROR,
    FindingKind.UNCLOSED_BRACKET: Severity.ERROR,
    FindingKind.UNEXPECTED_CLOSER: Severity.ERROR,
    FindingKind.DEPRECATED_API: Severity.WARNING,
    FindingKind.IMPLICIT_GLOBAL: Severity.WARNING,
    FindingKind.NAMING_CONVENTION: Severity.WARNING,
}


@dataclass
class Finding:
    """
    A single reported issue.

    ``line``/``column`` point at the offending token (1-based). For
    bracket mismatches ``related_line``/``related_column`` point at the
    opener that was expected to be closed.
    """
    kind: FindingKind
    message: str
    line: int
    column: Optional[int] = None
    related_line: Optional[int] = None
    related_column: Optional[int] = None
    escalated: bool = False

    @property
    def severity(self) -> Severity:
        if self.escalated:
            return Severity.ERROR
        return SEVERITY_BY_KIND[self.kind]

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "related_line": self.related_line,
            "related_column": self.related_column,
        }


class BlockKind(str, Enum):
    FUNCTION = "function"
    IF = "if"
    FOR = "for"
    WHILE = "while"
    DO = "do"
    REPEAT = "repeat"


@dataclass
class BlockMarker:
    kind: BlockKind
    open_line: int
    open_column: int = 1
    awaiting_do: bool = False   # for/while header seen, its 'do' not yet

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "open_line": self.open_line, "open_column": self.open_column}


@dataclass
class BlockAnalysis:
    expected_closers: int = 0
    found_closers: int = 0
    unclosed: List[BlockMarker] = field(default_factory=list)
    extra_closer_lines: List[int] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)

    @property
    def missing_closers(self) -> int:
        return self.expected_closers - self.found_closers

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expected_closers": self.expected_closers,
            "found_closers": self.found_closers,
            "unclosed": [m.to_dict() for m in self.unclosed],
            "extra_closer_lines": list(self.extra_closer_lines),
        }


@dataclass(frozen=True)
class BracketMarker:
    char: str
    line: int
    col: int    # 1-based


@dataclass
class BracketAnalysis:
    unclosed: List[BracketMarker] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.findings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unclosed": [{"char": m.char, "line": m.line, "col": m.col} for m in self.unclosed],
            "error_count": self.error_count,
        }


class EditOperation(str, Enum):
    INSERT = "insert"
    REPLACE = "replace"
    DELETE = "delete"


@dataclass(frozen=True)
class EditDescriptor:
    """
    A line-based edit request. Lines are 1-based and ``line_end`` is
    inclusive; it defaults to ``line_start``.
    """
    operation: EditOperation
    line_start: int
    line_end: Optional[int] = None
    new_text: Optional[str] = None

    @property
    def effective_end(self) -> int:
        return self.line_end if self.line_end is not None else self.line_start

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation.value,
            "line_start": self.line_start,
            "line_end": self.line_end,
            "new_text": self.new_text,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditDescriptor":
        try:
            operation = EditOperation(str(data["operation"]).lower())
        except (KeyError, ValueError):
            raise InvalidEditError(f"Unknown edit operation: {data.get('operation')!r}")
        line_start = data.get("line_start")
        line_end = data.get("line_end")
        # bool is an int subclass; true/false are not line numbers
        bad_start = not isinstance(line_start, int) or isinstance(line_start, bool)
        bad_end = line_end is not None and (not isinstance(line_end, int) or isinstance(line_end, bool))
        if bad_start or bad_end:
            raise InvalidEditError("line_start/line_end must be integers")
        return cls(operation=operation, line_start=line_start,
                   line_end=line_end, new_text=data.get("new_text"))


@dataclass
class ValidationReport:
    """
    Outcome of validating one candidate buffer.

    ``valid`` mirrors ``not errors``. When the bounded auto-fix produced a
    clean buffer, ``fixed_text`` holds it; the report itself still
    describes the candidate as submitted.
    """
    valid: bool
    errors: List[Finding]
    warnings: List[Finding]
    block_analysis: BlockAnalysis
    bracket_analysis: BracketAnalysis
    candidate: str = ""
    fixed_text: Optional[str] = None

    @property
    def auto_fixed(self) -> bool:
        return self.fixed_text is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [f.to_dict() for f in self.errors],
            "warnings": [f.to_dict() for f in self.warnings],
            "block_analysis": self.block_analysis.to_dict(),
            "bracket_analysis": self.bracket_analysis.to_dict(),
            "fixed_text": self.fixed_text,
        }


@dataclass
class ReverseDiff:
    """
    Line-indexed recipe that turns the post-edit text back into the
    pre-edit text.

    ``modifications`` and ``deletions`` are keyed by 0-based index in the
    post-edit lines; ``additions`` by 0-based index in the restored lines.
    """
    additions: Dict[int, str] = field(default_factory=dict)
    deletions: Dict[int, str] = field(default_factory=dict)
    modifications: Dict[int, str] = field(default_factory=dict)
    trailing_newline: bool = False

    @property
    def stored_chars(self) -> int:
        return sum(len(v) for part in (self.additions, self.deletions, self.modifications)
                   for v in part.values())

    def to_dict(self) -> Dict[str, Any]:
        # JSON object keys must be strings
        return {
            "additions": {str(k): v for k, v in self.additions.items()},
            "deletions": {str(k): v for k, v in self.deletions.items()},
            "modifications": {str(k): v for k, v in self.modifications.items()},
            "trailing_newline": self.trailing_newline,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReverseDiff":
        return cls(
            additions={int(k): v for k, v in data.get("additions", {}).items()},
            deletions={int(k): v for k, v in data.get("deletions", {}).items()},
            modifications={int(k): v for k, v in data.get("modifications", {}).items()},
            trailing_newline=bool(data.get("trailing_newline", False)),
        )


@dataclass
class HistoryEntry:
    timestamp: float
    reverse_diff: ReverseDiff
    size_cost: int
    edit: Optional[EditDescriptor] = None

    def summary(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "operation": self.edit.operation.value if self.edit else None,
            "line_start": self.edit.line_start if self.edit else None,
            "additions": len(self.reverse_diff.additions),
            "deletions": len(self.reverse_diff.deletions),
            "modifications": len(self.reverse_diff.modifications),
            "size_cost": self.size_cost,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "reverse_diff": self.reverse_diff.to_dict(),
            "size_cost": self.size_cost,
            "edit": self.edit.to_dict() if self.edit else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        edit = data.get("edit")
        return cls(
            timestamp=float(data["timestamp"]),
            reverse_diff=ReverseDiff.from_dict(data["reverse_diff"]),
            size_cost=int(data.get("size_cost", 0)),
            edit=EditDescriptor.from_dict(edit) if edit else None,
        )
