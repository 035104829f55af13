#!/usr/bin/env python3
"""
LUAGUARD ERRORS
---------------
Caller-contract failures. Content problems (unbalanced blocks, brackets,
strings) are never raised; they travel as Findings inside a
ValidationReport.

Author: LuaGuard Team
Date: 2026-10-17
"""


class LuaGuardError(Exception):
    """Root of every exception raised by luaguard."""


class InvalidEditError(LuaGuardError):
    """The EditDescriptor itself is malformed."""


class InvalidRange(InvalidEditError):
    """The EditDescriptor points at lines outside the buffer."""

    def __init__(self, message: str, line_start: int, line_end: int, line_count: int):
        super().__init__(message)
        self.line_start = line_start
        self.line_end = line_end
        self.line_count = line_count


class InsufficientHistory(LuaGuardError):
    """A rollback asked for more steps than the store holds."""

    def __init__(self, file_key: str, requested: int, available: int):
        super().__init__(
            f"Rollback of {requested} step(s) requested for '{file_key}', "
            f"only {available} available."
        )
        self.file_key = file_key
        self.requested = requested
        self.available = available


class ConfigError(LuaGuardError):
    """The configuration file or values are invalid."""
