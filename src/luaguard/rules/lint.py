#!/usr/bin/env python3
"""
LUAGUARD LINT RULES - Advisory Checks
-------------------------------------
The LintEngine runs a registry of warning-only rules over the code-only
view of a buffer (strings and comments already blanked). Nothing here
can make a buffer invalid; findings land in the report's warnings.

Author: LuaGuard Team
Date: 2026-10-17
"""

import re
from typing import List, Optional, Set

from luaguard.core.config import GuardConfig
from luaguard.core.models import Finding, FindingKind

NAME = r"[A-Za-z_]\w*"
LOCAL_DECL = re.compile(rf"\blocal\s+(function\s+)?({NAME}(?:\s*,\s*{NAME})*)")
FUNCTION_DEF = re.compile(rf"\bfunction\s*({NAME}(?:[.:]{NAME})*)?\s*\(([^)]*)\)")
FOR_VARS = re.compile(rf"\bfor\s+({NAME}(?:\s*,\s*{NAME})*)\s*(?:=|\bin\b)")
ASSIGNMENT = re.compile(rf"^\s*({NAME})\s*=(?!=)")

KEYWORDS = {
    "and", "break", "do", "else", "elseif", "end", "false", "for", "function",
    "goto", "if", "in", "local", "nil", "not", "or", "repeat", "return",
    "then", "true", "until", "while",
}


class LintEngine:
    """
    Ordered registry of advisory rules. Each rule receives the masked
    code lines and returns its findings.
    """

    def __init__(self, config: Optional[GuardConfig] = None):
        self.config = config or GuardConfig()
        names = sorted(self.config.deprecated_apis, key=len, reverse=True)
        self._deprecated = (
            re.compile(r"(?<![\w.:])(" + "|".join(re.escape(n) for n in names) + r")\s*\(")
            if names else None
        )
        self._builtins = set(self.config.builtin_names)

        self.active_rules = [
            self._rule_deprecated_api,
            self._rule_implicit_global,
            self._rule_shadowed_builtin,
        ]

    def inspect(self, code_lines: List[str]) -> List[Finding]:
        findings: List[Finding] = []
        for rule in self.active_rules:
            findings.extend(rule(code_lines))
        findings.sort(key=lambda f: (f.line, f.column or 0))
        return findings

    def _rule_deprecated_api(self, code_lines: List[str]) -> List[Finding]:
        """Policy: deprecated scheduler globals have task.* replacements."""
        if self._deprecated is None:
            return []
        findings = []
        for line_no, code in enumerate(code_lines, 1):
            for match in self._deprecated.finditer(code):
                # 'function wait(' defines the name, it does not call it
                if code[:match.start()].rstrip().endswith("function"):
                    continue
                name = match.group(1)
                findings.append(Finding(
                    kind=FindingKind.DEPRECATED_API,
                    message=f"{name}() is deprecated; use {self.config.deprecated_apis[name]}()",
                    line=line_no,
                    column=match.start() + 1,
                ))
        return findings

    def _rule_implicit_global(self, code_lines: List[str]) -> List[Finding]:
        """
        Policy: assigning to a name never declared earlier in the file
        creates a global. Scoping is not modelled; a declaration anywhere
        above counts.
        """
        findings = []
        declared: Set[str] = set()
        for line_no, code in enumerate(code_lines, 1):
            declared.update(self._declared_names(code))
            match = ASSIGNMENT.match(code)
            if not match:
                continue
            name = match.group(1)
            if name in declared or name in KEYWORDS:
                continue
            declared.add(name)
            findings.append(Finding(
                kind=FindingKind.IMPLICIT_GLOBAL,
                message=f"Assignment to undeclared '{name}' creates a global; declare it with 'local'",
                line=line_no,
                column=match.start(1) + 1,
            ))
        return findings

    def _rule_shadowed_builtin(self, code_lines: List[str]) -> List[Finding]:
        """Policy: locals must not reuse the names of standard globals."""
        findings = []
        for line_no, code in enumerate(code_lines, 1):
            for match in LOCAL_DECL.finditer(code):
                offset = match.start(2)
                for name in re.finditer(NAME, match.group(2)):
                    if name.group(0) in self._builtins:
                        findings.append(Finding(
                            kind=FindingKind.NAMING_CONVENTION,
                            message=f"Local '{name.group(0)}' shadows the standard global of the same name",
                            line=line_no,
                            column=offset + name.start() + 1,
                        ))
        return findings

    def _declared_names(self, code: str) -> Set[str]:
        names: Set[str] = set()
        for match in LOCAL_DECL.finditer(code):
            names.update(n.strip() for n in match.group(2).split(","))
        for match in FUNCTION_DEF.finditer(code):
            if match.group(1):
                names.add(re.split(r"[.:]", match.group(1))[0])
            for param in match.group(2).split(","):
                param = param.split(":")[0].strip()
                if param and param != "...":
                    names.add(param)
        for match in FOR_VARS.finditer(code):
            names.update(n.strip() for n in match.group(1).split(","))
        return names
