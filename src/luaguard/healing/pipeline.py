#!/usr/bin/env python3
"""
LUAGUARD ANALYSIS PIPELINE
--------------------------
Runs the phases over one candidate buffer in a fixed order:

1. Scanner (once) classifies code / string / comment spans.
2. BlockAnalyzer balances keyword blocks on the code spans.
3. BracketAnalyzer balances ( [ { on the same code spans.
4. UnterminatedString findings sharing a line with a bracket finding are
   escalated to errors: the swallowed text is what unbalanced the line.
5. LintEngine adds advisory warnings (optional).

The pipeline holds no per-buffer state; running it twice on the same
text gives identical results.

Author: LuaGuard Team
Date: 2026-10-17
"""

from typing import Optional

from luaguard.core.config import GuardConfig
from luaguard.core.models import FindingKind
from luaguard.healing.blocks import BlockAnalyzer
from luaguard.healing.brackets import BracketAnalyzer
from luaguard.healing.context import AnalysisContext
from luaguard.healing.scanner import LuaScanner
from luaguard.rules.lint import LintEngine


class AnalysisPipeline:

    def __init__(self, config: Optional[GuardConfig] = None):
        self.config = config or GuardConfig()
        self.scanner = LuaScanner()
        self.blocks = BlockAnalyzer()
        self.brackets = BracketAnalyzer()
        self.lint = LintEngine(self.config) if self.config.lint else None

    def run(self, text: str) -> AnalysisContext:
        context = AnalysisContext(text=text)

        # --- PHASE 1: CLASSIFICATION ---
        context.scan = self.scanner.scan(text)
        spans, lines = context.scan.spans, context.scan.lines

        # --- PHASE 2: BALANCE ---
        context.blocks = self.blocks.analyze(spans, lines)
        context.brackets = self.brackets.analyze(spans, lines)

        # --- PHASE 3: ESCALATION ---
        bracket_lines = {f.line for f in context.brackets.findings}
        bracket_lines.update(f.related_line for f in context.brackets.findings if f.related_line)
        for finding in context.scan.findings:
            if finding.kind is FindingKind.UNTERMINATED_STRING and finding.line in bracket_lines:
                finding.escalated = True

        # --- PHASE 4: ADVISORY LINT ---
        if self.lint is not None:
            context.lint_findings = self.lint.inspect(context.scan.code_lines())

        return context
