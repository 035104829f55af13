#!/usr/bin/env python3
"""
LUAGUARD VALIDATOR - The Judge
------------------------------
The final gate before an edit may be committed. It simulates the edit,
runs the analysis pipeline once over the candidate and folds every
finding into a ValidationReport. It never writes anything.

When blocks are left open and every bracket balances, one bounded
auto-fix is tried: the missing 'end's are appended and the result is
validated again. A clean re-validation is offered back as
``fixed_text``; anything else is dropped and the original findings
stand.

Author: LuaGuard Team
Date: 2026-10-17
"""

import logging
from typing import Optional

from luaguard.core.config import GuardConfig
from luaguard.core.models import EditDescriptor, ValidationReport
from luaguard.healing.closer import BlockCloser
from luaguard.healing.context import AnalysisContext
from luaguard.healing.patcher import PatchSimulator
from luaguard.healing.pipeline import AnalysisPipeline

logger = logging.getLogger("luaguard.validator")


class LuaValidator:
    """
    Stateless apart from its configuration; one instance can serve any
    number of buffers.
    """

    def __init__(self, config: Optional[GuardConfig] = None):
        self.config = config or GuardConfig()
        self.simulator = PatchSimulator()
        self.pipeline = AnalysisPipeline(self.config)
        self.closer = BlockCloser()

    def validate(self, original_text: str, edit: EditDescriptor) -> ValidationReport:
        """
        Validates the buffer ``edit`` would produce from ``original_text``.
        Raises InvalidRange / InvalidEditError for a descriptor that does
        not fit the buffer.
        """
        candidate = self.simulator.simulate(original_text, edit)
        return self.validate_text(candidate)

    def validate_text(self, candidate: str) -> ValidationReport:
        """Validates a whole buffer as-is (no edit applied)."""
        context = self.pipeline.run(candidate)
        report = self._build_report(context)

        if not report.valid and self.config.auto_fix and self.closer.applies_to(context.blocks, context.brackets):
            report.fixed_text = self._try_fix(context)
        return report

    def _try_fix(self, context: AnalysisContext) -> Optional[str]:
        missing = context.blocks.missing_closers
        fixed = self.closer.apply(context.text, context.blocks)
        # Exactly one re-validation, never fed back into another fix
        recheck = self.pipeline.run(fixed)
        if recheck.errors:
            logger.debug(f"Auto-fix with {missing} appended 'end'(s) still has "
                         f"{len(recheck.errors)} error(s); discarded")
            return None
        logger.info(f"Auto-fix available: appended {missing} missing 'end'(s)")
        return fixed

    def _build_report(self, context: AnalysisContext) -> ValidationReport:
        errors = sorted(context.errors, key=lambda f: (f.line, f.column or 0))
        warnings = sorted(context.warnings, key=lambda f: (f.line, f.column or 0))
        return ValidationReport(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            block_analysis=context.blocks,
            bracket_analysis=context.brackets,
            candidate=context.text,
        )


def validate(original_text: str, edit: EditDescriptor,
             config: Optional[GuardConfig] = None) -> ValidationReport:
    return LuaValidator(config).validate(original_text, edit)
