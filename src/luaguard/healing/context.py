#!/usr/bin/env python3
"""
LUAGUARD ANALYSIS CONTEXT
-------------------------
The record of one pass over a candidate buffer: the scan, both balance
analyses and the lint findings, filled in by the AnalysisPipeline.

Author: LuaGuard Team
Date: 2026-10-17
"""

from dataclasses import dataclass, field
from typing import List, Optional

from luaguard.core.models import BlockAnalysis, BracketAnalysis, Finding
from luaguard.healing.scanner import ScanResult


@dataclass
class AnalysisContext:
    """
    Built by AnalysisPipeline.run and consumed by the validator. Finding
    lists keep the order in which the phases produced them.
    """
    text: str                                   # The candidate buffer as analyzed
    scan: Optional[ScanResult] = None
    blocks: BlockAnalysis = field(default_factory=BlockAnalysis)
    brackets: BracketAnalysis = field(default_factory=BracketAnalysis)
    lint_findings: List[Finding] = field(default_factory=list)

    @property
    def findings(self) -> List[Finding]:
        scan_findings = self.scan.findings if self.scan else []
        return scan_findings + self.blocks.findings + self.brackets.findings + self.lint_findings

    @property
    def errors(self) -> List[Finding]:
        return [f for f in self.findings if f.is_error]

    @property
    def warnings(self) -> List[Finding]:
        return [f for f in self.findings if not f.is_error]
