"""
smartup_analyzer - Update Discovery and Reporting

Features:
    - Compare declared dependencies with the registry's latest versions
    - Flag packages reported by npm audit
    - Sort candidates by risk and apply selection filters
    - Render the analysis as Markdown, JSON or plain text
"""

from smartup.smartup_analyzer.analyzer import (
    PackageAnalyzer,
    UpdateCandidate,
    filter_candidates,
    sort_by_risk,
)
from smartup.smartup_analyzer.reporter import ReportFormat, UpdateReporter

__all__ = [
    "PackageAnalyzer",
    "ReportFormat",
    "UpdateCandidate",
    "UpdateReporter",
    "filter_candidates",
    "sort_by_risk",
]
