"""
Update Reporter - Render Analysis Results

This module renders update candidates as Markdown, JSON or plain text, grouped
by risk level the same way the interactive analysis view is.
"""

import json
from enum import Enum
from typing import Dict, List, Optional, Sequence

from smartup.smartup_analyzer.analyzer import UpdateCandidate
from smartup.smartup_version.diff import RiskLevel, UpdateType


class ReportFormat(Enum):
    """Available report formats."""

    MARKDOWN = "markdown"
    JSON = "json"
    PLAIN = "plain"


RISK_HEADINGS: Dict[RiskLevel, str] = {
    RiskLevel.CRITICAL: "CRITICAL - Security Issues",
    RiskLevel.BREAKING: "BREAKING - Major Updates",
    RiskLevel.MODERATE: "MODERATE - Minor Updates",
    RiskLevel.SAFE: "SAFE - Patch Updates",
}

RISK_ICONS: Dict[RiskLevel, str] = {
    RiskLevel.CRITICAL: "🚨",
    RiskLevel.BREAKING: "⚠️",
    RiskLevel.MODERATE: "📝",
    RiskLevel.SAFE: "✅",
}


def group_by_risk(
    candidates: Sequence[UpdateCandidate],
) -> Dict[RiskLevel, List[UpdateCandidate]]:
    """Candidates per risk level, most severe first; empty levels are omitted."""
    groups: Dict[RiskLevel, List[UpdateCandidate]] = {}
    for level in sorted(RiskLevel, key=lambda r: r.rank):
        members = [c for c in candidates if c.risk_level is level]
        if members:
            groups[level] = members
    return groups


class UpdateReporter:
    """Generates analysis reports.

    Example:
        >>> reporter = UpdateReporter(ReportFormat.JSON)
        >>> print(reporter.generate_report(candidates, project_path="."))
    """

    def __init__(self, format: ReportFormat = ReportFormat.MARKDOWN) -> None:
        self.format = format

    def generate_report(
        self,
        candidates: Sequence[UpdateCandidate],
        project_path: Optional[str] = None,
    ) -> str:
        """Generate a report.

        Args:
            candidates: Candidates, already sorted by risk.
            project_path: Path to the project being reported on.

        Returns:
            Formatted report string.
        """
        if self.format == ReportFormat.JSON:
            return self._format_json_report(candidates, project_path)
        elif self.format == ReportFormat.PLAIN:
            return self._format_plain_report(candidates, project_path)
        else:
            return self._format_markdown_report(candidates, project_path)

    def _count_by_type(self, candidates: Sequence[UpdateCandidate]) -> Dict[str, int]:
        counts = {update_type.value: 0 for update_type in UpdateType}
        for candidate in candidates:
            counts[candidate.update_type.value] += 1
        return counts

    def _format_markdown_report(
        self,
        candidates: Sequence[UpdateCandidate],
        project_path: Optional[str],
    ) -> str:
        lines: List[str] = []

        lines.append("# Package Update Report")
        lines.append("")
        if project_path:
            lines.append(f"**Project:** `{project_path}`")
            lines.append("")

        lines.append("## Summary")
        lines.append("")
        lines.append(f"- **Updates Available:** {len(candidates)}")
        lines.append(
            f"- **Security Updates:** {sum(1 for c in candidates if c.has_security_issue)}"
        )
        counts = self._count_by_type(candidates)
        lines.append(f"- Major Updates: {counts[UpdateType.MAJOR.value]}")
        lines.append(f"- Minor Updates: {counts[UpdateType.MINOR.value]}")
        lines.append(f"- Patch Updates: {counts[UpdateType.PATCH.value]}")
        lines.append("")

        if not candidates:
            lines.append("## ✅ All packages are up to date")
            lines.append("")
            return "\n".join(lines)

        for level, members in group_by_risk(candidates).items():
            lines.append(f"## {RISK_ICONS[level]} {RISK_HEADINGS[level]} ({len(members)})")
            lines.append("")
            for candidate in members:
                suffix = " **[SECURITY]**" if candidate.has_security_issue else ""
                lines.append(
                    f"- **{candidate.name}**: `{candidate.current_version}` → "
                    f"`{candidate.latest_version}` "
                    f"({candidate.update_type.value}, {candidate.manifest_section.value}){suffix}"
                )
            lines.append("")

        return "\n".join(lines)

    def _format_json_report(
        self,
        candidates: Sequence[UpdateCandidate],
        project_path: Optional[str],
    ) -> str:
        report: Dict = {
            "project_path": project_path,
            "summary": {
                "updates_available": len(candidates),
                "security_updates": sum(1 for c in candidates if c.has_security_issue),
                "by_type": self._count_by_type(candidates),
                "by_risk": {
                    level.value: sum(1 for c in candidates if c.risk_level is level)
                    for level in RiskLevel
                },
            },
            "updates": [candidate.to_dict() for candidate in candidates],
        }
        return json.dumps(report, indent=2, ensure_ascii=False)

    def _format_plain_report(
        self,
        candidates: Sequence[UpdateCandidate],
        project_path: Optional[str],
    ) -> str:
        lines: List[str] = []

        lines.append("=" * 60)
        lines.append("PACKAGE UPDATE REPORT")
        lines.append("=" * 60)
        lines.append("")
        if project_path:
            lines.append(f"Project: {project_path}")
            lines.append("")

        lines.append(f"Updates Available: {len(candidates)}")
        lines.append("")

        if candidates:
            for level, members in group_by_risk(candidates).items():
                lines.append(f"{RISK_HEADINGS[level]} ({len(members)})")
                lines.append("-" * 40)
                for candidate in members:
                    suffix = " [SECURITY]" if candidate.has_security_issue else ""
                    lines.append(
                        f"  {candidate.name}: {candidate.current_version} -> "
                        f"{candidate.latest_version} [{candidate.manifest_section.value}]{suffix}"
                    )
                lines.append("")
        else:
            lines.append("All packages are up to date!")
            lines.append("")

        lines.append("=" * 60)
        return "\n".join(lines)
