"""
smartup_version - Version Difference and Risk Classification

Pure functions used by the analysis phase:
    - Parse ``MAJOR.MINOR.PATCH[-prerelease][+build]`` versions
    - Decide whether an update is available and classify its magnitude
    - Map magnitude and security status to a risk level

Usage:
    >>> from smartup.smartup_version import compare_versions, determine_risk_level
    >>> result = compare_versions("1.0.0", "2.0.0")
    >>> determine_risk_level(result.update_type, has_security_issue=False)
    <RiskLevel.BREAKING: 'breaking'>
"""

from smartup.smartup_version.diff import (
    RiskLevel,
    UpdateType,
    VersionComparison,
    VersionTriple,
    compare_versions,
    determine_risk_level,
    determine_update_type,
    parse_version,
)

__all__ = [
    "RiskLevel",
    "UpdateType",
    "VersionComparison",
    "VersionTriple",
    "compare_versions",
    "determine_risk_level",
    "determine_update_type",
    "parse_version",
]
