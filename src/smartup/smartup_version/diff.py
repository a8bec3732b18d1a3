"""
Version Diff - Version Parsing, Comparison and Risk Classification

This module parses three-component versions, decides whether a newer version
is an update, classifies the update magnitude and maps it to a risk level.
Everything here is pure: malformed input never raises, it simply means
"no actionable update".

Parsing and precedence come from ``semver``: build metadata never takes part
in comparison, and prerelease identifiers follow SemVer ordering.
"""

from enum import Enum
from typing import NamedTuple, Optional

from semver import Version

# Parsed version type; precedence ignores build metadata
VersionTriple = Version


class UpdateType(Enum):
    """Magnitude of an available update."""

    MAJOR = "major"  # Breaking changes (e.g., 1.0.0 -> 2.0.0)
    MINOR = "minor"  # New features, backwards compatible (e.g., 1.0.0 -> 1.1.0)
    PATCH = "patch"  # Bug fixes, or a prerelease-only bump (e.g., 1.0.0 -> 1.0.1)


class RiskLevel(Enum):
    """Risk tier of an update, most severe first."""

    CRITICAL = "critical"  # Known security issue in the current version
    BREAKING = "breaking"
    MODERATE = "moderate"
    SAFE = "safe"

    @property
    def rank(self) -> int:
        return _RISK_ORDER[self]


_RISK_ORDER = {
    RiskLevel.CRITICAL: 0,
    RiskLevel.BREAKING: 1,
    RiskLevel.MODERATE: 2,
    RiskLevel.SAFE: 3,
}


class VersionComparison(NamedTuple):
    """Result of compare_versions."""

    needs_update: bool
    update_type: Optional[UpdateType]


NO_UPDATE = VersionComparison(False, None)


def parse_version(text: object) -> Optional[Version]:
    """Parse ``MAJOR.MINOR.PATCH[-prerelease][+build]`` with an optional leading ``v``.

    Surrounding whitespace and non-ASCII digits are rejected.

    Returns:
        The parsed version, or None when ``text`` is not a valid version.
    """
    if not isinstance(text, str) or not text.isascii():
        return None
    if any(char.isspace() for char in text):
        return None
    if text.startswith("v"):
        text = text[1:]
    try:
        return Version.parse(text)
    except ValueError:
        return None


def determine_update_type(current: Version, latest: Version) -> UpdateType:
    """Most significant differing numeric component; prerelease-only bumps are patches."""
    if latest.major != current.major:
        return UpdateType.MAJOR
    if latest.minor != current.minor:
        return UpdateType.MINOR
    return UpdateType.PATCH


def compare_versions(current: str, latest: str) -> VersionComparison:
    """Decide whether ``latest`` is an update over ``current``.

    Args:
        current: Version currently declared.
        latest: Latest published version.

    Returns:
        ``(True, update_type)`` when latest is strictly newer, otherwise
        ``(False, None)``. Unparsable input also yields ``(False, None)``.

    Example:
        >>> compare_versions("1.0.0", "1.1.0")
        VersionComparison(needs_update=True, update_type=<UpdateType.MINOR: 'minor'>)
    """
    current_version = parse_version(current)
    latest_version = parse_version(latest)
    if current_version is None or latest_version is None:
        return NO_UPDATE
    if current_version.compare(latest_version) >= 0:
        return NO_UPDATE
    return VersionComparison(True, determine_update_type(current_version, latest_version))


def determine_risk_level(
    update_type: Optional[UpdateType], has_security_issue: bool
) -> RiskLevel:
    """Map an update magnitude and the security flag to a risk level.

    A security issue always wins, even for a patch-level fix. Without one,
    major is breaking, minor is moderate, and patch or no update is safe.
    """
    if has_security_issue:
        return RiskLevel.CRITICAL
    if update_type is UpdateType.MAJOR:
        return RiskLevel.BREAKING
    if update_type is UpdateType.MINOR:
        return RiskLevel.MODERATE
    return RiskLevel.SAFE
