"""
Package Analyzer - Discover and Classify Available Updates

This module compares every declared dependency against the latest version
published on the registry, flags packages reported by ``npm audit``, and
produces risk-classified update candidates.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from smartup.smartup_manifest.mutator import (
    DeclaredDependency,
    DependencySection,
    ManifestMutator,
)
from smartup.smartup_registry.registry import NpmRegistry
from smartup.smartup_utils.config import get_max_workers
from smartup.smartup_utils.errors import ManifestUnreadable
from smartup.smartup_utils.npm_utils import NpmClient
from smartup.smartup_version.diff import (
    RiskLevel,
    UpdateType,
    compare_versions,
    determine_risk_level,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateCandidate:
    """An available update for one declared dependency.

    Attributes:
        name: Package name.
        current_version: Declared version without its range operator.
        latest_version: Latest published version.
        update_type: Magnitude of the update.
        risk_level: CRITICAL iff the package has a known vulnerability,
            otherwise derived from update_type.
        has_security_issue: Reported by npm audit.
        manifest_section: Section of package.json declaring the package.
    """

    name: str
    current_version: str
    latest_version: str
    update_type: UpdateType
    risk_level: RiskLevel
    has_security_issue: bool
    manifest_section: DependencySection

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "current_version": self.current_version,
            "latest_version": self.latest_version,
            "update_type": self.update_type.value,
            "risk_level": self.risk_level.value,
            "has_security_issue": self.has_security_issue,
            "manifest_section": self.manifest_section.value,
        }


def sort_by_risk(candidates: Iterable[UpdateCandidate]) -> List[UpdateCandidate]:
    """Most severe first, then by package name."""
    return sorted(candidates, key=lambda c: (c.risk_level.rank, c.name))


def filter_candidates(
    candidates: Iterable[UpdateCandidate],
    security_only: bool = False,
    patch_only: bool = False,
    names: Optional[Iterable[str]] = None,
) -> List[UpdateCandidate]:
    """Apply the user's selection filters.

    Args:
        candidates: Analysed candidates.
        security_only: Keep only packages with a security issue.
        patch_only: Keep only patch-level updates.
        names: Keep only these package names (None keeps all).

    Returns:
        The remaining candidates, in their original order.
    """
    wanted = set(names) if names is not None else None
    result = []
    for candidate in candidates:
        if security_only and not candidate.has_security_issue:
            continue
        if patch_only and candidate.update_type is not UpdateType.PATCH:
            continue
        if wanted is not None and candidate.name not in wanted:
            continue
        result.append(candidate)
    return result


class PackageAnalyzer:
    """Builds update candidates for the project's declared dependencies.

    Example:
        >>> analyzer = PackageAnalyzer(mutator, NpmRegistry(), NpmClient("."))
        >>> for candidate in analyzer.analyze():
        ...     print(candidate.name, candidate.risk_level.value)
    """

    def __init__(
        self,
        mutator: ManifestMutator,
        registry: NpmRegistry,
        npm: NpmClient,
        max_workers: Optional[int] = None,
    ) -> None:
        self.mutator = mutator
        self.registry = registry
        self.npm = npm
        self.max_workers = max_workers or get_max_workers()

    def _evaluate(
        self, dependency: DeclaredDependency, latest: Optional[str], vulnerable: bool
    ) -> Optional[UpdateCandidate]:
        current = dependency.current_version
        if not current or not latest:
            return None
        comparison = compare_versions(current, latest)
        if not comparison.needs_update:
            return None
        return UpdateCandidate(
            name=dependency.name,
            current_version=current,
            latest_version=latest,
            update_type=comparison.update_type,
            risk_level=determine_risk_level(comparison.update_type, vulnerable),
            has_security_issue=vulnerable,
            manifest_section=dependency.section,
        )

    def analyze(self, security_only: bool = False) -> List[UpdateCandidate]:
        """Find available updates.

        Args:
            security_only: Return only packages with a known vulnerability.

        Returns:
            Candidates sorted by risk (critical first), then name.

        Raises:
            ManifestUnreadable: If package.json is missing or invalid.
        """
        if not self.mutator.is_valid():
            raise ManifestUnreadable("package.json not found or is not a JSON object")
        declared = self.mutator.declared_map()

        audit = self.npm.audit()
        vulnerable = audit.vulnerable_package_names
        logger.debug("Audit reported %d vulnerable package(s)", len(vulnerable))

        dependencies = list(declared.values())
        if security_only:
            dependencies = [d for d in dependencies if d.name in vulnerable]
        if not dependencies:
            return []

        workers = max(1, min(self.max_workers, len(dependencies)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            latest_versions = list(
                executor.map(lambda d: self.registry.latest_version(d.name), dependencies)
            )

        candidates = []
        for dependency, latest in zip(dependencies, latest_versions):
            if latest is None:
                logger.debug("No registry version for %s", dependency.name)
            candidate = self._evaluate(dependency, latest, dependency.name in vulnerable)
            if candidate is not None:
                candidates.append(candidate)
        return sort_by_risk(candidates)
