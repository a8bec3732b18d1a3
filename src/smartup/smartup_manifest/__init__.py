"""
smartup_manifest - package.json Dependency Declarations
"""

from smartup.smartup_manifest.mutator import (
    DeclaredDependency,
    DependencySection,
    ManifestMutator,
    clean_version,
    version_prefix,
)

__all__ = [
    "DeclaredDependency",
    "DependencySection",
    "ManifestMutator",
    "clean_version",
    "version_prefix",
]
