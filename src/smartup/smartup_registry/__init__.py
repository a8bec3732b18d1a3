"""
smartup_registry - npm Registry Lookups
"""

from smartup.smartup_registry.registry import NpmRegistry, PackageMetadata

__all__ = ["NpmRegistry", "PackageMetadata"]
