"""
Manifest Mutator - Rewrite Declared Dependency Ranges

This module reads and rewrites the dependency sections of ``package.json``.
A rewritten range keeps the operator prefix of the range it replaces, so
``^1.0.0`` updated to ``2.0.0`` becomes ``^2.0.0`` and an exact pin stays an
exact pin.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple, Union

from smartup.smartup_utils.file_store import FileStore

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"

_PREFIX_PATTERN = re.compile(r"^[\^~<>=]*")
_INDENT_PATTERN = re.compile(r"^\{\s*?\n([ \t]+)\S", re.MULTILINE)


class DependencySection(Enum):
    """Dependency sections of package.json, in lookup order."""

    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"
    PEER_DEPENDENCIES = "peerDependencies"
    OPTIONAL_DEPENDENCIES = "optionalDependencies"


@dataclass(frozen=True)
class DeclaredDependency:
    """A dependency as written in the manifest.

    Attributes:
        name: Package name.
        version_range: Declared range, e.g. ``^1.2.0``.
        section: Section declaring it.
    """

    name: str
    version_range: str
    section: DependencySection

    @property
    def current_version(self) -> str:
        return clean_version(self.version_range)


def version_prefix(version_range: str) -> str:
    """Leading run of range operators (``^``, ``~``, ``>``, ``<``, ``=``); empty for a pin."""
    return _PREFIX_PATTERN.match(version_range).group(0)


def clean_version(version_range: str) -> str:
    """Strip the range operators, leaving the version itself."""
    return version_range[len(version_prefix(version_range)):]


def _detect_indent(text: str) -> Union[int, str]:
    match = _INDENT_PATTERN.match(text)
    if not match:
        return 2
    indent = match.group(1)
    if "\t" in indent:
        return indent
    return len(indent)


def _detect_newline(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


class ManifestMutator:
    """Reads and rewrites dependency declarations in package.json.

    Example:
        >>> mutator = ManifestMutator(LocalFileStore("."))
        >>> mutator.apply({"axios": "1.6.0"})
        True
    """

    def __init__(self, file_store: FileStore, manifest_path: str = MANIFEST_FILE) -> None:
        self.file_store = file_store
        self.manifest_path = manifest_path

    def _read(self) -> Optional[str]:
        raw = self.file_store.read_bytes(self.manifest_path)
        if raw is None:
            return None
        try:
            return raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            logger.warning("%s is not valid UTF-8", self.manifest_path)
            return None

    def _load(self) -> Optional[Tuple[str, dict]]:
        text = self._read()
        if text is None:
            return None
        try:
            manifest = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse %s: %s", self.manifest_path, e)
            return None
        if not isinstance(manifest, dict):
            logger.warning("%s is not a JSON object", self.manifest_path)
            return None
        return text, manifest

    def is_valid(self) -> bool:
        """True when the manifest exists and is a JSON object."""
        return self._load() is not None

    def apply(self, target_versions: Mapping[str, str]) -> bool:
        """Rewrite every declaration of the given packages.

        Each package is updated in every section that declares it; packages
        the manifest does not declare are ignored. The manifest is written
        back once, after all changes are computed. Indentation and line
        endings are kept, and nothing is written when no declaration changes.

        Args:
            target_versions: Package name to new version (without operator).

        Returns:
            False when the manifest is missing or is not a JSON object.
        """
        loaded = self._load()
        if loaded is None:
            return False
        text, manifest = loaded

        changed = 0
        for section in DependencySection:
            declared = manifest.get(section.value)
            if not isinstance(declared, dict):
                continue
            for name, new_version in target_versions.items():
                current = declared.get(name)
                if not isinstance(current, str):
                    continue
                updated = f"{version_prefix(current)}{new_version}"
                if updated == current:
                    continue
                declared[name] = updated
                changed += 1
                logger.debug(
                    "%s.%s: %s -> %s", section.value, name, current, declared[name]
                )

        if not changed:
            logger.debug("%s already up to date", self.manifest_path)
            return True

        newline = _detect_newline(text)
        output = json.dumps(manifest, indent=_detect_indent(text), ensure_ascii=False)
        if text.endswith("\n"):
            output += "\n"
        if newline != "\n":
            output = output.replace("\n", newline)
        self.file_store.write_bytes(self.manifest_path, output.encode("utf-8"))
        logger.info("Updated %d declaration(s) in %s", changed, self.manifest_path)
        return True

    def declared_dependencies(self) -> List[DeclaredDependency]:
        """All string-valued declarations, section by section in lookup order."""
        loaded = self._load()
        if loaded is None:
            return []
        manifest = loaded[1]
        result = []
        for section in DependencySection:
            declared = manifest.get(section.value)
            if not isinstance(declared, dict):
                continue
            for name, version_range in declared.items():
                if isinstance(version_range, str):
                    result.append(DeclaredDependency(name, version_range, section))
        return result

    def declared_section(self, name: str) -> Optional[DependencySection]:
        """First section declaring ``name``."""
        for dependency in self.declared_dependencies():
            if dependency.name == name:
                return dependency.section
        return None

    def current_declared_version(self, name: str) -> Optional[str]:
        """Declared range of ``name`` from the first section that has it."""
        for dependency in self.declared_dependencies():
            if dependency.name == name:
                return dependency.version_range
        return None

    def declared_map(self) -> Dict[str, DeclaredDependency]:
        """First declaration per package name."""
        result: Dict[str, DeclaredDependency] = {}
        for dependency in self.declared_dependencies():
            result.setdefault(dependency.name, dependency)
        return result
