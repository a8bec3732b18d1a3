# -*- coding: utf-8 -*-
"""
npm registry client.

Looks up the ``latest`` dist-tag manifest of a package. Every network or
payload problem is reported as None; nothing here raises to the caller.
Payloads are validated into PackageMetadata at this boundary so untyped JSON
never reaches the rest of the pipeline.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from smartup.smartup_utils.config import get_registry_timeout, get_registry_url
from smartup.smartup_utils.http import get, get_requests_session

logger = logging.getLogger(__name__)


def _optional_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _repository_url(value: Any) -> Optional[str]:
    # "repository" is either a shorthand string or {"type": "git", "url": ...}
    if isinstance(value, dict):
        return _optional_str(value.get("url"))
    return _optional_str(value)


@dataclass(frozen=True)
class PackageMetadata:
    """Validated view of a registry manifest.

    Attributes:
        name: Package name.
        version: Version the manifest describes.
        description: Short description, if published.
        homepage: Homepage URL, if published.
        repository: Repository URL, if published.
        deprecated: Deprecation message, if the version is deprecated.
    """

    name: str
    version: str
    description: Optional[str] = None
    homepage: Optional[str] = None
    repository: Optional[str] = None
    deprecated: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["PackageMetadata"]:
        """Validate a decoded manifest; returns None for any unexpected shape."""
        if not isinstance(payload, dict):
            return None
        name = _optional_str(payload.get("name"))
        version = _optional_str(payload.get("version"))
        if name is None or version is None:
            return None
        deprecated = payload.get("deprecated")
        if deprecated is True:
            deprecated = "This version is deprecated"
        return cls(
            name=name,
            version=version,
            description=_optional_str(payload.get("description")),
            homepage=_optional_str(payload.get("homepage")),
            repository=_repository_url(payload.get("repository")),
            deprecated=_optional_str(deprecated),
        )


class NpmRegistry:
    """Registry lookups with a per-instance cache.

    Safe to call from several threads; the analysis phase fans lookups out on
    a thread pool.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or get_registry_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else get_registry_timeout()
        self.session = session or get_requests_session()
        self._cache: Dict[str, Optional[PackageMetadata]] = {}
        self._lock = threading.Lock()

    def _latest_url(self, package_name: str) -> str:
        # Scoped names keep their "@" but encode the slash: @scope%2Fname
        return f"{self.base_url}/{quote(package_name, safe='@')}/latest"

    def package_metadata(self, package_name: str) -> Optional[PackageMetadata]:
        """Manifest of the latest published version, or None."""
        if not package_name:
            return None
        with self._lock:
            if package_name in self._cache:
                return self._cache[package_name]

        metadata = None
        try:
            response = get(self._latest_url(package_name), session=self.session, timeout=self.timeout)
            metadata = PackageMetadata.from_payload(response.json())
            if metadata is None:
                logger.debug("Unexpected registry payload for %s", package_name)
        except requests.RequestException as e:
            logger.debug("Registry lookup for %s failed: %s", package_name, e)
        except ValueError as e:
            logger.debug("Registry returned invalid JSON for %s: %s", package_name, e)

        with self._lock:
            self._cache[package_name] = metadata
        return metadata

    def latest_version(self, package_name: str) -> Optional[str]:
        metadata = self.package_metadata(package_name)
        return metadata.version if metadata else None
