"""
Snapshot Store - Capture and Restore Manifest State

This module captures point-in-time copies of the project's dependency
manifests (``package.json`` and the optional ``package-lock.json``) and can
restore, enumerate and prune them. It is the undo mechanism behind every
update: a snapshot is taken before the manifest is touched.

Layout::

    <snapshot_dir>/<snapshot-id>/package.json
    <snapshot_dir>/<snapshot-id>/package-lock.json   (when present)
    <snapshot_dir>/<snapshot-id>/metadata.json       (written last)
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from smartup.smartup_utils.errors import ManifestUnreadable, SnapshotNotFound
from smartup.smartup_utils.file_store import FileStore

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"
LOCK_FILE = "package-lock.json"
METADATA_FILE = "metadata.json"
CAPTURED_FILES = (MANIFEST_FILE, LOCK_FILE)

_ID_PREFIX = "snapshot-"
_ID_PATTERN = re.compile(
    r"^(snapshot-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3,6}Z)(?:-(\d{3,}))?$"
)
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Render a datetime as a UTC ISO-8601 string with a ``Z`` suffix."""
    return moment.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> datetime:
    """Parse a stored capture timestamp into an aware UTC datetime.

    Raises:
        ValueError: If the text is not an ISO-8601 timestamp.
    """
    try:
        moment = datetime.strptime(text, _TIMESTAMP_FORMAT)
    except ValueError:
        moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _is_plain_name(snapshot_id: str) -> bool:
    if not isinstance(snapshot_id, str) or snapshot_id in ("", ".", ".."):
        return False
    return "/" not in snapshot_id and "\\" not in snapshot_id and "\x00" not in snapshot_id


@dataclass(frozen=True)
class SnapshotMetadata:
    """The metadata record stored next to the captured files.

    Attributes:
        id: Snapshot identifier (also the directory name).
        timestamp: UTC capture time as an ISO-8601 string.
        packages: Names of the packages the snapshot was taken for.
        success: True once every captured file has been written.
    """

    id: str
    timestamp: str
    packages: Tuple[str, ...] = ()
    success: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "packages": list(self.packages),
            "success": self.success,
        }

    @classmethod
    def from_dict(cls, data: object) -> "SnapshotMetadata":
        """Validate a decoded metadata record.

        Raises:
            ValueError: If a field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError("metadata must be a JSON object")
        snapshot_id = data.get("id")
        timestamp = data.get("timestamp")
        packages = data.get("packages", [])
        success = data.get("success")
        if not isinstance(snapshot_id, str) or not isinstance(timestamp, str):
            raise ValueError("metadata requires string id and timestamp")
        if not isinstance(packages, list) or not all(isinstance(p, str) for p in packages):
            raise ValueError("metadata packages must be a list of strings")
        if not isinstance(success, bool):
            raise ValueError("metadata success flag must be a boolean")
        return cls(
            id=snapshot_id,
            timestamp=timestamp,
            packages=tuple(packages),
            success=success,
        )


@dataclass(frozen=True)
class Snapshot:
    """A captured manifest state.

    Attributes:
        id: Snapshot identifier, lexically sortable by capture time.
        timestamp: Capture time (UTC).
        packages: Package names the snapshot was tagged with.
        captured_files: Logical file name to the verbatim captured bytes.
    """

    id: str
    timestamp: datetime
    packages: Tuple[str, ...] = ()
    captured_files: Dict[str, bytes] = field(default_factory=dict)

    @property
    def has_lock_file(self) -> bool:
        return LOCK_FILE in self.captured_files


class SnapshotStore:
    """Creates, restores and enumerates manifest snapshots.

    This class provides functionality to:
    - Capture the manifest files before an update
    - Restore them verbatim after a failure or on request
    - List snapshots newest first and look one up by id
    - Delete and prune old snapshots

    Example:
        >>> store = SnapshotStore(LocalFileStore("."))
        >>> snapshot_id = store.capture(["axios"])
        >>> store.restore(snapshot_id)
        True
    """

    def __init__(
        self,
        file_store: FileStore,
        snapshot_dir: str = ".smart-updater/snapshots",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize SnapshotStore.

        Args:
            file_store: Store rooted at the project directory.
            snapshot_dir: Snapshot root, relative to the project directory.
            clock: Returns the current UTC time; defaults to the system clock.
        """
        self.file_store = file_store
        self.snapshot_dir = Path(snapshot_dir)
        self._clock = clock or _utc_now

    def _snapshot_path(self, snapshot_id: str, name: Optional[str] = None) -> Path:
        path = self.snapshot_dir / snapshot_id
        return path / name if name else path

    def _next_id(self, moment: datetime) -> str:
        candidate = (
            _ID_PREFIX + moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f") + "Z"
        )
        existing = [
            entry
            for entry in self.file_store.list_entries(self.snapshot_dir)
            if _ID_PATTERN.match(entry)
        ]
        newest = max(existing) if existing else None
        if newest is None or candidate > newest:
            return candidate
        # Clock did not advance past the newest id: extend it with a sequence number.
        match = _ID_PATTERN.match(newest)
        base, sequence = match.group(1), match.group(2)
        return f"{base}-{int(sequence or 0) + 1:03d}"

    def capture(self, package_names: Sequence[str]) -> str:
        """Capture the current manifest files.

        Args:
            package_names: Packages the snapshot is taken for (stored as a tag).

        Returns:
            The new snapshot id.

        Raises:
            ManifestUnreadable: If package.json cannot be read.
        """
        manifest = self.file_store.read_bytes(MANIFEST_FILE)
        if manifest is None:
            raise ManifestUnreadable(f"Cannot read {MANIFEST_FILE}; nothing to snapshot")
        lock_file = self.file_store.read_bytes(LOCK_FILE)

        moment = self._clock()
        snapshot_id = self._next_id(moment)
        metadata = SnapshotMetadata(
            id=snapshot_id,
            timestamp=format_timestamp(moment),
            packages=tuple(package_names),
            success=True,
        )
        try:
            self.file_store.write_bytes(self._snapshot_path(snapshot_id, MANIFEST_FILE), manifest)
            if lock_file is not None:
                self.file_store.write_bytes(self._snapshot_path(snapshot_id, LOCK_FILE), lock_file)
            payload = json.dumps(metadata.to_dict(), indent=2, ensure_ascii=False)
            self.file_store.write_bytes(
                self._snapshot_path(snapshot_id, METADATA_FILE), payload.encode("utf-8")
            )
        except Exception:
            self._discard_partial(snapshot_id)
            raise

        logger.info("Captured snapshot %s for %s", snapshot_id, ", ".join(package_names) or "-")
        return snapshot_id

    def _discard_partial(self, snapshot_id: str) -> None:
        try:
            self.file_store.remove_tree(self._snapshot_path(snapshot_id))
        except OSError as e:
            logger.warning("Failed to remove partial snapshot %s: %s", snapshot_id, e)

    def restore(self, snapshot_id: str) -> bool:
        """Overwrite the manifest files with a snapshot's captured bytes.

        Restoring the same snapshot twice leaves the same end state. The lock
        file is left untouched when the snapshot did not capture one.

        Raises:
            SnapshotNotFound: If the snapshot or its captured package.json is missing.
        """
        if not _is_plain_name(snapshot_id):
            raise SnapshotNotFound(str(snapshot_id), "is not a valid snapshot id")
        if not self.file_store.exists(self._snapshot_path(snapshot_id)):
            raise SnapshotNotFound(snapshot_id)
        manifest = self.file_store.read_bytes(self._snapshot_path(snapshot_id, MANIFEST_FILE))
        if manifest is None:
            raise SnapshotNotFound(snapshot_id, f"has no captured {MANIFEST_FILE}")
        lock_file = self.file_store.read_bytes(self._snapshot_path(snapshot_id, LOCK_FILE))

        self.file_store.write_bytes(MANIFEST_FILE, manifest)
        if lock_file is not None:
            self.file_store.write_bytes(LOCK_FILE, lock_file)
        logger.info("Restored snapshot %s", snapshot_id)
        return True

    def _load(self, snapshot_id: str) -> Optional[Snapshot]:
        raw = self.file_store.read_bytes(self._snapshot_path(snapshot_id, METADATA_FILE))
        if raw is None:
            return None
        try:
            metadata = SnapshotMetadata.from_dict(json.loads(raw.decode("utf-8")))
            timestamp = parse_timestamp(metadata.timestamp)
        except (UnicodeDecodeError, ValueError) as e:
            logger.debug("Skipping snapshot %s with corrupt metadata: %s", snapshot_id, e)
            return None
        if not metadata.success:
            return None

        captured: Dict[str, bytes] = {}
        for name in CAPTURED_FILES:
            content = self.file_store.read_bytes(self._snapshot_path(snapshot_id, name))
            if content is not None:
                captured[name] = content
        if MANIFEST_FILE not in captured:
            logger.debug("Skipping snapshot %s without %s", snapshot_id, MANIFEST_FILE)
            return None
        return Snapshot(
            id=snapshot_id,
            timestamp=timestamp,
            packages=metadata.packages,
            captured_files=captured,
        )

    def list(self) -> List[Snapshot]:
        """List complete snapshots, newest first (timestamp, then id, descending)."""
        snapshots = []
        for entry in self.file_store.list_entries(self.snapshot_dir):
            if not _is_plain_name(entry):
                continue
            snapshot = self._load(entry)
            if snapshot is not None:
                snapshots.append(snapshot)
        snapshots.sort(key=lambda s: (s.timestamp, s.id), reverse=True)
        return snapshots

    def get(self, snapshot_id: str) -> Optional[Snapshot]:
        """Return the snapshot with this id, or None when it is unknown or incomplete."""
        if not _is_plain_name(snapshot_id):
            return None
        return self._load(snapshot_id)

    def delete(self, snapshot_id: str) -> bool:
        """Delete a snapshot.

        The metadata record goes first so an interrupted delete never leaves a
        listable snapshot behind.

        Returns:
            False when there is no such snapshot.
        """
        if not _is_plain_name(snapshot_id):
            return False
        if not self.file_store.exists(self._snapshot_path(snapshot_id)):
            return False
        self.file_store.remove_tree(self._snapshot_path(snapshot_id, METADATA_FILE))
        self.file_store.remove_tree(self._snapshot_path(snapshot_id))
        logger.info("Deleted snapshot %s", snapshot_id)
        return True

    def prune(self, keep: int) -> List[str]:
        """Delete every snapshot except the ``keep`` newest.

        Returns:
            Ids of the deleted snapshots.
        """
        if keep < 0:
            raise ValueError("keep must be zero or positive")
        removed = []
        for snapshot in self.list()[keep:]:
            if self.delete(snapshot.id):
                removed.append(snapshot.id)
        return removed
