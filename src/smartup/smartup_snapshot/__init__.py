"""
smartup_snapshot - Manifest Snapshots

Captures package.json / package-lock.json before an update so that a failed
install, or the user, can roll the project back.
"""

from smartup.smartup_snapshot.store import (
    Snapshot,
    SnapshotMetadata,
    SnapshotStore,
)

__all__ = [
    "Snapshot",
    "SnapshotMetadata",
    "SnapshotStore",
]
