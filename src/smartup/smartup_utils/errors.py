# -*- coding: utf-8 -*-
"""
Error types raised by the smartup update pipeline.

Version parse failures never show up here: they are absorbed by the version
engine and turn into "no update". Everything else that a caller may need to
react to derives from SmartUpdaterError so the CLI can report it uniformly.
"""
from typing import Optional


class SmartUpdaterError(Exception):
    """Base class for all smartup errors."""


class ConfigError(SmartUpdaterError):
    """Raised when .smart-updater.yaml cannot be parsed."""


class ManifestUnreadable(SmartUpdaterError):
    """The primary manifest (package.json) is missing or unreadable."""


class SnapshotNotFound(SmartUpdaterError):
    """No usable snapshot exists for the requested identifier."""

    def __init__(self, snapshot_id: str, reason: str = "not found") -> None:
        super().__init__(f"Snapshot {snapshot_id} {reason}")
        self.snapshot_id = snapshot_id


class PreconditionViolation(SmartUpdaterError):
    """A workflow refused to start because the project is in the wrong state."""


class DirtyWorkingTree(PreconditionViolation):
    """Uncommitted changes prevent a sandboxed trial."""

    def __init__(self) -> None:
        super().__init__(
            "You have uncommitted changes. Please commit or stash them first."
        )


class DetachedHead(PreconditionViolation):
    """The repository is not on a branch, so there is nothing to return to."""

    def __init__(self) -> None:
        super().__init__(
            "HEAD is detached. Check out a branch before running an isolated trial."
        )


class WorkflowBusy(PreconditionViolation):
    """Another smartup process holds the project lock."""

    def __init__(self, lock_path: str, pid: Optional[int] = None) -> None:
        owner = f" (PID: {pid})" if pid else ""
        super().__init__(
            f"Another smartup workflow is running on this project{owner}. "
            f"Remove {lock_path} if you are sure no other instance is active."
        )
        self.lock_path = lock_path
        self.pid = pid


class ProcessInvocationError(SmartUpdaterError):
    """An external command could not be started at all."""


class SubprocessFailure(SmartUpdaterError):
    """An external command ran but reported failure."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class RecoveryFailure(SmartUpdaterError):
    """Rollback followed by reinstall failed; the project state is unknown."""

    def __init__(self, snapshot_id: str, output: str = "") -> None:
        super().__init__(
            f"Automatic recovery from snapshot {snapshot_id} failed. "
            f"Restore it manually with `smartup rollback {snapshot_id}`."
        )
        self.snapshot_id = snapshot_id
        self.output = output
