# -*- coding: utf-8 -*-
"""
Update Orchestrator - The Update Safety Workflow

Composes the analyzer, snapshot store, manifest mutator, package manager and
trial runner into the user-facing workflows:

- analyze -> select
- snapshot -> mutate -> install, restoring the snapshot when install fails
- rollback to a snapshot
- isolated trial of a single package version
- package explanation (``why``)

Workflows that modify the project run under a project lock. Progress is
reported through an injected OutputSink, so the orchestrator never talks to
the terminal directly.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Tuple

from smartup.smartup_analyzer.analyzer import (
    PackageAnalyzer,
    UpdateCandidate,
    filter_candidates,
)
from smartup.smartup_manifest.mutator import DependencySection, ManifestMutator
from smartup.smartup_registry.registry import NpmRegistry, PackageMetadata
from smartup.smartup_snapshot.store import Snapshot, SnapshotStore
from smartup.smartup_trial.runner import ImpactTester, SandboxedTrialRunner, TrialResult
from smartup.smartup_utils.config import (
    get_lock_file,
    get_snapshot_dir,
    get_snapshot_keep,
    is_reinstall_after_trial,
)
from smartup.smartup_utils.errors import (
    ManifestUnreadable,
    ProcessInvocationError,
    RecoveryFailure,
    SubprocessFailure,
)
from smartup.smartup_utils.file_store import FileStore, LocalFileStore
from smartup.smartup_utils.git_utils import GitClient
from smartup.smartup_utils.lock import ProjectLock
from smartup.smartup_utils.npm_utils import CommandResult, NpmClient
from smartup.smartup_utils.output import OutputEvent, OutputSink, OutputType, emit_output

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateReport:
    """Outcome of apply_updates.

    Attributes:
        snapshot_id: Snapshot taken before the manifest was changed.
        updated: Candidates that were applied (or attempted, when rolled back).
        install_output: Output of the install command that decided the outcome.
        rolled_back: Install failed and the snapshot was restored.
        pruned: Snapshots removed by the retention setting.
    """

    snapshot_id: str
    updated: Tuple[UpdateCandidate, ...]
    install_output: str = ""
    rolled_back: bool = False
    pruned: Tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return not self.rolled_back


@dataclass(frozen=True)
class PackageExplanation:
    """Why a package is (or is not) part of the project."""

    metadata: PackageMetadata
    declared_section: Optional[DependencySection] = None
    declared_range: Optional[str] = None
    dependency_tree: str = ""

    @property
    def is_direct(self) -> bool:
        return self.declared_section is not None


def _project_dirs(*paths: str) -> List[str]:
    # Top-level entries holding smartup's own state inside the project
    names = []
    for path in paths:
        parts = Path(path).parts
        if parts and not Path(path).is_absolute() and parts[0] not in names:
            names.append(parts[0])
    return names


class UpdateOrchestrator:
    """Top-level update workflows for one project directory.

    Collaborators default to the real implementations rooted at
    ``project_root`` and can be replaced for testing.

    Example:
        >>> orchestrator = UpdateOrchestrator(".")
        >>> candidates = orchestrator.select(orchestrator.analyze(), patch_only=True)
        >>> report = orchestrator.apply_updates(candidates)
    """

    def __init__(
        self,
        project_root: str = ".",
        file_store: Optional[FileStore] = None,
        npm: Optional[NpmClient] = None,
        git: Optional[GitClient] = None,
        registry: Optional[NpmRegistry] = None,
        sink: Optional[OutputSink] = None,
        lock: Optional[ProjectLock] = None,
    ) -> None:
        self.project_root = project_root
        snapshot_dir = get_snapshot_dir()
        lock_file = get_lock_file()

        self.file_store = file_store or LocalFileStore(project_root)
        self.npm = npm or NpmClient(project_root)
        self.git = git or GitClient(project_root, exclude=_project_dirs(snapshot_dir, lock_file))
        self.registry = registry or NpmRegistry()
        self.lock = lock or ProjectLock(Path(project_root) / lock_file)
        self._emit: Callable[[OutputEvent], None] = sink.emit if sink else emit_output

        self.snapshots = SnapshotStore(self.file_store, snapshot_dir)
        self.mutator = ManifestMutator(self.file_store)
        self.analyzer = PackageAnalyzer(self.mutator, self.registry, self.npm)
        self.trial_runner = SandboxedTrialRunner(
            self.git, ImpactTester(self.npm, self.file_store)
        )

    def _report(self, text: str, output_type: OutputType = OutputType.INFO, **context: Any) -> None:
        self._emit(OutputEvent(text=text, output_type=output_type, context=context or None))

    # 分析
    def analyze(self, security_only: bool = False) -> List[UpdateCandidate]:
        """Available updates, most severe first."""
        return self.analyzer.analyze(security_only=security_only)

    def select(
        self,
        candidates: Iterable[UpdateCandidate],
        security_only: bool = False,
        patch_only: bool = False,
        names: Optional[Iterable[str]] = None,
    ) -> List[UpdateCandidate]:
        return filter_candidates(
            candidates, security_only=security_only, patch_only=patch_only, names=names
        )

    # 更新
    def apply_updates(self, candidates: Iterable[UpdateCandidate]) -> UpdateReport:
        """Snapshot, rewrite the manifest and install.

        When install fails the snapshot is restored and install runs once
        more; the report then has ``rolled_back=True``.

        Raises:
            ValueError: If no candidates are given.
            ManifestUnreadable: If package.json is missing or invalid.
            RecoveryFailure: If the recovery install fails as well.
            WorkflowBusy: If another smartup workflow holds the project lock.
        """
        selected = tuple(candidates)
        if not selected:
            raise ValueError("No packages selected for update")

        with self.lock:
            if not self.mutator.is_valid():
                raise ManifestUnreadable("package.json not found or is not a JSON object")

            snapshot_id = self.snapshots.capture([c.name for c in selected])
            self._report(f"Snapshot created: {snapshot_id}", OutputType.SUCCESS, snapshot_id=snapshot_id)

            targets = {c.name: c.latest_version for c in selected}
            if not self.mutator.apply(targets):
                raise ManifestUnreadable("package.json could not be rewritten")
            self._report(f"package.json updated ({len(selected)} package(s))", OutputType.SUCCESS)

            self._report("Installing dependencies...", OutputType.PROGRESS)
            try:
                install = self.npm.install()
            except ProcessInvocationError:
                self.snapshots.restore(snapshot_id)
                raise

            if install.success:
                self._report("Dependencies installed successfully", OutputType.SUCCESS)
                return UpdateReport(
                    snapshot_id=snapshot_id,
                    updated=selected,
                    install_output=install.output,
                    pruned=self._apply_retention(),
                )

            logger.warning("Install failed, restoring snapshot %s", snapshot_id)
            self._report("Installation failed. Rolling back to previous state...", OutputType.ERROR)
            self.snapshots.restore(snapshot_id)
            recovery = self.npm.install()
            if not recovery.success:
                raise RecoveryFailure(snapshot_id, recovery.output)
            self._report("Rolled back to previous state", OutputType.WARNING, snapshot_id=snapshot_id)
            return UpdateReport(
                snapshot_id=snapshot_id,
                updated=selected,
                install_output=install.output,
                rolled_back=True,
                pruned=self._apply_retention(),
            )

    def _apply_retention(self) -> Tuple[str, ...]:
        keep = get_snapshot_keep()
        if keep is None:
            return ()
        removed = self.snapshots.prune(keep)
        if removed:
            self._report(f"Pruned {len(removed)} old snapshot(s)", OutputType.INFO)
        return tuple(removed)

    # 快照
    def list_snapshots(self) -> List[Snapshot]:
        return self.snapshots.list()

    def get_snapshot(self, snapshot_id: str) -> Optional[Snapshot]:
        return self.snapshots.get(snapshot_id)

    def prune_snapshots(self, keep: int) -> List[str]:
        with self.lock:
            return self.snapshots.prune(keep)

    def rollback(self, snapshot_id: str) -> CommandResult:
        """Restore a snapshot and reinstall.

        Raises:
            SnapshotNotFound: If the snapshot does not exist.
            SubprocessFailure: If install fails after the restore.
        """
        with self.lock:
            self.snapshots.restore(snapshot_id)
            self._report(f"Snapshot {snapshot_id} restored", OutputType.SUCCESS, snapshot_id=snapshot_id)
            self._report("Installing dependencies...", OutputType.PROGRESS)
            result = self.npm.install()
            if not result.success:
                raise SubprocessFailure(
                    f"Installation failed after restoring {snapshot_id}", result.output
                )
            return result

    # 试验
    def trial(self, name: str, version: str) -> Optional[TrialResult]:
        """Try ``name@version`` without keeping it.

        Returns:
            TrialResult, or None when the package is not declared in package.json.
        """
        if self.mutator.current_declared_version(name) is None:
            return None

        def mutation() -> None:
            if not self.mutator.apply({name: version}):
                raise ManifestUnreadable("package.json could not be rewritten")
            install = self.npm.install()
            if not install.success:
                raise SubprocessFailure(f"Installation of {name}@{version} failed", install.output)

        with self.lock:
            if not self.git.is_repo():
                snapshot_id = self.snapshots.capture([name])
                self._report(
                    f"Not a git repository: the update is applied directly. "
                    f"Run `smartup rollback {snapshot_id}` to undo it.",
                    OutputType.WARNING,
                    snapshot_id=snapshot_id,
                )
            try:
                return self.trial_runner.run_isolated(mutation)
            finally:
                if self.trial_runner.sandboxed and is_reinstall_after_trial():
                    self._reinstall_after_trial()

    def _reinstall_after_trial(self) -> None:
        self._report("Reinstalling dependencies of the original branch...", OutputType.PROGRESS)
        try:
            result = self.npm.install()
        except ProcessInvocationError as e:
            logger.error("Reinstall after trial failed: %s", e)
            result = CommandResult(success=False, output=str(e))
        if not result.success:
            self._report(
                "Reinstall after the trial failed; run `npm install` manually",
                OutputType.WARNING,
            )

    # 说明
    def explain(self, name: str) -> Optional[PackageExplanation]:
        """Registry information and declaration site of a package; None when unknown."""
        metadata = self.registry.package_metadata(name)
        if metadata is None:
            return None
        try:
            tree = self.npm.list_tree(name)
        except ProcessInvocationError as e:
            logger.debug("npm ls unavailable: %s", e)
            tree = ""
        return PackageExplanation(
            metadata=metadata,
            declared_section=self.mutator.declared_section(name),
            declared_range=self.mutator.current_declared_version(name),
            dependency_tree=tree,
        )
