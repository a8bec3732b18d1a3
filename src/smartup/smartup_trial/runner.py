# -*- coding: utf-8 -*-
"""
Sandboxed Trial Runner - Try an Update on a Disposable Branch

A trial creates a throwaway git branch, applies a mutation (typically
"rewrite package.json and install"), runs the project's tests and type check,
and then returns the working tree to the original branch no matter how the
trial ended. Outside a git repository the mutation is applied directly.

State machine::

    IDLE -> BRANCH_CREATED -> MUTATED -> TESTED -> CLEANED
    IDLE / BRANCH_CREATED / MUTATED -> ABORTING -> CLEANED
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from smartup.smartup_utils.config import (
    get_branch_prefix,
    get_type_check_config,
    is_output_markers_enabled,
)
from smartup.smartup_utils.errors import (
    DetachedHead,
    DirtyWorkingTree,
    ProcessInvocationError,
    SubprocessFailure,
)
from smartup.smartup_utils.file_store import FileStore
from smartup.smartup_utils.git_utils import GitClient
from smartup.smartup_utils.npm_utils import CommandResult, NpmClient

logger = logging.getLogger(__name__)

TEST_FAILURE_MARKER = "failed"
TYPE_ERROR_MARKER = "error"


class TrialState(Enum):
    IDLE = "idle"
    BRANCH_CREATED = "branch_created"
    MUTATED = "mutated"
    TESTED = "tested"
    ABORTING = "aborting"
    CLEANED = "cleaned"


@dataclass(frozen=True)
class TrialResult:
    """Outcome of one trial run.

    Attributes:
        tests_passed: Test command succeeded.
        type_check_passed: Type check succeeded, or was not applicable.
        duration_ms: Wall time of the checks in milliseconds.
        errors: Captured output of the failing checks.
    """

    tests_passed: bool
    type_check_passed: bool
    duration_ms: int
    errors: Tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.tests_passed and self.type_check_passed


class ImpactTester:
    """Runs the project's test and type-check commands."""

    def __init__(
        self,
        npm: NpmClient,
        file_store: FileStore,
        type_check_config: Optional[str] = None,
        output_markers: Optional[bool] = None,
    ) -> None:
        self.npm = npm
        self.file_store = file_store
        self.type_check_config = type_check_config or get_type_check_config()
        self.output_markers = (
            is_output_markers_enabled() if output_markers is None else output_markers
        )

    def _passed(self, result: CommandResult, marker: str) -> bool:
        if not result.success:
            return False
        # Some runners exit 0 on failure; fall back to scanning their output.
        if self.output_markers and marker in result.output.lower():
            return False
        return True

    def run_checks(self) -> TrialResult:
        start = time.monotonic()
        errors: List[str] = []

        test_result = self.npm.run_tests()
        tests_passed = self._passed(test_result, TEST_FAILURE_MARKER)
        if not tests_passed and test_result.output:
            errors.append(test_result.output)

        type_check_passed = True
        if self.file_store.exists(self.type_check_config):
            type_result = self.npm.type_check()
            type_check_passed = self._passed(type_result, TYPE_ERROR_MARKER)
            if not type_check_passed and type_result.output:
                errors.append(type_result.output)
        else:
            logger.debug("%s not found, skipping type check", self.type_check_config)

        return TrialResult(
            tests_passed=tests_passed,
            type_check_passed=type_check_passed,
            duration_ms=int((time.monotonic() - start) * 1000),
            errors=tuple(errors),
        )


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class SandboxedTrialRunner:
    """Runs a mutation plus checks on a disposable branch.

    After ``run_isolated`` returns or raises in git mode, the working tree is
    back on the original branch and the disposable branch is gone.

    Example:
        >>> runner = SandboxedTrialRunner(GitClient("."), tester)
        >>> result = runner.run_isolated(lambda: mutator.apply({"axios": "1.6.0"}))
        >>> result.success
        True
    """

    def __init__(
        self,
        git: GitClient,
        tester: ImpactTester,
        branch_prefix: Optional[str] = None,
        clock_ms: Optional[Callable[[], int]] = None,
    ) -> None:
        self.git = git
        self.tester = tester
        self.branch_prefix = branch_prefix or get_branch_prefix()
        self._clock_ms = clock_ms or _epoch_ms
        self._state = TrialState.IDLE
        self._history: List[TrialState] = [TrialState.IDLE]
        self.last_trial_branch: Optional[str] = None
        self.sandboxed = False

    @property
    def state(self) -> TrialState:
        return self._state

    @property
    def history(self) -> List[TrialState]:
        return list(self._history)

    def _transition(self, state: TrialState) -> None:
        logger.debug("Trial state %s -> %s", self._state.value, state.value)
        self._state = state
        self._history.append(state)

    def _reset(self) -> None:
        self._state = TrialState.IDLE
        self._history = [TrialState.IDLE]
        self.last_trial_branch = None
        self.sandboxed = False

    def run_isolated(self, mutation: Callable[[], object]) -> TrialResult:
        """Apply ``mutation`` and run the checks without keeping the result.

        Args:
            mutation: Callable that changes the project (e.g. rewrite the
                manifest and install).

        Returns:
            TrialResult of the checks.

        Raises:
            DirtyWorkingTree: Uncommitted changes exist; nothing was mutated.
            DetachedHead: HEAD is not on a branch; nothing was mutated.
            SubprocessFailure: The disposable branch could not be created, or
                switching back failed after a completed trial.
        """
        self._reset()
        if not self.git.is_repo():
            logger.warning("Not a git repository; the trial is applied directly")
            mutation()
            self._transition(TrialState.MUTATED)
            result = self.tester.run_checks()
            self._transition(TrialState.TESTED)
            return result

        if self.git.has_uncommitted_changes():
            raise DirtyWorkingTree()
        original_branch = self.git.current_branch()
        if original_branch is None:
            raise DetachedHead()

        trial_branch = f"{self.branch_prefix}-{self._clock_ms()}"
        if not self.git.create_branch(trial_branch):
            raise SubprocessFailure(f"Failed to create trial branch {trial_branch}")
        self.last_trial_branch = trial_branch
        self.sandboxed = True
        self._transition(TrialState.BRANCH_CREATED)
        logger.info("Running trial on %s (from %s)", trial_branch, original_branch)

        try:
            mutation()
            self._transition(TrialState.MUTATED)
            result = self.tester.run_checks()
            self._transition(TrialState.TESTED)
        except BaseException:
            self._transition(TrialState.ABORTING)
            self._cleanup(original_branch, trial_branch, strict=False)
            raise

        self._cleanup(original_branch, trial_branch, strict=True)
        return result

    def _attempt(self, strict: bool, action: Callable[..., bool], *args: object) -> bool:
        try:
            return action(*args)
        except ProcessInvocationError as e:
            if strict:
                raise
            logger.error("Cleanup step failed: %s", e)
            return False

    def _cleanup(self, original_branch: str, trial_branch: str, strict: bool) -> None:
        if not self._attempt(strict, self.git.discard_changes):
            logger.warning("Could not discard changes made on %s", trial_branch)
        switched = self._attempt(strict, self.git.switch_branch, original_branch)
        if not switched:
            if strict:
                raise SubprocessFailure(
                    f"Failed to switch back to {original_branch}; "
                    f"trial branch {trial_branch} was left in place"
                )
            logger.error("Failed to switch back to %s", original_branch)
        if not self._attempt(strict, self.git.delete_branch, trial_branch, True):
            logger.warning("Failed to delete trial branch %s", trial_branch)
        self._transition(TrialState.CLEANED)
