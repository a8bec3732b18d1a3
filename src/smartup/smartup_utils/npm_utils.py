# -*- coding: utf-8 -*-
"""
npm工具模块

Thin wrappers around the package manager commands the update pipeline needs:
install, test, type check, audit and ``npm ls``. A command that runs and fails
is reported through the result object; only a command that cannot be started
at all raises ProcessInvocationError.
"""
import json
import logging
import subprocess
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

from smartup.smartup_utils.config import (
    get_audit_command,
    get_command_timeout,
    get_install_command,
    get_test_command,
    get_type_check_command,
)
from smartup.smartup_utils.errors import ProcessInvocationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one package-manager command."""

    success: bool
    output: str
    returncode: Optional[int] = None
    stdout: str = ""


@dataclass(frozen=True)
class AuditResult:
    """Outcome of ``npm audit``: whether it produced a report, and who is vulnerable."""

    success: bool
    vulnerable_package_names: FrozenSet[str] = field(default_factory=frozenset)


def parse_audit_report(stdout: str) -> AuditResult:
    """Extract vulnerable package names from ``npm audit --json`` output.

    Handles both the npm 7+ layout (``vulnerabilities`` keyed by package name)
    and the npm 6 layout (``advisories`` carrying ``module_name``).
    """
    try:
        report = json.loads(stdout)
    except (json.JSONDecodeError, TypeError):
        return AuditResult(success=False)
    if not isinstance(report, dict):
        return AuditResult(success=False)

    names = set()
    vulnerabilities = report.get("vulnerabilities")
    if isinstance(vulnerabilities, dict):
        names.update(str(name) for name in vulnerabilities)
    advisories = report.get("advisories")
    if isinstance(advisories, dict):
        for advisory in advisories.values():
            if isinstance(advisory, dict) and isinstance(advisory.get("module_name"), str):
                names.add(advisory["module_name"])
    return AuditResult(success=True, vulnerable_package_names=frozenset(names))


class NpmClient:
    """Runs package-manager commands inside a project directory."""

    def __init__(self, project_root: str = ".", timeout: Optional[float] = None) -> None:
        self.project_root = project_root
        self.timeout = timeout if timeout is not None else get_command_timeout()

    def _run_command(self, cmd: List[str]) -> CommandResult:
        """运行命令

        Args:
            cmd: 命令列表

        Returns:
            CommandResult: 退出码为0时success为True，output为stdout与stderr的合并内容
        """
        logger.debug("Running %s in %s", " ".join(cmd), self.project_root)
        try:
            result = subprocess.run(
                cmd,
                cwd=self.project_root,
                timeout=self.timeout,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except subprocess.TimeoutExpired as e:
            logger.warning("%s timed out after %ss", cmd[0], self.timeout)
            return CommandResult(success=False, output=f"Command timed out: {e}")
        except OSError as e:
            raise ProcessInvocationError(f"Unable to run {' '.join(cmd)}: {e}") from e

        output = "\n".join(part for part in (result.stdout, result.stderr) if part)
        return CommandResult(
            success=result.returncode == 0,
            output=output.strip(),
            returncode=result.returncode,
            stdout=result.stdout or "",
        )

    def install(self) -> CommandResult:
        return self._run_command(get_install_command())

    def run_tests(self) -> CommandResult:
        return self._run_command(get_test_command())

    def type_check(self) -> CommandResult:
        return self._run_command(get_type_check_command())

    def audit(self) -> AuditResult:
        """Run the audit command; npm exits non-zero when it finds issues, so only the JSON matters."""
        result = self._run_command(get_audit_command())
        audit = parse_audit_report(result.stdout)
        if not audit.success:
            logger.debug("Audit output could not be parsed; assuming no known vulnerabilities")
        return audit

    def list_tree(self, package_name: str) -> str:
        """Return the ``npm ls`` tree for a package, or an empty string."""
        result = self._run_command(["npm", "ls", package_name, "--depth=999"])
        if package_name in result.stdout:
            return result.stdout.strip()
        return ""
