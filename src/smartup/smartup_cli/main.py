# -*- coding: utf-8 -*-
"""
smartup 命令行接口

使用 typer 提供 analyze / update / test / rollback / snapshots / why 命令
"""
import functools
import logging
from typing import Any, Callable, List, Optional, Tuple

import typer
from rich.markup import escape
from yaspin import yaspin

from smartup import __version__
from smartup.smartup_analyzer.analyzer import UpdateCandidate
from smartup.smartup_analyzer.reporter import (
    RISK_HEADINGS,
    RISK_ICONS,
    ReportFormat,
    UpdateReporter,
    group_by_risk,
)
from smartup.smartup_manifest.mutator import clean_version
from smartup.smartup_orchestrator.orchestrator import UpdateOrchestrator
from smartup.smartup_snapshot.store import Snapshot
from smartup.smartup_utils.config import load_config
from smartup.smartup_utils.errors import (
    RecoveryFailure,
    SmartUpdaterError,
    SnapshotNotFound,
    SubprocessFailure,
)
from smartup.smartup_utils.globals import console
from smartup.smartup_utils.input import is_interactive, select_many, select_one, user_confirm
from smartup.smartup_utils.output import OutputType, PrettyOutput
from smartup.smartup_version.diff import UpdateType

app = typer.Typer(help="Intelligent npm package updater with safety checks and rollback")
snapshots_app = typer.Typer(help="List and prune update snapshots")
app.add_typer(snapshots_app, name="snapshots")

_state = {"project": "."}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if verbose:
        logging.getLogger("smartup").setLevel(logging.DEBUG)


def _handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """把SmartUpdaterError转换为错误输出和退出码1"""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except SmartUpdaterError as e:
            PrettyOutput.print(str(e), OutputType.ERROR)
            output = getattr(e, "output", "")
            if output:
                console.print(escape(output), style="ERROR")
            raise typer.Exit(code=1)

    return wrapper


def _orchestrator() -> UpdateOrchestrator:
    return UpdateOrchestrator(_state["project"])


def parse_package_spec(spec: str) -> Optional[Tuple[str, str]]:
    """Split ``name@version``; scoped names (``@scope/name@1.0.0``) keep their leading ``@``."""
    name, sep, version = spec.rpartition("@")
    if not sep or not name or name == "@" or not version:
        return None
    return name, version


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"smartup {__version__}")
        raise typer.Exit()


@app.callback()
def _root(
    project: str = typer.Option(".", "--project", "-C", help="Project directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    """Intelligent npm package updater with safety checks and rollback."""
    _configure_logging(verbose)
    _state["project"] = project
    try:
        load_config(project)
    except SmartUpdaterError as e:
        PrettyOutput.print(str(e), OutputType.ERROR)
        raise typer.Exit(code=1)


def _run_analysis(orchestrator: UpdateOrchestrator, security: bool) -> List[UpdateCandidate]:
    with yaspin(text="Analyzing packages...", color="cyan") as spinner:
        try:
            candidates = orchestrator.analyze(security_only=security)
        except Exception:
            spinner.text = "Analysis failed"
            spinner.fail("❌")
            raise
        spinner.text = "Analysis complete"
        spinner.ok("✅")
    return candidates


def _candidate_label(candidate: UpdateCandidate) -> str:
    return (
        f"{RISK_ICONS[candidate.risk_level]} {candidate.name}: "
        f"{candidate.current_version} → {candidate.latest_version} "
        f"[{candidate.update_type.value}]"
    )


def _print_candidates(candidates: List[UpdateCandidate]) -> None:
    PrettyOutput.section(f"Found {len(candidates)} update(s) available", OutputType.RESULT)
    for level, members in group_by_risk(candidates).items():
        style = level.value
        console.print(
            f"\n{RISK_ICONS[level]} {RISK_HEADINGS[level]} ({len(members)})", style=f"bold {style}"
        )
        for candidate in members:
            tag = "[SECURITY]" if candidate.has_security_issue else f"[{candidate.manifest_section.value}]"
            console.print(
                f"  [{style}]●[/{style}] [bold]{escape(candidate.name)}[/bold]: "
                f"[dim]{escape(candidate.current_version)}[/dim] → "
                f"[green]{escape(candidate.latest_version)}[/green] [dim]{escape(tag)}[/dim]"
            )
    console.print()


@app.command()
@_handle_errors
def analyze(
    security: bool = typer.Option(False, "--security", "-s", help="Show only security updates"),
    format: Optional[ReportFormat] = typer.Option(
        None, "--format", "-f", help="Print a report instead of the summary: markdown/json/plain"
    ),
) -> None:
    """Analyze outdated packages and check for updates."""
    orchestrator = _orchestrator()
    if format is not None:
        candidates = orchestrator.analyze(security_only=security)
        typer.echo(UpdateReporter(format).generate_report(candidates, _state["project"]))
        return

    candidates = _run_analysis(orchestrator, security)
    if not candidates:
        PrettyOutput.print("All packages are up to date! 🎉", OutputType.SUCCESS)
        return
    _print_candidates(candidates)
    PrettyOutput.print("Run `smartup update` to update packages interactively", OutputType.INFO)
    PrettyOutput.print("Run `smartup update --safe` to update only patch versions", OutputType.INFO)
    PrettyOutput.print("Run `smartup update --security` to update only security fixes", OutputType.INFO)


@app.command()
@_handle_errors
def update(
    packages: Optional[List[str]] = typer.Argument(None, help="Only update these packages"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Select packages interactively"),
    security: bool = typer.Option(False, "--security", "-s", help="Update only security fixes"),
    safe: bool = typer.Option(False, "--safe", help="Update only patch versions"),
    all_: bool = typer.Option(False, "--all", help="Update all packages (with confirmation)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Update packages with a snapshot and automatic rollback."""
    orchestrator = _orchestrator()
    candidates = _run_analysis(orchestrator, security)
    if not candidates:
        PrettyOutput.print("All packages are up to date! 🎉", OutputType.SUCCESS)
        return

    selected = orchestrator.select(
        candidates, security_only=security, patch_only=safe, names=packages or None
    )
    if not selected:
        PrettyOutput.print("No packages match the selected criteria.", OutputType.INFO)
        return

    if interactive or not (all_ or safe or security or packages):
        # 默认勾选安全修复和补丁更新
        preselected = [
            c for c in selected if c.has_security_issue or c.update_type is UpdateType.PATCH
        ]
        selected = select_many(
            title="smartup",
            text="Select packages to update:",
            values=[(c, _candidate_label(c)) for c in selected],
            default_values=preselected,
        )
    if not selected:
        PrettyOutput.print("No packages selected for update.", OutputType.INFO)
        return

    PrettyOutput.section(f"Updating {len(selected)} package(s)", OutputType.INFO)
    for candidate in selected:
        console.print(
            f"  • [bold]{escape(candidate.name)}[/bold]: {escape(candidate.current_version)} → "
            f"[green]{escape(candidate.latest_version)}[/green]"
        )
    if not yes and not user_confirm("Proceed with updates?", default=True):
        PrettyOutput.print("Update cancelled.", OutputType.INFO)
        return

    try:
        report = orchestrator.apply_updates(selected)
    except RecoveryFailure:
        PrettyOutput.print("Recovery install failed; the project may be inconsistent.", OutputType.ERROR)
        raise

    if report.rolled_back:
        if report.install_output:
            console.print(escape(report.install_output), style="ERROR")
        PrettyOutput.print("Update failed. Rolled back to previous state.", OutputType.ERROR)
        raise typer.Exit(code=1)

    PrettyOutput.print(f"Successfully updated {len(report.updated)} package(s)!", OutputType.SUCCESS)
    PrettyOutput.print(f"Snapshot saved: {report.snapshot_id}", OutputType.INFO)
    PrettyOutput.print("Run `smartup rollback` to restore if needed.", OutputType.INFO)


@app.command("test")
@_handle_errors
def test_update(
    package_spec: str = typer.Argument(..., help="Package and version to try, e.g. axios@1.6.0"),
) -> None:
    """Test the impact of updating one package on a disposable branch."""
    parsed = parse_package_spec(package_spec)
    if parsed is None:
        PrettyOutput.print("Invalid package specification. Use format: package@version", OutputType.ERROR)
        raise typer.Exit(code=1)
    name, version = parsed

    orchestrator = _orchestrator()
    declared = orchestrator.mutator.current_declared_version(name)
    if declared is None:
        PrettyOutput.print(f"Package {name} is not declared in package.json.", OutputType.ERROR)
        raise typer.Exit(code=1)

    PrettyOutput.print(f"Testing update: {name} → {version}", OutputType.INFO)
    PrettyOutput.print(f"Current version: {clean_version(declared)}", OutputType.INFO)
    PrettyOutput.print("Running impact test...", OutputType.PROGRESS)

    result = orchestrator.trial(name, version)
    if result is None:
        PrettyOutput.print(f"Package {name} is not declared in package.json.", OutputType.ERROR)
        raise typer.Exit(code=1)

    PrettyOutput.section("Test Results", OutputType.RESULT)
    if result.tests_passed:
        PrettyOutput.print("Tests: PASSED", OutputType.SUCCESS)
    else:
        PrettyOutput.print("Tests: FAILED", OutputType.ERROR)
    if result.type_check_passed:
        PrettyOutput.print("Type check: PASSED", OutputType.SUCCESS)
    else:
        PrettyOutput.print("Type check: FAILED", OutputType.ERROR)
    PrettyOutput.print(f"Duration: {result.duration_ms / 1000:.2f}s", OutputType.INFO)

    if result.errors:
        PrettyOutput.section("Errors", OutputType.ERROR)
        for error in result.errors:
            console.print(escape(error), style="ERROR")

    if result.success:
        PrettyOutput.print("Impact test passed! Update appears safe.", OutputType.SUCCESS)
        PrettyOutput.print("To apply this update, run: smartup update", OutputType.INFO)
        return
    PrettyOutput.print("Impact test failed! Update may cause issues.", OutputType.ERROR)
    PrettyOutput.print("Review the errors above before proceeding.", OutputType.WARNING)
    raise typer.Exit(code=1)


def _snapshot_label(snapshot: Snapshot) -> str:
    local = snapshot.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    return f"{snapshot.id} - {local} - {', '.join(snapshot.packages) or '-'}"


@app.command()
@_handle_errors
def rollback(
    snapshot_id: Optional[str] = typer.Argument(None, help="Snapshot to restore (prompted when omitted)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Roll back to a previous package state."""
    orchestrator = _orchestrator()
    if snapshot_id is None:
        snapshots = orchestrator.list_snapshots()
        if not snapshots:
            PrettyOutput.print("No snapshots available for rollback.", OutputType.INFO)
            PrettyOutput.print("Snapshots are created automatically when you update packages.", OutputType.INFO)
            return
        if not is_interactive():
            PrettyOutput.print(
                "No snapshot id given. Run `smartup snapshots list` and pass one explicitly.",
                OutputType.ERROR,
            )
            raise typer.Exit(code=1)
        snapshot_id = select_one(
            title="smartup",
            text="Select a snapshot to rollback to:",
            values=[(s.id, _snapshot_label(s)) for s in snapshots],
        )
        if snapshot_id is None:
            PrettyOutput.print("Rollback cancelled.", OutputType.INFO)
            return

    snapshot = orchestrator.get_snapshot(snapshot_id)
    if snapshot is None:
        raise SnapshotNotFound(snapshot_id)

    PrettyOutput.section("Snapshot details", OutputType.INFO)
    console.print(f"  ID: [bold]{escape(snapshot.id)}[/bold]")
    console.print(f"  Date: {snapshot.timestamp.astimezone().strftime('%Y-%m-%d %H:%M:%S')}")
    console.print(f"  Packages: {escape(', '.join(snapshot.packages) or '-')}")

    if not yes and not user_confirm("This will replace your current package.json. Continue?", default=False):
        PrettyOutput.print("Rollback cancelled.", OutputType.INFO)
        return

    try:
        orchestrator.rollback(snapshot_id)
    except SubprocessFailure:
        PrettyOutput.print("Snapshot restored, but installing dependencies failed.", OutputType.ERROR)
        raise
    PrettyOutput.print("Rollback completed successfully!", OutputType.SUCCESS)
    PrettyOutput.print("Your packages have been restored to the snapshot state.", OutputType.INFO)


@snapshots_app.command("list")
@_handle_errors
def list_snapshots() -> None:
    """List snapshots, newest first."""
    snapshots = _orchestrator().list_snapshots()
    if not snapshots:
        PrettyOutput.print("No snapshots found.", OutputType.INFO)
        return
    PrettyOutput.section(f"Found {len(snapshots)} snapshot(s)", OutputType.RESULT)
    for snapshot in snapshots:
        console.print(f"  {escape(_snapshot_label(snapshot))}")


@snapshots_app.command("prune")
@_handle_errors
def prune_snapshots(
    keep: int = typer.Option(..., "--keep", "-k", min=0, help="Number of newest snapshots to keep"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete all but the newest snapshots."""
    orchestrator = _orchestrator()
    doomed = orchestrator.list_snapshots()[keep:]
    if not doomed:
        PrettyOutput.print("Nothing to prune.", OutputType.INFO)
        return
    if not yes and not user_confirm(f"Delete {len(doomed)} snapshot(s)?", default=False):
        PrettyOutput.print("Prune cancelled.", OutputType.INFO)
        return
    removed = orchestrator.prune_snapshots(keep)
    PrettyOutput.print(f"Deleted {len(removed)} snapshot(s).", OutputType.SUCCESS)


@app.command()
@_handle_errors
def why(package: str = typer.Argument(..., help="Package name")) -> None:
    """Show information about a package and why it is installed."""
    orchestrator = _orchestrator()
    with yaspin(text="Fetching package information...", color="cyan") as spinner:
        explanation = orchestrator.explain(package)
        if explanation is None:
            spinner.text = "Package not found"
            spinner.fail("❌")
        else:
            spinner.text = "Information retrieved"
            spinner.ok("✅")
    if explanation is None:
        PrettyOutput.print(f'Package "{package}" not found in npm registry.', OutputType.ERROR)
        raise typer.Exit(code=1)

    metadata = explanation.metadata
    PrettyOutput.section("Basic Information", OutputType.INFO)
    console.print(f"  Name: [bold]{escape(metadata.name)}[/bold]")
    console.print(f"  Version: [cyan]{escape(metadata.version)}[/cyan]")
    if metadata.description:
        console.print(f"  Description: {escape(metadata.description)}")
    if metadata.homepage:
        console.print(f"  Homepage: [blue]{escape(metadata.homepage)}[/blue]")
    if metadata.repository:
        console.print(f"  Repository: [blue]{escape(metadata.repository)}[/blue]")

    PrettyOutput.section("Dependency Information", OutputType.INFO)
    if explanation.is_direct:
        console.print(
            f"  [green]✓[/green] Directly installed in [bold]{explanation.declared_section.value}[/bold]"
            f" ({escape(explanation.declared_range or '')})"
        )
    else:
        console.print("  [yellow]○[/yellow] Not directly installed (may be a transitive dependency)")

    if explanation.dependency_tree:
        PrettyOutput.section("Dependency Tree", OutputType.INFO)
        console.print(escape(explanation.dependency_tree), style="dim")

    if metadata.deprecated:
        PrettyOutput.print("This package is deprecated!", OutputType.WARNING)
        console.print(f"  Reason: {escape(metadata.deprecated)}")


# 命令别名
app.command("a", hidden=True)(analyze)
app.command("u", hidden=True)(update)
app.command("t", hidden=True)(test_update)
app.command("r", hidden=True)(rollback)
app.command("w", hidden=True)(why)


def main() -> None:
    """Application entry point"""
    app()


if __name__ == "__main__":
    main()
