"""
Tests for smartup_analyzer.

This test suite covers:
- Candidate discovery against a registry
- Security flagging from the audit
- Sorting and filtering
- Report generation
"""

import json

import pytest

from smartup.smartup_analyzer import (
    PackageAnalyzer,
    ReportFormat,
    UpdateCandidate,
    UpdateReporter,
    filter_candidates,
    sort_by_risk,
)
from smartup.smartup_manifest import DependencySection, ManifestMutator
from smartup.smartup_utils.errors import ManifestUnreadable
from smartup.smartup_utils.file_store import LocalFileStore
from smartup.smartup_version import RiskLevel, UpdateType


def candidate(name, update_type=UpdateType.PATCH, risk=RiskLevel.SAFE, security=False):
    return UpdateCandidate(
        name=name,
        current_version="1.0.0",
        latest_version="1.0.1",
        update_type=update_type,
        risk_level=risk,
        has_security_issue=security,
        manifest_section=DependencySection.DEPENDENCIES,
    )


@pytest.fixture
def analyzer(tmp_path, fake_registry, fake_npm):
    mutator = ManifestMutator(LocalFileStore(tmp_path))
    return PackageAnalyzer(mutator, fake_registry, fake_npm, max_workers=4)


class TestPackageAnalyzer:
    """Test cases for PackageAnalyzer.analyze."""

    def test_minor_update_is_moderate(self, analyzer, fake_registry, write_manifest) -> None:
        write_manifest({"dependencies": {"axios": "^1.0.0"}})
        fake_registry.versions["axios"] = "1.6.0"

        candidates = analyzer.analyze()

        assert candidates == [
            UpdateCandidate(
                name="axios",
                current_version="1.0.0",
                latest_version="1.6.0",
                update_type=UpdateType.MINOR,
                risk_level=RiskLevel.MODERATE,
                has_security_issue=False,
                manifest_section=DependencySection.DEPENDENCIES,
            )
        ]

    def test_analyze_then_apply(self, tmp_path, analyzer, fake_registry, write_manifest) -> None:
        write_manifest({"dependencies": {"axios": "^1.0.0"}})
        fake_registry.versions["axios"] = "1.6.0"

        candidates = analyzer.analyze()
        analyzer.mutator.apply({c.name: c.latest_version for c in candidates})

        manifest = json.loads((tmp_path / "package.json").read_text(encoding="utf-8"))
        assert manifest["dependencies"]["axios"] == "^1.6.0"

    def test_vulnerable_package_is_critical(self, analyzer, fake_registry, fake_npm, write_manifest) -> None:
        write_manifest({"dependencies": {"lodash": "4.17.20"}})
        fake_registry.versions["lodash"] = "4.17.21"
        fake_npm.vulnerable = frozenset({"lodash"})

        [result] = analyzer.analyze()
        assert result.update_type is UpdateType.PATCH
        assert result.risk_level is RiskLevel.CRITICAL
        assert result.has_security_issue is True

    def test_security_only(self, analyzer, fake_registry, fake_npm, write_manifest) -> None:
        write_manifest({"dependencies": {"lodash": "4.17.20", "axios": "^1.0.0"}})
        fake_registry.versions.update({"lodash": "4.17.21", "axios": "2.0.0"})
        fake_npm.vulnerable = frozenset({"lodash"})

        assert [c.name for c in analyzer.analyze(security_only=True)] == ["lodash"]

    def test_skips_up_to_date_unknown_and_unparsable(self, analyzer, fake_registry, write_manifest) -> None:
        write_manifest(
            {
                "dependencies": {
                    "current": "^2.0.0",
                    "unknown": "^1.0.0",
                    "git-dep": "github:user/repo",
                    "tagged": "latest",
                }
            }
        )
        fake_registry.versions.update({"current": "2.0.0", "git-dep": "3.0.0", "tagged": "1.0.0"})
        assert analyzer.analyze() == []

    def test_sorted_by_risk_then_name(self, analyzer, fake_registry, fake_npm, write_manifest) -> None:
        write_manifest(
            {
                "dependencies": {"zeta": "1.0.0", "alpha": "1.0.0", "beta": "1.0.0"},
                "devDependencies": {"gamma": "1.0.0", "delta": "1.0.0"},
            }
        )
        fake_registry.versions.update(
            {"zeta": "1.0.1", "alpha": "1.1.0", "beta": "2.0.0", "gamma": "1.0.1", "delta": "1.0.1"}
        )
        fake_npm.vulnerable = frozenset({"zeta"})

        names = [(c.name, c.risk_level) for c in analyzer.analyze()]
        assert names == [
            ("zeta", RiskLevel.CRITICAL),
            ("beta", RiskLevel.BREAKING),
            ("alpha", RiskLevel.MODERATE),
            ("delta", RiskLevel.SAFE),
            ("gamma", RiskLevel.SAFE),
        ]

    def test_package_in_two_sections_yields_one_candidate(self, analyzer, fake_registry, write_manifest) -> None:
        write_manifest(
            {
                "dependencies": {"react": "^17.0.0"},
                "peerDependencies": {"react": "^17.0.0"},
            }
        )
        fake_registry.versions["react"] = "18.2.0"
        [result] = analyzer.analyze()
        assert result.manifest_section is DependencySection.DEPENDENCIES

    def test_missing_manifest(self, analyzer) -> None:
        with pytest.raises(ManifestUnreadable):
            analyzer.analyze()


class TestSelection:
    """Test cases for sort_by_risk and filter_candidates."""

    def test_sort_by_risk(self) -> None:
        items = [
            candidate("b", risk=RiskLevel.SAFE),
            candidate("a", risk=RiskLevel.SAFE),
            candidate("c", risk=RiskLevel.CRITICAL, security=True),
        ]
        assert [c.name for c in sort_by_risk(items)] == ["c", "a", "b"]

    def test_filters(self) -> None:
        items = [
            candidate("patch"),
            candidate("minor", update_type=UpdateType.MINOR, risk=RiskLevel.MODERATE),
            candidate("sec", update_type=UpdateType.MAJOR, risk=RiskLevel.CRITICAL, security=True),
        ]
        assert [c.name for c in filter_candidates(items, patch_only=True)] == ["patch"]
        assert [c.name for c in filter_candidates(items, security_only=True)] == ["sec"]
        assert [c.name for c in filter_candidates(items, names=["minor", "nope"])] == ["minor"]
        assert filter_candidates(items, security_only=True, patch_only=True) == []
        assert filter_candidates(items) == items


class TestUpdateReporter:
    """Test cases for UpdateReporter."""

    def setup_method(self) -> None:
        self.candidates = [
            candidate("lodash", risk=RiskLevel.CRITICAL, security=True),
            candidate("axios", update_type=UpdateType.MINOR, risk=RiskLevel.MODERATE),
        ]

    def test_json_report(self) -> None:
        report = json.loads(UpdateReporter(ReportFormat.JSON).generate_report(self.candidates, "/proj"))
        assert report["project_path"] == "/proj"
        assert report["summary"]["updates_available"] == 2
        assert report["summary"]["security_updates"] == 1
        assert report["summary"]["by_risk"]["critical"] == 1
        assert report["updates"][0]["name"] == "lodash"
        assert report["updates"][1]["manifest_section"] == "dependencies"

    def test_markdown_report(self) -> None:
        report = UpdateReporter().generate_report(self.candidates)
        assert "# Package Update Report" in report
        assert "CRITICAL - Security Issues (1)" in report
        assert "MODERATE - Minor Updates (1)" in report
        assert "**lodash**" in report
        assert "BREAKING" not in report

    def test_plain_report_without_updates(self) -> None:
        report = UpdateReporter(ReportFormat.PLAIN).generate_report([])
        assert "All packages are up to date!" in report
