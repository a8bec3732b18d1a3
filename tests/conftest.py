# -*- coding: utf-8 -*-
"""pytest 配置文件"""
import json
import os
import sys
from typing import Dict, List, Optional

import pytest

# 将 src 目录添加到 Python 路径
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from smartup.smartup_registry.registry import PackageMetadata  # noqa: E402
from smartup.smartup_utils.config import reset_config  # noqa: E402
from smartup.smartup_utils.npm_utils import AuditResult, CommandResult  # noqa: E402
from smartup.smartup_utils.output import OutputEvent, OutputSink  # noqa: E402


class FakeGit:
    """内存中的Git仓库，记录分支操作"""

    def __init__(self) -> None:
        self.repo = True
        self.dirty = False
        self.branch: Optional[str] = "main"
        self.branches = {"main"}
        self.create_ok = True
        self.switch_ok = True
        self.calls: List[tuple] = []

    def is_repo(self) -> bool:
        return self.repo

    def current_branch(self) -> Optional[str]:
        return self.branch

    def create_branch(self, name: str) -> bool:
        self.calls.append(("create_branch", name))
        if not self.create_ok:
            return False
        self.branches.add(name)
        self.branch = name
        return True

    def switch_branch(self, name: str) -> bool:
        self.calls.append(("switch_branch", name))
        if not self.switch_ok or name not in self.branches:
            return False
        self.branch = name
        return True

    def delete_branch(self, name: str, force: bool = False) -> bool:
        self.calls.append(("delete_branch", name, force))
        if name == self.branch or name not in self.branches:
            return False
        self.branches.discard(name)
        return True

    def has_uncommitted_changes(self) -> bool:
        return self.dirty

    def discard_changes(self) -> bool:
        self.calls.append(("discard_changes",))
        return True


class FakeNpm:
    """可编排结果的npm客户端"""

    def __init__(self) -> None:
        self.install_results: List[CommandResult] = []
        self.test_result = CommandResult(success=True, output="all tests passed", returncode=0)
        self.type_check_result = CommandResult(success=True, output="", returncode=0)
        self.vulnerable: frozenset = frozenset()
        self.tree = ""
        self.install_calls = 0
        self.test_calls = 0
        self.type_check_calls = 0

    def install(self) -> CommandResult:
        self.install_calls += 1
        if self.install_results:
            return self.install_results.pop(0)
        return CommandResult(success=True, output="added 1 package", returncode=0)

    def run_tests(self) -> CommandResult:
        self.test_calls += 1
        return self.test_result

    def type_check(self) -> CommandResult:
        self.type_check_calls += 1
        return self.type_check_result

    def audit(self) -> AuditResult:
        return AuditResult(success=True, vulnerable_package_names=self.vulnerable)

    def list_tree(self, package_name: str) -> str:
        return self.tree


class FakeRegistry:
    """固定版本表的注册表"""

    def __init__(self, versions: Optional[Dict[str, str]] = None) -> None:
        self.versions: Dict[str, str] = dict(versions or {})
        self.extra: Dict[str, dict] = {}

    def package_metadata(self, package_name: str) -> Optional[PackageMetadata]:
        version = self.versions.get(package_name)
        if version is None:
            return None
        payload = {"name": package_name, "version": version}
        payload.update(self.extra.get(package_name, {}))
        return PackageMetadata.from_payload(payload)

    def latest_version(self, package_name: str) -> Optional[str]:
        return self.versions.get(package_name)


class RecordingSink(OutputSink):
    def __init__(self) -> None:
        self.events: List[OutputEvent] = []

    def emit(self, event: OutputEvent) -> None:
        self.events.append(event)

    @property
    def texts(self) -> List[str]:
        return [event.text for event in self.events]


@pytest.fixture(scope="function")
def temp_dir(tmp_path):
    """临时目录 fixture，每个测试函数都会获得一个新的临时目录"""
    return tmp_path


@pytest.fixture
def write_manifest(tmp_path):
    """在临时项目中写入 package.json"""

    def _write(content, name: str = "package.json"):
        path = tmp_path / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        elif isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_text(json.dumps(content, indent=2) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def fake_git():
    return FakeGit()


@pytest.fixture
def fake_npm():
    return FakeNpm()


@pytest.fixture
def fake_registry():
    return FakeRegistry()


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture(autouse=True)
def reset_globals(monkeypatch):
    """自动重置全局配置，防止测试之间的干扰"""
    for name in list(os.environ):
        if name.startswith("SMARTUP_"):
            monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()
