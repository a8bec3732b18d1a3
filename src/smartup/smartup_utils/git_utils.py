# -*- coding: utf-8 -*-
"""
Git工具模块
该模块提供了沙箱试验所需的Git操作。
包含以下功能：
- 检查是否为Git仓库
- 获取当前分支
- 创建、切换、删除分支
- 检查是否有未提交的更改
- 丢弃工作区更改
"""
import logging
import subprocess
from typing import List, Optional, Sequence

from smartup.smartup_utils.errors import ProcessInvocationError

logger = logging.getLogger(__name__)


class GitClient:
    """Git命令封装

    每个操作都以布尔值或None报告失败，只有无法启动git时才抛出异常。
    """

    def __init__(self, repo_root: str = ".", exclude: Sequence[str] = ()) -> None:
        self.repo_root = repo_root
        # smartup自身的数据目录（快照、锁文件）不计入工作区状态
        self.exclude = [path.strip("/") for path in exclude if path.strip("/")]

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                ["git", *args],
                cwd=self.repo_root,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise ProcessInvocationError(f"Unable to run git {' '.join(args)}: {e}") from e

    def _ok(self, args: List[str]) -> bool:
        result = self._run(args)
        if result.returncode != 0:
            logger.debug("git %s failed: %s", " ".join(args), (result.stderr or "").strip())
            return False
        return True

    def is_repo(self) -> bool:
        """检查当前目录是否在Git仓库中"""
        try:
            return self._ok(["rev-parse", "--git-dir"])
        except ProcessInvocationError:
            # 没有安装git时视为非仓库
            return False

    def current_branch(self) -> Optional[str]:
        """获取当前分支名

        返回:
            Optional[str]: 当前分支名；处于detached HEAD或命令失败时返回None
        """
        result = self._run(["branch", "--show-current"])
        if result.returncode != 0:
            return None
        branch = (result.stdout or "").strip()
        return branch or None

    def create_branch(self, name: str) -> bool:
        return self._ok(["checkout", "-b", name])

    def switch_branch(self, name: str) -> bool:
        return self._ok(["checkout", name])

    def delete_branch(self, name: str, force: bool = False) -> bool:
        flag = "-D" if force else "-d"
        return self._ok(["branch", flag, name])

    def has_uncommitted_changes(self) -> bool:
        """检查Git仓库中是否有未提交的更改

        检查范围是整个仓库（":/"），项目位于仓库子目录时也不会漏掉其他目录的修改；
        排除路径相对于项目目录。

        返回:
            bool: 有未提交的更改返回True；git status失败时同样返回True，无法确认工作区干净
        """
        pathspec = [f":(exclude){path}" for path in self.exclude]
        args = ["status", "--porcelain"]
        if pathspec:
            args += ["--", ":/", *pathspec]
        result = self._run(args)
        if result.returncode != 0:
            logger.warning("git status failed; treating working tree as dirty")
            return True
        return bool((result.stdout or "").strip())

    def discard_changes(self) -> bool:
        """丢弃工作区中已跟踪文件的修改和未跟踪文件（忽略的文件保留）"""
        reset_ok = self._ok(["reset", "--hard", "HEAD"])
        clean_args = ["clean", "-fd"]
        for path in self.exclude:
            clean_args += ["-e", path]
        clean_ok = self._ok(clean_args)
        return reset_ok and clean_ok
