# -*- coding: utf-8 -*-
"""
项目级文件锁

Mutation-bearing workflows (update, rollback, trial) hold an advisory lock
file inside the project so that two smartup invocations never interleave on the
same manifest. The lock records the owner PID; a lock whose owner is no longer
alive is treated as stale and replaced.
"""
import errno
import json
import logging
import os
import sys
import time
from pathlib import Path
from types import TracebackType
from typing import Optional, Type, Union

from smartup.smartup_utils.errors import WorkflowBusy

logger = logging.getLogger(__name__)


def _read_lock_owner_pid(lock_path: Path) -> Optional[int]:
    try:
        txt = lock_path.read_text(encoding="utf-8", errors="ignore").strip()
    except OSError:
        return None
    if not txt:
        return None
    try:
        info = json.loads(txt)
    except json.JSONDecodeError:
        # 兼容纯数字PID
        try:
            return int(txt)
        except ValueError:
            return None
    if isinstance(info, dict):
        try:
            return int(info.get("pid"))
        except (TypeError, ValueError):
            return None
    if isinstance(info, int):
        return info
    return None


def _is_process_alive(pid: Optional[int]) -> bool:
    if pid is None or pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # 无权限但进程存在
        return True
    except OSError as e:
        return getattr(e, "errno", None) == errno.EPERM
    return True


class ProjectLock:
    """Single-flight guard for one project directory.

    Example:
        >>> with ProjectLock(".smart-updater/update.lock"):
        ...     run_update()
    """

    def __init__(self, lock_path: Union[str, Path]) -> None:
        self.lock_path = Path(lock_path)
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """创建锁文件；已有存活的持有者时抛出WorkflowBusy"""
        if self._held:
            raise WorkflowBusy(str(self.lock_path), os.getpid())
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)

        if self.lock_path.exists():
            pid = _read_lock_owner_pid(self.lock_path)
            if _is_process_alive(pid):
                raise WorkflowBusy(str(self.lock_path), pid)
            logger.info("Removing stale lock %s (owner %s is gone)", self.lock_path, pid)
            try:
                self.lock_path.unlink()
            except FileNotFoundError:
                pass

        # 原子创建锁文件，避免并发竞争
        flags = os.O_CREAT | os.O_EXCL | os.O_WRONLY
        try:
            fd = os.open(str(self.lock_path), flags)
        except FileExistsError:
            raise WorkflowBusy(str(self.lock_path), _read_lock_owner_pid(self.lock_path))
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            payload = {
                "pid": os.getpid(),
                "time": int(time.time()),
                "argv": sys.argv[:10],
            }
            fp.write(json.dumps(payload, ensure_ascii=False))
        self._held = True

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to remove lock %s: %s", self.lock_path, e)

    def __enter__(self) -> "ProjectLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()
