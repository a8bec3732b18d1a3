# -*- coding: utf-8 -*-
"""
File store used by the snapshot store and the manifest mutator.

Paths are relative to the store root (the project directory). Reads return
None instead of raising, and single-file writes are all-or-nothing: content is
written to a temporary sibling and moved into place with ``os.replace``.
"""
import logging
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FileStore(ABC):
    """Blocking byte store keyed by path."""

    @abstractmethod
    def read_bytes(self, path: PathLike) -> Optional[bytes]:
        """Return the file content, or None when it cannot be read."""

    @abstractmethod
    def write_bytes(self, path: PathLike, data: bytes) -> None:
        """Atomically replace ``path`` with ``data``, creating parent directories."""

    @abstractmethod
    def exists(self, path: PathLike) -> bool:
        ...

    @abstractmethod
    def list_entries(self, directory: PathLike) -> List[str]:
        """Names of the entries directly under ``directory`` (empty when missing)."""

    @abstractmethod
    def remove_tree(self, path: PathLike) -> None:
        """Delete a file or a directory with its content; missing paths are ignored."""


class LocalFileStore(FileStore):
    """FileStore backed by the local filesystem under ``root``."""

    def __init__(self, root: PathLike = ".") -> None:
        self.root = Path(root)

    def _resolve(self, path: PathLike) -> Path:
        return self.root / Path(path)

    def read_bytes(self, path: PathLike) -> Optional[bytes]:
        try:
            return self._resolve(path).read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None
        except OSError as e:
            logger.warning("Failed to read %s: %s", path, e)
            return None

    def write_bytes(self, path: PathLike, data: bytes) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        # 使用原子写入（先写临时文件再重命名）
        fd, temp_path = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, target)
        except BaseException:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def exists(self, path: PathLike) -> bool:
        return self._resolve(path).exists()

    def list_entries(self, directory: PathLike) -> List[str]:
        try:
            return sorted(os.listdir(self._resolve(directory)))
        except (FileNotFoundError, NotADirectoryError):
            return []

    def remove_tree(self, path: PathLike) -> None:
        target = self._resolve(path)
        if target.is_dir():
            shutil.rmtree(target)
        elif target.exists():
            target.unlink()
