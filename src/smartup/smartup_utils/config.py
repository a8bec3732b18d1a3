# -*- coding: utf-8 -*-
"""配置管理模块。

All settings live in one global mapping that is filled from
``.smart-updater.yaml`` in the project root and from ``SMARTUP_*``
environment variables. Each setting has a ``get_*`` accessor with a fallback
default, so components never read the mapping directly.
"""
import os
import shlex
from pathlib import Path
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import cast

import yaml

from smartup.smartup_utils.errors import ConfigError

CONFIG_FILE_NAME = ".smart-updater.yaml"
ENV_PREFIX = "SMARTUP_"

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"

# 全局配置存储
GLOBAL_CONFIG_DATA: Dict[str, Any] = {}


def set_global_config_data(config_data: Dict[str, Any]) -> None:
    """Replace the whole configuration mapping."""
    global GLOBAL_CONFIG_DATA
    GLOBAL_CONFIG_DATA = {str(k).lower(): v for k, v in config_data.items()}


def set_config(key: str, value: Any) -> None:
    """设置配置"""
    GLOBAL_CONFIG_DATA[key.lower()] = value


def reset_config() -> None:
    GLOBAL_CONFIG_DATA.clear()


def load_config(project_root: str = ".") -> Dict[str, Any]:
    """Load ``.smart-updater.yaml`` and environment overrides.

    Args:
        project_root: Directory that holds package.json.

    Returns:
        The merged configuration mapping (also installed globally).

    Raises:
        ConfigError: If the file exists but is not a YAML mapping.
    """
    config_data: Dict[str, Any] = {}
    config_path = Path(project_root) / CONFIG_FILE_NAME
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f.read()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse {CONFIG_FILE_NAME}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"{CONFIG_FILE_NAME} must contain a mapping at the root")
        config_data.update(loaded)

    for name, value in os.environ.items():
        if name.startswith(ENV_PREFIX):
            config_data[name[len(ENV_PREFIX):].lower()] = value

    set_global_config_data(config_data)
    return GLOBAL_CONFIG_DATA


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1", "on"}:
            return True
        if lowered in {"false", "no", "0", "off"}:
            return False
    return default


def _as_command(value: Any, default: List[str]) -> List[str]:
    if isinstance(value, str) and value.strip():
        return shlex.split(value)
    if isinstance(value, list) and value:
        return [str(part) for part in value]
    return list(default)


def get_snapshot_dir() -> str:
    """
    获取快照目录（相对于项目根目录）

    返回:
        str: 默认为 .smart-updater/snapshots
    """
    return cast(str, GLOBAL_CONFIG_DATA.get("snapshot_dir", ".smart-updater/snapshots"))


def get_lock_file() -> str:
    return cast(str, GLOBAL_CONFIG_DATA.get("lock_file", ".smart-updater/update.lock"))


def get_registry_url() -> str:
    return cast(str, GLOBAL_CONFIG_DATA.get("registry_url", DEFAULT_REGISTRY_URL)).rstrip("/")


def get_registry_timeout() -> float:
    """Seconds to wait for one registry response."""
    return float(GLOBAL_CONFIG_DATA.get("registry_timeout", 10))


def get_max_workers() -> int:
    """
    获取并发查询注册表的线程数

    返回:
        int: 线程数，默认为8，至少为1
    """
    try:
        return max(1, int(GLOBAL_CONFIG_DATA.get("max_workers", 8)))
    except (TypeError, ValueError):
        return 8


def get_branch_prefix() -> str:
    return cast(str, GLOBAL_CONFIG_DATA.get("branch_prefix", "smart-updater-test"))


def get_install_command() -> List[str]:
    return _as_command(GLOBAL_CONFIG_DATA.get("install_command"), ["npm", "install"])


def get_test_command() -> List[str]:
    return _as_command(GLOBAL_CONFIG_DATA.get("test_command"), ["npm", "test"])


def get_type_check_command() -> List[str]:
    return _as_command(
        GLOBAL_CONFIG_DATA.get("type_check_command"), ["npx", "tsc", "--noEmit"]
    )


def get_audit_command() -> List[str]:
    return _as_command(GLOBAL_CONFIG_DATA.get("audit_command"), ["npm", "audit", "--json"])


def get_type_check_config() -> str:
    """File whose presence enables the type-check step."""
    return cast(str, GLOBAL_CONFIG_DATA.get("type_check_config", "tsconfig.json"))


def is_output_markers_enabled() -> bool:
    """
    是否通过输出中的 "failed"/"error" 标记判定失败

    关闭后只依据退出码判断。

    返回:
        bool: 默认为True
    """
    return _as_bool(GLOBAL_CONFIG_DATA.get("output_markers"), True)


def is_reinstall_after_trial() -> bool:
    return _as_bool(GLOBAL_CONFIG_DATA.get("reinstall_after_trial"), True)


def get_snapshot_keep() -> Optional[int]:
    """
    获取保留的快照数量

    返回:
        Optional[int]: 未配置时返回None，表示保留全部快照
    """
    value = GLOBAL_CONFIG_DATA.get("snapshot_keep")
    if value is None or value == "":
        return None
    try:
        keep = int(value)
    except (TypeError, ValueError):
        return None
    return keep if keep > 0 else None


def get_command_timeout() -> Optional[float]:
    value = GLOBAL_CONFIG_DATA.get("command_timeout")
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
