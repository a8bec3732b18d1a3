# -*- coding: utf-8 -*-
"""smartup_utils.config 模块单元测试"""

import pytest

from smartup.smartup_utils import config
from smartup.smartup_utils.errors import ConfigError


class TestLoadConfig:
    """测试 load_config"""

    def test_missing_file_gives_defaults(self, temp_dir):
        assert config.load_config(str(temp_dir)) == {}
        assert config.get_snapshot_dir() == ".smart-updater/snapshots"
        assert config.get_registry_url() == "https://registry.npmjs.org"
        assert config.get_install_command() == ["npm", "install"]
        assert config.get_snapshot_keep() is None
        assert config.get_command_timeout() is None
        assert config.is_output_markers_enabled() is True

    def test_yaml_file(self, temp_dir):
        (temp_dir / ".smart-updater.yaml").write_text(
            "registry_url: https://npm.example.com/\n"
            "snapshot_keep: 5\n"
            "test_command: [yarn, test]\n"
            "output_markers: false\n",
            encoding="utf-8",
        )
        config.load_config(str(temp_dir))

        assert config.get_registry_url() == "https://npm.example.com"
        assert config.get_snapshot_keep() == 5
        assert config.get_test_command() == ["yarn", "test"]
        assert config.is_output_markers_enabled() is False

    def test_environment_overrides_file(self, temp_dir, monkeypatch):
        (temp_dir / ".smart-updater.yaml").write_text("max_workers: 2\n", encoding="utf-8")
        monkeypatch.setenv("SMARTUP_MAX_WORKERS", "4")
        monkeypatch.setenv("SMARTUP_REINSTALL_AFTER_TRIAL", "no")
        config.load_config(str(temp_dir))

        assert config.get_max_workers() == 4
        assert config.is_reinstall_after_trial() is False

    def test_invalid_yaml(self, temp_dir):
        (temp_dir / ".smart-updater.yaml").write_text("key: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            config.load_config(str(temp_dir))

    def test_non_mapping_root(self, temp_dir):
        (temp_dir / ".smart-updater.yaml").write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            config.load_config(str(temp_dir))


class TestGetters:
    """测试各个 get_* 访问器的容错"""

    def test_command_string_is_split(self):
        config.set_config("type_check_command", "npx tsc --noEmit -p 'tsconfig build.json'")
        assert config.get_type_check_command() == ["npx", "tsc", "--noEmit", "-p", "tsconfig build.json"]

    def test_empty_command_falls_back(self):
        config.set_config("audit_command", "  ")
        assert config.get_audit_command() == ["npm", "audit", "--json"]

    @pytest.mark.parametrize("value, expected", [(0, None), (-3, None), ("x", None), ("3", 3)])
    def test_snapshot_keep(self, value, expected):
        config.set_config("snapshot_keep", value)
        assert config.get_snapshot_keep() == expected

    @pytest.mark.parametrize("value, expected", [("0", 1), ("bad", 8), (16, 16)])
    def test_max_workers(self, value, expected):
        config.set_config("max_workers", value)
        assert config.get_max_workers() == expected

    def test_command_timeout(self):
        config.set_config("command_timeout", "90")
        assert config.get_command_timeout() == 90.0
        config.set_config("command_timeout", "soon")
        assert config.get_command_timeout() is None

    def test_unrecognised_bool_uses_default(self):
        config.set_config("output_markers", "maybe")
        assert config.is_output_markers_enabled() is True

    def test_keys_are_case_insensitive(self):
        config.set_global_config_data({"BRANCH_PREFIX": "trial"})
        assert config.get_branch_prefix() == "trial"
