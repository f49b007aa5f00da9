"""Tests for configuration loading, saving and environment overrides."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from xcodemcp.core.config import ConfigManager, ServerConfig


class TestServerConfig:
    def test_defaults(self):
        config = ServerConfig()
        assert config.projects_base_dir is None
        assert config.log_level == "INFO"
        assert config.command_timeout == 30.0
        assert config.debug is False
        assert config.logs_dir == Path.home() / ".xcode-mcp" / "logs"

    def test_log_level_uppercased(self):
        assert ServerConfig(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            ServerConfig(log_level="chatty")

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            ServerConfig(command_timeout=0)

    def test_effective_log_level(self):
        assert ServerConfig(log_level="WARNING").effective_log_level == "WARNING"
        assert ServerConfig(log_level="WARNING", debug=True).effective_log_level == "DEBUG"


class TestEnvironmentOverrides:
    def test_base_dir_from_env(self):
        config = ServerConfig().with_env_overrides({"PROJECTS_BASE_DIR": "/Users/dev/Code"})
        assert config.projects_base_dir == Path("/Users/dev/Code")

    def test_base_dir_tilde_expanded(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        config = ServerConfig().with_env_overrides({"PROJECTS_BASE_DIR": "~/Code"})
        assert config.projects_base_dir == tmp_path / "Code"

    def test_env_wins_over_file_value(self):
        config = ServerConfig(projects_base_dir=Path("/from/file"))
        assert config.with_env_overrides({"PROJECTS_BASE_DIR": "/from/env"}).projects_base_dir == Path("/from/env")

    def test_debug_flag(self):
        assert ServerConfig().with_env_overrides({"DEBUG": "true"}).debug is True
        assert ServerConfig().with_env_overrides({"DEBUG": "TRUE"}).debug is True
        assert ServerConfig().with_env_overrides({"DEBUG": "1"}).debug is False

    def test_no_overrides_returns_same_object(self):
        config = ServerConfig()
        assert config.with_env_overrides({}) is config


class TestConfigManager:
    def test_missing_file_gives_defaults(self, tmp_path: Path):
        manager = ConfigManager(tmp_path / "cfg")
        assert manager.config == ServerConfig()

    def test_save_and_load(self, tmp_path: Path):
        manager = ConfigManager(tmp_path / "cfg")
        manager.save(ServerConfig(projects_base_dir=Path("/Users/dev/Code"), log_level="DEBUG"))
        assert manager.config_path.exists()

        data = yaml.safe_load(manager.config_path.read_text())
        assert data["projects_base_dir"] == "/Users/dev/Code"

        reloaded = ConfigManager(tmp_path / "cfg").load()
        assert reloaded.projects_base_dir == Path("/Users/dev/Code")
        assert reloaded.log_level == "DEBUG"

    def test_broken_yaml_falls_back(self, tmp_path: Path):
        manager = ConfigManager(tmp_path)
        manager.config_path.write_text("log_level: [unclosed\n")
        assert manager.load() == ServerConfig()

    def test_invalid_values_fall_back(self, tmp_path: Path):
        manager = ConfigManager(tmp_path)
        manager.config_path.write_text("log_level: chatty\n")
        assert manager.load() == ServerConfig()

    def test_non_mapping_falls_back(self, tmp_path: Path):
        manager = ConfigManager(tmp_path)
        manager.config_path.write_text("- just\n- a list\n")
        assert manager.load() == ServerConfig()

    def test_load_effective(self, tmp_path: Path):
        manager = ConfigManager(tmp_path)
        manager.config_path.write_text("command_timeout: 5\n")
        config = manager.load_effective({"PROJECTS_BASE_DIR": "/srv/code", "DEBUG": "true"})
        assert config.command_timeout == 5.0
        assert config.projects_base_dir == Path("/srv/code")
        assert config.debug is True
        assert manager.config is config

    def test_set_then_save(self, tmp_path: Path):
        manager = ConfigManager(tmp_path)
        manager.set("command_timeout", 12)
        assert manager.config.command_timeout == 12.0
        assert not manager.config_path.exists()
        manager.save()
        assert ConfigManager(tmp_path).load().command_timeout == 12.0

    def test_set_unknown_key(self, tmp_path: Path):
        with pytest.raises(KeyError):
            ConfigManager(tmp_path).set("model", "gpt")

    def test_set_revalidates(self, tmp_path: Path):
        with pytest.raises(ValidationError):
            ConfigManager(tmp_path).set("log_level", "chatty")

    def test_reset(self, tmp_path: Path):
        manager = ConfigManager(tmp_path)
        manager.set("debug", True)
        assert manager.reset() == ServerConfig()

    def test_ensure_directories(self, tmp_path: Path):
        manager = ConfigManager(tmp_path / "cfg")
        manager.save(ServerConfig(logs_dir=tmp_path / "cfg" / "logs"))
        manager.ensure_directories()
        assert (tmp_path / "cfg" / "logs").is_dir()
