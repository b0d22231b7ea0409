"""Tests for RipperConfig validation and the INI ConfigManager."""

import configparser
from pathlib import Path

import pytest
from pydantic import ValidationError

from accuripper.exceptions import ConfigurationError
from accuripper.models.config import DEFAULT_PLAYLIST_URL, RipperConfig
from accuripper.storage.config_manager import ConfigManager


class TestRipperConfig:
    """Field validation."""

    def test_defaults(self) -> None:
        config = RipperConfig()

        assert config.backend == "sqlite"
        assert config.stall_threshold == 100
        assert config.max_workers == 16
        assert config.playlist_url == DEFAULT_PLAYLIST_URL

    def test_playlist_url_gets_trailing_slash(self) -> None:
        config = RipperConfig(playlist_url="https://catalog.example/playlist/json")

        assert config.playlist_url == "https://catalog.example/playlist/json/"

    def test_backend_is_case_insensitive(self) -> None:
        assert RipperConfig(backend="Redis").backend == "redis"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("backend", "postgres"),
            ("max_workers", 0),
            ("max_workers", 65),
            ("stall_threshold", 0),
            ("category_url", "ftp://catalog.example/"),
            ("read_timeout", 0),
        ],
    )
    def test_invalid_values_are_rejected(self, field: str, value) -> None:
        with pytest.raises(ValidationError):
            RipperConfig(**{field: value})


class TestConfigManager:
    """Loading, overriding and migrating the INI file."""

    def test_missing_file_yields_defaults(self, tmp_path: Path) -> None:
        config = ConfigManager(tmp_path / "config.ini").load_config()

        assert config == RipperConfig(config_path=str(tmp_path))

    def test_cli_options_override_file(self, tmp_path: Path) -> None:
        manager = ConfigManager(tmp_path / "config.ini")
        manager.save_new_config({"max_workers": 8})

        config = manager.load_config({"max_workers": 4, "backend": None})

        assert config.max_workers == 4
        assert config.backend == "sqlite"

    def test_saved_values_round_trip(self, tmp_path: Path) -> None:
        manager = ConfigManager(tmp_path / "config.ini")
        manager.save_new_config({"backend": "redis", "redis_port": 6380, "read_timeout": 12.5})

        config = ConfigManager(tmp_path / "config.ini").load_config()

        assert config.backend == "redis"
        assert config.redis_port == 6380
        assert config.read_timeout == 12.5

    def test_missing_keys_are_migrated(self, tmp_path: Path) -> None:
        path = tmp_path / "config.ini"
        path.write_text("[DEFAULT]\nmax_workers = 4\n", encoding="utf-8")

        config = ConfigManager(path).load_config()

        parser = configparser.ConfigParser()
        parser.read(path, encoding="utf-8")
        assert config.max_workers == 4
        assert set(RipperConfig.get_ini_keys()) <= set(parser["DEFAULT"])
        assert parser["DEFAULT"]["max_workers"] == "4"

    def test_non_numeric_value_is_a_configuration_error(self, tmp_path: Path) -> None:
        path = tmp_path / "config.ini"
        path.write_text("[DEFAULT]\nmax_workers = lots\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            ConfigManager(path).load_config()

    def test_invalid_value_is_a_configuration_error(self, tmp_path: Path) -> None:
        path = tmp_path / "config.ini"
        path.write_text("[DEFAULT]\nbackend = mongo\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            ConfigManager(path).load_config()
