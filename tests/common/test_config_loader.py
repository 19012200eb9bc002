"""Tests for the layered configuration loader."""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from takeout_organizer.common import ConfigLoader
from takeout_organizer.config import OrganizerConfig


@pytest.fixture
def isolated_loader(tmp_path, monkeypatch):
    """Loader that sees no system/user config, no env vars and no ./config."""
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("TAKEOUT_ORGANIZER_"):
            monkeypatch.delenv(key)
    
    user_dir = tmp_path / "user-config"
    monkeypatch.setattr(
        "takeout_organizer.common.config.platformdirs.user_config_dir",
        lambda appname, appauthor: str(user_dir),
    )
    loader = ConfigLoader(app_name="takeout-organizer", config_class=OrganizerConfig)
    monkeypatch.setattr(loader, "_load_system_config", lambda: None)
    loader.user_dir = user_dir
    return loader


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestConfigLoader:
    
    def test_defaults_without_any_source(self, isolated_loader):
        config = isolated_loader.load()
        
        assert config.organizer.min_prefix_length == 16
        assert config.organizer.apply_metadata is True
        assert config.organizer.worker_threads >= 1
        assert config.logging.level == "INFO"
    
    def test_explicit_defaults_file(self, isolated_loader, tmp_path):
        defaults = _write(tmp_path / "custom.toml", "[organizer]\nworker_threads = 3\n")
        
        config = isolated_loader.load(defaults_path=defaults)
        assert config.organizer.worker_threads == 3
    
    def test_missing_explicit_defaults_file_raises(self, isolated_loader, tmp_path):
        with pytest.raises(FileNotFoundError):
            isolated_loader.load(defaults_path=tmp_path / "nope.toml")
    
    def test_cwd_defaults_file_is_picked_up(self, isolated_loader, tmp_path):
        _write(tmp_path / "config" / "defaults.toml", "[organizer]\nqueue_maxsize = 7\n")
        
        config = isolated_loader.load()
        assert config.organizer.queue_maxsize == 7
    
    def test_user_config_overrides_defaults(self, isolated_loader, tmp_path):
        defaults = _write(tmp_path / "d.toml", "[organizer]\nworker_threads = 3\nqueue_maxsize = 9\n")
        _write(isolated_loader.user_dir / "config.toml", "[organizer]\nworker_threads = 5\n")
        
        config = isolated_loader.load(defaults_path=defaults)
        assert config.organizer.worker_threads == 5
        assert config.organizer.queue_maxsize == 9
    
    def test_env_overrides_files(self, isolated_loader, tmp_path, monkeypatch):
        defaults = _write(tmp_path / "d.toml", "[organizer]\nworker_threads = 3\n")
        monkeypatch.setenv("TAKEOUT_ORGANIZER_ORGANIZER__WORKER_THREADS", "11")
        monkeypatch.setenv("TAKEOUT_ORGANIZER_ORGANIZER__APPLY_METADATA", "no")
        monkeypatch.setenv("TAKEOUT_ORGANIZER_LOGGING__LEVEL", "debug")
        
        config = isolated_loader.load(defaults_path=defaults)
        assert config.organizer.worker_threads == 11
        assert config.organizer.apply_metadata is False
        assert config.logging.level == "DEBUG"
    
    def test_overrides_win_over_env(self, isolated_loader, monkeypatch):
        monkeypatch.setenv("TAKEOUT_ORGANIZER_ORGANIZER__WORKER_THREADS", "11")
        
        config = isolated_loader.load(overrides={"organizer": {"worker_threads": 2}})
        assert config.organizer.worker_threads == 2
    
    def test_invalid_value_raises_validation_error(self, isolated_loader):
        with pytest.raises(ValidationError):
            isolated_loader.load(overrides={"organizer": {"worker_threads": 0}})
    
    def test_unknown_key_raises_validation_error(self, isolated_loader):
        with pytest.raises(ValidationError):
            isolated_loader.load(overrides={"organizer": {"threads": 4}})
    
    def test_config_property_loads_lazily(self, isolated_loader):
        assert isinstance(isolated_loader.config, OrganizerConfig)


class TestConvertEnvValue:
    
    @pytest.mark.parametrize("raw, expected", [
        ("true", True),
        ("YES", True),
        ("false", False),
        ("42", 42),
        ("2.5", 2.5),
        ("a, b", ["a", "b"]),
        ("/usr/local/bin/exiftool", "/usr/local/bin/exiftool"),
    ])
    def test_conversion(self, raw, expected):
        assert ConfigLoader()._convert_env_value(raw) == expected
