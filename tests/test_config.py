"""Tests for configuration management."""

from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Dict

import pytest
import yaml

from cfgtool.core.config import Config, default_store_dir
from cfgtool.core.errors import ConfigError


def test_default_config() -> None:
    """Test default configuration loading."""
    config = Config()
    assert config.home_dir == Path.home()
    assert config.store_dir == default_store_dir()
    assert config.store_dir.name == "repo"
    assert config.store_dir.parent.name == "cfgtool"
    assert config.remote_name == "origin"
    assert config.branch == "main"
    assert config.log_file is None
    assert not config.debug


def create_temp_config(config_data: Dict) -> Path:
    """Create a temporary config file."""
    temp_file = NamedTemporaryFile(mode="w", suffix=".yaml", delete=False)
    with temp_file:
        yaml.safe_dump(config_data, temp_file, encoding="utf-8")
    return Path(temp_file.name)


def test_load_config_file(tmp_path: Path) -> None:
    """Test loading configuration from file."""
    config_path = create_temp_config(
        {
            "home_dir": str(tmp_path),
            "store_dir": str(tmp_path / "store"),
            "remote_name": "github",
            "debug": True,
        }
    )
    try:
        config = Config.from_file(config_path)
        assert config.home_dir == tmp_path
        assert config.store_dir == tmp_path / "store"
        assert config.remote_name == "github"
        assert config.debug
    finally:
        config_path.unlink()


def test_overrides_win_over_file(tmp_path: Path) -> None:
    """Test that explicit overrides are applied after the file."""
    config_path = create_temp_config({"store_dir": str(tmp_path / "from_file")})
    try:
        config = Config.from_file(config_path, store_dir=tmp_path / "override", home_dir=None)
        assert config.store_dir == tmp_path / "override"
        assert config.home_dir == Path.home()
    finally:
        config_path.unlink()


def test_tilde_is_expanded() -> None:
    """Test that paths starting with ~ are expanded."""
    config = Config(store_dir="~/dotstore")
    assert config.store_dir == Path.home() / "dotstore"


@pytest.mark.parametrize(
    "data",
    [
        {"unknown": 1},
        {"branch": "develop"},
        {"remote_name": ""},
        {"debug": "yes"},
        {"home_dir": 42},
    ],
)
def test_invalid_config(data: Dict) -> None:
    """Test handling of invalid configuration."""
    with pytest.raises(ConfigError):
        Config()._merge_config(data)


def test_malformed_file(tmp_path: Path) -> None:
    """Test that an unparsable file raises ConfigError."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text("home_dir: [unclosed\n")
    with pytest.raises(ConfigError):
        Config.from_file(config_path)


def test_config_validation(tmp_path: Path) -> None:
    """Test configuration validation."""
    config = Config(home_dir=tmp_path, store_dir=tmp_path / "store")
    assert config.validate() == []

    config = Config(home_dir=tmp_path, store_dir=tmp_path)
    assert "store_dir must not be the home directory itself" in config.validate()

    config = Config(home_dir=tmp_path / "missing", store_dir=tmp_path / "store")
    assert config.validate()


def test_get() -> None:
    """Test raw value access."""
    config = Config(remote_name="upstream")
    assert config.get("remote_name") == "upstream"
    assert config.get("log_file", "fallback") == "fallback"
