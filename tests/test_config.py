"""Tests for user configuration and data locations."""

from pathlib import Path

import pytest

from vibecheck.config import DEFAULT_SOURCE_URL, UserConfig
from vibecheck.exceptions import ConfigError
from vibecheck.paths import get_config_path, get_data_home, get_template_dir


class TestUserConfig:
    """Test loading and editing config.yml."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        """Test an absent config file."""
        config = UserConfig.load(tmp_path / "config.yml")

        assert config.source.url is None
        assert config.source.fallback is None
        assert config.items() == {}

    def test_save_and_load(self, tmp_path: Path) -> None:
        """Test values survive a save and reload."""
        path = tmp_path / "nested" / "config.yml"
        config = UserConfig()
        config.set("source.url", "https://github.com/me/templates/tree/main/t")

        config.save(path)
        loaded = UserConfig.load(path)

        assert loaded.get("source.url") == "https://github.com/me/templates/tree/main/t"
        assert "fallback" not in path.read_text()

    def test_unset(self) -> None:
        """Test removing a value."""
        config = UserConfig()
        config.set("source.fallback", "/srv/templates")
        config.unset("source.fallback")

        assert config.get("source.fallback") is None

    def test_unknown_key(self) -> None:
        """Test keys outside the source section are rejected."""
        config = UserConfig()

        with pytest.raises(ConfigError, match="Unknown config key"):
            config.set("source.branch", "main")

        with pytest.raises(ConfigError):
            config.get("url")

    def test_valid_keys(self) -> None:
        """Test the supported keys."""
        assert UserConfig.valid_keys() == ["source.url", "source.fallback"]

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test unparseable config files."""
        path = tmp_path / "config.yml"
        path.write_text("source: [unclosed\n")

        with pytest.raises(ConfigError, match="parse"):
            UserConfig.load(path)

    def test_invalid_structure(self, tmp_path: Path) -> None:
        """Test config files with the wrong shape."""
        path = tmp_path / "config.yml"
        path.write_text("source: just-a-string\n")

        with pytest.raises(ConfigError, match="validation"):
            UserConfig.load(path)

    def test_effective_source(self) -> None:
        """Test override, configured and default sources in priority order."""
        config = UserConfig()
        assert config.effective_source() == DEFAULT_SOURCE_URL

        config.set("source.url", "/local/templates")
        assert config.effective_source() == "/local/templates"
        assert config.effective_source("/other") == "/other"


class TestPaths:
    """Test environment-driven locations."""

    def test_data_home_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test VIBE_CHECK_HOME relocates the template cache."""
        monkeypatch.setenv("VIBE_CHECK_HOME", str(tmp_path))

        assert get_data_home() == tmp_path
        assert get_template_dir() == tmp_path / "templates"

    def test_data_home_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the platform data directory is used by default."""
        monkeypatch.delenv("VIBE_CHECK_HOME", raising=False)

        assert get_data_home().name == "vibe-check"

    def test_config_path_xdg(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test XDG_CONFIG_HOME relocates the config file."""
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert get_config_path() == tmp_path / "vibe-check" / "config.yml"

    def test_config_path_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the config file lives under ~/.config by default."""
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))

        assert get_config_path() == tmp_path / ".config" / "vibe-check" / "config.yml"
