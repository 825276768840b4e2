"""Locations of the template cache and the user configuration file."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_data_dir

APP_NAME = "vibe-check"


def get_data_home() -> Path:
    """Return the directory vibe-check keeps downloaded data in.

    Resolution order:
    1. VIBE_CHECK_HOME environment variable
    2. The platform's user data directory (via platformdirs)
    """
    if env_home := os.environ.get("VIBE_CHECK_HOME"):
        return Path(env_home)
    return Path(user_data_dir(APP_NAME))


def get_template_dir() -> Path:
    """Return the local template cache directory."""
    return get_data_home() / "templates"


def get_config_path() -> Path:
    """Return the path of the user configuration file.

    Uses ``$XDG_CONFIG_HOME/vibe-check/config.yml`` when XDG_CONFIG_HOME is set,
    otherwise ``~/.config/vibe-check/config.yml``.
    """
    if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
        config_dir = Path(xdg_config)
    else:
        config_dir = Path.home() / ".config"
    return config_dir / APP_NAME / "config.yml"
