"""Shared fixtures: template bundles and workspaces on disk."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from vibecheck.engine import TEMPLATE_MARKER

MAIN_TEMPLATE = f"""\
{TEMPLATE_MARKER}
# AGENTS.md

<!-- {{mission}} -->

## Principles

<!-- {{principles}} -->

## Languages

<!-- {{languages}} -->

## Integration

<!-- {{integration}} -->
"""

SAMPLE_MANIFEST: dict[str, Any] = {
    "version": 2,
    "main": {"source": "AGENTS.md", "target": "$workspace/AGENTS.md"},
    "agents": {
        "claude": {
            "instructions": [
                {"source": "claude/CLAUDE.md", "target": "$workspace/CLAUDE.md"},
            ],
            "prompts": [
                {
                    "source": "claude/init-session.md",
                    "target": "$workspace/.claude/commands/init-session.md",
                },
            ],
        },
        "cursor": {
            "instructions": [
                {"source": "cursor/general.mdc", "target": "$workspace/.cursor/rules/general.mdc"},
            ],
            "prompts": [
                {
                    "source": "cursor/init-session.md",
                    "target": "$workspace/.cursor/commands/init-session.md",
                },
            ],
        },
    },
    "languages": {
        "python": {
            "files": [
                {"source": "python/coding-conventions.md", "target": "$instructions"},
                {"source": "python/build-commands.md", "target": "$instructions"},
                {"source": "python/ruff.toml", "target": "$workspace/ruff.toml"},
            ],
        },
        "rust": {
            "files": [
                {"source": "rust/coding-conventions.md", "target": "$instructions"},
            ],
        },
    },
    "integration": {
        "git": {"files": [{"source": "integration/git.md", "target": "$instructions"}]},
        "github": {"files": [{"source": "integration/github.md", "target": "$instructions"}]},
    },
    "principles": [{"source": "principles/core.md", "target": "$instructions"}],
    "mission": [{"source": "mission.md", "target": "$instructions"}],
}

SAMPLE_FILES: dict[str, str] = {
    "AGENTS.md": MAIN_TEMPLATE,
    "claude/CLAUDE.md": "Read AGENTS.md first.\n",
    "claude/init-session.md": "# Init session\n",
    "cursor/general.mdc": "Read AGENTS.md first.\n",
    "cursor/init-session.md": "# Init session\n",
    "python/coding-conventions.md": "## Python\n\nUse type hints.\n",
    "python/build-commands.md": "## Build\n\nRun pytest.\n",
    "python/ruff.toml": "line-length = 100\n",
    "rust/coding-conventions.md": "## Rust\n\nRun clippy.\n",
    "integration/git.md": "## Git\n\nWrite small commits.\n",
    "integration/github.md": "## GitHub\n\nOpen draft PRs.\n",
    "principles/core.md": "## Core Principles\n\nKeep it simple.\n",
    "mission.md": "## Mission\n\nBuild great things.\n",
}


def write_bundle(
    root: Path,
    manifest: dict[str, Any],
    files: dict[str, str],
) -> Path:
    """Write templates.yml and template files under root."""
    root.mkdir(parents=True, exist_ok=True)
    with (root / "templates.yml").open("w", encoding="utf-8") as f:
        yaml.dump(manifest, f, sort_keys=False)
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A complete version 2 template bundle."""
    return write_bundle(tmp_path / "templates", SAMPLE_MANIFEST, SAMPLE_FILES)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """An empty project directory."""
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """A fake user home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path
