"""Manifest loader with schema validation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from pydantic import ValidationError

from .exceptions import ParseError, TemplatesNotFoundError
from .models import TemplateManifest

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "templates.yml"

_MAPPING = {
    "type": "object",
    "required": ["source", "target"],
    "properties": {
        "source": {"type": "string"},
        "target": {"type": "string"},
    },
}
_MAPPING_LIST = {"type": ["array", "null"], "items": _MAPPING}
_GROUPS = {
    "type": ["object", "null"],
    "additionalProperties": {
        "type": "object",
        "properties": {"files": _MAPPING_LIST},
    },
}

MANIFEST_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "vibe-check template manifest",
    "type": "object",
    "properties": {
        "version": {"type": "integer"},
        "main": {"anyOf": [_MAPPING, {"type": "null"}]},
        "agents": {
            "type": ["object", "null"],
            "additionalProperties": {
                "type": ["object", "null"],
                "properties": {
                    "instructions": _MAPPING_LIST,
                    "prompts": _MAPPING_LIST,
                    "skills": _MAPPING_LIST,
                },
            },
        },
        "languages": _GROUPS,
        "integration": _GROUPS,
        "principles": _MAPPING_LIST,
        "mission": _MAPPING_LIST,
    },
}


def parse(text: str) -> TemplateManifest:
    """Parse templates.yml content into a manifest.

    Args:
        text: Raw YAML text

    Returns:
        Validated template manifest

    Raises:
        ParseError: If the YAML is malformed or has an invalid shape
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        msg = f"Failed to parse templates.yml: {e}"
        raise ParseError(msg) from e

    if data is None:
        data = {}

    try:
        jsonschema.validate(data, MANIFEST_SCHEMA)
    except jsonschema.ValidationError as e:
        msg = f"Invalid templates.yml: {e.message}"
        raise ParseError(
            msg,
            details={"path": list(e.absolute_path)},
        ) from e

    # Agents declared with an empty body still count as agents
    agents = data.get("agents")
    if isinstance(agents, dict):
        data["agents"] = {name: entry or {} for name, entry in agents.items()}

    try:
        manifest = TemplateManifest.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid templates.yml: {e}"
        raise ParseError(msg) from e

    logger.debug(
        "Parsed manifest version %d (%d agents, %d languages)",
        manifest.version,
        len(manifest.agents),
        len(manifest.languages),
    )
    return manifest


def load_manifest(template_dir: Path) -> TemplateManifest:
    """Load templates.yml from a template bundle directory.

    Raises:
        TemplatesNotFoundError: If the bundle has no templates.yml
        ParseError: If templates.yml cannot be read or parsed
    """
    manifest_path = Path(template_dir) / MANIFEST_FILENAME
    if not manifest_path.exists():
        msg = f"templates.yml not found in {template_dir}"
        raise TemplatesNotFoundError(msg, details={"path": str(manifest_path)})

    try:
        text = manifest_path.read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Failed to read templates.yml: {e}"
        raise ParseError(msg) from e

    return parse(text)
