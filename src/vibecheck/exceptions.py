"""Custom exceptions for vibe-check."""

from __future__ import annotations

from pathlib import Path
from typing import Any


class VibeCheckError(Exception):
    """Base exception for all vibe-check errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}


class ParseError(VibeCheckError):
    """Raised when templates.yml is malformed or structurally invalid."""


class TemplatesNotFoundError(VibeCheckError):
    """Raised when the template cache has no templates.yml."""


class InvalidRequestError(VibeCheckError):
    """Raised when an install request is missing required parameters."""


class MissingSourceFileError(VibeCheckError):
    """Raised when a manifest source file is absent from the template bundle."""

    def __init__(self, source: Path, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Source file not found: {source}", details)
        self.source = source


class _UnknownNameError(VibeCheckError):
    kind = "entry"

    def __init__(self, name: str, available: list[str]) -> None:
        listing = ", ".join(available) if available else "(none)"
        super().__init__(
            f"{self.kind.capitalize()} '{name}' not found in templates.yml.\n"
            f"Available {self.kind}s: {listing}",
            details={"name": name, "available": available},
        )
        self.name = name
        self.available = available


class UnknownAgentError(_UnknownNameError):
    """Raised when a requested agent is not declared in the manifest."""

    kind = "agent"


class UnknownLanguageError(_UnknownNameError):
    """Raised when a requested language is not declared in the manifest."""

    kind = "language"


class UnknownIntegrationError(_UnknownNameError):
    """Raised when a requested integration is not declared in the manifest."""

    kind = "integration"


class FetchError(VibeCheckError):
    """Raised when templates cannot be downloaded or copied."""


class FilesystemError(VibeCheckError):
    """Raised when a workspace file cannot be read, written or deleted."""


class ConfigError(VibeCheckError):
    """Raised when user configuration cannot be read or updated."""
