"""Persistent user configuration (default template sources)."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_URL = "https://github.com/heikopanjas/vibe-check/tree/develop/templates"


class SourceConfig(BaseModel):
    """Where templates are downloaded from."""

    url: str | None = Field(default=None, description="Primary template source")
    fallback: str | None = Field(
        default=None,
        description="Source used when the primary one cannot be fetched",
    )


class UserConfig(BaseModel):
    """Configuration stored in config.yml."""

    source: SourceConfig = Field(default_factory=SourceConfig)

    @staticmethod
    def valid_keys() -> list[str]:
        """Get every supported dotted key."""
        return [f"source.{name}" for name in SourceConfig.model_fields]

    @classmethod
    def load(cls, path: Path) -> UserConfig:
        """Load configuration, returning defaults when the file is absent.

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        if not path.exists():
            return cls()

        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            msg = f"Failed to parse config YAML: {e}"
            raise ConfigError(msg) from e
        except OSError as e:
            msg = f"Failed to read config file: {e}"
            raise ConfigError(msg) from e

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            msg = f"Config validation failed: {e}"
            raise ConfigError(msg, details={"path": str(path)}) from e

    def save(self, path: Path) -> None:
        """Write configuration, creating parent directories as needed."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                yaml.safe_dump(self.model_dump(exclude_none=True), sort_keys=False),
                encoding="utf-8",
            )
        except OSError as e:
            msg = f"Failed to write config file: {e}"
            raise ConfigError(msg) from e
        logger.debug("Saved configuration to %s", path)

    def _split(self, key: str) -> str:
        if key not in self.valid_keys():
            msg = f"Unknown config key: {key}"
            raise ConfigError(msg, details={"valid_keys": self.valid_keys()})
        return key.split(".", 1)[1]

    def get(self, key: str) -> str | None:
        """Get a value by dotted key (e.g. ``source.url``)."""
        return getattr(self.source, self._split(key))

    def set(self, key: str, value: str) -> None:
        """Set a value by dotted key."""
        setattr(self.source, self._split(key), value)

    def unset(self, key: str) -> None:
        """Remove a value by dotted key."""
        setattr(self.source, self._split(key), None)

    def items(self) -> dict[str, str]:
        """Get every value that is set, keyed by dotted key."""
        return {
            key: value
            for key in self.valid_keys()
            if (value := self.get(key)) is not None
        }

    def effective_source(self, override: str | None = None) -> str:
        """Pick the template source: explicit override, configured url, default."""
        return override or self.source.url or DEFAULT_SOURCE_URL
