"""Core data models for the vibe-check template manifest."""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SUPPORTED_VERSIONS = (1, 2)


class InsertionPoint(str, Enum):
    """Named locations in the main document where fragments are spliced."""

    MISSION = "mission"
    PRINCIPLES = "principles"
    LANGUAGES = "languages"
    INTEGRATION = "integration"

    @property
    def marker(self) -> str:
        """Literal comment line marking this insertion point."""
        return f"<!-- {{{self.value}}} -->"


class FileMapping(BaseModel):
    """A template bundle file and where it goes in the workspace."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="Path relative to the template bundle")
    target: str = Field(
        ...,
        description="Target path template or the $instructions merge sentinel",
    )


class AgentEntry(BaseModel):
    """Files installed for a single AI coding agent."""

    instructions: list[FileMapping] = Field(default_factory=list)
    prompts: list[FileMapping] = Field(default_factory=list)
    skills: list[FileMapping] = Field(default_factory=list)

    @field_validator("instructions", "prompts", "skills", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        """Treat an explicitly empty YAML key as an empty list."""
        return [] if v is None else v

    def all_files(self) -> list[FileMapping]:
        """Get every mapping for this agent in manifest order."""
        return self.instructions + self.prompts + self.skills


class FileGroup(BaseModel):
    """Files belonging to one language or integration."""

    files: list[FileMapping] = Field(default_factory=list)

    @field_validator("files", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        """Treat an explicitly empty YAML key as an empty list."""
        return [] if v is None else v


class TemplateManifest(BaseModel):
    """Parsed templates.yml describing a template bundle."""

    version: int = Field(default=1, description="Manifest format version")
    main: FileMapping | None = Field(
        default=None,
        description="Skeleton document that fragments are merged into",
    )
    agents: dict[str, AgentEntry] = Field(default_factory=dict)
    languages: dict[str, FileGroup] = Field(default_factory=dict)
    integration: dict[str, FileGroup] = Field(default_factory=dict)
    principles: list[FileMapping] = Field(default_factory=list)
    mission: list[FileMapping] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def drop_empty_sections(cls, data: Any) -> Any:
        """Let absent and null sections fall back to their defaults."""
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: int) -> int:
        """Reject manifest versions this tool does not understand."""
        if v not in SUPPORTED_VERSIONS:
            msg = (
                f"Unsupported template version: {v}. "
                "Please update vibe-check to the latest version."
            )
            raise ValueError(msg)
        return v

    @property
    def requires_agent(self) -> bool:
        """Version 1 bundles are agent-specific and need an agent to install."""
        return self.version == 1

    def fragment_groups(
        self,
        language: str | None = None,
        integrations: list[str] | None = None,
    ) -> Iterator[tuple[InsertionPoint, FileMapping]]:
        """Yield mappings for every merge-capable section in splice order.

        Args:
            language: Language whose files are included, or None for none
            integrations: Integration names to include, or None for all of them
        """
        for mapping in self.mission:
            yield InsertionPoint.MISSION, mapping
        for mapping in self.principles:
            yield InsertionPoint.PRINCIPLES, mapping
        if language is not None and language in self.languages:
            for mapping in self.languages[language].files:
                yield InsertionPoint.LANGUAGES, mapping
        selected = self.integration.keys() if integrations is None else integrations
        for name in selected:
            group = self.integration.get(name)
            if group is None:
                continue
            for mapping in group.files:
                yield InsertionPoint.INTEGRATION, mapping

    def all_sources(self) -> list[str]:
        """Get every source path in the bundle once, in manifest order."""
        mappings: list[FileMapping] = []
        if self.main is not None:
            mappings.append(self.main)
        mappings.extend(self.principles)
        mappings.extend(self.mission)
        for group in self.languages.values():
            mappings.extend(group.files)
        for group in self.integration.values():
            mappings.extend(group.files)
        for agent in self.agents.values():
            mappings.extend(agent.all_files())
        return list(dict.fromkeys(mapping.source for mapping in mappings))
