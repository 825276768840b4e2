"""Bill of Materials: the workspace files owned by each agent."""

from __future__ import annotations

from pathlib import Path

from .exceptions import UnknownAgentError
from .models import TemplateManifest
from .placeholders import is_merge_target, resolve


class BillOfMaterials:
    """Maps agent names to the concrete files installed for them."""

    def __init__(self, agent_files: dict[str, list[Path]] | None = None) -> None:
        self._agent_files: dict[str, list[Path]] = dict(agent_files or {})

    @classmethod
    def build(
        cls,
        manifest: TemplateManifest,
        workspace: Path,
        userprofile: Path,
    ) -> BillOfMaterials:
        """Build a Bill of Materials from a template manifest.

        Paths keep manifest order and each appears once per agent. Merge-sentinel
        targets are skipped because they never become standalone files.

        Args:
            manifest: Parsed templates.yml
            workspace: Workspace root directory
            userprofile: User home directory

        Returns:
            Bill of Materials for every agent declared in the manifest
        """
        agent_files: dict[str, list[Path]] = {}

        for agent_name, entry in manifest.agents.items():
            paths: list[Path] = []
            for mapping in entry.all_files():
                if is_merge_target(mapping.target):
                    continue
                path = resolve(mapping.target, workspace, userprofile)
                if path not in paths:
                    paths.append(path)
            agent_files[agent_name] = paths

        return cls(agent_files)

    @property
    def agent_names(self) -> list[str]:
        """Get agent names in manifest order."""
        return list(self._agent_files)

    def has_agent(self, agent_name: str) -> bool:
        """Check if an agent is part of this Bill of Materials."""
        return agent_name in self._agent_files

    def for_agent(self, agent_name: str) -> list[Path]:
        """Get the files belonging to one agent.

        Raises:
            UnknownAgentError: If the agent is not declared in the manifest
        """
        if not self.has_agent(agent_name):
            raise UnknownAgentError(agent_name, self.agent_names)
        return list(self._agent_files[agent_name])

    def all_files(self) -> list[Path]:
        """Get the union of every agent's files without duplicates."""
        merged: dict[Path, None] = {}
        for paths in self._agent_files.values():
            merged.update(dict.fromkeys(paths))
        return list(merged)
