"""Result models returned by reconciler operations.

Plain dataclasses describing what happened to each file so the CLI can render
them. No I/O happens here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class Outcome(str, Enum):
    """What an operation did (or would do) to a single file."""

    CREATED = "created"
    OVERWRITTEN = "overwritten"
    SKIPPED = "skipped"
    DELETED = "deleted"
    FAILED = "failed"


class FileRole(str, Enum):
    """Why a file is part of an operation."""

    MAIN = "main"  # merged main document
    FRAGMENT = "fragment"  # merged into the main document
    CONFIG = "config"  # per-language or integration file, copied verbatim
    AGENT = "agent"  # agent instructions, prompts and skills


class MainDocumentState(str, Enum):
    """Customization state of the installed main document."""

    ABSENT = "absent"
    PRISTINE = "pristine"
    CUSTOMIZED = "customized"


@dataclass
class FileResult:
    """Outcome for one file."""

    path: Path
    outcome: Outcome
    role: FileRole
    reason: str | None = None
    protected: bool = False


@dataclass
class ReconcileReport:
    """Ordered per-file outcomes of an install, remove or purge."""

    operation: str
    dry_run: bool = False
    results: list[FileResult] = field(default_factory=list)
    removed_dirs: list[Path] = field(default_factory=list)

    def add(
        self,
        path: Path,
        outcome: Outcome,
        role: FileRole,
        reason: str | None = None,
        protected: bool = False,
    ) -> FileResult:
        """Record the outcome for a file."""
        result = FileResult(path, outcome, role, reason, protected)
        self.results.append(result)
        return result

    def by_outcome(self, outcome: Outcome) -> list[FileResult]:
        """Get results with the given outcome."""
        return [r for r in self.results if r.outcome == outcome]

    @property
    def failures(self) -> int:
        """Number of files that failed (protection skips are not failures)."""
        return len(self.by_outcome(Outcome.FAILED))

    @property
    def protected_skips(self) -> list[FileResult]:
        """Results skipped because the main document is customized."""
        return [r for r in self.results if r.protected]

    @property
    def exit_code(self) -> int:
        """Process exit status for this report."""
        return 1 if self.failures else 0


@dataclass
class ProjectStatus:
    """Snapshot of the template cache and the workspace."""

    template_dir: Path
    templates_installed: bool
    version: int | None = None
    agents: dict[str, bool] = field(default_factory=dict)
    languages: list[str] = field(default_factory=list)
    main_document: Path | None = None
    main_state: MainDocumentState = MainDocumentState.ABSENT
    managed_files: list[Path] = field(default_factory=list)

    @property
    def installed_agents(self) -> list[str]:
        """Agents with at least one file present in the workspace."""
        return [name for name, installed in self.agents.items() if installed]
