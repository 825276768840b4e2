"""Install, remove and purge template files in a workspace."""

from __future__ import annotations

import logging
import shutil
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path

from .bom import BillOfMaterials
from .engine import is_customized, merge
from .exceptions import (
    FilesystemError,
    InvalidRequestError,
    MissingSourceFileError,
    ParseError,
    UnknownAgentError,
    UnknownIntegrationError,
    UnknownLanguageError,
)
from .manifest import MANIFEST_FILENAME, load_manifest
from .models import FileMapping, InsertionPoint, TemplateManifest
from .placeholders import is_merge_target, resolve
from .results import (
    FileRole,
    MainDocumentState,
    Outcome,
    ProjectStatus,
    ReconcileReport,
)

logger = logging.getLogger(__name__)


@dataclass
class InstallRequest:
    """Parameters of an install or update."""

    language: str | None = None
    agent: str | None = None
    no_lang: bool = False
    mission: str | None = None
    integrations: list[str] | None = None
    force: bool = False
    dry_run: bool = False


@dataclass
class CopyTask:
    """A template file copied verbatim into the workspace."""

    source: Path
    target: Path
    role: FileRole


@dataclass
class FragmentTask:
    """A template file merged into the main document."""

    source: Path
    point: InsertionPoint


@dataclass
class InstallPlan:
    """Everything an install will touch, validated before any write."""

    manifest: TemplateManifest
    main_source: Path
    main_target: Path
    fragments: list[FragmentTask] = field(default_factory=list)
    copies: list[CopyTask] = field(default_factory=list)
    missing: list[tuple[Path, FileRole]] = field(default_factory=list)


def remove_empty_parents(
    path: Path,
    stop_at: Path,
    pending: set[Path] | None = None,
) -> list[Path]:
    """Remove directories left empty after deleting a file.

    Walks upward from the file's parent and stops at the first non-empty
    directory or at ``stop_at``, which is never removed. Files outside
    ``stop_at`` (after resolving ``..`` and symlinks) get no cleanup. When
    ``pending`` is given nothing is deleted: entries in it count as already
    gone and emptied directories are added to it.

    Returns:
        Directories removed (or that would be removed), innermost first
    """
    removed: list[Path] = []
    stop_at = stop_at.resolve()
    parent = path.parent.resolve()

    while parent != stop_at and parent.is_relative_to(stop_at):
        try:
            children = list(parent.iterdir())
        except OSError:
            break

        if pending is None:
            if children:
                break
            try:
                parent.rmdir()
            except OSError as e:
                logger.debug("Could not remove directory %s: %s", parent, e)
                break
        else:
            if any(child not in pending for child in children):
                break
            pending.add(parent)

        removed.append(parent)
        parent = parent.parent

    return removed


class Reconciler:
    """Applies template bundles to a workspace and removes them again."""

    def __init__(self, template_dir: Path, workspace: Path, userprofile: Path) -> None:
        """Initialize reconciler with explicit roots.

        Args:
            template_dir: Local template cache holding templates.yml
            workspace: Project directory files are installed into
            userprofile: User home directory for $userprofile targets
        """
        self.template_dir = Path(template_dir)
        self.workspace = Path(workspace).resolve()
        self.userprofile = Path(userprofile).resolve()

    def has_templates(self) -> bool:
        """Check whether the template cache holds a manifest."""
        return (self.template_dir / MANIFEST_FILENAME).exists()

    def load_manifest(self) -> TemplateManifest:
        """Load templates.yml from the template cache."""
        return load_manifest(self.template_dir)

    def build_bom(self, manifest: TemplateManifest | None = None) -> BillOfMaterials:
        """Build the Bill of Materials for this workspace."""
        if manifest is None:
            manifest = self.load_manifest()
        return BillOfMaterials.build(manifest, self.workspace, self.userprofile)

    def resolve(self, target: str) -> Path:
        """Resolve a manifest target against this workspace."""
        return resolve(target, self.workspace, self.userprofile)

    def main_document_path(self, manifest: TemplateManifest) -> Path | None:
        """Get the workspace path of the main document, if the manifest has one."""
        if manifest.main is None:
            return None
        return self.resolve(manifest.main.target)

    def main_document_state(self, path: Path | None) -> MainDocumentState:
        """Classify the installed main document.

        A file that is not valid UTF-8 cannot be a template copy and counts as
        customized.

        Raises:
            FilesystemError: If the file exists but cannot be read
        """
        if path is None or not path.exists():
            return MainDocumentState.ABSENT
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.debug("Main document %s is not valid UTF-8", path)
            return MainDocumentState.CUSTOMIZED
        except OSError as e:
            msg = f"Failed to read {path}: {e}"
            raise FilesystemError(msg, details={"path": str(path)}) from e
        if is_customized(text):
            return MainDocumentState.CUSTOMIZED
        return MainDocumentState.PRISTINE

    def plan_install(self, request: InstallRequest) -> InstallPlan:
        """Validate an install request and collect the files it touches.

        Raises:
            InvalidRequestError: If the request is missing required options
            ParseError: If templates.yml cannot be used for this request
            UnknownLanguageError: If the language is not declared
            UnknownAgentError: If the agent is not declared
            UnknownIntegrationError: If a selected integration is not declared
            MissingSourceFileError: If the main template is absent
        """
        if request.no_lang and request.language is not None:
            msg = "Cannot combine a language with the no-language option"
            raise InvalidRequestError(msg)
        if request.language is None and request.agent is None and not request.no_lang:
            msg = "Specify a language, an agent, or the no-language option"
            raise InvalidRequestError(msg)

        manifest = self.load_manifest()

        if manifest.requires_agent:
            if not manifest.agents:
                msg = "Version 1 templates require an agents section in templates.yml"
                raise ParseError(msg)
            if request.agent is None:
                msg = "An agent is required for version 1 templates"
                raise InvalidRequestError(msg)

        if request.language is not None and request.language not in manifest.languages:
            raise UnknownLanguageError(request.language, list(manifest.languages))

        if request.agent is not None and manifest.agents and request.agent not in manifest.agents:
            raise UnknownAgentError(request.agent, list(manifest.agents))

        for name in request.integrations or []:
            if name not in manifest.integration:
                raise UnknownIntegrationError(name, list(manifest.integration))

        if manifest.main is None:
            msg = "Missing 'main' section in templates.yml"
            raise ParseError(msg)

        main_source = self.template_dir / manifest.main.source
        if not main_source.exists():
            raise MissingSourceFileError(main_source)

        plan = InstallPlan(
            manifest=manifest,
            main_source=main_source,
            main_target=self.resolve(manifest.main.target),
        )

        for point, mapping in manifest.fragment_groups(
            language=request.language,
            integrations=request.integrations,
        ):
            if point is InsertionPoint.MISSION and request.mission is not None:
                continue
            self._plan_mapping(plan, mapping, point)

        if request.agent is not None:
            entry = manifest.agents.get(request.agent)
            if entry is None:
                logger.info(
                    "templates.yml declares no agent-specific files, skipping '%s'",
                    request.agent,
                )
            else:
                for mapping in entry.all_files():
                    self._plan_mapping(plan, mapping, None)

        return plan

    def _plan_mapping(
        self,
        plan: InstallPlan,
        mapping: FileMapping,
        point: InsertionPoint | None,
    ) -> None:
        source = self.template_dir / mapping.source
        if point is None:
            role = FileRole.AGENT
        elif is_merge_target(mapping.target):
            role = FileRole.FRAGMENT
        else:
            role = FileRole.CONFIG

        if not source.exists():
            plan.missing.append((source, role))
            return

        if role is FileRole.FRAGMENT:
            plan.fragments.append(FragmentTask(source, point))
        elif is_merge_target(mapping.target):
            logger.warning(
                "Agent file %s targets %s, which only fragment sections support",
                mapping.source,
                mapping.target,
            )
        else:
            plan.copies.append(CopyTask(source, self.resolve(mapping.target), role))

    def install(self, request: InstallRequest) -> ReconcileReport:
        """Install or update templates in the workspace.

        Structural problems raise before anything is written. Per-file problems
        (missing sources, I/O errors) are reported as failures and the remaining
        files are still processed.
        """
        plan = self.plan_install(request)
        report = ReconcileReport("install", dry_run=request.dry_run)

        for source, role in plan.missing:
            logger.warning("Source file not found: %s", source)
            report.add(source, Outcome.FAILED, role, reason="source file not found")

        self._install_main_document(plan, request, report)

        for task in plan.copies:
            self._copy(task, report, dry_run=request.dry_run)

        logger.info(
            "Install finished: %d file(s) processed, %d failure(s)",
            len(report.results),
            report.failures,
        )
        return report

    def _install_main_document(
        self,
        plan: InstallPlan,
        request: InstallRequest,
        report: ReconcileReport,
    ) -> None:
        target = plan.main_target
        exists = target.exists()

        if exists:
            try:
                state = self.main_document_state(target)
            except FilesystemError as e:
                report.add(target, Outcome.FAILED, FileRole.MAIN, reason=str(e))
                return
            if state is MainDocumentState.CUSTOMIZED and not request.force:
                logger.info("Main document %s is customized, skipping", target)
                report.add(
                    target,
                    Outcome.SKIPPED,
                    FileRole.MAIN,
                    reason="customized",
                    protected=True,
                )
                return

        fragments: dict[InsertionPoint, list[str]] = defaultdict(list)
        for task in plan.fragments:
            try:
                fragments[task.point].append(task.source.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as e:
                report.add(task.source, Outcome.FAILED, FileRole.FRAGMENT, reason=str(e))

        try:
            merged = merge(
                plan.main_source.read_text(encoding="utf-8"),
                fragments,
                mission=request.mission,
            )
            if not request.dry_run:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(merged, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            report.add(target, Outcome.FAILED, FileRole.MAIN, reason=str(e))
            return

        report.add(target, Outcome.OVERWRITTEN if exists else Outcome.CREATED, FileRole.MAIN)

    def _copy(self, task: CopyTask, report: ReconcileReport, dry_run: bool) -> None:
        outcome = Outcome.OVERWRITTEN if task.target.exists() else Outcome.CREATED
        if not dry_run:
            try:
                task.target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(task.source, task.target)
            except OSError as e:
                logger.warning("Failed to copy %s to %s: %s", task.source, task.target, e)
                report.add(task.target, Outcome.FAILED, task.role, reason=str(e))
                return
        report.add(task.target, outcome, task.role)

    def remove(self, agent: str | None = None, dry_run: bool = False) -> ReconcileReport:
        """Remove agent files from the workspace.

        Args:
            agent: Agent to remove, or None for every agent
            dry_run: Report what would be deleted without deleting

        Raises:
            UnknownAgentError: If the agent is not declared in templates.yml
        """
        manifest = self.load_manifest()
        report = ReconcileReport("remove", dry_run=dry_run)
        self._remove_agent_files(manifest, agent, report)
        return report

    def purge(self, force: bool = False, dry_run: bool = False) -> ReconcileReport:
        """Remove every agent file and the main document.

        The main document is kept when it is customized unless ``force`` is set.
        """
        manifest = self.load_manifest()
        report = ReconcileReport("purge", dry_run=dry_run)
        pending = self._remove_agent_files(manifest, None, report)

        main = self.main_document_path(manifest)
        if main is None or not main.exists():
            return report

        try:
            customized = self.main_document_state(main) is MainDocumentState.CUSTOMIZED
        except FilesystemError as e:
            report.add(main, Outcome.FAILED, FileRole.MAIN, reason=str(e))
            return report

        if customized and not force:
            report.add(main, Outcome.SKIPPED, FileRole.MAIN, reason="customized", protected=True)
        else:
            self._delete(main, FileRole.MAIN, report, pending)
        return report

    def _remove_agent_files(
        self,
        manifest: TemplateManifest,
        agent: str | None,
        report: ReconcileReport,
    ) -> set[Path] | None:
        bom = self.build_bom(manifest)
        files = bom.for_agent(agent) if agent is not None else bom.all_files()
        main = self.main_document_path(manifest)
        pending: set[Path] | None = set() if report.dry_run else None

        for path in files:
            if path == main:
                logger.debug("Leaving main document %s to purge", path)
                continue
            if not path.exists():
                continue
            self._delete(path, FileRole.AGENT, report, pending)

        return pending

    def _delete(
        self,
        path: Path,
        role: FileRole,
        report: ReconcileReport,
        pending: set[Path] | None,
    ) -> None:
        if pending is not None:
            pending.add(path.parent.resolve() / path.name)
        else:
            try:
                path.unlink()
            except OSError as e:
                logger.warning("Failed to remove %s: %s", path, e)
                report.add(path, Outcome.FAILED, role, reason=str(e))
                return

        report.add(path, Outcome.DELETED, role)
        report.removed_dirs.extend(remove_empty_parents(path, self.workspace, pending))

    def status(self) -> ProjectStatus:
        """Describe the template cache and what is installed in the workspace."""
        if not self.has_templates():
            return ProjectStatus(template_dir=self.template_dir, templates_installed=False)

        manifest = self.load_manifest()
        bom = self.build_bom(manifest)
        main = self.main_document_path(manifest)

        agents = {
            name: any(path.exists() for path in bom.for_agent(name))
            for name in bom.agent_names
        }
        managed = [path for path in bom.all_files() if path.exists()]
        if main is not None and main.exists() and main not in managed:
            managed.append(main)

        return ProjectStatus(
            template_dir=self.template_dir,
            templates_installed=True,
            version=manifest.version,
            agents=agents,
            languages=list(manifest.languages),
            main_document=main,
            main_state=self.main_document_state(main),
            managed_files=managed,
        )
