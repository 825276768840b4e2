"""vibe-check command-line interface."""

from __future__ import annotations

import logging
import re
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import UserConfig
from .download import TemplateFetcher
from .exceptions import FetchError, VibeCheckError
from .paths import get_config_path, get_template_dir
from .reconciler import InstallRequest, Reconciler
from .results import MainDocumentState, Outcome, ReconcileReport

app = typer.Typer(
    name="vibe-check",
    help="vibe-check: A manager for coding agent instruction files",
    add_completion=False,
)
config_app = typer.Typer(help="Manage persistent vibe-check configuration")
app.add_typer(config_app, name="config")
console = Console()

_OUTCOME_STYLE = {
    Outcome.CREATED: ("[green]●[/green]", "created"),
    Outcome.OVERWRITTEN: ("[yellow]●[/yellow]", "overwritten"),
    Outcome.SKIPPED: ("[yellow]○[/yellow]", "skipped"),
    Outcome.DELETED: ("[red]●[/red]", "deleted"),
    Outcome.FAILED: ("[red]✗[/red]", "failed"),
}


def _get_version_string() -> str:
    """Get version string from package metadata or pyproject.toml."""
    try:
        return get_version("vibe-check")
    except PackageNotFoundError:
        pass

    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        content = pyproject_path.read_text()
        match = re.search(r'version\s*=\s*["\']([^"\']+)["\']', content)
        if match:
            return f"{match.group(1)} (development)"

    return "unknown"


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"vibe-check version {_get_version_string()}")
        raise typer.Exit


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
) -> None:
    """vibe-check: A manager for coding agent instruction files."""
    _configure_logging(verbose)


def _reconciler() -> Reconciler:
    return Reconciler(get_template_dir(), Path.cwd(), Path.home())


def _display(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd().resolve()))
    except ValueError:
        return str(path)


def _fetch_templates(source: str | None) -> None:
    """Populate the template cache, trying the configured fallback on failure."""
    config = UserConfig.load(get_config_path())
    primary = config.effective_source(source)
    fetcher = TemplateFetcher(get_template_dir())

    console.print(f"[blue]→[/blue] Fetching templates from [yellow]{primary}[/yellow]")
    try:
        summary = fetcher.fetch(primary)
    except FetchError:
        fallback = config.source.fallback
        if source is not None or not fallback:
            raise
        console.print(f"[yellow]![/yellow] Falling back to [yellow]{fallback}[/yellow]")
        summary = fetcher.fetch(fallback)

    console.print(
        f"[green]✓[/green] {len(summary.fetched)} template file(s) stored in "
        f"{summary.destination}",
    )
    for skipped in summary.skipped:
        console.print(f"  [red]✗[/red] {skipped} (skipped)")


def _print_report(report: ReconcileReport) -> None:
    """Print every per-file result followed by a summary."""
    verb = "would be " if report.dry_run else ""
    for result in report.results:
        symbol, label = _OUTCOME_STYLE[result.outcome]
        detail = f"{verb}{label}"
        if result.reason:
            detail += f" - {result.reason}"
        console.print(f"  {symbol} {_display(result.path)} ({detail})")

    for directory in report.removed_dirs:
        console.print(f"  [red]●[/red] {_display(directory)}/ ({verb}removed, empty)")

    for result in report.protected_skips:
        console.print(
            f"[yellow]![/yellow] {_display(result.path)} has been customized "
            "and was not changed",
        )
        console.print("[blue]→[/blue] Use --force to overwrite it anyway")

    if report.dry_run:
        console.print("\n[green]✓[/green] Dry run complete. No files were modified.")
    elif report.failures:
        console.print(f"\n[red]✗[/red] {report.failures} file(s) failed")
    else:
        console.print(f"\n[green]✓[/green] {report.operation.capitalize()} complete")


@app.command()
def init(
    lang: str | None = typer.Option(
        None,
        "--lang",
        "-l",
        help="Programming language or framework (e.g., rust, python, swift)",
    ),
    agent: str | None = typer.Option(
        None,
        "--agent",
        "-a",
        help="AI coding agent (e.g., claude, copilot, codex, cursor)",
    ),
    no_lang: bool = typer.Option(
        False,
        "--no-lang",
        help="Skip language-specific fragments and files",
    ),
    mission: str | None = typer.Option(
        None,
        "--mission",
        help="Custom mission statement replacing the template mission",
    ),
    integration: list[str] | None = typer.Option(
        None,
        "--integration",
        "-i",
        help="Integration to include (can be repeated, defaults to all)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite a customized main document",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be written without writing files",
    ),
    source: str | None = typer.Option(
        None,
        "--from",
        help="Path or URL to fetch templates from when none are cached",
    ),
) -> None:
    """Install agent instructions into the current project.

    Merges mission, principles, language and integration fragments into the
    main document and copies agent and language files. A main document whose
    template marker is gone is treated as customized and left alone unless
    --force is given.
    """
    try:
        reconciler = _reconciler()
        if not reconciler.has_templates():
            console.print("[yellow]![/yellow] Global templates not found")
            _fetch_templates(source)

        request = InstallRequest(
            language=lang,
            agent=agent,
            no_lang=no_lang,
            mission=mission,
            integrations=integration or None,
            force=force,
            dry_run=dry_run,
        )
        console.print("[blue]→[/blue] Installing templates")
        report = reconciler.install(request)
    except VibeCheckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    _print_report(report)
    if report.exit_code:
        raise typer.Exit(report.exit_code)


@app.command()
def update(
    source: str | None = typer.Option(
        None,
        "--from",
        help="Path or URL to download/copy templates from",
    ),
) -> None:
    """Refresh the global template cache from its source."""
    try:
        _fetch_templates(source)
    except VibeCheckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def _confirm_or_exit(prompt: str) -> None:
    if not typer.confirm(prompt):
        console.print("[yellow]Operation cancelled[/yellow]")
        raise typer.Exit(0)


@app.command()
def remove(
    agent: str | None = typer.Option(
        None,
        "--agent",
        "-a",
        help="AI coding agent whose files should be removed",
    ),
    all_agents: bool = typer.Option(
        False,
        "--all",
        help="Remove files of every agent (cannot be used with --agent)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Remove without confirmation",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be removed without removing files",
    ),
) -> None:
    """Remove agent-specific files from the current project.

    The main document is never touched; use purge for that.
    """
    if all_agents and agent is not None:
        console.print("[red]Error:[/red] Cannot specify both --agent and --all options")
        raise typer.Exit(1)
    if not all_agents and agent is None:
        console.print("[red]Error:[/red] Must specify either --agent <name> or --all")
        raise typer.Exit(1)

    description = f"agent '{agent}'" if agent else "all agents"
    try:
        reconciler = _reconciler()
        preview = reconciler.remove(agent, dry_run=True)
        if not preview.results:
            console.print(f"[blue]→[/blue] No files found for {description}")
            return

        if dry_run:
            _print_report(preview)
            return

        if not force:
            console.print(f"[blue]→[/blue] Files to be removed for {description}:")
            for result in preview.results:
                console.print(f"  • [yellow]{_display(result.path)}[/yellow]")
            _confirm_or_exit("Proceed with removal?")

        report = reconciler.remove(agent)
    except VibeCheckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    _print_report(report)
    if report.exit_code:
        raise typer.Exit(report.exit_code)


@app.command()
def purge(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Purge without confirmation, including a customized main document",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be removed without removing files",
    ),
) -> None:
    """Remove every vibe-check file, including the main document."""
    try:
        reconciler = _reconciler()
        preview = reconciler.purge(force=force, dry_run=True)
        if not preview.results:
            console.print("[blue]→[/blue] No vibe-check files found to purge")
            return

        if dry_run:
            _print_report(preview)
            return

        if not force:
            _confirm_or_exit("Are you sure you want to purge all vibe-check files?")

        report = reconciler.purge(force=force)
    except VibeCheckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    _print_report(report)
    if report.exit_code:
        raise typer.Exit(report.exit_code)


@app.command()
def status() -> None:
    """Show template cache and project status."""
    try:
        project = _reconciler().status()
    except VibeCheckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    table = Table(title="vibe-check status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    if not project.templates_installed:
        table.add_row("Global Templates", "not installed")
        console.print(table)
        console.print("[blue]→[/blue] Run 'vibe-check update' to download templates")
        return

    main_label = {
        MainDocumentState.ABSENT: "not found",
        MainDocumentState.PRISTINE: "exists (from template)",
        MainDocumentState.CUSTOMIZED: "exists (customized)",
    }[project.main_state]

    table.add_row("Global Templates", str(project.template_dir))
    table.add_row("Template Version", str(project.version))
    table.add_row("Available Agents", ", ".join(project.agents) or "-")
    table.add_row("Available Languages", ", ".join(project.languages) or "-")
    if project.main_document is not None:
        table.add_row(project.main_document.name, main_label)
    table.add_row("Installed Agents", ", ".join(project.installed_agents) or "none")
    console.print(table)

    console.print("\n[bold]Managed Files:[/bold]")
    if not project.managed_files:
        console.print("  [yellow]○[/yellow] No vibe-check files found in current directory")
        return
    for path in sorted(project.managed_files):
        console.print(f"  • [yellow]{_display(path)}[/yellow]")


@app.command(name="list")
def list_templates() -> None:
    """List available agents and languages."""
    try:
        project = _reconciler().status()
    except VibeCheckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if not project.templates_installed:
        console.print("[red]✗[/red] Global templates not installed")
        console.print("[blue]→[/blue] Run 'vibe-check update' to download templates")
        return

    console.print("[bold]Available Agents:[/bold]")
    if not project.agents:
        console.print("  [blue]→[/blue] Single main document works with all agents")
    for name in sorted(project.agents):
        if project.agents[name]:
            console.print(f"  [green]✓[/green] [green]{name}[/green] (installed)")
        else:
            console.print(f"  [blue]○[/blue] {name}")

    console.print("\n[bold]Available Languages:[/bold]")
    for name in sorted(project.languages):
        console.print(f"  • {name}")


@config_app.command("get")
def config_get(key: str = typer.Argument(..., help="Dotted key, e.g. source.url")) -> None:
    """Show a configuration value."""
    try:
        value = UserConfig.load(get_config_path()).get(key)
    except VibeCheckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    console.print(value if value is not None else "[dim](not set)[/dim]")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Dotted key, e.g. source.url"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Set a configuration value."""
    path = get_config_path()
    try:
        config = UserConfig.load(path)
        config.set(key, value)
        config.save(path)
    except VibeCheckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    console.print(f"[green]✓[/green] {key} = {value}")


@config_app.command("unset")
def config_unset(key: str = typer.Argument(..., help="Dotted key, e.g. source.url")) -> None:
    """Remove a configuration value."""
    path = get_config_path()
    try:
        config = UserConfig.load(path)
        config.unset(key)
        config.save(path)
    except VibeCheckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    console.print(f"[green]✓[/green] {key} unset")


@config_app.command("list")
def config_list() -> None:
    """Show every configuration value that is set."""
    try:
        values = UserConfig.load(get_config_path()).items()
    except VibeCheckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if not values:
        console.print("[dim]No configuration values set[/dim]")
        console.print(f"Valid keys: {', '.join(UserConfig.valid_keys())}")
        return
    for key, value in values.items():
        console.print(f"{key} = {value}")


@app.command()
def version() -> None:
    """Show vibe-check version information."""
    console.print(f"vibe-check version {_get_version_string()}")


def main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
