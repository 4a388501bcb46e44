"""
Command Line Interface entry point using Typer.
"""
import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape

from .audit import AuditLogger, get_audit_log
from .backup import create_job, execute, validate_backup_name
from .config import expand_user_path, get_config_path, load_settings, resolve_backup_root, save_settings
from .errors import BackupError, ConfigError, RegistryError, ResolutionError, ThemeCrateError
from .host import HostEnv
from .manifest import verify_integrity
from .models import ComponentSpec, ResumeState, Settings, Strategy
from .probe import probe
from .registry import load_registry
from .resolution import ResolutionEngine, ResolutionState, selected_paths
from .selection import SelectionState, build_selection, restore_selection
from .ui import (
    confirm,
    console,
    render_access_report,
    render_backup_summary,
    render_banner,
    render_error,
    render_progress,
    render_selection,
    render_status,
    render_table,
    render_warning,
)
from .utils import timestamp_id

VERSION = "1.0.0"

EXIT_CANCELLED = 1
EXIT_BACKUP_FAILED = 2

SELECTION_HELP = "numbers toggle (e.g. 1 3 5-7), j/k move, x toggles cursor row, a=all, n=none, Enter=continue, q=quit"

app = typer.Typer(
    help=(
        "[bold cyan]THEMECRATE[/] [dim]v1.0[/]\n\n"
        "Inspect the active desktop theme and configuration, pick what to keep, "
        "and save it as an organized backup folder."
    ),
    no_args_is_help=True,
    rich_markup_mode="rich"
)

def _load_settings() -> Settings:
    try:
        return load_settings()
    except ConfigError as e:
        render_error(str(e))
        raise typer.Exit(EXIT_CANCELLED)

def _split_ids(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]

def _registry(settings: Settings) -> List[ComponentSpec]:
    try:
        return load_registry(settings)
    except RegistryError as e:
        render_error(str(e))
        raise typer.Exit(EXIT_CANCELLED)

def _detect_selection(settings: Settings, host: HostEnv) -> SelectionState:
    components = _registry(settings)
    with render_progress("Detecting active desktop styles..."):
        return build_selection(components, host)

def _prompt_backup_root(default: Path, home: Path) -> Path:
    """Ask where the backup folder goes, showing what the default already holds."""
    try:
        existing = sorted(p.name for p in default.iterdir() if p.is_dir()) if default.is_dir() else []
    except OSError:
        existing = []
    if existing:
        render_status("info", f"Already in {escape(str(default))}: {escape(', '.join(existing))}", "dim")

    while True:
        answer = typer.prompt("Backup directory", default=str(default))
        candidate = expand_user_path(answer.strip() or str(default), home)
        if candidate.exists() and not candidate.is_dir():
            render_warning(f"'{candidate}' exists and is not a directory.")
            continue
        return candidate

def _preselect(state: SelectionState, select: Optional[str], select_all: bool) -> None:
    if select_all:
        state.set_all(True)
        return
    unknown = state.select_only(_split_ids(select))
    if unknown:
        known = ", ".join(e.spec.id for e in state)
        render_error(f"Unknown component id(s): {', '.join(unknown)}. Known ids: {known}")
        raise typer.Exit(EXIT_CANCELLED)

def _parse_positions(token: str) -> List[int]:
    """'3' -> [2]; '2-4' -> [1, 2, 3]. Positions are 1-based on screen."""
    start, sep, end = token.partition("-")
    if not sep:
        return [int(token) - 1]
    return list(range(int(start) - 1, int(end)))

def apply_selection_input(state: SelectionState, text: str) -> str:
    """
    Apply one line of user input to the selection.
    Returns 'done', 'quit' or 'continue'.
    """
    command = text.strip().lower()
    if not command:
        return "done"
    if command in ("q", "quit"):
        return "quit"
    if command == "a":
        state.set_all(True)
    elif command == "n":
        state.set_all(False)
    elif command in ("j", "down"):
        state.move_cursor(1)
    elif command in ("k", "up"):
        state.move_cursor(-1)
    elif command in ("x", "space"):
        if len(state):
            state.toggle()
    else:
        for token in command.replace(",", " ").split():
            try:
                positions = _parse_positions(token)
            except ValueError:
                render_warning(f"Not understood: '{token}'. Use {SELECTION_HELP}.")
                return "continue"
            for index in positions:
                try:
                    state.toggle(index)
                except IndexError as e:
                    render_warning(str(e))
                    return "continue"
    return "continue"

def _interactive_select(state: SelectionState) -> bool:
    while True:
        render_selection(state)
        raw = typer.prompt(f"Select ({SELECTION_HELP})", default="", show_default=False)
        action = apply_selection_input(state, raw)
        if action == "done":
            return True
        if action == "quit":
            return False

def _render_summary(state: SelectionState, name: str, root: Path) -> None:
    rows = []
    for entry in state.selected_entries():
        rows.append(["[green]+[/]", escape(entry.spec.display_name), escape(entry.detected.summary or "not detected")])
    render_status("backup", f"Backup '{escape(name)}' will be written to {escape(str(root / name))}", "bold cyan")
    if rows:
        render_table("Components to include", ["", "Component", "Current Style"], rows)
    else:
        render_warning("No components selected: only a manifest will be written.")

def _prompt_strategy(engine: ResolutionEngine):
    """Ask the user how to deal with blocked paths."""
    render_access_report(engine.report)
    options = {}
    if engine.can_escalate:
        options["1"] = (Strategy.ESCALATE, "Re-run with elevated privileges")
    options["2"] = (Strategy.COMMANDS, "Copy chmod commands to clipboard")
    if engine.commands:
        options["3"] = (Strategy.RETRY, "Check permissions again")
    options["q"] = (Strategy.ABORT, "Cancel")

    for key, (_, label) in options.items():
        console.print(f"  [bold yellow]{key}[/]. {label}")
    while True:
        answer = typer.prompt("Choose", default="q").strip().lower()
        if answer in options:
            return engine.make_choice(options[answer][0])
        render_warning(f"Choose one of: {', '.join(options)}")

@app.command(name="create")
def create(
    select: Optional[str] = typer.Option(None, "--select", "-s", help="Comma separated component ids"),
    select_all: bool = typer.Option(False, "--all", help="Select every component"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Backup folder name"),
    root: Optional[str] = typer.Option(None, "--root", "-r", help="Directory that receives backups"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    resume: Optional[str] = typer.Option(None, "--resume", hidden=True),
    home: Optional[str] = typer.Option(None, "--home", hidden=True),
):
    """
    Detect, select and back up desktop configuration.
    """
    render_banner()
    settings = _load_settings()

    resume_state = None
    if resume:
        try:
            resume_state = ResumeState.decode(resume)
        except ResolutionError as e:
            render_error(str(e))
            raise typer.Exit(EXIT_CANCELLED)
        home = resume_state.home or home

    host = HostEnv.live(home=home, query_timeout=settings.query_timeout)
    audit = AuditLogger()

    if resume_state is not None:
        render_status("escalate", "Resuming with elevated privileges.", "bold yellow")
        state, unknown = restore_selection(_registry(settings), host, resume_state)
        if unknown:
            render_warning(f"Ignoring unknown component id(s): {', '.join(unknown)}")
        name = resume_state.name
        root = resume_state.root
        yes = True
    else:
        state = _detect_selection(settings, host)
        audit.log("detect", home=str(host.home), detected=[e.spec.id for e in state if e.detected.detected])
        if select or select_all:
            _preselect(state, select, select_all)
        elif not _interactive_select(state):
            render_status("info", "Cancelled. Nothing was written.")
            raise typer.Exit(EXIT_CANCELLED)

    if not name:
        name = typer.prompt("Backup name", default=f"theme_{timestamp_id()}")
    try:
        name = validate_backup_name(name)
    except BackupError as e:
        render_error(str(e))
        raise typer.Exit(EXIT_CANCELLED)

    if root:
        root_path = expand_user_path(root, host.home)
    elif yes:
        root_path = resolve_backup_root(settings, host.home)
    else:
        root_path = _prompt_backup_root(resolve_backup_root(settings, host.home), host.home)

    _render_summary(state, name, root_path)
    if not yes and not confirm("Create this backup?", default=True):
        render_status("info", "Cancelled. Nothing was written.")
        raise typer.Exit(EXIT_CANCELLED)

    engine = ResolutionEngine(
        state, name, root_path, host, settings,
        escalated=resume_state is not None,
        audit=audit,
    )
    final = engine.run(_prompt_strategy)
    if final == ResolutionState.DELEGATED:
        render_status("success", "Elevated run finished the backup.", "bold green")
        return
    if final == ResolutionState.ABORTED:
        render_error(str(engine.error) if engine.error else "Backup aborted. Nothing was written.")
        raise typer.Exit(EXIT_CANCELLED)

    job = create_job(state, name, root_path)
    try:
        with render_progress(f"Copying {len(job.entries)} component(s)..."):
            manifest = execute(job, host, audit)
    except BackupError as e:
        render_error(str(e))
        raise typer.Exit(EXIT_BACKUP_FAILED)

    for problem in verify_integrity(manifest, job):
        render_warning(problem)
    render_backup_summary(manifest)
    if manifest.status == "failed":
        raise typer.Exit(EXIT_BACKUP_FAILED)

@app.command(name="detect")
def detect_cmd(
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format.")
):
    """Show the currently active style of every component."""
    settings = _load_settings()
    host = HostEnv.live(query_timeout=settings.query_timeout)
    state = _detect_selection(settings, host)

    if json_output:
        data = [
            {
                "id": e.spec.id,
                "name": e.spec.display_name,
                "category": e.spec.category,
                "summary": e.detected.summary,
                "paths": [str(p) for p in e.detected.paths],
            }
            for e in state
        ]
        print(json.dumps(data, indent=2))
        return

    render_banner()
    rows = []
    for e in state:
        summary = escape(e.detected.summary) if e.detected.summary else "[dim]not detected[/]"
        paths = "\n".join(escape(str(p)) for p in e.detected.paths) or "[dim]none on this host[/]"
        rows.append([escape(e.spec.id), escape(e.spec.display_name), escape(e.spec.category), summary, paths])
    render_table("Detected Styles", ["Id", "Component", "Category", "Current Style", "Source Paths"], rows)

@app.command(name="probe")
def probe_cmd(
    select: Optional[str] = typer.Option(None, "--select", "-s", help="Comma separated component ids (default: all)"),
):
    """Check read access to the source paths without copying anything."""
    render_banner()
    settings = _load_settings()
    host = HostEnv.live(query_timeout=settings.query_timeout)
    state = _detect_selection(settings, host)
    _preselect(state, select, select_all=not select)

    report = probe(selected_paths(state, host), host)
    render_access_report(report)
    if report.clean:
        render_status("success", "Every source path is readable.", "bold green")
    else:
        render_status("lock", f"{len(report.inaccessible)} path(s) blocked.", "bold red")
        raise typer.Exit(EXIT_CANCELLED)

@app.command(name="doctor")
def run_doctor():
    """Run the diagnostic suite."""
    render_banner()
    from .doctor import run_diagnostics
    settings = _load_settings()
    host = HostEnv.live(query_timeout=settings.query_timeout)
    with render_progress("Running diagnostic checks..."):
        results = run_diagnostics(settings, host)

    rows = []
    for r in results:
        status_text = "[bold green]PASS[/]" if r.status == "pass" else "[bold yellow]WARN[/]" if r.status == "warn" else "[bold red]FAIL[/]"
        rows.append([status_text, r.name, escape(r.detail)])

    render_table("ThemeCrate Doctor", ["Status", "Check", "Details"], rows)

@app.command(name="log")
def show_log(last_n: int = typer.Option(50, "--last", "-n", help="Number of recent events to show")):
    """Show recent activity log events."""
    render_banner()
    events = get_audit_log(last_n)
    if not events:
        render_status("info", "No activity recorded yet.")
        return

    rows = []
    for e in events:
        rows.append([e.get("timestamp", ""), e.get("event", ""), escape(json.dumps(e.get("details", {})))])

    render_table("Activity Log", ["Timestamp", "Event", "Details"], rows)

@app.command(name="config")
def config_cmd(
    backup_root: Optional[str] = typer.Option(None, "--backup-root", help="Set the default backup directory"),
):
    """Show or update the configuration."""
    settings = _load_settings()
    if backup_root is not None:
        settings.backup_root = backup_root
        try:
            path = save_settings(settings)
        except (OSError, ThemeCrateError) as e:
            render_error(f"Failed to save settings: {e}")
            raise typer.Exit(EXIT_CANCELLED)
        render_status("success", f"Settings saved to {escape(str(path))}", "green")
        return

    console.print(f"[dim]{escape(str(get_config_path()))}[/]")
    console.print_json(settings.model_dump_json())

@app.command(name="version")
def version_cmd():
    """Display ThemeCrate version information."""
    from rich.panel import Panel
    console.print(Panel(f"[bold cyan]THEMECRATE[/] v{VERSION}\n[dim]Desktop theme and configuration backup[/]", border_style="cyan", expand=False))

if __name__ == "__main__":
    app()
