"""
Rich Terminal UI components.
Renders selection lists, permission reports and backup summaries, with an ASCII fallback.
"""
import sys
from contextlib import contextmanager
from typing import Dict, Generator, List

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import AccessReport, BackupManifest
from .utils import human_size

# Detect ASCII fallback
try:
    "\U0001f4e6".encode(sys.stdout.encoding or "utf-8")
    HAS_UNICODE = True
except (UnicodeEncodeError, LookupError):
    HAS_UNICODE = False

ICONS: Dict[str, str] = {
    "detect": "\U0001f50d",
    "backup": "\U0001f4e6",
    "lock": "\U0001f512",
    "clipboard": "\U0001f4cb",
    "success": "✅",
    "error": "❌",
    "warn": "⚠️",
    "info": "ℹ️",
    "doctor": "\U0001fa7a",
    "escalate": "\U0001f6e1️",
    "manifest": "\U0001f4dc",
}

ASCII_ICONS: Dict[str, str] = {
    "detect": "[DET]",
    "backup": "[BAK]",
    "lock": "[PERM]",
    "clipboard": "[CLIP]",
    "success": "[OK]",
    "error": "[ERR]",
    "warn": "[WARN]",
    "info": "[INF]",
    "doctor": "[DOC]",
    "escalate": "[SUDO]",
    "manifest": "[MNF]",
}

STATUS_STYLES: Dict[str, str] = {
    "copied": "[bold green]OK[/]",
    "partial": "[bold yellow]PARTIAL[/]",
    "empty": "[dim]EMPTY[/]",
    "failed": "[bold red]FAILED[/]",
}

def icon(name: str) -> str:
    return ICONS.get(name, "") if HAS_UNICODE else ASCII_ICONS.get(name, "")

console = Console(width=120)
err_console = Console(stderr=True, width=120)

def render_banner() -> None:
    """Render the ThemeCrate title panel."""
    banner_text = Text("THEMECRATE", style="bold color(39)")
    banner_text.append("\nDesktop theme and configuration backup", style="dim magenta")
    console.print(Panel(banner_text, border_style="cyan", expand=False))

def render_status(action: str, message: str, style: str = "white") -> None:
    """Print a single line status update."""
    i = icon(action)
    console.print(f"{i} [{style}]{message}[/]")

def render_error(message: str) -> None:
    """Print a styled error panel."""
    i = icon("error")
    err_console.print()
    err_console.print(Panel(Text(message, style="red"), border_style="red", expand=False, title=f"{i} ERROR"))

def render_warning(message: str) -> None:
    """Print a styled warning panel."""
    i = icon("warn")
    console.print()
    console.print(Panel(Text(message, style="yellow"), border_style="yellow", expand=False, title=f"{i} WARNING"))

def render_text_block(title: str, text: str) -> None:
    """Print a block of copyable text between rules, unwrapped so it survives a paste."""
    console.print()
    console.rule(f"[bold cyan]{escape(title)}[/]")
    console.print(Text(text), soft_wrap=True)
    console.rule(style="cyan")

def confirm(prompt_text: str, default: bool = False) -> bool:
    """Interactive confirmation prompt."""
    i = icon("warn")
    return typer.confirm(f"{i} {prompt_text}", default=default)

def render_table(title: str, headers: List[str], rows: List[List[str]]) -> None:
    """Render a structured Rich Table with auto-wrap fixes."""
    console.print()
    table = Table(
        title=title,
        border_style="cyan",
        header_style="bold magenta",
        show_lines=True,
        box=box.ROUNDED if HAS_UNICODE else box.ASCII
    )

    if headers:
        table.add_column(headers[0], justify="center", no_wrap=True)
        for h in headers[1:]:
            table.add_column(h, justify="left", overflow="fold")

    for r in rows:
        table.add_row(*r)

    console.print(table)
    console.print()

def render_selection(state) -> None:
    """Render the component checklist with the cursor row highlighted."""
    rows = []
    for index, entry in enumerate(state.entries):
        mark = "[x]" if entry.selected else "[ ]"
        pointer = ">" if index == state.cursor else " "
        name = escape(entry.spec.display_name)
        if index == state.cursor:
            name = f"[reverse]{name}[/]"
        style = f"[cyan]{escape(entry.detected.summary)}[/]" if entry.detected.summary else "[dim](none detected)[/]"
        rows.append([f"{pointer}{index + 1}", f"{escape(mark)} {name}\n[dim]{escape(entry.spec.description)}[/]", escape(entry.spec.category), style])
    render_table("Select Components", ["#", "Component", "Category", "Current Style"], rows)

def render_access_report(report: AccessReport) -> None:
    rows = []
    for entry in report.entries:
        if not entry.exists:
            status = "[dim]ABSENT[/]"
        elif entry.accessible:
            status = "[bold green]READABLE[/]"
        else:
            status = "[bold red]BLOCKED[/]"
        rows.append([status, escape(str(entry.path)), escape(entry.reason)])
    render_table("Permission Check", ["Status", "Path", "Details"], rows)

def render_backup_summary(manifest: BackupManifest) -> None:
    """Render per-component outcomes and the overall result."""
    rows = []
    for outcome in manifest.outcomes:
        detail = escape("\n".join(outcome.errors)) if outcome.errors else f"{outcome.file_count} files, {human_size(outcome.total_size)}"
        rows.append([STATUS_STYLES[outcome.status], escape(outcome.display_name), escape(outcome.summary or "not detected"), detail])
    if rows:
        render_table(f"Backup '{manifest.name}'", ["Status", "Component", "Style", "Details"], rows)

    if manifest.status == "complete":
        render_status("success", f"Backup saved at {escape(str(manifest.location))}", "bold green")
    elif manifest.status == "partial":
        render_status("warn", f"Backup saved with warnings at {escape(str(manifest.location))}", "bold yellow")
    else:
        render_status("error", f"No component could be copied. Details in {escape(str(manifest.location))}", "bold red")

@contextmanager
def render_progress(title: str = "Operation in progress...") -> Generator[None, None, None]:
    """Spinner shown while a blocking step runs."""
    with console.status(f"[bold cyan]{title}[/]", spinner="dots2"):
        yield
