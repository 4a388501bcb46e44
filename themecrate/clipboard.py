"""
Best-effort clipboard access through the usual X11/Wayland command line tools.
"""
import subprocess
from typing import Callable, List, Optional, Sequence

from .errors import ClipboardError
from .models import DEFAULT_CLIPBOARD_COMMANDS
from .ui import icon, render_status, render_text_block

Runner = Callable[..., subprocess.CompletedProcess]

def copy_to_clipboard(
    text: str,
    commands: Optional[Sequence[Sequence[str]]] = None,
    runner: Runner = subprocess.run,
) -> str:
    """Pipe text into the first clipboard tool that accepts it. Returns the tool used."""
    failures: List[str] = []
    for argv in commands or DEFAULT_CLIPBOARD_COMMANDS:
        try:
            result = runner(list(argv), input=text, text=True, capture_output=True, timeout=5, check=False)
        except (OSError, subprocess.TimeoutExpired) as e:
            failures.append(f"{argv[0]}: {e}")
            continue
        if result.returncode == 0:
            return argv[0]
        failures.append(f"{argv[0]}: exit {result.returncode}")
    raise ClipboardError("No clipboard utility accepted the text (" + "; ".join(failures) + ")")

def offer_text(
    text: str,
    title: str,
    commands: Optional[Sequence[Sequence[str]]] = None,
    runner: Runner = subprocess.run,
) -> bool:
    """
    Put text on the clipboard, or print it when that is not possible.
    Returns True when the clipboard was used.
    """
    try:
        tool = copy_to_clipboard(text, commands, runner)
    except ClipboardError:
        render_text_block(title, text)
        render_status("clipboard", "Clipboard unavailable, commands printed above.", "yellow")
        return False
    render_status("clipboard", f"{title} copied to clipboard ({tool}).", "green")
    return True
