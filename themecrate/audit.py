"""
Activity logging with structured JSON-Lines.
"""
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .config import get_config_dir

LOG_NAME = "activity.jsonl"


class AuditLogger:
    """Appends one JSON object per pipeline event. Logging never breaks the pipeline."""
    def __init__(self, log_file: Optional[Path] = None):
        self.log_file = log_file or get_config_dir() / LOG_NAME

    def log(self, event_type: str, **kwargs: Any) -> None:
        """Log a structured operation event."""
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": event_type,
            "details": kwargs
        }
        line = json.dumps(entry, default=str) + "\n"

        try:
            with self.log_file.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            sys.stderr.write(f"[ThemeCrate Log Error] Failed to write log: {e}\n")
            try:
                fallback = self.log_file.with_name("activity_fallback.log")
                with fallback.open("a", encoding="utf-8") as f:
                    f.write(line)
            except OSError:
                pass

def get_audit_log(last_n: int = 50, log_file: Optional[Path] = None) -> list[Dict[str, Any]]:
    """Retrieve the last N events from the activity log."""
    log_file = log_file or get_config_dir() / LOG_NAME
    if not log_file.exists():
        return []

    try:
        with log_file.open("r", encoding="utf-8") as f:
            lines = f.readlines()
    except OSError:
        return []

    parsed = []
    for line in lines[-last_n:] if last_n > 0 else []:
        if not line.strip():
            continue
        try:
            parsed.append(json.loads(line))
        except ValueError:
            continue
    return parsed
