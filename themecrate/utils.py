"""
Core utilities for ThemeCrate.
"""
import os
import time
from pathlib import Path
from typing import Iterable, List, Tuple


def validate_path(path: str | Path, base_dir: str | Path) -> Path:
    """
    Resolve a path and ensure it falls strictly under the base_dir to prevent directory traversal.
    """
    resolved_path = Path(path).resolve()
    resolved_base = Path(base_dir).resolve()

    if resolved_path == resolved_base or resolved_base not in resolved_path.parents:
        from .errors import InvalidBackupNameError
        raise InvalidBackupNameError(f"Path '{path}' escapes base directory '{base_dir}'.")
    return resolved_path

def unique_paths(paths: Iterable[Path]) -> List[Path]:
    """Drop duplicates, keeping first-seen order."""
    seen = set()
    result = []
    for p in paths:
        if p not in seen:
            seen.add(p)
            result.append(p)
    return result

def directory_stats(path: Path) -> Tuple[int, int]:
    """Count files and bytes below a path without following symlinks."""
    if not path.exists():
        return 0, 0
    if path.is_file():
        return 1, path.lstat().st_size
    count = 0
    size = 0
    for root, _, files in os.walk(path):
        for name in files:
            count += 1
            size += (Path(root) / name).lstat().st_size
    return count, size

def human_size(nbytes: int) -> str:
    """Convert bytes to a human-readable string (e.g. 1.2 MiB)."""
    if nbytes == 0:
        return "0 B"
    suffixes = ["B", "KiB", "MiB", "GiB", "TiB", "PiB"]
    i = 0
    size = float(nbytes)
    while size >= 1024 and i < len(suffixes) - 1:
        size /= 1024.0
        i += 1
    if i == 0:
        return f"{int(size)} {suffixes[i]}"
    return f"{size:.1f} {suffixes[i]}"

def timestamp_id() -> str:
    """Return a YYYYMMDD_HHMMSS formatted string."""
    return time.strftime("%Y%m%d_%H%M%S")
