"""
Permission prober. Decides, before anything is copied, whether every source
path can be read. A path that does not exist is not a permission problem.
"""
import os
import stat
from pathlib import Path
from typing import Iterable, Optional

from .host import HostEnv
from .models import AccessReport, PathAccess
from .utils import unique_paths

DIR_MODE = os.R_OK | os.X_OK
FILE_MODE = os.R_OK

def _first_blocker(directory: Path, host: HostEnv) -> Optional[Path]:
    """Walk a directory tree and return the first entry the copy could not read."""
    for root, dirnames, filenames in os.walk(directory):
        base = Path(root)
        for name in sorted(dirnames):
            child = base / name
            if child.is_symlink():
                continue
            if not host.can_access(child, DIR_MODE):
                return child
        for name in sorted(filenames):
            child = base / name
            if child.is_symlink():
                continue
            if not host.can_access(child, FILE_MODE):
                return child
    return None

def probe_path(path: Path, host: HostEnv) -> PathAccess:
    path = Path(path)
    try:
        mode = host.stat(path).st_mode
    except PermissionError:
        return PathAccess(
            path=path, exists=True, accessible=False, kind="unknown",
            reason="cannot traverse parent", blocker=host.first_untraversable(path) or path.parent,
        )
    except OSError:
        return PathAccess(path=path, exists=False, accessible=True, kind="missing")

    if stat.S_ISDIR(mode):
        if not host.can_access(path, DIR_MODE):
            return PathAccess(
                path=path, exists=True, accessible=False, kind="directory",
                reason="cannot list directory", blocker=path,
            )
        blocker = _first_blocker(path, host)
        if blocker is not None:
            return PathAccess(
                path=path, exists=True, accessible=False, kind="directory",
                reason=f"cannot read {blocker}", blocker=blocker,
            )
        return PathAccess(path=path, exists=True, accessible=True, kind="directory")

    if stat.S_ISREG(mode):
        if not host.can_access(path, FILE_MODE):
            return PathAccess(
                path=path, exists=True, accessible=False, kind="file",
                reason="cannot read file", blocker=path,
            )
        return PathAccess(path=path, exists=True, accessible=True, kind="file")

    # Sockets, fifos and devices are never copied.
    return PathAccess(path=path, exists=True, accessible=True, kind="other", reason="not a regular file")

def probe(paths: Iterable[Path], host: HostEnv) -> AccessReport:
    """Classify each path; always a fresh look at the filesystem."""
    return AccessReport(entries=[probe_path(p, host) for p in unique_paths(paths)])
