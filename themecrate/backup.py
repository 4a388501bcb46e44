"""
Backup executor. Copies each selected component into its own folder under
<root>/<name>/ and writes backup_info.txt. Components fail independently.
"""
import os
import shutil
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from .audit import AuditLogger
from .errors import BackupError, BackupExistsError, BackupRootError, InvalidBackupNameError
from .host import HostEnv
from .manifest import write_manifest
from .models import BackupJob, BackupManifest, EntryOutcome, SelectionEntry
from .probe import probe_path
from .registry import resolve_sources
from .selection import SelectionState
from .utils import directory_stats, validate_path

def validate_backup_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned or cleaned in (".", "..") or "/" in cleaned or "\\" in cleaned or "\0" in cleaned:
        raise InvalidBackupNameError(f"Invalid backup name {name!r}: must be a single folder name.")
    return cleaned

def create_job(selection: SelectionState, name: str, root: Path, created_at: Optional[datetime] = None) -> BackupJob:
    return BackupJob(
        name=validate_backup_name(name),
        root=Path(root),
        entries=[e.model_copy(deep=True) for e in selection.selected_entries()],
        created_at=created_at or datetime.now(timezone.utc),
    )

def destination_for(source: Path, component_dir: Path, host: HostEnv) -> Path:
    """Home paths land under home/, everything else under system/ with its full path."""
    if source == host.home or host.home in source.parents:
        return component_dir / "home" / source.relative_to(host.home)
    if host.root in source.parents:
        return component_dir / "system" / source.relative_to(host.root)
    return component_dir / "system" / source.relative_to(source.anchor)

def _special_file_filter(skipped: List[Path]) -> Callable[[str, List[str]], List[str]]:
    """copytree ignore hook that leaves out sockets, fifos and devices."""
    def ignore(directory: str, names: List[str]) -> List[str]:
        ignored = []
        for name in names:
            path = Path(directory) / name
            try:
                mode = path.lstat().st_mode
            except OSError:
                continue
            if not (stat.S_ISDIR(mode) or stat.S_ISREG(mode) or stat.S_ISLNK(mode)):
                ignored.append(name)
                skipped.append(path)
        return ignored
    return ignore

def copy_path(source: Path, target: Path) -> List[Path]:
    """Copy a file or tree. Returns the special files left behind."""
    skipped: List[Path] = []
    if source.is_dir():
        shutil.copytree(source, target, symlinks=True, dirs_exist_ok=True, ignore=_special_file_filter(skipped))
    else:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
    return skipped

def _copy_entry(entry: SelectionEntry, backup_dir: Path, host: HostEnv) -> EntryOutcome:
    spec = entry.spec
    component_dir = backup_dir / spec.dest_subfolder

    copied: List[Path] = []
    missing: List[Path] = []
    errors: List[str] = []
    try:
        component_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        errors.append(f"create {component_dir}: {e}")
        return _outcome(entry, "failed", copied, missing, errors)

    # Resolved again now; the host may have changed since detection.
    for source in resolve_sources(spec, host, entry.detected.value):
        access = probe_path(source, host)
        if not access.exists:
            missing.append(source)
            continue
        if access.kind == "other":
            errors.append(f"skip {source}: {access.reason}")
            continue
        if not access.accessible:
            errors.append(f"read {source}: permission denied ({access.reason})")
            continue
        try:
            skipped = copy_path(source, destination_for(source, component_dir, host))
        except (OSError, shutil.Error) as e:
            errors.append(f"copy {source}: {e}")
            continue
        errors.extend(f"skip {path}: not a regular file" for path in skipped)
        copied.append(source)

    if copied:
        status = "partial" if errors else "copied"
    elif errors:
        status = "failed"
        shutil.rmtree(component_dir, ignore_errors=True)
    else:
        status = "empty"
    return _outcome(entry, status, copied, missing, errors, component_dir)

def _outcome(
    entry: SelectionEntry,
    status: str,
    copied: List[Path],
    missing: List[Path],
    errors: List[str],
    component_dir: Optional[Path] = None,
) -> EntryOutcome:
    file_count, total_size = directory_stats(component_dir) if component_dir is not None else (0, 0)
    return EntryOutcome(
        component_id=entry.spec.id,
        display_name=entry.spec.display_name,
        category=entry.spec.category,
        summary=entry.detected.summary,
        status=status,
        copied=copied,
        missing=missing,
        errors=errors,
        file_count=file_count,
        total_size=total_size,
    )

def _runtime_info(host: HostEnv) -> dict:
    return {
        "USER": host.getenv("USER") or "unknown",
        "HOME": str(host.home),
        "SUDO_USER": host.getenv("SUDO_USER") or "not set",
    }

def _restore_ownership(backup_dir: Path, host: HostEnv) -> None:
    """When run through sudo, hand the backup back to the invoking user."""
    uid = host.getenv("SUDO_UID")
    gid = host.getenv("SUDO_GID")
    if not (host.is_elevated and uid and gid and uid.isdigit() and gid.isdigit()):
        return
    for root, dirs, files in os.walk(backup_dir):
        for name in dirs + files:
            os.lchown(Path(root) / name, int(uid), int(gid))
    os.lchown(backup_dir, int(uid), int(gid))

def execute(job: BackupJob, host: HostEnv, audit: Optional[AuditLogger] = None) -> BackupManifest:
    """
    Run a backup job. Raises BackupRootError/BackupExistsError when the backup
    directory itself cannot be used; per-component problems end up in the manifest.
    """
    name = validate_backup_name(job.name)
    root = Path(job.root)
    backup_dir = validate_path(root / name, root)

    if backup_dir.exists() and (not backup_dir.is_dir() or any(backup_dir.iterdir())):
        raise BackupExistsError(f"Backup destination '{backup_dir}' already exists and is not empty.")
    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BackupRootError(f"Cannot create backup directory '{backup_dir}': {e}") from e

    if audit is not None:
        audit.log("backup_start", name=name, location=str(backup_dir), components=[e.spec.id for e in job.entries])

    outcomes = []
    for entry in job.entries:
        outcome = _copy_entry(entry, backup_dir, host)
        if audit is not None:
            audit.log("backup_entry", component=outcome.component_id, status=outcome.status, errors=outcome.errors)
        outcomes.append(outcome)

    manifest = BackupManifest(
        name=name,
        created_at=job.created_at,
        location=backup_dir,
        outcomes=outcomes,
        runtime=_runtime_info(host),
    )
    try:
        write_manifest(manifest, backup_dir)
        _restore_ownership(backup_dir, host)
    except OSError as e:
        if audit is not None:
            audit.log("backup_failed", name=name, error=str(e))
        raise BackupError(f"Copied files to '{backup_dir}' but could not write its manifest: {e}") from e

    if audit is not None:
        audit.log("backup_complete", name=name, status=manifest.status)
    return manifest
