"""
backup_info.txt: the plain-text record of what a backup meant to contain and what it got.
"""
from pathlib import Path
from typing import List

from .models import BackupJob, BackupManifest, EntryOutcome
from .utils import human_size

MANIFEST_NAME = "backup_info.txt"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S UTC"

STATUS_TAGS = {
    "copied": "OK",
    "partial": "PARTIAL",
    "empty": "EMPTY",
    "failed": "FAILED",
}

def _component_block(outcome: EntryOutcome) -> List[str]:
    lines = [
        f"[{STATUS_TAGS[outcome.status]}] {outcome.display_name} ({outcome.category})",
        f"    Id: {outcome.component_id}",
        f"    Detected style: {outcome.summary or 'not detected'}",
        f"    Files: {outcome.file_count} ({human_size(outcome.total_size)})",
    ]
    lines.extend(f"    Copied: {p}" for p in outcome.copied)
    lines.extend(f"    Not found: {p}" for p in outcome.missing)
    lines.extend(f"    Error: {e}" for e in outcome.errors)
    return lines

def render_manifest(manifest: BackupManifest) -> str:
    lines = [
        f"Backup Name: {manifest.name}",
        f"Created: {manifest.created_at.strftime(TIME_FORMAT)}",
        f"Saved at: {manifest.location}",
        f"Status: {manifest.status}",
        f"Components: {len(manifest.outcomes)}",
        "",
    ]
    for outcome in manifest.outcomes:
        lines.extend(_component_block(outcome))
        lines.append("")

    lines.append("Runtime info:")
    lines.extend(f"- {key}: {value}" for key, value in manifest.runtime.items())
    return "\n".join(lines) + "\n"

def write_manifest(manifest: BackupManifest, backup_dir: Path) -> Path:
    path = backup_dir / MANIFEST_NAME
    path.write_text(render_manifest(manifest), encoding="utf-8")
    return path

def verify_integrity(manifest: BackupManifest, job: BackupJob) -> list[str]:
    """Every selected component listed exactly once, nothing else listed."""
    errors = []
    expected = [e.spec.id for e in job.entries if e.selected]
    listed = [o.component_id for o in manifest.outcomes]

    seen = set()
    for component_id in listed:
        if component_id in seen:
            errors.append(f"Component listed twice in manifest: {component_id}")
        seen.add(component_id)
        if component_id not in expected:
            errors.append(f"Unselected component in manifest: {component_id}")

    for component_id in expected:
        if component_id not in seen:
            errors.append(f"Selected component missing from manifest: {component_id}")
    return errors
