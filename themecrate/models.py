"""
Pydantic v2 data models for ThemeCrate.
"""
import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ResolutionError


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)

# Detection methods. Each variant is a plain record; dispatch lives in detect.py.

class SettingsQuery(FrozenModel):
    """Ask a desktop settings backend (gsettings, kreadconfig) for a key."""
    kind: Literal["settings"] = "settings"
    label: str
    backend: Literal["gsettings", "kreadconfig5", "kreadconfig6"] = "gsettings"
    namespace: str  # gsettings schema or KConfig group
    key: str
    file: Optional[str] = None  # kreadconfig --file
    skip_values: List[str] = Field(default_factory=list)

class ConfigValue(FrozenModel):
    """Read one value out of a config file, by INI key or by regex."""
    kind: Literal["config"] = "config"
    label: str
    path: str
    key: Optional[str] = None
    section: Optional[str] = None
    separator: str = "="
    pattern: Optional[str] = None
    skip_values: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_lookup(self) -> "ConfigValue":
        if (self.key is None) == (self.pattern is None):
            raise ValueError("Exactly one of 'key' or 'pattern' must be set")
        return self

class DirectoryScan(FrozenModel):
    """Report a linked or matching entry from a list of directories."""
    kind: Literal["dirscan"] = "dirscan"
    label: str
    directories: List[str]
    contains: Optional[str] = None
    link: Optional[str] = None

class EnvValue(FrozenModel):
    kind: Literal["env"] = "env"
    label: str
    variable: str
    value: Optional[str] = None  # reported as-is when the variable is set
    basename: bool = False

DetectionMethod = Annotated[
    Union[SettingsQuery, ConfigValue, DirectoryScan, EnvValue],
    Field(discriminator="kind"),
]

class ComponentSpec(FrozenModel):
    id: str = Field(..., pattern=r"^[a-z0-9][a-z0-9_-]*$")
    display_name: str
    category: str
    description: str = ""
    detectors: List[DetectionMethod] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    dest_subfolder: str = Field(default="", validate_default=True)

    @field_validator("dest_subfolder")
    @classmethod
    def default_subfolder(cls, v: str, info) -> str:
        if not v:
            v = "".join("_" if ch in " /" else ch for ch in info.data.get("display_name", ""))
        if not v or v in (".", "..") or "/" in v or "\\" in v:
            raise ValueError(f"Invalid destination subfolder: {v!r}")
        return v

    def source_paths(self, host, value: Optional[str] = None) -> List[Path]:
        """Existing paths on this host that hold this component, in template order."""
        from .registry import resolve_sources
        return [p for p in resolve_sources(self, host, value) if host.exists(p)]

class DetectedStyle(FrozenModel):
    component_id: str
    summary: Optional[str] = None
    value: Optional[str] = None
    paths: List[Path] = Field(default_factory=list)

    @property
    def detected(self) -> bool:
        return self.summary is not None

class SelectionEntry(BaseModel):
    spec: ComponentSpec
    detected: DetectedStyle
    selected: bool = False

# Permission probing

class PathAccess(FrozenModel):
    path: Path
    exists: bool
    accessible: bool
    kind: Literal["file", "directory", "missing", "other", "unknown"]  # unknown: hidden behind a closed parent
    reason: str = ""
    blocker: Optional[Path] = None  # nested path that failed the check

class AccessReport(FrozenModel):
    entries: List[PathAccess] = Field(default_factory=list)

    @property
    def inaccessible(self) -> List[PathAccess]:
        return [e for e in self.entries if not e.accessible]

    @property
    def clean(self) -> bool:
        return not self.inaccessible

# Resolution

class Strategy(str, Enum):
    ESCALATE = "escalate"
    COMMANDS = "commands"
    RETRY = "retry"
    ABORT = "abort"

class ResumeState(FrozenModel):
    """Selection and naming carried across a privileged re-execution."""
    name: str
    root: str
    selected: List[str] = Field(default_factory=list)
    home: Optional[str] = None
    # Detection as the invoking user saw it; root would read its own desktop settings.
    values: Dict[str, str] = Field(default_factory=dict)
    summaries: Dict[str, str] = Field(default_factory=dict)

    def encode(self) -> str:
        return self.model_dump_json()

    @classmethod
    def decode(cls, payload: str) -> "ResumeState":
        try:
            return cls(**json.loads(payload))
        except (ValueError, TypeError, ValidationError) as e:
            raise ResolutionError(f"Invalid resume state: {e}") from e

class ResolutionChoice(FrozenModel):
    strategy: Strategy
    resume: ResumeState

# Backup

class BackupJob(FrozenModel):
    name: str
    root: Path
    entries: List[SelectionEntry] = Field(default_factory=list)
    created_at: datetime

class EntryOutcome(FrozenModel):
    component_id: str
    display_name: str
    category: str
    summary: Optional[str] = None
    status: Literal["copied", "partial", "empty", "failed"]
    copied: List[Path] = Field(default_factory=list)
    missing: List[Path] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    file_count: int = 0
    total_size: int = 0

class BackupManifest(FrozenModel):
    name: str
    created_at: datetime
    location: Path
    outcomes: List[EntryOutcome] = Field(default_factory=list)
    runtime: Dict[str, str] = Field(default_factory=dict)

    @property
    def status(self) -> Literal["complete", "partial", "failed"]:
        failed = [o for o in self.outcomes if o.status == "failed"]
        if not failed and all(o.status != "partial" for o in self.outcomes):
            return "complete"
        if len(failed) == len(self.outcomes):
            return "failed"
        return "partial"

# Configuration

DEFAULT_CLIPBOARD_COMMANDS: List[List[str]] = [
    ["xclip", "-selection", "clipboard"],
    ["wl-copy"],
    ["xsel", "--clipboard", "--input"],
]

class Settings(BaseModel):
    backup_root: str = "~/CustomThemes"
    elevators: List[str] = Field(default_factory=lambda: ["sudo", "pkexec", "doas"])
    clipboard_commands: List[List[str]] = Field(default_factory=lambda: [list(c) for c in DEFAULT_CLIPBOARD_COMMANDS])
    query_timeout: float = Field(default=3.0, gt=0)
    extra_components: List[ComponentSpec] = Field(default_factory=list)

class DoctorCheck(FrozenModel):
    name: str
    status: Literal["pass", "warn", "fail"]
    detail: str
