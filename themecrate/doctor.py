"""
Doctor diagnostic suite: what this host offers for detection, clipboard and escalation.
"""
import importlib.metadata
import os
import shutil
from pathlib import Path
from typing import List

from .config import get_config_dir, resolve_backup_root
from .errors import RegistryError
from .host import HostEnv
from .models import DoctorCheck, Settings
from .registry import load_registry
from .resolution import find_elevator

SETTINGS_BACKENDS = ["gsettings", "kreadconfig5", "kreadconfig6"]
DEPENDENCIES = ["typer", "rich", "pydantic"]

def _nearest_existing(path: Path) -> Path:
    while not path.exists() and path != path.parent:
        path = path.parent
    return path

def run_diagnostics(settings: Settings, host: HostEnv) -> List[DoctorCheck]:
    """Execute the health checks synchronously."""
    checks: List[DoctorCheck] = []

    # 1. Settings backends
    found = [tool for tool in SETTINGS_BACKENDS if shutil.which(tool)]
    if found:
        checks.append(DoctorCheck(name="1. Settings Backends", status="pass", detail=", ".join(found)))
    else:
        checks.append(DoctorCheck(name="1. Settings Backends", status="warn", detail="None found; only config files and directories will be read."))

    # 2. Clipboard
    clip = [argv[0] for argv in settings.clipboard_commands if shutil.which(argv[0])]
    if clip:
        checks.append(DoctorCheck(name="2. Clipboard Tool", status="pass", detail=", ".join(clip)))
    else:
        checks.append(DoctorCheck(name="2. Clipboard Tool", status="warn", detail="None found; fix commands will be printed instead."))

    # 3. Escalation
    elevator = find_elevator(settings.elevators)
    if host.is_elevated:
        checks.append(DoctorCheck(name="3. Privilege Escalation", status="pass", detail="Running as root"))
    elif elevator:
        checks.append(DoctorCheck(name="3. Privilege Escalation", status="pass", detail=elevator))
    else:
        checks.append(DoctorCheck(name="3. Privilege Escalation", status="warn", detail=f"None of {', '.join(settings.elevators)} found"))

    # 4. Effective user and home
    sudo_user = host.getenv("SUDO_USER")
    detail = f"home={host.home}" + (f", invoked via sudo by {sudo_user}" if sudo_user else "")
    status = "pass" if host.home.is_dir() else "fail"
    checks.append(DoctorCheck(name="4. User Home", status=status, detail=detail))

    # 5. Config directory
    try:
        checks.append(DoctorCheck(name="5. Config Directory", status="pass", detail=str(get_config_dir())))
    except OSError as e:
        checks.append(DoctorCheck(name="5. Config Directory", status="fail", detail=str(e)))

    # 6. Backup root writability and space
    root = resolve_backup_root(settings, host.home)
    existing = _nearest_existing(root)
    if host.can_access(existing, os.W_OK | os.X_OK):
        try:
            free_gb = shutil.disk_usage(existing).free // (2**30)
            status = "pass" if free_gb > 1 else "warn"
            checks.append(DoctorCheck(name="6. Backup Root", status=status, detail=f"{root} ({free_gb} GB free)"))
        except OSError as e:
            checks.append(DoctorCheck(name="6. Backup Root", status="warn", detail=f"{root}: {e}"))
    else:
        checks.append(DoctorCheck(name="6. Backup Root", status="fail", detail=f"{existing} is not writable"))

    # 7. Registry
    try:
        components = load_registry(settings)
        checks.append(DoctorCheck(name="7. Component Registry", status="pass", detail=f"{len(components)} components"))
    except RegistryError as e:
        checks.append(DoctorCheck(name="7. Component Registry", status="fail", detail=str(e)))

    # 8. Dependencies
    missing = []
    for dist in DEPENDENCIES:
        try:
            importlib.metadata.version(dist)
        except importlib.metadata.PackageNotFoundError:
            missing.append(dist)
    if missing:
        checks.append(DoctorCheck(name="8. Dependencies", status="fail", detail=f"Missing: {', '.join(missing)}"))
    else:
        checks.append(DoctorCheck(name="8. Dependencies", status="pass", detail="All core requirements met"))

    return checks
