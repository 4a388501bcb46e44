"""
Style detection: works out which theme, style or WM is active for a component.
Methods are tried in order and the first one yielding a value wins. A method
that finds nothing, or cannot run at all, simply falls through.
"""
import os
import re
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .host import HostEnv
from .models import ComponentSpec, ConfigValue, DetectedStyle, DirectoryScan, EnvValue, SettingsQuery

QUOTES = "'\""

def clean_value(raw: str) -> str:
    """Strip whitespace and one layer of surrounding quotes."""
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in QUOTES:
        value = value[1:-1].strip()
    return value

def parse_ini_value(text: str, key: str, section: Optional[str] = None, separator: str = "=") -> Optional[str]:
    """Return the first value for `key`, restricted to `[section]` when given."""
    current: Optional[str] = None
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith(("#", ";")):
            continue
        if line.startswith("[") and line.endswith("]"):
            current = line[1:-1].strip()
            continue
        if section is not None and current != section:
            continue
        name, sep, rest = line.partition(separator)
        if sep and name.strip() == key:
            return clean_value(rest)
    return None

def _settings_argv(method: SettingsQuery) -> List[str]:
    if method.backend == "gsettings":
        return ["gsettings", "get", method.namespace, method.key]
    argv = [method.backend]
    if method.file:
        argv += ["--file", method.file]
    return argv + ["--group", method.namespace, "--key", method.key]

def _query_settings(method: SettingsQuery, host: HostEnv) -> Optional[str]:
    value = clean_value(host.query(_settings_argv(method)))
    if not value or value in method.skip_values:
        return None
    return value

def _read_config(method: ConfigValue, host: HostEnv) -> Optional[str]:
    for path in host.glob(method.path):
        if not path.is_file():
            continue
        try:
            text = host.read_text(path)
        except OSError:
            continue
        if method.key is not None:
            value = parse_ini_value(text, method.key, method.section, method.separator)
        else:
            match = re.search(method.pattern, text, re.MULTILINE)
            value = clean_value(match.group(1)) if match else None
        if value and value not in method.skip_values:
            return value
    return None

def _link_target_name(link: Path, host: HostEnv) -> Optional[str]:
    target = Path(os.readlink(link))
    resolved = host.expand(str(target)) if target.is_absolute() else link.parent / target
    if resolved.is_file():
        return resolved.parent.name or None
    return resolved.name or None

def _scan_directories(method: DirectoryScan, host: HostEnv) -> Optional[str]:
    """
    Directories are tried in order. Within one, a `link` symlink wins;
    otherwise the lexicographically last matching sub-directory does.
    """
    needle = method.contains.lower() if method.contains else None
    for template in method.directories:
        directory = host.expand(template)
        if not directory.is_dir():
            continue
        if method.link:
            link = directory / method.link
            if link.is_symlink():
                name = _link_target_name(link, host)
                if name:
                    return name
        candidates = sorted(
            entry.name
            for entry in directory.iterdir()
            if entry.is_dir() and (needle is None or needle in entry.name.lower())
        )
        if candidates:
            return candidates[-1]
    return None

def _read_env(method: EnvValue, host: HostEnv) -> Optional[str]:
    raw = host.getenv(method.variable)
    if not raw or not raw.strip():
        return None
    if method.value is not None:
        return method.value
    if method.basename:
        return Path(raw.strip()).name or None
    return raw.strip()

HANDLERS: Dict[str, Callable[..., Optional[str]]] = {
    "settings": _query_settings,
    "config": _read_config,
    "dirscan": _scan_directories,
    "env": _read_env,
}

def detect(spec: ComponentSpec, host: HostEnv) -> DetectedStyle:
    """Detect the active style for one component. Never raises."""
    summary: Optional[str] = None
    value: Optional[str] = None
    for method in spec.detectors:
        try:
            found = HANDLERS[method.kind](method, host)
        except Exception:
            found = None
        if found:
            summary = f"{method.label}: {found}"
            value = found
            break

    try:
        paths = spec.source_paths(host, value)
    except Exception:
        paths = []
    return DetectedStyle(component_id=spec.id, summary=summary, value=value, paths=paths)

def detect_all(components: List[ComponentSpec], host: HostEnv) -> List[DetectedStyle]:
    return [detect(spec, host) for spec in components]
