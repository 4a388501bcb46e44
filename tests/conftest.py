import os
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Tuple

import pytest

from themecrate.errors import SettingsQueryError
from themecrate.host import HostEnv
from themecrate.models import ComponentSpec, DirectoryScan, EnvValue
from themecrate.selection import build_selection


def write(path: Path, text: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class FakeDesktop:
    """Host pieces a test can change between calls: settings answers and revoked paths."""
    def __init__(self, settings: Optional[Dict[Tuple[str, ...], str]] = None, denied: Iterable[Path] = ()):
        self.settings = dict(settings or {})
        self.denied = set(Path(p) for p in denied)
        self.closed = set()  # directories that cannot be traversed
        self.queries = []

    def query(self, argv: Sequence[str]) -> str:
        self.queries.append(tuple(argv))
        try:
            return self.settings[tuple(argv)]
        except KeyError:
            raise SettingsQueryError(f"{argv[0]}: no such key")

    def _behind_closed(self, path: Path) -> bool:
        return any(parent in self.closed for parent in Path(path).parents)

    def access(self, path: Path, mode: int) -> bool:
        path = Path(path)
        if path in self.denied or path in self.closed or self._behind_closed(path):
            return False
        return os.access(path, mode)

    def stat(self, path: Path) -> os.stat_result:
        if self._behind_closed(path):
            raise PermissionError(13, "Permission denied", str(path))
        return os.stat(path)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    return tmp_path / "xdg" / "themecrate"


@pytest.fixture
def desktop():
    return FakeDesktop()


@pytest.fixture
def host(tmp_path, desktop):
    home = tmp_path / "home"
    root = tmp_path / "root"
    home.mkdir()
    root.mkdir()
    return HostEnv(
        home=home,
        environ={"USER": "alice", "HOME": str(home)},
        root=root,
        query=desktop.query,
        access=desktop.access,
        stat=desktop.stat,
        euid=1000,
    )


def scenario_components():
    """A: readable home file. B: unreadable system tree. C: nothing on disk."""
    return [
        ComponentSpec(
            id="alpha", display_name="Alpha", category="Test",
            detectors=[EnvValue(label="A", variable="ALPHA_THEME")],
            sources=["~/.config/alpha/alpha.conf"],
        ),
        ComponentSpec(
            id="beta", display_name="Beta Theme", category="Test",
            detectors=[DirectoryScan(label="B", directories=["/usr/share/beta"])],
            sources=["/usr/share/beta/{value}"],
        ),
        ComponentSpec(
            id="gamma", display_name="Gamma", category="Test",
            sources=["~/.config/gamma"],
        ),
    ]


@pytest.fixture
def scenario(host, desktop):
    host.environ["ALPHA_THEME"] = "on"
    write(host.home / ".config/alpha/alpha.conf", "colour = teal\n")
    beta = host.root / "usr/share/beta/Locked Theme"
    write(beta / "gtk-3.0/gtk.css", "window { color: red; }\n")
    write(beta / "index.theme", "[Desktop Entry]\n")
    desktop.denied.add(beta)

    selection = build_selection(scenario_components(), host)
    selection.set_all(True)
    return selection
