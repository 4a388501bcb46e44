"""
Read-only view of the host that detection, probing and copying run against.
Everything that touches live desktop state goes through HostEnv so the whole
pipeline can run against a fake home and root in tests.
"""
import os
import subprocess
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence

from .errors import SettingsQueryError

QueryFn = Callable[[Sequence[str]], str]
AccessFn = Callable[[Path, int], bool]
StatFn = Callable[[Path], os.stat_result]

GLOB_CHARS = ("*", "?", "[")

def run_query(argv: Sequence[str], timeout: float = 3.0) -> str:
    """Run a settings tool and return its trimmed stdout."""
    try:
        result = subprocess.run(
            list(argv), capture_output=True, text=True, timeout=timeout, check=False
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise SettingsQueryError(f"'{argv[0]}' unavailable: {e}") from e
    if result.returncode != 0:
        raise SettingsQueryError(f"'{' '.join(argv)}' exited with {result.returncode}")
    return result.stdout.strip()

def resolve_user_home(environ: Mapping[str, str], root: Path = Path("/")) -> Path:
    """
    Find the home directory of the user who invoked us.
    Under sudo that is SUDO_USER's home, never root's.
    """
    sudo_user = environ.get("SUDO_USER")
    if sudo_user and sudo_user != "root":
        home = root / "home" / sudo_user
        if home.is_dir():
            return home

    env_home = environ.get("HOME")
    if env_home:
        home_path = Path(env_home)
        if home_path.name != "root" and home_path.is_dir():
            return home_path

    user = environ.get("USER")
    if user and user != "root":
        home = root / "home" / user
        if home.is_dir():
            return home

    return Path(env_home) if env_home else Path.home()

class HostEnv:
    def __init__(
        self,
        home: Path,
        environ: Optional[Mapping[str, str]] = None,
        root: Path = Path("/"),
        query: Optional[QueryFn] = None,
        access: Optional[AccessFn] = None,
        stat: Optional[StatFn] = None,
        euid: Optional[int] = None,
    ):
        self.home = Path(home)
        self.environ = dict(environ or {})
        self.root = Path(root)
        self._query = query or run_query
        self._access = access or os.access
        self._stat = stat or os.stat
        self.euid = os.geteuid() if euid is None else euid

    @classmethod
    def live(cls, home: Optional[str] = None, query_timeout: float = 3.0) -> "HostEnv":
        environ = dict(os.environ)
        home_path = Path(home) if home else resolve_user_home(environ)
        return cls(
            home=home_path,
            environ=environ,
            query=lambda argv: run_query(argv, timeout=query_timeout),
        )

    @property
    def is_elevated(self) -> bool:
        return self.euid == 0

    def expand(self, template: str) -> Path:
        """Map '~/x' onto the home directory and '/x' onto the host root."""
        if template == "~":
            return self.home
        if template.startswith("~/"):
            return self.home / template[2:]
        path = Path(template)
        if path.is_absolute():
            return self.root / path.relative_to(path.anchor)
        return self.home / path

    def glob(self, template: str) -> List[Path]:
        """Expand a template; wildcards return their sorted matches."""
        path = self.expand(template)
        if not any(ch in str(path) for ch in GLOB_CHARS):
            return [path]
        anchor = Path(path.anchor)
        return sorted(anchor.glob(str(path.relative_to(anchor))))

    def query(self, argv: Sequence[str]) -> str:
        return self._query(argv)

    def read_text(self, path: Path) -> str:
        return Path(path).read_text(encoding="utf-8", errors="replace")

    def can_access(self, path: Path, mode: int) -> bool:
        return self._access(Path(path), mode)

    def getenv(self, name: str) -> Optional[str]:
        return self.environ.get(name)

    def stat(self, path: Path) -> os.stat_result:
        return self._stat(Path(path))

    def exists(self, path: Path) -> bool:
        """
        A path we are not allowed to look at still counts as present;
        only a clean lookup miss means absent.
        """
        try:
            self.stat(path)
        except PermissionError:
            return True
        except OSError:
            return False
        return True

    def first_untraversable(self, path: Path) -> Optional[Path]:
        """Topmost ancestor of path that cannot be entered, if any."""
        for parent in reversed(Path(path).parents):
            if not self.can_access(parent, os.X_OK):
                return parent
        return None
