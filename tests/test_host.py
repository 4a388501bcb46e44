import subprocess

import pytest

from themecrate.clipboard import copy_to_clipboard, offer_text
from themecrate.errors import ClipboardError, SettingsQueryError
from themecrate.host import HostEnv, resolve_user_home, run_query

def test_sudo_user_home_preferred(tmp_path):
    (tmp_path / "home/alice").mkdir(parents=True)
    (tmp_path / "root").mkdir()
    environ = {"SUDO_USER": "alice", "HOME": str(tmp_path / "root"), "USER": "root"}
    assert resolve_user_home(environ, tmp_path) == tmp_path / "home/alice"

def test_plain_home(tmp_path):
    (tmp_path / "bob").mkdir()
    assert resolve_user_home({"HOME": str(tmp_path / "bob"), "USER": "bob"}, tmp_path) == tmp_path / "bob"

def test_expand_maps_home_and_root(host):
    assert host.expand("~") == host.home
    assert host.expand("~/.config/kitty") == host.home / ".config/kitty"
    assert host.expand("/etc/sddm.conf") == host.root / "etc/sddm.conf"

def test_glob_sorted_matches(host):
    conf_d = host.root / "etc/sddm.conf.d"
    conf_d.mkdir(parents=True)
    for name in ("20-b.conf", "10-a.conf", "notes.txt"):
        (conf_d / name).write_text("")
    assert host.glob("/etc/sddm.conf.d/*.conf") == [conf_d / "10-a.conf", conf_d / "20-b.conf"]
    assert host.glob("/etc/missing") == [host.root / "etc/missing"]

def test_run_query_errors():
    with pytest.raises(SettingsQueryError):
        run_query(["themecrate-no-such-settings-tool", "get"])

def test_elevation_from_euid(tmp_path):
    assert HostEnv(home=tmp_path, euid=0).is_elevated
    assert not HostEnv(home=tmp_path, euid=1000).is_elevated

class FakeRunner:
    def __init__(self, working):
        self.working = working
        self.calls = []

    def __call__(self, argv, **kwargs):
        self.calls.append((argv[0], kwargs.get("input")))
        if argv[0] not in self.working:
            raise FileNotFoundError(argv[0])
        return subprocess.CompletedProcess(argv, 0)

def test_clipboard_tries_tools_in_order():
    runner = FakeRunner(working={"xsel"})
    assert copy_to_clipboard("chmod", runner=runner) == "xsel"
    assert [name for name, _ in runner.calls] == ["xclip", "wl-copy", "xsel"]
    assert runner.calls[-1][1] == "chmod"

def test_clipboard_failure():
    with pytest.raises(ClipboardError):
        copy_to_clipboard("x", [["xclip"]], runner=FakeRunner(working=set()))

def test_offer_text_prints_when_no_clipboard(capsys):
    assert offer_text("sudo chmod -R a+rX -- /x", "Fix", [["xclip"]], runner=FakeRunner(working=set())) is False
    assert "sudo chmod -R a+rX -- /x" in capsys.readouterr().out
    assert offer_text("y", "Fix", [["wl-copy"]], runner=FakeRunner(working={"wl-copy"})) is True
