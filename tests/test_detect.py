import os
from pathlib import Path
from tempfile import TemporaryDirectory

from hypothesis import given, settings, strategies as st

from themecrate.detect import clean_value, detect, detect_all, parse_ini_value
from themecrate.host import HostEnv
from themecrate.models import ComponentSpec, DirectoryScan, EnvValue
from themecrate.registry import default_registry, get_component

from conftest import write

GSETTINGS_GTK = ("gsettings", "get", "org.gnome.desktop.interface", "gtk-theme")

def test_clean_value_strips_one_layer_of_quotes():
    assert clean_value("  'Yaru-dark'\n") == "Yaru-dark"
    assert clean_value('"Breeze"') == "Breeze"
    assert clean_value("'unbalanced") == "'unbalanced"

def test_parse_ini_value_respects_section():
    text = "[Other]\ngtk-theme-name=Wrong\n; comment\n[Settings]\ngtk-theme-name = \"Nordic\"\n"
    assert parse_ini_value(text, "gtk-theme-name", "Settings") == "Nordic"
    assert parse_ini_value(text, "gtk-theme-name") == "Wrong"
    assert parse_ini_value(text, "missing", "Settings") is None

def test_config_file_wins_over_settings_query(host, desktop):
    desktop.settings[GSETTINGS_GTK] = "'Adwaita'"
    write(host.home / ".config/gtk-3.0/settings.ini", "[Settings]\ngtk-theme-name=Nordic\n")
    (host.home / ".themes/Nordic").mkdir(parents=True)

    result = detect(get_component(default_registry(), "gtk-themes"), host)

    assert result.summary == "GTK3: Nordic"
    assert result.value == "Nordic"
    assert host.home / ".config/gtk-3.0" in result.paths
    assert host.home / ".themes/Nordic" in result.paths
    assert GSETTINGS_GTK not in desktop.queries

def test_settings_query_used_when_no_config(host, desktop):
    desktop.settings[GSETTINGS_GTK] = "'Yaru'\n"
    (host.root / "usr/share/themes/Yaru").mkdir(parents=True)

    result = detect(get_component(default_registry(), "gtk-themes"), host)

    assert result.summary == "GTK: Yaru"
    assert result.paths == [host.root / "usr/share/themes/Yaru"]

def test_nothing_detected(host):
    result = detect(get_component(default_registry(), "gtk-themes"), host)
    assert result.summary is None
    assert not result.detected
    assert result.paths == []

def test_skip_values_fall_through(host, desktop):
    desktop.settings[GSETTINGS_GTK] = "'Adwaita'"
    result = detect(get_component(default_registry(), "application-style"), host)
    assert result.summary is None

def test_kreadconfig_arguments(host, desktop):
    argv = ("kreadconfig5", "--file", "kwinrc", "--group", "org.kde.kdecoration2", "--key", "library")
    desktop.settings[argv] = "org.kde.breeze"
    result = detect(get_component(default_registry(), "window-decorations"), host)
    assert result.summary == "KWin: org.kde.breeze"

def test_globbed_config_and_system_source(host):
    write(host.root / "etc/sddm.conf.d/10-theme.conf", "[Theme]\nCurrent=sugar-candy\n")
    (host.root / "usr/share/sddm/themes/sugar-candy").mkdir(parents=True)

    result = detect(get_component(default_registry(), "sddm-theme"), host)

    assert result.summary == "SDDM: sugar-candy"
    assert host.root / "usr/share/sddm/themes/sugar-candy" in result.paths
    assert host.root / "etc/sddm.conf.d" in result.paths

def test_regex_detector(host):
    write(host.home / ".config/fontconfig/fonts.conf", "<match>\n  <family> Fira Sans </family>\n</match>\n")
    result = detect(get_component(default_registry(), "fonts"), host)
    assert result.summary == "Font: Fira Sans"

def test_env_basename_and_config_precedence(host):
    host.environ["SHELL"] = "/usr/bin/zsh"
    spec = get_component(default_registry(), "shell-themes")
    assert detect(spec, host).summary == "Shell: zsh"

    write(host.home / ".zshrc", 'export ZSH="$HOME/.oh-my-zsh"\nZSH_THEME="agnoster"\n')
    result = detect(spec, host)
    assert result.summary == "Oh My Zsh: agnoster"
    assert result.paths == [host.home / ".zshrc"]

def test_unsafe_value_never_reaches_a_path(host, desktop):
    desktop.settings[GSETTINGS_GTK] = "'../../etc'"
    (host.root / "usr/share/etc").mkdir(parents=True)
    result = detect(get_component(default_registry(), "gtk-themes"), host)
    assert result.value == "../../etc"
    assert result.paths == []

def test_plymouth_link_beats_lexicographic_order(host):
    themes = host.root / "usr/share/plymouth/themes"
    for name in ("alpha", "zeta"):
        (themes / name).mkdir(parents=True)
    write(themes / "alpha/alpha.plymouth", "[Plymouth Theme]\n")
    os.symlink("/usr/share/plymouth/themes/alpha/alpha.plymouth", themes / "default.plymouth")

    result = detect(get_component(default_registry(), "splash-screen"), host)

    assert result.summary == "Plymouth: alpha"
    assert result.paths == [themes / "alpha"]

def test_dirscan_contains_is_case_insensitive(host):
    icons = host.home / ".icons"
    for name in ("Adwaita", "Bibata-Modern-Cursors", "breeze_cursors"):
        (icons / name).mkdir(parents=True)
    # only "breeze_cursors" and "Bibata-Modern-Cursors" match; lowercase sorts last
    result = detect(get_component(default_registry(), "cursors"), host)
    assert result.summary == "Cursor: breeze_cursors"

def test_detect_never_raises(host):
    def broken_query(argv):
        raise RuntimeError("dbus exploded")

    host._query = broken_query
    # A file where a directory is expected and an unreadable config.
    write(host.home / ".icons", "not a directory")
    (host.home / ".config/gtk-3.0/settings.ini").mkdir(parents=True)

    results = detect_all(default_registry(), host)
    assert [r.component_id for r in results] == [c.id for c in default_registry()]

ENV_NAMES = ["XDG_CURRENT_DESKTOP", "DESKTOP_SESSION", "SHELL", "SWAYSOCK", "I3SOCK"]

@settings(max_examples=50, deadline=None)
@given(environ=st.dictionaries(st.sampled_from(ENV_NAMES), st.text(max_size=40)))
def test_env_detection_total(environ):
    host = HostEnv(home=Path("/nonexistent/home"), environ=environ, root=Path("/nonexistent/root"), query=lambda argv: "")
    for result in detect_all(default_registry(), host):
        if result.summary is not None:
            assert result.summary.split(": ", 1)[1] == result.value

NAMES = st.sets(st.text(alphabet="abcdefghijklmnopqrstuvwxyzABCDEF0123456789-_", min_size=1, max_size=12), min_size=1, max_size=8)

@settings(max_examples=30, deadline=None)
@given(names=NAMES)
def test_dirscan_is_deterministic(names):
    spec = ComponentSpec(
        id="scan", display_name="Scan", category="Test",
        detectors=[DirectoryScan(label="Dir", directories=["~/themes"])],
    )
    with TemporaryDirectory() as tmp:
        home = Path(tmp)
        for name in names:
            (home / "themes" / name).mkdir(parents=True)
        write(home / "themes/zzzz-not-a-dir", "")
        host = HostEnv(home=home, root=home / "root", query=lambda argv: "")

        first = detect(spec, host)
        second = detect(spec, host)

    assert first == second
    assert first.value == sorted(names)[-1]

def test_env_value_reports_fixed_name(host):
    spec = ComponentSpec(
        id="wm", display_name="WM", category="Test",
        detectors=[EnvValue(label="WM", variable="SWAYSOCK", value="sway")],
    )
    assert detect(spec, host).summary is None
    host.environ["SWAYSOCK"] = "/run/user/1000/sway-ipc.sock"
    assert detect(spec, host).summary == "WM: sway"
