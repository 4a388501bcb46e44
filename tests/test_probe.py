import os

import pytest

from themecrate.probe import probe, probe_path

from conftest import write

def test_absent_path_is_not_blocked(host):
    result = probe_path(host.home / "nope", host)
    assert not result.exists
    assert result.accessible
    assert result.kind == "missing"

def test_readable_tree(host):
    write(host.home / "theme/gtk-3.0/gtk.css", "* {}")
    result = probe_path(host.home / "theme", host)
    assert result.accessible
    assert result.kind == "directory"

def test_unreadable_file(host, desktop):
    path = write(host.home / "secret.conf", "x")
    desktop.denied.add(path)
    result = probe_path(path, host)
    assert not result.accessible
    assert result.blocker == path

def test_nested_blocker_reported_on_top_path(host, desktop):
    top = host.root / "usr/share/themes/Locked"
    inner = write(top / "gtk-3.0/gtk.css", "* {}")
    desktop.denied.add(inner)

    report = probe([top], host)

    assert [e.path for e in report.inaccessible] == [top]
    assert report.entries[0].blocker == inner
    assert not report.clean

def test_nested_symlinks_are_not_followed(host, desktop):
    top = host.home / "theme"
    write(top / "a.css")
    outside = write(host.home / "outside.css")
    os.symlink(outside, top / "link.css")
    desktop.denied.add(outside)
    assert probe_path(top, host).accessible

def test_probe_deduplicates(host):
    path = write(host.home / "a")
    report = probe([path, path, host.home / "missing"], host)
    assert len(report.entries) == 2
    assert report.clean

@pytest.mark.skipif(os.geteuid() == 0, reason="root bypasses file permissions")
def test_real_permission_bits(tmp_path):
    from themecrate.host import HostEnv

    locked = tmp_path / "locked"
    write(locked / "inner/file.txt", "data")
    (locked / "inner").chmod(0o000)
    try:
        host = HostEnv(home=tmp_path, root=tmp_path)
        result = probe_path(locked, host)
        assert not result.accessible
        assert result.blocker == locked / "inner"
    finally:
        (locked / "inner").chmod(0o755)

def test_path_behind_closed_parent_is_blocked_not_absent(host, desktop):
    locked = host.root / "opt/locked"
    theme = locked / "theme"
    write(theme / "gtk.css", "* {}")
    desktop.closed.add(locked)

    result = probe_path(theme, host)

    assert result.exists
    assert not result.accessible
    assert result.reason == "cannot traverse parent"
    assert result.blocker == locked

def test_source_paths_keep_paths_behind_closed_parent(host, desktop):
    from themecrate.models import ComponentSpec

    locked = host.root / "opt/locked"
    write(locked / "theme/gtk.css", "* {}")
    desktop.closed.add(locked)
    spec = ComponentSpec(id="locked", display_name="Locked", category="Test", sources=["/opt/locked/theme", "/opt/gone"])

    assert spec.source_paths(host) == [locked / "theme"]

@pytest.mark.skipif(os.geteuid() == 0, reason="root bypasses file permissions")
def test_real_untraversable_parent(tmp_path):
    from themecrate.host import HostEnv

    locked = tmp_path / "locked"
    write(locked / "theme/gtk.css", "* {}")
    locked.chmod(0o600)
    try:
        host = HostEnv(home=tmp_path, root=tmp_path)
        assert host.exists(locked / "theme")
        result = probe_path(locked / "theme", host)
        assert result.exists and not result.accessible
        assert result.blocker == locked
    finally:
        locked.chmod(0o755)
