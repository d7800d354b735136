from datetime import datetime
from unittest.mock import patch

from appcache_installer.cleanup import archive_log_name, cleanup
from appcache_installer.lib.fsops import remove_path


def _snapshot(root):
    return sorted((p.relative_to(root).as_posix(), p.read_bytes() if p.is_file() else None) for p in root.rglob("*"))


def test_archive_log_name():
    assert archive_log_name("App", datetime(2024, 5, 1, 13, 4, 5)) == "App-20240501-130405.log"


def test_cleanup_removes_local_artifacts_only(tmp_path):
    share = tmp_path / "share"
    (share / "App" / "bin").mkdir(parents=True)
    (share / "App" / "bin" / "setup.exe").write_bytes(b"MZ")
    before = _snapshot(share)

    local = tmp_path / "local"
    (local / "App" / "bin").mkdir(parents=True)
    installer = local / "App" / "bin" / "setup.exe"
    installer.write_bytes(b"MZ")
    archive = local / "App.zip"
    archive.write_bytes(b"PK")
    log = tmp_path / "run.log"
    log.write_text("line\n")
    perm = tmp_path / "perm"

    archived = cleanup(
        installer,
        archive,
        local,
        log,
        app_name="App",
        permanent_log_dir=perm,
        network_root=share,
        delay_s=0,
        now=datetime(2024, 1, 2, 3, 4, 5),
    )

    assert not (local / "App").exists()
    assert not archive.exists()
    assert not local.exists()
    assert not log.exists()
    assert archived == perm / "App-20240102-030405.log"
    assert archived.read_text() == "line\n"
    assert _snapshot(share) == before


def test_local_root_kept_when_not_empty(tmp_path):
    local = tmp_path / "local"
    (local / "App").mkdir(parents=True)
    (local / "Other").mkdir()
    installer = local / "App" / "setup.exe"
    installer.write_bytes(b"MZ")

    cleanup(installer, None, local, None, app_name="App", permanent_log_dir=tmp_path / "perm", delay_s=0)

    assert not (local / "App").exists()
    assert (local / "Other").exists()


def test_never_deletes_inside_network_root(tmp_path):
    share = tmp_path / "share"
    (share / "App").mkdir(parents=True)
    installer = share / "App" / "setup.exe"
    installer.write_bytes(b"MZ")

    cleanup(installer, None, tmp_path / "local", None, app_name="App", permanent_log_dir=tmp_path / "p", network_root=share)

    assert installer.exists()


def test_cleanup_failures_are_swallowed(tmp_path, caplog):
    local = tmp_path / "local"
    (local / "App").mkdir(parents=True)
    installer = local / "App" / "setup.exe"
    installer.write_bytes(b"MZ")

    with patch("appcache_installer.cleanup.remove_path", side_effect=PermissionError("locked")):
        cleanup(installer, None, local, tmp_path / "missing.log", app_name="App", permanent_log_dir=tmp_path / "p")

    assert installer.exists()
    assert "locked" in caplog.text


def test_remove_path_retries_transient_errors(tmp_path):
    target = tmp_path / "f.tmp"
    target.write_bytes(b"x")
    real_unlink = type(target).unlink
    calls = []

    def flaky_unlink(self, *a, **kw):
        calls.append(self)
        if len(calls) < 3:
            raise PermissionError("in use")
        return real_unlink(self, *a, **kw)

    with patch("pathlib.Path.unlink", flaky_unlink):
        assert remove_path(target, attempts=3, delay_s=0) is True

    assert len(calls) == 3
    assert not target.exists()


def test_remove_path_missing_is_noop(tmp_path):
    assert remove_path(tmp_path / "nothing") is False
