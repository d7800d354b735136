import io
import logging
import tarfile

import pytest

from appcache_installer.errors import ArchiveError, InstallerNotFoundError
from appcache_installer.lib.archive import extract_installer, find_installer, is_archive, list_tree

from conftest import make_zip


def test_is_archive():
    assert is_archive("app.zip")
    assert is_archive("APP.ZIP")
    assert is_archive("app.tar.gz")
    assert is_archive("app.tgz")
    assert not is_archive("app.msi")
    assert not is_archive("setup.exe")


def test_extract_finds_nested_installer_and_removes_archive(tmp_path, zip_payload):
    archive = tmp_path / "app" / "app.zip"
    archive.parent.mkdir()
    archive.write_bytes(zip_payload)

    rel = extract_installer(archive, tmp_path / "app", "setup.exe")

    assert rel == "app-1.0/setup.exe"
    assert (tmp_path / "app" / "app-1.0" / "setup.exe").read_bytes() == b"MZ installer"
    assert not archive.exists()


def test_extract_overwrites_existing_files(tmp_path):
    dest = tmp_path / "app"
    (dest / "bin").mkdir(parents=True)
    (dest / "bin" / "setup.exe").write_bytes(b"old")
    archive = dest / "app.zip"
    archive.write_bytes(make_zip({"bin/setup.exe": b"new"}))

    rel = extract_installer(archive, dest, "bin/setup.exe")

    assert rel == "bin/setup.exe"
    assert (dest / "bin" / "setup.exe").read_bytes() == b"new"


def test_match_is_case_sensitive_and_uses_base_name(tmp_path):
    archive = tmp_path / "a.zip"
    archive.write_bytes(make_zip({"x/Setup.exe": b"1", "y/setup.exe": b"2"}))

    rel = extract_installer(archive, tmp_path / "out", "some/dir/setup.exe")

    assert rel == "y/setup.exe"


def test_first_match_is_deterministic(tmp_path):
    root = tmp_path / "tree"
    for d in ("b", "a", "a/z", "c"):
        (root / d).mkdir(parents=True, exist_ok=True)
    for d in ("b", "a/z", "c"):
        (root / d / "setup.exe").write_bytes(b"x")

    assert find_installer(root, "setup.exe") == "a/z/setup.exe"


def test_missing_installer_logs_listing(tmp_path, caplog):
    archive = tmp_path / "a.zip"
    archive.write_bytes(make_zip({"docs/readme.txt": b"1"}))

    with caplog.at_level(logging.ERROR):
        with pytest.raises(InstallerNotFoundError):
            extract_installer(archive, tmp_path / "out", "setup.exe")

    assert "docs/readme.txt" in caplog.text


def test_tar_archive(tmp_path):
    archive = tmp_path / "app.tar.gz"
    data = b"#!/bin/sh\n"
    with tarfile.open(archive, "w:gz") as tf:
        info = tarfile.TarInfo("pkg/install.sh")
        info.size = len(data)
        tf.addfile(info, io.BytesIO(data))

    rel = extract_installer(archive, tmp_path / "out", "install.sh")

    assert rel == "pkg/install.sh"
    assert not archive.exists()


def test_rejects_path_traversal(tmp_path):
    archive = tmp_path / "evil.zip"
    archive.write_bytes(make_zip({"../escape.exe": b"x"}))

    with pytest.raises(ArchiveError):
        extract_installer(archive, tmp_path / "out", "escape.exe")
    assert not (tmp_path / "escape.exe").exists()


def test_list_tree_sorted(tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "f.txt").write_text("x")
    (tmp_path / "z.txt").write_text("x")

    assert list_tree(tmp_path) == ["a/", "b/", "z.txt", "a/f.txt"]
