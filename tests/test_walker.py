import os
from dataclasses import replace

import pytest

from conftest import make_image
from imgarchive.core import thumbnails, walker


def _read(path):
    return path.read_text(encoding="utf-8")


def test_build_tree_scenario(gallery, config):
    count = walker.build_tree(os.fspath(gallery), config)
    assert count == 2

    root_html = _read(gallery / "index.html")
    assert 'href="a/index.html"' in root_html
    assert 'title="root.png"' in root_html
    assert "notes.txt" not in root_html

    sub_html = _read(gallery / "a" / "index.html")
    assert 'title="a1.jpg"' in sub_html
    assert 'href="../index.html"' in sub_html

    assert (gallery / ".thumbs" / "root.png").exists()
    assert (gallery / "a" / ".thumbs" / "a1.jpg").exists()


def test_thumbnail_dir_never_listed_or_descended(gallery, config):
    walker.build_tree(os.fspath(gallery), config)
    make_image(gallery / ".thumbs" / "nested" / "x.jpg")
    walker.build_tree(os.fspath(gallery), config)

    assert ".thumbs/index.html" not in _read(gallery / "index.html")
    assert not (gallery / ".thumbs" / "index.html").exists()
    assert not (gallery / ".thumbs" / "nested" / "index.html").exists()


def test_build_tree_rooted_at_thumbnail_dir_does_nothing(gallery, config):
    (gallery / ".thumbs").mkdir()
    assert walker.build_tree(os.fspath(gallery / ".thumbs"), config) == 0


def test_rerun_is_idempotent(gallery, config, monkeypatch):
    walker.build_tree(os.fspath(gallery), config)
    thumb = gallery / "a" / ".thumbs" / "a1.jpg"
    before_bytes = thumb.read_bytes()
    before_mtime = thumb.stat().st_mtime_ns
    before_html = _read(gallery / "index.html")

    calls = []
    monkeypatch.setattr(thumbnails, "generate_thumbnail", lambda *a: calls.append(a))
    walker.build_tree(os.fspath(gallery), config)

    assert calls == []
    assert thumb.read_bytes() == before_bytes
    assert thumb.stat().st_mtime_ns == before_mtime
    assert _read(gallery / "index.html") == before_html


def test_nothumb_skips_thumbnail_dir(gallery, config):
    cfg = replace(config, thumbnails=False)
    walker.build_tree(os.fspath(gallery), cfg)
    assert not (gallery / ".thumbs").exists()
    html = _read(gallery / "index.html")
    assert 'src="root.png"' in html
    assert ".thumbs/" not in html


def test_broken_image_still_indexed(tmp_path, config):
    root = tmp_path / "g"
    make_image(root / "ok.jpg")
    (root / "bad.jpg").write_bytes(b"garbage")
    walker.build_tree(os.fspath(root), config)
    html = _read(root / "index.html")
    assert 'title="bad.jpg"' in html
    assert 'title="ok.jpg"' in html
    assert not (root / ".thumbs" / "bad.jpg").exists()


def test_symlink_loop_terminates(tmp_path, config):
    root = tmp_path / "g"
    make_image(root / "a" / "a1.jpg")
    try:
        os.symlink(root, root / "a" / "loop")
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")
    count = walker.build_tree(os.fspath(root), config)
    assert count == 2


def test_unreadable_directory_propagates(tmp_path, config, monkeypatch):
    root = tmp_path / "g"
    make_image(root / "a" / "a1.jpg")
    make_image(root / "b" / "b1.jpg")

    real_scan = walker.scan_directory

    def failing(folder, cfg):
        if os.path.basename(folder) == "b":
            raise PermissionError(folder)
        return real_scan(folder, cfg)

    monkeypatch.setattr(walker, "scan_directory", failing)
    with pytest.raises(PermissionError):
        walker.build_tree(os.fspath(root), config)
    # Directories processed before the failure keep their documents.
    assert (root / "index.html").exists()
    assert (root / "a" / "index.html").exists()
    assert not (root / "b" / "index.html").exists()


def test_trailing_separator_root(gallery, config):
    assert walker.build_tree(os.fspath(gallery) + os.sep, config) == 2
