from pathlib import Path

import pytest

from imgarchive.utils.paths import is_excluded, resolve_gallery_root, thumbnail_path_for_source


def test_resolve_gallery_root_basic(tmp_path: Path) -> None:
    assert resolve_gallery_root(str(tmp_path)) == tmp_path.resolve()


def test_resolve_gallery_root_strips_trailing_separator(tmp_path: Path) -> None:
    assert resolve_gallery_root(str(tmp_path) + "/") == tmp_path.resolve()


def test_resolve_gallery_root_rejects_empty() -> None:
    with pytest.raises(ValueError):
        resolve_gallery_root("")


def test_resolve_gallery_root_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        resolve_gallery_root(str(tmp_path / "nope"))


def test_resolve_gallery_root_rejects_file(tmp_path: Path) -> None:
    target = tmp_path / "file.txt"
    target.write_text("x", encoding="utf-8")
    with pytest.raises(NotADirectoryError):
        resolve_gallery_root(str(target))


def test_is_excluded_matches_final_segment_only() -> None:
    patterns = ["index.html", ".thumbs"]
    assert is_excluded("/g/a/index.html", patterns)
    assert is_excluded("/g/a/.thumbs", patterns)
    assert is_excluded("/g/a/.thumbs/", patterns)
    assert not is_excluded("/g/.thumbs/a1.jpg", patterns)
    assert not is_excluded("/g/index.html.bak", patterns)


def test_is_excluded_glob_patterns() -> None:
    assert is_excluded("/g/photo.tmp", ["*.tmp"])
    assert not is_excluded("/g/photo.jpg", ["*.tmp"])
    assert not is_excluded("/g/photo.jpg", [])


def test_thumbnail_path_for_source() -> None:
    assert thumbnail_path_for_source("/g/a/a1.jpg", ".thumbs") == Path("/g/a/.thumbs/a1.jpg")
