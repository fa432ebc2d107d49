from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import Iterable


def resolve_gallery_root(path_str: str, *, must_exist: bool = True) -> Path:
    if not path_str:
        raise ValueError("Path cannot be empty.")

    stripped = path_str.rstrip("/\\") or path_str
    candidate = Path(stripped).resolve()

    if must_exist and not candidate.exists():
        raise FileNotFoundError(candidate)
    if must_exist and not candidate.is_dir():
        raise NotADirectoryError(candidate)

    return candidate


def is_excluded(path: str | os.PathLike, patterns: Iterable[str]) -> bool:
    """
    True when the final segment of ``path`` matches any shell-style pattern.
    Patterns never match against parent directories.
    """
    name = os.path.basename(os.path.normpath(os.fspath(path)))
    for pattern in patterns:
        if fnmatch.fnmatchcase(name, pattern):
            return True
    return False


def thumbnail_path_for_source(img_path: str | os.PathLike, thumb_dir_name: str) -> Path:
    src = Path(img_path)
    return src.parent / thumb_dir_name / src.name
