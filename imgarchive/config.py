"""
Gallery and watcher configuration.

Defaults are module constants; an optional JSON settings file can override
them and the CLI flags override both.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Tuple

THUMB_DIR_NAME = ".thumbs"
INDEX_NAME = "index.html"
THUMB_SIZE = (150, 150)
THUMB_QUALITY = 80
DEFAULT_EVENT_BUFFER = 100
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_EXCLUDES = [INDEX_NAME, THUMB_DIR_NAME]

MIN_THUMB_EDGE = 16
MAX_THUMB_EDGE = 1024
MAX_WORKERS = 64

DEFAULT_SETTINGS = {
    "thumbnails": True,
    "thumb_size": THUMB_SIZE[0],
    "thumb_quality": THUMB_QUALITY,
    "workers": 0,
    "event_buffer": DEFAULT_EVENT_BUFFER,
    "exclude": list(DEFAULT_EXCLUDES),
    "include_types": [],
    "polling": False,
    "poll_interval": DEFAULT_POLL_INTERVAL,
}


def default_workers() -> int:
    # Same sizing as ThreadPoolExecutor's own default.
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass(frozen=True)
class GalleryConfig:
    thumbnails: bool = True
    thumb_dir_name: str = THUMB_DIR_NAME
    index_name: str = INDEX_NAME
    thumb_size: Tuple[int, int] = THUMB_SIZE
    thumb_quality: int = THUMB_QUALITY
    max_workers: int = field(default_factory=default_workers)


@dataclass(frozen=True)
class WatcherConfig:
    path: str
    event_buffer: int = DEFAULT_EVENT_BUFFER
    exclude: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    include_types: List[str] = field(default_factory=list)
    polling: bool = False
    poll_interval: float = DEFAULT_POLL_INTERVAL

    def normalized(self) -> "WatcherConfig":
        """Return a copy with a usable buffer size and a clean root path."""
        buffer = self.event_buffer if self.event_buffer > 0 else DEFAULT_EVENT_BUFFER
        include = [_normalize_ext(ext) for ext in self.include_types if ext]
        return replace(self, path=os.path.normpath(self.path), event_buffer=buffer, include_types=include)


def _normalize_ext(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


def load_settings(path: Optional[str]) -> dict:
    if not path:
        return _normalize_settings({})
    data = {}
    settings_path = Path(path)
    if settings_path.exists():
        try:
            data = json.loads(settings_path.read_text(encoding="utf-8"))
        except Exception:
            data = {}
    return _normalize_settings(data)


def _normalize_settings(data: dict) -> dict:
    settings = dict(DEFAULT_SETTINGS)
    if isinstance(data, dict):
        for key, value in data.items():
            if key in ("exclude", "include_types"):
                if isinstance(value, list):
                    settings[key] = [str(v) for v in value if isinstance(v, str) and v]
            elif key in DEFAULT_SETTINGS:
                settings[key] = value

    settings["thumbnails"] = bool(settings.get("thumbnails"))
    settings["polling"] = bool(settings.get("polling"))
    settings["thumb_size"] = _clamp_int(settings.get("thumb_size"), THUMB_SIZE[0], MIN_THUMB_EDGE, MAX_THUMB_EDGE)
    settings["thumb_quality"] = _clamp_int(settings.get("thumb_quality"), THUMB_QUALITY, 1, 95)
    settings["workers"] = _clamp_int(settings.get("workers"), 0, 0, MAX_WORKERS)
    settings["event_buffer"] = _clamp_int(settings.get("event_buffer"), DEFAULT_EVENT_BUFFER, 0, 100_000)
    try:
        interval = float(settings.get("poll_interval"))
    except Exception:
        interval = DEFAULT_POLL_INTERVAL
    settings["poll_interval"] = interval if interval > 0 else DEFAULT_POLL_INTERVAL
    return settings


def _clamp_int(value: object, default: int, min_value: int, max_value: int) -> int:
    try:
        num = int(value)
    except Exception:
        return default
    return max(min_value, min(max_value, num))


def gallery_config_from_settings(settings: dict) -> GalleryConfig:
    edge = settings["thumb_size"]
    workers = settings["workers"] or default_workers()
    return GalleryConfig(
        thumbnails=settings["thumbnails"],
        thumb_size=(edge, edge),
        thumb_quality=settings["thumb_quality"],
        max_workers=workers,
    )


def reserved_names(gallery: Optional[GalleryConfig] = None) -> List[str]:
    gallery = gallery or GalleryConfig()
    return [gallery.index_name, gallery.thumb_dir_name]


def watcher_config_from_settings(
    path: str, settings: dict, gallery: Optional[GalleryConfig] = None
) -> WatcherConfig:
    """
    Settings patterns extend the exclusions; the generated index and the
    thumbnail directory are always excluded so rebuilds never re-trigger.
    """
    exclude = list(settings["exclude"])
    for name in reserved_names(gallery):
        if name not in exclude:
            exclude.append(name)
    return WatcherConfig(
        path=path,
        event_buffer=settings["event_buffer"],
        exclude=exclude,
        include_types=list(settings["include_types"]),
        polling=settings["polling"],
        poll_interval=settings["poll_interval"],
    ).normalized()
