import os
import sys
from pathlib import Path

import pytest
from PIL import Image

# Ensure repo root is on sys.path for test discovery
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from imgarchive.config import GalleryConfig  # noqa: E402


def make_image(path: Path, size=(40, 30), color="red", fmt=None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color=color).save(path, fmt)
    return path


@pytest.fixture
def config() -> GalleryConfig:
    return GalleryConfig(max_workers=4)


@pytest.fixture
def gallery(tmp_path: Path) -> Path:
    """root/ with a/a1.jpg, root.png and a stray text file."""
    root = tmp_path / "g"
    make_image(root / "a" / "a1.jpg")
    make_image(root / "root.png", color="blue")
    (root / "notes.txt").write_text("ignore", encoding="utf-8")
    return root


class FakeWatch:
    def __init__(self, path: str):
        self.path = path


class FakeObserver:
    """Stands in for a watchdog observer; records schedules, never emits."""

    def __init__(self):
        self.scheduled = []
        self.started = False
        self.stopped = False

    def schedule(self, handler, path, recursive=False):
        self.handler = handler
        self.scheduled.append((path, recursive))
        return FakeWatch(path)

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        return None

    def is_alive(self):
        return self.started and not self.stopped
