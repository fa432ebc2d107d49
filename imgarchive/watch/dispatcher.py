"""
Dispatcher: turns FileEvents into tree rebuilds, one per event, in order.
"""
from __future__ import annotations

import logging
import os
import queue
import threading
from typing import Callable, Optional

from imgarchive.config import GalleryConfig
from imgarchive.core.walker import build_tree
from imgarchive.watch.events import QUEUE_CLOSED, FileEvent, Op

log = logging.getLogger(__name__)

BuildFunc = Callable[[str, GalleryConfig], int]


def rebuild_root_for(event: FileEvent, watch_root: Optional[str] = None) -> str:
    """
    Directory to rebuild for ``event``.

    Files rebuild their parent. A directory rebuilds itself, except a newly
    created or moved-in one, which rebuilds its parent so the parent's
    sidebar picks it up.
    """
    path = os.path.normpath(event.path)
    if not event.is_dir:
        return os.path.dirname(path)
    if event.op in (Op.CREATE, Op.RENAME):
        parent = os.path.dirname(path)
        if watch_root is None or _is_within(parent, watch_root):
            return parent
    return path


def _is_within(path: str, root: str) -> bool:
    root = os.path.normpath(root)
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


class Dispatcher:
    def __init__(
        self,
        events: "queue.Queue",
        config: GalleryConfig,
        cancel: Optional[threading.Event] = None,
        watch_root: Optional[str] = None,
        build: BuildFunc = build_tree,
    ):
        self.events = events
        self.config = config
        self.cancel = cancel or threading.Event()
        self.watch_root = watch_root
        self.build = build
        self.rebuilds = 0
        self.failures = 0

    def handle(self, event: FileEvent) -> None:
        log.info(event.describe())
        root = rebuild_root_for(event, self.watch_root)
        try:
            self.build(root, self.config)
        except Exception:
            self.failures += 1
            log.exception("Rebuild of %s failed", root)
        else:
            self.rebuilds += 1

    def run(self, poll_interval: float = 0.1) -> None:
        """Consume events until the queue is closed or cancel is raised."""
        while not self.cancel.is_set():
            try:
                item = self.events.get(timeout=poll_interval)
            except queue.Empty:
                continue
            if item is QUEUE_CLOSED:
                break
            self.handle(item)
        log.info("Consumer shutting down")
