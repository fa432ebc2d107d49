"""
Thumbnailer: generates the cached thumbnails for one gallery directory.

A thumbnail lives at ``<dir>/.thumbs/<name>`` and is only generated when no
file exists at that path. Source changes never invalidate it.
"""
from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from PIL import Image

from imgarchive.config import GalleryConfig
from imgarchive.core.scanner import DirectoryListing
from imgarchive.utils.paths import thumbnail_path_for_source

log = logging.getLogger(__name__)

Pair = Tuple[str, str]


class ThumbnailError(Exception):
    def __init__(self, source: str, destination: str, cause: BaseException):
        super().__init__(f"thumbnail {source} -> {destination}: {cause}")
        self.source = source
        self.destination = destination
        self.cause = cause


@dataclass
class ThumbnailBatch:
    attempted: int = 0
    errors: List[ThumbnailError] = field(default_factory=list)

    @property
    def first_error(self) -> Optional[ThumbnailError]:
        return self.errors[0] if self.errors else None


def _save_format(dest: str) -> str:
    ext = os.path.splitext(dest)[1].lower()
    fmt = Image.registered_extensions().get(ext)
    return fmt or "JPEG"


def generate_thumbnail(src: str, dest: str, config: GalleryConfig) -> None:
    """
    Scale ``src`` straight to ``config.thumb_size`` and write it to ``dest``.

    The image is stretched to the box, not cropped. The encoding follows the
    destination extension so the bytes always match the filename.
    """
    fmt = _save_format(dest)
    with Image.open(src) as im:
        im.load()
        thumb = im.resize(config.thumb_size, Image.LANCZOS)
    if fmt == "JPEG":
        if thumb.mode not in ("RGB", "L"):
            thumb = thumb.convert("RGB")
        thumb.save(dest, fmt, quality=config.thumb_quality, optimize=True)
    else:
        thumb.save(dest, fmt)


def pending_thumbnails(listing: DirectoryListing, config: GalleryConfig) -> List[Pair]:
    """Pairs of (source, destination) for images with no thumbnail on disk."""
    pairs = []
    for name in listing.images:
        src = listing.image_path(name)
        dest = os.fspath(thumbnail_path_for_source(src, config.thumb_dir_name))
        if not os.path.exists(dest):
            pairs.append((src, dest))
    return pairs


def _run_one(src: str, dest: str, config: GalleryConfig) -> None:
    try:
        generate_thumbnail(src, dest, config)
    except Exception as exc:
        # A partial file would be mistaken for a cached thumbnail next run.
        if os.path.exists(dest):
            try:
                os.remove(dest)
            except OSError:
                pass
        raise ThumbnailError(src, dest, exc) from exc


def generate_thumbnails(pairs: Iterable[Pair], config: GalleryConfig) -> ThumbnailBatch:
    """
    Generate every missing thumbnail in ``pairs`` on a bounded thread pool.

    Pairs whose destination already exists are skipped. All work is joined
    before returning; failures are collected without cancelling siblings.
    """
    todo = [(src, dest) for src, dest in pairs if not os.path.exists(dest)]
    batch = ThumbnailBatch(attempted=len(todo))
    if not todo:
        return batch

    workers = max(1, min(config.max_workers, len(todo)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(_run_one, src, dest, config): src for src, dest in todo}
        for fut in as_completed(futures):
            try:
                fut.result()
            except ThumbnailError as exc:
                log.warning("Failed to generate thumbnail for %s: %s", exc.source, exc.cause)
                batch.errors.append(exc)
    return batch
