"""
Scanner: lists one directory and classifies its entries.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import List

from imgarchive.config import GalleryConfig

log = logging.getLogger(__name__)

IMG_EXTS = {".jpg", ".jpeg", ".png", ".gif"}


@dataclass
class DirectoryListing:
    path: str
    name: str
    subdirs: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    thumbnails: bool = True

    def image_path(self, name: str) -> str:
        return os.path.join(self.path, name)

    def subdir_path(self, name: str) -> str:
        return os.path.join(self.path, name)


def is_image_file(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in IMG_EXTS


def scan_directory(folder: str, config: GalleryConfig) -> DirectoryListing:
    """
    Return the subdirectories and images directly inside ``folder``.

    Entries are sorted by name. The reserved thumbnail directory is never
    listed. Raises OSError when the directory cannot be listed.
    """
    folder = os.path.normpath(folder)
    listing = DirectoryListing(
        path=folder,
        name=os.path.basename(folder) or folder,
        thumbnails=config.thumbnails,
    )
    with os.scandir(folder) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        log.debug("Processing %s", entry.name)
        try:
            is_dir = entry.is_dir()
        except OSError:
            # Entry vanished between listing and stat.
            continue
        if is_dir:
            if entry.name not in (config.thumb_dir_name, config.index_name):
                listing.subdirs.append(entry.name)
        elif entry.name != config.index_name and is_image_file(entry.name):
            listing.images.append(entry.name)
    return listing
