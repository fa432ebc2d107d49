"""
Tree walker: regenerates thumbnails and index documents for every directory
below a root.

Every call is a full, non-incremental rebuild of the subtree. Directories
indexed before an error keep their new documents.
"""
from __future__ import annotations

import logging
import os
from typing import Optional, Set

from imgarchive.config import GalleryConfig
from imgarchive.core.render import write_index
from imgarchive.core.scanner import DirectoryListing, scan_directory
from imgarchive.core.thumbnails import generate_thumbnails, pending_thumbnails

log = logging.getLogger(__name__)


def index_directory(folder: str, config: GalleryConfig) -> DirectoryListing:
    """
    Scan one directory, fill in its missing thumbnails and write its index.

    Thumbnail failures are logged and do not stop the index from being
    written. Listing or writing failures raise OSError.
    """
    if config.thumbnails:
        os.makedirs(os.path.join(folder, config.thumb_dir_name), exist_ok=True)

    listing = scan_directory(folder, config)

    if config.thumbnails:
        batch = generate_thumbnails(pending_thumbnails(listing, config), config)
        if batch.first_error is not None:
            log.warning(
                "%s: %d of %d thumbnail(s) failed, first error: %s",
                folder,
                len(batch.errors),
                batch.attempted,
                batch.first_error,
            )

    write_index(listing, config)
    log.info("Indexed %s (%d dirs, %d images)", folder, len(listing.subdirs), len(listing.images))
    return listing


def build_tree(root: str, config: GalleryConfig, _visited: Optional[Set[str]] = None) -> int:
    """
    Index ``root`` and everything below it, depth first.

    Returns the number of directories indexed. The reserved thumbnail
    directory is never entered and each real path is visited once, so
    symlink loops terminate.
    """
    root = os.path.normpath(root.rstrip("/\\") or root)
    visited = _visited if _visited is not None else set()

    real = os.path.realpath(root)
    if real in visited:
        log.debug("Skipping already visited %s", root)
        return 0
    visited.add(real)

    if os.path.basename(root) == config.thumb_dir_name:
        return 0

    listing = index_directory(root, config)
    count = 1
    for name in listing.subdirs:
        count += build_tree(listing.subdir_path(name), config, visited)
    return count
