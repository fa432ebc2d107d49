"""
cli.py

Builds the gallery for a directory tree and optionally keeps it current.

Examples:
  python -m imgarchive ~/Pictures
  python -m imgarchive ~/Pictures --nothumb
  python -m imgarchive ~/Pictures --watch --config gallery.json

Notes:
- The initial pass always runs; --watch then rebuilds the affected directory
  for every change until interrupted.
- Settings from --config are overridden by the flags given here.
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from dataclasses import replace
from typing import List, Optional

from imgarchive.config import (
    GalleryConfig,
    gallery_config_from_settings,
    load_settings,
    watcher_config_from_settings,
)
from imgarchive.utils.paths import resolve_gallery_root

log = logging.getLogger("imgarchive")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="imgarchive", add_help=True, description="Static HTML image gallery")
    p.add_argument("directory", help="Root directory of the image tree")
    p.add_argument("--nothumb", action="store_true", help="Disable thumbnail generation")
    p.add_argument("--watch", action="store_true", help="Start watching the directory for changes")
    p.add_argument("--config", default="", help="Optional JSON settings file")
    p.add_argument("--workers", type=int, default=0, help="Thumbnail worker threads (0 = automatic)")
    p.add_argument("--poll", action="store_true", help="Use the polling observer instead of native notifications")
    p.add_argument("-v", "--verbose", action="store_true", help="Log per-file progress")
    return p


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _gallery_config(args: argparse.Namespace, settings: dict) -> GalleryConfig:
    config = gallery_config_from_settings(settings)
    if args.nothumb:
        config = replace(config, thumbnails=False)
    if args.workers and args.workers > 0:
        config = replace(config, max_workers=args.workers)
    return config


def run_watch(root: str, config: GalleryConfig, settings: dict, polling: bool = False) -> int:
    from imgarchive.watch.dispatcher import Dispatcher
    from imgarchive.watch.watcher import FSWatcher, WatcherError

    watch_config = watcher_config_from_settings(root, settings, config)
    if polling:
        watch_config = replace(watch_config, polling=True)

    try:
        watcher = FSWatcher(watch_config)
    except WatcherError as exc:
        log.error("Failed to create watcher: %s", exc)
        return 1

    cancel = threading.Event()

    def _on_signal(signum, _frame) -> None:
        log.info("Shutdown signal received")
        cancel.set()

    previous = signal.signal(signal.SIGTERM, _on_signal)
    try:
        events = watcher.start(cancel)
    except WatcherError as exc:
        signal.signal(signal.SIGTERM, previous)
        log.error("Failed to start watcher: %s", exc)
        return 1

    log.info("Watching Directory: %s (PID: %d)", root, os.getpid())
    dispatcher = Dispatcher(events, config, cancel=cancel, watch_root=root)
    try:
        dispatcher.run()
    except KeyboardInterrupt:
        log.info("Shutdown signal received")
    finally:
        watcher.stop()
        signal.signal(signal.SIGTERM, previous)
    print(f"Stopped.\nRebuilds: {dispatcher.rebuilds}\nFailed: {dispatcher.failures}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    # Import lazily so this file can show help even if modules have issues.
    from imgarchive.core.walker import build_tree

    try:
        root = resolve_gallery_root(args.directory)
    except (ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    settings = load_settings(args.config)
    config = _gallery_config(args, settings)

    log.info("Indexing directory : %s", root)
    try:
        count = build_tree(os.fspath(root), config)
    except OSError as exc:
        log.error("Indexing %s failed: %s", root, exc)
        return 1
    print(f"Done.\nRoot: {root}\nDirectories: {count}\nThumbnails: {'on' if config.thumbnails else 'off'}")

    if args.watch:
        log.info("Starting watcher...")
        return run_watch(os.fspath(root), config, settings, polling=args.poll)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
