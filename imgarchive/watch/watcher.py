"""
Filesystem watcher for a gallery tree.

Every non-excluded directory gets its own non-recursive watchdog schedule, and
new directories are scheduled as their creation is observed. The observer
thread only forwards raw notifications; a single worker thread filters them,
grows the watch set and pushes structured events onto a bounded queue.
"""
from __future__ import annotations

import abc
import datetime as dt
import enum
import logging
import os
import queue
import stat
import threading
from typing import Callable, Dict, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch
from watchdog.observers.polling import PollingObserver

from imgarchive.config import WatcherConfig
from imgarchive.utils.paths import is_excluded
from imgarchive.watch.events import QUEUE_CLOSED, FileEvent, Op, RawEvent

log = logging.getLogger(__name__)

ObserverFactory = Callable[[], BaseObserver]

# How often blocked reads and writes wake up to look at the cancel signal.
_WAKE_INTERVAL = 0.1

_OPS = {
    "created": Op.CREATE,
    "modified": Op.WRITE,
    "deleted": Op.REMOVE,
    "moved": Op.RENAME,
}


class WatcherError(RuntimeError):
    pass


class State(enum.Enum):
    IDLE = "idle"
    WATCHING = "watching"
    STOPPED = "stopped"


class Watcher(abc.ABC):
    """Anything that turns a directory tree into a queue of FileEvents."""

    @abc.abstractmethod
    def start(self, cancel: Optional[threading.Event] = None) -> "queue.Queue":
        ...

    @abc.abstractmethod
    def stop(self) -> None:
        ...


def translate_event(event: FileSystemEvent) -> RawEvent:
    """
    Map a watchdog event onto an Op.

    Moves report their destination. Open/close notifications and
    modifications of a directory itself (watchdog raises one on the parent
    for every child change) carry nothing of their own and become CHMOD.
    """
    op = _OPS.get(event.event_type, Op.CHMOD)
    path = os.fsdecode(event.src_path)
    if op is Op.RENAME:
        path = os.fsdecode(event.dest_path)
    elif op is Op.WRITE and event.is_directory:
        op = Op.CHMOD
    return RawEvent(op=op, path=path)


class _ForwardingHandler(FileSystemEventHandler):
    """
    Hands events to the worker loop. The hand-off queue is bounded, so a
    stalled consumer stalls the observer too, until cancel is raised.
    """

    def __init__(self, sink: "queue.Queue[RawEvent]", cancelled: Callable[[], bool]):
        super().__init__()
        self.sink = sink
        self.cancelled = cancelled

    def on_any_event(self, event: FileSystemEvent) -> None:
        raw = translate_event(event)
        while not self.cancelled():
            try:
                self.sink.put(raw, timeout=_WAKE_INTERVAL)
                return
            except queue.Full:
                continue


def default_observer_factory(config: WatcherConfig) -> ObserverFactory:
    if config.polling:
        return lambda: PollingObserver(timeout=config.poll_interval)
    return Observer


class FSWatcher(Watcher):
    def __init__(self, config: WatcherConfig, observer_factory: Optional[ObserverFactory] = None):
        self.config = config.normalized()
        root = self.config.path
        if not os.path.isdir(root):
            raise WatcherError(f"invalid directory path: {root}")

        factory = observer_factory or default_observer_factory(self.config)
        try:
            self._observer = factory()
        except Exception as exc:
            raise WatcherError(f"failed to create watcher: {exc}") from exc

        self.state = State.IDLE
        self._raw: "queue.Queue[RawEvent]" = queue.Queue(maxsize=self.config.event_buffer)
        self._handler = _ForwardingHandler(self._raw, self._cancelled)
        self._watches: Dict[str, ObservedWatch] = {}
        self._events: "queue.Queue" = queue.Queue(maxsize=self.config.event_buffer)
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._observer_died_logged = False

    def _cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def events(self) -> "queue.Queue":
        return self._events

    def watched_paths(self) -> List[str]:
        return sorted(self._watches)

    def start(self, cancel: Optional[threading.Event] = None) -> "queue.Queue":
        """
        Register the tree, start the observer and the event loop.

        Returns the bounded queue the FileEvents are delivered on.
        """
        if self.state is not State.IDLE:
            raise WatcherError(f"watcher cannot start from state {self.state.value}")
        if cancel is not None:
            self._cancel = cancel

        self._register_tree(self.config.path)
        try:
            self._observer.start()
        except Exception as exc:
            raise WatcherError(f"failed to start observer: {exc}") from exc

        self.state = State.WATCHING
        self._thread = threading.Thread(target=self._process_events, name="imgarchive-watcher", daemon=True)
        self._thread.start()
        log.info("Watching %d directories under %s", len(self._watches), self.config.path)
        return self._events

    def stop(self) -> None:
        """Raise the cancel signal and shut the observer down. Safe to repeat."""
        if self.state is State.STOPPED:
            return
        was_watching = self.state is State.WATCHING
        self.state = State.STOPPED
        self._cancel.set()
        if not was_watching:
            return
        try:
            self._observer.stop()
            self._observer.join(timeout=5)
        except Exception:
            log.exception("Error while stopping observer")
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=5)

    def _register_tree(self, root: str) -> None:
        def on_error(err: OSError) -> None:
            log.error("Initial directory walk error: %s", err)

        for dirpath, dirnames, _filenames in os.walk(root, onerror=on_error):
            if dirpath != root and is_excluded(dirpath, self.config.exclude):
                dirnames[:] = []
                continue
            dirnames[:] = [d for d in dirnames if not is_excluded(d, self.config.exclude)]
            self._add_watch(dirpath)

    def _add_watch(self, path: str) -> None:
        path = os.path.normpath(path)
        if path in self._watches:
            return
        try:
            self._watches[path] = self._observer.schedule(self._handler, path, recursive=False)
            log.debug("Watching %s", path)
        except Exception as exc:
            log.error("Failed to watch %s: %s", path, exc)

    def _wanted_type(self, path: str, is_dir: bool) -> bool:
        if is_dir or not self.config.include_types:
            return True
        ext = os.path.splitext(path)[1].lower()
        return not ext or ext in self.config.include_types

    def _renamed_onto_excluded(self, raw: RawEvent) -> Optional[FileEvent]:
        # The old name is still listed in the enclosing directory's index.
        # Rebuilds never rename.
        if raw.op is not Op.RENAME:
            return None
        parent = os.path.dirname(os.path.normpath(raw.path))
        if not os.path.isdir(parent) or is_excluded(parent, self.config.exclude):
            return None
        return FileEvent(
            op=Op.WRITE,
            path=parent,
            size=0,
            timestamp=dt.datetime.now(dt.timezone.utc),
            is_dir=True,
        )

    def _handle_event(self, raw: RawEvent) -> Optional[FileEvent]:
        """Filter one raw event; returns the FileEvent to emit, if any."""
        if is_excluded(raw.path, self.config.exclude):
            return self._renamed_onto_excluded(raw)

        if raw.op in (Op.CREATE, Op.RENAME) and os.path.isdir(raw.path):
            # Children may already exist (mkdir -p, a directory moved in).
            self._register_tree(raw.path)

        if raw.op is Op.CHMOD:
            return None

        size = 0
        is_dir = False
        try:
            st = os.stat(raw.path)
            size = st.st_size
            is_dir = stat.S_ISDIR(st.st_mode)
        except OSError:
            pass

        if not self._wanted_type(raw.path, is_dir):
            return None

        return FileEvent(
            op=raw.op,
            path=raw.path,
            size=size,
            timestamp=dt.datetime.now(dt.timezone.utc),
            is_dir=is_dir,
        )

    def _emit(self, event: FileEvent) -> bool:
        while not self._cancel.is_set():
            try:
                self._events.put(event, timeout=_WAKE_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def _check_observer(self) -> None:
        if self._observer_died_logged or self._observer.is_alive():
            return
        self._observer_died_logged = True
        log.error("Filesystem observer stopped unexpectedly; no further changes will be seen")

    def _process_events(self) -> None:
        try:
            while not self._cancel.is_set():
                try:
                    raw = self._raw.get(timeout=_WAKE_INTERVAL)
                except queue.Empty:
                    self._check_observer()
                    continue
                try:
                    event = self._handle_event(raw)
                except Exception:
                    log.exception("Failed to handle %s", raw)
                    continue
                if event is not None:
                    self._emit(event)
        finally:
            try:
                self._events.put_nowait(QUEUE_CLOSED)
            except queue.Full:
                log.debug("Event queue full at shutdown; consumer relies on cancel signal")
