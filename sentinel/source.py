"""
Watch source for Sentinel.

Wraps a watchdog Observer and turns its callbacks into RawEvent values on an
``events`` queue. Failures of the underlying observer are reported on an
``errors`` queue. Paths are watched non-recursively.

Watchdog reports content writes and attribute changes alike as "modified"
events. To tell them apart the source keeps a stat snapshot of every path
it has seen and compares the old and new snapshot when a modification
arrives:
  - size or mtime changed          -> write
  - mode, uid or gid changed       -> chmod
  - only ctime changed             -> chmod
  - no previous snapshot / nothing -> write
On a watched root directory only mode, uid or gid changes are reported.
"""

import errno
import logging
import os
import queue
import threading
from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional

from watchdog.events import (EVENT_TYPE_CREATED, EVENT_TYPE_DELETED,
                             EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED,
                             FileSystemEvent, FileSystemEventHandler)
from watchdog.observers import Observer
from watchdog.utils import platform

from sentinel.actions import NONE, Category

logger = logging.getLogger(__name__)


class WatchSourceError(Exception):
    """Raised or reported when the watch source can no longer deliver events."""

    pass


@dataclass(frozen=True)
class RawEvent:
    """A single event as delivered by the watch source."""

    path: str
    op: int


class StatSnapshot(NamedTuple):
    """The stat fields used to classify a modification."""

    size: int
    mtime: float
    ctime: float
    mode: int
    uid: int
    gid: int


def stat_snapshot(path: str) -> Optional[StatSnapshot]:
    """Take a snapshot of ``path``, or None if it cannot be stat'ed."""
    try:
        st = os.stat(path)
    except OSError:
        return None
    return StatSnapshot(
        size=st.st_size,
        mtime=st.st_mtime,
        ctime=st.st_ctime,
        mode=st.st_mode,
        uid=st.st_uid,
        gid=st.st_gid,
    )


def attributes_changed(
    previous: Optional[StatSnapshot], current: Optional[StatSnapshot]
) -> bool:
    """True when mode, uid or gid differ between two snapshots."""
    if previous is None or current is None:
        return False
    return (
        current.mode != previous.mode
        or current.uid != previous.uid
        or current.gid != previous.gid
    )


def default_observer():
    """
    Observer for the current platform.

    On Linux unmatched inotify moves are kept as move events with an empty
    source or destination, so a file moved out of a watched directory is a
    rename rather than a deletion.
    """
    if platform.is_linux():
        from watchdog.observers.inotify import InotifyObserver

        return InotifyObserver(generate_full_events=True)
    return Observer()


def modification_category(
    previous: Optional[StatSnapshot], current: Optional[StatSnapshot]
) -> Category:
    """
    Decide which categories a "modified" event belongs to.

    Args:
        previous: Snapshot taken before the event, if any.
        current: Snapshot taken after the event, if any.

    Returns:
        Category: WRITE, CHMOD or both.
    """
    if previous is None or current is None:
        return Category.WRITE

    op = NONE
    if current.size != previous.size or current.mtime != previous.mtime:
        op |= Category.WRITE
    if attributes_changed(previous, current):
        op |= Category.CHMOD
    if op == NONE:
        op = Category.CHMOD if current.ctime != previous.ctime else Category.WRITE
    return op


class _SentinelHandler(FileSystemEventHandler):
    """Translates watchdog events into RawEvents on the source's queue."""

    def __init__(self, source: "WatchSource"):
        super().__init__()
        self._source = source

    def on_any_event(self, event: FileSystemEvent) -> None:
        try:
            raw = self._source.translate(event)
        except Exception as e:
            logger.exception(f"Failed to translate event {event}")
            self._source.errors.put(WatchSourceError(str(e)))
            return
        if raw is not None:
            self._source.events.put(raw)


class WatchSource:
    """
    Filesystem event source backed by watchdog.

    Attributes:
        events (queue.Queue): RawEvent values in delivery order.
        errors (queue.Queue): Exceptions describing fatal source failures.
    """

    def __init__(self, observer=None):
        self.events = queue.Queue()
        self.errors = queue.Queue()
        self._observer = observer if observer is not None else default_observer()
        self._observer.daemon = True
        self._handler = _SentinelHandler(self)
        self._roots = set()
        self._snapshots: Dict[str, StatSnapshot] = {}
        self._lock = threading.Lock()
        self._stopping = False
        self._failed = False

    def start(self):
        """Start the observer thread."""
        self._observer.start()

    def add(self, path: str):
        """
        Register ``path`` with the observer.

        Raises:
            OSError: If the path does not exist or cannot be watched.
        """
        if not os.path.exists(path):
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)
        self._observer.schedule(self._handler, path, recursive=False)
        root = os.path.abspath(path)
        with self._lock:
            self._roots.add(root)
            self._remember(root)
            if os.path.isdir(root):
                with os.scandir(root) as entries:
                    for entry in entries:
                        self._remember(entry.path)

    def translate(self, event: FileSystemEvent) -> Optional[RawEvent]:
        """
        Convert a watchdog event into a RawEvent.

        Returns:
            RawEvent or None: None for events Sentinel ignores (opened,
            closed, and "modified" events on a watched directory that
            only reflect changes to its children).
        """
        src = os.fsdecode(event.src_path)
        with self._lock:
            if event.event_type == EVENT_TYPE_CREATED:
                self._remember(src)
                return RawEvent(src, Category.CREATE)
            if event.event_type == EVENT_TYPE_DELETED:
                self._snapshots.pop(os.path.abspath(src), None)
                return RawEvent(src, Category.DELETE)
            if event.event_type == EVENT_TYPE_MOVED:
                dest = os.fsdecode(event.dest_path) if event.dest_path else ""
                if not src:
                    # moved in from an unwatched directory
                    self._remember(dest)
                    return RawEvent(dest, Category.CREATE)
                self._snapshots.pop(os.path.abspath(src), None)
                if dest:
                    self._remember(dest)
                return RawEvent(src, Category.RENAME)
            if event.event_type == EVENT_TYPE_MODIFIED:
                key = os.path.abspath(src)
                current = stat_snapshot(key)
                previous = self._snapshots.get(key)
                if current is not None:
                    self._snapshots[key] = current
                if event.is_directory and key in self._roots:
                    # child changes touch the root's mtime; only its own
                    # attribute changes are reported
                    if attributes_changed(previous, current):
                        return RawEvent(src, Category.CHMOD)
                    return None
                return RawEvent(src, modification_category(previous, current))
        return None

    def check_health(self):
        """
        Report a WatchSourceError if the observer or one of its emitters
        died while the source was still supposed to be running.
        """
        if self._stopping or self._failed:
            return
        if not self._observer.is_alive():
            self._fail("watch observer stopped unexpectedly")
            return
        for emitter in list(self._observer.emitters):
            if not emitter.is_alive():
                self._fail(f"watch on {emitter.watch.path} stopped unexpectedly")
                return

    def stop(self, timeout: float = 5):
        """Stop and join the observer."""
        self._stopping = True
        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join(timeout)

    def _fail(self, message: str):
        self._failed = True
        self.errors.put(WatchSourceError(message))

    def _remember(self, path: str):
        snapshot = stat_snapshot(path)
        if snapshot is not None:
            self._snapshots[os.path.abspath(path)] = snapshot
