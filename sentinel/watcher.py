"""
Lifecycle controller for Sentinel.

The Watcher registers the configured paths with the watch source, drains
the source on one background thread, and blocks the caller until the Done
signal is produced. Everything that happens per event (classification,
script lookup, launching and waiting for the script) runs sequentially on
that background thread, so scripts never run concurrently.

States:
    STARTING -> WATCHING   all paths registered
    WATCHING -> DONE       first dispatch (loop off), stop status,
                           watch source error, or fatal launch error
"""

import enum
import logging
import queue
import threading
from typing import Callable, Optional

from sentinel.actions import classify, describe
from sentinel.config import WatchConfig
from sentinel.launcher import EnvironmentSetupError, Launcher, StopRequested
from sentinel.source import RawEvent, WatchSource

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.1


class State(enum.Enum):
    STARTING = "starting"
    WATCHING = "watching"
    DONE = "done"


class RegistrationError(Exception):
    """Raised when a path cannot be registered with the watch source."""

    def __init__(self, path: str, error: Exception):
        super().__init__(f"Couldn't watch {path}: {error}")
        self.path = path
        self.error = error


class DoneSignal:
    """
    Single-slot completion channel carrying the process exit status.

    The first signal wins; later ones are dropped. The slot is meant to be
    consumed exactly once.
    """

    def __init__(self):
        self._slot = queue.Queue(maxsize=1)
        self._lock = threading.Lock()
        self._fired = False

    def signal(self, status: int = 0) -> bool:
        """Store ``status``. Returns False if a status was already stored."""
        with self._lock:
            if self._fired:
                return False
            self._fired = True
            self._slot.put_nowait(status)
            return True

    def is_set(self) -> bool:
        return self._fired

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Block until signalled and return the status, or None on timeout."""
        try:
            return self._slot.get(timeout=timeout)
        except queue.Empty:
            return None


class EventDrainer(threading.Thread):
    """
    A thread that drains the watch source's error and event queues.

    Errors are checked before each event read. While idle the source is
    asked to check its own health, which may produce an error.
    """

    def __init__(
        self,
        source: WatchSource,
        on_event: Callable[[RawEvent], None],
        on_error: Callable[[Exception], None],
        on_crash: Callable[[Exception], None],
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        super(EventDrainer, self).__init__(name="sentinel-drainer")
        self.source = source
        self.on_event = on_event
        self.on_error = on_error
        self.on_crash = on_crash
        self.poll_interval = poll_interval
        self.stop_event = threading.Event()
        self.daemon = True

    def run(self):
        logger.debug("EventDrainer started.")
        while not self.stop_event.is_set():
            try:
                try:
                    error = self.source.errors.get_nowait()
                except queue.Empty:
                    pass
                else:
                    self.on_error(error)
                    continue

                try:
                    event = self.source.events.get(timeout=self.poll_interval)
                except queue.Empty:
                    self.source.check_health()
                    continue
                self.on_event(event)
            except Exception as e:
                logger.exception(f"Exception in event drainer: {e}")
                self.on_crash(e)
                break
        logger.debug("EventDrainer stopped.")

    def stop(self):
        self.stop_event.set()


class Watcher:
    """
    Watches the configured paths and dispatches matching events.

    Attributes:
        config: Resolved configuration.
        source: Watch source delivering RawEvents.
        launcher: Runs scripts for triggered categories.
        done: Done signal consumed by wait().
    """

    def __init__(
        self,
        config: WatchConfig,
        source: Optional[WatchSource] = None,
        launcher: Optional[Launcher] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.config = config
        self.source = source if source is not None else WatchSource()
        self.launcher = launcher if launcher is not None else Launcher(
            shell=config.shell, stop_statuses=config.stop_statuses, loop=config.loop
        )
        self.poll_interval = poll_interval
        self.done = DoneSignal()
        self.state = State.STARTING
        self._drainer = None

    def start(self):
        """
        Register every path and start draining events.

        Raises:
            RegistrationError: A path could not be registered. Nothing is
                left running in that case.
        """
        self.source.start()
        for path in self.config.paths:
            logger.debug(f"* {path}")
            try:
                self.source.add(path)
            except OSError as e:
                self.source.stop()
                raise RegistrationError(path, e) from e

        self.state = State.WATCHING
        self._drainer = EventDrainer(
            self.source,
            self.handle_event,
            self.handle_error,
            lambda e: self.finish(1),
            poll_interval=self.poll_interval,
        )
        self._drainer.start()

    def handle_event(self, event: RawEvent):
        """Dispatch every enabled category present in ``event``, in order."""
        if self.state is State.DONE:
            return
        categories = classify(self.config.enabled, event.op)
        if not categories:
            return
        logger.debug(f"{event.path}: {describe(event.op)}")

        finished = False
        try:
            for category in categories:
                script = self.config.script_for(category)
                if self.launcher.launch(category, script, event.path):
                    finished = True
        except StopRequested as e:
            logger.debug(str(e))
            self.finish(0)
            return
        except EnvironmentSetupError as e:
            logger.error(str(e))
            self.finish(1)
            return

        if finished:
            self.finish(0)

    def handle_error(self, error: Exception):
        """
        Handle an error from the watch source.

        Errors are always terminal. One with an empty message is not logged
        and ends the run with status 0.
        """
        message = str(error)
        if message:
            logger.error(f"Error: {message}")
            self.finish(1)
        else:
            self.finish(0)

    def finish(self, status: int):
        """Move to DONE and signal ``status`` (first call wins)."""
        self.state = State.DONE
        if self._drainer is not None:
            self._drainer.stop()
        self.done.signal(status)

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """
        Block until the Done signal arrives, then shut down.

        Returns:
            int or None: Exit status, or None if ``timeout`` expired first.
        """
        status = self.done.wait(timeout)
        if status is not None:
            self.stop()
        return status

    def stop(self, timeout: float = 5):
        """Stop the drainer and the watch source."""
        self.state = State.DONE
        if self._drainer is not None:
            self._drainer.stop()
            if self._drainer is not threading.current_thread():
                self._drainer.join(timeout)
        self.source.stop()

    def run(self) -> int:
        """Start watching and block until done. Returns the exit status."""
        self.start()
        return self.wait()
