"""Watch loop: re-renders stencils on filesystem changes.

The watchdog observer thread only translates filesystem notifications into
WatchEvents on a queue. A single control thread consumes the queue, so renders
never overlap and each path's events are handled in delivery order.

State machine:
    ACTIVE --(.pause created)--> PAUSED
    PAUSED --(.pause removed)--> ACTIVE

While PAUSED every other event is dropped; nothing is replayed on resume.
A newly created stencil is rendered only after a debounce delay, implemented
as a timer that posts a READY event back onto the queue.
"""

import logging
import os
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from stenciler.engine.batch import BatchOrchestrator, RenderSession
from stenciler.exceptions import WatchError
from stenciler.models import (
    PAUSE_SENTINEL,
    FileOutcome,
    WatchState,
    is_hidden_name,
    is_private_name,
    is_sentinel_name,
)

logger = logging.getLogger(__name__)

# How often the control thread wakes up to check the observer is alive
POLL_INTERVAL = 0.5


class EventKind(Enum):
    """Filesystem change kinds the loop reacts to."""

    MODIFIED = "modified"
    CREATED = "created"
    DELETED = "deleted"
    MOVED_IN = "moved_in"  # destination of a rename
    READY = "ready"  # debounce delay elapsed for a created file


@dataclass(frozen=True)
class WatchEvent:
    """A filesystem change relevant to the watch loop."""

    kind: EventKind
    path: Path
    token: int = 0  # identifies the debounce timer behind a READY event


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[..., Timer]


class _EventForwarder(FileSystemEventHandler):
    """Translates watchdog events into WatchEvents on the loop queue."""

    def __init__(self, post: Callable[[WatchEvent], None]) -> None:
        super().__init__()
        self._post = post

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        src = Path(os.fsdecode(event.src_path))
        if event.event_type == "modified":
            self._post(WatchEvent(EventKind.MODIFIED, src))
        elif event.event_type == "created":
            self._post(WatchEvent(EventKind.CREATED, src))
        elif event.event_type == "deleted":
            self._post(WatchEvent(EventKind.DELETED, src))
        elif event.event_type == "moved":
            self._post(WatchEvent(EventKind.DELETED, src))
            dest = getattr(event, "dest_path", "")
            if dest:
                self._post(WatchEvent(EventKind.MOVED_IN, Path(os.fsdecode(dest))))


class WatchLoop:
    """Event-driven controller re-running the batch orchestrator per change.

    Attributes:
        state: Current WatchState (owned and written only by this loop)
        tracked: Stencils currently part of the batch target
        watch_dir: Folder subscribed to
        debounce_seconds: Delay before rendering a newly created stencil
    """

    def __init__(
        self,
        orchestrator: BatchOrchestrator,
        session: RenderSession,
        debounce_seconds: float,
        timer_factory: TimerFactory = threading.Timer,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        self._orchestrator = orchestrator
        self._session = session
        self.debounce_seconds = debounce_seconds
        self._timer_factory = timer_factory
        self._observer_factory = observer_factory
        self._observer: Any = None
        self._queue: queue.Queue[WatchEvent] = queue.Queue()
        self._pending: dict[Path, tuple[int, Timer]] = {}
        self._tokens = 0
        self._stop = threading.Event()

        target = session.target
        self._single_file: Path | None = None
        if target.file is not None:
            self._single_file = target.file.resolve()
            self.watch_dir = self._single_file.parent
        elif target.folder is not None:
            self.watch_dir = target.folder.resolve()
        else:
            raise WatchError("Nothing to watch: no stencil folder or file")

        self.tracked: set[Path] = {p.resolve() for p in target.enumerate()}
        self.state = WatchState.ACTIVE

    @property
    def sentinel(self) -> Path:
        return self.watch_dir / PAUSE_SENTINEL

    @property
    def paused(self) -> bool:
        return self.state is WatchState.PAUSED

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Establish the initial state and subscribe to the watched folder.

        Raises:
            WatchError: If the subscription cannot be established
        """
        self.state = WatchState.PAUSED if self.sentinel.exists() else WatchState.ACTIVE

        try:
            self._observer = self._observer_factory()
            self._observer.schedule(
                _EventForwarder(self.post), str(self.watch_dir), recursive=False
            )
            self._observer.start()
        except OSError as e:
            raise WatchError(f"Failed to setup a file watcher: {e}") from e

        if self.paused:
            logger.info("Watching is paused...")
        else:
            logger.info("Watching for changes...")

    def run(self) -> None:
        """Start watching and handle events until stopped or interrupted.

        Raises:
            WatchError: If the subscription fails or dies
        """
        self.start()
        try:
            while not self._stop.is_set():
                try:
                    event = self._queue.get(timeout=POLL_INTERVAL)
                except queue.Empty:
                    if not self._observer.is_alive():
                        raise WatchError("Error during file change event: watcher stopped")
                    continue
                self.handle_event(event)
        except KeyboardInterrupt:
            logger.info("Watch stopped")
        finally:
            self.close()

    def stop(self) -> None:
        """Ask the control loop to exit after the current event."""
        self._stop.set()

    def close(self) -> None:
        """Cancel pending debounces and release the subscription."""
        for _, timer in self._pending.values():
            timer.cancel()
        self._pending.clear()

        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    # =========================================================================
    # Event handling (control thread only)
    # =========================================================================

    def post(self, event: WatchEvent) -> None:
        """Queue an event for the control thread. Safe from any thread."""
        self._queue.put(event)

    def process_pending(self) -> int:
        """Handle every queued event without blocking.

        Returns:
            Number of events handled
        """
        handled = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                return handled
            self.handle_event(event)
            handled += 1

    def handle_event(self, event: WatchEvent) -> list[FileOutcome]:
        """Apply one event to the state machine.

        Returns:
            Outcomes of any renders the event triggered
        """
        path = event.path.resolve()

        if is_sentinel_name(path.name) and path.parent == self.watch_dir:
            self._handle_sentinel(event.kind)
            return []

        if self.paused:
            logger.debug("Paused, ignoring %s event for %s", event.kind.value, path)
            if event.kind is EventKind.READY:
                self._take_pending(path, event.token)
            return []

        if not self._is_watched(path):
            return []

        if event.kind is EventKind.DELETED:
            self._cancel_pending(path)
            self.tracked.discard(path)
            return []

        if event.kind is EventKind.CREATED or (
            event.kind is EventKind.MOVED_IN and path not in self.tracked
        ):
            self._schedule(path)
            return []

        if event.kind is EventKind.READY:
            return self._onboard(path, event.token)

        # MODIFIED, or a rename onto a tracked stencil
        if path in self._pending:
            # still settling; the debounced render will pick it up
            return []
        self.tracked.add(path)
        return self._render(path)

    def _handle_sentinel(self, kind: EventKind) -> None:
        if kind is EventKind.DELETED and self.paused:
            logger.warning("Resuming watch...")
            self.state = WatchState.ACTIVE
        elif kind in (EventKind.CREATED, EventKind.MOVED_IN) and not self.paused:
            logger.warning("Watch paused")
            self.state = WatchState.PAUSED

    def _is_watched(self, path: Path) -> bool:
        if self._single_file is not None:
            return path == self._single_file
        return (
            path.parent == self.watch_dir
            and not is_private_name(path.name)
            and not is_hidden_name(path.name)
        )

    def _schedule(self, path: Path) -> None:
        self._cancel_pending(path)
        logger.warning("New file %s found. Reloading stencil list", path.name)
        self._tokens += 1
        ready = WatchEvent(EventKind.READY, path, token=self._tokens)
        timer = self._timer_factory(self.debounce_seconds, self.post, args=[ready])
        if hasattr(timer, "daemon"):
            timer.daemon = True
        self._pending[path] = (self._tokens, timer)
        timer.start()

    def _cancel_pending(self, path: Path) -> None:
        entry = self._pending.pop(path, None)
        if entry is not None:
            entry[1].cancel()

    def _take_pending(self, path: Path, token: int) -> bool:
        """Consume the pending debounce for path if token is still current."""
        entry = self._pending.get(path)
        if entry is None or entry[0] != token:
            return False
        del self._pending[path]
        return True

    def _onboard(self, path: Path, token: int) -> list[FileOutcome]:
        if not self._take_pending(path, token):
            # superseded by a later create or cancelled by a delete
            return []
        if not path.is_file():
            logger.debug("%s disappeared before it could be rendered", path)
            return []

        self._orchestrator.reload_formation(self._session)
        outcomes = self._render(path)
        self.tracked.add(path)
        return outcomes

    def _render(self, path: Path) -> list[FileOutcome]:
        result = self._orchestrator.render_all(self._session, [path])
        return result.outcomes
