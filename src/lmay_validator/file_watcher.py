# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""File system watcher for continuous validation.

Watchdog reports create/modify/delete/move events from its observer thread.
The watcher filters them through the project's ignore rules and collects the
changed paths; once no event has arrived for debounce_seconds, the change
callback runs once with everything collected. The callback (normally a fresh
validation session) runs on a timer thread, never on the observer thread.

Any non-ignored change triggers the callback, not only documentation files:
documents reference source paths, so a deleted source directory can make a
document invalid.
"""

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional, Set

from watchdog.events import FileMovedEvent, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from lmay_validator.scanner import IgnoreRules

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)

# Callback signature: (changed_paths: Set[str]) -> None
ChangeCallback = Callable[[Set[str]], None]

DEFAULT_DEBOUNCE_SECONDS = 1.0


class DocumentWatcher:
    """Watches a project and re-runs a callback after changes settle.

    Thread Safety:
    - _pending and _timer are guarded by _lock; the observer thread and the
      timer thread both touch them

    Usage:
        watcher = DocumentWatcher(project_root, on_change=revalidate)
        watcher.start()
        # ... until interrupted ...
        watcher.stop()
    """

    def __init__(
        self,
        project_root: Path,
        on_change: ChangeCallback,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        ignore_rules: Optional[IgnoreRules] = None,
    ):
        self.project_root = Path(project_root).resolve()
        self.on_change = on_change
        self.debounce_seconds = debounce_seconds
        self.ignore_rules = ignore_rules or IgnoreRules()

        self._pending: Set[str] = set()
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

        self._observer: Optional["BaseObserver"] = None
        self._event_handler = _ProjectEventHandler(self)

        logger.debug(f"DocumentWatcher initialized for {self.project_root}")

    def should_ignore(self, file_path: str) -> bool:
        try:
            rel_path = Path(file_path).resolve().relative_to(self.project_root)
        except ValueError:
            return True
        return self.ignore_rules.is_ignored(rel_path.as_posix())

    def notify(self, file_path: str) -> None:
        """Record a changed path and restart the debounce timer."""
        if self.should_ignore(file_path):
            return
        with self._lock:
            self._pending.add(file_path)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self.flush)
            self._timer.daemon = True
            self._timer.start()
        logger.debug(f"Change recorded: {file_path}")

    def flush(self) -> None:
        """Run the callback now with every pending change."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            changed = self._pending
            self._pending = set()

        if not changed:
            return
        logger.info(f"Detected {len(changed)} changed paths, re-validating")
        try:
            self.on_change(changed)
        except Exception as e:
            # Keep watching; the next change retries
            logger.error(f"Re-validation failed: {e}", exc_info=True)

    @property
    def pending(self) -> Set[str]:
        with self._lock:
            return set(self._pending)

    def start(self) -> None:
        """Start watching the project.

        Raises:
            RuntimeError: If the watcher is already running
        """
        if self._observer is not None and self._observer.is_alive():
            raise RuntimeError("DocumentWatcher is already running")

        self._observer = Observer()
        self._observer.schedule(  # type: ignore  # watchdog types vary by version
            self._event_handler, str(self.project_root), recursive=True
        )
        self._observer.start()  # type: ignore  # watchdog types vary by version
        logger.info(f"Watching {self.project_root}")

    def stop(self) -> None:
        """Stop watching and drop pending changes."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending.clear()

        if self._observer is not None and self._observer.is_alive():
            self._observer.stop()  # type: ignore  # watchdog types vary by version
            self._observer.join(timeout=5.0)
            logger.info("DocumentWatcher stopped")

    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()


class _ProjectEventHandler(FileSystemEventHandler):
    """Forwards watchdog events to a DocumentWatcher."""

    def __init__(self, watcher: DocumentWatcher):
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        self.watcher.notify(str(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory modify events only echo changes to their children
        if event.is_directory:
            return
        self.watcher.notify(str(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        self.watcher.notify(str(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        if not isinstance(event, FileMovedEvent):
            return
        self.watcher.notify(str(event.src_path))
        self.watcher.notify(str(event.dest_path))
