"""
Replay Folder Watchdog for Warcraft III Replay Files

Monitors the replay library for new or rewritten .w3g files and runs
the analysis cache gate on each one once it has settled.

Optimizations:
- Debounce/coalesce file events (2 second default)
- File size stability checks before processing
- The cache gate skips replays whose analysis is already fresh
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from w3stats.core.constants import REPLAY_SUFFIX
from w3stats.core.utils import has_suffix, iter_files
from w3stats.infra.cache import AnalysisCache, ConversionResult

logger = logging.getLogger(__name__)


@dataclass
class ReplayFileEvent:
    """A replay file that appeared or changed and has stopped growing."""

    file_path: Path
    event_type: str  # "created", "modified" or "moved"
    timestamp: float

    @property
    def filename(self) -> str:
        return self.file_path.name


class ReplayFileHandler(FileSystemEventHandler):
    """
    Handler for replay file events with debouncing.

    Queues a replay for processing only when:
    - File meets minimum size requirement
    - File size has stabilized (not being written)
    - Debounce period has elapsed without new modifications
    """

    # Number of stability checks to perform
    STABILITY_CHECKS = 3
    # Time between stability checks (seconds)
    STABILITY_CHECK_INTERVAL = 0.3

    def __init__(
        self,
        event_queue: queue.Queue,
        replay_suffix: str = REPLAY_SUFFIX,
        min_file_size: int = 1024,
        debounce_seconds: float = 2.0,
    ):
        """
        Initialize the handler.

        Args:
            event_queue: Queue to put settled replay events on
            replay_suffix: Suffix identifying replay files
            min_file_size: Minimum file size in bytes to process
            debounce_seconds: Time to wait for the file to finish writing
        """
        super().__init__()
        self.event_queue = event_queue
        self.replay_suffix = replay_suffix
        self.min_file_size = min_file_size
        self.debounce_seconds = debounce_seconds
        # path -> (last_event_time, event_count)
        self._pending_files: dict[str, tuple[float, int]] = {}
        self._lock = threading.Lock()

    def _is_replay_file(self, path: str) -> bool:
        return has_suffix(path, self.replay_suffix)

    def _is_file_ready(self, path: Path) -> bool:
        """Check that the file is big enough and no longer growing."""
        if not path.exists():
            return False

        try:
            initial_size = path.stat().st_size
            if initial_size < self.min_file_size:
                logger.debug(f"File too small ({initial_size} bytes): {path.name}")
                return False

            sizes = [initial_size]
            for _ in range(self.STABILITY_CHECKS):
                time.sleep(self.STABILITY_CHECK_INTERVAL)
                if not path.exists():
                    return False
                sizes.append(path.stat().st_size)

            if len(set(sizes)) == 1:
                logger.debug(f"File stable at {initial_size} bytes: {path.name}")
                return True
            logger.debug(f"File size changing ({sizes}): {path.name}")
            return False

        except OSError as e:
            logger.debug(f"Error checking file readiness: {e}")
            return False

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory or not self._is_replay_file(str(event.src_path)):
            return
        logger.debug(f"Replay file created: {event.src_path}")
        self._schedule_processing(str(event.src_path), "created")

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle file modification events with coalescing."""
        if event.is_directory or not self._is_replay_file(str(event.src_path)):
            return

        src_path = str(event.src_path)
        with self._lock:
            pending = self._pending_files.get(src_path)
            if pending is not None:
                _, event_count = pending
                self._pending_files[src_path] = (time.time(), event_count + 1)
                logger.debug(f"Coalesced event #{event_count + 1} for: {src_path}")
                return

        logger.debug(f"Replay file modified: {src_path}")
        self._schedule_processing(src_path, "modified")

    def on_moved(self, event: FileSystemEvent) -> None:
        """Replays renamed into place (e.g. a game client's temp file)."""
        dest_path = str(getattr(event, "dest_path", "") or "")
        if event.is_directory or not self._is_replay_file(dest_path):
            return
        logger.debug(f"Replay file moved in: {dest_path}")
        self._schedule_processing(dest_path, "moved")

    def _schedule_processing(self, file_path: str, event_type: str) -> None:
        """Schedule a file for processing after the debounce period."""
        with self._lock:
            self._pending_files[file_path] = (time.time(), 1)

        def process_after_debounce():
            time.sleep(self.debounce_seconds)

            with self._lock:
                pending = self._pending_files.get(file_path)
                if pending is None:
                    return

                last_modified, event_count = pending
                if time.time() - last_modified < self.debounce_seconds:
                    logger.debug(f"Re-scheduling (still active, {event_count} events): {file_path}")
                    threading.Thread(target=process_after_debounce, daemon=True).start()
                    return

                del self._pending_files[file_path]

            path = Path(file_path)
            if self._is_file_ready(path):
                self.event_queue.put(
                    ReplayFileEvent(file_path=path, event_type=event_type, timestamp=time.time())
                )
                logger.info(f"Replay ready (coalesced {event_count} events): {path.name}")

        threading.Thread(target=process_after_debounce, daemon=True).start()


class ReplayWatcher:
    """
    Watches the replay library and keeps analysis artifacts up to date.

    Example usage:
        watcher = ReplayWatcher(root, cache)

        @watcher.on_new_replay
        def report(result):
            print(f"{result.replay_path.name}: {result.outcome.value}")

        watcher.start(blocking=True)
    """

    def __init__(
        self,
        watch_folder: Path,
        cache: AnalysisCache,
        recursive: bool = True,
        debounce_seconds: float = 2.0,
        min_file_size: int = 1024,
    ):
        """
        Initialize the replay watcher.

        Args:
            watch_folder: Folder to watch
            cache: Cache gate run on every settled replay
            recursive: Whether to watch subdirectories
            debounce_seconds: Time to wait for a file to stabilize
            min_file_size: Files smaller than this are ignored
        """
        self.watch_folder = Path(watch_folder)
        self.cache = cache
        self.recursive = recursive
        self.debounce_seconds = debounce_seconds
        self.min_file_size = min_file_size

        self._event_queue: queue.Queue[ReplayFileEvent] = queue.Queue()
        self._observer: Observer | None = None
        self._callbacks: list[Callable[[ConversionResult], None]] = []
        self._running = False
        self._processor_thread: threading.Thread | None = None

    def on_new_replay(
        self, callback: Callable[[ConversionResult], None]
    ) -> Callable[[ConversionResult], None]:
        """
        Decorator registering a callback for every processed replay.

        The callback receives the cache gate's ConversionResult.
        """
        self._callbacks.append(callback)
        return callback

    def add_callback(self, callback: Callable[[ConversionResult], None]) -> None:
        self._callbacks.append(callback)

    def start(self, blocking: bool = False) -> None:
        """
        Start watching for replay files.

        Args:
            blocking: If True, blocks until stop() is called or Ctrl+C
        """
        if self._running:
            logger.warning("Watcher is already running")
            return

        if not self.watch_folder.exists():
            logger.info(f"Creating watch folder: {self.watch_folder}")
            self.watch_folder.mkdir(parents=True, exist_ok=True)

        self._running = True

        handler = ReplayFileHandler(
            self._event_queue,
            replay_suffix=self.cache.replay_suffix,
            min_file_size=self.min_file_size,
            debounce_seconds=self.debounce_seconds,
        )
        self._observer = Observer()
        self._observer.schedule(handler, str(self.watch_folder), recursive=self.recursive)

        self._processor_thread = threading.Thread(target=self._process_events, daemon=True)
        self._processor_thread.start()

        self._observer.start()
        logger.info(f"Watching for replays in: {self.watch_folder}")

        if blocking:
            try:
                while self._running:
                    time.sleep(1)
            except KeyboardInterrupt:
                self.stop()

    def stop(self) -> None:
        """Stop watching for replay files."""
        self._running = False

        if self._observer:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

        logger.info("Replay watcher stopped")

    def handle_event(self, event: ReplayFileEvent) -> ConversionResult:
        """Run the cache gate for one settled replay and notify callbacks."""
        result = self.cache.ensure(event.file_path)
        for callback in self._callbacks:
            try:
                callback(result)
            except Exception as e:
                logger.error(f"Error in callback: {e}")
        return result

    def _process_events(self) -> None:
        while self._running:
            try:
                event = self._event_queue.get(timeout=1)
            except queue.Empty:
                continue
            self.handle_event(event)

    def scan_existing(self) -> list[Path]:
        """Replay files already present in the watch folder."""
        if not self.watch_folder.exists():
            return []

        if self.recursive:
            return sorted(iter_files(self.watch_folder, self.cache.replay_suffix))
        return sorted(
            p
            for p in self.watch_folder.iterdir()
            if p.is_file() and has_suffix(p.name, self.cache.replay_suffix)
        )

    @property
    def is_running(self) -> bool:
        return self._running
