"""
Background loading of metadata records.

A viewer typically lists every file of a directory at once but only needs
the records as the user looks at them. ``LazyRecord`` computes its record on
first access, and ``BackgroundLoader`` walks a batch of them on a worker
thread so that searching a directory doesn't stall the interface.

The loader keeps a single pending batch. Submitting a new batch replaces the
pending one and makes the worker abandon the batch it is working on after the
current file; records that were already computed keep their values.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

from ..exceptions import LoraInspectorError
from ..models.record import MetadataRecord
from .progress import ProgressCallback

logger = logging.getLogger(__name__)


class LazyRecord:
    """
    A file path whose MetadataRecord is computed on first access.

    Hard failures (unreadable file, invalid header length) are kept on
    ``error`` and the record falls back to the empty record, so callers can
    tell "could not be loaded" apart from "loaded, nothing found".
    """

    def __init__(self, path: Union[str, Path], loader: Callable[[str], MetadataRecord]):
        """
        Initialize the lazy record.

        Args:
            path: Path of the safetensors file
            loader: Function producing the record for a path, may raise on hard failures
        """
        self.path = str(path)
        self.error: Optional[Exception] = None
        self._loader = loader
        self._record: Optional[MetadataRecord] = None
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        """File name without directories."""
        return Path(self.path).name

    @property
    def is_loaded(self) -> bool:
        return self._record is not None

    @property
    def failed(self) -> bool:
        """True once loading was attempted and hit a hard failure."""
        return self.error is not None

    def get(self) -> MetadataRecord:
        """
        Return the record, computing it if this is the first access.

        Concurrent callers block until the single computation finishes.
        """
        record = self._record
        if record is not None:
            return record

        with self._lock:
            if self._record is None:
                try:
                    self._record = self._loader(self.path)
                except (OSError, LoraInspectorError) as e:
                    logger.warning(f"Could not load {self.path}: {e}")
                    self.error = e
                    self._record = MetadataRecord()
            return self._record

    def __repr__(self) -> str:
        state = 'failed' if self.failed else 'loaded' if self.is_loaded else 'pending'
        return f"LazyRecord({self.path!r}, {state})"


class BackgroundLoader:
    """
    Single worker thread that forces LazyRecords batch by batch.

    Attributes:
        callback: Optional ProgressCallback notified from the worker thread
    """

    def __init__(self, callback: Optional[ProgressCallback] = None, name: str = 'lora-inspector-loader'):
        """
        Start the worker thread.

        Args:
            callback: Progress hooks, called from the worker thread
            name: Thread name
        """
        self.callback = callback
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self._condition = threading.Condition()
        self._pending: Optional[List[LazyRecord]] = None
        self._progress: Tuple[int, int] = (0, 0)
        self._busy = False
        self._closed = False

        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def submit(self, batch: Iterable[LazyRecord]) -> None:
        """
        Queue a batch, replacing any batch that hasn't finished.

        Args:
            batch: Records to load, in order

        Raises:
            RuntimeError: If the loader has been closed
        """
        batch = list(batch)
        with self._condition:
            if self._closed:
                raise RuntimeError("BackgroundLoader is closed")
            if self._pending is not None or self._busy:
                self.logger.debug("Superseding unfinished batch")
            self._pending = batch
            self._progress = (0, len(batch))
            self._condition.notify_all()

    def progress(self) -> Tuple[int, int]:
        """Return (completed, total) for the latest batch."""
        with self._condition:
            return self._progress

    def is_idle(self) -> bool:
        """True when no batch is pending or being processed."""
        with self._condition:
            return self._pending is None and not self._busy

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the loader is idle.

        After close() this still waits for the file the worker is loading.

        Args:
            timeout: Maximum number of seconds to wait, None waits forever

        Returns:
            True if the loader became idle, False on timeout
        """
        with self._condition:
            return self._condition.wait_for(
                lambda: self._pending is None and not self._busy,
                timeout
            )

    def close(self, timeout: Optional[float] = None) -> None:
        """
        Stop the worker after the file it is currently loading.

        Args:
            timeout: Maximum number of seconds to wait for the thread
        """
        with self._condition:
            self._closed = True
            self._pending = None
            self._condition.notify_all()
        self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            with self._condition:
                while self._pending is None and not self._closed:
                    self._busy = False
                    self._condition.notify_all()
                    self._condition.wait()
                if self._closed:
                    self._busy = False
                    self._condition.notify_all()
                    return
                batch, self._pending = self._pending, None
                self._busy = True

            try:
                self._process(batch)
            except Exception as e:
                # A failing progress hook must not kill the worker
                self.logger.exception(f"Error in background batch: {e}")

    def _process(self, batch: List[LazyRecord]) -> None:
        total = len(batch)
        if self.callback:
            self.callback.start(total)

        for index, entry in enumerate(batch, start=1):
            try:
                entry.get()
            except Exception as e:
                self.logger.exception(f"Error loading {entry.path}: {e}")
                if self.callback:
                    self.callback.error(e)

            with self._condition:
                if self._closed or self._pending is not None:
                    return
                self._progress = (index, total)
                self._condition.notify_all()

            if self.callback:
                self.callback.progress(index, total)
                if entry.error is not None:
                    self.callback.error(entry.error)

        if self.callback:
            self.callback.complete(total)

    def __enter__(self) -> BackgroundLoader:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
