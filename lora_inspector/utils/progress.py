from typing import Iterable, TypeVar, Iterator, Optional, Callable, Any, Dict
import sys
import time
import logging
from enum import Enum
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ProgressFormat(Enum):
    """Output format for progress reporting."""
    PLAIN = 'plain'  # One line per milestone
    BAR = 'bar'  # Redrawn progress bar


@dataclass
class ProgressConfig:
    """Configuration for console progress reporting."""
    format: ProgressFormat = ProgressFormat.BAR
    width: int = 40
    refresh_rate: float = 0.2
    output_stream: Any = field(default=None)

    def __post_init__(self):
        """Default to stderr if no stream was given."""
        if self.output_stream is None:
            self.output_stream = sys.stderr


def format_time(seconds: float) -> str:
    """
    Format time in seconds to a human-readable string.

    Args:
        seconds: Time in seconds

    Returns:
        Formatted time string
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds / 60)
        seconds %= 60
        return f"{minutes}m {seconds:.0f}s"
    else:
        hours = int(seconds / 3600)
        seconds %= 3600
        minutes = int(seconds / 60)
        return f"{hours}h {minutes}m"


def _render(current: int, total: Optional[int], desc: Optional[str],
            started_at: float, config: ProgressConfig) -> str:
    elements = []
    if desc:
        elements.append(f"{desc}: ")

    if total:
        elements.append(f"{current}/{total} ")
        if config.format == ProgressFormat.BAR:
            filled = int(current / total * config.width)
            elements.append(f"|{'█' * filled}{'░' * (config.width - filled)}| ")
        elements.append(f"{current / total * 100:.1f}% ")
    else:
        elements.append(f"{current} items ")

    elements.append(f"[{format_time(time.time() - started_at)}]")
    return "".join(elements)


def progress_iterator(
        iterable: Iterable[T],
        desc: Optional[str] = None,
        total: Optional[int] = None,
        config: Optional[ProgressConfig] = None,
        disable: bool = False
) -> Iterator[T]:
    """
    Wrap an iterable with console progress output.

    Args:
        iterable: The iterable to wrap
        desc: Description shown before the counts
        total: Total number of items (taken from len() if None)
        config: Progress display configuration
        disable: Pass items through without any output

    Yields:
        Items from the iterable
    """
    if disable:
        yield from iterable
        return

    if total is None and hasattr(iterable, '__len__'):
        total = len(iterable)

    config = config or ProgressConfig()
    stream = config.output_stream
    started_at = time.time()
    last_update = 0.0
    current = 0

    try:
        for current, item in enumerate(iterable, start=1):
            yield item

            now = time.time()
            if config.format == ProgressFormat.BAR and now - last_update >= config.refresh_rate:
                print(f"\r{_render(current, total, desc, started_at, config)}",
                      end="", file=stream, flush=True)
                last_update = now
    finally:
        line = _render(current, total, desc, started_at, config)
        if config.format == ProgressFormat.BAR:
            print(f"\r{line}", file=stream, flush=True)
        else:
            print(line, file=stream, flush=True)


class ProgressCallback:
    """
    Callback handler for reporting progress of background work.

    Hooks may be called from a worker thread, so they must not touch
    state that belongs to another thread without their own locking.
    """

    def __init__(
            self,
            on_start: Optional[Callable[[int], None]] = None,
            on_progress: Optional[Callable[[int, int, Dict[str, Any]], None]] = None,
            on_complete: Optional[Callable[[int], None]] = None,
            on_error: Optional[Callable[[Exception], None]] = None,
            throttle_ms: int = 0
    ):
        """
        Initialize the progress callback.

        Args:
            on_start: Called with the batch size when a batch starts
            on_progress: Called with (completed, total, info) after each item
            on_complete: Called with the batch size when a batch finishes
            on_error: Called with the exception when an item fails
            throttle_ms: Minimum time between two on_progress calls, first and last always pass
        """
        self.on_start = on_start
        self.on_progress = on_progress
        self.on_complete = on_complete
        self.on_error = on_error
        self.throttle_ms = throttle_ms

        self._last_update = 0.0
        self._started_at = 0.0

    def start(self, total: int) -> None:
        """Call the on_start callback."""
        self._started_at = time.time()
        self._last_update = 0.0

        if self.on_start:
            self.on_start(total)

    def progress(self, current: int, total: int) -> None:
        """Call the on_progress callback with throttling."""
        if not self.on_progress:
            return

        now = time.time()
        elapsed_ms = (now - self._last_update) * 1000
        is_first = current == 1
        is_last = current == total

        if is_first or is_last or elapsed_ms >= self.throttle_ms:
            elapsed = now - self._started_at
            info = {
                'elapsed': elapsed,
                'elapsed_formatted': format_time(elapsed),
            }
            if total > 0:
                info['percentage'] = current / total * 100

            self.on_progress(current, total, info)
            self._last_update = now

    def complete(self, total: int) -> None:
        """Call the on_complete callback."""
        if self.on_complete:
            self.on_complete(total)

    def error(self, exception: Exception) -> None:
        """Call the on_error callback."""
        if self.on_error:
            self.on_error(exception)
