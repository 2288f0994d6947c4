"""Host constants needed to convert kernel counters.

``SystemContext`` is passed to the row builder in place of process-wide
globals. Boot time and page size are looked up lazily and cached for the life
of the context; system uptime changes continuously and is read fresh on each
call, so callers take a single snapshot per render pass.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
import logging
import os
from pathlib import Path

import psutil

from svcps.cache import OnceValue
from svcps.errors import ProcReadError, StatParseError
from svcps.units import CLOCK_TICKS_PER_SECOND

logger = logging.getLogger(__name__)

DEFAULT_PROC_ROOT = Path("/proc")


def read_boot_time() -> datetime:
    """Return the host boot time as a local, timezone-aware datetime."""
    try:
        btime = psutil.boot_time()
    except OSError as e:
        raise ProcReadError("/proc/stat", e) from e
    return datetime.fromtimestamp(btime, UTC).astimezone()


def read_page_size() -> int:
    """Return the host memory page size in bytes."""
    try:
        return os.sysconf("SC_PAGE_SIZE")
    except OSError as e:
        raise ProcReadError("sysconf(SC_PAGE_SIZE)", e) from e
    except ValueError as e:
        raise ProcReadError("sysconf(SC_PAGE_SIZE)", OSError(str(e))) from e


def read_system_uptime(proc_root: Path = DEFAULT_PROC_ROOT) -> timedelta:
    """Read the system uptime from ``<proc_root>/uptime``.

    The file holds two numbers in seconds: the uptime of the system
    (including time spent in suspend) and the time spent idle.
    """
    path = proc_root / "uptime"
    try:
        content = path.read_text()
    except OSError as e:
        raise ProcReadError(str(path), e) from e
    first, _, _ = content.partition(" ")
    try:
        seconds = float(first)
    except ValueError as e:
        raise StatParseError("uptime", content.strip(), str(path)) from e
    if seconds < 0:
        raise StatParseError("uptime", content.strip(), str(path))
    return timedelta(seconds=seconds)


class SystemContext:
    """Access to host constants with lazily cached values.

    Every provider can be replaced so tests can run with fixed values.

    Args:
        boot_time_fn: Returns the host boot time
        page_size_fn: Returns the memory page size in bytes
        uptime_fn: Returns the current system uptime
        clock_ticks: Clock ticks per second (``None`` for the Linux constant)
        proc_root: Root of the proc filesystem for the default uptime reader
    """

    def __init__(
        self,
        *,
        boot_time_fn: Callable[[], datetime] | None = None,
        page_size_fn: Callable[[], int] | None = None,
        uptime_fn: Callable[[], timedelta] | None = None,
        clock_ticks: int | None = None,
        proc_root: Path | str = DEFAULT_PROC_ROOT,
    ) -> None:
        self.proc_root = Path(proc_root)
        self._boot_time_fn = boot_time_fn or read_boot_time
        self._page_size_fn = page_size_fn or read_page_size
        self._uptime_fn = uptime_fn or (lambda: read_system_uptime(self.proc_root))
        self.clock_ticks = clock_ticks or CLOCK_TICKS_PER_SECOND
        self._boot_time: OnceValue[datetime] = OnceValue()
        self._page_size: OnceValue[int] = OnceValue()

    def boot_time(self) -> datetime:
        """Host boot time, looked up on first call."""
        return self._boot_time.get_or_compute(self._load_boot_time)

    def page_size(self) -> int:
        """Memory page size in bytes, looked up on first call."""
        return self._page_size.get_or_compute(self._load_page_size)

    def system_uptime(self) -> timedelta:
        """Current system uptime. Not cached."""
        return self._uptime_fn()

    def _load_boot_time(self) -> datetime:
        value = self._boot_time_fn()
        logger.debug("Boot time: %s", value.isoformat())
        return value

    def _load_page_size(self) -> int:
        value = self._page_size_fn()
        logger.debug("Page size: %d", value)
        return value
