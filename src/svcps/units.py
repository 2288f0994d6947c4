"""Unit conversion for kernel process counters.

Converts raw clock ticks and page counts into durations, byte counts and
timestamps. All functions are pure; the host constants they need (clock ticks
per second, page size, boot time) are passed in by the caller.
"""

from datetime import datetime, timedelta
import re

from svcps.errors import StatParseError, ZeroUptimeError

# CLK_TCK is 100 on Linux for every architecture except alpha and ia64.
CLOCK_TICKS_PER_SECOND = 100

_MICROSECONDS_PER_SECOND = 1_000_000

_UNSIGNED_PATTERN = re.compile(rb"[0-9]+")
_SIGNED_PATTERN = re.compile(rb"[+-]?[0-9]+")


def _as_bytes(raw: str | bytes) -> bytes:
    if isinstance(raw, bytes):
        return raw
    return raw.encode("utf-8", errors="replace")


def parse_unsigned(raw: str | bytes, field: str, source: str | None = None) -> int:
    """Parse a non-negative decimal integer.

    Args:
        raw: Field text as read from the pseudo-filesystem
        field: Field name for error reporting
        source: File the text came from, for error reporting

    Returns:
        The parsed integer

    Raises:
        StatParseError: If the text is not a well-formed non-negative integer
    """
    if _UNSIGNED_PATTERN.fullmatch(_as_bytes(raw)) is None:
        raise StatParseError(field, raw, source)
    return int(raw)


def parse_signed(raw: str | bytes, field: str, source: str | None = None) -> int:
    """Parse a decimal integer that may carry a sign (pids, parent pids).

    Raises:
        StatParseError: If the text is not a well-formed integer
    """
    if _SIGNED_PATTERN.fullmatch(_as_bytes(raw)) is None:
        raise StatParseError(field, raw, source)
    return int(raw)


def ticks_to_duration(ticks: int, clock_ticks: int = CLOCK_TICKS_PER_SECOND) -> timedelta:
    """Convert clock ticks to a duration: ``ticks * (1s / clock_ticks)``."""
    return timedelta(microseconds=ticks * _MICROSECONDS_PER_SECOND // clock_ticks)


def duration_to_ticks(duration: timedelta, clock_ticks: int = CLOCK_TICKS_PER_SECOND) -> float:
    """Convert a duration to a (possibly fractional) number of clock ticks."""
    micros = duration // timedelta(microseconds=1)
    return micros * clock_ticks / _MICROSECONDS_PER_SECOND


def start_ticks_to_time(
    ticks: int,
    boot_time: datetime,
    clock_ticks: int = CLOCK_TICKS_PER_SECOND,
) -> datetime:
    """Convert a start time in ticks after boot into an absolute timestamp."""
    return boot_time + ticks_to_duration(ticks, clock_ticks)


def pages_to_bytes(pages: int, page_size: int) -> int:
    """Convert a page count into bytes."""
    return pages * page_size


def process_uptime(
    system_uptime: timedelta,
    start_ticks: int,
    clock_ticks: int = CLOCK_TICKS_PER_SECOND,
) -> timedelta:
    """Elapsed time since a process started, given the system uptime snapshot."""
    return system_uptime - ticks_to_duration(start_ticks, clock_ticks)


def truncate_to_seconds(duration: timedelta) -> timedelta:
    """Drop the sub-second part of a duration, rounding toward zero."""
    seconds = int(duration.total_seconds())
    return timedelta(seconds=seconds)


def cpu_percent(
    user_ticks: int,
    system_ticks: int,
    uptime: timedelta,
    clock_ticks: int = CLOCK_TICKS_PER_SECOND,
    pid: int | None = None,
) -> float:
    """Average CPU usage of a process over its lifetime.

    ``(user_ticks + system_ticks) / uptime_in_ticks * 100``

    Args:
        user_ticks: Cumulative user-mode ticks (utime)
        system_ticks: Cumulative kernel-mode ticks (stime)
        uptime: Elapsed time since the process started
        clock_ticks: Clock ticks per second
        pid: Process ID, used only in the error message

    Returns:
        CPU usage percentage (may exceed 100 for multi-threaded processes)

    Raises:
        ZeroUptimeError: If the process has no measurable uptime
    """
    uptime_ticks = duration_to_ticks(uptime, clock_ticks)
    if uptime_ticks <= 0:
        raise ZeroUptimeError(pid)
    return (user_ticks + system_ticks) / uptime_ticks * 100
