"""Per-process reads from the proc filesystem.

This module provides:
- read_stat: Raw text of the stat fields svcps uses
- read_cmdline / decode_cmdline: The NUL-separated command line
- read_record: Both files parsed into a ProcessRawRecord
- read_records: Concurrent acquisition of many records

Every PID is read as an independent task and all tasks are awaited together.
Failures are collected rather than short-circuited: one failure is re-raised
as-is, several are raised together as an ``ExceptionGroup``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
import logging
from pathlib import Path

from svcps.errors import ProcReadError, StatParseError
from svcps.models import ProcessRawRecord
from svcps.units import parse_signed, parse_unsigned

logger = logging.getLogger(__name__)

DEFAULT_PROC_ROOT = Path("/proc")

# Field numbers from proc_pid_stat(5), 1-based. Fields after the
# parenthesised comm (2) are counted from state (3).
#   (4)  ppid       parent pid
#   (14) utime      user mode time in clock ticks
#   (15) stime      kernel mode time in clock ticks
#   (22) starttime  time the process started after boot, in clock ticks
#   (23) vsize      virtual memory size in bytes
#   (24) rss        resident set size in pages
_FIRST_FIELD_AFTER_COMM = 3
_STAT_FIELDS = {
    "parent_pid": 4,
    "utime": 14,
    "stime": 15,
    "start_time": 22,
    "virtual_size": 23,
    "resident_pages": 24,
}
_LAST_STAT_FIELD = max(_STAT_FIELDS.values())


@dataclass(frozen=True, slots=True)
class StatFields:
    """Raw text of the stat fields svcps uses, before integer parsing."""

    parent_pid: bytes
    utime: bytes
    stime: bytes
    start_time: bytes
    virtual_size: bytes
    resident_pages: bytes


def raise_collected(errors: Sequence[Exception], message: str) -> None:
    """Raise the collected errors, if any.

    Args:
        errors: Errors gathered from independent units of work
        message: Description used when several errors are combined

    Raises:
        Exception: The single error when exactly one occurred
        ExceptionGroup: All errors when more than one occurred
    """
    if not errors:
        return
    if len(errors) == 1:
        raise errors[0]
    raise ExceptionGroup(message, list(errors))


def _read_bytes(path: Path, pid: int) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise ProcReadError(str(path), e, pid=pid) from e


def parse_stat(content: bytes, source: str | None = None) -> StatFields:
    """Extract the used fields from the content of a stat file.

    The command name may itself contain spaces and parentheses, so fields are
    counted from the last closing parenthesis.

    Raises:
        StatParseError: If the content is truncated or has no command name
    """
    _, paren, rest = content.rpartition(b")")
    if not paren:
        raise StatParseError("stat", content, source)
    words = rest.split()
    if len(words) < _LAST_STAT_FIELD - _FIRST_FIELD_AFTER_COMM + 1:
        raise StatParseError("stat", content, source)
    values = {
        name: words[number - _FIRST_FIELD_AFTER_COMM] for name, number in _STAT_FIELDS.items()
    }
    return StatFields(**values)


def read_stat(pid: int, proc_root: Path = DEFAULT_PROC_ROOT) -> StatFields:
    """Read the raw stat fields of a process.

    Raises:
        ProcReadError: If the stat file cannot be read
        StatParseError: If the file content is malformed
    """
    path = proc_root / str(pid) / "stat"
    return parse_stat(_read_bytes(path, pid), str(path))


def read_cmdline(pid: int, proc_root: Path = DEFAULT_PROC_ROOT) -> bytes:
    """Read the raw, NUL-separated command line of a process.

    Raises:
        ProcReadError: If the cmdline file cannot be read
    """
    return _read_bytes(proc_root / str(pid) / "cmdline", pid)


def decode_cmdline(raw: bytes) -> str:
    """Join NUL-separated arguments with spaces, dropping trailing NULs."""
    return raw.rstrip(b"\x00").replace(b"\x00", b" ").decode("utf-8", errors="replace")


def read_record(pid: int, proc_root: Path = DEFAULT_PROC_ROOT) -> ProcessRawRecord:
    """Read and parse the stat and cmdline files of one process.

    Both files are attempted even if the first fails.

    Raises:
        ProcReadError: If one file cannot be read
        StatParseError: If a numeric field is malformed
        ExceptionGroup: If both files fail
    """
    stat: StatFields | Exception
    cmdline: bytes | Exception
    try:
        stat = read_stat(pid, proc_root)
    except (ProcReadError, StatParseError) as e:
        stat = e
    try:
        cmdline = read_cmdline(pid, proc_root)
    except ProcReadError as e:
        cmdline = e

    if isinstance(stat, StatFields) and isinstance(cmdline, bytes):
        return _build_record(pid, stat, cmdline, str(proc_root / str(pid) / "stat"))

    errors = [result for result in (stat, cmdline) if isinstance(result, Exception)]
    if len(errors) == 1:
        raise errors[0]
    raise ExceptionGroup(f"cannot read process {pid}", errors)


def _build_record(pid: int, stat: StatFields, cmdline: bytes, source: str) -> ProcessRawRecord:
    return ProcessRawRecord(
        pid=pid,
        parent_pid=parse_signed(stat.parent_pid, "parent_pid", source),
        utime=parse_unsigned(stat.utime, "utime", source),
        stime=parse_unsigned(stat.stime, "stime", source),
        start_time=parse_unsigned(stat.start_time, "start_time", source),
        virtual_size=parse_unsigned(stat.virtual_size, "virtual_size", source),
        resident_pages=parse_unsigned(stat.resident_pages, "resident_pages", source),
        command=decode_cmdline(cmdline),
    )


async def read_records(
    pids: Sequence[int],
    proc_root: Path = DEFAULT_PROC_ROOT,
) -> list[ProcessRawRecord]:
    """Read the records of many processes concurrently.

    One task is started per PID and all are awaited before returning. Records
    are returned in input order.

    Args:
        pids: Process IDs to read
        proc_root: Root of the proc filesystem

    Returns:
        One record per PID

    Raises:
        Exception: The error of the single failed read
        ExceptionGroup: Every error when more than one read failed
    """
    logger.debug("Reading %d process records", len(pids))
    tasks = [asyncio.to_thread(read_record, pid, proc_root) for pid in pids]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    records: list[ProcessRawRecord] = []
    errors: list[Exception] = []
    for result in results:
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            errors.append(result)
        else:
            records.append(result)
    raise_collected(errors, f"cannot read {len(errors)} of {len(pids)} processes")
    return records
