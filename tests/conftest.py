"""Shared fixtures for svcps tests."""

from pathlib import Path

import pytest


def make_stat(
    pid: int,
    comm: str = "sleep",
    ppid: int = 1,
    utime: int = 10,
    stime: int = 5,
    start: int = 1000,
    vsize: int = 4096000,
    rss: int = 250,
) -> str:
    """Content of a /proc/<pid>/stat file with the given fields."""
    return (
        f"{pid} ({comm}) S {ppid} {pid} {pid} 0 -1 4194560 100 0 0 0 "
        f"{utime} {stime} 0 0 20 0 1 0 {start} {vsize} {rss} "
        "18446744073709551615 1 1 0 0 0\n"
    )


def add_process(
    proc_root: Path,
    pid: int,
    cmdline: bytes = b"sleep\x00100\x00",
    stat: str | None = None,
    **stat_fields: object,
) -> Path:
    """Create the stat and cmdline files of a fake process."""
    directory = proc_root / str(pid)
    directory.mkdir(parents=True)
    (directory / "stat").write_text(stat if stat is not None else make_stat(pid, **stat_fields))
    (directory / "cmdline").write_bytes(cmdline)
    return directory


@pytest.fixture
def proc_root(tmp_path: Path) -> Path:
    """Empty fake proc filesystem."""
    root = tmp_path / "proc"
    root.mkdir()
    return root


@pytest.fixture
def cgroup_root(tmp_path: Path) -> Path:
    """Empty fake system.slice cgroup directory."""
    root = tmp_path / "system.slice"
    root.mkdir()
    return root
