"""Tests for host constants and initialize-once caching."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from pathlib import Path
import threading
import time
from unittest.mock import patch

import pytest

from svcps.cache import OnceValue
from svcps.errors import ProcReadError, StatParseError
from svcps.system import SystemContext, read_boot_time, read_page_size, read_system_uptime
from svcps.units import CLOCK_TICKS_PER_SECOND


class TestOnceValue:
    """Tests for OnceValue."""

    def test_computes_once(self) -> None:
        """Test the compute function runs on first access only."""
        calls = []
        value: OnceValue[int] = OnceValue()
        assert not value.is_set
        assert value.get_or_compute(lambda: calls.append(1) or 42) == 42
        assert value.get_or_compute(lambda: calls.append(1) or 7) == 42
        assert value.is_set
        assert len(calls) == 1

    def test_failure_leaves_unset(self) -> None:
        """Test a failed computation is retried on next access."""
        value: OnceValue[int] = OnceValue()

        def fail() -> int:
            raise OSError("boom")

        with pytest.raises(OSError):
            value.get_or_compute(fail)
        assert not value.is_set
        assert value.get_or_compute(lambda: 3) == 3

    def test_concurrent_first_access(self) -> None:
        """Test concurrent first lookups run the computation exactly once."""
        value: OnceValue[int] = OnceValue()
        calls = []
        lock = threading.Lock()

        def compute() -> int:
            with lock:
                calls.append(1)
            time.sleep(0.01)
            return 99

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: value.get_or_compute(compute), range(16)))
        assert results == [99] * 16
        assert len(calls) == 1


class TestReaders:
    """Tests for the default host readers."""

    def test_system_uptime(self, proc_root: Path) -> None:
        """Test the first number of the uptime file."""
        (proc_root / "uptime").write_text("12345.67 54321.00\n")
        assert read_system_uptime(proc_root) == timedelta(seconds=12345.67)

    def test_system_uptime_missing(self, proc_root: Path) -> None:
        """Test a missing uptime file."""
        with pytest.raises(ProcReadError):
            read_system_uptime(proc_root)

    def test_system_uptime_malformed(self, proc_root: Path) -> None:
        """Test unparseable uptime content."""
        (proc_root / "uptime").write_text("soon\n")
        with pytest.raises(StatParseError):
            read_system_uptime(proc_root)

    def test_boot_time(self) -> None:
        """Test boot time comes from psutil as an aware datetime."""
        with patch("svcps.system.psutil.boot_time", return_value=1_700_000_000.0):
            value = read_boot_time()
        assert value.tzinfo is not None
        assert value.timestamp() == 1_700_000_000.0

    def test_boot_time_failure(self) -> None:
        """Test psutil errors become read errors."""
        with patch("svcps.system.psutil.boot_time", side_effect=PermissionError(13, "denied")):
            with pytest.raises(ProcReadError):
                read_boot_time()

    def test_page_size(self) -> None:
        """Test the page size is a positive power of two."""
        size = read_page_size()
        assert size > 0
        assert size & (size - 1) == 0

    @pytest.mark.parametrize(
        "error", [ValueError("unrecognized configuration name"), OSError(22, "Invalid argument")]
    )
    def test_page_size_failure(self, error: Exception) -> None:
        """Test page size lookup failures become read errors."""
        with patch("svcps.system.os.sysconf", side_effect=error):
            with pytest.raises(ProcReadError, match="SC_PAGE_SIZE"):
                read_page_size()


class TestSystemContext:
    """Tests for SystemContext."""

    def test_defaults(self) -> None:
        """Test the default clock tick rate."""
        assert SystemContext().clock_ticks == CLOCK_TICKS_PER_SECOND
        assert SystemContext(clock_ticks=250).clock_ticks == 250

    def test_cached_values(self) -> None:
        """Test boot time and page size are looked up once."""
        calls = {"boot": 0, "page": 0}
        boot = datetime(2024, 1, 1).astimezone()

        def boot_time() -> datetime:
            calls["boot"] += 1
            return boot

        def page_size() -> int:
            calls["page"] += 1
            return 4096

        system = SystemContext(boot_time_fn=boot_time, page_size_fn=page_size)
        for _ in range(3):
            assert system.boot_time() == boot
            assert system.page_size() == 4096
        assert calls == {"boot": 1, "page": 1}

    def test_uptime_not_cached(self) -> None:
        """Test system uptime is read on every call."""
        values = iter([timedelta(seconds=1), timedelta(seconds=2)])
        system = SystemContext(uptime_fn=lambda: next(values))
        assert system.system_uptime() == timedelta(seconds=1)
        assert system.system_uptime() == timedelta(seconds=2)

    def test_default_uptime_reader_uses_proc_root(self, proc_root: Path) -> None:
        """Test the configured proc root is used."""
        (proc_root / "uptime").write_text("5.00 1.00\n")
        system = SystemContext(proc_root=proc_root)
        assert system.system_uptime() == timedelta(seconds=5)
