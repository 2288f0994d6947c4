"""End-to-end tests for the render pipeline."""

from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import add_process
from svcps.config import Config
from svcps.errors import AggregationError, InvalidFieldError, NoSuchServiceError
from svcps.formatters import build_columns
from svcps.models import Aggregation
from svcps.rows import RowBuilder
from svcps.runner import columns_from_config, render_table, run, system_from_config
from svcps.system import SystemContext


def make_config(proc_root: Path, cgroup_root: Path, **values: object) -> Config:
    """Config pointing at the fake proc and cgroup trees."""
    data: dict = {
        "services": ["web"],
        "system": {"proc_root": str(proc_root), "cgroup_root": str(cgroup_root)},
    }
    data.update(values)
    return Config(**data)


def fixed_system() -> SystemContext:
    """Host with 1000 seconds of uptime."""
    return SystemContext(
        boot_time_fn=lambda: datetime(2024, 1, 1, tzinfo=UTC),
        page_size_fn=lambda: 4096,
        uptime_fn=lambda: timedelta(seconds=1000),
    )


@pytest.fixture
def web_service(proc_root: Path, cgroup_root: Path) -> None:
    """Service 'web' with three processes started at 900s, 990s and boot."""
    service = cgroup_root / "web.service"
    service.mkdir()
    (service / "cgroup.procs").write_text("1\n2\n3\n")
    add_process(proc_root, 1, start=90000)
    add_process(proc_root, 2, start=99000)
    add_process(proc_root, 3, start=0, cmdline=b"/usr/sbin/web\x00--daemon\x00")


class TestRenderTable:
    """Tests for header and alignment handling."""

    def test_no_rows_no_headers(self) -> None:
        """Test an empty table renders nothing."""
        builder = RowBuilder(build_columns(["pid"]), fixed_system())
        assert render_table(builder, [], headers=False) == []

    def test_header_only(self) -> None:
        """Test the header is printed even without processes."""
        builder = RowBuilder(build_columns(["pid", "command"]), fixed_system())
        assert render_table(builder, []) == ["PID  COMMAND"]


class TestRun:
    """Tests for complete render passes."""

    def test_table(self, proc_root: Path, cgroup_root: Path, web_service: None) -> None:
        """Test the aligned table with a header."""
        config = make_config(
            proc_root,
            cgroup_root,
            columns={"fields": ["pid", "uptime"], "functions": {"uptime": "seconds"}},
        )
        assert run(config, fixed_system()) == [
            "PID  UPTIME",
            "  1     100",
            "  2      10",
            "  3    1000",
        ]

    def test_left_aligned_command(
        self, proc_root: Path, cgroup_root: Path, web_service: None
    ) -> None:
        """Test a left-aligned last column is padded to its width."""
        config = make_config(
            proc_root,
            cgroup_root,
            headers=False,
            columns={"fields": ["command", "pid"], "alignments": {"command": "L"}},
        )
        assert run(config, fixed_system()) == [
            "sleep 100               1",
            "sleep 100               2",
            "/usr/sbin/web --daemon  3",
        ]

    def test_min_uptime(self, proc_root: Path, cgroup_root: Path, web_service: None) -> None:
        """Test aggregation reduces the table to the youngest process."""
        config = make_config(
            proc_root,
            cgroup_root,
            headers=False,
            aggregate="min-uptime",
            columns={"fields": ["uptime"], "functions": {"uptime": "seconds"}},
        )
        assert run(config, fixed_system()) == ["10"]

    def test_min_uptime_stopped_service(self, proc_root: Path, cgroup_root: Path) -> None:
        """Test aggregation over a stopped service reports zero."""
        config = make_config(
            proc_root,
            cgroup_root,
            headers=False,
            aggregate="min-uptime",
            columns={"fields": ["uptime"], "functions": {}},
        )
        with patch("svcps.services.service_exists", return_value=True):
            assert run(config, fixed_system()) == ["0:00:00"]

    def test_invalid_columns_fail_before_io(self, proc_root: Path, cgroup_root: Path) -> None:
        """Test configuration errors are raised before services are read."""
        config = make_config(proc_root, cgroup_root, columns={"fields": ["pid", "nope"]})
        with patch("svcps.runner.list_pids") as list_pids:
            with pytest.raises(InvalidFieldError):
                run(config, fixed_system())
        list_pids.assert_not_called()

    def test_invalid_aggregation_fails_before_io(
        self, proc_root: Path, cgroup_root: Path
    ) -> None:
        """Test aggregation errors are raised before services are read."""
        config = make_config(proc_root, cgroup_root, aggregate="min-uptime")
        with patch("svcps.runner.list_pids") as list_pids:
            with pytest.raises(AggregationError):
                run(config, fixed_system())
        list_pids.assert_not_called()

    def test_unknown_service(self, proc_root: Path, cgroup_root: Path) -> None:
        """Test an unknown service aborts the pass."""
        config = make_config(proc_root, cgroup_root, services=["nope"])
        with patch("svcps.services.service_exists", return_value=False):
            with pytest.raises(NoSuchServiceError):
                run(config, fixed_system())

    def test_vanished_process(self, proc_root: Path, cgroup_root: Path, web_service: None) -> None:
        """Test one unreadable process aborts the whole pass."""
        (proc_root / "2" / "stat").unlink()
        (proc_root / "2" / "cmdline").unlink()
        config = make_config(proc_root, cgroup_root)
        with pytest.raises(ExceptionGroup):
            run(config, fixed_system())


class TestFromConfig:
    """Tests for building pipeline parts from configuration."""

    def test_columns_from_defaults(self) -> None:
        """Test the default column set resolves."""
        columns = columns_from_config(Config())
        assert [column.title for column in columns] == [
            "PID",
            "PPID",
            "VSZ",
            "RSS",
            "START",
            "UPTIME",
            "COMMAND",
        ]

    def test_system_from_config(self, proc_root: Path) -> None:
        """Test clock ticks and proc root are passed through."""
        config = Config(system={"clock_ticks": 1000, "proc_root": str(proc_root)})
        system = system_from_config(config)
        assert system.clock_ticks == 1000
        assert system.proc_root == proc_root

    def test_aggregation_value(self) -> None:
        """Test config values map onto the aggregation enum."""
        assert Aggregation(Config(aggregate="min-uptime").aggregate) is Aggregation.MIN_UPTIME
