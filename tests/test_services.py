"""Tests for service PID discovery."""

from pathlib import Path
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from svcps.errors import InvalidServiceNameError, NoSuchServiceError, ProcReadError, StatParseError
from svcps.services import get_pids_of_service, list_pids, service_exists, validate_service_name


def add_service(cgroup_root: Path, name: str, pids: list[int]) -> None:
    """Create the cgroup.procs file of a running service."""
    directory = cgroup_root / f"{name}.service"
    directory.mkdir()
    (directory / "cgroup.procs").write_text("".join(f"{pid}\n" for pid in pids))


class TestValidateServiceName:
    """Tests for service name checks."""

    @pytest.mark.parametrize("name", ["nginx", "user@1000", "php8.2-fpm"])
    def test_valid(self, name: str) -> None:
        """Test ordinary unit names pass."""
        validate_service_name(name)

    @pytest.mark.parametrize("name", ["", "..", "a/b", "../etc"])
    def test_invalid(self, name: str) -> None:
        """Test names leaving the cgroup directory are rejected."""
        with pytest.raises(InvalidServiceNameError):
            validate_service_name(name)


class TestServiceExists:
    """Tests for the systemctl check."""

    def test_known_unit(self) -> None:
        """Test an empty LoadError means the unit exists."""
        result = MagicMock(stdout="\n")
        with patch("svcps.services.subprocess.run", return_value=result) as run:
            assert service_exists("nginx") is True
        args = run.call_args.args[0]
        assert args == ["systemctl", "show", "--value", "--property=LoadError", "nginx"]

    def test_unknown_unit(self) -> None:
        """Test the NoSuchUnit load error."""
        result = MagicMock(stdout='org.freedesktop.systemd1.NoSuchUnit "Unit nope not found."\n')
        with patch("svcps.services.subprocess.run", return_value=result):
            assert service_exists("nope") is False

    def test_systemctl_missing(self) -> None:
        """Test a missing systemctl binary is a read error."""
        with patch("svcps.services.subprocess.run", side_effect=FileNotFoundError(2, "nope")):
            with pytest.raises(ProcReadError, match="systemctl"):
                service_exists("nginx")

    def test_systemctl_fails(self) -> None:
        """Test a non-zero exit is a read error."""
        error = subprocess.CalledProcessError(1, ["systemctl"], stderr="bus error\n")
        with patch("svcps.services.subprocess.run", side_effect=error):
            with pytest.raises(ProcReadError, match="bus error"):
                service_exists("nginx")


class TestGetPidsOfService:
    """Tests for reading cgroup.procs."""

    def test_running_service(self, cgroup_root: Path) -> None:
        """Test PIDs are returned in file order."""
        add_service(cgroup_root, "nginx", [812, 813, 100])
        assert get_pids_of_service("nginx", cgroup_root) == [812, 813, 100]

    def test_stopped_service(self, cgroup_root: Path) -> None:
        """Test a known service without a cgroup has no PIDs."""
        with patch("svcps.services.service_exists", return_value=True):
            assert get_pids_of_service("cron", cgroup_root) == []

    def test_unknown_service(self, cgroup_root: Path) -> None:
        """Test an unknown service is an error."""
        with patch("svcps.services.service_exists", return_value=False):
            with pytest.raises(NoSuchServiceError, match="nope"):
                get_pids_of_service("nope", cgroup_root)

    def test_invalid_name_not_read(self, cgroup_root: Path) -> None:
        """Test the name is checked before touching the filesystem."""
        with patch("svcps.services.service_exists") as exists:
            with pytest.raises(InvalidServiceNameError):
                get_pids_of_service("../x", cgroup_root)
        exists.assert_not_called()

    def test_malformed_line(self, cgroup_root: Path) -> None:
        """Test a non-numeric line is a parse error."""
        directory = cgroup_root / "bad.service"
        directory.mkdir()
        (directory / "cgroup.procs").write_text("12\nabc\n")
        with pytest.raises(StatParseError):
            get_pids_of_service("bad", cgroup_root)

    def test_unreadable(self, cgroup_root: Path) -> None:
        """Test other read failures are read errors."""
        (cgroup_root / "odd.service" / "cgroup.procs").mkdir(parents=True)
        with pytest.raises(ProcReadError):
            get_pids_of_service("odd", cgroup_root)


class TestListPids:
    """Tests for multi-service discovery."""

    def test_services_in_order(self, cgroup_root: Path) -> None:
        """Test PIDs are concatenated in service order."""
        add_service(cgroup_root, "b", [3, 4])
        add_service(cgroup_root, "a", [1])
        assert list_pids(["b", "a"], cgroup_root) == [3, 4, 1]

    def test_no_services(self, cgroup_root: Path) -> None:
        """Test no services gives no PIDs."""
        assert list_pids([], cgroup_root) == []
