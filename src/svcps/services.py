"""Process discovery for systemd services.

A running service's member PIDs are listed one per line in
``<cgroup_root>/<name>.service/cgroup.procs``. When that file is missing the
service is either unknown or loaded but not running; ``systemctl`` tells the
two apart.
"""

from collections.abc import Sequence
import logging
from pathlib import Path
import subprocess

from svcps.errors import InvalidServiceNameError, NoSuchServiceError, ProcReadError
from svcps.units import parse_signed

logger = logging.getLogger(__name__)

DEFAULT_CGROUP_ROOT = Path("/sys/fs/cgroup/system.slice")

_NO_SUCH_UNIT = "org.freedesktop.systemd1.NoSuchUnit "


def validate_service_name(service: str) -> None:
    """Reject names that would leave the cgroup directory.

    Raises:
        InvalidServiceNameError: If the name contains a slash or is ``..``
    """
    if not service or "/" in service or service == "..":
        raise InvalidServiceNameError(service)


def service_exists(service: str) -> bool:
    """Ask systemd whether a unit with this name is known.

    Raises:
        ProcReadError: If ``systemctl`` cannot be run or fails
    """
    try:
        result = subprocess.run(
            ["systemctl", "show", "--value", "--property=LoadError", service],
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        raise ProcReadError("systemctl", OSError(e.returncode, e.stderr.strip() or str(e))) from e
    except OSError as e:
        raise ProcReadError("systemctl", e) from e
    return not result.stdout.startswith(_NO_SUCH_UNIT)


def get_pids_of_service(service: str, cgroup_root: Path = DEFAULT_CGROUP_ROOT) -> list[int]:
    """List the PIDs of one service.

    Args:
        service: Unit name without the ``.service`` suffix
        cgroup_root: Directory holding the per-service cgroups

    Returns:
        PIDs in cgroup order; empty if the service exists but is not running

    Raises:
        InvalidServiceNameError: If the name is unsafe
        NoSuchServiceError: If systemd does not know the service
        ProcReadError: If the cgroup file cannot be read
        StatParseError: If a line is not a PID
    """
    validate_service_name(service)
    path = cgroup_root / f"{service}.service" / "cgroup.procs"
    try:
        content = path.read_text()
    except FileNotFoundError as e:
        if not service_exists(service):
            raise NoSuchServiceError(service) from e
        logger.debug("Service %s is not started", service)
        return []
    except OSError as e:
        raise ProcReadError(str(path), e) from e

    return [parse_signed(line, "pid", str(path)) for line in content.split()]


def list_pids(
    services: Sequence[str],
    cgroup_root: Path = DEFAULT_CGROUP_ROOT,
) -> list[int]:
    """List the PIDs of several services, in the order given."""
    pids: list[int] = []
    for service in services:
        service_pids = get_pids_of_service(service, cgroup_root)
        logger.debug("Service %s has %d processes", service, len(service_pids))
        pids.extend(service_pids)
    return pids
