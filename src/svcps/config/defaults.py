"""Default configuration values for svcps.

This module defines the configuration used when no config file exists or when
a value is not specified.

Environment Variables:
    SVCPS_CONFIG_PATH: Override default config file path
    Any config value can reference environment variables using ${VAR} syntax

Config File Locations (in order of precedence):
    1. Path specified via --config CLI flag
    2. Path specified via SVCPS_CONFIG_PATH environment variable
    3. ~/.config/svcps/config.yaml (XDG default)
    4. ~/.svcps/config.yaml (legacy location)
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "services": [],  # Service names to inspect, without the .service suffix
    "headers": True,  # Print the title row
    "aggregate": "none",  # "none" or "min-uptime"
    "columns": {
        "fields": [
            "pid",
            "parent_pid",
            "virtual_size",
            "resident_size",
            "start_time",
            "uptime",
            "command",
        ],
        # Formatting function per field: "name" or "name:argument"
        "functions": {
            "virtual_size": "iBytes",
            "resident_size": "iBytes",
            "start_time": "format:%Y-%m-%d %H:%M",
            "uptime": "duration",
        },
        # Alignment overrides per field: "L" or "R"
        "alignments": {
            "start_time": "L",
            "command": "L",
        },
        "default_alignment": "R",
    },
    "system": {
        "clock_ticks": None,  # None uses the Linux constant (100)
        "proc_root": "/proc",
        "cgroup_root": "/sys/fs/cgroup/system.slice",
    },
    "logging": {
        "enabled": False,
        "level": "INFO",  # DEBUG, INFO, WARNING, ERROR
        "file": "~/.svcps/svcps.log",
    },
}
