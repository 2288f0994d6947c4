"""svcps - list the processes of systemd services as an aligned table."""

__version__ = "0.1.0"
