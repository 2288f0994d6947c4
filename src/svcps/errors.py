"""Exception hierarchy for svcps.

Errors fall into three groups:
- Configuration errors: bad field names, alignment tokens, formatting functions
  or aggregation requests. Raised before any host I/O is attempted.
- I/O errors: unreadable or malformed pseudo-filesystem content, unknown
  services.
- Logical errors: a CPU percentage requested for a process with no uptime.

Table shape problems raised by the alignment engine are also ``ValueError``s so
the engine can be used as a general-purpose text-table formatter.
"""

from collections.abc import Iterable
from difflib import get_close_matches


class SvcpsError(Exception):
    """Base exception for all svcps errors."""


class ConfigurationError(SvcpsError):
    """Base exception for invalid column or aggregation configuration.

    Attributes:
        message: The main error message
        suggestion: Helpful suggestion for fixing the error
    """

    def __init__(self, message: str, *, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        text = message if suggestion is None else f"{message} ({suggestion})"
        super().__init__(text)


class InvalidFieldError(ConfigurationError):
    """A requested field identifier is not in the closed field set."""

    def __init__(self, value: str, allowed: Iterable[str]) -> None:
        self.value = value
        self.allowed = list(allowed)
        matches = get_close_matches(value, self.allowed, n=1, cutoff=0.6)
        super().__init__(
            f"invalid field: {value!r}, must be one of {', '.join(self.allowed)}",
            suggestion=f"did you mean {matches[0]!r}?" if matches else None,
        )


class InvalidAlignmentError(ConfigurationError):
    """An alignment token is neither ``L`` nor ``R``."""

    def __init__(self, value: str, field: str | None = None) -> None:
        self.value = value
        self.field = field
        where = f" for field {field!r}" if field else ""
        super().__init__(f"invalid alignment{where}: {value!r}, must be L or R")


class InvalidFunctionError(ConfigurationError):
    """A formatting function is unknown or not applicable to its field."""

    def __init__(self, name: str, field: str, allowed: Iterable[str]) -> None:
        self.name = name
        self.field = field
        self.allowed = list(allowed)
        if self.allowed:
            hint = f"field {field!r} accepts {', '.join(self.allowed)}"
        else:
            hint = f"field {field!r} accepts no formatting function"
        super().__init__(f"invalid formatting function {name!r} for field {field!r}: {hint}")


class AggregationError(ConfigurationError):
    """An aggregation was requested that the column list cannot support."""


class TableShapeError(SvcpsError, ValueError):
    """Rows or alignments passed to the alignment engine are not rectangular."""


class ProcReadError(SvcpsError):
    """A pseudo-filesystem file could not be read.

    Attributes:
        filename: Path that failed to read
        pid: Process the file belongs to, if any
    """

    def __init__(self, filename: str, cause: OSError, pid: int | None = None) -> None:
        self.filename = filename
        self.pid = pid
        self.cause = cause
        super().__init__(f"cannot read {filename}: {cause.strerror or cause}")


class StatParseError(SvcpsError):
    """A numeric field read from the pseudo-filesystem is malformed."""

    def __init__(self, field: str, raw: str | bytes, source: str | None = None) -> None:
        self.field = field
        self.raw = raw
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"cannot parse {field}{where}: {raw!r}")


class NoSuchServiceError(SvcpsError):
    """The named service unit does not exist."""

    def __init__(self, service: str) -> None:
        self.service = service
        super().__init__(f"no such service: {service}")


class InvalidServiceNameError(SvcpsError):
    """A service name would escape the cgroup directory."""

    def __init__(self, service: str) -> None:
        self.service = service
        super().__init__(f"invalid service name: {service!r}")


class ZeroUptimeError(SvcpsError, ZeroDivisionError):
    """CPU percentage requested for a process with zero measured uptime."""

    def __init__(self, pid: int | None = None) -> None:
        self.pid = pid
        who = f"process {pid}" if pid is not None else "process"
        super().__init__(f"cannot compute cpu percent for {who} with zero uptime")
