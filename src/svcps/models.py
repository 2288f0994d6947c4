"""Data models for svcps.

This module defines the types shared by every stage of the render pipeline:
- Field: Closed set of column field identifiers and their display titles
- Alignment: Left/right cell alignment
- Aggregation: Row reduction rules
- FormatSpec: A formatting function name with an optional argument
- Column: A resolved column descriptor
- ProcessRawRecord: Per-process values read from the pseudo-filesystem
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field as PydanticField


class Field(str, Enum):
    """Field identifiers that may be requested as table columns."""

    PID = "pid"
    PARENT_PID = "parent_pid"
    CPU_PERCENT = "cpu_percent"
    VIRTUAL_SIZE = "virtual_size"
    RESIDENT_SIZE = "resident_size"
    START_TIME = "start_time"
    UPTIME = "uptime"
    COMMAND = "command"

    @property
    def title(self) -> str:
        """Header text for a column showing this field."""
        return FIELD_TITLES[self]

    @classmethod
    def values(cls) -> list[str]:
        """Return all identifiers in declaration order."""
        return [member.value for member in cls]


FIELD_TITLES: dict[Field, str] = {
    Field.PID: "PID",
    Field.PARENT_PID: "PPID",
    Field.CPU_PERCENT: "CPU%",
    Field.VIRTUAL_SIZE: "VSZ",
    Field.RESIDENT_SIZE: "RSS",
    Field.START_TIME: "START",
    Field.UPTIME: "UPTIME",
    Field.COMMAND: "COMMAND",
}


class Alignment(str, Enum):
    """Cell alignment within a column."""

    LEFT = "L"
    RIGHT = "R"


class Aggregation(str, Enum):
    """Rules for reducing the table to fewer rows."""

    NONE = "none"
    MIN_UPTIME = "min-uptime"


@dataclass(frozen=True, slots=True)
class FormatSpec:
    """A formatting function reference such as ``format:%H:%M``.

    Attributes:
        name: Registered function name
        argument: Optional argument passed before the value
    """

    name: str
    argument: str | None = None

    def __str__(self) -> str:
        if self.argument is None:
            return self.name
        return f"{self.name}:{self.argument}"


@dataclass(frozen=True, slots=True)
class Column:
    """Resolved column descriptor, shared read-only across all rows.

    Attributes:
        field: Field rendered in this column
        alignment: How cells are padded
        render: Function producing display text from the field's typed value
        spec: Formatting function the render callable was built from (None for
            the default string conversion)
    """

    field: Field
    alignment: Alignment
    render: Callable[[Any], str]
    spec: FormatSpec | None = None

    @property
    def title(self) -> str:
        """Header text for this column."""
        return self.field.title


class ProcessRawRecord(BaseModel):
    """Values read from ``/proc/<pid>/stat`` and ``/proc/<pid>/cmdline``.

    Numeric fields are parsed when the record is read so malformed content
    fails at the read site. Tick counts are in clock ticks, resident size in
    pages, virtual size in bytes.

    Attributes:
        pid: Process ID
        parent_pid: Parent process ID
        utime: User-mode CPU time in clock ticks
        stime: Kernel-mode CPU time in clock ticks
        start_time: Start time after boot in clock ticks
        virtual_size: Virtual memory size in bytes
        resident_pages: Resident set size in pages
        command: Command line with arguments separated by spaces
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    pid: int = PydanticField(..., description="Process ID")
    parent_pid: int = PydanticField(..., description="Parent process ID")
    utime: int = PydanticField(default=0, ge=0, description="User time in clock ticks")
    stime: int = PydanticField(default=0, ge=0, description="System time in clock ticks")
    start_time: int = PydanticField(default=0, ge=0, description="Start time in clock ticks")
    virtual_size: int = PydanticField(default=0, ge=0, description="Virtual size in bytes")
    resident_pages: int = PydanticField(default=0, ge=0, description="Resident set in pages")
    command: str = PydanticField(default="", description="Command line")
