"""Row building: raw process records to display rows.

For each record only the fields some column needs are converted into typed
values, collected in a bag keyed by Field, and each column then renders its
own value. Host lookups are skipped when no column needs them: the page size
is only queried for resident_size, the boot time only for start_time, and the
system uptime only for uptime and cpu_percent. Uptime is read once per build
so every row shares a single snapshot.
"""

from collections.abc import Sequence
from datetime import timedelta
import logging
from typing import Any

from svcps.errors import AggregationError
from svcps.models import Aggregation, Column, Field, ProcessRawRecord
from svcps.system import SystemContext
from svcps.units import (
    cpu_percent,
    pages_to_bytes,
    process_uptime,
    start_ticks_to_time,
    truncate_to_seconds,
)

logger = logging.getLogger(__name__)

Row = list[str]
ValueBag = dict[Field, Any]

_UPTIME_DEPENDENT = {Field.UPTIME, Field.CPU_PERCENT}


def validate_aggregation(columns: Sequence[Column], aggregation: Aggregation) -> None:
    """Check that the column list supports the aggregation.

    Minimum-uptime aggregation reports a single value, so it requires exactly
    one column and that column must show uptime.

    Raises:
        AggregationError: If the columns do not fit the aggregation
    """
    if aggregation is Aggregation.NONE:
        return
    if len(columns) != 1 or columns[0].field is not Field.UPTIME:
        requested = ", ".join(column.field.value for column in columns) or "no fields"
        raise AggregationError(
            f"aggregation {aggregation.value!r} requires exactly one uptime column, "
            f"got {requested}",
            suggestion="use --fields uptime",
        )


def select_min_uptime(bags: Sequence[ValueBag]) -> ValueBag:
    """Pick the bag with the smallest uptime; the first one wins a tie.

    An empty input yields a synthetic bag with zero uptime.
    """
    if not bags:
        return {Field.UPTIME: timedelta(0)}
    return min(bags, key=lambda bag: bag[Field.UPTIME])


class RowBuilder:
    """Builds display rows from raw process records.

    Args:
        columns: Resolved columns, in display order
        system: Host constants provider
        aggregation: Optional row reduction rule

    Raises:
        AggregationError: If the aggregation does not fit the columns
    """

    def __init__(
        self,
        columns: Sequence[Column],
        system: SystemContext,
        aggregation: Aggregation = Aggregation.NONE,
    ) -> None:
        validate_aggregation(columns, aggregation)
        self.columns = list(columns)
        self.system = system
        self.aggregation = aggregation
        self.needed = {column.field for column in self.columns}

    def build_values(self, records: Sequence[ProcessRawRecord]) -> list[ValueBag]:
        """Convert each record into a bag of the typed values the columns need."""
        if not records:
            return []

        clock_ticks = self.system.clock_ticks
        system_uptime = None
        if self.needed & _UPTIME_DEPENDENT:
            system_uptime = self.system.system_uptime()
        page_size = None
        if Field.RESIDENT_SIZE in self.needed:
            page_size = self.system.page_size()
        boot_time = None
        if Field.START_TIME in self.needed:
            boot_time = self.system.boot_time()

        bags: list[ValueBag] = []
        for record in records:
            bag: ValueBag = {}
            if Field.PID in self.needed:
                bag[Field.PID] = record.pid
            if Field.PARENT_PID in self.needed:
                bag[Field.PARENT_PID] = record.parent_pid
            if Field.VIRTUAL_SIZE in self.needed:
                bag[Field.VIRTUAL_SIZE] = record.virtual_size
            if page_size is not None:
                bag[Field.RESIDENT_SIZE] = pages_to_bytes(record.resident_pages, page_size)
            if boot_time is not None:
                bag[Field.START_TIME] = start_ticks_to_time(
                    record.start_time, boot_time, clock_ticks
                )
            if system_uptime is not None:
                uptime = process_uptime(system_uptime, record.start_time, clock_ticks)
                if Field.UPTIME in self.needed:
                    bag[Field.UPTIME] = truncate_to_seconds(uptime)
                if Field.CPU_PERCENT in self.needed:
                    bag[Field.CPU_PERCENT] = self._cpu_percent(record, uptime)
            if Field.COMMAND in self.needed:
                bag[Field.COMMAND] = record.command
            bags.append(bag)
        return bags

    def _cpu_percent(self, record: ProcessRawRecord, uptime: timedelta) -> float:
        if uptime <= timedelta(0):
            logger.debug("Process %d has no measurable uptime, cpu percent is 0", record.pid)
            return 0.0
        return cpu_percent(
            record.utime, record.stime, uptime, self.system.clock_ticks, pid=record.pid
        )

    def render(self, bag: ValueBag) -> Row:
        """Render one value bag as a row of display strings."""
        return [column.render(bag[column.field]) for column in self.columns]

    def build(self, records: Sequence[ProcessRawRecord]) -> list[Row]:
        """Build the rows for a set of records.

        Without aggregation there is one row per record, in input order. With
        minimum-uptime aggregation there is exactly one row, even for no records.
        """
        bags = self.build_values(records)
        if self.aggregation is Aggregation.MIN_UPTIME:
            bags = [select_min_uptime(bags)]
        return [self.render(bag) for bag in bags]
