"""Render pipeline for svcps.

Coordinates the stages of a single render pass:
1. Resolve columns and aggregation from configuration (no host I/O)
2. Discover the PIDs of the requested services
3. Read all process records concurrently
4. Build rows, prepend the header and align

Any failure aborts the whole pass; no partial table is produced.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
import logging
from pathlib import Path

from svcps.align import align_rows, format_lines
from svcps.config import Config
from svcps.formatters import build_columns, column_alignments, header_row
from svcps.models import Aggregation, Column, ProcessRawRecord
from svcps.procfs import read_records
from svcps.rows import RowBuilder
from svcps.services import list_pids
from svcps.system import SystemContext

logger = logging.getLogger(__name__)


def columns_from_config(config: Config) -> list[Column]:
    """Resolve the configured columns.

    Raises:
        ConfigurationError: If a field, alignment or function is invalid
    """
    return build_columns(
        config.columns.fields,
        functions=config.columns.functions,
        alignments=config.columns.alignments,
        default_alignment=config.columns.default_alignment,
    )


def system_from_config(config: Config) -> SystemContext:
    """Create the host constants provider for the configured paths."""
    return SystemContext(
        clock_ticks=config.system.clock_ticks,
        proc_root=config.system.proc_root,
    )


def render_table(
    builder: RowBuilder,
    records: Sequence[ProcessRawRecord],
    headers: bool = True,
) -> list[str]:
    """Render records as aligned output lines.

    Args:
        builder: Row builder holding the columns and host constants
        records: Raw process records
        headers: Whether to prepend the title row

    Returns:
        Output lines, cells separated by two spaces
    """
    rows = builder.build(records)
    if headers:
        rows = [header_row(builder.columns), *rows]
    if not rows:
        return []
    if len(rows) < 2:
        return format_lines(rows)
    return format_lines(align_rows(rows, column_alignments(builder.columns)))


def run(config: Config, system: SystemContext | None = None) -> list[str]:
    """Run one render pass for the configured services.

    Configuration is validated before any host I/O.

    Args:
        config: Validated configuration
        system: Host constants provider (defaults to one built from config)

    Returns:
        Output lines

    Raises:
        ConfigurationError: If the column or aggregation configuration is invalid
        SvcpsError: If a service or process cannot be read
        ExceptionGroup: If several process reads failed
    """
    columns = columns_from_config(config)
    builder = RowBuilder(
        columns,
        system or system_from_config(config),
        Aggregation(config.aggregate),
    )

    pids = list_pids(config.services, Path(config.system.cgroup_root))
    logger.info("Found %d processes in %d services", len(pids), len(config.services))
    records = asyncio.run(read_records(pids, Path(config.system.proc_root)))
    return render_table(builder, records, headers=config.headers)
