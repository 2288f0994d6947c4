"""Column alignment for plain-text tables.

A pure, general-purpose formatter: every cell is padded with spaces to the
widest cell of its column. Widths count characters; wide or combining
characters are not adjusted for terminal display width.
"""

from collections.abc import Sequence

from svcps.errors import TableShapeError
from svcps.models import Alignment

CELL_SEPARATOR = "  "


def column_widths(rows: Sequence[Sequence[str]]) -> list[int]:
    """Maximum cell length of each column.

    Raises:
        TableShapeError: If there are no rows, or rows differ in column count
    """
    if not rows:
        raise TableShapeError("no rows")

    widths = [0] * len(rows[0])
    for index, row in enumerate(rows):
        if len(row) != len(widths):
            raise TableShapeError(
                f"column count mismatch: row {index} has {len(row)} columns, "
                f"row 0 has {len(widths)}"
            )
        for j, cell in enumerate(row):
            widths[j] = max(widths[j], len(cell))
    return widths


def align_rows(
    rows: Sequence[Sequence[str]],
    alignments: Sequence[Alignment],
) -> list[list[str]]:
    """Pad every cell to its column width.

    Left-aligned cells are padded on the right, right-aligned cells on the
    left. The result has the same dimensions as the input.

    Args:
        rows: Table rows, all with the same column count
        alignments: One alignment per column

    Returns:
        New rows with padded cells

    Raises:
        TableShapeError: If there are no rows, rows differ in column count, or
            the alignment count differs from the column count
    """
    widths = column_widths(rows)
    if len(alignments) != len(widths):
        raise TableShapeError(
            f"alignment count mismatch: {len(alignments)} alignments for {len(widths)} columns"
        )

    aligned: list[list[str]] = []
    for row in rows:
        cells = []
        for cell, width, alignment in zip(row, widths, alignments):
            if alignment == Alignment.LEFT:
                cells.append(cell.ljust(width))
            else:
                cells.append(cell.rjust(width))
        aligned.append(cells)
    return aligned


def format_lines(rows: Sequence[Sequence[str]], separator: str = CELL_SEPARATOR) -> list[str]:
    """Join the cells of each row into one output line."""
    return [separator.join(row) for row in rows]
