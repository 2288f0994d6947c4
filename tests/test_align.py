"""Tests for the alignment engine."""

import pytest

from svcps.align import CELL_SEPARATOR, align_rows, column_widths, format_lines
from svcps.errors import TableShapeError
from svcps.models import Alignment

L = Alignment.LEFT
R = Alignment.RIGHT


class TestColumnWidths:
    """Tests for width computation."""

    def test_widths(self) -> None:
        """Test the widest cell of each column wins."""
        assert column_widths([["a", "bbb"], ["cc", ""]]) == [2, 3]

    def test_no_rows(self) -> None:
        """Test an empty table is an error."""
        with pytest.raises(TableShapeError, match="no rows"):
            column_widths([])

    def test_ragged_rows(self) -> None:
        """Test every row must have the same column count."""
        with pytest.raises(TableShapeError, match="column count mismatch"):
            column_widths([["a", "b"], ["c", "d"], ["e"]])

    def test_shape_error_is_value_error(self) -> None:
        """Test table shape errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            column_widths([])


class TestAlignRows:
    """Tests for cell padding."""

    def test_left_and_right(self) -> None:
        """Test left cells pad right and right cells pad left."""
        rows = [["PID", "COMMAND"], ["1", "/sbin/init"]]
        assert align_rows(rows, [R, L]) == [
            ["PID", "COMMAND   "],
            ["  1", "/sbin/init"],
        ]

    def test_cells_share_column_width(self) -> None:
        """Test every cell in a column has the same length."""
        rows = [["x", "yy"], ["xxx", "y"], ["", ""]]
        aligned = align_rows(rows, [L, R])
        for j in range(2):
            assert len({len(row[j]) for row in aligned}) == 1

    def test_dimensions_preserved(self) -> None:
        """Test the output has the input's shape."""
        rows = [["a", "b", "c"], ["d", "e", "f"]]
        aligned = align_rows(rows, [L, L, L])
        assert len(aligned) == 2
        assert all(len(row) == 3 for row in aligned)

    def test_input_not_modified(self) -> None:
        """Test new rows are returned."""
        rows = [["a"], ["bbb"]]
        align_rows(rows, [R])
        assert rows == [["a"], ["bbb"]]

    def test_alignment_count_mismatch(self) -> None:
        """Test the alignment list must match the column count."""
        with pytest.raises(TableShapeError, match="alignment count mismatch"):
            align_rows([["a", "b"], ["c", "d"]], [L])

    def test_idempotent(self) -> None:
        """Test aligning already-aligned rows changes nothing."""
        rows = [["PID", "COMMAND"], ["12345", "sh"]]
        once = align_rows(rows, [R, L])
        assert align_rows(once, [R, L]) == once

    def test_single_row(self) -> None:
        """Test a one-row table is returned unpadded."""
        assert align_rows([["a", "bb"]], [L, R]) == [["a", "bb"]]


class TestFormatLines:
    """Tests for joining cells."""

    def test_two_space_separator(self) -> None:
        """Test cells are joined by two spaces."""
        assert CELL_SEPARATOR == "  "
        assert format_lines([["a", "b"], ["c", "d"]]) == ["a  b", "c  d"]

    def test_custom_separator(self) -> None:
        """Test an explicit separator."""
        assert format_lines([["a", "b"]], " | ") == ["a | b"]
