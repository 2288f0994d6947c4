"""Column engine: resolve requested fields into column descriptors.

A column is defined by its field, an alignment and a formatting rule. All
validation happens here, so a bad field name, alignment token or function
reference is reported before any process is read.
"""

from collections.abc import Mapping, Sequence

from svcps.errors import ConfigurationError, InvalidAlignmentError, InvalidFieldError
from svcps.formatters.functions import resolve_function
from svcps.models import Alignment, Column, Field, FormatSpec


def parse_field(value: str | Field) -> Field:
    """Convert a field identifier to a Field.

    Raises:
        InvalidFieldError: If the identifier is not in the closed field set
    """
    if isinstance(value, Field):
        return value
    try:
        return Field(value)
    except ValueError:
        raise InvalidFieldError(value, Field.values()) from None


def parse_alignment(value: str | Alignment, field: str | None = None) -> Alignment:
    """Convert an alignment token, exactly ``L`` or ``R``, to an Alignment.

    Raises:
        InvalidAlignmentError: For any other token, including lower case
    """
    if isinstance(value, Alignment):
        return value
    try:
        return Alignment(value)
    except ValueError:
        raise InvalidAlignmentError(value, field) from None


def parse_format_spec(value: str | FormatSpec) -> FormatSpec:
    """Parse ``name`` or ``name:argument`` into a FormatSpec.

    Only the first colon separates the name, so arguments may contain colons
    (``format:%H:%M``).
    """
    if isinstance(value, FormatSpec):
        return value
    name, sep, argument = value.partition(":")
    name = name.strip()
    if not name:
        raise ConfigurationError(f"empty formatting function name: {value!r}")
    return FormatSpec(name, argument if sep else None)


def build_columns(
    fields: Sequence[str | Field],
    functions: Mapping[str, str | FormatSpec] | None = None,
    alignments: Mapping[str, str | Alignment] | None = None,
    default_alignment: str | Alignment = Alignment.RIGHT,
) -> list[Column]:
    """Resolve requested fields into an ordered list of columns.

    Args:
        fields: Field identifiers in display order
        functions: Field identifier -> formatting function reference
        alignments: Field identifier -> alignment override
        default_alignment: Alignment for fields without an override

    Returns:
        One Column per requested field

    Raises:
        InvalidFieldError: If any field identifier, including mapping keys, is unknown
        InvalidAlignmentError: If any alignment token is not ``L`` or ``R``
        InvalidFunctionError: If a function is unknown or not applicable to its field
        ConfigurationError: If no fields are requested, or a function argument is
            missing or invalid
    """
    if not fields:
        raise ConfigurationError(
            "no fields requested",
            suggestion="choose fields with --fields, see --list-fields",
        )
    default = parse_alignment(default_alignment)

    renderers = {}
    specs = {}
    for key, value in (functions or {}).items():
        field = parse_field(key)
        spec = parse_format_spec(value)
        specs[field] = spec
        renderers[field] = resolve_function(field, spec)

    overrides = {}
    for key, value in (alignments or {}).items():
        field = parse_field(key)
        overrides[field] = parse_alignment(value, field.value)

    columns: list[Column] = []
    for value in fields:
        field = parse_field(value)
        render = renderers.get(field) or resolve_function(field, None)
        columns.append(
            Column(
                field=field,
                alignment=overrides.get(field, default),
                render=render,
                spec=specs.get(field),
            )
        )
    return columns


def header_row(columns: Sequence[Column]) -> list[str]:
    """Titles of the columns, used as the table header."""
    return [column.title for column in columns]


def column_alignments(columns: Sequence[Column]) -> list[Alignment]:
    """Alignment of each column, in order."""
    return [column.alignment for column in columns]
