"""Named formatting functions for column values.

The registry is closed: each function is declared with the fields it applies
to and whether it takes an argument, and is resolved when columns are built,
never at render time.

Functions:
- iBytes: Binary byte units (virtual_size, resident_size)
- format: strftime layout given as the argument (start_time)
- humanRelTime: Time relative to now, e.g. "3 hours ago" (start_time)
- seconds: Whole seconds (uptime)
- duration: Compact multi-unit duration, e.g. "2M3d4h5m6s" (uptime)
- fixed: Fixed-point number, argument is the decimal places (cpu_percent)
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
import math
from typing import Any

from svcps.errors import ConfigurationError, InvalidFunctionError
from svcps.models import Field, FormatSpec

Renderer = Callable[[Any], str]

_MICROSECOND = timedelta(microseconds=1)
_US_PER_MS = 1_000
_US_PER_SECOND = 1_000_000
_US_PER_MINUTE = 60 * _US_PER_SECOND
_US_PER_HOUR = 60 * _US_PER_MINUTE
_US_PER_DAY = 24 * _US_PER_HOUR
# Fixed-length calendar units: a year is 365.25 days and a month 1/12 of it.
_US_PER_YEAR = 365 * _US_PER_DAY + _US_PER_DAY // 4
_US_PER_MONTH = _US_PER_YEAR // 12

_IEC_SUFFIXES = ["B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB"]


def ibytes(size: int) -> str:
    """Format a byte count with binary (IEC) units.

    Values below 10 are shown exactly; larger values are rounded to one
    decimal place, dropped again once the value reaches 10.

    Examples:
        >>> ibytes(1024)
        '1.0 KiB'
        >>> ibytes(82854982)
        '79 MiB'
    """
    if size < 10:
        return f"{size} B"
    exponent = 0
    while exponent < len(_IEC_SUFFIXES) - 1 and size >= 1024 ** (exponent + 1):
        exponent += 1
    value = math.floor(size / 1024**exponent * 10 + 0.5) / 10
    if value < 10:
        return f"{value:.1f} {_IEC_SUFFIXES[exponent]}"
    return f"{value:.0f} {_IEC_SUFFIXES[exponent]}"


def format_time(value: datetime, layout: str) -> str:
    """Format a timestamp with a strftime layout."""
    return value.strftime(layout)


_DAY = timedelta(days=1)
_WEEK = 7 * _DAY
_MONTH = 30 * _DAY
_YEAR = 12 * _MONTH

# (upper bound, text, divisor); the first bound above the difference wins.
# A divisor of None means the text carries no count.
_RELATIVE_MAGNITUDES: list[tuple[timedelta, str, timedelta | None]] = [
    (timedelta(seconds=1), "now", None),
    (timedelta(seconds=2), "1 second {}", None),
    (timedelta(minutes=1), "{} seconds {}", timedelta(seconds=1)),
    (timedelta(minutes=2), "1 minute {}", None),
    (timedelta(hours=1), "{} minutes {}", timedelta(minutes=1)),
    (timedelta(hours=2), "1 hour {}", None),
    (_DAY, "{} hours {}", timedelta(hours=1)),
    (2 * _DAY, "1 day {}", None),
    (_WEEK, "{} days {}", _DAY),
    (2 * _WEEK, "1 week {}", None),
    (_MONTH, "{} weeks {}", _WEEK),
    (2 * _MONTH, "1 month {}", None),
    (_YEAR, "{} months {}", _MONTH),
    (18 * _MONTH, "1 year {}", None),
    (2 * _YEAR, "2 years {}", None),
    (37 * _YEAR, "{} years {}", _YEAR),
]


def human_rel_time(value: datetime, now: datetime | None = None) -> str:
    """Describe a timestamp relative to now, e.g. "5 minutes ago"."""
    if now is None:
        now = datetime.now(value.tzinfo)
    diff = now - value
    label = "ago"
    if diff < timedelta(0):
        diff = -diff
        label = "from now"

    for bound, text, divisor in _RELATIVE_MAGNITUDES:
        if diff < bound:
            if text == "now":
                return text
            if divisor is None:
                return text.format(label)
            return text.format(diff // divisor, label)
    return f"a long while {label}"


def seconds(value: timedelta) -> str:
    """Whole seconds of a duration, truncated toward zero."""
    micros = value // _MICROSECOND
    whole = abs(micros) // _US_PER_SECOND
    return f"-{whole}" if micros < 0 and whole else str(whole)


def _fraction(value: int, unit: int) -> str:
    """Render ``value / unit`` with trailing zeros of the fraction removed."""
    whole, rest = divmod(value, unit)
    if not rest:
        return str(whole)
    digits = str(rest).rjust(len(str(unit)) - 1, "0").rstrip("0")
    return f"{whole}.{digits}"


def _clock(micros: int) -> str:
    """Short form of a non-negative duration under a day: 1h2m3.5s, 250ms."""
    if micros == 0:
        return "0s"
    if micros < _US_PER_MS:
        return f"{micros}µs"
    if micros < _US_PER_SECOND:
        return f"{_fraction(micros, _US_PER_MS)}ms"

    hours, rest = divmod(micros, _US_PER_HOUR)
    minutes, rest = divmod(rest, _US_PER_MINUTE)
    text = f"{_fraction(rest, _US_PER_SECOND)}s"
    if hours:
        return f"{hours}h{minutes}m{text}"
    if minutes:
        return f"{minutes}m{text}"
    return text


def format_duration(value: timedelta) -> str:
    """Compact duration with day, month and year units.

    Months are exactly 30.4375 days and years exactly 365.25 days; units are
    split off by successive integer division.

    Examples:
        >>> format_duration(timedelta(seconds=86399))
        '23h59m59s'
        >>> format_duration(timedelta(days=1))
        '1d0s'
        >>> format_duration(timedelta(days=365.25))
        '1y0M0d0s'
    """
    micros = value // _MICROSECOND
    if micros < 0:
        return "-" + format_duration(-value)

    if micros < _US_PER_DAY:
        return _clock(micros)

    if micros < _US_PER_MONTH:
        days, rest = divmod(micros, _US_PER_DAY)
        return f"{days}d{_clock(rest)}"

    if micros < _US_PER_YEAR:
        months, rest = divmod(micros, _US_PER_MONTH)
        days, rest = divmod(rest, _US_PER_DAY)
        return f"{months}M{days}d{_clock(rest)}"

    years, rest = divmod(micros, _US_PER_YEAR)
    months, rest = divmod(rest, _US_PER_MONTH)
    days, rest = divmod(rest, _US_PER_DAY)
    return f"{years}y{months}M{days}d{_clock(rest)}"


def fixed(value: float, places: int = 1) -> str:
    """Fixed-point number with the given decimal places."""
    return f"{value:.{places}f}"


def default_render(value: Any) -> str:
    """Default string conversion of a typed value."""
    return str(value)


@dataclass(frozen=True, slots=True)
class FunctionDef:
    """A registered formatting function.

    Attributes:
        name: Name used in configuration
        fields: Fields the function may be applied to
        make: Builds the renderer from the (validated) argument
        argument: "none", "optional" or "required"
        description: One-line summary for ``--list-fields``
    """

    name: str
    fields: frozenset[Field]
    make: Callable[[str | None], Renderer]
    argument: str = "none"
    description: str = ""


def _make_fixed(argument: str | None) -> Renderer:
    if argument is None:
        return fixed
    try:
        places = int(argument)
    except ValueError:
        places = -1
    if not 0 <= places <= 10:
        raise ConfigurationError(
            f"invalid argument for fixed: {argument!r}",
            suggestion="decimal places must be an integer from 0 to 10",
        )
    return lambda value: fixed(value, places)


def _make_format(argument: str | None) -> Renderer:
    layout = argument or ""
    return lambda value: format_time(value, layout)


FUNCTIONS: dict[str, FunctionDef] = {
    definition.name: definition
    for definition in [
        FunctionDef(
            "iBytes",
            frozenset({Field.VIRTUAL_SIZE, Field.RESIDENT_SIZE}),
            lambda _: ibytes,
            description="binary byte units (1.5 MiB)",
        ),
        FunctionDef(
            "format",
            frozenset({Field.START_TIME}),
            _make_format,
            argument="required",
            description="strftime layout, e.g. format:%Y-%m-%d %H:%M",
        ),
        FunctionDef(
            "humanRelTime",
            frozenset({Field.START_TIME}),
            lambda _: human_rel_time,
            description="relative to now (3 hours ago)",
        ),
        FunctionDef(
            "seconds",
            frozenset({Field.UPTIME}),
            lambda _: seconds,
            description="whole seconds",
        ),
        FunctionDef(
            "duration",
            frozenset({Field.UPTIME}),
            lambda _: format_duration,
            description="compact duration (1y2M3d4h5m6s)",
        ),
        FunctionDef(
            "fixed",
            frozenset({Field.CPU_PERCENT}),
            _make_fixed,
            argument="optional",
            description="fixed decimal places, e.g. fixed:2",
        ),
    ]
}


def functions_for(field: Field) -> list[str]:
    """Names of the functions applicable to a field, in registry order."""
    return [name for name, definition in FUNCTIONS.items() if field in definition.fields]


def resolve_function(field: Field, spec: FormatSpec | None) -> Renderer:
    """Turn a function reference into a renderer for a field.

    Args:
        field: Field the column shows
        spec: Function reference, or None for the default string conversion

    Returns:
        Callable rendering one typed value

    Raises:
        InvalidFunctionError: If the name is unknown or not applicable to the field
        ConfigurationError: If the argument is missing, unexpected or invalid
    """
    if spec is None:
        return default_render

    definition = FUNCTIONS.get(spec.name)
    if definition is None or field not in definition.fields:
        raise InvalidFunctionError(spec.name, field.value, functions_for(field))

    if definition.argument == "none" and spec.argument is not None:
        raise ConfigurationError(
            f"formatting function {spec.name!r} takes no argument: {str(spec)!r}"
        )
    if definition.argument == "required" and not spec.argument:
        raise ConfigurationError(
            f"formatting function {spec.name!r} requires an argument",
            suggestion=f"use {spec.name}:<argument>",
        )
    return definition.make(spec.argument)
