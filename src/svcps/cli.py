"""Command-line interface for svcps.

This module provides:
- Typer-based CLI application
- Config file loading with CLI overrides
- Logging setup
- Error reporting with exit codes

Usage:
    svcps -s nginx                           # Default columns
    svcps -s nginx -s php-fpm --no-headers   # Several services, no title row
    svcps -s nginx -f pid,cpu_percent,command --func cpu_percent=fixed:2
    svcps -s nginx -f uptime --aggregate min-uptime --func uptime=seconds

Examples:
    # Show start time relative to now and left-align the PID column
    svcps -s sshd --func start_time=humanRelTime --align pid=L

    # Use a custom configuration file
    svcps --config ~/.config/svcps/custom.yaml
"""

from enum import Enum
import logging
from pathlib import Path
from typing import Annotated, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
import typer

from svcps import __version__
from svcps.config import Config, ConfigError, LoggingConfig, load_config
from svcps.errors import SvcpsError
from svcps.formatters import functions_for
from svcps.models import Field
from svcps.runner import run

app = typer.Typer(
    name="svcps",
    help="List the processes of systemd services as an aligned table",
    no_args_is_help=False,
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True, soft_wrap=True)

logger = logging.getLogger(__name__)


class AggregateChoice(str, Enum):
    """Aggregation options for the CLI."""

    NONE = "none"
    MIN_UPTIME = "min-uptime"


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        console.print(f"svcps version {__version__}")
        raise typer.Exit()


def list_fields_callback(value: bool) -> None:
    """Print every field with its title and formatting functions, then exit."""
    if not value:
        return
    for field in Field:
        names = ", ".join(functions_for(field)) or "-"
        typer.echo(f"{field.value:<14} {field.title:<8} {names}")
    raise typer.Exit()


def split_list(values: list[str] | None) -> list[str] | None:
    """Flatten repeated and comma-separated option values.

    Args:
        values: List from typer, items may contain commas

    Returns:
        Flattened list of names, or None if nothing was given
    """
    if not values:
        return None
    result = [name.strip() for item in values for name in item.split(",")]
    result = [name for name in result if name]
    return result or None


def parse_assignments(values: list[str] | None, option: str) -> dict[str, str]:
    """Parse repeated ``FIELD=VALUE`` options into a dict.

    Raises:
        typer.BadParameter: If an item has no ``=`` or an empty field
    """
    result: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise typer.BadParameter(f"expected FIELD=VALUE, got {item!r}", param_hint=option)
        result[key] = value
    return result


def build_cli_overrides(
    services: list[str] | None = None,
    fields: str | None = None,
    functions: dict[str, str] | None = None,
    alignments: dict[str, str] | None = None,
    default_alignment: str | None = None,
    headers: bool | None = None,
    aggregate: AggregateChoice | None = None,
) -> dict[str, Any]:
    """Build config override dict from CLI flags.

    Args:
        services: Service names
        fields: Comma-separated field identifiers
        functions: Field -> formatting function reference
        alignments: Field -> alignment token
        default_alignment: Alignment for fields without an override
        headers: Whether to print the title row
        aggregate: Aggregation rule

    Returns:
        Dictionary of config overrides
    """
    overrides: dict[str, Any] = {}

    if services is not None:
        overrides["services"] = services
    if headers is not None:
        overrides["headers"] = headers
    if aggregate is not None:
        overrides["aggregate"] = aggregate.value

    column_overrides: dict[str, Any] = {}
    if fields is not None:
        column_overrides["fields"] = split_list([fields]) or []
    if functions:
        column_overrides["functions"] = functions
    if alignments:
        column_overrides["alignments"] = alignments
    if default_alignment is not None:
        column_overrides["default_alignment"] = default_alignment

    if column_overrides:
        overrides["columns"] = column_overrides

    return overrides


def configure_logging(logging_config: LoggingConfig, verbose: bool = False) -> None:
    """Attach log handlers according to config and the --verbose flag.

    Without either, only warnings and errors reach stderr.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    level = logging.WARNING
    if verbose:
        root.addHandler(RichHandler(console=err_console, show_path=False))
        level = logging.DEBUG
    else:
        stderr_handler = RichHandler(console=err_console, show_path=False)
        stderr_handler.setLevel(logging.WARNING)
        root.addHandler(stderr_handler)

    if logging_config.enabled:
        log_path = Path(logging_config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging_config.level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        root.addHandler(file_handler)
        level = min(level, logging.getLevelName(logging_config.level))

    root.setLevel(level)


def report_error(error: BaseException) -> None:
    """Print an error, expanding grouped errors one per line at every level."""
    if isinstance(error, BaseExceptionGroup):
        err_console.print(f"[red]Error:[/red] {escape(error.message)}")
        _report_members(error, depth=1)
        return
    err_console.print(f"[red]Error:[/red] {escape(str(error))}")


def _report_members(group: BaseExceptionGroup, depth: int) -> None:
    indent = "  " * depth
    for member in group.exceptions:
        if isinstance(member, BaseExceptionGroup):
            err_console.print(f"{indent}- {escape(member.message)}:")
            _report_members(member, depth + 1)
        else:
            err_console.print(f"{indent}- {escape(str(member))}")


# Options
ServiceOption = Annotated[
    list[str] | None,
    typer.Option(
        "--service",
        "-s",
        help="systemd service name (repeatable or comma-separated)",
    ),
]

FieldsOption = Annotated[
    str | None,
    typer.Option(
        "--fields",
        "-f",
        help="Comma-separated fields to show (see --list-fields)",
    ),
]

FuncOption = Annotated[
    list[str] | None,
    typer.Option(
        "--func",
        help="Formatting function as FIELD=NAME[:ARG], e.g. uptime=seconds",
    ),
]

AlignOption = Annotated[
    list[str] | None,
    typer.Option(
        "--align",
        help="Alignment override as FIELD=L or FIELD=R",
    ),
]

DefaultAlignOption = Annotated[
    str | None,
    typer.Option(
        "--default-align",
        help="Alignment for fields without an override (L or R)",
    ),
]

HeadersOption = Annotated[
    bool | None,
    typer.Option(
        "--headers/--no-headers",
        help="Show the title row (default: True)",
    ),
]

AggregateOption = Annotated[
    AggregateChoice | None,
    typer.Option(
        "--aggregate",
        help="Reduce the table to one row (min-uptime needs --fields uptime)",
    ),
]

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to custom config file",
        envvar="SVCPS_CONFIG_PATH",
        exists=False,  # We handle existence check ourselves
    ),
]

VerboseOption = Annotated[
    bool,
    typer.Option(
        "--verbose",
        "-v",
        help="Log debug output to stderr",
    ),
]

VersionOption = Annotated[
    bool | None,
    typer.Option(
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
]

ListFieldsOption = Annotated[
    bool | None,
    typer.Option(
        "--list-fields",
        callback=list_fields_callback,
        is_eager=True,
        help="List fields, titles and formatting functions, then exit",
    ),
]


@app.command()
def main(
    service: ServiceOption = None,
    fields: FieldsOption = None,
    func: FuncOption = None,
    align: AlignOption = None,
    default_align: DefaultAlignOption = None,
    headers: HeadersOption = None,
    aggregate: AggregateOption = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    version: VersionOption = None,
    list_fields: ListFieldsOption = None,
) -> None:
    """svcps - list the processes of systemd services.

    Reads /proc for every process in the services' cgroups and prints the
    selected fields as an aligned table.
    """
    overrides = build_cli_overrides(
        services=split_list(service),
        fields=fields,
        functions=parse_assignments(func, "--func"),
        alignments=parse_assignments(align, "--align"),
        default_alignment=default_align,
        headers=headers,
        aggregate=aggregate,
    )

    try:
        config_path = str(config) if config else None
        cfg = load_config(config_path=config_path, cli_overrides=overrides)
    except FileNotFoundError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    configure_logging(cfg.logging, verbose)
    run_svcps(cfg)


def run_svcps(config: Config) -> None:
    """Render the table for a configuration and print it.

    Raises:
        typer.Exit: With code 1 if the render fails
    """
    try:
        lines = run(config)
    except (SvcpsError, ExceptionGroup) as e:
        logger.debug("Render failed", exc_info=True)
        report_error(e)
        raise typer.Exit(1) from e

    for line in lines:
        typer.echo(line)


def cli_main() -> None:
    """Entry point for the CLI application."""
    app()
