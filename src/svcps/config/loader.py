"""Configuration loading and validation for svcps.

This module provides:
- Pydantic models for configuration validation
- YAML config file discovery and loading
- Environment variable expansion in config values
- Merging of config file with defaults and CLI overrides
- Clear, user-friendly error messages for config issues

Field names, alignment tokens and formatting functions are plain strings here;
they are validated when columns are built so file and command-line values go
through the same checks.
"""

import copy
from difflib import get_close_matches
import os
from pathlib import Path
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
import yaml

from svcps.config.defaults import DEFAULT_CONFIG


class ConfigError(Exception):
    """Base exception for configuration file errors.

    The string form reads like a compiler diagnostic::

        ~/.config/svcps/config.yaml:3:10: Unknown configuration key 'columns.feilds'
            feilds: [pid]
                 ^
          hint: Did you mean 'fields'?

    Attributes:
        message: The main error message
        file_path: Path to the config file (if applicable)
        line_number: 1-based line of the error (if known)
        column: 1-based column of the error (if known)
        suggestion: Helpful suggestion for fixing the error
        context_lines: Offending source lines, shown with a caret
    """

    def __init__(
        self,
        message: str,
        *,
        file_path: str | None = None,
        line_number: int | None = None,
        column: int | None = None,
        suggestion: str | None = None,
        context_lines: list[str] | None = None,
    ) -> None:
        self.message = message
        self.file_path = file_path
        self.line_number = line_number
        self.column = column
        self.suggestion = suggestion
        self.context_lines = context_lines or []
        super().__init__(self.render())

    @property
    def location(self) -> str:
        """``file:line:column`` prefix, or a generic label without a file."""
        if not self.file_path:
            return "config"
        parts = [self.file_path]
        parts.extend(str(n) for n in (self.line_number, self.column) if n)
        return ":".join(parts)

    def render(self) -> str:
        lines = [f"{self.location}: {self.message}"]
        for source_line in self.context_lines:
            lines.append(f"    {source_line}")
        if self.context_lines and self.column:
            lines.append(" " * (self.column + 3) + "^")
        if self.suggestion:
            lines.append(f"  hint: {self.suggestion}")
        return "\n".join(lines)


class ConfigSyntaxError(ConfigError):
    """The config file is not valid YAML."""


class ConfigValidationError(ConfigError):
    """The config file is valid YAML but holds invalid values."""


VALID_KEYS: dict[tuple[str, ...], set[str]] = {
    (): {"services", "headers", "aggregate", "columns", "system", "logging"},
    ("columns",): {"fields", "functions", "alignments", "default_alignment"},
    ("system",): {"clock_ticks", "proc_root", "cgroup_root"},
    ("logging",): {"enabled", "level", "file"},
}

_DEFAULT_COLUMNS: dict[str, Any] = DEFAULT_CONFIG["columns"]

# ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{(?P<name>[A-Za-z_]\w*)(?::-(?P<default>[^}]*))?\}")

# Pydantic error type -> (message, suggestion). Messages get the dotted key
# path and a description of the offending value; suggestions get the error ctx.
_VALIDATION_MESSAGES: dict[str, tuple[str, str | None]] = {
    "literal_error": ("Invalid value for '{path}': got {got}", "Expected one of: {expected}"),
    "greater_than_equal": (
        "Value for '{path}' is out of range: {value}",
        "Value must be at least {ge}",
    ),
    "less_than_equal": (
        "Value for '{path}' is out of range: {value}",
        "Value must be at most {le}",
    ),
    "int_parsing": ("Invalid number for '{path}': got {got}", "Please provide a whole number"),
    "int_type": ("Invalid number for '{path}': got {got}", "Please provide a whole number"),
    "string_type": ("Expected string for '{path}': got {got}", None),
    "bool_type": ("Expected boolean for '{path}': got {got}", "Use 'true' or 'false'"),
    "bool_parsing": ("Expected boolean for '{path}': got {got}", "Use 'true' or 'false'"),
    "list_type": ("Expected list for '{path}': got {got}", "Use a YAML list, e.g. [pid, uptime]"),
    "dict_type": ("Expected mapping for '{path}': got {got}", "Use field: value pairs"),
}

_YAML_HINTS: list[tuple[str, str]] = [
    ("could not find expected ':'", "Check for missing colons after keys (e.g., 'key: value')"),
    ("cannot start any token", "Use spaces instead of tabs for indentation"),
    ("mapping values are not allowed", "Check the indentation of nested keys"),
    ("expected ',' or ']'", "Close the list with ']'"),
]


def _describe(value: Any) -> str:
    """Short description of a config value for error messages."""
    if value is None:
        return "null"
    if isinstance(value, str):
        return f'string "{value}"'
    names = {bool: "boolean", int: "integer", float: "number", list: "list", dict: "mapping"}
    return names.get(type(value), type(value).__name__)


def _lookup(data: Any, loc: tuple[Any, ...]) -> Any:
    """Follow a pydantic error location into the raw config data."""
    for key in loc:
        if isinstance(data, dict):
            data = data.get(key)
        elif isinstance(data, list) and isinstance(key, int) and key < len(data):
            data = data[key]
        else:
            return None
    return data


def _unknown_key_error(loc: tuple[Any, ...], file_path: str | None) -> ConfigValidationError:
    path = ".".join(str(part) for part in loc)
    parent = tuple(str(part) for part in loc[:-1])
    matches = get_close_matches(str(loc[-1]), sorted(VALID_KEYS.get(parent, ())), n=1)
    if matches:
        suggestion = f"Did you mean '{matches[0]}'?"
    else:
        suggestion = "Valid keys here: " + ", ".join(sorted(VALID_KEYS.get(parent, ())))
    return ConfigValidationError(
        f"Unknown configuration key '{path}'",
        file_path=file_path,
        suggestion=suggestion,
    )


def _format_pydantic_error(
    error: ValidationError,
    config_data: dict[str, Any],
    file_path: str | None = None,
) -> ConfigValidationError:
    """Turn the first pydantic validation error into a ConfigValidationError."""
    errors = error.errors()
    if not errors:
        return ConfigValidationError("Configuration validation failed", file_path=file_path)

    first = errors[0]
    loc = tuple(first.get("loc", ()))
    kind = first.get("type", "")
    if kind == "extra_forbidden" and loc:
        return _unknown_key_error(loc, file_path)

    path = ".".join(str(part) for part in loc)
    if kind not in _VALIDATION_MESSAGES:
        return ConfigValidationError(
            f"Invalid value for '{path}': {first.get('msg', 'invalid value')}",
            file_path=file_path,
        )

    value = _lookup(config_data, loc)
    fields = {**first.get("ctx", {}), "path": path, "got": _describe(value), "value": value}
    message, suggestion = _VALIDATION_MESSAGES[kind]
    return ConfigValidationError(
        message.format(**fields),
        file_path=file_path,
        suggestion=suggestion.format(**fields) if suggestion else None,
    )


def _format_yaml_error(
    error: yaml.YAMLError,
    file_path: str | None = None,
    content: str | None = None,
) -> ConfigSyntaxError:
    """Turn a YAML parser error into a ConfigSyntaxError pointing at the line."""
    mark = getattr(error, "problem_mark", None)
    problem = getattr(error, "problem", None)
    text = str(error)

    line_number = column = None
    context_lines: list[str] = []
    if mark is not None:
        line_number, column = mark.line + 1, mark.column + 1
        source = (content or "").splitlines()
        if mark.line < len(source):
            context_lines.append(source[mark.line])

    hint = next((hint for needle, hint in _YAML_HINTS if needle in text), None)
    return ConfigSyntaxError(
        f"YAML syntax error: {problem}" if problem else "Invalid YAML syntax",
        file_path=file_path,
        line_number=line_number,
        column=column,
        suggestion=hint,
        context_lines=context_lines,
    )


def _substitute(match: re.Match[str]) -> str:
    value = os.environ.get(match["name"])
    if value is not None:
        return value
    if match["default"] is not None:
        return match["default"]
    return match[0]


def expand_env_vars(value: Any) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in config strings.

    Unset variables without a default are left as written.
    """
    if isinstance(value, str):
        return ENV_VAR_PATTERN.sub(_substitute, value)
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env_vars(item) for key, item in value.items()}
    return value


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into a copy of base.

    Mappings present on both sides are merged key by key; any other value in
    override, lists included, replaces the one in base.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


# Pydantic Configuration Models


class ColumnsConfig(BaseModel):
    """Which fields to show and how to format and align them."""

    model_config = ConfigDict(extra="forbid")

    fields: list[str] = Field(default_factory=lambda: list(_DEFAULT_COLUMNS["fields"]))
    functions: dict[str, str] = Field(default_factory=lambda: dict(_DEFAULT_COLUMNS["functions"]))
    alignments: dict[str, str] = Field(
        default_factory=lambda: dict(_DEFAULT_COLUMNS["alignments"])
    )
    default_alignment: str = _DEFAULT_COLUMNS["default_alignment"]


class SystemConfig(BaseModel):
    """Host paths and constants."""

    model_config = ConfigDict(extra="forbid")

    clock_ticks: int | None = Field(default=None, ge=1)
    proc_root: str = "/proc"
    cgroup_root: str = "/sys/fs/cgroup/system.slice"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    file: str = "~/.svcps/svcps.log"


class Config(BaseModel):
    """Main configuration model for svcps.

    Loaded from YAML files and overridden by CLI flags.
    """

    model_config = ConfigDict(extra="forbid")

    services: list[str] = Field(default_factory=list)
    headers: bool = True
    aggregate: Literal["none", "min-uptime"] = "none"
    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_config_path(custom_path: str | None = None) -> Path | None:
    """Find the configuration file to load.

    An explicit path must exist. Otherwise the first existing file wins:
    1. SVCPS_CONFIG_PATH environment variable
    2. ~/.config/svcps/config.yaml (XDG standard)
    3. ~/.svcps/config.yaml (legacy location)

    A path named by SVCPS_CONFIG_PATH that does not exist disables discovery.

    Raises:
        FileNotFoundError: If a custom path is given but does not exist
    """
    if custom_path:
        path = Path(custom_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {custom_path}")
        return path

    env_path = os.environ.get("SVCPS_CONFIG_PATH")
    if env_path:
        candidates = [Path(env_path).expanduser()]
    else:
        home = Path.home()
        candidates = [home / ".config" / "svcps" / "config.yaml", home / ".svcps" / "config.yaml"]
    return next((path for path in candidates if path.exists()), None)


def _read_config_file(path: Path) -> dict[str, Any]:
    content = path.read_text()
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise _format_yaml_error(e, str(path), content) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(
            f"Expected a mapping at the top level: got {_describe(data)}",
            file_path=str(path),
        )
    return data


def load_config(
    config_path: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> Config:
    """Load and validate configuration.

    Layers, later ones winning: defaults, config file (if found), CLI
    overrides. Environment variables are expanded after merging.

    Args:
        config_path: Optional custom config file path
        cli_overrides: Optional dict of CLI argument overrides

    Returns:
        Validated Config object

    Raises:
        FileNotFoundError: If custom config path doesn't exist
        ConfigSyntaxError: If config file has invalid YAML syntax
        ConfigValidationError: If config values are invalid
    """
    path = get_config_path(config_path)
    config_data = copy.deepcopy(DEFAULT_CONFIG)
    if path is not None:
        config_data = deep_merge(config_data, _read_config_file(path))
    if cli_overrides:
        config_data = deep_merge(config_data, cli_overrides)
    config_data = expand_env_vars(config_data)

    try:
        return Config.model_validate(config_data)
    except ValidationError as e:
        raise _format_pydantic_error(e, config_data, str(path) if path else None) from e
