"""
Configuration management for CF DDNS.

This module handles loading and validating configuration from environment
variables and command-line arguments. Configuration priority (high to low):
1. Command-line arguments
2. Environment variables
3. Default values

Zones are configured either as a JSON array in `CF_ZONES` (multi-zone mode)
or with the `CF_ZONE_ID` + `CF_RECORD_NAME` pair (single-zone mode).
`CF_ZONES` wins when both are set.
"""

from __future__ import annotations

import argparse
import copy
import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cf_ddns.logging_config import DATE_FORMAT, LOG_FORMAT

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any, Final

# Configure basic logging for early startup messages.
# This ensures log messages during config loading (before "setup_logging()" is called)
# are visible with proper formatting. The main logging setup in "setup_logging()"
# will reconfigure the "cf_ddns" logger with full settings later.
logger_basic = logging.getLogger(__name__)
logger_basic.setLevel(logging.DEBUG)
handler = logging.StreamHandler()
formatter = logging.Formatter(
    fmt=LOG_FORMAT,
    datefmt=DATE_FORMAT,
)
handler.setFormatter(formatter)
logger_basic.addHandler(handler)
logger_basic.propagate = False


DEFAULT_UPDATE_INTERVAL_MS: Final[int] = 3_600_000

# Field path -> environment variable, used in error messages
ENV_NAMES: Final[dict[str, str]] = {
    "api_token": "CF_API_TOKEN",
    "zones": "CF_ZONES",
    "update_interval": "UPDATE_INTERVAL",
    "server.port": "HEALTH_PORT",
    "logging.level": "LOG_LEVEL",
    "logging.file_path": "LOG_FILE",
}


class ConfigValidationError(Exception):
    """
    Exception raised when configuration validation fails.

    Raised for missing or malformed environment variables, including
    a `CF_ZONES` value that is not valid JSON.
    """


# Configuration models (Pydantic with type validation and coercion)


class ZoneConfig(BaseModel):
    """
    A zone to reconcile and the record name pattern to match inside it.

    Attributes
    ----------
    zone_id : str
        CloudFlare zone ID.
    record_name : str
        Record name pattern. `*` matches any sequence of characters.
    """

    model_config = ConfigDict(frozen=True)

    zone_id: str = Field(..., min_length=1)
    record_name: str = Field(..., min_length=1)


class ServerConfig(BaseModel):
    """
    Liveness listener configuration.

    Attributes
    ----------
    host : str
        Host address to bind to.
    port : int
        Port number to listen on.
    """

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(default=8080, gt=0, le=65535)


class LoggingConfig(BaseModel):
    """
    Logging configuration.

    Attributes
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    file_path : str | None
        Path to the log file. File logging is disabled when None.
    """

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_path: str | None = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: Any) -> Any:
        """Accept log levels in any case."""
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @property
    def file_path_as_path(self) -> Path:
        """
        Get the log file path as a Path object.

        Returns
        -------
        Path
            The log file path.

        Raises
        ------
        ValueError
            If file logging is not configured.
        """
        if self.file_path is None:
            msg = "File logging is not configured"
            raise ValueError(msg)
        return Path(self.file_path)


class Config(BaseModel):
    """
    Application configuration.

    Built once at startup and passed explicitly to the components that need it.

    Attributes
    ----------
    api_token : str
        CloudFlare API token.
    zones : tuple[ZoneConfig, ...]
        Zones to reconcile, in the order they are processed.
    update_interval : int
        Polling interval in milliseconds.
    server : ServerConfig
        Liveness listener configuration.
    logging : LoggingConfig
        Logging configuration.
    """

    model_config = ConfigDict(frozen=True)

    api_token: str = Field(..., min_length=1, repr=False)
    zones: tuple[ZoneConfig, ...] = Field(..., min_length=1)
    update_interval: int = Field(default=DEFAULT_UPDATE_INTERVAL_MS, gt=0)
    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()

    @property
    def update_interval_seconds(self) -> float:
        """Polling interval in seconds."""
        return self.update_interval / 1000


def _format_validation_errors(error: ValidationError) -> str:
    """
    Format Pydantic validation errors into human-readable messages.

    Parameters
    ----------
    error : ValidationError
        Pydantic validation error.

    Returns
    -------
    str
        Human-readable error message.
    """
    lines: list[str] = ["Configuration error:"]

    for err in error.errors():
        # Build field path (e.g., "zones.0.zone_id")
        field_path = ".".join(str(loc) for loc in err["loc"])
        env_name = ENV_NAMES.get(field_path) or ENV_NAMES.get(str(err["loc"][0]))
        label = f"{field_path} ({env_name})" if env_name else field_path

        error_type = err["type"]
        if error_type == "missing":
            lines.append(f"  [{label}]: Missing required value.")
            continue

        error_input = err["input"]
        input_type = type(error_input).__name__
        value_repr = (
            f'"{error_input}"' if isinstance(error_input, str) else repr(error_input)
        )
        if field_path == "api_token":
            value_repr = "<hidden>"

        expected_type = _get_expected_type(error_type)
        lines.append(
            f"  [{label}]: Expected {expected_type}, got {input_type} (value: {value_repr}). {err['msg']}.",
        )

    return "\n".join(lines)


def _get_expected_type(error_type: str) -> str:
    """
    Get human-readable expected type from Pydantic error type.

    Parameters
    ----------
    error_type : str
        Pydantic error type string.

    Returns
    -------
    str
        Human-readable type name.
    """
    type_mapping = {
        "int_type": "int",
        "int_parsing": "int",
        "int_from_float": "int",
        "greater_than": "positive int",
        "less_than_equal": "port number",
        "string_type": "str",
        "string_too_short": "non-empty str",
        "tuple_type": "JSON array",
        "too_short": "non-empty JSON array",
        "model_type": "JSON object",
        "model_attributes_type": "JSON object",
        "literal_error": "log level",
    }
    return type_mapping.get(error_type, error_type)


def parse_zones(environ: Mapping[str, str]) -> list[Any]:
    """
    Extract the raw zone list from the environment.

    Parameters
    ----------
    environ : Mapping[str, str]
        Environment variables.

    Returns
    -------
    list[Any]
        Raw zone entries, validated later as `ZoneConfig`.

    Raises
    ------
    ConfigValidationError
        If `CF_ZONES` is not valid JSON, or if no zone is configured at all.
    """
    cf_zones = environ.get("CF_ZONES")
    if cf_zones:
        try:
            zones = json.loads(cf_zones)
        except json.JSONDecodeError as e:
            msg = f"Configuration error:\n  [zones (CF_ZONES)]: Invalid JSON: {e}."
            raise ConfigValidationError(msg) from e
        count = len(zones) if isinstance(zones, list) else 0
        logger_basic.info("Multi-zone mode: managing %d zone(s).", count)
        return zones

    zone_id = environ.get("CF_ZONE_ID")
    record_name = environ.get("CF_RECORD_NAME")
    if zone_id and record_name:
        logger_basic.info("Single-zone mode: managing 1 zone.")
        return [{"zone_id": zone_id, "record_name": record_name}]

    msg = (
        "Configuration error:\n"
        "  Either CF_ZONES or both CF_ZONE_ID and CF_RECORD_NAME must be set."
    )
    raise ConfigValidationError(msg)


def config_dict_from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    """
    Build a configuration dictionary from environment variables.

    Unset variables are left out so model defaults apply.

    Parameters
    ----------
    environ : Mapping[str, str]
        Environment variables.

    Returns
    -------
    dict[str, Any]
        Configuration dictionary.
    """
    data: dict[str, Any] = {"zones": parse_zones(environ)}

    if "CF_API_TOKEN" in environ:
        data["api_token"] = environ["CF_API_TOKEN"]
    if environ.get("UPDATE_INTERVAL"):
        data["update_interval"] = environ["UPDATE_INTERVAL"].strip()
    if environ.get("HEALTH_PORT"):
        data.setdefault("server", {})["port"] = environ["HEALTH_PORT"].strip()
    if environ.get("LOG_LEVEL"):
        data.setdefault("logging", {})["level"] = environ["LOG_LEVEL"]
    if environ.get("LOG_FILE"):
        data.setdefault("logging", {})["file_path"] = environ["LOG_FILE"]

    return data


def merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    Parameters
    ----------
    base : dict[str, Any]
        Base configuration.
    override : dict[str, Any]
        Override configuration (takes precedence).

    Returns
    -------
    dict[str, Any]
        Merged configuration.
    """
    # Use deep copy to avoid modifying the original base configuration
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = value
    return result


def dict_to_config(data: dict[str, Any]) -> Config:
    """
    Validate a dictionary and convert it to a Config object.

    Parameters
    ----------
    data : dict[str, Any]
        Configuration dictionary.

    Returns
    -------
    Config
        Configuration object.

    Raises
    ------
    ConfigValidationError
        If validation fails.
    """
    # Handle file_path expansion before Pydantic validation
    if data.get("logging", {}).get("file_path"):
        data = copy.deepcopy(data)
        data["logging"]["file_path"] = str(
            Path(data["logging"]["file_path"]).expanduser(),
        )

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(_format_validation_errors(e)) from e


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Parameters
    ----------
    args : list[str] | None, optional
        Command-line arguments. If None, uses sys.argv.

    Returns
    -------
    argparse.Namespace
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        prog="cf-ddns",
        description="CF DDNS - Keep CloudFlare A records in sync with the public IP",
    )

    # Server arguments
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address for the health endpoint to bind to",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the health endpoint (overrides HEALTH_PORT)",
    )

    # Scheduling arguments
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Update interval in milliseconds (overrides UPDATE_INTERVAL)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Run a single update cycle and exit",
    )

    # Logging arguments
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level (overrides LOG_LEVEL)",
    )
    parser.add_argument(
        "--log-file-path",
        type=Path,
        dest="log_file_path",
        default=None,
        help="Path to the log file (overrides LOG_FILE)",
    )

    return parser.parse_args(args)


def load_config(
    args: argparse.Namespace | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """
    Load configuration from environment variables and command-line arguments.

    Priority (high to low):
    1. Command-line arguments
    2. Environment variables
    3. Default values

    Parameters
    ----------
    args : argparse.Namespace | None, optional
        Parsed command-line arguments.
    environ : Mapping[str, str] | None, optional
        Environment variables. If None, uses os.environ.

    Returns
    -------
    Config
        Loaded configuration.

    Raises
    ------
    ConfigValidationError
        If the configuration is missing or invalid.
    """
    if args is None:
        args = parse_args()
    if environ is None:
        environ = os.environ

    config_dict = config_dict_from_env(environ)

    cli_overrides: dict[str, Any] = {}

    # Server overrides
    if args.host is not None:
        cli_overrides.setdefault("server", {})["host"] = args.host
    if args.port is not None:
        cli_overrides.setdefault("server", {})["port"] = args.port

    # Scheduling overrides
    if args.interval is not None:
        cli_overrides["update_interval"] = args.interval

    # Logging overrides
    if args.log_level is not None:
        cli_overrides.setdefault("logging", {})["level"] = args.log_level
    if args.log_file_path is not None:
        cli_overrides.setdefault("logging", {})["file_path"] = str(args.log_file_path)

    if cli_overrides:
        config_dict = merge_config(config_dict, cli_overrides)

    return dict_to_config(config_dict)
