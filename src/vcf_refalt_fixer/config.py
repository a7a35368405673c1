"""Configuration file support for vcf-refalt-fixer."""

import logging
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from .errors import ConfigValidationError
from .transforms import MAJOR_MINOR_DESCRIPTION, REF_ALT_DESCRIPTION

logger = logging.getLogger(__name__)

CONFIG_TABLE = "vcf_refalt_fixer"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

VALID_INDEX_FORMATS = {"csi", "tbi"}


@dataclass
class FixerConfig:
    """Configuration for one fixer run."""

    chrom_prefix: str = "Chr"
    placeholder_token: str = "UNKNOWN"
    placeholder_replacement: str = "Unknown"
    major_minor_description: str = MAJOR_MINOR_DESCRIPTION
    ref_alt_description: str = REF_ALT_DESCRIPTION
    index_format: str = "csi"
    workers: int = 1
    log_level: str = "INFO"


def validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values.

    Raises:
        ConfigValidationError: If any configuration value is invalid.
    """
    for key in (
        "chrom_prefix",
        "placeholder_token",
        "placeholder_replacement",
        "major_minor_description",
        "ref_alt_description",
    ):
        if key in config_dict and not isinstance(config_dict[key], str):
            raise ConfigValidationError(
                f"{key} must be a string, got {type(config_dict[key]).__name__}"
            )

    if "workers" in config_dict:
        workers = config_dict["workers"]
        if not isinstance(workers, int) or isinstance(workers, bool):
            raise ConfigValidationError(f"workers must be an integer, got {type(workers).__name__}")
        if workers <= 0:
            raise ConfigValidationError(f"workers must be positive, got {workers}")

    if "index_format" in config_dict:
        index_format = config_dict["index_format"]
        if index_format not in VALID_INDEX_FORMATS:
            raise ConfigValidationError(
                f"index_format must be one of {sorted(VALID_INDEX_FORMATS)}, got '{index_format}'"
            )

    if "log_level" in config_dict:
        log_level = config_dict["log_level"]
        if not isinstance(log_level, str):
            raise ConfigValidationError(
                f"log_level must be a string, got {type(log_level).__name__}"
            )
        if log_level.upper() not in VALID_LOG_LEVELS:
            raise ConfigValidationError(
                f"log_level must be one of {VALID_LOG_LEVELS}, got '{log_level}'"
            )


def load_config(
    config_path: Path | None = None, overrides: dict[str, Any] | None = None
) -> FixerConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML configuration file, or None for defaults.
        overrides: Optional dict of values to override loaded config. None
            values are ignored so unset CLI options keep the file value.

    Returns:
        FixerConfig instance with loaded values.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ConfigValidationError: If any configuration value is invalid.
    """
    config_dict: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        try:
            with open(config_path, "rb") as f:
                toml_data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigValidationError(f"Invalid TOML in {config_path}: {e}") from e
        config_dict = dict(toml_data.get(CONFIG_TABLE, {}))

    if overrides:
        config_dict.update({k: v for k, v in overrides.items() if v is not None})

    validate_config(config_dict)

    valid_fields = {f.name for f in fields(FixerConfig)}
    unknown = set(config_dict) - valid_fields
    if unknown:
        logger.warning("Ignoring unknown configuration keys: %s", ", ".join(sorted(unknown)))

    filtered_config = {k: v for k, v in config_dict.items() if k in valid_fields}

    return FixerConfig(**filtered_config)
