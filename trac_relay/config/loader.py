"""Loading and validation of the YAML configuration file."""

from pathlib import Path
from typing import IO

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from ..relay_logging import get_logger
from .models import RelayConfig

logger = get_logger()


def load_config(path: str | Path) -> RelayConfig:
    """Load and validate a configuration file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    path = Path(path)

    try:
        with open(path, encoding="utf-8") as f:
            config = parse_config(f)
    except OSError as e:
        raise ConfigurationError(f"Error while opening {path}: {e}") from e
    except ConfigurationError as e:
        raise ConfigurationError(
            f"Error while loading configuration from {path}: {e.message}",
            e.details,
        ) from e

    logger.info(
        f"Loaded configuration from {path}: "
        f"{len(config.tracs)} Trac instance(s), {len(config.channels)} channel(s)"
    )
    return config


def parse_config(source: str | IO[str]) -> RelayConfig:
    """Parse and validate configuration data.

    Args:
        source: YAML text or text stream

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If the YAML is invalid or the configuration
            is inconsistent
    """
    try:
        data = yaml.safe_load(source)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"YAML parse error: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration should be a YAML mapping")

    try:
        config = RelayConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}", {"errors": e.errors()}
        ) from None

    check_config(config)
    return config


def check_config(config: RelayConfig) -> None:
    """Check required fields and cross references between sections.

    Raises:
        ConfigurationError: On the first problem found
    """
    if not config.server:
        raise ConfigurationError("Server field should not be empty")

    if not config.username:
        raise ConfigurationError("Username field should not be empty")

    if not config.team:
        raise ConfigurationError("Team field should not be empty")

    seen: dict[str, str] = {}
    for name, trac in config.tracs.items():
        if name.lower() in seen:
            raise ConfigurationError(
                f"Conflicting Trac name for {name} and {seen[name.lower()]}"
            )
        seen[name.lower()] = name

        if not trac.url:
            raise ConfigurationError(f"URL missing for Trac instance {name}")

        if not trac.username:
            raise ConfigurationError(f"Username missing for Trac instance {name}")

        if not trac.password:
            raise ConfigurationError(f"Password missing for Trac instance {name}")

    for name, channel in config.channels.items():
        if not channel.trac_instances:
            raise ConfigurationError(f"No Trac instances defined for channel {name}")

        for trac in channel.trac_instances:
            if config.find_trac(trac) is None:
                raise ConfigurationError(
                    f"Trac instance {trac} referred from channel {name} does not exist"
                )

        default = channel.default_trac_instance
        if default:
            if config.find_trac(default) is None:
                raise ConfigurationError(
                    f"Default Trac instance {default} referred from channel "
                    f"{name} does not exist"
                )

            if not channel.authorizes(default):
                raise ConfigurationError(
                    f"Default Trac instance {default} of channel {name} is not "
                    f"one of its Trac instances"
                )
