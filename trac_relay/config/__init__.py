"""Configuration for trac-relay."""

from .loader import check_config, load_config, parse_config
from .models import ChannelConfig, RelayConfig, TracConfig

__all__ = [
    "RelayConfig",
    "TracConfig",
    "ChannelConfig",
    "load_config",
    "parse_config",
    "check_config",
]
