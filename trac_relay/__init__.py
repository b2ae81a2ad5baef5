"""Trac Relay - Mattermost bot for Trac ticket references

Watches configured Mattermost channels for ticket references such as
``BUG#33``, fetches the tickets from the matching Trac instance and replies
with a formatted summary.
"""

__version__ = "1.0.0"
__author__ = "Trac Relay Project"
__description__ = "Mattermost bot replying to Trac ticket references"

from .config import RelayConfig, load_config
from .main import main as cli_main

__all__ = [
    "RelayConfig",
    "load_config",
    "cli_main",
]
