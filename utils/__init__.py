"""
Utilities Package

Common utilities and helper functions for the bot website.
"""

from .errors import (
    DatabaseError,
    SettingsContractError,
    WebsiteError,
)
from .logging import get_logger, setup_logging

__all__ = [
    "DatabaseError",
    "SettingsContractError",
    "WebsiteError",
    "get_logger",
    "setup_logging",
]
