"""
Custom exception classes for the bot website.

These provide a hierarchy of typed exceptions for better error handling.
"""


class WebsiteError(Exception):
    """Base exception for website-related errors."""

    pass


class DatabaseError(WebsiteError):
    """Exception raised for database-related errors."""

    pass


class SettingsContractError(WebsiteError, ValueError):
    """Raised when a settings patch reaches the reconciler with the wrong shape.

    Form validation is expected to run first; seeing this means a caller
    skipped it.
    """

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key
