"""
Custom exceptions for the application.
"""


class AppError(Exception):
    """Base exception for application errors."""

    pass


class StoreError(AppError):
    """Raised when the persistent key-value store fails."""

    pass


class CacheError(AppError):
    """Raised when a cache write fails."""

    pass


class QueueError(AppError):
    """Raised when a queue mutation cannot be persisted."""

    pass


class ConnectivityError(AppError):
    """Raised when the AI backend cannot be reached."""

    pass

