"""Shared error types for cutout."""


class TransientError(RuntimeError):
    """Retry-safe dependency failure, such as a dropped connection or timeout."""
