"""Exceptions raised by the paste tracker and leaderboard components."""


class CopyJediError(Exception):
    """Base exception for all CopyJedi errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error

    def __str__(self):
        base_msg = super().__str__()
        if self.original_error:
            return f"{base_msg} (Caused by: {type(self.original_error).__name__}: {self.original_error})"
        return base_msg


class StatsStoreError(CopyJediError):
    """Error reading or writing the local stats file."""
    pass


class ConfigurationError(CopyJediError):
    """Error in application configuration."""
    pass
