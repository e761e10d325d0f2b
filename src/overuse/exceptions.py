"""Service exception hierarchy.

Errors are grouped by how a run reacts to them: configuration errors abort a
run, session and extraction errors fail a single property, and retry
exhaustion wraps the last underlying failure of a bounded retry loop.
"""


class OveruseError(Exception):
    """Base exception for all service errors."""
    pass


class ConfigurationError(OveruseError):
    """Raised when configuration is invalid or missing required settings.

    Attributes:
        setting: Name of the setting that is invalid/missing
        message: Detailed error message
    """
    def __init__(self, setting: str, message: str | None = None):
        self.setting = setting
        self.message = message or f"Invalid or missing configuration for '{setting}'"
        super().__init__(self.message)


class SessionDeadError(OveruseError):
    """Raised when a remote browser session was closed underneath an operation."""

    def __init__(self, session_id: str, message: str | None = None):
        self.session_id = session_id
        self.message = message or f"Session '{session_id}' is no longer usable"
        super().__init__(self.message)


class LoginError(OveruseError):
    """Raised when the dashboard login did not reach the dashboard."""
    pass


class ExtractionError(OveruseError):
    """Raised when bill rows could not be read for a property (transient)."""

    def __init__(self, property_name: str, message: str | None = None):
        self.property_name = property_name
        self.message = message or f"Could not extract bills for '{property_name}'"
        super().__init__(self.message)


class RetryExhaustedError(OveruseError):
    """Raised when a bounded retry loop used all its attempts.

    Attributes:
        label: Name of the retried operation
        attempts: Number of attempts made
        last_error: Exception raised by the final attempt
    """
    def __init__(self, label: str, attempts: int, last_error: BaseException | None = None):
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{label} failed after {attempts} attempts: {last_error}")
