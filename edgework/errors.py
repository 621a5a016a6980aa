"""
Edgework errors.
"""

from typing import Optional


class EdgeworkError(Exception):
    """Base exception for all Edgework errors."""
    pass


class ConfigurationError(EdgeworkError):
    """Errors in configuration or desired distribution settings."""
    pass


class StateError(EdgeworkError):
    """Errors reading or writing persisted distribution state."""
    pass


class ApiError(EdgeworkError):
    """A CDN API call failed.

    Attributes:
        status_code: HTTP status code, or None for transport-level failures
        body: Raw response body, if any
    """

    NOT_FOUND_CODES = (404, 410)

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @property
    def is_not_found(self) -> bool:
        """True when the API reports the distribution as missing or gone."""
        return self.status_code in self.NOT_FOUND_CODES

    @property
    def is_transient(self) -> bool:
        """True for failures worth retrying while polling."""
        if self.status_code is None:
            return True
        return self.status_code >= 500 or self.status_code in (408, 429)


class WaitError(EdgeworkError):
    """Waiting for a distribution to converge did not succeed."""
    pass


class ConvergenceTimeoutError(WaitError):
    """The deadline fired (or was cancelled) before convergence.

    Attributes:
        last_error: Last fetch error observed while polling, if any
    """

    def __init__(self, message: str, last_error: Optional[Exception] = None):
        super().__init__(message)
        self.last_error = last_error


class ConvergenceFailedError(WaitError):
    """The API reported a terminal error status for the distribution.

    Attributes:
        errors: Error messages reported by the API, in order
    """

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = errors or []
