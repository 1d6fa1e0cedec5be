"""Exceptions for the Kalshi API client."""


class KalshiError(Exception):
    """Base exception for Kalshi errors."""


class KalshiAPIError(KalshiError):
    """Generic API or transport error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize API error.

        Args:
            message: Error message.
            status_code: HTTP status code if available.

        """
        super().__init__(f"[{status_code}] {message}" if status_code else message)
        self.status_code = status_code


class KalshiAuthenticationError(KalshiAPIError):
    """Authentication error (401 or 403)."""


class KalshiRateLimitError(KalshiAPIError):
    """Rate limit exceeded error (429)."""


class KalshiValidationError(KalshiAPIError):
    """Validation error (400)."""


class KalshiNotFoundError(KalshiAPIError):
    """Resource not found error (404)."""
