"""Exception hierarchy for forecaster provider errors."""


class AiError(Exception):
    """Base exception for all forecaster provider errors."""


class AiConfigurationError(AiError):
    """A provider is missing something it needs, such as an API key or binary."""


class AiResponseError(AiError):
    """A provider call failed or returned no usable answer.

    Args:
        msg: Human-readable description of the error.
        status_code: HTTP status code, when the provider is an HTTP API.

    """

    def __init__(self, msg: str, status_code: int | None = None) -> None:
        """Initialize the response error.

        Args:
            msg: Human-readable description of the error.
            status_code: HTTP status code, when the provider is an HTTP API.

        """
        super().__init__(f"[{status_code}] {msg}" if status_code is not None else msg)
        self.msg = msg
        self.status_code = status_code


class ForecastValidationError(AiError):
    """The provider's answer does not match the probability estimate schema."""
