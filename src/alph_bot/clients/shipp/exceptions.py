"""Exception hierarchy for Shipp sports feed client errors."""


class ShippError(Exception):
    """Base exception for all Shipp client errors."""


class ShippConfigurationError(ShippError):
    """The client is missing configuration it needs, such as the API key."""


class ShippAPIError(ShippError):
    """Error returned by a Shipp API call or its transport.

    Args:
        msg: Human-readable description of the error.
        status_code: HTTP status code, or None for transport failures.

    """

    def __init__(self, msg: str, status_code: int | None = None) -> None:
        """Initialize Shipp API error.

        Args:
            msg: Human-readable description of the error.
            status_code: HTTP status code, or None for transport failures.

        """
        super().__init__(f"[{status_code}] {msg}" if status_code is not None else msg)
        self.msg = msg
        self.status_code = status_code
