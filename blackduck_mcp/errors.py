from __future__ import annotations


class BlackDuckError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code

    @property
    def kind(self) -> str:
        return type(self).__name__


class AuthenticationError(BlackDuckError):
    def __init__(self, message: str | None = None):
        super().__init__(
            message or "Authentication failed. Please check your API token.",
            401,
            "AUTHENTICATION_ERROR",
        )


class NotFoundError(BlackDuckError):
    def __init__(self, message: str | None = None):
        super().__init__(message or "Resource not found", 404, "NOT_FOUND")

    @classmethod
    def for_resource(cls, resource: str, id: str | None = None) -> NotFoundError:
        if id:
            return cls(f"{resource} with ID '{id}' not found")
        return cls(f"{resource} not found")


class ValidationError(BlackDuckError):
    def __init__(self, message: str | None = None):
        super().__init__(message or "Invalid request", 400, "VALIDATION_ERROR")


class RateLimitError(BlackDuckError):
    def __init__(self, message: str | None = None):
        super().__init__(
            message or "Rate limit exceeded. Please try again later.",
            429,
            "RATE_LIMIT_ERROR",
        )


class ServerError(BlackDuckError):
    def __init__(self, message: str | None = None, status_code: int = 500):
        super().__init__(message or "Black Duck server error occurred.", status_code, "SERVER_ERROR")


class NetworkError(BlackDuckError):
    def __init__(self, message: str | None = None):
        super().__init__(
            message or "Network error occurred while connecting to Black Duck.",
            None,
            "NETWORK_ERROR",
        )


class ResponseFormatError(BlackDuckError):
    """A Black Duck response did not match the expected payload shape."""

    def __init__(self, model: str, error_count: int, location: str, detail: str):
        super().__init__(
            f"Unexpected {model} response from Black Duck: {error_count} invalid field(s), "
            f"first at '{location}' ({detail})",
            None,
            "RESPONSE_FORMAT_ERROR",
        )
        self.model = model


class UnknownOriginError(BlackDuckError):
    """The origin of a vulnerable component could not be determined at all."""

    def __init__(self, vulnerability_name: str):
        super().__init__(
            "Unable to determine origin for vulnerability, cannot retrieve upgrade guidance.",
            None,
            "UNKNOWN_ORIGIN",
        )
        self.vulnerability_name = vulnerability_name


def error_from_status(status: int, message: str | None = None, error_code: str | None = None) -> BlackDuckError:
    """Map an HTTP status from the Black Duck API onto the error taxonomy."""
    if status in (401, 403):
        return AuthenticationError(message)
    if status == 404:
        return NotFoundError(message)
    if status == 429:
        return RateLimitError(message)
    if status == 400:
        return ValidationError(message)
    if status in (500, 502, 503, 504):
        return ServerError(message, status)
    return BlackDuckError(message or "An error occurred", status, error_code)


def format_error(error: BaseException) -> str:
    """One-line, user-facing rendering of an error for tool output."""
    if isinstance(error, BlackDuckError):
        kind, message = error.kind, error.message
    else:
        kind, message = "Error", str(error)
    return f"{kind}: {' '.join(message.split())}"
