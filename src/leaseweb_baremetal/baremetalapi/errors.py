"""Errors raised by the bare-metal API client.

The API reports failures with a JSON body carrying an error code, a
message, a correlation id and optional per-field details. Those bodies are
decoded into :class:`ApiError`. Bodies that cannot be decoded, and request
bodies that cannot be encoded, raise :class:`DecodingError` and
:class:`EncodingError` respectively.
"""

import pydantic
import structlog

from .types import ErrorInfo

logger = structlog.get_logger(__name__)


class LeasewebApiError(Exception):
    """Base class for errors raised by the bare-metal API client."""

    def __init__(self, context: str, message: str):
        self.context = context
        self.message = message
        super().__init__(str(self))


class ApiError(LeasewebApiError):
    """The API rejected a request with a structured error body."""

    def __init__(self, context: str, info: ErrorInfo):
        self.code = info.code
        self.correlation_id = info.correlation_id
        self.details = info.details
        super().__init__(context, info.message)

    def __str__(self) -> str:
        return f"({self.code}) {self.context}: {self.message}"


class DecodingError(LeasewebApiError):
    """A response body could not be decoded as the expected JSON."""

    def __str__(self) -> str:
        return (
            f"{self.context}: error while decoding JSON response body ({self.message})"
        )


class EncodingError(LeasewebApiError):
    """A request body could not be encoded as JSON."""

    def __str__(self) -> str:
        return f"{self.context}: error while encoding JSON request body ({self.message})"


class JobNotFoundError(LeasewebApiError):
    """No job matched the lookup."""

    def __str__(self) -> str:
        return f"{self.context}: {self.message}"


def decode_error(body: bytes, context: str) -> ApiError | DecodingError:
    """Decode an API error body.

    Args:
        body: Raw response body of a failed request.
        context: Description of the operation that failed.

    Returns:
        ApiError carrying the decoded fields, or DecodingError when the body
        is not a JSON error object.
    """
    try:
        info = ErrorInfo.from_body(body)
    except ValueError as exc:
        return DecodingError(context, describe_decode_error(exc))
    return ApiError(context, info)


def log_api_error(method: str, url: str, error: Exception) -> None:
    """Log a failed API request.

    Structured API errors are logged with their code, message, correlation
    id and one ``detail_<field>`` entry per field with details. Any other
    error only contributes its message.
    """
    fields: dict[str, object] = {"url": url, "method": method}

    if isinstance(error, ApiError):
        fields["context"] = error.context
        fields["code"] = error.code
        fields["message"] = error.message
        fields["correlation_id"] = error.correlation_id
        for field, details in error.details.items():
            if details:
                fields[f"detail_{field}"] = details
    else:
        fields["message"] = str(error)

    logger.error("API request error", **fields)


def describe_decode_error(exc: ValueError) -> str:
    """Summarize a JSON or validation error as a single line."""
    if not isinstance(exc, pydantic.ValidationError):
        return str(exc)
    first = exc.errors(include_url=False)[0]
    location = ".".join(str(part) for part in first["loc"])
    if location:
        return f"{location}: {first['msg']}"
    return first["msg"]
