"""Leaseweb bare-metal REST API client package.

Provides a synchronous HTTP client for the bare-metal API that encodes
requests, validates responses with Pydantic models and maps API failures
to typed exceptions.

Exports:
    LeasewebClient: HTTP client with one method per API endpoint.
    types: Module containing Pydantic models for API resources.
    LeasewebApiError: Base class of all client errors.
    ApiError: Error reported by the API with a structured body.
    DecodingError: Response body that is not the expected JSON.
    EncodingError: Request body that cannot be encoded as JSON.
    JobNotFoundError: Lookup that matched no job.
    DEFAULT_BASE_URL: Public Leaseweb API endpoint.
    SERVERS_PAGE_SIZE: Page size used when listing all servers.
"""

from . import types
from .client import DEFAULT_BASE_URL, SERVERS_PAGE_SIZE, LeasewebClient
from .errors import (
    ApiError,
    DecodingError,
    EncodingError,
    JobNotFoundError,
    LeasewebApiError,
)

__all__ = [
    "DEFAULT_BASE_URL",
    "SERVERS_PAGE_SIZE",
    "ApiError",
    "DecodingError",
    "EncodingError",
    "JobNotFoundError",
    "LeasewebApiError",
    "LeasewebClient",
    "types",
]
