"""
Core layer - Request/response engine.

This layer provides:
- Basic-auth credential and static MIME table
- URL-encoded and streaming multipart body encoders
- Low-level HTTP client with error classification
"""

from donedone_cli.core.auth import Credential
from donedone_cli.core.client import APIClient
from donedone_cli.core.encoding import Attachment, FormField, MultipartBody, UrlEncodedBody, encode_body
from donedone_cli.core.errors import (
    APIError,
    CLIError,
    LocalError,
    ProtocolError,
    TransportError,
    ValidationError,
)
from donedone_cli.core.mime import MimeResolver
from donedone_cli.core.types import (
    ActivityFilter,
    CustomActivityQuery,
    CustomFilterQuery,
    IssueFilter,
    RawResponse,
    RequestMethod,
    RequestSpec,
)

__all__ = [
    "APIClient",
    "APIError",
    "ActivityFilter",
    "Attachment",
    "CLIError",
    "Credential",
    "CustomActivityQuery",
    "CustomFilterQuery",
    "FormField",
    "IssueFilter",
    "LocalError",
    "MimeResolver",
    "MultipartBody",
    "ProtocolError",
    "RawResponse",
    "RequestMethod",
    "RequestSpec",
    "TransportError",
    "UrlEncodedBody",
    "ValidationError",
    "encode_body",
]
