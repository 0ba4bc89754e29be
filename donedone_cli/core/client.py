"""
Core HTTP client for the DoneDone IssueTracker API.

Handles authentication, body encoding, request dispatch and error
classification. Response bodies are returned as raw text.
"""

import codecs
import http.client
import logging
import os
import urllib.error
import urllib.request
from collections.abc import Iterable

from donedone_cli.core.auth import Credential
from donedone_cli.core.encoding import AttachmentInput, FieldsInput, encode_body
from donedone_cli.core.errors import (
    GENERIC_API_ERROR,
    APIError,
    CLIError,
    LocalError,
    ProtocolError,
    TransportError,
    ValidationError,
)
from donedone_cli.core.mime import MimeResolver
from donedone_cli.core.types import RawResponse, RequestMethod, RequestSpec

logger = logging.getLogger(__name__)

# Configuration
DEFAULT_SCHEME = "https"
DEFAULT_HOST = "mydonedone.com"
API_ROOT = "issuetracker/api/v2/"

__all__ = [
    "APIClient",
    "APIError",
    "CLIError",
    "LocalError",
    "ProtocolError",
    "TransportError",
    "ValidationError",
]


def _env_timeout() -> float | None:
    value = os.environ.get("DONEDONE_TIMEOUT")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        raise ValidationError(f"DONEDONE_TIMEOUT must be a number, got {value!r}")


class APIClient:
    """
    Low-level HTTP client for the DoneDone API.

    Handles:
    - Basic authentication with username and password/API token
    - HTTP methods (GET, POST, PUT, DELETE)
    - URL-encoded and multipart request bodies
    - Error classification into TransportError / ProtocolError / LocalError

    The client holds only immutable configuration, so one instance can be
    shared by threads; every call builds and owns its own request.
    """

    def __init__(
        self,
        subdomain: str | None = None,
        username: str | None = None,
        api_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        mime_resolver: MimeResolver | None = None,
    ):
        """
        Initialize the API client.

        Args:
            subdomain: Account subdomain, e.g. "mycompany" for
                mycompany.mydonedone.com (or DONEDONE_SUBDOMAIN env var)
            username: DoneDone username (or DONEDONE_USERNAME env var)
            api_token: Password or API token (or DONEDONE_API_TOKEN env var)
            base_url: Full API base URL, overrides subdomain (or DONEDONE_BASE_URL env var)
            timeout: Request timeout in seconds (or DONEDONE_TIMEOUT env var);
                None leaves the urllib default in place
            mime_resolver: Content type lookup for attachments

        """
        self.subdomain = subdomain or os.environ.get("DONEDONE_SUBDOMAIN")
        self.username = username or os.environ.get("DONEDONE_USERNAME")
        self.api_token = api_token or os.environ.get("DONEDONE_API_TOKEN")
        self._base_url = base_url or os.environ.get("DONEDONE_BASE_URL")
        self.timeout = timeout if timeout is not None else _env_timeout()
        self.mime_resolver = mime_resolver

    @property
    def base_url(self) -> str:
        """API base URL, always ending in '/'."""
        if self._base_url:
            return self._base_url.rstrip("/") + "/"
        if not self.subdomain:
            raise APIError("Subdomain required. Set DONEDONE_SUBDOMAIN env var or use --subdomain flag")
        return f"{DEFAULT_SCHEME}://{self.subdomain}.{DEFAULT_HOST}/{API_ROOT}"

    def _ensure_credential(self) -> Credential:
        """Ensure username and token are configured."""
        if not self.username or not self.api_token:
            raise APIError("DONEDONE_USERNAME and DONEDONE_API_TOKEN environment variables must be set")
        return Credential(self.username, self.api_token)

    def build_url(self, path: str) -> str:
        """Build full URL from a relative path."""
        return f"{self.base_url}{path.lstrip('/')}"

    def build_request(
        self,
        method: RequestMethod | str,
        path: str,
        fields: FieldsInput | None = None,
        attachments: Iterable[AttachmentInput] | None = None,
    ) -> RequestSpec:
        """
        Resolve URL, credentials and body for a call.

        Raises:
            APIError: If credentials or subdomain are missing
            LocalError: If an attachment cannot be read

        """
        credential = self._ensure_credential()
        body = encode_body(fields, attachments, mime_resolver=self.mime_resolver)
        spec = RequestSpec(
            method=method if isinstance(method, RequestMethod) else RequestMethod(method.upper()),
            url=self.build_url(path),
            auth_header=credential.header(),
        )
        if body is not None:
            spec.body = body
            spec.content_type = body.content_type
            spec.content_length = body.content_length
        return spec

    def send(self, spec: RequestSpec) -> str:
        """
        Send a request once and return the response body text.

        Raises:
            ProtocolError: On an HTTP error status
            TransportError: When no response could be obtained
            LocalError: When the body could not be streamed

        """
        logger.debug("%s %s", spec.method.value, spec.url)
        req = urllib.request.Request(
            spec.url,
            data=spec.body.payload() if spec.body is not None else None,
            headers=spec.headers(),
            method=spec.method.value,
        )
        kwargs = {} if self.timeout is None else {"timeout": self.timeout}

        try:
            with urllib.request.urlopen(req, **kwargs) as response:
                text = _read_text(response)
                logger.debug("%s %s -> %s", spec.method.value, spec.url, response.status)
                return text

        except urllib.error.HTTPError as e:
            raw = RawResponse(
                status_code=e.code,
                headers=dict(e.headers.items()) if e.headers else {},
                body_text=_read_text(e),
            )
            logger.debug("%s %s -> %s", spec.method.value, spec.url, e.code)
            raise ProtocolError(raw) from e

        except urllib.error.URLError as e:
            raise TransportError(f"{GENERIC_API_ERROR} Connection error: {e.reason}") from e

        except TimeoutError as e:
            raise TransportError(f"{GENERIC_API_ERROR} Request timed out after {self.timeout} seconds") from e

        except (http.client.HTTPException, OSError) as e:
            raise TransportError(f"{GENERIC_API_ERROR} {e}") from e

    def request(
        self,
        method: RequestMethod | str,
        path: str,
        fields: FieldsInput | None = None,
        attachments: Iterable[AttachmentInput] | None = None,
    ) -> str:
        """
        Make an HTTP request to the API.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: Path relative to the API root (e.g., projects/1/issues.json)
            fields: Ordered form fields; URL-encoded unless attachments are given
            attachments: File paths to upload as multipart/form-data

        Returns:
            Raw response body text

        Raises:
            APIError: On any failure (see TransportError, ProtocolError, LocalError)

        """
        return self.send(self.build_request(method, path, fields, attachments))

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    def get(self, path: str) -> str:
        """Make a GET request."""
        return self.request(RequestMethod.GET, path)

    def post(
        self,
        path: str,
        fields: FieldsInput | None = None,
        attachments: Iterable[AttachmentInput] | None = None,
    ) -> str:
        """Make a POST request."""
        return self.request(RequestMethod.POST, path, fields, attachments)

    def put(
        self,
        path: str,
        fields: FieldsInput | None = None,
        attachments: Iterable[AttachmentInput] | None = None,
    ) -> str:
        """Make a PUT request."""
        return self.request(RequestMethod.PUT, path, fields, attachments)

    def delete(self, path: str) -> str:
        """Make a DELETE request."""
        return self.request(RequestMethod.DELETE, path)


def _read_text(response) -> str:
    """Read a response body using its declared charset.

    UTF-8 is used when no charset is declared or the declared one is not
    known to Python. Bytes that are invalid in that charset raise
    TransportError; the body is never silently rewritten.
    """
    try:
        data = response.read()
    except (http.client.HTTPException, OSError) as e:
        raise TransportError(f"{GENERIC_API_ERROR} Failed reading response: {e}") from e
    charset = (response.headers.get_content_charset() if response.headers else None) or "utf-8"
    try:
        codecs.lookup(charset)
    except LookupError:
        logger.debug("Unknown response charset %r, decoding as utf-8", charset)
        charset = "utf-8"
    try:
        return data.decode(charset)
    except UnicodeDecodeError as e:
        raise TransportError(
            f"{GENERIC_API_ERROR} Response body is not valid {charset}",
            details={"charset": charset},
        ) from e
