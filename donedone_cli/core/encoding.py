"""
Request body encoders.

Two encodings are supported, chosen by whether attachments are present:

- ``application/x-www-form-urlencoded`` for plain field lists
- ``multipart/form-data`` for fields plus file attachments; file content is
  streamed from disk in fixed-size chunks and never held in memory whole
"""

import itertools
import logging
import os
import stat
import time
import urllib.parse
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import closing
from dataclasses import dataclass

from donedone_cli.core.errors import LocalError
from donedone_cli.core.mime import DEFAULT_MIME_RESOLVER, MimeResolver

logger = logging.getLogger(__name__)

CRLF = "\r\n"
CHUNK_SIZE = 4096
BOUNDARY_PREFIX = "-" * 24
MAX_BOUNDARY_ATTEMPTS = 10

# Characters that would break out of a quoted Content-Disposition parameter
HEADER_UNSAFE = ('"', "\r", "\n")

URLENCODED_CONTENT_TYPE = "application/x-www-form-urlencoded"
MULTIPART_CONTENT_TYPE = "multipart/form-data"


# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class FormField:
    """A single form field. Order matters and keys may repeat."""

    key: str
    value: str


FieldsInput = Iterable[FormField | tuple[str, str]]


def as_fields(fields: FieldsInput | None) -> list[FormField]:
    """Normalise ``(key, value)`` pairs into FormFields."""
    if fields is None:
        return []
    result = []
    for item in fields:
        if isinstance(item, FormField):
            result.append(item)
        else:
            key, value = item
            result.append(FormField(str(key), str(value)))
    return result


class Attachment:
    """A file to upload, read lazily from ``source_path``."""

    def __init__(self, source_path: str | os.PathLike, mime_resolver: MimeResolver | None = None):
        self.source_path = os.fspath(source_path)
        self._mime_resolver = mime_resolver or DEFAULT_MIME_RESOLVER

    def __repr__(self) -> str:
        return f"Attachment({self.source_path!r})"

    @property
    def file_name(self) -> str:
        return os.path.basename(self.source_path)

    @property
    def mime_type(self) -> str:
        return self._mime_resolver.resolve(self.file_name)

    def size(self) -> int:
        """Size on disk in bytes."""
        try:
            st = os.stat(self.source_path)
        except OSError as e:
            raise LocalError(
                f"Cannot read attachment '{self.source_path}': {e.strerror or e}",
                details={"path": self.source_path},
            ) from e
        if not stat.S_ISREG(st.st_mode):
            raise LocalError(
                f"Attachment '{self.source_path}' is not a regular file",
                details={"path": self.source_path},
            )
        return st.st_size

    def chunks(self, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the file content in chunks of at most ``chunk_size`` bytes.

        The file is open only while the generator is running and is closed
        when it finishes, fails, or is closed early by the consumer.
        """
        try:
            with open(self.source_path, "rb") as f:
                while True:
                    chunk = f.read(chunk_size)
                    if not chunk:
                        break
                    yield chunk
        except OSError as e:
            raise LocalError(
                f"Cannot read attachment '{self.source_path}': {e.strerror or e}",
                details={"path": self.source_path},
            ) from e

    def contains(self, needle: bytes, chunk_size: int = CHUNK_SIZE) -> bool:
        """Check whether ``needle`` occurs in the file, scanning chunk by chunk."""
        if not needle:
            return True
        keep = len(needle) - 1
        tail = b""
        with closing(self.chunks(chunk_size)) as chunks:
            for chunk in chunks:
                window = tail + chunk
                if needle in window:
                    return True
                tail = window[-keep:] if keep else b""
        return False


AttachmentInput = str | os.PathLike | Attachment


def as_attachments(
    attachments: Iterable[AttachmentInput] | None,
    mime_resolver: MimeResolver | None = None,
) -> list[Attachment]:
    if attachments is None:
        return []
    return [a if isinstance(a, Attachment) else Attachment(a, mime_resolver) for a in attachments]


# =============================================================================
# URL-encoded body
# =============================================================================


class UrlEncodedBody:
    """``key=value&key=value`` body with percent-escaped keys and values."""

    content_type = URLENCODED_CONTENT_TYPE

    def __init__(self, fields: Sequence[FormField]):
        self.fields = list(fields)
        pairs = [f"{_escape(f.key)}={_escape(f.value)}" for f in self.fields]
        self._data = "&".join(pairs).encode("utf-8")

    @property
    def content_length(self) -> int:
        return len(self._data)

    def payload(self) -> bytes:
        return self._data


def _escape(value: str) -> str:
    return urllib.parse.quote(value, safe="")


# =============================================================================
# Multipart body
# =============================================================================


_boundary_sequence = itertools.count()


def default_boundary() -> str:
    """Boundary token derived from a nanosecond timestamp.

    A process-wide sequence number is appended so that two calls within one
    clock tick still give different tokens.
    """
    return f"{BOUNDARY_PREFIX}{time.time_ns()}{next(_boundary_sequence)}"


def choose_boundary(
    fields: Sequence[FormField],
    attachments: Sequence[Attachment],
    factory: Callable[[], str] = default_boundary,
    max_attempts: int = MAX_BOUNDARY_ATTEMPTS,
) -> str:
    """Pick a boundary that does not occur in any field or file content.

    Raises:
        LocalError: If every candidate collided with the content

    """
    for attempt in range(1, max_attempts + 1):
        boundary = factory()
        if not _collides(boundary, fields, attachments):
            return boundary
        logger.debug("Multipart boundary collided with body content (attempt %d)", attempt)
    raise LocalError(
        f"Could not choose a multipart boundary after {max_attempts} attempts",
        details={"attempts": max_attempts},
    )


def _collides(boundary: str, fields: Sequence[FormField], attachments: Sequence[Attachment]) -> bool:
    for f in fields:
        if boundary in f.key or boundary in f.value:
            return True
    needle = boundary.encode("utf-8")
    return any(a.contains(needle) for a in attachments)


def _check_header_safe(kind: str, value: str) -> None:
    if any(c in value for c in HEADER_UNSAFE):
        raise LocalError(
            f"Multipart {kind} {value!r} contains a quote or line break",
            details={kind.replace(" ", "_"): value},
        )


class MultipartBody:
    """Streaming ``multipart/form-data`` body.

    Layout (CRLF-separated, no trailing CRLF after the closing delimiter)::

        CRLF --B CRLF Content-Type: text/plain CRLF
        Content-Disposition: form-data; name="<key>" CRLF CRLF <value>
        ... one block per field ...
        CRLF --B CRLF Content-Disposition: filename="<name>" CRLF
        Content-Type: <mime> CRLF CRLF <file bytes>
        ... one block per attachment ...
        CRLF --B--

    The content length is known up front: header bytes are computed eagerly
    and file sizes come from ``stat``. Field names and file names are written
    inside quotes without escaping, so ones containing ``"`` or a line break
    are rejected with LocalError.
    """

    def __init__(
        self,
        fields: Sequence[FormField],
        attachments: Sequence[Attachment],
        boundary: str,
        chunk_size: int = CHUNK_SIZE,
    ):
        self.fields = list(fields)
        self.attachments = list(attachments)
        self.boundary = boundary
        self.chunk_size = chunk_size

        for f in self.fields:
            _check_header_safe("field name", f.key)
        for a in self.attachments:
            _check_header_safe("attachment file name", a.file_name)

        self._field_bytes = "".join(self._field_part(f) for f in self.fields).encode("utf-8")
        self._file_headers = [self._file_header(a).encode("utf-8") for a in self.attachments]
        self._file_sizes = [a.size() for a in self.attachments]
        self._trailer = f"{CRLF}--{self.boundary}--".encode("utf-8")

    @property
    def content_type(self) -> str:
        return f"{MULTIPART_CONTENT_TYPE}; boundary={self.boundary}"

    @property
    def content_length(self) -> int:
        return (
            len(self._field_bytes)
            + sum(len(h) for h in self._file_headers)
            + sum(self._file_sizes)
            + len(self._trailer)
        )

    def _field_part(self, field: FormField) -> str:
        return (
            f"{CRLF}--{self.boundary}{CRLF}"
            f"Content-Type: text/plain{CRLF}"
            f'Content-Disposition: form-data; name="{field.key}"{CRLF}'
            f"{CRLF}"
            f"{field.value}"
        )

    def _file_header(self, attachment: Attachment) -> str:
        return (
            f"{CRLF}--{self.boundary}{CRLF}"
            f'Content-Disposition: filename="{attachment.file_name}"{CRLF}'
            f"Content-Type: {attachment.mime_type}{CRLF}"
            f"{CRLF}"
        )

    def payload(self) -> Iterator[bytes]:
        """Yield the body in order: fields, each file, trailer.

        Raises:
            LocalError: If a file cannot be read or its size changed since
                the content length was computed

        """
        if self._field_bytes:
            yield self._field_bytes

        for attachment, header, expected in zip(self.attachments, self._file_headers, self._file_sizes):
            yield header
            sent = 0
            with closing(attachment.chunks(self.chunk_size)) as chunks:
                for chunk in chunks:
                    sent += len(chunk)
                    if sent > expected:
                        break
                    yield chunk
            if sent != expected:
                raise LocalError(
                    f"Attachment '{attachment.source_path}' changed size while uploading",
                    details={"path": attachment.source_path, "expected": expected, "read": sent},
                )

        yield self._trailer


# =============================================================================
# Strategy selection
# =============================================================================


EncodedBody = UrlEncodedBody | MultipartBody


def encode_body(
    fields: FieldsInput | None = None,
    attachments: Iterable[AttachmentInput] | None = None,
    mime_resolver: MimeResolver | None = None,
    boundary_factory: Callable[[], str] | None = None,
    chunk_size: int = CHUNK_SIZE,
) -> EncodedBody | None:
    """
    Build the request body for a field list and optional attachments.

    Args:
        fields: Ordered (key, value) pairs or FormFields
        attachments: File paths (or Attachments) to upload
        mime_resolver: Resolver for attachment content types
        boundary_factory: Source of multipart boundary candidates
        chunk_size: Read size used when streaming file content

    Returns:
        A MultipartBody when attachments are given, a UrlEncodedBody when
        only fields are given, or None when there is nothing to send

    Raises:
        LocalError: If an attachment is missing or unreadable, or no
            boundary could be chosen

    """
    files = as_attachments(attachments, mime_resolver)
    if files:
        form = as_fields(fields)
        boundary = choose_boundary(form, files, boundary_factory or default_boundary)
        body = MultipartBody(form, files, boundary, chunk_size)
        logger.debug(
            "Encoded multipart body: %d fields, %d attachments, %d bytes",
            len(form),
            len(files),
            body.content_length,
        )
        return body

    if fields is not None:
        form_body = UrlEncodedBody(as_fields(fields))
        logger.debug("Encoded form body: %d fields, %d bytes", len(form_body.fields), form_body.content_length)
        return form_body

    return None
