"""
Static extension -> MIME type table for attachment uploads.

The table ships with the library so uploads look the same on every host.
"""

import os
from collections.abc import Mapping

FALLBACK_MIME_TYPE = "application/octet-stream"

DEFAULT_MIME_TYPES: dict[str, str] = {
    # Text
    ".txt": "text/plain",
    ".log": "text/plain",
    ".csv": "text/csv",
    ".tsv": "text/tab-separated-values",
    ".htm": "text/html",
    ".html": "text/html",
    ".css": "text/css",
    ".md": "text/markdown",
    ".xml": "text/xml",
    ".rtf": "application/rtf",
    # Code / data
    ".js": "application/javascript",
    ".json": "application/json",
    ".yaml": "application/x-yaml",
    ".yml": "application/x-yaml",
    ".sql": "application/sql",
    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".ico": "image/x-icon",
    ".svg": "image/svg+xml",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".webp": "image/webp",
    # Documents
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".odt": "application/vnd.oasis.opendocument.text",
    ".ods": "application/vnd.oasis.opendocument.spreadsheet",
    # Archives
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".7z": "application/x-7z-compressed",
    ".rar": "application/vnd.rar",
    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".webm": "video/webm",
}


class MimeResolver:
    """Resolve a file name to a content type by its extension."""

    def __init__(
        self,
        table: Mapping[str, str] | None = None,
        fallback: str = FALLBACK_MIME_TYPE,
    ):
        source = DEFAULT_MIME_TYPES if table is None else table
        # Accept keys with or without the leading dot
        self._table = {(k if k.startswith(".") else f".{k}").lower(): v for k, v in source.items()}
        self.fallback = fallback

    def resolve(self, file_name: str) -> str:
        """Return the content type for ``file_name``, or the fallback."""
        ext = os.path.splitext(file_name)[1].lower()
        if not ext:
            return self.fallback
        return self._table.get(ext, self.fallback)


DEFAULT_MIME_RESOLVER = MimeResolver()
