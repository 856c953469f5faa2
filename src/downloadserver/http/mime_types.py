"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to Content-Type values for the embedded /_static/
assets and for the pages this server renders.

Downloads never use this table: they are always sent as
application/octet-stream with Content-Disposition: attachment, so the
browser saves the file instead of trying to render it.

=============================================================================
"""

from pathlib import Path
from typing import Optional


MIME_TYPES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".json": "application/json",
    ".txt": "text/plain",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".png": "image/png",
}

# application/octet-stream = "treat as opaque binary"
DEFAULT_MIME_TYPE = "application/octet-stream"

_TEXT_TYPES = {"application/json", "image/svg+xml"}


def get_mime_type(path: str | Path, default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

        >>> get_mime_type("directory.css")
        'text/css'
        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    extension = Path(path).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    """Check if a MIME type should carry a charset parameter."""
    return mime_type.startswith("text/") or mime_type in _TEXT_TYPES


def get_content_type(path: str | Path, charset: str = "utf-8") -> str:
    """
    Get the full Content-Type header value for a file.

        >>> get_content_type("error.js")
        'text/javascript; charset=utf-8'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
