"""
Directory listings.

Each child of the directory becomes one (name, size, modified) triple:

    ("sub/",    "-",      "3 min ago")     ← directories first, "/" suffix
    ("a.txt",   "5 B",    "Just now")
    ("B.zip",   "1.4 MB", "2024-01-05")    ← then files, case-insensitive

An entry whose metadata cannot be read (broken symlink, permission
denied, deleted mid-listing) is logged and left out instead of failing
the whole page.
"""

import os
import time
import logging
from datetime import datetime
from typing import List, Optional

from ..http.errors import ErrorKind, ServerError
from ..http.response import HTTPResponse, ResponseBuilder
from ..templates import ListingEntry, render_listing


logger = logging.getLogger(__name__)

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(size: int) -> str:
    """
    Human-readable size, 1024-based, one decimal above bytes.

        >>> format_size(0)
        '0 B'
        >>> format_size(512)
        '512 B'
        >>> format_size(1536)
        '1.5 KB'
    """
    if size == 0:
        return "0 B"

    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1

    if unit == 0:
        return f"{size} B"
    return f"{value:.1f} {_SIZE_UNITS[unit]}"


def format_modified(mtime: float, now: Optional[float] = None) -> str:
    """
    Relative age for recent files, a date for older ones.

        < 1 min    "Just now"
        < 1 hour   "N min ago"
        < 1 day    "N hr ago"
        < 30 days  "N days ago"
        otherwise  "YYYY-MM-DD"
    """
    if now is None:
        now = time.time()
    age = max(0, int(now - mtime))

    if age < 60:
        return "Just now"
    if age < 3600:
        return f"{age // 60} min ago"
    if age < 86400:
        return f"{age // 3600} hr ago"
    if age < 86400 * 30:
        return f"{age // 86400} days ago"
    return datetime.fromtimestamp(mtime).strftime("%Y-%m-%d")


class DirectoryResponder:
    """Builds the HTML listing response for a directory."""

    def list_entries(self, path: str) -> List[ListingEntry]:
        """
        Read, describe and sort the children of a directory.

        Raises:
            ServerError: FORBIDDEN if the directory itself cannot be read.
        """
        try:
            scanner = os.scandir(path)
        except PermissionError:
            raise ServerError(ErrorKind.FORBIDDEN, f"Cannot list {path}")
        except FileNotFoundError:
            raise ServerError(ErrorKind.NOT_FOUND, f"{path} disappeared")

        described = []
        with scanner:
            for entry in scanner:
                try:
                    is_dir = entry.is_dir()
                    stat = entry.stat()
                except OSError as e:
                    logger.warning(f"Skipping unreadable entry {entry.path}: {e}")
                    continue
                described.append((is_dir, entry.name, stat))

        described.sort(key=lambda item: (not item[0], item[1].lower()))

        entries = []
        for is_dir, name, stat in described:
            if is_dir:
                entries.append((name + "/", "-", format_modified(stat.st_mtime)))
            else:
                entries.append((name, format_size(stat.st_size), format_modified(stat.st_mtime)))
        return entries

    def respond(self, path: str, request_path: str) -> HTTPResponse:
        """
        Args:
            path: Canonical directory path on disk.
            request_path: Decoded URL path, used for the title and links.
        """
        page = render_listing(request_path, self.list_entries(path))
        return ResponseBuilder().html(page).build()
