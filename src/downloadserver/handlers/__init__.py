"""
=============================================================================
HANDLERS MODULE
=============================================================================

The code that turns a routed request into a response.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Router decision            Handler                Response         │
    ├─────────────────────────────────────────────────────────────────────┤
    │   allowed file         ──►   FileResponder     ──►  200 / 206        │
    │   directory            ──►   DirectoryResponder ──► 200 text/html    │
    │   /_health, /_status   ──►   HealthHandler     ──►  200 JSON         │
    │   /_static/<name>      ──►   get_asset()       ──►  200 CSS / JS     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .files import ByteRange, FileResponder, parse_range
from .directory import DirectoryResponder, format_size, format_modified
from .health import HealthHandler, HEALTH_PATHS
from .assets import get_asset, STATIC_PREFIX

__all__ = [
    "ByteRange",
    "FileResponder",
    "parse_range",
    "DirectoryResponder",
    "format_size",
    "format_modified",
    "HealthHandler",
    "HEALTH_PATHS",
    "get_asset",
    "STATIC_PREFIX",
]
