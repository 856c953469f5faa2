"""
=============================================================================
EMBEDDED STATIC ASSETS
=============================================================================

CSS and JS used by the listing and error pages, served under /_static/.

They live in this module rather than on disk so the server is a single
installable package with nothing to locate at runtime, and so a served
root can never shadow them: /_static/ is answered before any filesystem
lookup.

    GET /_static/directory.css   → text/css
    GET /_static/directory.js    → text/javascript
    GET /_static/error.css       → text/css
    GET /_static/error.js        → text/javascript
    GET /_static/anything-else   → 404

Responses carry Cache-Control: public, max-age=3600.

=============================================================================
"""

from typing import Dict, Optional

from ..http.mime_types import get_content_type
from ..http.response import HTTPResponse, ResponseBuilder


STATIC_PREFIX = "/_static/"
ASSET_MAX_AGE = 3600


_BASE_CSS = """
:root {
    --bg: #0f1115;
    --bg-panel: #171a21;
    --border: #2a2f3a;
    --text: #e6e6e6;
    --text-secondary: #9aa3b2;
    --accent: #4fc3f7;
}
* { box-sizing: border-box; }
body {
    margin: 0;
    padding: 2rem 1rem;
    background: var(--bg);
    color: var(--text);
    font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
}
.container {
    max-width: 960px;
    margin: 0 auto;
    padding: 1.5rem 2rem;
    background: var(--bg-panel);
    border: 1px solid var(--border);
    border-radius: 12px;
}
a { color: var(--accent); text-decoration: none; }
a:hover { text-decoration: underline; }
"""

_DIRECTORY_CSS = _BASE_CSS + """
h1 {
    font-size: 1.25rem;
    font-weight: 600;
    padding-bottom: 0.75rem;
    border-bottom: 1px solid var(--border);
    word-break: break-all;
}
table { width: 100%; border-collapse: collapse; }
th {
    text-align: left;
    color: var(--text-secondary);
    font-weight: 500;
    padding: 0.5rem;
}
td { padding: 0.45rem 0.5rem; border-top: 1px solid var(--border); }
td.size, td.modified { color: var(--text-secondary); white-space: nowrap; }
tbody tr:hover { background: rgba(79, 195, 247, 0.06); }
.file-link.selected { outline: 1px solid var(--accent); border-radius: 4px; }
.summary { color: var(--text-secondary); font-size: 0.875rem; margin-top: 1rem; }
"""

_ERROR_CSS = _BASE_CSS + """
.container { text-align: center; max-width: 560px; margin-top: 10vh; }
.code { font-size: 4rem; margin: 0; color: var(--accent); }
h2 { margin: 0.25rem 0 1rem; font-weight: 500; }
p { color: var(--text-secondary); }
.home {
    display: inline-block;
    margin-top: 1.5rem;
    padding: 0.5rem 1.25rem;
    border: 1px solid var(--border);
    border-radius: 8px;
}
"""

_DIRECTORY_JS = """
// Keyboard navigation for directory listings
document.addEventListener('DOMContentLoaded', function () {
    var links = Array.prototype.slice.call(document.querySelectorAll('.file-link'));
    var selected = -1;

    function select(index) {
        if (!links.length) { return; }
        if (selected >= 0) { links[selected].classList.remove('selected'); }
        selected = Math.max(0, Math.min(links.length - 1, index));
        links[selected].classList.add('selected');
        links[selected].scrollIntoView({ block: 'nearest' });
    }

    document.addEventListener('keydown', function (e) {
        if (e.key === 'ArrowDown') { e.preventDefault(); select(selected + 1); }
        if (e.key === 'ArrowUp') { e.preventDefault(); select(selected - 1); }
        if (e.key === 'Home') { e.preventDefault(); select(0); }
        if (e.key === 'End') { e.preventDefault(); select(links.length - 1); }
        if (e.key === 'Enter' && selected >= 0) { window.location.href = links[selected].href; }
        if (e.key === 'Backspace' && window.location.pathname !== '/') {
            e.preventDefault();
            window.location.href = '../';
        }
    });
});
"""

_ERROR_JS = """
// Keyboard shortcuts for error pages
document.addEventListener('DOMContentLoaded', function () {
    document.addEventListener('keydown', function (e) {
        if (e.key === 'Escape' || e.key === 'h' || e.key === 'Home') {
            window.location.href = '/';
        }
        if (e.key === 'Backspace') {
            e.preventDefault();
            window.history.back();
        }
    });
});
"""


ASSETS: Dict[str, str] = {
    "directory.css": _DIRECTORY_CSS,
    "directory.js": _DIRECTORY_JS,
    "error.css": _ERROR_CSS,
    "error.js": _ERROR_JS,
}


def get_asset(name: str) -> Optional[HTTPResponse]:
    """
    Response for an embedded asset.

    Args:
        name: Asset name with the /_static/ prefix removed.

    Returns:
        The response, or None if there is no such asset.
    """
    content = ASSETS.get(name)
    if content is None:
        return None

    return (ResponseBuilder()
        .content_type(get_content_type(name))
        .body(content)
        .cache(ASSET_MAX_AGE)
        .build())
