"""
=============================================================================
HTML RENDERING
=============================================================================

Renders the two HTML pages this server produces: the directory listing
and the error page. Both pull their CSS and JS from /_static/, so the
markup here stays small.

Everything that came from the filesystem or the request is escaped:

    names  → html.escape()          ("<b>.zip" shows as text, not markup)
    hrefs  → urllib.parse.quote()   ("my file #1.zip" → "my%20file%20%231.zip")

=============================================================================
"""

import html
from typing import Iterable, Tuple
from urllib.parse import quote


# (display name, human size, human modified time)
ListingEntry = Tuple[str, str, str]


_LISTING_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>Index of {title}</title>
    <link rel="stylesheet" href="/_static/directory.css">
</head>
<body>
    <div class="container">
        <h1>Index of {title}</h1>
        <table>
            <thead>
                <tr><th>Name</th><th>Size</th><th>Modified</th></tr>
            </thead>
            <tbody>
{rows}
            </tbody>
        </table>
        <p class="summary">{count} {noun}</p>
    </div>
    <script src="/_static/directory.js"></script>
</body>
</html>
"""

_LISTING_ROW = (
    '                <tr><td><a class="file-link" href="{href}">{name}</a></td>'
    '<td class="size">{size}</td><td class="modified">{modified}</td></tr>'
)

_ERROR_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>{code} {phrase}</title>
    <link rel="stylesheet" href="/_static/error.css">
</head>
<body>
    <div class="container">
        <h1 class="code">{code}</h1>
        <h2>{phrase}</h2>
        <p>{description}</p>
        <a class="home" href="/">Back to index</a>
    </div>
    <script src="/_static/error.js"></script>
</body>
</html>
"""


def _href(request_path: str, name: str) -> str:
    base = request_path if request_path.endswith("/") else request_path + "/"
    return quote(base + name, safe="/")


def render_listing(request_path: str, entries: Iterable[ListingEntry]) -> str:
    """
    Render a directory listing page.

    Args:
        request_path: Decoded URL path of the directory, e.g. "/sub/".
        entries: (name, size, modified) triples, already sorted.
                 Directory names end with "/".

    Returns:
        The HTML document.
    """
    entries = list(entries)
    rows = []

    if request_path.strip("/"):
        rows.append(_LISTING_ROW.format(
            href=_href(request_path, "../"), name="..", size="-", modified="-"
        ))

    for name, size, modified in entries:
        rows.append(_LISTING_ROW.format(
            href=_href(request_path, name),
            name=html.escape(name),
            size=html.escape(size),
            modified=html.escape(modified),
        ))

    return _LISTING_PAGE.format(
        title=html.escape(request_path),
        rows="\n".join(rows),
        count=len(entries),
        noun="entry" if len(entries) == 1 else "entries",
    )


def render_error_page(code: int, phrase: str, description: str) -> str:
    """Render the error page for a status code."""
    return _ERROR_PAGE.format(
        code=code,
        phrase=html.escape(phrase),
        description=html.escape(description),
    )
