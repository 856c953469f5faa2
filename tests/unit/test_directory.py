"""
Unit tests for directory listings and HTML rendering.
"""

import os
from datetime import datetime

import pytest

from downloadserver.handlers.directory import DirectoryResponder, format_modified, format_size
from downloadserver.http.errors import ErrorKind, ServerError
from downloadserver.http.status_codes import HTTPStatus
from downloadserver.templates import render_error_page, render_listing


class TestFormatSize:

    @pytest.mark.parametrize("size,expected", [
        (0, "0 B"),
        (1, "1 B"),
        (1023, "1023 B"),
        (1024, "1.0 KB"),
        (1536, "1.5 KB"),
        (1024 ** 2, "1.0 MB"),
        (5 * 1024 ** 3, "5.0 GB"),
        (2 * 1024 ** 4, "2.0 TB"),
        (2048 * 1024 ** 4, "2048.0 TB"),
    ])
    def test_format_size(self, size, expected):
        assert format_size(size) == expected


class TestFormatModified:

    NOW = 1_700_000_000.0

    @pytest.mark.parametrize("age,expected", [
        (0, "Just now"),
        (59, "Just now"),
        (60, "1 min ago"),
        (3599, "59 min ago"),
        (3600, "1 hr ago"),
        (86399, "23 hr ago"),
        (86400, "1 days ago"),
        (86400 * 29, "29 days ago"),
    ])
    def test_relative(self, age, expected):
        assert format_modified(self.NOW - age, now=self.NOW) == expected

    def test_old_files_show_date(self):
        mtime = self.NOW - 86400 * 45
        expected = datetime.fromtimestamp(mtime).strftime("%Y-%m-%d")
        assert format_modified(mtime, now=self.NOW) == expected

    def test_future_mtime_is_just_now(self):
        assert format_modified(self.NOW + 500, now=self.NOW) == "Just now"


class TestDirectoryResponder:

    def test_entries_sorted_directories_first(self, served_root):
        (served_root / "B.txt").write_bytes(b"")
        (served_root / "zdir").mkdir()

        names = [name for name, _, _ in DirectoryResponder().list_entries(str(served_root))]

        assert names == ["sub/", "zdir/", "a.txt", "B.txt", "b.zip", "c.exe"]

    def test_entry_details(self, served_root):
        entries = dict(
            (name, (size, modified))
            for name, size, modified in DirectoryResponder().list_entries(str(served_root))
        )

        assert entries["a.txt"] == ("5 B", "Just now")
        assert entries["sub/"][0] == "-"

    def test_listing_shows_every_entry(self, served_root):
        """The allow-list filters downloads, not listings."""
        response = DirectoryResponder().respond(str(served_root), "/")

        assert response.status == HTTPStatus.OK
        assert response.get_header("Content-Type") == "text/html; charset=utf-8"
        assert b"c.exe" in response.body
        assert b"4 entries" in response.body

    def test_missing_directory(self, served_root):
        with pytest.raises(ServerError) as exc_info:
            DirectoryResponder().list_entries(str(served_root / "gone"))
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    @pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0,
                        reason="needs POSIX permissions and a non-root user")
    def test_unreadable_directory(self, served_root):
        locked = served_root / "locked"
        locked.mkdir()
        locked.chmod(0)
        try:
            with pytest.raises(ServerError) as exc_info:
                DirectoryResponder().list_entries(str(locked))
            assert exc_info.value.kind is ErrorKind.FORBIDDEN
        finally:
            locked.chmod(0o755)


class TestTemplates:

    def test_root_has_no_parent_row(self):
        page = render_listing("/", [("a.txt", "5 B", "Just now")])

        assert ">..<" not in page
        assert 'href="/a.txt"' in page
        assert "1 entry" in page

    def test_subdirectory_has_parent_row(self):
        page = render_listing("/sub/", [])

        assert ">..<" in page
        assert "0 entries" in page

    def test_names_are_escaped_and_hrefs_quoted(self):
        page = render_listing("/", [("<b>&x #1.zip", "1 B", "Just now")])

        assert "&lt;b&gt;&amp;x #1.zip" in page
        assert 'href="/%3Cb%3E%26x%20%231.zip"' in page

    def test_links_static_assets(self):
        page = render_listing("/", [])

        assert "/_static/directory.css" in page
        assert "/_static/directory.js" in page

    def test_error_page(self):
        page = render_error_page(404, "Not Found", "Nothing <here>.")

        assert "<h1 class=\"code\">404</h1>" in page
        assert "Nothing &lt;here&gt;." in page
        assert "/_static/error.css" in page
