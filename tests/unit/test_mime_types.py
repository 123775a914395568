"""
Unit tests for Content-Type classification.
"""

from pathlib import Path

import pytest

from webserver.http.mime_types import get_content_type, get_mime_type, is_text_type


class TestGetMimeType:

    @pytest.mark.parametrize("name, expected", [
        ("index.html", "text/html"),
        ("index.htm", "text/html"),
        ("site.css", "text/css"),
        ("app.js", "text/javascript"),
        ("favicon.ico", "image/x-icon"),
        ("README", "text/plain"),
        ("photo.png", "text/plain"),
        ("archive.tar.gz", "text/plain"),
    ])
    def test_known_and_unknown_extensions(self, name: str, expected: str):
        assert get_mime_type(name) == expected

    def test_case_insensitive(self):
        assert get_mime_type("INDEX.HTML") == "text/html"
        assert get_mime_type("Favicon.ICO") == "image/x-icon"

    def test_accepts_paths(self):
        assert get_mime_type(Path("/var/www/css/site.css")) == "text/css"

    def test_dot_in_directory_name_only(self):
        assert get_mime_type("/v1.js/README") == "text/plain"


class TestGetContentType:

    def test_text_gets_charset(self):
        assert get_content_type("index.html") == "text/html; charset=utf-8"
        assert get_content_type("notes") == "text/plain; charset=utf-8"

    def test_binary_has_no_charset(self):
        assert get_content_type("favicon.ico") == "image/x-icon"

    def test_is_text_type(self):
        assert is_text_type("text/css")
        assert not is_text_type("image/x-icon")
