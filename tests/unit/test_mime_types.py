"""
Unit tests for Content-Type guessing.
"""

import pytest

from webserver.http.mime_types import MIME_TYPES, guess_content_type


class TestGuessContentType:
    """Tests for guess_content_type()."""

    @pytest.mark.parametrize("path,expected", [
        ("index.html", "text/html"),
        ("style.css", "text/css"),
        ("app.js", "text/javascript"),
        ("logo.png", "image/png"),
        ("photo.jpeg", "image/jpeg"),
        ("docs/readme.txt", "text/plain"),
    ])
    def test_known_extensions(self, path: str, expected: str):
        """Test lookups from the built-in table."""
        assert guess_content_type(path) == expected

    def test_case_insensitive(self):
        """Test that extensions are case-folded."""
        assert guess_content_type("LOGO.PNG") == "image/png"

    def test_last_extension_wins(self):
        """Test that only the final extension is considered."""
        assert guess_content_type("archive.tar.gz") == "application/gzip"

    def test_no_extension(self):
        """Test that a bare name yields an empty type."""
        assert guess_content_type("Makefile") == ""

    def test_unknown_extension(self):
        """Test that an unknown extension yields an empty type."""
        assert guess_content_type("data.zzzunknown") == ""

    def test_table_keys_are_lowercase(self):
        """Test the table is keyed by lowercase, dotted extensions."""
        for extension in MIME_TYPES:
            assert extension.startswith(".")
            assert extension == extension.lower()
