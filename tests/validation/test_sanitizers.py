"""Tests for validation.sanitizers — filename and query cleanup."""

import logging
from unittest.mock import MagicMock

import pytest

from validation.sanitizers import sanitize_filename, strip_trailing_year


class TestSanitizeFilename:

    def test_empty(self):
        assert sanitize_filename(None) == ""
        assert sanitize_filename("") == ""

    def test_removes_reserved_characters(self):
        assert sanitize_filename('Who? What: "Why" <How> a/b\\c|d*') == "Who What Why How abcd"

    def test_collapses_whitespace(self):
        assert sanitize_filename("  Blade   Runner\t2049 ") == "Blade Runner 2049"

    def test_removes_control_characters(self):
        assert sanitize_filename("Bad\x00Name\x1f") == "BadName"

    def test_tabs_and_newlines_become_spaces(self):
        assert sanitize_filename("Blade\tRunner\n2049") == "Blade Runner 2049"

    def test_control_character_between_spaces(self):
        assert sanitize_filename("Alien \x07 Covenant") == "Alien Covenant"

    def test_normalizes_to_nfc(self):
        decomposed = "Ame\u0301lie"
        assert sanitize_filename(decomposed) == "Am\u00e9lie"

    def test_keeps_unicode_letters(self):
        assert sanitize_filename("千と千尋の神隠し") == "千と千尋の神隠し"

    def test_logs_when_changed(self):
        logger = MagicMock(spec=logging.Logger)
        sanitize_filename("a:b", logger=logger)
        logger.debug.assert_called_once()


class TestStripTrailingYear:

    @pytest.mark.parametrize(
        "title, expected",
        [
            ("Sintel 2010", "Sintel"),
            ("Sintel (2010)", "Sintel"),
            ("Sintel [2010]", "Sintel"),
            ("Sintel", "Sintel"),
            ("2010 Sintel", "2010 Sintel"),
            ("Sintel 2011", "Sintel 2011"),
        ],
    )
    def test_strip(self, title, expected):
        assert strip_trailing_year(title, "2010") == expected

    def test_without_year(self):
        assert strip_trailing_year("  Sintel 2010 ", None) == "Sintel 2010"

    def test_empty_title(self):
        assert strip_trailing_year(None, "2010") == ""
