"""
Text sanitization utilities for catalog queries and artifact filenames.

Provides functions to turn catalog titles into filesystem-safe names and to
clean filename-derived titles before they are sent as search queries.
"""

import re
import unicodedata
from typing import Optional
import logging


# Characters that are invalid in filenames on at least one common platform
INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')

WHITESPACE = re.compile(r'\s+')


def sanitize_filename(
    name: Optional[str],
    logger: Optional[logging.Logger] = None
) -> str:
    """
    Make a title safe to use as part of a filename.

    Performs the following transformations:
    1. Returns empty string if name is None or empty
    2. Normalizes Unicode to NFC form
    3. Removes the characters <>:"/\\|?*
    4. Removes control characters (Cc) other than whitespace
    5. Collapses runs of whitespace to single spaces and trims

    Args:
        name: The title to sanitize
        logger: Optional logger for debug output

    Returns:
        Sanitized name
    """
    if not name:
        return ''

    original = name

    text = unicodedata.normalize('NFC', name)
    text = INVALID_FILENAME_CHARS.sub('', text)
    text = ''.join(
        char for char in text
        if char.isspace() or unicodedata.category(char) != 'Cc'
    )
    text = WHITESPACE.sub(' ', text).strip()

    if logger and text != original:
        logger.debug(f"Sanitized filename: {original!r} -> {text!r}")

    return text


def strip_trailing_year(title: Optional[str], year: Optional[str]) -> str:
    """
    Remove a trailing year token from a title.

    Only the exact known year is stripped, optionally wrapped in
    parentheses or brackets, e.g. "Sintel 2010", "Sintel (2010)" and
    "Sintel [2010]" all become "Sintel". A year elsewhere in the title
    ("2001 A Space Odyssey") is left alone.

    Args:
        title: Title to clean
        year: Year already parsed for this item, if any

    Returns:
        Title without the trailing year, stripped of surrounding whitespace
    """
    if not title:
        return ''
    if not year:
        return title.strip()

    pattern = re.compile(r'\s*[(\[]?' + re.escape(str(year)) + r'[)\]]?\s*$')
    return pattern.sub('', title).strip()
