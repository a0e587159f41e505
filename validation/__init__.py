"""
Validation module for the TMDB enricher.

Provides filename sanitization, error classification, and plugin
configuration validation.
"""

from validation.sanitizers import sanitize_filename, strip_trailing_year
from validation.errors import (
    TransientError,
    PermanentError,
    classify_exception,
    classify_http_error,
)
from validation.config import EnricherConfig, validate_config, normalize_language

__all__ = [
    'sanitize_filename',
    'strip_trailing_year',
    'TransientError',
    'PermanentError',
    'classify_exception',
    'classify_http_error',
    'EnricherConfig',
    'validate_config',
    'normalize_language',
]
