"""
Configuration validation for the TMDB enricher.

Provides a pydantic v2 model for the per-run plugin configuration pushed
through /configure, with fail-fast behavior and sensible defaults.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, ValidationError
from typing import Optional
import logging

log = logging.getLogger('tmdb_enricher.config')

# v4 read access tokens are JWTs, which always start with this prefix
BEARER_TOKEN_PREFIX = 'eyJ'

DEFAULT_LANGUAGE = 'en-US'


def normalize_language(value: Optional[str]) -> str:
    """Normalize a language setting to a TMDB locale.

    "en" -> "en-US", "de" -> "de-DE", "pt-BR" -> "pt-BR", empty -> "en-US".
    """
    if not value:
        return DEFAULT_LANGUAGE
    value = value.strip()
    if '-' in value:
        return value
    if value.lower() == 'en':
        return DEFAULT_LANGUAGE
    return f"{value.lower()}-{value.upper()}"


class EnricherConfig(BaseModel):
    """
    TMDB enricher configuration with validation.

    The model is frozen: each pipeline run receives the snapshot that was
    current when the run started, and a later /configure call replaces the
    snapshot rather than mutating it.

    Optional:
        api_key: TMDB v3 API key or v4 bearer token (empty = every item is skipped)
        language: Metadata language, bare codes are normalized (default: en-US)
        force_recompute: Ignore existing TMDB data and the cache (default: False)
        request_timeout: Per-request TMDB timeout in seconds (default: 10.0, range: 1.0-60.0)
        strategy_timeout: Budget for one lookup strategy in seconds (default: 30.0, range: 1.0-300.0)
        download_timeout: Image download timeout in seconds (default: 30.0, range: 1.0-300.0)
        store_timeout: meta-core request timeout in seconds (default: 5.0, range: 1.0-60.0)
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_key: Optional[str] = Field(default=None, alias='apiKey')
    language: str = DEFAULT_LANGUAGE
    force_recompute: bool = Field(default=False, alias='forceRecompute')

    request_timeout: float = Field(default=10.0, ge=1.0, le=60.0)
    strategy_timeout: float = Field(default=30.0, ge=1.0, le=300.0)
    download_timeout: float = Field(default=30.0, ge=1.0, le=300.0)
    store_timeout: float = Field(default=5.0, ge=1.0, le=60.0)

    @field_validator('api_key', mode='before')
    @classmethod
    def validate_api_key(cls, v):
        """Treat blank keys as missing; keys go into HTTP headers, so ASCII only."""
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError(f"Expected string, got {type(v).__name__}")
        v = v.strip()
        if not v.isascii() or not v.isprintable():
            raise ValueError("API key must contain only printable ASCII characters")
        return v or None

    @field_validator('language', mode='before')
    @classmethod
    def validate_language(cls, v):
        """Normalize bare language codes to a full locale."""
        if v is not None and not isinstance(v, str):
            raise ValueError(f"Expected string, got {type(v).__name__}")
        return normalize_language(v)

    @field_validator('force_recompute', mode='before')
    @classmethod
    def validate_booleans(cls, v):
        """Ensure boolean fields are actual booleans, not truthy strings."""
        if v is None:
            return False
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            lower = v.lower()
            if lower in ('true', '1', 'yes'):
                return True
            if lower in ('false', '0', 'no', ''):
                return False
            raise ValueError(f"Invalid boolean value: {v}")
        raise ValueError(f"Expected boolean, got {type(v).__name__}")

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    @property
    def is_bearer_token(self) -> bool:
        """True when api_key looks like a v4 read access token."""
        return bool(self.api_key) and self.api_key.startswith(BEARER_TOKEN_PREFIX)

    @property
    def language_code(self) -> str:
        """Two-letter language part of the locale ("en-US" -> "en")."""
        return self.language.split('-')[0].lower()

    def log_config(self) -> None:
        """Log configuration with masked key for security."""
        if not self.api_key:
            log.warning("TMDB enricher config: no API key configured, all items will be skipped")
            return
        if len(self.api_key) > 8:
            masked = self.api_key[:4] + '****' + self.api_key[-4:]
        else:
            masked = '****'
        key_type = 'v4 token' if self.is_bearer_token else 'v3 key'
        log.info(
            f"TMDB enricher config: key={masked} ({key_type}), "
            f"language={self.language}, force_recompute={self.force_recompute}, "
            f"request_timeout={self.request_timeout}s, "
            f"download_timeout={self.download_timeout}s, "
            f"store_timeout={self.store_timeout}s"
        )
        if self.force_recompute:
            log.info("Force recompute enabled: existing TMDB data and cache will be ignored")


def validate_config(config_dict: dict) -> tuple[Optional[EnricherConfig], Optional[str]]:
    """
    Validate configuration dictionary and return EnricherConfig or error message.

    Args:
        config_dict: Dictionary containing configuration values, using either
                     the wire names (apiKey, forceRecompute) or field names

    Returns:
        Tuple of (EnricherConfig, None) on success,
        or (None, error_message) on validation failure
    """
    try:
        config = EnricherConfig(**config_dict)
        return (config, None)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field = '.'.join(str(loc) for loc in error['loc'])
            msg = error['msg']
            errors.append(f"{field}: {msg}")
        error_message = '; '.join(errors)
        return (None, error_message)


# Re-export ValidationError for external use
__all__ = ['EnricherConfig', 'validate_config', 'normalize_language', 'ValidationError']
