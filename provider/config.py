"""Service configuration using pydantic-settings with env var and YAML file support.

Env vars (TMDB_ prefix) take precedence over YAML config file values.
Nothing is required at startup: the TMDB credential normally arrives later
through POST /configure and is held in a ConfigStore snapshot.
"""

from __future__ import annotations

import logging
import sys
import threading
from functools import lru_cache
from typing import Optional

import pydantic
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from validation.config import EnricherConfig

logger = logging.getLogger(__name__)

_YAML_CONFIG_PATH = "/config/enricher.yml"


class ProviderSettings(BaseSettings):
    """TMDB enricher service configuration.

    Precedence (highest to lowest):
    1. TMDB_-prefixed environment variables
    2. YAML config file at /config/enricher.yml
    3. Defaults defined below
    """

    model_config = SettingsConfigDict(
        env_prefix="TMDB_",
        yaml_file=_YAML_CONFIG_PATH,
        yaml_file_encoding="utf-8",
    )

    port: int = 8080
    log_level: str = "info"

    # Mounts: media files (read-only), plugin output, plugin cache
    files_path: str = "/files"
    output_path: str = "/output"
    cache_dir: str = "/cache"
    cache_size_limit: int = 512 * 1024 * 1024

    # When set, media files and output are accessed over WebDAV instead of mounts
    webdav_url: Optional[str] = None
    webdav_timeout: float = 30.0

    # Path recorded in the store for artifacts, relative to the files root
    storage_prefix: str = "plugin/tmdb"

    # Compute the midhash from the source file when intake did not send one
    compute_missing_midhash: bool = True

    # Initial plugin config (normally replaced via POST /configure)
    api_key: Optional[str] = None
    language: str = "en-US"
    force_recompute: bool = False

    callback_timeout: float = 10.0

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Return sources in priority order: init > env > YAML."""
        return (init_settings, env_settings, YamlConfigSettingsSource(settings_cls))

    def initial_config(self) -> EnricherConfig:
        """Plugin config snapshot to use until the first /configure call."""
        return EnricherConfig(
            api_key=self.api_key,
            language=self.language,
            force_recompute=self.force_recompute,
        )


@lru_cache(maxsize=1)
def get_settings() -> ProviderSettings:
    """Return the cached ProviderSettings instance.

    Exits with a helpful error message if a setting is invalid.
    """
    try:
        return ProviderSettings()
    except pydantic.ValidationError as exc:
        names = ", ".join(
            f"TMDB_{str(error['loc'][0]).upper()}" for error in exc.errors() if error.get("loc")
        )
        print(
            f"\nInvalid configuration: {names}\n{exc}\n"
            f"Fix these environment variables or {_YAML_CONFIG_PATH}\n",
            file=sys.stderr,
        )
        sys.exit(1)


class ConfigStore:
    """Holds the current plugin configuration snapshot.

    /configure swaps the snapshot; each pipeline run reads it once at start
    and keeps using that snapshot even if a newer one arrives mid-run.
    """

    def __init__(self, initial: Optional[EnricherConfig] = None) -> None:
        self._lock = threading.Lock()
        self._config = initial or EnricherConfig()

    def current(self) -> EnricherConfig:
        with self._lock:
            return self._config

    def replace(self, config: EnricherConfig) -> None:
        with self._lock:
            self._config = config
        config.log_config()
