"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (OFFLINECACHE__GENERATIONS__STATIC_TAG=app-v2)
  2. offlinecache.yaml      (searched in cwd, then platform config dir)
  3. Hardcoded defaults

Every section is frozen. Generation tags, the static asset list and the API
host matcher are static configuration, never negotiated at runtime.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal
from urllib.parse import urljoin

import platformdirs
from pydantic import BaseModel, ConfigDict
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("offlinecache")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "stores.db")


def _find_config_file() -> str | None:
    """Return the path of the first offlinecache.yaml found, or None."""
    candidates = [
        Path("offlinecache.yaml"),
        Path(platformdirs.user_config_dir("offlinecache")) / "offlinecache.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class GenerationSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    static_tag: str = "renovation-accounting-v1.0.0"
    runtime_tag: str = "runtime-cache-v1"

    @property
    def active(self) -> frozenset[str]:
        return frozenset({self.static_tag, self.runtime_tag})


class AssetSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Application shell, required for offline bootstrap
    static_urls: tuple[str, ...] = ("./", "./index.html", "./manifest.json")
    offline_fallback: str = "./index.html"


class RoutingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Relative asset URLs resolve against this; its origin is "our" origin
    scope: str = "http://localhost:8080/"
    # Hostnames containing this fragment are remote data calls
    api_host: str = "jsonbin.io"

    def resolve(self, url: str) -> str:
        return urljoin(self.scope, url)


class StoreSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    db_path: str = _DEFAULT_DB_PATH


class FetcherSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # None: wait until the transport resolves or fails
    timeout_seconds: float | None = None
    user_agent: str = "offlinecache/1.0"


class SyncSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: str = "sync-transactions"


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: OFFLINECACHE__ROUTING__API_HOST=example.io
        env_prefix="OFFLINECACHE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
        frozen=True,
    )

    generations: GenerationSettings = GenerationSettings()
    assets: AssetSettings = AssetSettings()
    routing: RoutingSettings = RoutingSettings()
    store: StoreSettings = StoreSettings()
    fetcher: FetcherSettings = FetcherSettings()
    sync: SyncSettings = SyncSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
