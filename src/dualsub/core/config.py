"""Configuration system for DualSub.

Layered config loading (lowest to highest priority):
1. config/default.toml (shipped with package)
2. ~/.config/dualsub/config.toml (user-level)
3. ./dualsub.toml (project-level)
4. Environment variables (DUALSUB_TRANSLATION__MODEL, etc.)
5. CLI flags
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dualsub.core.languages import AUTO

_PACKAGE_ROOT = Path(__file__).resolve().parent.parent.parent.parent
_DEFAULT_CONFIG = _PACKAGE_ROOT / "config" / "default.toml"
_USER_CONFIG = Path.home() / ".config" / "dualsub" / "config.toml"
_PROJECT_CONFIG = Path("dualsub.toml")

# Fields whose change invalidates cached translations and in-flight lookups.
RESET_FIELDS: frozenset[str] = frozenset(
    {
        "translation.provider",
        "translation.model",
        "translation.source_lang",
        "translation.target_lang",
    }
)

# Fields whose change requires reloading cue tracks.
TRACK_FIELDS: frozenset[str] = frozenset({"display.primary_lang", "display.secondary_lang"})


class TranslationConfig(BaseModel):
    provider: Literal["llm", "native"] = "llm"  # "native" = secondary-language track only
    model: str = "gemini/gemini-2.0-flash"
    api_base: str | None = None
    api_key: str = ""
    source_lang: str = AUTO
    target_lang: str = "zh-Hant"
    min_chars: int = Field(default=2, ge=1, le=200)
    debounce_ms: int = Field(default=250, ge=0)
    min_request_gap_ms: int = Field(default=1200, ge=0)
    temperature: float = 0.2
    max_tokens: int = 512

    @field_validator("model", "source_lang", "target_lang")
    @classmethod
    def _strip_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class StoreConfig(BaseModel):
    local_path: Path = Path("~/.cache/dualsub/translations.db")
    local_max_entries: int = Field(default=5000, ge=1)
    local_prune_target: int = Field(default=4000, ge=0)
    remote_url: str = ""  # PocketBase base URL; empty disables the remote tier
    remote_collection: str = "dualsub_translations"
    remote_interval_collection: str = "dualsub_captions"
    remote_token: str = ""
    remote_timeout: float = 10.0

    @field_validator("remote_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @model_validator(mode="after")
    def _prune_below_capacity(self) -> StoreConfig:
        if self.local_prune_target >= self.local_max_entries:
            raise ValueError("local_prune_target must be below local_max_entries")
        return self


class RecorderConfig(BaseModel):
    min_duration: float = Field(default=0.2, ge=0.0)  # seconds
    seek_gap: float = Field(default=2.0, gt=0.0)  # seconds
    capacity: int = Field(default=2000, ge=1)
    export_precision: int = Field(default=3, ge=0, le=6)


class PlaybackConfig(BaseModel):
    fps: float = Field(default=30.0, gt=0.0)
    track_retry_base: float = Field(default=2.0, gt=0.0)  # seconds
    track_retry_cap: float = Field(default=60.0, gt=0.0)  # seconds


class DisplayConfig(BaseModel):
    primary_lang: str = "en"
    secondary_lang: str = "zh-Hant"
    font_size: int = Field(default=24, ge=12, le=64)
    line_spacing: float = Field(default=1.1, ge=1.0, le=2.0)
    opacity: float = Field(default=0.9, ge=0.2, le=1.0)
    position: Literal["top", "bottom"] = "bottom"
    display_mode: Literal["both", "translated-only"] = "both"
    top_offset_px: int = Field(default=0, ge=0, le=600)
    bottom_offset_px: int = Field(default=0, ge=0, le=600)


class DualSubConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DUALSUB_",
        env_nested_delimiter="__",
    )

    translation: TranslationConfig = TranslationConfig()
    store: StoreConfig = StoreConfig()
    recorder: RecorderConfig = RecorderConfig()
    playback: PlaybackConfig = PlaybackConfig()
    display: DisplayConfig = DisplayConfig()

    @property
    def remote_enabled(self) -> bool:
        return bool(self.store.remote_url)


def effective_source_language(config: DualSubConfig) -> str:
    """Source language used for cache keys and the skip check.

    An explicit ``translation.source_lang`` wins; "auto" follows the primary
    track language.
    """
    source = config.translation.source_lang
    if source.lower() != AUTO:
        return source
    return config.display.primary_lang


def diff_settings(previous: DualSubConfig, current: DualSubConfig) -> set[str]:
    """Return dotted names of every field that differs between two configs."""
    changed: set[str] = set()
    prev_data = previous.model_dump()
    cur_data = current.model_dump()
    for section, values in cur_data.items():
        old_values = prev_data.get(section, {})
        if not isinstance(values, dict):
            if values != old_values:
                changed.add(section)
            continue
        for name, value in values.items():
            if old_values.get(name) != value:
                changed.add(f"{section}.{name}")
    return changed


def requires_reset(previous: DualSubConfig, current: DualSubConfig) -> bool:
    """True when provider, model or a language changed (directly or via "auto")."""
    if diff_settings(previous, current) & RESET_FIELDS:
        return True
    return effective_source_language(previous) != effective_source_language(current)


def _load_toml(path: Path) -> dict:
    """Load a TOML file if it exists, return empty dict otherwise."""
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(**cli_overrides: object) -> DualSubConfig:
    """Load configuration from all layers and merge.

    Args:
        **cli_overrides: Direct overrides from CLI flags. Keys can be
            dot-separated (e.g. translation.target_lang="ja").
    """
    # Layer 1-3: TOML files
    config_data: dict = {}
    for path in (_DEFAULT_CONFIG, _USER_CONFIG, _PROJECT_CONFIG):
        layer = _load_toml(path)
        config_data = _deep_merge(config_data, layer)

    # Apply CLI overrides (dot-separated keys)
    for key, value in cli_overrides.items():
        if value is None:
            continue
        parts = key.split(".")
        target = config_data
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value

    # Layer 4: env vars are handled by Pydantic BaseSettings
    return DualSubConfig(**config_data)
