"""Unified configuration loaded from .inkwell.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".inkwell.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG = Path.home() / ".config" / "inkwell" / "config.toml"


class SiteConfig(BaseModel):
    """[site] section — public identity used in SEO artifacts."""

    base_url: str = "http://localhost:8000"
    site_name: str = "Inkwell"
    logo_url: str = ""

    @property
    def root(self) -> str:
        return self.base_url.rstrip("/")


class StoreConfig(BaseModel):
    """[store] section."""

    directory: str = "./data"


class ContentConfig(BaseModel):
    """[content] section — derivation defaults."""

    excerpt_length: int = 300
    meta_description_length: int = 160
    keyword_limit: int = 10
    slug_max_attempts: int = 20


class AssetConfig(BaseModel):
    """[assets] section — where uploaded images go.

    ``backend = "local"`` writes files under ``directory`` and serves them
    from ``public_url``; ``backend = "remote"`` sends them to the asset
    host at ``api_url``.
    """

    backend: Literal["local", "remote"] = "local"
    directory: str = "./uploads/images"
    public_url: str = "/uploads/images"
    api_url: str = ""
    api_key: str = ""
    timeout: int = 30
    max_bytes: int = 5 * 1024 * 1024
    allowed_types: list[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/gif", "image/webp"]
    )

    @property
    def is_remote_configured(self) -> bool:
        return bool(self.api_url and self.api_key)


class InkwellConfig(BaseModel):
    """Top-level configuration model."""

    site: SiteConfig = Field(default_factory=SiteConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    content: ContentConfig = Field(default_factory=ContentConfig)
    assets: AssetConfig = Field(default_factory=AssetConfig)


def load_config(path: str | Path | None = None) -> InkwellConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .inkwell.toml in CWD
    3. ~/.config/inkwell/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged InkwellConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG.exists():
            data = _load_toml(GLOBAL_CONFIG)
            logger.info("Loaded config from %s", GLOBAL_CONFIG)

    config = InkwellConfig.model_validate(data) if data else InkwellConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: InkwellConfig, **cli_kwargs: object) -> InkwellConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "store_directory": ("store", "directory"),
        "base_url": ("site", "base_url"),
    }

    for key, value in cli_kwargs.items():
        if value is None or key not in mapping:
            continue
        section, field = mapping[key]
        data[section][field] = value

    return InkwellConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: InkwellConfig) -> InkwellConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "INKWELL_BASE_URL": ("site", "base_url"),
        "INKWELL_SITE_NAME": ("site", "site_name"),
        "INKWELL_LOGO_URL": ("site", "logo_url"),
        "INKWELL_STORE_DIR": ("store", "directory"),
        "INKWELL_ASSET_BACKEND": ("assets", "backend"),
        "INKWELL_ASSET_DIR": ("assets", "directory"),
        "ASSET_HOST_URL": ("assets", "api_url"),
        "ASSET_HOST_API_KEY": ("assets", "api_key"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    max_bytes_raw = os.environ.get("INKWELL_ASSET_MAX_BYTES")
    if max_bytes_raw is not None:
        data["assets"]["max_bytes"] = int(max_bytes_raw)

    return InkwellConfig.model_validate(data)
