"""Configuration settings for the AutoRent catalogue application."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

POPULAR_CAR_MODELS: tuple[str, ...] = (
    "camry",
    "corolla",
    "civic",
    "accord",
    "f150",
    "silverado",
    "ram",
    "escape",
    "cr-v",
    "rav4",
    "highlander",
    "pilot",
    "explorer",
    "tahoe",
    "suburban",
    "altima",
    "sentra",
    "maxima",
    "rogue",
    "pathfinder",
)


@dataclass(slots=True)
class ApiConfig:
    """Settings for the third-party car-data API."""

    base_url: str = "https://api.api-ninjas.com/v1"
    api_key: str = ""
    """Demo credential; supply a real key through ``AUTORENT_API_KEY``."""

    timeout_seconds: int = 10


@dataclass(slots=True)
class CatalogueConfig:
    """Sizes and limits applied to the catalogue and selection sets."""

    batch_size: int = 12
    """Number of models requested when assembling a fresh catalogue."""

    compare_limit: int = 2
    recent_limit: int = 5
    popular_models: tuple[str, ...] = POPULAR_CAR_MODELS


@dataclass(slots=True)
class AppConfig:
    """Top-level configuration for the application."""

    environment: Literal["development", "production"] = "development"
    data_directory: Path = field(default_factory=lambda: Path("data"))
    log_level: str = "INFO"
    api: ApiConfig = field(default_factory=ApiConfig)
    catalogue: CatalogueConfig = field(default_factory=CatalogueConfig)

    def ensure_data_directories(self) -> None:
        """Create data directories required by the application."""

        self.data_directory.mkdir(parents=True, exist_ok=True)
        (self.data_directory / "storage").mkdir(parents=True, exist_ok=True)

    @property
    def storage_directory(self) -> Path:
        return self.data_directory / "storage"

    @classmethod
    def from_env(cls) -> AppConfig:
        """Build a configuration, overriding defaults from ``AUTORENT_*`` variables."""

        config = cls()
        environment = os.getenv("AUTORENT_ENV")
        if environment in ("development", "production"):
            config.environment = environment
        data_dir = os.getenv("AUTORENT_DATA_DIR")
        if data_dir:
            config.data_directory = Path(data_dir)
        config.log_level = os.getenv("AUTORENT_LOG_LEVEL", config.log_level).upper()
        config.api.api_key = os.getenv("AUTORENT_API_KEY", config.api.api_key)
        config.api.base_url = os.getenv("AUTORENT_API_BASE_URL", config.api.base_url)
        return config


DEFAULT_CONFIG = AppConfig()
