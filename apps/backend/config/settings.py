"""
Configuration management for the conversion backend.

Centralized configuration with:
- Environment variable support (.env is loaded once on import)
- Validation
- A cached accessor so every request sees the same instance
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List

from dotenv import load_dotenv

load_dotenv()


# 60MB, same ceiling the upload layer enforces
DEFAULT_MAX_FILE_SIZE = 62914560

# PowerPoint refuses slides larger than 56in; 56 * 72 = 4032pt
MAX_SLIDE_EXTENT_PT = 4032.0


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class EngineConfig:
    """Native engine (python-pptx) configuration"""
    temp_directory: str = field(default_factory=lambda: os.getenv('PPTX_TEMP_DIR', os.path.join('.', 'temp', 'pptx')))
    template_path: str = field(default_factory=lambda: os.getenv('PPTX_TEMPLATE_PATH', ''))
    max_file_size: int = field(default_factory=lambda: int(os.getenv('MAX_FILE_SIZE', str(DEFAULT_MAX_FILE_SIZE))))
    # Advisory only: reported by the API layer, never enforced inside extraction loops
    request_timeout_ms: int = field(default_factory=lambda: int(os.getenv('REQUEST_TIMEOUT_MS', '120000')))


@dataclass
class ComposerConfig:
    """JSON -> PPTX composition limits"""
    text_limit: int = field(default_factory=lambda: int(os.getenv('COMPOSER_TEXT_LIMIT', '500')))
    max_extent_pt: float = field(default_factory=lambda: float(os.getenv('COMPOSER_MAX_EXTENT_PT', str(MAX_SLIDE_EXTENT_PT))))
    default_width_pt: float = 300.0
    default_height_pt: float = 50.0


@dataclass
class StorageConfig:
    """Asset storage configuration"""
    asset_storage_dir: str = field(default_factory=lambda: os.getenv('ASSET_STORAGE_DIR', os.path.join('.', 'storage', 'assets')))


@dataclass
class ServerConfig:
    """HTTP server configuration"""
    environment: str = field(default_factory=lambda: (os.getenv('ENVIRONMENT') or os.getenv('ENV') or 'development').lower())
    allowed_origins: List[str] = field(default_factory=lambda: _env_list('ALLOWED_ORIGINS', 'http://localhost:3000,http://localhost:5173'))
    sentry_dsn: str = field(default_factory=lambda: os.getenv('SENTRY_DSN', ''))
    # Empty means the environment profile's default level
    log_level: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', ''))
    conversion_workers: int = field(default_factory=lambda: int(os.getenv('CONVERSION_WORKERS', '4')))


@dataclass
class AppSettings:
    """Master configuration"""
    engine: EngineConfig = field(default_factory=EngineConfig)
    composer: ComposerConfig = field(default_factory=ComposerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for diagnostics (no secrets)"""
        return {
            'engine': {
                'temp_directory': self.engine.temp_directory,
                'template_path': self.engine.template_path or None,
                'max_file_size': self.engine.max_file_size,
                'request_timeout_ms': self.engine.request_timeout_ms,
            },
            'composer': {
                'text_limit': self.composer.text_limit,
                'max_extent_pt': self.composer.max_extent_pt,
            },
            'storage': {
                'asset_storage_dir': self.storage.asset_storage_dir,
            },
            'server': {
                'environment': self.server.environment,
                'allowed_origins': self.server.allowed_origins,
                'sentry_enabled': bool(self.server.sentry_dsn),
            },
        }

    def validate(self) -> None:
        """Validate configuration values"""
        if self.engine.max_file_size < 1:
            raise ValueError(f"max_file_size must be positive, got {self.engine.max_file_size}")

        if self.composer.text_limit < 1:
            raise ValueError(f"COMPOSER_TEXT_LIMIT must be at least 1, got {self.composer.text_limit}")

        if self.composer.max_extent_pt <= 0:
            raise ValueError(f"max_extent_pt must be positive, got {self.composer.max_extent_pt}")


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Get singleton configuration instance"""
    settings = AppSettings()
    settings.validate()
    return settings


def get_engine_config() -> EngineConfig:
    return get_settings().engine


def get_composer_config() -> ComposerConfig:
    return get_settings().composer


def get_storage_config() -> StorageConfig:
    return get_settings().storage


def get_server_config() -> ServerConfig:
    return get_settings().server
