"""
Configuration management for Stremio-M3U

This module handles loading, validation, and management of application settings
from YAML files and environment variables.

The configuration is organized into logical sections using dataclasses:
- Playlist output (path, name, refresh interval, backups)
- Addon sources (manifest URLs, categories, filters)
- Addon HTTP behaviour (timeout, user agent)
- Logo resolution and caching (Wikimedia switch, cache location, batching)
- Logging, network and storage locations

Defaults are applied when the dataclasses are constructed; YAML values and
environment variables only override fields that already exist, so every
section can be read without checking for missing keys.
"""

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import unquote

import yaml
from dotenv import load_dotenv

from ..utils.helpers import dedupe_addon_urls

# Load environment variables from .env file if present
load_dotenv()


@dataclass
class PlaylistConfig:
    """
    Playlist output configuration

    Controls where the M3U file is written, the name announced in its
    header, how often the watch loop regenerates it and how many backups
    of previous versions are kept.
    """
    output_path: str = "./playlist.m3u"
    name: str = "Stremio Playlist"
    refresh_interval: int = 21600  # 6 hours
    create_backups: bool = True
    backup_directory: str = "./backups"
    max_backups: int = 5


@dataclass
class SourcesConfig:
    """
    Addon sources and content filters

    Live TV content is never filtered by year, genre or language.
    """
    enabled_addons: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=lambda: ["movie", "series", "tv"])
    min_year: Optional[int] = None
    max_year: Optional[int] = None
    genres: List[str] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)
    max_items_per_catalog: int = 20


@dataclass
class StremioConfig:
    """HTTP settings for talking to Stremio addons"""
    timeout: int = 10
    user_agent: str = "Stremio/4.4.0"


@dataclass
class LogosConfig:
    """
    Logo resolution and cache configuration

    ``enable_wikimedia`` switches the whole background enhancement pass on or
    off. The remaining fields tune the Wikimedia client, the on-disk cache
    and the batching of the background pass.
    """
    enable_wikimedia: bool = True
    cache_directory: str = "~/.stremio-m3u/logos"
    metadata_file: str = "logo_cache.json"
    cache_ttl_days: int = 30
    download_files: bool = True
    batch_size: int = 3
    batch_delay: float = 1.0
    search_timeout: float = 5.0
    download_timeout: float = 10.0
    thumbnail_width: int = 200
    search_limit: int = 10
    placeholder_template: str = "https://via.placeholder.com/200x200/1e3a8a/ffffff?text={name}"


@dataclass
class LoggingConfig:
    """
    Logging configuration and output settings

    Controls application logging behavior including log levels, file output,
    rotation, and console formatting.
    """
    level: str = "INFO"
    file: str = ""
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class NetworkConfig:
    """
    Network identification settings

    ``user_agent`` overrides the client identification header sent to
    Wikimedia; when empty it is derived from the package name and version.
    """
    user_agent: str = ""


@dataclass
class StorageConfig:
    """Location of the per-user configuration directory"""
    config_directory: str = "~/.stremio-m3u/"


class Settings:
    """
    Main settings class that manages all configuration

    This class serves as the central configuration manager, loading settings
    from multiple sources (YAML files, environment variables) and providing
    a unified interface for accessing configuration throughout the application.
    """

    VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

    def __init__(self, config_path: Optional[str] = None, load_environment: bool = True):
        """
        Initialize settings from config file or environment variables

        Args:
            config_path: Path to custom config file, if None uses default locations
            load_environment: Apply environment variable overrides
        """
        self.config_path = config_path
        self.config_dir = Path.home() / ".stremio-m3u"

        # Initialize all configuration objects with default values
        self.playlist = PlaylistConfig()
        self.sources = SourcesConfig()
        self.stremio = StremioConfig()
        self.logos = LogosConfig()
        self.logging = LoggingConfig()
        self.network = NetworkConfig()
        self.storage = StorageConfig()

        # Load configuration from various sources in order of precedence
        self._load_config()
        if load_environment:
            self._load_environment_variables()
        self.sources.enabled_addons = dedupe_addon_urls(self.sources.enabled_addons)

    def _sections(self) -> Dict[str, Any]:
        return {
            'playlist': self.playlist,
            'sources': self.sources,
            'stremio': self.stremio,
            'logos': self.logos,
            'logging': self.logging,
            'network': self.network,
            'storage': self.storage,
        }

    def _load_config(self) -> None:
        """
        Load configuration from YAML file

        Searches for configuration files in multiple locations in order of
        precedence. The first file found will be used.
        """
        config_paths = [
            self.config_path,
            self.config_dir / "config.yaml",
            Path("config/config.yaml"),
            Path("config.yaml")
        ]

        config_data = {}
        for path in config_paths:
            if path and Path(path).exists():
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        config_data = yaml.safe_load(f) or {}
                    break
                except (OSError, yaml.YAMLError) as e:
                    print(f"Warning: Failed to load config from {path}: {e}")

        if isinstance(config_data, dict):
            self._apply_config(config_data)

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Apply configuration data to dataclass instances

        Only attributes that exist in both the config file and the dataclass
        definition are updated.

        Args:
            config_data: Dictionary containing configuration sections
        """
        config_mapping = self._sections()

        for section_name, section_data in config_data.items():
            if section_name in config_mapping and isinstance(section_data, dict):
                config_obj = config_mapping[section_name]
                for key, value in section_data.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, value)

    def _load_environment_variables(self) -> None:
        """
        Load deployment-specific configuration from environment variables

        Environment variables take precedence over file-based configuration.
        A private addon URL can be supplied through STREMIO_ADDON_URL so that
        it never has to be stored in a configuration file.
        """
        addon_url = os.getenv('STREMIO_ADDON_URL')
        if addon_url:
            # Double-encoded URLs (%253D) are decoded once
            if '%253D' in addon_url:
                addon_url = unquote(addon_url)
            self.sources.enabled_addons = list(self.sources.enabled_addons) + [addon_url]

        env_mappings = {
            'PLAYLIST_OUTPUT_PATH': lambda v: setattr(self.playlist, 'output_path', v),
            'LOGO_CACHE_DIR': lambda v: setattr(self.logos, 'cache_directory', v),
            'LOG_LEVEL': lambda v: setattr(self.logging, 'level', v.upper()),
            'ENABLE_WIKIMEDIA': lambda v: setattr(
                self.logos, 'enable_wikimedia', v.strip().lower() not in ('0', 'false', 'no', 'off')
            ),
        }

        for env_var, setter in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                setter(value)

    def get_config_directory(self) -> Path:
        """Get the expanded config directory path"""
        return Path(self.storage.config_directory).expanduser()

    def get_output_path(self) -> Path:
        """Get the expanded playlist output path"""
        return Path(self.playlist.output_path).expanduser()

    def get_logo_cache_directory(self) -> Path:
        """Get the expanded logo cache directory"""
        return Path(self.logos.cache_directory).expanduser()

    def save_config(self, path: Optional[str] = None) -> Path:
        """
        Save current configuration to a YAML file

        Addon URLs are left out because they may carry private tokens.

        Args:
            path: Custom path to save config, defaults to user config directory

        Returns:
            Path the configuration was written to
        """
        target = Path(path) if path else self.get_config_directory() / "config.yaml"

        config_data = {name: asdict(section) for name, section in self._sections().items()}
        config_data['sources']['enabled_addons'] = []

        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, 'w', encoding='utf-8') as f:
            yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
        return target

    def validate(self) -> bool:
        """
        Validate current configuration

        Returns:
            True if configuration is valid, False otherwise
        """
        errors = []

        if not self.playlist.output_path:
            errors.append("Playlist output_path must not be empty")

        if self.playlist.refresh_interval <= 0:
            errors.append(f"Invalid refresh interval: {self.playlist.refresh_interval}")

        if self.logos.batch_size < 1:
            errors.append(f"Invalid logo batch size: {self.logos.batch_size}")

        if self.logos.batch_delay < 0:
            errors.append(f"Invalid logo batch delay: {self.logos.batch_delay}")

        for name in ('search_timeout', 'download_timeout'):
            if getattr(self.logos, name) <= 0:
                errors.append(f"Invalid logo {name}: {getattr(self.logos, name)}")

        if self.logos.cache_ttl_days < 1:
            errors.append(f"Invalid cache TTL: {self.logos.cache_ttl_days} days")

        if '{name}' not in self.logos.placeholder_template:
            errors.append("Placeholder template must contain '{name}'")

        if str(self.logging.level).upper() not in self.VALID_LOG_LEVELS:
            errors.append(f"Invalid log level: {self.logging.level}")

        if errors:
            print("Configuration validation errors:")
            for error in errors:
                print(f"  - {error}")
            return False

        return True

    def __str__(self) -> str:
        sections = [
            f"Output: {self.playlist.output_path}",
            f"Addons: {len(self.sources.enabled_addons)}",
            f"Logos: {'wikimedia' if self.logos.enable_wikimedia else 'disabled'}",
        ]
        return f"Settings({', '.join(sections)})"


# Global settings instance, created on first access
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance

    Returns:
        The global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from configuration files

    Args:
        config_path: Optional path to specific config file

    Returns:
        New Settings instance with reloaded configuration
    """
    global _settings
    _settings = Settings(config_path)
    return _settings
