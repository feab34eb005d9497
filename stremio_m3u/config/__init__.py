"""
Configuration management package for Stremio-M3U

Settings are grouped in dataclass sections (playlist, sources, stremio,
logos, logging, network, storage) with defaults applied at construction
time, then overridden by a YAML file and environment variables.

Usage:

    from stremio_m3u.config import get_settings

    settings = get_settings()
    resolver = LogoResolver(settings.logos)

Core objects receive the section they need explicitly; only the CLI reaches
for the process-wide instance.
"""

from .settings import (
    get_settings,
    reload_settings,
    Settings,
    PlaylistConfig,
    SourcesConfig,
    StremioConfig,
    LogosConfig,
    LoggingConfig,
    NetworkConfig,
    StorageConfig,
)

__all__ = [
    'get_settings',
    'reload_settings',
    'Settings',
    'PlaylistConfig',
    'SourcesConfig',
    'StremioConfig',
    'LogosConfig',
    'LoggingConfig',
    'NetworkConfig',
    'StorageConfig',
]
