"""
Stremio-M3U: M3U playlists from Stremio addons with automatic channel logos

Stremio-M3U pulls catalog and stream metadata from manifest-based Stremio addons
and writes an M3U playlist that IPTV players (Emby, Jellyfin, Kodi, VLC) can
consume directly. The playlist is refreshed on a schedule and its channel logos
are improved in the background from Wikimedia Commons.

## Core Architecture

**Configuration Management (`stremio_m3u/config/`)**
- Dataclass sections loaded from YAML files and environment variables
- Addon URL normalization and de-duplication

**Addon Integration (`stremio_m3u/addons/`)**
- Manifest, catalog and stream fetching for regular and live TV addons
- Content filtering, de-duplication and ranking

**Logo Resolution (`stremio_m3u/logos/`)**
- Search-term generation from free-text channel names
- Wikimedia Commons search and file lookup
- Candidate ranking heuristics for current, canonical logo files
- Two-tier cache (memory + on-disk metadata and files) with 30 day expiry

**Playlist Generation (`stremio_m3u/playlist/`)**
- M3U serialization with Emby-compatible attributes
- Two-phase generation: ship the playlist fast, improve logos afterwards

**Utilities (`stremio_m3u/utils/`)**
- Console/file logging with progress reporting
- Filename, URL and atomic file-write helpers

## Two-Phase Generation

Phase 1 fetches content and writes the playlist immediately using the posters
supplied by the addons. Phase 2 runs detached from the caller, resolves a logo
for every channel in small batches and rewrites the playlist only if at least
one logo changed.
"""

__title__ = "stremio-m3u"
__version__ = "1.2.0"
__description__ = "M3U playlist generator for Stremio addons"
__author__ = "Stremio-M3U Team"

__all__ = ['__title__', '__version__', '__description__', '__author__']
