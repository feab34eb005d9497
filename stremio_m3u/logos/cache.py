"""
Two-tier logo cache: in-memory map over a persistent JSON metadata table

Layout on disk (directory created on first write):

    <cache_directory>/
        logo_cache.json        {key: {key, url, local_path, source, timestamp_ms}}
        cnn.svg                downloaded files, named {sanitized key}{extension}
        fox_news_hd.png

Lookup order is memory, then the persistent table, then a miss. Persistent
entries older than the TTL (30 days by default) are evicted when read, as
are entries whose downloaded file has disappeared. Memory hits skip the TTL
check but still confirm the file exists.

Every mutation rewrites the whole metadata file through a temporary file and
``os.replace``, so a reader never sees a half-written table. Metadata and
download errors are logged and never propagate to the resolver.
"""

import asyncio
import json
import os
import tempfile
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import aiohttp

from ..config.settings import LogosConfig
from ..exceptions import LogoCacheError
from ..utils.helpers import (
    atomic_write_text,
    current_timestamp_ms,
    ensure_directory,
    guess_image_extension,
    is_remote_url,
    sanitize_cache_key,
)
from ..utils.logger import get_logger
from .wikimedia import default_user_agent

logger = get_logger(__name__)

MS_PER_DAY = 24 * 60 * 60 * 1000

DOWNLOAD_CHUNK_SIZE = 8192


class LogoSource(str, Enum):
    """Which step of the resolution chain produced a cached reference"""
    WIKIMEDIA = 'wikimedia'
    FALLBACK_PROVIDED = 'fallbackProvided'
    PLACEHOLDER = 'placeholder'


# Sources whose URL is fetched and stored locally
DOWNLOADABLE_SOURCES = (LogoSource.WIKIMEDIA, LogoSource.FALLBACK_PROVIDED)


@dataclass
class CacheEntry:
    """
    One persisted logo cache record

    Entries are only ever replaced as a whole, never updated field by field.

    Attributes:
        key: Lower-cased channel name
        url: Image URL (or reference) the entry was created from
        local_path: Downloaded copy of ``url``, None if not downloaded
        source: Source tag value (see LogoSource)
        timestamp_ms: Creation time in epoch milliseconds
    """
    key: str
    url: str
    local_path: Optional[str]
    source: str
    timestamp_ms: int

    @property
    def reference(self) -> str:
        """Image reference handed to the playlist: local file if any, else URL"""
        return self.local_path or self.url

    def is_expired(self, now_ms: int, ttl_ms: int) -> bool:
        return now_ms - self.timestamp_ms > ttl_ms

    def file_missing(self) -> bool:
        return bool(self.local_path) and not Path(self.local_path).exists()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CacheEntry':
        """
        Build an entry from its persisted form

        Raises:
            KeyError, TypeError, ValueError: If required fields are missing or malformed
        """
        return cls(
            key=str(data['key']),
            url=str(data['url']),
            local_path=data.get('local_path') or None,
            source=str(data.get('source') or LogoSource.PLACEHOLDER.value),
            timestamp_ms=int(data['timestamp_ms']),
        )


class LogoCache:
    """
    Logo cache store owned by the logo resolver

    Not safe for use from several processes at once; within one event loop
    all mutations are plain dict updates followed by a whole-file write.
    """

    def __init__(
        self,
        config: Optional[LogosConfig] = None,
        cache_dir: Optional[Path] = None,
        session: Optional[aiohttp.ClientSession] = None,
        clock: Callable[[], int] = current_timestamp_ms,
        user_agent: Optional[str] = None
    ):
        """
        Initialize logo cache

        Args:
            config: Logo settings (directory, TTL, download switch and timeout)
            cache_dir: Override for ``config.cache_directory``
            session: Shared aiohttp session for downloads, created on demand if None
            clock: Returns the current time in epoch milliseconds
            user_agent: User-Agent for downloads
        """
        self.config = config or LogosConfig()
        self.cache_dir = Path(cache_dir or self.config.cache_directory).expanduser()
        self.metadata_path = self.cache_dir / self.config.metadata_file
        self.ttl_ms = int(self.config.cache_ttl_days) * MS_PER_DAY
        self.clock = clock
        self.user_agent = user_agent or default_user_agent()

        self._memory: Dict[str, CacheEntry] = {}
        self._entries: Dict[str, CacheEntry] = {}
        self._loaded = False
        self._write_lock = asyncio.Lock()
        self._key_locks: Dict[str, asyncio.Lock] = {}

        self._session = session
        self._owns_session = session is None

    # Persistence

    def _read_metadata(self) -> Dict[str, CacheEntry]:
        """
        Read the metadata table from disk

        Raises:
            LogoCacheError: If the file exists but cannot be read or parsed
        """
        if not self.metadata_path.exists():
            return {}

        try:
            with open(self.metadata_path, 'r', encoding='utf-8') as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            raise LogoCacheError(
                f"Cannot read logo cache metadata: {e}",
                details={'path': str(self.metadata_path)}
            ) from e

        if not isinstance(payload, dict):
            raise LogoCacheError(
                "Logo cache metadata is not a JSON object",
                details={'path': str(self.metadata_path)}
            )

        entries = {}
        for key, raw in payload.items():
            try:
                entry = CacheEntry.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed cache entry '{key}': {e}")
                continue
            entries[key] = entry
        return entries

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True

        try:
            self._entries = self._read_metadata()
        except LogoCacheError as e:
            logger.warning(f"{e}; starting with an empty logo cache")
            self._entries = {}
            return

        logger.debug(f"Loaded {len(self._entries)} logo cache entries from {self.metadata_path}")

    async def _write_metadata(self) -> None:
        """
        Persist the whole metadata table

        The table is serialized on the event loop and written from a worker
        thread. Writes are serialized so the last snapshot taken is the one
        left on disk.

        Raises:
            LogoCacheError: If the file cannot be written
        """
        async with self._write_lock:
            payload = {key: entry.to_dict() for key, entry in self._entries.items()}
            text = json.dumps(payload, indent=2, ensure_ascii=False)
            try:
                await asyncio.to_thread(atomic_write_text, self.metadata_path, text)
            except OSError as e:
                raise LogoCacheError(
                    f"Cannot write logo cache metadata: {e}",
                    details={'path': str(self.metadata_path)}
                ) from e

    async def _save(self) -> bool:
        try:
            await self._write_metadata()
            return True
        except LogoCacheError as e:
            logger.error(str(e))
            return False

    def _remove_file(self, path: Optional[str]) -> None:
        if not path:
            return
        try:
            Path(path).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Could not remove cached logo {path}: {e}")

    # Lookup and mutation

    async def get(self, key: str) -> Optional[CacheEntry]:
        """
        Look up a cache entry

        Args:
            key: Lower-cased channel name

        Returns:
            The live entry, or None if absent, expired or its file is gone
        """
        entry = self._memory.get(key)
        if entry is not None:
            if entry.file_missing():
                logger.debug(f"Cached logo file vanished for '{key}', evicting")
                await self.evict(key)
                return None
            return entry

        self._load()
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self.clock(), self.ttl_ms):
            logger.debug(f"Logo cache entry for '{key}' expired, evicting")
            await self.evict(key)
            return None

        if entry.file_missing():
            logger.debug(f"Cached logo file vanished for '{key}', evicting")
            await self.evict(key)
            return None

        self._memory[key] = entry
        return entry

    async def put(self, key: str, url: str, source: LogoSource) -> str:
        """
        Store an image reference, downloading it when possible

        Remote references from Wikimedia or the addon are downloaded into the
        cache directory; placeholders and local paths are stored as-is. A
        failed download stores the bare URL instead.

        Args:
            key: Lower-cased channel name
            url: Image reference to store
            source: Resolution step that produced the reference

        Returns:
            Reference to use from now on (local path if downloaded, else URL)
        """
        self._load()
        source = LogoSource(source)

        # Same-key puts run one at a time; they share a target file
        lock = self._key_locks.setdefault(key, asyncio.Lock())
        async with lock:
            local_path = None
            if self.config.download_files and source in DOWNLOADABLE_SOURCES and is_remote_url(url):
                local_path = await self._download(key, url)

            previous = self._entries.get(key)
            if (previous is not None and previous.local_path
                    and previous.local_path not in (local_path, str(self._target_path(key, url)))):
                self._remove_file(previous.local_path)

            entry = CacheEntry(
                key=key,
                url=url,
                local_path=local_path,
                source=source.value,
                timestamp_ms=self.clock(),
            )
            self._memory[key] = entry
            self._entries[key] = entry
            await self._save()

        logger.debug(f"Cached logo for '{key}' from {source.value}: {entry.reference}")
        return entry.reference

    async def evict(self, key: str) -> bool:
        """
        Remove an entry and its downloaded file

        Args:
            key: Lower-cased channel name

        Returns:
            True if an entry was removed
        """
        self._load()
        entry = self._entries.pop(key, None) or self._memory.get(key)
        self._memory.pop(key, None)

        if entry is None:
            return False

        self._remove_file(entry.local_path)
        await self._save()
        return True

    def clear(self) -> None:
        """Drop the in-memory map; persisted entries and files stay"""
        count = len(self._memory)
        self._memory.clear()
        logger.info(f"Cleared {count} in-memory logo cache entries")

    async def cleanup_expired(self) -> int:
        """
        Evict every persisted entry that is expired or lost its file

        Returns:
            Number of entries removed
        """
        self._load()
        now = self.clock()
        stale = [
            key for key, entry in self._entries.items()
            if entry.is_expired(now, self.ttl_ms) or entry.file_missing()
        ]
        if not stale:
            return 0

        for key in stale:
            entry = self._entries.pop(key)
            self._memory.pop(key, None)
            self._remove_file(entry.local_path)
        await self._save()

        logger.info(f"Removed {len(stale)} stale logo cache entries")
        return len(stale)

    async def purge(self) -> int:
        """
        Evict every entry and delete every downloaded file

        Returns:
            Number of entries removed
        """
        self._load()
        count = len(self._entries)
        for entry in self._entries.values():
            self._remove_file(entry.local_path)
        self._entries.clear()
        self._memory.clear()
        await self._save()

        logger.info(f"Purged {count} logo cache entries")
        return count

    def keys(self) -> List[str]:
        self._load()
        return sorted(self._entries)

    def stats(self) -> Dict[str, Any]:
        """
        Summarize cache contents

        Returns:
            Dictionary with entry counts, keys, per-source counts and bytes on disk
        """
        self._load()
        disk_bytes = 0
        by_source: Dict[str, int] = {}
        for entry in self._entries.values():
            by_source[entry.source] = by_source.get(entry.source, 0) + 1
            if entry.local_path:
                try:
                    disk_bytes += Path(entry.local_path).stat().st_size
                except OSError:
                    pass

        return {
            'memory_entries': len(self._memory),
            'persistent_entries': len(self._entries),
            'keys': self.keys(),
            'by_source': by_source,
            'disk_bytes': disk_bytes,
            'cache_directory': str(self.cache_dir),
        }

    # Downloads

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={'User-Agent': self.user_agent})
            self._owns_session = True
        return self._session

    def _target_path(self, key: str, url: str) -> Path:
        return self.cache_dir / f"{sanitize_cache_key(key)}{guess_image_extension(url)}"

    async def _download(self, key: str, url: str) -> Optional[str]:
        """
        Stream a remote image into the cache directory

        The body goes to a uniquely named ``.part`` file that is renamed once
        complete. File writes run in a worker thread. An empty body counts as
        a failure.

        Args:
            key: Cache key, used for the file name
            url: Remote image URL

        Returns:
            Local file path, or None if the download failed
        """
        target = self._target_path(key, url)
        timeout = aiohttp.ClientTimeout(total=self.config.download_timeout)
        partial = None

        try:
            ensure_directory(self.cache_dir)
            fd, partial = tempfile.mkstemp(prefix=f".{target.name}.", suffix='.part', dir=str(self.cache_dir))
            size = 0
            with os.fdopen(fd, 'wb') as f:
                session = self._get_session()
                async with session.get(url, timeout=timeout, headers={'User-Agent': self.user_agent}) as response:
                    response.raise_for_status()
                    async for chunk in response.content.iter_chunked(DOWNLOAD_CHUNK_SIZE):
                        await asyncio.to_thread(f.write, chunk)
                        size += len(chunk)

            if size == 0:
                self._remove_file(partial)
                logger.warning(f"Logo download for '{key}' returned an empty file: {url}")
                return None

            os.replace(partial, target)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self._remove_file(partial)
            logger.warning(f"Logo download failed for '{key}': {e}")
            return None

        logger.debug(f"Downloaded logo for '{key}' to {target}")
        return str(target)

    async def close(self) -> None:
        """Close the download session if this cache created it"""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
