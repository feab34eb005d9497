"""
Stremio addon client: manifests, catalogs and streams over HTTP

Addons follow the Stremio addon protocol: a ``manifest.json`` describes the
catalogs an addon serves, ``/catalog/{type}/{id}.json`` lists meta objects
and ``/stream/{type}/{id}.json`` lists playable streams for one meta.

Two kinds of addons are handled:

- Live TV addons (a catalog of type "tv", or a catalog id/name mentioning
  "tv" or "live"): up to two TV catalogs are read, 15 channels each, and only
  HLS (.m3u8) streams are kept.
- Catalog addons: for each configured category the ``top``, ``popular`` and
  ``latest`` catalogs are tried in order and the first that answers supplies
  up to ``max_items_per_catalog`` items.

A failing catalog, stream list or meta is logged and skipped. Only when no
configured addon can even deliver its manifest is ContentFetchError raised.
The resulting list is filtered, de-duplicated and sorted by rating and year.
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from ..config.settings import SourcesConfig, StremioConfig
from ..exceptions import ContentFetchError
from ..utils.helpers import dedupe_addon_urls, is_remote_url
from ..utils.logger import get_logger
from .models import ContentItem, Stream

CATALOG_NAMES = ('top', 'popular', 'latest')

MAX_LIVE_CATALOGS = 2
MAX_LIVE_ITEMS = 15


class AddonClient:
    """
    Async fetcher for Stremio addon content

    Owns an aiohttp session created on first use unless one is supplied.
    """

    def __init__(
        self,
        config: Optional[StremioConfig] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize addon client

        Args:
            config: Addon HTTP settings (timeout, User-Agent)
            session: Shared aiohttp session, created on demand if None
        """
        self.config = config or StremioConfig()
        self.logger = get_logger(__name__)

        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={
                'User-Agent': self.config.user_agent,
                'Accept': 'application/json',
            })
            self._owns_session = True
        return self._session

    async def _get_json(self, url: str) -> Dict[str, Any]:
        """
        GET a JSON document from an addon

        Raises:
            aiohttp.ClientError, asyncio.TimeoutError, ValueError: On any failure
        """
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        async with self._get_session().get(url, timeout=timeout) as response:
            response.raise_for_status()
            data = await response.json(content_type=None)

        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object from {url}")
        return data

    @staticmethod
    def base_url(manifest_url: str) -> str:
        if manifest_url.endswith('/manifest.json'):
            return manifest_url[:-len('/manifest.json')]
        return manifest_url.rstrip('/')

    @staticmethod
    def is_live_tv_addon(manifest: Dict[str, Any]) -> bool:
        """Check whether any catalog of the manifest serves live TV"""
        for catalog in manifest.get('catalogs') or []:
            catalog_id = str(catalog.get('id', '')).lower()
            catalog_name = str(catalog.get('name') or '').lower()
            if (catalog.get('type') == 'tv' or 'tv' in catalog_id or 'live' in catalog_id
                    or 'tv' in catalog_name or 'live' in catalog_name):
                return True
        return False

    async def fetch_manifest(self, manifest_url: str) -> Dict[str, Any]:
        """
        Fetch an addon manifest

        Raises:
            aiohttp.ClientError, asyncio.TimeoutError, ValueError: If the manifest is unavailable
        """
        self.logger.debug(f"Fetching addon manifest: {manifest_url}")
        manifest = await self._get_json(manifest_url)
        self.logger.info(f"Loaded addon manifest: {manifest.get('name') or 'Unknown addon'}")
        return manifest

    async def fetch_streams(self, base_url: str, content_type: str, meta_id: str,
                            live_only: bool = False) -> List[Dict[str, Any]]:
        """
        Fetch raw stream objects for one meta

        Args:
            base_url: Addon base URL (without /manifest.json)
            content_type: Stremio content type
            meta_id: Meta id
            live_only: Keep only HLS (.m3u8) streams

        Returns:
            Stream objects that carry a URL, empty on failure
        """
        url = f"{base_url}/stream/{content_type}/{meta_id}.json"
        try:
            data = await self._get_json(url)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.logger.debug(f"Failed to fetch streams for {meta_id}: {e}")
            return []

        streams = [s for s in data.get('streams') or [] if isinstance(s, dict) and s.get('url')]
        if live_only:
            streams = [s for s in streams if '.m3u8' in s['url']]
        return streams

    async def _fetch_live_content(self, base_url: str, manifest: Dict[str, Any],
                                  addon_name: str) -> List[ContentItem]:
        tv_catalogs = [
            catalog for catalog in manifest.get('catalogs') or []
            if catalog.get('type') == 'tv' or 'tv' in str(catalog.get('id', '')).lower()
        ]

        content = []
        for catalog in tv_catalogs[:MAX_LIVE_CATALOGS]:
            catalog_url = f"{base_url}/catalog/{catalog.get('type', 'tv')}/{catalog.get('id')}.json"
            try:
                data = await self._get_json(catalog_url)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                self.logger.debug(f"TV catalog {catalog.get('id')} failed: {e}")
                continue

            for meta in (data.get('metas') or [])[:MAX_LIVE_ITEMS]:
                try:
                    raw_streams = await self.fetch_streams(base_url, 'tv', meta['id'], live_only=True)
                    if not raw_streams:
                        continue
                    streams = [
                        Stream.from_addon_data(s, default_quality='Live',
                                               default_title=meta.get('name') or 'Live Stream')
                        for s in raw_streams
                    ]
                    content.append(ContentItem.from_live_meta(meta, streams, addon_name))
                except (KeyError, TypeError, ValueError) as e:
                    self.logger.debug(f"Skipping live TV item {meta.get('id') if isinstance(meta, dict) else meta}: {e}")

        return content

    async def _fetch_catalog_content(self, base_url: str, category: str, addon_name: str,
                                     sources: SourcesConfig) -> List[ContentItem]:
        for catalog_name in CATALOG_NAMES:
            catalog_url = f"{base_url}/catalog/{category}/{catalog_name}.json"
            try:
                data = await self._get_json(catalog_url)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                self.logger.debug(f"Catalog {catalog_url} failed: {e}")
                continue

            metas = data.get('metas')
            if not isinstance(metas, list):
                continue

            self.logger.info(f"Found {len(metas)} {category} items in {addon_name}")

            content = []
            for meta in metas[:sources.max_items_per_catalog]:
                try:
                    raw_streams = await self.fetch_streams(base_url, category, meta['id'])
                    if not raw_streams:
                        continue
                    streams = [Stream.from_addon_data(s) for s in raw_streams]
                    content.append(ContentItem.from_meta(meta, category, streams, addon_name))
                except (KeyError, TypeError, ValueError) as e:
                    self.logger.debug(f"Skipping item {meta.get('id') if isinstance(meta, dict) else meta}: {e}")
            return content

        self.logger.warning(f"No {category} catalog answered for {addon_name}")
        return []

    async def fetch_addon_content(self, addon_url: str, sources: SourcesConfig) -> List[ContentItem]:
        """
        Fetch all content offered by one addon

        Args:
            addon_url: Addon manifest URL
            sources: Source settings (categories, item limit)

        Returns:
            Unfiltered content items

        Raises:
            aiohttp.ClientError, asyncio.TimeoutError, ValueError: If the manifest is unavailable
        """
        manifest = await self.fetch_manifest(addon_url)
        addon_name = manifest.get('name') or 'Unknown addon'
        base_url = self.base_url(addon_url)

        if self.is_live_tv_addon(manifest):
            self.logger.info(f"Live TV addon detected: {addon_name}")
            return await self._fetch_live_content(base_url, manifest, addon_name)

        content = []
        for category in sources.categories:
            content.extend(await self._fetch_catalog_content(base_url, category, addon_name, sources))
        return content

    async def fetch_content(self, sources: SourcesConfig) -> List[ContentItem]:
        """
        Fetch, filter and sort content from every enabled addon

        Args:
            sources: Source settings

        Returns:
            Filtered, de-duplicated content sorted by rating then year

        Raises:
            ContentFetchError: If addons are configured but none delivered a manifest
        """
        addon_urls = [url for url in dedupe_addon_urls(sources.enabled_addons) if is_remote_url(url)]
        if not addon_urls:
            self.logger.warning("No addon URLs configured")
            return []

        content: List[ContentItem] = []
        failures = []
        for addon_url in addon_urls:
            try:
                content.extend(await self.fetch_addon_content(addon_url, sources))
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                self.logger.warning(f"Failed to load addon {addon_url}: {e}")
                failures.append(addon_url)

        if len(failures) == len(addon_urls):
            raise ContentFetchError(
                f"All {len(addon_urls)} configured addons failed to load",
                details={'addons': failures}
            )

        self.logger.info(f"Fetched {len(content)} items from {len(addon_urls) - len(failures)} addons")
        return self.filter_and_sort(content, sources)

    @staticmethod
    def matches_filters(item: ContentItem, sources: SourcesConfig) -> bool:
        """Apply year, genre and language filters; live TV always passes"""
        if item.is_live:
            return True
        if sources.min_year and (item.year or 0) < sources.min_year:
            return False
        if sources.max_year and (item.year or 0) > sources.max_year:
            return False
        if sources.genres and item.genre not in sources.genres:
            return False
        if sources.languages and item.language not in sources.languages:
            return False
        return True

    def filter_and_sort(self, content: List[ContentItem], sources: SourcesConfig) -> List[ContentItem]:
        """
        Filter, de-duplicate by (title, year) and sort by rating then year, descending

        Args:
            content: Items from all addons
            sources: Filter settings

        Returns:
            New list of items
        """
        seen = set()
        filtered = []
        for item in content:
            if not self.matches_filters(item, sources):
                continue
            key = (item.title, item.year)
            if key in seen:
                continue
            seen.add(key)
            filtered.append(item)

        filtered.sort(key=lambda item: (item.rating, item.year or 0), reverse=True)
        self.logger.info(f"{len(filtered)} items after filtering")
        return filtered

    async def close(self) -> None:
        """Close the HTTP session if this client created it"""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
