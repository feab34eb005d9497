"""
Logo resolver: channel name -> best available image reference

Resolution chain, stopping at the first step that yields a reference:
1. Cache hit (no network)
2. Wikimedia Commons: for each generated search term, search, filter the
   candidates and resolve the first acceptable file to an image URL
3. Fallback logo supplied by the caller (usually the addon's own poster)
4. Generated placeholder image URL

Results of steps 2-4 are written to the cache tagged with their source.
``resolve`` never raises: any unexpected error in step 2 is logged and the
chain continues with the fallback.
"""

from typing import Any, Dict, Optional
from urllib.parse import quote

from ..config.settings import LogosConfig, NetworkConfig
from ..utils.helpers import normalize_whitespace
from ..utils.logger import get_logger
from .cache import LogoCache, LogoSource
from .filters import is_valid_logo_file
from .variations import generate_search_terms
from .wikimedia import WikimediaClient, default_user_agent

logger = get_logger(__name__)


class LogoResolver:
    """
    Orchestrates logo lookup across the cache, Wikimedia and fallbacks

    One resolver (and therefore one cache) is created per process and
    shared by everything that needs logos.
    """

    def __init__(
        self,
        config: Optional[LogosConfig] = None,
        network: Optional[NetworkConfig] = None,
        cache: Optional[LogoCache] = None,
        client: Optional[WikimediaClient] = None
    ):
        """
        Initialize logo resolver

        Args:
            config: Logo settings
            network: Network settings (User-Agent override)
            cache: Cache store, built from ``config`` if None
            client: Wikimedia client, built from ``config`` if None
        """
        self.config = config or LogosConfig()
        user_agent = network.user_agent if network and network.user_agent else default_user_agent()

        self.cache = cache or LogoCache(self.config, user_agent=user_agent)
        self.client = client or WikimediaClient(self.config, network)

        self.stats = {
            'cache_hits': 0,
            'wikimedia': 0,
            'fallback': 0,
            'placeholder': 0,
            'search_errors': 0,
        }

    @staticmethod
    def cache_key(channel_name: str) -> str:
        return channel_name.lower()

    def generate_placeholder_logo(self, channel_name: str) -> str:
        """
        Build the placeholder image URL for a channel

        Args:
            channel_name: Channel title

        Returns:
            Placeholder URL with the URL-encoded name as its text
        """
        encoded = quote(channel_name, safe="!*'()")
        return self.config.placeholder_template.format(name=encoded)

    async def search_wikimedia(self, channel_name: str) -> Optional[str]:
        """
        Find a logo on Wikimedia Commons

        Terms are tried in priority order and candidates in search order;
        the first acceptable candidate that resolves to a URL wins.

        Args:
            channel_name: Channel title

        Returns:
            Image URL, or None if no term produced an acceptable file
        """
        for term in generate_search_terms(channel_name):
            candidates = await self.client.search(term)
            for file_title in candidates:
                if not is_valid_logo_file(file_title, term):
                    continue

                url = await self.client.resolve_file_url(file_title)
                if url:
                    logger.debug(f"Wikimedia logo for '{channel_name}': {file_title} (term '{term}')")
                    return url

        return None

    async def resolve(self, channel_name: str, fallback_logo: Optional[str] = None) -> str:
        """
        Resolve the best image reference for a channel

        Args:
            channel_name: Channel title
            fallback_logo: Reference to use if Wikimedia has nothing

        Returns:
            Local file path or URL; always a non-empty reference
        """
        key = self.cache_key(channel_name)

        cached = await self.cache.get(key)
        if cached is not None:
            self.stats['cache_hits'] += 1
            return cached.reference

        url = None
        if normalize_whitespace(channel_name):
            try:
                url = await self.search_wikimedia(channel_name)
            except Exception as e:
                self.stats['search_errors'] += 1
                logger.warning(f"Wikimedia search failed for '{channel_name}': {e}")
                url = None

        if url:
            self.stats['wikimedia'] += 1
            return await self.cache.put(key, url, LogoSource.WIKIMEDIA)

        if fallback_logo:
            self.stats['fallback'] += 1
            return await self.cache.put(key, fallback_logo, LogoSource.FALLBACK_PROVIDED)

        self.stats['placeholder'] += 1
        return await self.cache.put(key, self.generate_placeholder_logo(channel_name), LogoSource.PLACEHOLDER)

    def get_stats(self) -> Dict[str, Any]:
        """Resolution counters plus cache contents summary"""
        return {**self.stats, 'cache': self.cache.stats()}

    async def close(self) -> None:
        """Release HTTP sessions held by the client and the cache"""
        await self.client.close()
        await self.cache.close()
