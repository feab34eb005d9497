"""
Wikimedia Commons client for channel logo lookup

Two read-only calls against the public MediaWiki API:
- search(term): file-namespace full-text search restricted to image files
- resolve_file_url(title): image info for one file, preferring a fixed-width
  thumbnail so every logo in the playlist has a consistent size

The client never raises to its caller. Network errors, timeouts and
malformed responses are logged at debug level and reported as "no result"
(an empty list or None), which the resolver treats as a miss for that term.

Every request identifies the application with a descriptive User-Agent as
the Wikimedia API etiquette asks.
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from .. import __description__, __title__, __version__
from ..config.settings import LogosConfig, NetworkConfig
from ..utils.logger import get_logger

logger = get_logger(__name__)

COMMONS_API_URL = "https://commons.wikimedia.org/w/api.php"

# MediaWiki namespace holding "File:" pages
FILE_NAMESPACE = 6

SEARCH_FILE_TYPES = "filetype:svg|png|jpg"


def default_user_agent() -> str:
    """Client identification header value: name, version and description"""
    return f"{__title__}/{__version__} ({__description__})"


class WikimediaClient:
    """
    Async client for the Wikimedia Commons search and image-info APIs

    The aiohttp session is created lazily on first use unless one is passed
    in. A passed-in session is owned by the caller and is not closed by
    ``close()``.
    """

    def __init__(
        self,
        config: Optional[LogosConfig] = None,
        network: Optional[NetworkConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        api_url: str = COMMONS_API_URL
    ):
        """
        Initialize Wikimedia client

        Args:
            config: Logo settings (timeouts, result limit, thumbnail width)
            network: Network settings (User-Agent override)
            session: Shared aiohttp session, created on demand if None
            api_url: MediaWiki API endpoint
        """
        self.config = config or LogosConfig()
        self.api_url = api_url
        self.user_agent = (network.user_agent if network and network.user_agent else default_user_agent())

        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={'User-Agent': self.user_agent})
            self._owns_session = True
        return self._session

    async def _get_json(self, params: Dict[str, Any]) -> Dict[str, Any]:
        session = self._get_session()
        timeout = aiohttp.ClientTimeout(total=self.config.search_timeout)

        async with session.get(
            self.api_url,
            params=params,
            headers={'User-Agent': self.user_agent},
            timeout=timeout
        ) as response:
            response.raise_for_status()
            data = await response.json(content_type=None)

        if not isinstance(data, dict):
            raise ValueError(f"Unexpected response type: {type(data).__name__}")
        return data

    async def search(self, term: str) -> List[str]:
        """
        Search Commons for image files matching a term

        Args:
            term: Free-text search term (e.g. "NBC logo")

        Returns:
            File titles ("File:...") in relevance order, empty on any failure
        """
        params = {
            'action': 'query',
            'format': 'json',
            'list': 'search',
            'srsearch': f"{term} {SEARCH_FILE_TYPES}",
            'srnamespace': FILE_NAMESPACE,
            'srlimit': self.config.search_limit,
            'origin': '*',
        }

        try:
            data = await self._get_json(params)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.debug(f"Wikimedia search failed for '{term}': {e}")
            return []

        query = data.get('query') or {}
        results = query.get('search') if isinstance(query, dict) else None
        if not isinstance(results, list):
            logger.debug(f"Wikimedia search for '{term}' returned no result list")
            return []

        titles = [result['title'] for result in results if isinstance(result, dict) and result.get('title')]

        logger.debug(f"Wikimedia search '{term}' returned {len(titles)} files")
        return titles

    async def resolve_file_url(self, file_title: str) -> Optional[str]:
        """
        Look up the image URL for a Commons file

        The thumbnail URL at the configured width is preferred; the original
        file URL is used when no thumbnail is offered.

        Args:
            file_title: Exact file title as returned by ``search``

        Returns:
            Image URL, or None if the page is missing or the lookup failed
        """
        params = {
            'action': 'query',
            'format': 'json',
            'titles': file_title,
            'prop': 'imageinfo',
            'iiprop': 'url|size',
            'iiurlwidth': self.config.thumbnail_width,
            'origin': '*',
        }

        try:
            data = await self._get_json(params)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.debug(f"Wikimedia file info failed for '{file_title}': {e}")
            return None

        query = data.get('query') or {}
        pages = query.get('pages') if isinstance(query, dict) else None
        if not isinstance(pages, dict):
            return None

        for page in pages.values():
            image_info = page.get('imageinfo') if isinstance(page, dict) else None
            if not isinstance(image_info, list) or not image_info or not isinstance(image_info[0], dict):
                continue
            info = image_info[0]
            url = info.get('thumburl') or info.get('url')
            if url:
                return url

        logger.debug(f"No image info for '{file_title}'")
        return None

    async def close(self) -> None:
        """Close the HTTP session if this client created it"""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
