"""Test configuration and fixtures"""

import tempfile
from pathlib import Path

import aiohttp
import pytest

from stremio_m3u.config.settings import LogosConfig, PlaylistConfig, SourcesConfig

SEARCH_SUFFIX = ' filetype:svg|png|jpg'


class FakeContent:
    """Stand-in for aiohttp's StreamReader"""

    def __init__(self, body: bytes):
        self._body = body

    async def iter_chunked(self, size):
        for start in range(0, len(self._body), size):
            yield self._body[start:start + size]


class FakeResponse:
    """Minimal aiohttp response usable as an async context manager"""

    def __init__(self, status=200, json_data=None, body=b''):
        self.status = status
        self._json = json_data
        self.content = FakeContent(body)

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientError(f"HTTP {self.status}")

    async def json(self, content_type=None):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class RaisingRequest:
    """Request context that fails when entered, like a refused connection"""

    def __init__(self, error):
        self.error = error

    async def __aenter__(self):
        raise self.error

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """
    In-memory replacement for aiohttp.ClientSession

    ``handler(url, params)`` returns a FakeResponse or an exception to raise.
    Every request is recorded in ``calls`` as ``(url, params)``.
    """

    def __init__(self, handler=None):
        self.handler = handler or (lambda url, params: FakeResponse(status=404))
        self.calls = []
        self.closed = False

    def get(self, url, params=None, headers=None, timeout=None):
        params = dict(params or {})
        self.calls.append((url, params))
        result = self.handler(url, params)
        if isinstance(result, BaseException):
            return RaisingRequest(result)
        return result

    async def close(self):
        self.closed = True

    def calls_to(self, fragment):
        return [call for call in self.calls if fragment in call[0]]


def wikimedia_handler(search_results=None, file_urls=None, downloads=None):
    """
    Build a FakeSession handler that emulates Commons and image hosts

    Args:
        search_results: search term -> list of file titles
        file_urls: file title -> image URL
        downloads: image URL -> response body
    """
    search_results = search_results or {}
    file_urls = file_urls or {}
    downloads = downloads or {}

    def handler(url, params):
        if 'api.php' in url:
            if params.get('list') == 'search':
                term = params['srsearch'][:-len(SEARCH_SUFFIX)]
                titles = search_results.get(term, [])
                return FakeResponse(json_data={'query': {'search': [{'title': t} for t in titles]}})

            title = params.get('titles')
            if title in file_urls:
                page = {'title': title, 'imageinfo': [{'thumburl': file_urls[title], 'url': file_urls[title]}]}
                return FakeResponse(json_data={'query': {'pages': {'101': page}}})
            return FakeResponse(json_data={'query': {'pages': {'-1': {'title': title, 'missing': ''}}}})

        if url in downloads:
            return FakeResponse(body=downloads[url])
        return FakeResponse(status=404)

    return handler


class FakeClock:
    """Controllable millisecond clock"""

    def __init__(self, now=1_700_000_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def logos_config(temp_dir):
    """Logo settings pointing at a temporary cache, without batch pauses"""
    return LogosConfig(cache_directory=str(temp_dir / 'logos'), batch_delay=0)


@pytest.fixture
def playlist_config(temp_dir):
    """Playlist settings writing into a temporary directory"""
    return PlaylistConfig(
        output_path=str(temp_dir / 'playlist.m3u'),
        backup_directory=str(temp_dir / 'backups'),
        name='Test Playlist',
    )


@pytest.fixture
def sources_config():
    return SourcesConfig(enabled_addons=['https://addon.example.com/manifest.json'], categories=['movie'])


@pytest.fixture
def fake_clock():
    return FakeClock()
