"""Test the logo resolution chain"""

from pathlib import Path

import pytest

from conftest import FakeResponse, FakeSession, wikimedia_handler
from stremio_m3u.logos.cache import LogoCache
from stremio_m3u.logos.service import LogoResolver
from stremio_m3u.logos.wikimedia import WikimediaClient

ESPN_URL = 'https://upload.wikimedia.org/thumb/200px-ESPN_wordmark.svg.png'
CNN_URL = 'https://upload.wikimedia.org/thumb/200px-CNN_logo_current.svg.png'


def build_resolver(logos_config, handler):
    session = FakeSession(handler)
    cache = LogoCache(logos_config, session=session)
    client = WikimediaClient(logos_config, session=session)
    return LogoResolver(logos_config, cache=cache, client=client), session


class TestLogoResolver:
    """Test LogoResolver.resolve"""

    @pytest.mark.asyncio
    async def test_second_resolve_is_a_cache_hit(self, logos_config):
        """Resolving the same channel twice searches the index once"""
        resolver, session = build_resolver(logos_config, wikimedia_handler(
            search_results={'ESPN': ['File:ESPN_wordmark.svg']},
            file_urls={'File:ESPN_wordmark.svg': ESPN_URL},
            downloads={ESPN_URL: b'espn'},
        ))

        first = await resolver.resolve('ESPN')
        calls_after_first = len(session.calls)
        second = await resolver.resolve('ESPN')

        assert first == second
        assert len(session.calls) == calls_after_first
        assert len([c for c in session.calls if c[1].get('list') == 'search']) == 1
        assert resolver.stats['cache_hits'] == 1

    @pytest.mark.asyncio
    async def test_cable_news_network_scenario(self, logos_config):
        """Full-name search finds the abbreviated logo file and caches it locally"""
        resolver, session = build_resolver(logos_config, wikimedia_handler(
            search_results={'Cable News Network logo': ['File:CNN_logo_current.svg']},
            file_urls={'File:CNN_logo_current.svg': CNN_URL},
            downloads={CNN_URL: b'cnn'},
        ))

        reference = await resolver.resolve('Cable News Network')

        assert Path(reference).read_bytes() == b'cnn'
        assert Path(reference).name == 'cable_news_network.png'

        calls_before = len(session.calls)
        entry = await resolver.cache.get('cable news network')
        assert entry.reference == reference
        assert entry.source == 'wikimedia'
        assert len(session.calls) == calls_before

    @pytest.mark.asyncio
    async def test_terms_tried_in_priority_order(self, logos_config):
        """The first term with an acceptable candidate wins"""
        resolver, session = build_resolver(logos_config, wikimedia_handler(
            search_results={
                'NBC logo': ['File:NBC_logo.svg'],
                'NBC television logo': ['File:NBC_television_logo.svg'],
            },
            file_urls={
                'File:NBC_logo.svg': 'https://upload.example/nbc.svg',
                'File:NBC_television_logo.svg': 'https://upload.example/nbc-tv.svg',
            },
        ))
        resolver.config.download_files = False

        assert await resolver.resolve('NBC') == 'https://upload.example/nbc.svg'
        searched = [c[1]['srsearch'] for c in session.calls if c[1].get('list') == 'search']
        assert searched == ['NBC filetype:svg|png|jpg', 'NBC logo filetype:svg|png|jpg']

    @pytest.mark.asyncio
    async def test_malformed_reply_moves_on_to_next_term(self, logos_config):
        """A garbled answer for one term counts as no result for that term"""
        commons = wikimedia_handler(
            search_results={'CNN logo': ['File:CNN_logo.svg']},
            file_urls={'File:CNN_logo.svg': 'https://upload.example/cnn.svg'},
        )

        def handler(url, params):
            if params.get('srsearch') == 'CNN filetype:svg|png|jpg':
                return FakeResponse(json_data={'query': ['oops']})
            return commons(url, params)

        resolver, session = build_resolver(logos_config, handler)
        resolver.config.download_files = False

        reference = await resolver.resolve('CNN', 'https://addon.example/cnn.png')

        assert reference == 'https://upload.example/cnn.svg'
        searched = [c[1]['srsearch'] for c in session.calls if c[1].get('list') == 'search']
        assert searched == ['CNN filetype:svg|png|jpg', 'CNN logo filetype:svg|png|jpg']
        assert resolver.stats['search_errors'] == 0

    @pytest.mark.asyncio
    async def test_filtered_candidates_are_skipped(self, logos_config):
        """Rejected candidates are never resolved"""
        resolver, session = build_resolver(logos_config, wikimedia_handler(
            search_results={'NBC': ['File:NBC_logo_1986.png', 'File:NBC_logo.svg']},
            file_urls={
                'File:NBC_logo_1986.png': 'https://upload.example/old.png',
                'File:NBC_logo.svg': 'https://upload.example/nbc.svg',
            },
        ))
        resolver.config.download_files = False

        assert await resolver.resolve('NBC') == 'https://upload.example/nbc.svg'
        resolved_titles = [c[1]['titles'] for c in session.calls if 'titles' in c[1]]
        assert resolved_titles == ['File:NBC_logo.svg']

    @pytest.mark.asyncio
    async def test_fallback_logo_when_nothing_found(self, logos_config):
        resolver, _ = build_resolver(logos_config, wikimedia_handler())
        resolver.config.download_files = False

        reference = await resolver.resolve('Local Channel', 'https://addon.example/poster.jpg')

        assert reference == 'https://addon.example/poster.jpg'
        assert (await resolver.cache.get('local channel')).source == 'fallbackProvided'

    @pytest.mark.asyncio
    async def test_placeholder_when_no_fallback(self, logos_config):
        resolver, _ = build_resolver(logos_config, wikimedia_handler())

        reference = await resolver.resolve('Local Channel')

        assert reference == 'https://via.placeholder.com/200x200/1e3a8a/ffffff?text=Local%20Channel'
        assert (await resolver.cache.get('local channel')).source == 'placeholder'

    @pytest.mark.asyncio
    async def test_unexpected_search_error_falls_back(self, logos_config):
        """The resolver never raises"""
        resolver, _ = build_resolver(logos_config, wikimedia_handler())

        async def broken_search(term):
            raise RuntimeError('unexpected')

        resolver.client.search = broken_search

        reference = await resolver.resolve('ESPN')

        assert reference.startswith('https://via.placeholder.com/')
        assert resolver.stats['search_errors'] == 1

    @pytest.mark.asyncio
    async def test_cache_key_is_lower_case(self, logos_config):
        resolver, session = build_resolver(logos_config, wikimedia_handler())
        await resolver.resolve('ESPN')
        calls = len(session.calls)

        await resolver.resolve('espn')

        assert len(session.calls) == calls

    def test_placeholder_encoding(self, logos_config):
        resolver = LogoResolver(logos_config)
        assert resolver.generate_placeholder_logo('A&E (US)') == (
            'https://via.placeholder.com/200x200/1e3a8a/ffffff?text=A%26E%20(US)'
        )
