"""Test two-phase playlist generation"""

import asyncio

import pytest

from stremio_m3u.addons.models import ContentItem, Stream
from stremio_m3u.config.settings import LogosConfig
from stremio_m3u.exceptions import ContentFetchError
from stremio_m3u.playlist.driver import PlaylistDriver
from stremio_m3u.playlist.m3u import PlaylistWriter


def make_items(*names):
    return [
        ContentItem(
            id=f"tv_{name.lower()}",
            title=name,
            type='tv',
            year=2025,
            genre='Live TV',
            streams=[Stream(url=f"https://live.example/{name}/index.m3u8", quality='Live')],
            poster=f"https://addon.example/{name}.png",
        )
        for name in names
    ]


class FakeContentSource:
    """Content collaborator returning fresh copies of a fixed item list"""

    def __init__(self, names, error=None, gate=None):
        self.names = names
        self.error = error
        self.gate = gate
        self.calls = 0

    async def fetch_content(self, sources):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return make_items(*self.names)


class FakeCache:
    def __init__(self):
        self.cleanups = 0

    async def cleanup_expired(self):
        self.cleanups += 1
        return 0


class FakeResolver:
    """Logo resolver that maps titles to logos and records concurrency"""

    def __init__(self, logos=None, failing=(), gate=None):
        self.logos = logos or {}
        self.failing = set(failing)
        self.gate = gate
        self.cache = FakeCache()
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def resolve(self, channel_name, fallback_logo=None):
        self.calls.append(channel_name)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(0)
            if channel_name in self.failing:
                raise RuntimeError(f"lookup exploded for {channel_name}")
            return self.logos.get(channel_name, fallback_logo)
        finally:
            self.in_flight -= 1

    async def close(self):
        pass


class CountingWriter(PlaylistWriter):
    def __init__(self, config):
        super().__init__(config)
        self.writes = 0

    def write(self, content):
        self.writes += 1
        return super().write(content)


@pytest.fixture
def writer(playlist_config):
    playlist_config.create_backups = False
    return CountingWriter(playlist_config)


def build_driver(writer, names, resolver, logos=None, **source_kwargs):
    return PlaylistDriver(
        content_source=FakeContentSource(names, **source_kwargs),
        writer=writer,
        resolver=resolver,
        logos=logos or LogosConfig(batch_delay=0),
    )


class TestPlaylistDriver:
    """Test PlaylistDriver phases"""

    @pytest.mark.asyncio
    async def test_generate_returns_before_logo_lookup(self, writer):
        """Phase 1 writes the addon posters without waiting for phase 2"""
        resolver = FakeResolver({'CNN': '/cache/cnn.png'})
        driver = build_driver(writer, ['CNN'], resolver)

        assert await driver.generate() is True

        assert resolver.calls == []
        text = writer.output_path.read_text(encoding='utf-8')
        assert 'tvg-logo="https://addon.example/CNN.png"' in text

        await driver.wait_for_background()

        text = writer.output_path.read_text(encoding='utf-8')
        assert 'tvg-logo="/cache/cnn.png"' in text
        assert writer.writes == 2

    @pytest.mark.asyncio
    async def test_concurrent_generate_is_skipped(self, writer):
        """A second generate while one runs is a no-op"""
        gate = asyncio.Event()
        driver = build_driver(writer, ['CNN'], FakeResolver(), gate=gate)

        first = asyncio.create_task(driver.generate())
        await asyncio.sleep(0)
        assert driver.is_generating is True

        assert await driver.generate() is False
        gate.set()
        assert await first is True

        assert driver.content_source.calls == 1
        assert driver.is_generating is False
        await driver.wait_for_background()

    @pytest.mark.asyncio
    async def test_no_rewrite_when_nothing_changed(self, writer):
        """Phase 2 leaves the file alone if every logo is unchanged"""
        resolver = FakeResolver()
        driver = build_driver(writer, ['CNN', 'NBC'], resolver)

        await driver.generate()
        mtime = writer.output_path.stat().st_mtime_ns
        await driver.wait_for_background()

        assert resolver.calls == ['CNN', 'NBC']
        assert writer.writes == 1
        assert writer.output_path.stat().st_mtime_ns == mtime

    @pytest.mark.asyncio
    async def test_disabled_enhancement_never_runs(self, writer):
        resolver = FakeResolver({'CNN': '/cache/cnn.png'})
        driver = build_driver(writer, ['CNN'], resolver, logos=LogosConfig(enable_wikimedia=False))

        await driver.generate()
        await driver.wait_for_background()

        assert resolver.calls == []
        assert resolver.cache.cleanups == 0
        assert writer.writes == 1

    @pytest.mark.asyncio
    async def test_item_failure_is_contained(self, writer):
        """One failing lookup does not stop its batch or the pass"""
        resolver = FakeResolver({'CNN': '/cache/cnn.png', 'ESPN': '/cache/espn.png'}, failing={'NBC'})
        driver = build_driver(writer, ['CNN', 'NBC', 'ESPN'], resolver)

        await driver.generate()
        await driver.wait_for_background()

        posters = {item.title: item.poster for item in driver.content}
        assert posters == {
            'CNN': '/cache/cnn.png',
            'NBC': 'https://addon.example/NBC.png',
            'ESPN': '/cache/espn.png',
        }
        assert writer.writes == 2

    @pytest.mark.asyncio
    async def test_batches_of_three(self, writer):
        """At most one batch of lookups is in flight at a time"""
        resolver = FakeResolver()
        names = ['A1', 'B2', 'C3', 'D4', 'E5', 'F6', 'G7']
        driver = build_driver(writer, names, resolver)

        await driver.generate()
        await driver.wait_for_background()

        assert resolver.calls == names
        assert resolver.max_in_flight == 3
        assert resolver.cache.cleanups == 1

    @pytest.mark.asyncio
    async def test_superseded_pass_skips_rewrite(self, writer):
        """An older phase 2 does not overwrite a newer phase 1"""
        gate = asyncio.Event()
        resolver = FakeResolver({'CNN': '/cache/cnn.png'}, gate=gate)
        driver = build_driver(writer, ['CNN'], resolver)

        await driver.generate()
        await asyncio.sleep(0)
        await driver.generate()
        gate.set()
        await driver.wait_for_background()

        # two phase 1 writes plus the rewrite from the newest pass only
        assert writer.writes == 3

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates_and_resets(self, writer):
        driver = build_driver(writer, ['CNN'], FakeResolver(), error=ContentFetchError("all addons down"))

        with pytest.raises(ContentFetchError):
            await driver.generate()

        assert driver.is_generating is False
        assert driver.last_successful_generation is None
        assert writer.writes == 0

    @pytest.mark.asyncio
    async def test_status(self, writer):
        driver = build_driver(writer, ['CNN', 'NBC'], FakeResolver())

        await driver.generate()
        await driver.wait_for_background()
        status = driver.status()

        assert status['is_generating'] is False
        assert status['items'] == 2
        assert status['last_successful_generation'] is not None
        assert status['playlist']['entry_count'] == 2

    @pytest.mark.asyncio
    async def test_watch_survives_failed_cycle(self, writer):
        driver = build_driver(writer, ['CNN'], FakeResolver(), error=ContentFetchError("down"))

        await driver.watch(interval=0, max_cycles=2)

        assert driver.content_source.calls == 2
