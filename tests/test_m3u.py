"""Test M3U serialization and playlist files"""

import pytest

from stremio_m3u.addons.models import ContentItem, Stream
from stremio_m3u.exceptions import PlaylistWriteError
from stremio_m3u.playlist.m3u import PlaylistWriter, format_title, generate_channel_id, get_group_title


@pytest.fixture
def movie():
    return ContentItem(
        id='tt0111161',
        title='The "Shawshank" Redemption',
        type='movie',
        year=1994,
        genre='Drama',
        language='en',
        streams=[
            Stream(url='https://cdn.example/shawshank.mp4', quality='1080p', source='HTTP'),
            Stream(url='https://debridio.com/x.m3u8', quality='720p', source='Debridio'),
        ],
        poster='https://img.example/shawshank.jpg',
        imdb_rating='9.3',
        duration=142,
    )


@pytest.fixture
def channel():
    return ContentItem(
        id='tv_cnn',
        title='CNN',
        type='tv',
        year=2025,
        genre='Live TV',
        language='es',
        streams=[Stream(url='https://live.example/cnn.m3u8', quality='Live', source='HTTP')],
        poster=None,
    )


class TestFormatting:
    """Test title, group and id helpers"""

    def test_format_title(self, movie):
        assert format_title(movie, movie.streams[0]) == 'The "Shawshank" Redemption (1994) [1080p]'
        assert format_title(movie, movie.streams[1]).endswith('[720p] - Debridio')

    def test_group_title(self, movie, channel):
        assert get_group_title(movie) == 'Movies - Drama'
        assert get_group_title(channel) == 'Tvs - Live TV - ES'

    def test_channel_id(self, movie):
        assert generate_channel_id(movie, movie.streams[1]) == 'theshawshankredempti-debridio'


class TestPlaylistWriter:
    """Test PlaylistWriter output"""

    def test_render(self, playlist_config, movie, channel):
        text = PlaylistWriter(playlist_config).render([movie, channel])
        lines = text.splitlines()

        assert lines[0] == '#EXTM3U'
        assert lines[1] == '#PLAYLIST:Test Playlist'
        assert text.count('#EXTINF:') == 3
        assert '#EXTINF:8520 tvg-id="theshawshankredempti-http"' in text
        assert "tvg-name=\"The 'Shawshank' Redemption (1994) [1080p]\"" in text
        assert 'tvg-logo="https://img.example/shawshank.jpg"' in text
        assert 'tvg-chno="3"' in text
        assert 'tvg-language="es"' in text
        assert '#EXTIMG:https://img.example/shawshank.jpg' in text
        assert '#EXTRATING:9.3' in text
        assert 'https://live.example/cnn.m3u8' in lines

    def test_live_channel_has_no_duration_or_logo(self, playlist_config, channel):
        text = PlaylistWriter(playlist_config).render([channel])
        extinf = next(line for line in text.splitlines() if line.startswith('#EXTINF'))

        assert extinf.startswith('#EXTINF:-1 ')
        assert 'tvg-logo' not in extinf

    def test_items_without_streams_are_skipped(self, playlist_config, movie):
        movie.streams = [Stream(url='https://x.example/a', availability=False)]
        assert '#EXTINF' not in PlaylistWriter(playlist_config).render([movie])

    def test_write_and_stats(self, playlist_config, movie):
        writer = PlaylistWriter(playlist_config)
        path = writer.write([movie])

        stats = writer.get_stats()

        assert path.exists()
        assert stats['exists'] is True
        assert stats['entry_count'] == 2
        assert stats['file_size'] == path.stat().st_size

    def test_stats_without_file(self, playlist_config):
        stats = PlaylistWriter(playlist_config).get_stats()
        assert stats['exists'] is False
        assert stats['entry_count'] == 0

    def test_backups_are_pruned(self, playlist_config, movie):
        playlist_config.max_backups = 2
        writer = PlaylistWriter(playlist_config)

        for _ in range(5):
            writer.write([movie])

        assert len(list(writer.backup_dir.glob('playlist.backup_*.m3u'))) == 2

    def test_unwritable_output_raises(self, playlist_config, movie, temp_dir):
        blocker = temp_dir / 'blocker'
        blocker.write_text('file, not a directory', encoding='utf-8')
        playlist_config.output_path = str(blocker / 'playlist.m3u')
        playlist_config.create_backups = False

        with pytest.raises(PlaylistWriteError):
            PlaylistWriter(playlist_config).write([movie])
