"""
M3U playlist serialization and file output

The playlist uses extended M3U with IPTV attributes understood by Emby,
Jellyfin and most IPTV players:

    #EXTM3U
    #PLAYLIST:Stremio Playlist

    #EXTINF:-1 tvg-id="cnn-http" tvg-name="CNN (2025) [Live]" tvg-logo="..." group-title="Tvs - Live TV" tvg-chno="1" tvg-genre="Live TV",CNN (2025) [Live]
    #EXTGRP:Tvs - Live TV
    #EXTIMG:...
    #EXTYEAR:2025
    #EXTGENRE:Live TV
    #EXTRATING:0.0
    https://example.com/cnn/index.m3u8

Each available stream of an item becomes its own entry. The file is always
replaced as a whole, so readers see either the previous or the new version.
"""

import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.settings import PlaylistConfig
from ..exceptions import PlaylistWriteError
from ..utils.helpers import atomic_write_text, create_backup_filename, ensure_directory
from ..utils.logger import get_logger
from ..addons.models import ContentItem, Stream

logger = get_logger(__name__)


def sanitize_attribute(value: Optional[str]) -> str:
    """Make a value safe for a quoted EXTINF attribute"""
    if not value:
        return ''
    return str(value).replace('"', "'").replace('\n', ' ').replace('\r', ' ').strip()


def format_title(item: ContentItem, stream: Stream) -> str:
    """Entry title: ``title (year) [quality] - source``, source omitted for plain HTTP"""
    title = item.title
    if item.year:
        title += f" ({item.year})"
    if stream.quality:
        title += f" [{stream.quality}]"
    if stream.source and stream.source != 'HTTP':
        title += f" - {stream.source}"
    return title


def get_group_title(item: ContentItem) -> str:
    parts = []
    if item.type:
        parts.append(item.type[:1].upper() + item.type[1:] + 's')
    if item.genre:
        parts.append(item.genre)
    if item.language and item.language != 'en':
        parts.append(item.language.upper())
    return ' - '.join(parts) or 'General'


def generate_channel_id(item: ContentItem, stream: Stream) -> str:
    """Stable EPG id from the item title and stream source"""
    base_id = re.sub(r'[^a-z0-9]', '', item.title.lower())[:20]
    stream_id = re.sub(r'[^a-z0-9]', '', stream.source.lower())[:10] if stream.source else 'default'
    return f"{base_id}-{stream_id}"


class PlaylistWriter:
    """
    Writes content items to an M3U file

    Keeps timestamped backups of the previous file when enabled.
    """

    def __init__(self, config: Optional[PlaylistConfig] = None):
        """
        Initialize playlist writer

        Args:
            config: Playlist settings (output path, name, backups)
        """
        self.config = config or PlaylistConfig()
        self.output_path = Path(self.config.output_path).expanduser()
        self.backup_dir = Path(self.config.backup_directory).expanduser()

    @staticmethod
    def validate_content(content: List[ContentItem]) -> List[ContentItem]:
        """Keep items that have a title and at least one available stream"""
        return [item for item in content if item.title and item.available_streams]

    def render(self, content: List[ContentItem]) -> str:
        """
        Serialize content items to M3U text

        Args:
            content: Items to write (invalid items are skipped)

        Returns:
            Complete playlist text
        """
        lines = ['#EXTM3U', f"#PLAYLIST:{self.config.name}", '']
        channel_number = 1

        for item in self.validate_content(content):
            duration = int(item.duration * 60) if item.duration else -1
            group_title = get_group_title(item)

            for stream in item.available_streams:
                title = format_title(item, stream)

                extinf = f'#EXTINF:{duration} tvg-id="{generate_channel_id(item, stream)}"'
                extinf += f' tvg-name="{sanitize_attribute(title)}"'
                if item.poster:
                    extinf += f' tvg-logo="{item.poster}"'
                extinf += f' group-title="{sanitize_attribute(group_title)}"'
                extinf += f' tvg-chno="{channel_number}"'
                if item.genre:
                    extinf += f' tvg-genre="{sanitize_attribute(item.genre)}"'
                if item.language and item.language != 'en':
                    extinf += f' tvg-language="{item.language}"'
                lines.append(f"{extinf},{title}")

                lines.append(f"#EXTGRP:{group_title}")
                if item.poster:
                    lines.append(f"#EXTIMG:{item.poster}")
                if item.year:
                    lines.append(f"#EXTYEAR:{item.year}")
                if item.genre:
                    lines.append(f"#EXTGENRE:{item.genre}")
                if item.imdb_rating:
                    lines.append(f"#EXTRATING:{item.imdb_rating}")
                lines.append(stream.url)
                lines.append('')

                channel_number += 1

        return '\n'.join(lines) + '\n'

    def create_backup(self) -> Optional[Path]:
        """
        Copy the current playlist into the backup directory

        Returns:
            Backup path, or None if there was nothing to back up or it failed
        """
        if not self.config.create_backups or not self.output_path.exists():
            return None

        try:
            ensure_directory(self.backup_dir)
            backup_path = self.backup_dir / create_backup_filename(self.output_path)
            shutil.copy2(self.output_path, backup_path)
        except OSError as e:
            logger.warning(f"Playlist backup failed: {e}")
            return None

        logger.debug(f"Playlist backup created: {backup_path}")
        self._prune_backups()
        return backup_path

    def _prune_backups(self) -> None:
        pattern = f"{self.output_path.stem}.backup_*{self.output_path.suffix}"
        backups = sorted(self.backup_dir.glob(pattern), key=lambda p: p.name, reverse=True)
        for old in backups[max(self.config.max_backups, 0):]:
            try:
                old.unlink()
            except OSError as e:
                logger.debug(f"Could not remove old backup {old}: {e}")

    def write(self, content: List[ContentItem]) -> Path:
        """
        Write the playlist file

        Args:
            content: Items to write

        Returns:
            Path of the written playlist

        Raises:
            PlaylistWriteError: If the file cannot be written
        """
        text = self.render(content)
        self.create_backup()

        try:
            atomic_write_text(self.output_path, text)
        except OSError as e:
            raise PlaylistWriteError(
                f"Cannot write playlist: {e}",
                details={'path': str(self.output_path)}
            ) from e

        logger.info(f"Playlist written: {self.output_path} ({text.count('#EXTINF:')} entries)")
        return self.output_path

    def get_stats(self) -> Dict[str, Any]:
        """
        Describe the playlist currently on disk

        Returns:
            Dictionary with exists, entry_count, file_size, last_modified and path
        """
        stats = {
            'exists': False,
            'entry_count': 0,
            'file_size': 0,
            'last_modified': None,
            'path': str(self.output_path),
        }
        if not self.output_path.exists():
            return stats

        try:
            text = self.output_path.read_text(encoding='utf-8')
            file_stat = self.output_path.stat()
        except OSError as e:
            logger.error(f"Cannot read playlist stats: {e}")
            stats['error'] = str(e)
            return stats

        stats.update({
            'exists': True,
            'entry_count': sum(1 for line in text.splitlines() if line.startswith('#EXTINF:')),
            'file_size': file_stat.st_size,
            'last_modified': datetime.fromtimestamp(file_stat.st_mtime).isoformat(),
        })
        return stats
