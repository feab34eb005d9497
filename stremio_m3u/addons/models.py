"""
Content models for items fetched from Stremio addons

A ContentItem is one movie, series or live channel together with the
streams an addon offers for it. The logo enhancement pass mutates
``poster`` in place; everything else is read-only after construction.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

LIVE_TV_GENRE = 'Live TV'
DEFAULT_GENRE = 'General'

POSTER_PLACEHOLDER_TEMPLATE = "https://via.placeholder.com/300x450?text={name}"


def extract_source_from_url(url: str) -> str:
    """
    Name the provider of a stream from its URL

    Args:
        url: Stream URL

    Returns:
        "Debridio", "YouTube", "Torrent" or "HTTP"
    """
    lowered = url.lower()
    if 'debridio.com' in lowered:
        return 'Debridio'
    if 'youtube.com' in lowered or 'youtu.be' in lowered:
        return 'YouTube'
    if '.torrent' in lowered or lowered.startswith('magnet:'):
        return 'Torrent'
    return 'HTTP'


def placeholder_poster(name: str) -> str:
    return POSTER_PLACEHOLDER_TEMPLATE.format(name=quote(name, safe="!*'()"))


def parse_rating(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_year(value: Any, default: int) -> int:
    """Parse "2019" or "2019-2023" style year fields"""
    if isinstance(value, int):
        return value
    match = re.match(r'\s*(\d{4})', str(value or ''))
    return int(match.group(1)) if match else default


@dataclass
class Stream:
    """
    One playable stream for a content item

    Attributes:
        url: Stream URL written to the playlist
        quality: Quality label shown in the title (addon's stream title)
        source: Provider derived from the URL
        title: Display title of the stream
        availability: False for streams that must not be written
    """
    url: str
    quality: str = ''
    source: str = 'HTTP'
    title: str = ''
    availability: bool = True

    @classmethod
    def from_addon_data(cls, data: Dict[str, Any], default_quality: str = 'Unknown',
                        default_title: str = 'Stream') -> 'Stream':
        url = data['url']
        return cls(
            url=url,
            quality=data.get('title') or default_quality,
            source=extract_source_from_url(url),
            title=data.get('title') or default_title,
            availability=True
        )


@dataclass
class ContentItem:
    """
    Movie, series or live channel with its streams

    Attributes:
        id: Addon meta id
        title: Display name, never empty
        type: Stremio content type ("movie", "series", "tv")
        year: Release year (current year for live channels)
        genre: First genre, "Live TV" for channels
        language: Two-letter language code
        streams: Playable streams
        poster: Image reference written as tvg-logo; may be replaced by a better logo
        description: Free-text description
        imdb_rating: Rating as a string, "0.0" when unknown
        duration: Runtime in minutes, None for live channels
        addon: Name of the addon the item came from
    """
    id: str
    title: str
    type: str
    year: Optional[int] = None
    genre: str = DEFAULT_GENRE
    language: str = 'en'
    streams: List[Stream] = field(default_factory=list)
    poster: Optional[str] = None
    description: str = ''
    imdb_rating: str = '0.0'
    duration: Optional[int] = None
    addon: str = ''

    def __post_init__(self):
        if not self.title:
            raise ValueError("ContentItem title must not be empty")

    @classmethod
    def from_meta(cls, meta: Dict[str, Any], category: str, streams: List[Stream],
                  addon_name: str) -> 'ContentItem':
        """
        Build a catalog item (movie/series) from an addon meta object

        Args:
            meta: Meta object from a catalog response
            category: Content type the catalog was requested for
            streams: Streams already fetched for the meta
            addon_name: Name of the addon

        Returns:
            ContentItem with defaults filled in for missing fields
        """
        name = meta.get('name') or 'Unknown Title'
        genres = meta.get('genres') or []
        runtime = meta.get('runtime')
        try:
            duration = int(float(re.sub(r'[^\d.]', '', str(runtime)))) if runtime else None
        except ValueError:
            duration = None

        return cls(
            id=str(meta['id']),
            title=name,
            type=category,
            year=parse_year(meta.get('year') or meta.get('releaseInfo'), datetime.now().year),
            genre=genres[0] if genres else DEFAULT_GENRE,
            language='en',
            streams=streams,
            poster=meta.get('poster') or placeholder_poster(meta.get('name') or 'No Title'),
            description=meta.get('description') or f"Content from {addon_name}",
            imdb_rating=str(meta.get('imdbRating') or '0.0'),
            duration=duration,
            addon=addon_name
        )

    @classmethod
    def from_live_meta(cls, meta: Dict[str, Any], streams: List[Stream], addon_name: str) -> 'ContentItem':
        """Build a live TV channel from an addon meta object"""
        name = meta.get('name') or 'Live TV Channel'
        return cls(
            id=str(meta['id']),
            title=name,
            type='tv',
            year=datetime.now().year,
            genre=LIVE_TV_GENRE,
            language='en',
            streams=streams,
            poster=meta.get('poster') or placeholder_poster(meta.get('name') or 'Live TV'),
            description=f"Live TV channel from {addon_name}",
            imdb_rating='0.0',
            duration=None,
            addon=addon_name
        )

    @property
    def is_live(self) -> bool:
        return self.type == 'tv' or self.genre == LIVE_TV_GENRE

    @property
    def rating(self) -> float:
        return parse_rating(self.imdb_rating)

    @property
    def available_streams(self) -> List[Stream]:
        return [stream for stream in self.streams if stream.availability and stream.url]
