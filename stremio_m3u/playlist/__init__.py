"""
Playlist output: M3U serialization and the two-phase generation driver
"""

from .driver import PlaylistDriver
from .m3u import PlaylistWriter

__all__ = ['PlaylistDriver', 'PlaylistWriter']
