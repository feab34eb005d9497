"""
Channel logo resolution: search-term generation, Wikimedia lookup, candidate
filtering and the two-tier logo cache
"""

from .cache import CacheEntry, LogoCache, LogoSource
from .filters import is_valid_logo_file
from .service import LogoResolver
from .variations import generate_search_terms
from .wikimedia import WikimediaClient

__all__ = [
    'CacheEntry',
    'LogoCache',
    'LogoSource',
    'LogoResolver',
    'WikimediaClient',
    'generate_search_terms',
    'is_valid_logo_file',
]
