"""
Stremio addon content: models and the manifest/catalog/stream client
"""

from .client import AddonClient
from .models import ContentItem, Stream

__all__ = ['AddonClient', 'ContentItem', 'Stream']
