"""
Utility functions and helpers for Stremio-M3U

Filename sanitization, URL handling, atomic file writes and small collection
helpers shared by the addon client, the logo cache and the playlist writer.
"""

import os
import re
import tempfile
import time
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Sequence, TypeVar, Union
from urllib.parse import unquote, urlparse

T = TypeVar('T')

# Image extensions accepted for cached logo files
IMAGE_EXTENSIONS = ('.svg', '.png', '.jpg', '.jpeg', '.gif', '.webp')


def normalize_whitespace(text: str) -> str:
    """
    Collapse runs of whitespace to a single space and trim

    Args:
        text: Text to normalize

    Returns:
        Normalized text
    """
    return re.sub(r'\s+', ' ', text or '').strip()


def sanitize_cache_key(key: str) -> str:
    """
    Convert a cache key into a filesystem-safe file stem

    Every character that is not an ASCII letter or digit becomes an
    underscore and the result is lower-cased, so "Fox News HD" maps to
    "fox_news_hd".

    Args:
        key: Cache key (typically a lower-cased channel name)

    Returns:
        Safe file stem
    """
    safe = re.sub(r'[^a-zA-Z0-9]', '_', key).lower()
    return safe or 'unknown'


def guess_image_extension(url: str, default: str = '.png') -> str:
    """
    Infer an image file extension from the path component of a URL

    Query strings and fragments are ignored. Unknown or missing extensions
    fall back to ``default``.

    Args:
        url: Image URL
        default: Extension to use when none can be inferred

    Returns:
        Extension with leading dot, lower-cased
    """
    try:
        path = urlparse(url).path
    except ValueError:
        return default

    suffix = Path(unquote(path)).suffix.lower()
    if suffix in IMAGE_EXTENSIONS:
        return suffix
    return default


def is_remote_url(reference: str) -> bool:
    """Check whether a reference is an http(s) URL"""
    return bool(reference) and reference.lower().startswith(('http://', 'https://'))


def normalize_addon_url(url: str) -> str:
    """
    Normalize an addon URL for de-duplication

    Strips a trailing ``/manifest.json`` and percent-decodes the rest so that
    ``%3D`` and ``=`` variants of the same URL compare equal.

    Args:
        url: Addon URL as configured

    Returns:
        Normalized comparison key
    """
    normalized = re.sub(r'/manifest\.json$', '', url.strip())
    try:
        normalized = unquote(normalized)
    except (TypeError, ValueError):
        pass
    return normalized


def ensure_manifest_url(url: str) -> str:
    """
    Ensure an http(s) addon URL points at its manifest

    Non-http identifiers (built-in addon ids) are returned unchanged.
    """
    if not is_remote_url(url):
        return url
    if url.endswith('/manifest.json'):
        return url
    return url.rstrip('/') + '/manifest.json'


def dedupe_addon_urls(urls: Sequence[str]) -> List[str]:
    """
    Remove duplicate addon URLs, keeping the first spelling of each

    Args:
        urls: Configured addon URLs

    Returns:
        De-duplicated URLs, each ending in /manifest.json when http(s)
    """
    seen = {}
    for url in urls:
        if not url:
            continue
        key = normalize_addon_url(url)
        if key not in seen:
            seen[key] = url
    return [ensure_manifest_url(url) for url in seen.values()]


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """
    Split a sequence into consecutive slices of at most ``size`` items

    Args:
        items: Sequence to split
        size: Slice length (must be positive)

    Yields:
        Consecutive slices in order
    """
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def atomic_write_text(path: Union[str, Path], content: str, encoding: str = 'utf-8') -> Path:
    """
    Write a text file so that readers only ever see a complete version

    The content goes to a temporary file in the same directory which then
    replaces the target with ``os.replace``.

    Args:
        path: Destination file
        content: Full file content
        encoding: Text encoding

    Returns:
        Path of the written file
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix='.tmp', dir=str(target.parent))
    try:
        with os.fdopen(fd, 'w', encoding=encoding, newline='') as handle:
            handle.write(content)
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise

    return target


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure directory exists, create if necessary

    Args:
        path: Directory path

    Returns:
        Path object
    """
    path_obj = Path(path).expanduser()
    path_obj.mkdir(parents=True, exist_ok=True)
    return path_obj


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    size = float(size_bytes)
    for unit in ('KB', 'MB', 'GB'):
        size /= 1024
        if size < 1024 or unit == 'GB':
            return f"{size:.1f} {unit}"
    return f"{size:.1f} GB"


def current_timestamp_ms() -> int:
    """Get the current time as integer milliseconds since the epoch"""
    return int(time.time() * 1000)


def create_backup_filename(original_path: Union[str, Path]) -> str:
    """
    Create backup filename with timestamp

    Args:
        original_path: Original file path

    Returns:
        Backup file name (no directory)
    """
    path = Path(original_path)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S_%f')

    if path.suffix:
        return f"{path.stem}.backup_{timestamp}{path.suffix}"
    return f"{path.name}.backup_{timestamp}"
