# stremio_m3u/utils/__init__.py
"""
Utilities package
Logging and helper functions shared across the application
"""

from .logger import (
    get_logger,
    setup_logging,
    configure_from_settings,
    OperationLogger,
    create_operation_logger,
)
from .helpers import (
    normalize_whitespace,
    sanitize_cache_key,
    guess_image_extension,
    is_remote_url,
    normalize_addon_url,
    dedupe_addon_urls,
    chunked,
    atomic_write_text,
    ensure_directory,
    format_file_size,
    current_timestamp_ms,
    create_backup_filename,
)

__all__ = [
    # Logger exports
    'get_logger',
    'setup_logging',
    'configure_from_settings',
    'OperationLogger',
    'create_operation_logger',

    # Helper exports
    'normalize_whitespace',
    'sanitize_cache_key',
    'guess_image_extension',
    'is_remote_url',
    'normalize_addon_url',
    'dedupe_addon_urls',
    'chunked',
    'atomic_write_text',
    'ensure_directory',
    'format_file_size',
    'current_timestamp_ms',
    'create_backup_filename',
]
