"""
Main CLI interface for Stremio-M3U

Command-line entry point built with Click. Command groups:
- Playlist operations (generate, watch, status)
- Logo lookups (logo) and logo cache maintenance (cache stats/cleanup/clear)
- Configuration management (config show/save/validate)

The core is asynchronous; each command runs its coroutine with
``asyncio.run`` and releases HTTP sessions before returning.
"""

import asyncio
import functools
import sys

import click

from . import __description__, __title__, __version__
from .config.settings import get_settings, reload_settings
from .logos.cache import LogoCache
from .logos.service import LogoResolver
from .playlist.driver import PlaylistDriver
from .playlist.m3u import PlaylistWriter
from .utils.helpers import format_file_size
from .utils.logger import configure_from_settings, get_logger

logger = get_logger(__name__)


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Logs the failure, prints a red message and exits with status 1, or 130
    when the user interrupts.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(), help='Path to config file')
@click.pass_context
def cli(ctx, version, verbose, config_path):
    """
    Stremio-M3U - Generate M3U playlists from Stremio addons

    Fetches catalogs and streams from the configured addons, writes an M3U
    playlist and improves channel logos in the background.
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"{__title__} v{__version__} - {__description__}")
        return

    settings = reload_settings(config_path) if config_path else get_settings()
    if verbose:
        settings.logging.level = 'DEBUG'
        ctx.obj['verbose'] = True

    configure_from_settings()
    if config_path:
        logger.info(f"Loaded config: {config_path}")

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


async def _run_generate(wait: bool) -> bool:
    driver = PlaylistDriver.from_settings(get_settings(), show_progress=wait)
    try:
        ran = await driver.generate()
        if not wait:
            driver.cancel_background()
        return ran
    finally:
        await driver.close()


@cli.command()
@click.option('--no-logos', is_flag=True, help='Skip background logo enhancement')
@click.option('--no-wait', is_flag=True, help='Exit after the initial playlist write')
@handle_error
def generate(no_logos, no_wait):
    """
    Generate the playlist once

    Writes the playlist as soon as the addon content is fetched, then (unless
    disabled) looks up better channel logos and rewrites it if any changed.
    """
    settings = get_settings()
    if no_logos:
        settings.logos.enable_wikimedia = False

    asyncio.run(_run_generate(wait=not no_wait))
    click.echo(f"Playlist: {settings.get_output_path()}")


async def _run_watch(interval: float) -> None:
    driver = PlaylistDriver.from_settings(get_settings())
    try:
        await driver.watch(interval)
    finally:
        driver.cancel_background()
        await driver.close()


@cli.command()
@click.option('--interval', '-i', type=int, help='Seconds between regenerations')
@handle_error
def watch(interval):
    """
    Regenerate the playlist on a fixed interval until interrupted
    """
    settings = get_settings()
    interval = interval or settings.playlist.refresh_interval
    if interval <= 0:
        click.echo(click.style("Interval must be positive", fg='red'), err=True)
        sys.exit(1)

    click.echo(f"Regenerating {settings.get_output_path()} every {interval}s (Ctrl-C to stop)")
    asyncio.run(_run_watch(interval))


async def _run_logo(name: str, fallback: str) -> str:
    settings = get_settings()
    resolver = LogoResolver(settings.logos, settings.network)
    try:
        return await resolver.resolve(name, fallback)
    finally:
        await resolver.close()


@cli.command()
@click.argument('name')
@click.option('--fallback', help='Logo reference to use if none is found')
@handle_error
def logo(name, fallback):
    """
    Resolve the logo for a single channel NAME
    """
    click.echo(asyncio.run(_run_logo(name, fallback)))


@cli.group()
def cache():
    """
    Logo cache maintenance
    """
    pass


@cache.command('stats')
@handle_error
def cache_stats():
    """Show logo cache contents"""
    settings = get_settings()
    stats = LogoCache(settings.logos).stats()

    click.echo("Logo cache:\n")
    click.echo(f"   Directory: {stats['cache_directory']}")
    click.echo(f"   Entries: {stats['persistent_entries']}")
    for source, count in sorted(stats['by_source'].items()):
        click.echo(f"      {source}: {count}")
    click.echo(f"   Size on disk: {format_file_size(stats['disk_bytes'])}")


async def _run_cache_cleanup() -> int:
    logo_cache = LogoCache(get_settings().logos)
    try:
        return await logo_cache.cleanup_expired()
    finally:
        await logo_cache.close()


@cache.command('cleanup')
@handle_error
def cache_cleanup():
    """Remove expired entries and entries whose files are missing"""
    removed = asyncio.run(_run_cache_cleanup())
    click.echo(f"Removed {removed} stale entries")


async def _run_cache_purge() -> int:
    logo_cache = LogoCache(get_settings().logos)
    try:
        return await logo_cache.purge()
    finally:
        await logo_cache.close()


@cache.command('clear')
@click.option('--all', 'purge_all', is_flag=True, help='Also delete persisted entries and files')
@handle_error
def cache_clear(purge_all):
    """
    Clear the logo cache

    Without --all only expired entries are swept; with --all every entry and
    downloaded file is deleted.
    """
    if purge_all:
        removed = asyncio.run(_run_cache_purge())
        click.echo(f"Deleted {removed} cache entries")
    else:
        removed = asyncio.run(_run_cache_cleanup())
        click.echo(f"Removed {removed} stale entries (use --all to delete everything)")


@cli.command()
@handle_error
def status():
    """
    Show playlist and logo cache status
    """
    settings = get_settings()
    stats = PlaylistWriter(settings.playlist).get_stats()

    click.echo("Playlist:")
    click.echo(f"   Path: {stats['path']}")
    if stats['exists']:
        click.echo(f"   Entries: {stats['entry_count']}")
        click.echo(f"   Size: {format_file_size(stats['file_size'])}")
        click.echo(f"   Last modified: {stats['last_modified']}")
    else:
        click.echo("   Not generated yet")

    cache_stats = LogoCache(settings.logos).stats()
    click.echo("\nLogos:")
    click.echo(f"   Wikimedia lookup: {'enabled' if settings.logos.enable_wikimedia else 'disabled'}")
    click.echo(f"   Cached logos: {cache_stats['persistent_entries']}")
    click.echo(f"   Addons configured: {len(settings.sources.enabled_addons)}")


@cli.group()
def config():
    """
    Configuration management
    """
    pass


@config.command()
@handle_error
def show():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:\n")

    click.echo("Playlist:")
    click.echo(f"   Output: {settings.playlist.output_path}")
    click.echo(f"   Name: {settings.playlist.name}")
    click.echo(f"   Refresh interval: {settings.playlist.refresh_interval}s")
    click.echo(f"   Backups: {settings.playlist.create_backups} (keep {settings.playlist.max_backups})")

    click.echo("\nSources:")
    click.echo(f"   Addons: {len(settings.sources.enabled_addons)}")
    click.echo(f"   Categories: {', '.join(settings.sources.categories)}")

    click.echo("\nLogos:")
    click.echo(f"   Wikimedia: {settings.logos.enable_wikimedia}")
    click.echo(f"   Cache directory: {settings.logos.cache_directory}")
    click.echo(f"   Cache TTL: {settings.logos.cache_ttl_days} days")
    click.echo(f"   Batch: {settings.logos.batch_size} items, {settings.logos.batch_delay}s apart")


@config.command()
@click.option('--path', type=click.Path(), help='Destination file')
@handle_error
def save(path):
    """Write the current configuration to a YAML file"""
    target = get_settings().save_config(path)
    click.echo(f"Configuration saved to {target}")


@config.command()
@handle_error
def validate():
    """Validate the current configuration"""
    if get_settings().validate():
        click.echo("Configuration is valid")
    else:
        sys.exit(1)


if __name__ == '__main__':
    cli()
