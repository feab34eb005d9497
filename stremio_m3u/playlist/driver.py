"""
Two-phase playlist generation

Phase 1 (awaited by the caller): fetch content from the addons and write the
playlist straight away with whatever posters the addons supplied. No logo
lookups happen here, so a playlist is available within one fetch.

Phase 2 (detached task): resolve a logo for every item in small batches,
items within a batch concurrently, with a pause between batches. If at
least one poster changed, the playlist is written again.

Only phase 1 is mutually exclusive. A new phase 1 may start while an older
phase 2 is still running; the older pass then notices that its generation
has been superseded and does not rewrite the playlist.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from ..config.settings import LogosConfig, Settings, SourcesConfig
from ..exceptions import StremioM3UError
from ..logos.service import LogoResolver
from ..utils.helpers import chunked
from ..utils.logger import create_operation_logger, get_logger
from ..addons.client import AddonClient
from ..addons.models import ContentItem
from .m3u import PlaylistWriter

logger = get_logger(__name__)


class PlaylistDriver:
    """
    Coordinates content fetching, playlist writes and logo enhancement

    Attributes:
        is_generating: True while a phase 1 is in progress
        last_successful_generation: Time of the last successful playlist write
        content: Items of the most recent successful fetch
    """

    def __init__(
        self,
        content_source: Any,
        writer: PlaylistWriter,
        resolver: Optional[LogoResolver] = None,
        sources: Optional[SourcesConfig] = None,
        logos: Optional[LogosConfig] = None,
        show_progress: bool = False
    ):
        """
        Initialize playlist driver

        Args:
            content_source: Object with ``async fetch_content(sources) -> List[ContentItem]``
            writer: Playlist writer
            resolver: Logo resolver; phase 2 never runs without one
            sources: Source settings passed to the content source
            logos: Logo settings (enable switch, batch size and delay)
            show_progress: Draw a progress bar during phase 2
        """
        self.content_source = content_source
        self.writer = writer
        self.resolver = resolver
        self.sources = sources or SourcesConfig()
        self.logos = logos or LogosConfig()
        self.show_progress = show_progress

        self.is_generating = False
        self.last_successful_generation: Optional[datetime] = None
        self.content: List[ContentItem] = []

        self._generation = 0
        self._background_tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: Settings, show_progress: bool = False) -> 'PlaylistDriver':
        """Build a driver with the addon client, writer and resolver for ``settings``"""
        return cls(
            content_source=AddonClient(settings.stremio),
            writer=PlaylistWriter(settings.playlist),
            resolver=LogoResolver(settings.logos, settings.network),
            sources=settings.sources,
            logos=settings.logos,
            show_progress=show_progress
        )

    async def generate(self) -> bool:
        """
        Run phase 1 and schedule phase 2

        Returns:
            True if a generation ran, False if one was already in progress

        Raises:
            ContentFetchError: If no addon could be reached
            PlaylistWriteError: If the playlist could not be written
        """
        if self.is_generating:
            logger.warning("Playlist generation already in progress, skipping")
            return False

        self.is_generating = True
        self._generation += 1
        generation = self._generation

        try:
            logger.info("Playlist generation started")
            content = await self.content_source.fetch_content(self.sources)
            self.writer.write(content)
            self.content = content
            self.last_successful_generation = datetime.now()
            logger.console_info(f"Playlist generated with {len(content)} items")
        except StremioM3UError as e:
            logger.error(f"Playlist generation failed: {e}")
            raise
        finally:
            self.is_generating = False
            self._schedule_enhancement(generation)

        return True

    def _schedule_enhancement(self, generation: int) -> Optional[asyncio.Task]:
        if not self.logos.enable_wikimedia or self.resolver is None:
            logger.debug("Logo enhancement disabled")
            return None

        content = list(self.content)
        if not content:
            return None

        task = asyncio.create_task(self._enhance_logos(content, generation))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _enhance_item(self, item: ContentItem) -> bool:
        original = item.poster
        try:
            logo = await self.resolver.resolve(item.title, original)
        except Exception as e:
            logger.warning(f"Logo enhancement failed for '{item.title}': {e}")
            return False

        if logo and logo != original:
            item.poster = logo
            return True
        return False

    async def _enhance_logos(self, content: List[ContentItem], generation: int) -> int:
        """
        Phase 2: resolve logos batch by batch and rewrite the playlist on change

        Args:
            content: Items whose posters may be replaced in place
            generation: Generation that scheduled this pass

        Returns:
            Number of items whose poster changed
        """
        operation = create_operation_logger(__name__, "Logo enhancement", show_progress=self.show_progress)
        changed = 0

        try:
            operation.start(f"Enhancing logos for {len(content)} items")
            await self.resolver.cache.cleanup_expired()

            processed = 0
            for index, batch in enumerate(chunked(content, self.logos.batch_size)):
                if index:
                    await asyncio.sleep(self.logos.batch_delay)

                results = await asyncio.gather(*(self._enhance_item(item) for item in batch))
                changed += sum(1 for result in results if result)
                processed += len(batch)
                operation.progress(f"{changed} logos improved", processed, len(content))

            if not changed:
                operation.complete("Logo enhancement finished, no logos changed")
                return 0

            if generation != self._generation:
                operation.warning("superseded by a newer generation, playlist not rewritten")
                return changed

            self.writer.write(content)
            self.last_successful_generation = datetime.now()
            operation.complete(f"Playlist updated with {changed} improved logos")
        except Exception as e:
            operation.error(str(e), e)

        return changed

    async def wait_for_background(self) -> None:
        """Wait until every scheduled phase 2 pass has finished"""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    def cancel_background(self) -> int:
        """Cancel every scheduled phase 2 pass, returning how many were cancelled"""
        tasks = list(self._background_tasks)
        for task in tasks:
            task.cancel()
        return len(tasks)

    def status(self) -> Dict[str, Any]:
        """Current generation state and playlist file summary"""
        return {
            'is_generating': self.is_generating,
            'last_successful_generation': (
                self.last_successful_generation.isoformat() if self.last_successful_generation else None
            ),
            'items': len(self.content),
            'background_tasks': len(self._background_tasks),
            'playlist': self.writer.get_stats(),
        }

    async def watch(self, interval: float, max_cycles: Optional[int] = None) -> None:
        """
        Regenerate the playlist on a fixed interval

        A failed cycle is logged and the loop carries on.

        Args:
            interval: Seconds between generations
            max_cycles: Stop after this many cycles (None runs until cancelled)
        """
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            try:
                await self.generate()
            except StremioM3UError as e:
                logger.error(f"Scheduled generation failed: {e}")

            cycles += 1
            if max_cycles is None or cycles < max_cycles:
                await asyncio.sleep(interval)

    async def close(self) -> None:
        """Wait for background work and release HTTP sessions"""
        await self.wait_for_background()
        if self.resolver is not None:
            await self.resolver.close()
        close = getattr(self.content_source, 'close', None)
        if close is not None:
            await close()
