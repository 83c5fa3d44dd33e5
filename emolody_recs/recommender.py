"""
Main Recommendation Engine
==========================

Orchestrates one playlist generation:
1. Plan search queries from mood keywords x taste preferences
2. Run the queries through the live catalog (concurrently, with timeouts)
3. Assemble results in plan order and drop duplicate (title, artist) pairs
4. Fall back to the static song tables when the live path is unavailable,
   unauthenticated, failing or empty
5. Truncate and stamp a generation id

Generation never raises for a valid mood: every catalog failure ends in
the static path.
"""

import json
import time
import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import numpy as np

from .candidates import QueryPlanner, StaticCatalog
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .errors import AuthError, CatalogError
from .features import TasteProfile, Track, dedupe_tracks
from .moods import Mood

logger = logging.getLogger(__name__)

LIVE = "live"
STATIC = "static"


class CatalogClient(Protocol):
    """Searchable music catalog; raises AuthError, NetworkError or EmptyResult."""

    def search(self, term: str, limit: int) -> List[Track]:
        ...


@dataclass
class PlaylistResult:
    """Output of one generation."""
    tracks: Tuple[Track, ...]
    mood: Mood
    generated_id: Optional[str]
    source: str = STATIC

    @property
    def is_empty(self) -> bool:
        return not self.tracks

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "generated_id": self.generated_id,
            "mood": self.mood.value,
            "source": self.source,
            "track_count": len(self.tracks),
            "tracks": [t.to_dict() for t in self.tracks],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


class _LiveAborted(Exception):
    """Internal signal: stop the live path and use the static tables."""


class RecommendationEngine:
    """
    Mood + taste playlist generator.

    Usage:
        engine = RecommendationEngine(catalog=SpotifyClient(), auth=session)
        result = asyncio.run(engine.generate(Mood.HAPPY, profile))
        print(result.to_json())
    """

    def __init__(
        self,
        catalog: Optional[CatalogClient] = None,
        auth=None,
        planner: Optional[QueryPlanner] = None,
        static_catalog: Optional[StaticCatalog] = None,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize recommendation engine.

        Args:
            catalog: Live catalog client (None means static only)
            auth: Object exposing `is_authenticated`; the live path needs it True
            planner: Query planner
            static_catalog: Fallback song tables
            config: Limits and timeouts
            rng: Shuffle source for the static path (seed for reproducibility)
            clock: Returns Unix time in seconds
        """
        self.catalog = catalog
        self.auth = auth
        self.config = config
        self.planner = planner or QueryPlanner(config=config)
        self.static_catalog = static_catalog or StaticCatalog()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock

    @property
    def live_available(self) -> bool:
        return self.catalog is not None and bool(getattr(self.auth, "is_authenticated", False))

    async def generate(self, mood: Mood, profile: TasteProfile) -> PlaylistResult:
        """
        Generate a playlist for a mood.

        Args:
            mood: Target mood
            profile: Taste profile supplying ranked preferences

        Returns:
            PlaylistResult (never raises for catalog failures)
        """
        preferences = profile.combined_preferences
        queries = self.planner.plan(mood, preferences)
        logger.debug("Planned %d queries for %s: %s", len(queries), mood.value, queries)

        tracks: List[Track] = []
        source = STATIC

        if self.live_available:
            try:
                tracks = await self._live_tracks(queries)
            except _LiveAborted as e:
                logger.warning("Live search abandoned, using static tables: %s", e)
                tracks = []
            if len(tracks) >= self.config.min_live_results:
                source = LIVE
                tracks = tracks[:self.config.live_limit]
            else:
                logger.warning(
                    "Live search returned %d tracks (< %d), using static tables",
                    len(tracks),
                    self.config.min_live_results,
                )
        else:
            logger.info("No authenticated catalog, using static tables")

        if source == STATIC:
            tracks = self.static_catalog.generate(
                mood,
                preferences,
                self.rng,
                limit=self.config.static_limit,
            )

        generated_id = f"{mood.value.lower()}_{int(self.clock())}" if tracks else None
        logger.info("Generated %d %s tracks for %s mood", len(tracks), source, mood.value)

        return PlaylistResult(
            tracks=tuple(tracks),
            mood=mood,
            generated_id=generated_id,
            source=source,
        )

    async def _live_tracks(self, queries: List[str]) -> List[Track]:
        """Run all queries and assemble deduplicated results in plan order."""
        if self.config.parallel_queries:
            limiter = asyncio.Semaphore(self.config.max_parallel_queries)
            tasks = [asyncio.create_task(self._run_query(q, limiter)) for q in queries]
            try:
                batches = await asyncio.gather(*tasks)
            except _LiveAborted:
                # No query may outlive an abandoned live path
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        else:
            batches = [await self._run_query(q) for q in queries]

        collected: List[Track] = []
        for batch in batches:
            collected.extend(batch)
        return dedupe_tracks(collected)

    async def _run_query(self, query: str, limiter: Optional[asyncio.Semaphore] = None) -> List[Track]:
        """
        Run one catalog query.

        Skippable failures return []; auth or unexpected failures abort the
        whole live path.
        """
        try:
            async with limiter or contextlib.nullcontext():
                found = await asyncio.wait_for(
                    asyncio.to_thread(self.catalog.search, query, self.config.per_query_limit),
                    timeout=self.config.query_timeout,
                )
        except asyncio.TimeoutError:
            logger.warning("Query '%s' timed out after %.1fs, skipping", query, self.config.query_timeout)
            return []
        except AuthError as e:
            raise _LiveAborted(f"authentication failed: {e}") from e
        except CatalogError as e:
            logger.warning("Query '%s' failed, skipping: %s", query, e)
            return []
        except Exception as e:
            logger.exception("Unexpected catalog failure on '%s'", query)
            raise _LiveAborted(f"unexpected catalog error: {e}") from e

        return list(found or [])[:self.config.per_query_limit]
