"""
Taste Profile Module
====================

Turns raw library history into a ranked taste profile, and defines the
track value shared by every other module.

Pipeline:
    1. Count occurrences per artist (exact name match)
    2. Keep the top artists by count (ties keep first-seen order)
    3. Infer genres from the artist->genre table and tally them
    4. Keep the top genres by tally (ties keep first-seen order)
"""

import asyncio
import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from .config import DEFAULT_TASTE_CONFIG, StaticTables, TasteConfig, load_tables
from .errors import CatalogError
from .utils import format_duration

logger = logging.getLogger(__name__)

DEFAULT_DURATION_SECONDS = 180.0


@dataclass(frozen=True)
class Track:
    """
    A catalog track.

    Equality and hashing use (title, artist) only; `uid` is a display key
    for list rendering and never takes part in comparisons.
    """
    title: str
    artist: str
    duration: str
    uid: str = field(default_factory=lambda: uuid.uuid4().hex, compare=False, repr=False)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.title, self.artist)

    @classmethod
    def from_spotify(cls, item: Dict[str, Any]) -> "Track":
        """Build a Track from a Spotify track object."""
        artists = item.get('artists') or []
        artist = artists[0].get('name', '') if artists else ''
        duration_ms = item.get('duration_ms')
        seconds = duration_ms / 1000.0 if duration_ms else DEFAULT_DURATION_SECONDS
        return cls(
            title=item.get('name', ''),
            artist=artist,
            duration=format_duration(seconds),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "artist": self.artist, "duration": self.duration}


def dedupe_tracks(tracks: Iterable[Track]) -> List[Track]:
    """Drop repeated (title, artist) pairs, keeping first occurrences in order."""
    seen = set()
    unique = []
    for track in tracks:
        if track.key in seen:
            continue
        seen.add(track.key)
        unique.append(track)
    return unique


@dataclass
class TasteProfile:
    """Ranked taste signals for one user."""
    top_genres: List[str] = field(default_factory=list)
    favorite_artists: List[str] = field(default_factory=list)

    # True when the profile came from the fixed fallback vector
    is_fallback: bool = False

    @property
    def combined_preferences(self) -> List[str]:
        """Genres first, then artists, both in rank order."""
        return list(self.top_genres) + list(self.favorite_artists)

    @property
    def is_empty(self) -> bool:
        return not self.top_genres and not self.favorite_artists

    @classmethod
    def empty(cls) -> "TasteProfile":
        return cls()


class LibraryHistorySource(Protocol):
    """Anything that can list recent library items as (artist, occurrences)."""

    def fetch_recent_items(self, limit: int) -> List[Tuple[str, int]]:
        ...


class TasteProfileExtractor:
    """
    Derives a TasteProfile from library history.

    Extraction is a pure function of the history and the static
    artist->genre table. Empty history or a failing library source
    degrades to the fixed fallback profile.
    """

    def __init__(
        self,
        tables: Optional[StaticTables] = None,
        config: TasteConfig = DEFAULT_TASTE_CONFIG
    ):
        self.tables = tables or load_tables()
        self.config = config

    def fallback_profile(self) -> TasteProfile:
        return TasteProfile(
            top_genres=list(self.tables.fallback_genres),
            favorite_artists=list(self.tables.fallback_artists),
            is_fallback=True,
        )

    def extract(self, history: Iterable[Tuple[str, int]]) -> TasteProfile:
        """
        Build a taste profile from (artist, occurrences) pairs.

        Args:
            history: Library history; repeated artists are summed

        Returns:
            TasteProfile with up to 5 artists and 3 genres
        """
        artist_counts: Counter = Counter()
        for artist, count in history:
            if not artist or not artist.strip() or count <= 0:
                continue
            artist_counts[artist] += count

        if not artist_counts:
            return self.fallback_profile()

        # most_common keeps first-seen order among equal counts
        top_artists = [a for a, _ in artist_counts.most_common(self.config.max_artists)]

        return TasteProfile(
            top_genres=self.infer_genres(top_artists),
            favorite_artists=top_artists,
        )

    def infer_genres(self, artists: List[str]) -> List[str]:
        """Tally table genres across ranked artists and keep the top ones."""
        genre_counts: Counter = Counter()
        for artist in artists:
            for genre in self.tables.artist_genres.get(artist, ()):
                genre_counts[genre] += 1
        return [g for g, _ in genre_counts.most_common(self.config.max_genres)]

    async def analyze(
        self,
        source: LibraryHistorySource,
        limit: Optional[int] = None
    ) -> TasteProfile:
        """
        Fetch library history from a live source and extract a profile.

        Catalog failures are absorbed and yield the fallback profile.
        """
        limit = limit or self.config.history_limit
        try:
            history = await asyncio.to_thread(source.fetch_recent_items, limit)
        except CatalogError as e:
            logger.warning("Library analysis failed, using fallback profile: %s", e)
            return self.fallback_profile()

        profile = self.extract(history)
        logger.info(
            "Analyzed taste: genres=%s artists=%s",
            profile.top_genres,
            profile.favorite_artists,
        )
        return profile
