"""
Candidate Generation Module
============================

Produces candidate tracks for a mood playlist from two sources:
1. Search queries planned from mood keywords x taste preferences
2. Static pre-authored song tables (the offline fallback)

The planner only decides *what* to search; the engine decides whether
the live catalog or the static tables answer.
"""

from typing import List, Optional, Sequence

import numpy as np

from .config import DEFAULT_ENGINE_CONFIG, EngineConfig, StaticTables, load_tables
from .features import Track, dedupe_tracks
from .moods import Mood, MoodVocabulary


class QueryPlanner:
    """
    Crosses ranked preferences with mood keywords.

    Strategy:
        1. Take the top N preferences (already rank-ordered)
        2. For each, append every mood keyword (preference-major order)
        3. With no preferences, cross the mood name itself with its keywords
        4. Drop repeated queries
    """

    def __init__(
        self,
        vocabulary: Optional[MoodVocabulary] = None,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG
    ):
        self.vocabulary = vocabulary or MoodVocabulary()
        self.config = config

    def plan(self, mood: Mood, preferences: Sequence[str]) -> List[str]:
        """
        Build the ordered search terms for a generation.

        Args:
            mood: Target mood
            preferences: Ranked taste tags (genres then artists)

        Returns:
            Non-empty list of distinct query strings
        """
        seeds = [p.strip() for p in preferences if p and p.strip()]
        seeds = seeds[:self.config.max_preferences] or [mood.value]

        keywords = self.vocabulary.keywords_for(mood)
        queries = []
        seen = set()
        for seed in seeds:
            for keyword in keywords:
                query = f"{seed} {keyword}"
                if query not in seen:
                    seen.add(query)
                    queries.append(query)
        return queries


class StaticCatalog:
    """
    Pre-authored song tables used when live search is unavailable.

    Each generation unions the mood songs with the songs of every matching
    preference tag, then shuffles and truncates.
    """

    def __init__(self, tables: Optional[StaticTables] = None):
        self.tables = tables or load_tables()

    @staticmethod
    def _tracks(rows) -> List[Track]:
        return [Track(title=t, artist=a, duration=d) for t, a, d in rows]

    def songs_for_mood(self, mood: Mood) -> List[Track]:
        rows = self.tables.mood_songs.get(mood.value)
        if not rows:
            return self._tracks([self.tables.default_song])
        return self._tracks(rows)

    def songs_for_preferences(self, preferences: Sequence[str]) -> List[Track]:
        songs = []
        for preference in preferences:
            songs.extend(self._tracks(self.tables.preference_songs.get(preference, ())))
        return songs

    def generate(
        self,
        mood: Mood,
        preferences: Sequence[str],
        rng: np.random.Generator,
        limit: int = DEFAULT_ENGINE_CONFIG.static_limit
    ) -> List[Track]:
        """
        Build a shuffled static playlist.

        Args:
            mood: Target mood
            preferences: Taste tags; unknown tags contribute nothing
            rng: Random generator (seed it for reproducible order)
            limit: Maximum tracks returned

        Returns:
            Up to `limit` distinct tracks
        """
        pool = dedupe_tracks(self.songs_for_mood(mood) + self.songs_for_preferences(preferences))
        order = rng.permutation(len(pool))
        return [pool[i] for i in order[:limit]]
