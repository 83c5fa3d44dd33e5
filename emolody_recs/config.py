"""
Configuration and constants for the Emolody recommendation core.
"""
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

import yaml

from .errors import ConfigError

# =============================================================================
# SPOTIFY API CONFIGURATION
# =============================================================================
SPOTIFY_CLIENT_ID = os.environ.get("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.environ.get("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REDIRECT_URI = os.environ.get("SPOTIFY_REDIRECT_URI", "http://localhost:8888/callback")

# Scopes needed to read the library and write playlists
SPOTIFY_SCOPES = [
    "user-read-private",
    "user-read-email",
    "user-top-read",
    "user-library-read",
    "playlist-modify-public",
    "playlist-modify-private",
]

# =============================================================================
# CACHING CONFIGURATION
# =============================================================================
CACHE_DIR = os.path.join(os.path.dirname(__file__), ".cache")
CACHE_TTL_HOURS = 24  # Cache time-to-live

# =============================================================================
# STATIC TABLES
# =============================================================================
DEFAULT_TABLES_PATH = Path(__file__).parent / "data" / "tables.yaml"
TABLES_PATH = os.environ.get("EMOLODY_TABLES", str(DEFAULT_TABLES_PATH))

PLAYLIST_NAME_TEMPLATE = "Emolody {mood} Playlist"


# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================
@dataclass
class EngineConfig:
    """Limits and timeouts for playlist generation."""
    # Results requested per planned search query
    per_query_limit: int = 5

    # Only the top-ranked preferences are crossed with mood keywords
    max_preferences: int = 3

    # Truncation for each generation path
    live_limit: int = 15
    static_limit: int = 12

    # Live results below this count send generation to the static tables
    min_live_results: int = 1

    # Seconds allowed per catalog query
    query_timeout: float = 4.0

    # Issue planned queries concurrently (assembly stays in plan order)
    parallel_queries: bool = True

    # Upper bound on catalog queries in flight at once
    max_parallel_queries: int = 5

DEFAULT_ENGINE_CONFIG = EngineConfig()


@dataclass
class TasteConfig:
    """Configuration for taste profile extraction."""
    max_artists: int = 5
    max_genres: int = 3

    # Library items analyzed per call
    history_limit: int = 100

DEFAULT_TASTE_CONFIG = TasteConfig()


# =============================================================================
# TABLE LOADING
# =============================================================================
SongRow = Tuple[str, str, str]


@dataclass(frozen=True)
class StaticTables:
    """Read-only view of the declarative lookup tables."""
    mood_keywords: Mapping[str, Tuple[str, ...]]
    artist_genres: Mapping[str, Tuple[str, ...]]
    mood_songs: Mapping[str, Tuple[SongRow, ...]]
    preference_songs: Mapping[str, Tuple[SongRow, ...]]
    fallback_genres: Tuple[str, ...]
    fallback_artists: Tuple[str, ...]
    default_song: SongRow


def _song_rows(section: str, entries) -> Tuple[SongRow, ...]:
    rows = []
    for entry in entries or []:
        try:
            rows.append((str(entry["title"]), str(entry["artist"]), str(entry["duration"])))
        except (KeyError, TypeError) as e:
            raise ConfigError(f"Malformed song entry in '{section}': {entry!r}") from e
    return tuple(rows)


def _string_lists(raw: Optional[Dict]) -> Dict[str, Tuple[str, ...]]:
    return {str(k): tuple(str(v) for v in (values or [])) for k, values in (raw or {}).items()}


def parse_tables(raw: Dict, required_moods: List[str]) -> StaticTables:
    """
    Validate raw YAML data and freeze it into StaticTables.

    Args:
        raw: Parsed YAML document
        required_moods: Mood labels that must have keywords and songs

    Returns:
        Immutable StaticTables
    """
    if not isinstance(raw, dict):
        raise ConfigError("Tables file must contain a mapping at top level")

    for section in ("mood_keywords", "artist_genres", "mood_songs", "preference_songs", "fallback_profile"):
        if section not in raw:
            raise ConfigError(f"Missing table section: {section}")

    mood_keywords = _string_lists(raw["mood_keywords"])
    mood_songs = {
        str(mood): _song_rows(f"mood_songs.{mood}", songs)
        for mood, songs in raw["mood_songs"].items()
    }
    for mood in required_moods:
        if not mood_keywords.get(mood):
            raise ConfigError(f"No keywords configured for mood: {mood}")
        if not mood_songs.get(mood):
            raise ConfigError(f"No songs configured for mood: {mood}")

    fallback = raw["fallback_profile"] or {}
    default_song = _song_rows(
        "default_song",
        [raw.get("default_song") or {"title": "Default Song", "artist": "Various Artists", "duration": "3:30"}],
    )[0]

    return StaticTables(
        mood_keywords=MappingProxyType(mood_keywords),
        artist_genres=MappingProxyType(_string_lists(raw["artist_genres"])),
        mood_songs=MappingProxyType(mood_songs),
        preference_songs=MappingProxyType({
            str(pref): _song_rows(f"preference_songs.{pref}", songs)
            for pref, songs in raw["preference_songs"].items()
        }),
        fallback_genres=tuple(str(g) for g in fallback.get("top_genres", [])),
        fallback_artists=tuple(str(a) for a in fallback.get("favorite_artists", [])),
        default_song=default_song,
    )


@lru_cache(maxsize=None)
def load_tables(path: Optional[str] = None) -> StaticTables:
    """
    Load the static tables once per path.

    Args:
        path: YAML file path (defaults to TABLES_PATH)

    Returns:
        Immutable StaticTables shared process-wide
    """
    from .moods import Mood

    tables_path = Path(path or TABLES_PATH)
    if not tables_path.exists():
        raise ConfigError(f"Tables file not found: {tables_path}")

    try:
        with open(tables_path, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {tables_path}: {e}") from e

    return parse_tables(raw, [m.value for m in Mood])
