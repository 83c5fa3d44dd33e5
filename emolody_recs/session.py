"""
Playlist Session
================

Session-scoped state around the recommendation engine: who is connected,
the current taste profile, the last generated playlist, and the save/share
operations that hand that playlist to external collaborators.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence

from .config import PLAYLIST_NAME_TEMPLATE
from .errors import CatalogError, GenerationInProgress
from .features import LibraryHistorySource, TasteProfile, TasteProfileExtractor, Track
from .moods import Mood
from .recommender import PlaylistResult, RecommendationEngine

logger = logging.getLogger(__name__)

SHARE_HEADER = "🎵 My Emolody Playlist - {mood} 🎵"
SHARE_FOOTER = "Generated with Emolody App"


class ConnectedService(Enum):
    NONE = "none"
    NATIVE = "native"
    SPOTIFY = "spotify"


@dataclass(frozen=True)
class AuthSession:
    """Read-only view of the user's connection to a music service."""
    is_authenticated: bool = False
    connected_service: ConnectedService = ConnectedService.NONE
    user_name: str = ""
    user_email: str = ""

    @classmethod
    def from_spotify(cls, client) -> "AuthSession":
        """Build from a SpotifyClient; an unreachable account yields a signed-out session."""
        try:
            me = client.current_user()
        except CatalogError as e:
            logger.warning("Spotify sign-in check failed: %s", e)
            return cls()
        if not me.get('id'):
            return cls()
        return cls(
            is_authenticated=True,
            connected_service=ConnectedService.SPOTIFY,
            user_name=me.get('display_name') or me['id'],
            user_email=me.get('email') or "",
        )


class PlaylistSink(Protocol):
    def create_playlist(self, tracks: Sequence[Track], name: str) -> bool:
        ...

    def open_playlist(self, name: str) -> None:
        ...


class MemoryPlaylistSink:
    """Records created playlists in memory (native-service stand-in)."""

    def __init__(self):
        self.last_created_name: str = ""
        self.last_created_tracks: List[Track] = []
        self.opened: List[str] = []

    def create_playlist(self, tracks: Sequence[Track], name: str) -> bool:
        self.last_created_name = name
        self.last_created_tracks = list(tracks)
        logger.info("Stored playlist '%s' with %d songs", name, len(tracks))
        return True

    def open_playlist(self, name: str) -> None:
        self.opened.append(name)


def format_share_text(result: PlaylistResult) -> str:
    """Numbered listing with header and footer banners."""
    lines = [
        f"{i}. {t.title} - {t.artist} ({t.duration})"
        for i, t in enumerate(result.tracks, 1)
    ]
    return "\n".join([
        SHARE_HEADER.format(mood=result.mood.value),
        "",
        *lines,
        "",
        SHARE_FOOTER,
    ])


class PlaylistSession:
    """
    Holds one user's profile and current playlist.

    A fresh analysis or generation fully replaces the previous value.
    Concurrent generations are rejected with GenerationInProgress.
    """

    def __init__(
        self,
        engine: RecommendationEngine,
        extractor: Optional[TasteProfileExtractor] = None,
        sink: Optional[PlaylistSink] = None,
        share_surface: Optional[Callable[[str], None]] = None,
        profile: Optional[TasteProfile] = None
    ):
        self.engine = engine
        self.extractor = extractor or TasteProfileExtractor()
        self.sink = sink
        self.share_surface = share_surface
        self.profile = profile or TasteProfile.empty()
        self.result: Optional[PlaylistResult] = None
        self._generating = asyncio.Lock()

    @property
    def is_generating(self) -> bool:
        return self._generating.locked()

    @property
    def has_playlist(self) -> bool:
        return self.result is not None and not self.result.is_empty

    @property
    def playlist_name(self) -> Optional[str]:
        if self.result is None:
            return None
        return PLAYLIST_NAME_TEMPLATE.format(mood=self.result.mood.value)

    async def analyze_taste(self, source: Optional[LibraryHistorySource] = None) -> TasteProfile:
        """Replace the profile from a library source (or clear it without one)."""
        if source is None:
            self.profile = TasteProfile.empty()
        else:
            self.profile = await self.extractor.analyze(source)
        return self.profile

    async def generate(self, mood: Mood) -> PlaylistResult:
        """
        Generate and store a playlist for the current profile.

        Raises:
            GenerationInProgress: another generation is still running
        """
        if self._generating.locked():
            raise GenerationInProgress("A playlist is already being generated")

        async with self._generating:
            result = await self.engine.generate(mood, self.profile)
            self.result = result
        return result

    async def save(self) -> bool:
        """
        Hand the current playlist to the sink.

        Returns:
            The sink's success flag; False when there is nothing to save,
            no sink, or the sink failed
        """
        if not self.has_playlist or self.sink is None:
            return False

        name = self.playlist_name
        try:
            saved = await asyncio.to_thread(self.sink.create_playlist, list(self.result.tracks), name)
        except CatalogError as e:
            logger.error("Saving '%s' failed: %s", name, e)
            return False

        if saved:
            logger.info("Playlist '%s' saved", name)
        return bool(saved)

    async def open_playlist(self) -> None:
        """Best-effort: ask the sink to show the saved playlist."""
        if self.sink is None or self.result is None:
            return
        try:
            await asyncio.to_thread(self.sink.open_playlist, self.playlist_name)
        except CatalogError as e:
            logger.warning("Could not open '%s': %s", self.playlist_name, e)

    def share(self) -> Optional[str]:
        """
        Format the current playlist for sharing.

        Returns:
            The share text, or None when there is no playlist
        """
        if not self.has_playlist:
            return None
        text = format_share_text(self.result)
        if self.share_surface is not None:
            self.share_surface(text)
        return text
