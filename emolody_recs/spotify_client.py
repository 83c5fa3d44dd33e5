"""
Spotify API Client Wrapper
==========================

The live backend for the recommendation core. One client serves three
collaborator roles:
- Track catalog (free-text search)
- Library history source (saved tracks -> artist occurrences)
- Playlist sink (create a playlist from generated tracks)

Every spotipy/requests failure is mapped to the package error taxonomy
(AuthError, NetworkError, EmptyResult) so callers never see transport
exceptions.
"""

import os
import time
import logging
import threading
import webbrowser
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import requests
import spotipy
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyClientCredentials, SpotifyOAuth, SpotifyOauthError

from .config import (
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_SCOPES,
    CACHE_DIR,
    CACHE_TTL_HOURS,
)
from .errors import AuthError, CatalogError, EmptyResult, NetworkError
from .features import Track
from .utils import Cache, chunked, spotify_track_query

logger = logging.getLogger(__name__)

AUTH_STATUSES = (401, 403)
SEARCH_PAGE_LIMIT = 50
SAVED_TRACKS_PAGE_LIMIT = 50
PLAYLIST_ADD_BATCH = 100


def build_spotify(auth_mode: str = "oauth", open_browser: bool = True) -> spotipy.Spotify:
    """
    Create an authenticated spotipy client.

    Args:
        auth_mode: "oauth" for user data and playlists, "client" for catalog-only access
        open_browser: Let the OAuth flow open a browser for consent

    Returns:
        spotipy.Spotify instance
    """
    # Read credentials at runtime (not import time)
    client_id = os.environ.get("SPOTIFY_CLIENT_ID") or os.environ.get("SPOTIPY_CLIENT_ID") or SPOTIFY_CLIENT_ID
    client_secret = os.environ.get("SPOTIFY_CLIENT_SECRET") or os.environ.get("SPOTIPY_CLIENT_SECRET") or SPOTIFY_CLIENT_SECRET
    redirect_uri = os.environ.get("SPOTIFY_REDIRECT_URI") or SPOTIFY_REDIRECT_URI

    if auth_mode == "client":
        auth_manager = SpotifyClientCredentials(
            client_id=client_id,
            client_secret=client_secret
        )
    elif auth_mode == "oauth":
        token_dir = Path(CACHE_DIR)
        token_dir.mkdir(parents=True, exist_ok=True)
        auth_manager = SpotifyOAuth(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            scope=" ".join(SPOTIFY_SCOPES),
            cache_path=str(token_dir / "token_cache"),
            open_browser=open_browser,
        )
    else:
        raise ValueError(f"Unknown auth mode: {auth_mode}")

    return spotipy.Spotify(auth_manager=auth_manager, requests_timeout=5)


class SpotifyClient:
    """
    Wrapper around Spotipy with caching, throttling and error mapping.

    Attributes:
        sp: Spotipy client instance
        cache: File cache for search responses (None when disabled)
    """

    def __init__(
        self,
        use_cache: bool = True,
        auth_mode: str = "oauth",
        sp: Optional[Any] = None
    ):
        """
        Initialize Spotify client.

        Args:
            use_cache: Enable local caching for search responses
            auth_mode: Passed to build_spotify when `sp` is not given
            sp: Pre-built spotipy client (or a stand-in exposing the same methods)
        """
        self.sp = sp if sp is not None else build_spotify(auth_mode)
        self.cache = Cache(CACHE_DIR, CACHE_TTL_HOURS) if use_cache else None
        self.last_playlist_url: Optional[str] = None

        # Request throttling, shared by worker threads
        self._throttle_lock = threading.Lock()
        self._last_request_time = 0.0
        self._min_request_interval = 0.05  # 50ms between requests

    def _throttle(self):
        """Ensure minimum time between requests across threads."""
        with self._throttle_lock:
            elapsed = time.time() - self._last_request_time
            if elapsed < self._min_request_interval:
                time.sleep(self._min_request_interval - elapsed)
            self._last_request_time = time.time()

    def _call(self, fn: Callable, *args, **kwargs) -> Any:
        """Run a spotipy call and translate its failures."""
        self._throttle()
        try:
            return fn(*args, **kwargs)
        except SpotifyOauthError as e:
            raise AuthError(f"Spotify authorization failed: {e}") from e
        except SpotifyException as e:
            if e.http_status in AUTH_STATUSES:
                raise AuthError(f"Spotify rejected the token ({e.http_status})") from e
            raise NetworkError(f"Spotify call failed ({e.http_status}): {e.msg}") from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Spotify request failed: {e}") from e

    # =========================================================================
    # CATALOG
    # =========================================================================

    def _search_items(self, query: str, limit: int) -> List[Dict]:
        cache_key = None
        if self.cache:
            cache_key = self.cache.make_key("search", f"{query}_{limit}")
            cached = self.cache.get(cache_key)
            if cached:
                return cached

        result = self._call(
            self.sp.search,
            q=query,
            type='track',
            limit=min(limit, SEARCH_PAGE_LIMIT)
        )
        items = [t for t in ((result or {}).get('tracks') or {}).get('items', []) if t]

        if cache_key and items:
            self.cache.set(cache_key, items)
        return items

    def search(self, term: str, limit: int = 5) -> List[Track]:
        """
        Free-text track search.

        Args:
            term: Search query
            limit: Maximum tracks to return

        Returns:
            List of Track

        Raises:
            AuthError, NetworkError, EmptyResult
        """
        items = self._search_items(term, limit)
        if not items:
            raise EmptyResult(f"No tracks found for '{term}'")
        logger.debug("Search '%s' returned %d tracks", term, len(items))
        return [Track.from_spotify(item) for item in items[:limit]]

    # =========================================================================
    # LIBRARY HISTORY
    # =========================================================================

    def fetch_recent_items(self, limit: int = 100) -> List[Tuple[str, int]]:
        """
        List saved tracks as (primary artist, 1) occurrences, newest first.

        Args:
            limit: Maximum library items to read

        Returns:
            List of (artist_name, occurrences)
        """
        history: List[Tuple[str, int]] = []
        offset = 0
        while len(history) < limit:
            page_size = min(SAVED_TRACKS_PAGE_LIMIT, limit - len(history))
            page = self._call(self.sp.current_user_saved_tracks, limit=page_size, offset=offset) or {}
            items = page.get('items', [])
            for item in items:
                track = item.get('track') or {}
                artists = track.get('artists') or []
                if artists and artists[0].get('name'):
                    history.append((artists[0]['name'], 1))
            if not items or not page.get('next'):
                break
            offset += len(items)

        return history[:limit]

    def current_user(self) -> Dict:
        """Profile of the authenticated user."""
        return self._call(self.sp.me) or {}

    # =========================================================================
    # PLAYLIST SINK
    # =========================================================================

    def _resolve_uris(self, tracks: Sequence[Track]) -> List[str]:
        uris = []
        for track in tracks:
            try:
                items = self._search_items(spotify_track_query(track.title, track.artist), 1)
            except NetworkError as e:
                logger.debug("Could not resolve '%s - %s': %s", track.title, track.artist, e)
                continue
            if items and items[0].get('uri'):
                uris.append(items[0]['uri'])
            else:
                logger.debug("No catalog match for '%s - %s'", track.title, track.artist)
        return uris

    def create_playlist(self, tracks: Sequence[Track], name: str) -> bool:
        """
        Create a private playlist holding the given tracks.

        Args:
            tracks: Tracks to add (resolved to catalog URIs by search)
            name: Playlist name

        Returns:
            True when the playlist was created with at least one track;
            False (and nothing created) when no track matched the catalog

        Raises:
            AuthError, NetworkError
        """
        me = self.current_user()
        user_id = me.get('id')
        if not user_id:
            raise AuthError("No Spotify user for playlist creation")

        uris = self._resolve_uris(tracks)
        if not uris:
            logger.warning("None of the %d tracks matched the catalog, '%s' not created", len(tracks), name)
            return False

        playlist = self._call(
            self.sp.user_playlist_create,
            user_id,
            name,
            public=False,
            description="Generated with Emolody",
        )

        try:
            for batch in chunked(uris, PLAYLIST_ADD_BATCH):
                self._call(self.sp.playlist_add_items, playlist['id'], batch)
        except CatalogError:
            self._discard_playlist(playlist['id'])
            raise

        self.last_playlist_url = (playlist.get('external_urls') or {}).get('spotify')
        logger.info("Created Spotify playlist '%s' with %d/%d tracks", name, len(uris), len(tracks))
        return True

    def _discard_playlist(self, playlist_id: str) -> None:
        """Remove a partially filled playlist from the user's library."""
        try:
            self._call(self.sp.current_user_unfollow_playlist, playlist_id)
        except CatalogError as e:
            logger.warning("Could not remove incomplete playlist %s: %s", playlist_id, e)

    def open_playlist(self, name: str) -> None:
        """Open the last created playlist in a browser, if any."""
        if not self.last_playlist_url:
            logger.info("No playlist URL to open for '%s'", name)
            return
        webbrowser.open(self.last_playlist_url)
