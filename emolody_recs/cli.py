"""
Command-Line Interface for Emolody Recs
=======================================

Usage:
    python -m emolody_recs.cli <mood> [options]

    or

    emolody-recs <mood> [options]

Options:
    --genres, -g        Favorite genres to use instead of a library analysis
    --artists, -a       Favorite artists to use instead of a library analysis
    --from-library      Derive the taste profile from Spotify saved tracks
    --offline           Skip Spotify entirely (static song tables only)
    --seed              Seed for the static-table shuffle
    --format            Output format: json, simple or share (default: simple)
    --output, -o        Output file path (default: stdout)
    --save              Save the playlist to Spotify (or memory when offline)
    --open              Open the saved playlist afterwards
    --verbose, -v       Verbose logging
    --no-cache          Disable API response caching

Examples:
    python -m emolody_recs.cli happy
    python -m emolody_recs.cli calm -g Jazz Indie --offline --seed 7
    python -m emolody_recs.cli happy -g Pop -a "The Weeknd"
    python -m emolody_recs.cli energetic --from-library --save -o workout.json
"""

import argparse
import asyncio
import os
import sys

from dotenv import load_dotenv
import numpy as np

from emolody_recs.config import DEFAULT_TASTE_CONFIG
from emolody_recs.errors import EmolodyError
from emolody_recs.features import TasteProfile
from emolody_recs.moods import Mood
from emolody_recs.recommender import PlaylistResult, RecommendationEngine
from emolody_recs.session import AuthSession, MemoryPlaylistSink, PlaylistSession
from emolody_recs.utils import setup_logging

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_SAVED = 2


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='emolody-recs',
        description='🎵 Emolody - Mood-matched playlist generator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Moods:
  Happy, Sad, Energetic, Calm, Focused, Romantic

Environment Variables:
  SPOTIFY_CLIENT_ID      Your Spotify API client ID
  SPOTIFY_CLIENT_SECRET  Your Spotify API client secret
  SPOTIFY_REDIRECT_URI   OAuth redirect URI
  EMOLODY_TABLES         Alternative static tables YAML file
        """
    )

    parser.add_argument(
        'mood',
        type=str,
        help='Mood to generate for (e.g. happy, calm)'
    )

    parser.add_argument(
        '-g', '--genres',
        nargs='+',
        default=None,
        help='Ranked favorite genres (e.g. Pop R&B)'
    )

    parser.add_argument(
        '-a', '--artists',
        nargs='+',
        default=None,
        help='Ranked favorite artists (e.g. "The Weeknd")'
    )

    parser.add_argument(
        '--from-library',
        action='store_true',
        help='Analyze Spotify saved tracks for the taste profile'
    )

    parser.add_argument(
        '--offline',
        action='store_true',
        help='Do not contact Spotify; use the static song tables'
    )

    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Seed for the static-table shuffle'
    )

    parser.add_argument(
        '--format',
        type=str,
        choices=['json', 'simple', 'share'],
        default='simple',
        help='Output format (default: simple)'
    )

    parser.add_argument(
        '-o', '--output',
        type=str,
        default=None,
        help='Output file path (default: print to stdout)'
    )

    parser.add_argument(
        '--save',
        action='store_true',
        help='Save the generated playlist'
    )

    parser.add_argument(
        '--open',
        action='store_true',
        help='Open the saved playlist afterwards'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--no-cache',
        action='store_true',
        help='Disable API response caching'
    )

    return parser


def format_output(result: PlaylistResult, fmt: str, session: PlaylistSession) -> str:
    """Format a generated playlist based on requested format."""
    if fmt == 'json':
        return result.to_json(indent=2)

    elif fmt == 'share':
        return session.share() or "No songs generated."

    lines = [
        f"🎵 {session.playlist_name}",
        f"   Generation ID: {result.generated_id}",
        f"   Source: {result.source}",
        "",
        f"{len(result.tracks)} songs:",
        "-" * 50,
    ]
    for i, track in enumerate(result.tracks, 1):
        lines.append(f"{i:2}. {track.title} - {track.artist} ({track.duration})")
    return '\n'.join(lines)


def profile_from_args(args: argparse.Namespace) -> TasteProfile:
    """Taste profile from --genres/--artists, capped like an analyzed profile."""
    config = DEFAULT_TASTE_CONFIG
    genres = [g for g in (args.genres or []) if g.strip()]
    artists = [a for a in (args.artists or []) if a.strip()]
    if len(genres) > config.max_genres or len(artists) > config.max_artists:
        print(
            f"⚠️  Using the first {config.max_genres} genres and {config.max_artists} artists",
            file=sys.stderr
        )
    return TasteProfile(
        top_genres=genres[:config.max_genres],
        favorite_artists=artists[:config.max_artists],
    )


def has_credentials() -> bool:
    """Check if Spotify credentials are available."""
    client_id = os.environ.get('SPOTIFY_CLIENT_ID') or os.environ.get('SPOTIPY_CLIENT_ID')
    client_secret = os.environ.get('SPOTIFY_CLIENT_SECRET') or os.environ.get('SPOTIPY_CLIENT_SECRET')
    return bool(client_id and client_secret)


def build_session(args: argparse.Namespace) -> PlaylistSession:
    """Wire catalog, auth and sink for the requested mode."""
    rng = np.random.default_rng(args.seed)

    if args.offline or not has_credentials():
        if not args.offline:
            print("⚠️  Spotify credentials not set, using static song tables", file=sys.stderr)
        engine = RecommendationEngine(catalog=None, auth=AuthSession(), rng=rng)
        return PlaylistSession(engine, sink=MemoryPlaylistSink())

    # Import here so offline runs never build a Spotify auth manager
    from emolody_recs.spotify_client import SpotifyClient

    spotify = SpotifyClient(use_cache=not args.no_cache)
    auth = AuthSession.from_spotify(spotify)
    engine = RecommendationEngine(catalog=spotify, auth=auth, rng=rng)
    sink = spotify if auth.is_authenticated else None
    return PlaylistSession(engine, sink=sink)


async def run(args: argparse.Namespace) -> int:
    mood = Mood.from_label(args.mood)
    session = build_session(args)

    if args.genres or args.artists:
        session.profile = profile_from_args(args)
    elif args.from_library and session.engine.live_available:
        await session.analyze_taste(session.engine.catalog)
    elif args.from_library:
        print("⚠️  Library analysis needs a Spotify sign-in, continuing without it", file=sys.stderr)

    result = await session.generate(mood)
    output = format_output(result, args.format, session)

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(output)
        print(f"✅ Playlist saved to: {args.output}")
    else:
        print(output)

    if args.save:
        if not await session.save():
            print("❌ Could not save the playlist, try again later", file=sys.stderr)
            return EXIT_NOT_SAVED
        print(f"✅ Saved '{session.playlist_name}'")
        if args.open:
            await session.open_playlist()

    return EXIT_OK


def main(argv=None) -> int:
    """Main entry point for CLI."""
    load_dotenv(override=False)
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging("DEBUG" if args.verbose else "WARNING")

    try:
        return asyncio.run(run(args))
    except (EmolodyError, ValueError) as e:
        print(f"❌ Error: {str(e)}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return EXIT_ERROR


if __name__ == '__main__':
    sys.exit(main())
