"""
Emolody Recs - Mood-based Playlist Recommendation Core
======================================================

Given a mood and a taste profile derived from library history, plans
catalog searches, ranks and deduplicates the results, and falls back to
static song tables whenever the live catalog cannot answer.

Modules:
    - config: Configuration, constants and static table loading
    - errors: Error taxonomy
    - moods: Mood enum and keyword vocabulary
    - features: Track value and taste profile extraction
    - candidates: Query planning and static song tables
    - spotify_client: Spotify API wrapper (catalog, library, playlist sink)
    - recommender: Main recommendation orchestrator
    - session: Playlist session (save/share)
    - cli: Command-line interface
"""

__version__ = "1.0.0"
__author__ = "Emolody Team"
