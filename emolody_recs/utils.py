"""
Utility Functions
=================

Common utilities used across the Emolody recommendation core.
"""

import os
import json
import hashlib
import logging
import time
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

LOGGER_NAME = "emolody_recs"


class Cache:
    """Simple file-based cache with TTL support."""

    def __init__(self, cache_dir: str = ".cache", ttl_hours: int = 24):
        """
        Initialize cache.

        Args:
            cache_dir: Directory for cache files
            ttl_hours: Time-to-live in hours
        """
        self.cache_dir = Path(cache_dir)
        self.ttl_seconds = ttl_hours * 3600
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def make_key(self, prefix: str, data: Any) -> str:
        """Generate cache key from data."""
        data_str = json.dumps(data, sort_keys=True, default=str)
        return f"{prefix}_{hashlib.md5(data_str.encode()).hexdigest()[:12]}"

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        cache_file = self.cache_dir / f"{key}.json"

        if not cache_file.exists():
            return None

        try:
            with open(cache_file, 'r', encoding='utf-8') as f:
                cached = json.load(f)

            # Check TTL
            if time.time() - cached.get('timestamp', 0) > self.ttl_seconds:
                cache_file.unlink()
                return None

            return cached.get('data')
        except (json.JSONDecodeError, OSError):
            return None

    def set(self, key: str, data: Any) -> None:
        """Set value in cache. Write failures leave the cache unchanged."""
        cache_file = self.cache_dir / f"{key}.json"

        try:
            with open(cache_file, 'w', encoding='utf-8') as f:
                json.dump({'timestamp': time.time(), 'data': data}, f)
        except OSError as e:
            logging.getLogger(__name__).debug("Cache write failed for %s: %s", key, e)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger.

    Console gets `level` (LOG_LEVEL env var wins); the optional file handler
    always records DEBUG. Safe to call more than once.
    """
    level = os.getenv("LOG_LEVEL", level).upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    ch = logging.StreamHandler()
    ch.setLevel(getattr(logging, level, logging.INFO))
    ch.setFormatter(logging.Formatter("%(levelname)s | %(message)s"))
    logger.addHandler(ch)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(fh)

    logger.debug("Logging initialized")
    return logger


def format_duration(seconds: float) -> str:
    """Format seconds as m:ss."""
    total = int(seconds)
    minutes, remaining = divmod(total, 60)
    return f"{minutes}:{remaining:02d}"


def chunked(items: Sequence, size: int) -> Iterator[List]:
    """Yield successive lists of at most `size` items."""
    for i in range(0, len(items), size):
        yield list(items[i:i + size])


def spotify_track_query(title: str, artist: str) -> str:
    """Field-filtered search query that pins a single track."""
    def clean(value: str) -> str:
        return value.replace('"', '').strip()
    return f'track:"{clean(title)}" artist:"{clean(artist)}"'

