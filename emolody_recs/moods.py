"""
Mood Vocabulary
===============

The closed set of moods and the keywords used to search for each one.
"""

from enum import Enum
from typing import List, Optional

from .config import StaticTables, load_tables

GENERIC_KEYWORDS = ["popular"]


class Mood(Enum):
    """Emotional category driving a recommendation."""
    HAPPY = "Happy"
    SAD = "Sad"
    ENERGETIC = "Energetic"
    CALM = "Calm"
    FOCUSED = "Focused"
    ROMANTIC = "Romantic"

    @classmethod
    def from_label(cls, label: str) -> "Mood":
        """
        Parse a mood from user input.

        Accepts the display value or the member name, case-insensitively.

        Raises:
            ValueError: if the label names no mood
        """
        needle = (label or "").strip().lower()
        for mood in cls:
            if needle in (mood.value.lower(), mood.name.lower()):
                return mood
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown mood '{label}'. Choose one of: {valid}")


class MoodVocabulary:
    """Maps each mood to its ordered search keywords."""

    def __init__(self, tables: Optional[StaticTables] = None):
        self.tables = tables or load_tables()

    def keywords_for(self, mood: Mood) -> List[str]:
        """
        Get search keywords for a mood.

        Order matters: it drives query generation order.
        """
        value = getattr(mood, "value", mood)
        keywords = self.tables.mood_keywords.get(value)
        if not keywords:
            return list(GENERIC_KEYWORDS)
        return list(keywords)
