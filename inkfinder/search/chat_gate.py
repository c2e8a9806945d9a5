# Path: inkfinder/search/chat_gate.py
# Purpose: Decide whether a chat message is likely an image search request.
# Layer: inkfinder/search.
# Details: Counts matching vocabulary categories; two or more matches route the message into search.

from __future__ import annotations

import re
from typing import List, Optional, Pattern

from config import VocabularySettings


class ImageSearchGate:
    """Heuristic gate placed in front of the query interpreter."""

    def __init__(self, vocabulary: Optional[VocabularySettings] = None) -> None:
        self.vocabulary = vocabulary or VocabularySettings()
        self.patterns: List[Pattern[str]] = [
            re.compile(
                r"\b(?:" + "|".join(re.escape(word).replace(r"\ ", r"\s+") for word in category) + r")\b",
                re.IGNORECASE,
            )
            for category in self.vocabulary.gate_categories
            if category
        ]

    def matched_categories(self, text: str) -> int:
        return sum(1 for pattern in self.patterns if pattern.search(text))

    def looks_like_image_search(self, text: str) -> bool:
        if not text or not text.strip():
            return False
        return self.matched_categories(text) >= self.vocabulary.gate_min_matches
