# Path: inkfinder/search/interpreter.py
# Purpose: Classify free-text requests into typed search intents.
# Layer: inkfinder/search.
# Details: Ordered (predicate, builder) rules over normalized text; first match wins, vocabularies come from settings.

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Callable, List, Optional, Tuple

from config import SearchSettings, VocabularySettings
from inkfinder.models.domain import (
    BodyPartIntent,
    ExclusionIntent,
    KeywordIntent,
    PathIntent,
    SearchIntent,
    SimilarityIntent,
)

logger = logging.getLogger(__name__)

PATH_TOKEN = r"[\w/.:~-]+"

Predicate = Callable[[str], bool]
Builder = Callable[[str, str, int], SearchIntent]


def _alternation(words: List[str]) -> str:
    ordered = sorted({word.strip() for word in words if word.strip()}, key=len, reverse=True)
    return "|".join(re.escape(word).replace(r"\ ", r"\s+") for word in ordered)


def _clean_token(token: str) -> str:
    return token.rstrip(".,;:!?")


class QueryInterpreter:
    """Rule-based interpreter turning chat text into a :data:`SearchIntent`.

    Rules run top to bottom: similarity, body part, exclusion, path, then keyword as
    the fallthrough. A ``limit|show|find|get <N>`` phrase overrides the limit for any
    branch; values above the maximum are clamped and values below 1 reset to the default.
    """

    def __init__(
        self,
        vocabulary: Optional[VocabularySettings] = None,
        settings: Optional[SearchSettings] = None,
    ) -> None:
        self.vocabulary = vocabulary or VocabularySettings()
        self.settings = settings or SearchSettings()
        vocab = self.vocabulary

        self._similarity_re = re.compile(rf"\b(?:{_alternation(vocab.similarity_triggers)})\b", re.IGNORECASE)
        self._reference_re = re.compile(
            rf"\b(?:{_alternation(vocab.similarity_markers)})\s+(?:this\s+|the\s+|image\s+)*({PATH_TOKEN})",
            re.IGNORECASE,
        )
        self._body_part_re = re.compile(rf"\b({_alternation(vocab.body_parts)})\b", re.IGNORECASE)
        self._body_phrase_re = re.compile(rf"\b{_alternation([vocab.body_part_phrase])}\b", re.IGNORECASE)
        self._path_word_re = re.compile(rf"\b(?:{_alternation(vocab.path_words)})\b", re.IGNORECASE)
        fillers = _alternation(vocab.path_fillers)
        self._path_cue_re = re.compile(
            rf"\b(?:{_alternation(vocab.path_words)})\s+(?:(?:{fillers})\s+)*({PATH_TOKEN})", re.IGNORECASE
        )
        self._in_cue_re = re.compile(rf"\bin\s+(?:(?:{fillers})\s+)*({PATH_TOKEN})", re.IGNORECASE)
        self._exclusion_re = re.compile(rf"\b(?:{_alternation(vocab.exclusion_phrases)})s?\b", re.IGNORECASE)
        self._limit_re = re.compile(rf"\b(?:{_alternation(vocab.limit_verbs)})\s+(\d+)\b", re.IGNORECASE)
        self._stop_words = {word.lower() for word in vocab.stop_words}
        self._path_stop_words = {word.lower() for word in vocab.path_words + vocab.path_fillers}

        self.rules: List[Tuple[str, Predicate, Builder]] = [
            ("similarity", self._is_similarity, self._build_similarity),
            ("bodyPart", self._is_body_part, self._build_body_part),
            ("noTattoo", self._is_exclusion, self._build_exclusion),
            ("path", self._is_path, self._build_path),
            ("keyword", lambda normalized: True, self._build_keyword),
        ]

    @staticmethod
    def normalize(text: str) -> str:
        return " ".join(text.lower().split())

    def interpret(self, text: str, default_limit: Optional[int] = None, image: Optional[bytes] = None) -> SearchIntent:
        """Classify ``text``; when ``image`` bytes are supplied the request is a raw-image similarity search."""

        default_limit = default_limit or self.settings.chat_default_limit
        original = " ".join(text.split())
        normalized = self.normalize(text)

        if image is not None:
            intent: SearchIntent = SimilarityIntent(raw_image=image, limit=default_limit)
            rule = "similarity"
        else:
            rule, intent = next(
                (name, builder(normalized, original, default_limit))
                for name, predicate, builder in self.rules
                if predicate(normalized)
            )

        limit = self.extract_limit(normalized, default_limit)
        if limit != intent.limit:
            intent = replace(intent, limit=limit)
        logger.debug(f"Interpreted {text!r} via {rule} rule as {intent}")
        return intent

    def extract_limit(self, normalized: str, default_limit: int) -> int:
        match = self._limit_re.search(normalized)
        if not match:
            return default_limit
        requested = int(match.group(1))
        if requested < 1:
            return default_limit
        return min(requested, self.settings.max_limit)

    # Predicates
    def _is_similarity(self, normalized: str) -> bool:
        return self._similarity_re.search(normalized) is not None

    def _is_body_part(self, normalized: str) -> bool:
        return self._body_phrase_re.search(normalized) is not None or self._body_part_re.search(normalized) is not None

    def _is_exclusion(self, normalized: str) -> bool:
        return self._exclusion_re.search(normalized) is not None

    def _is_path(self, normalized: str) -> bool:
        return self._path_word_re.search(normalized) is not None or self._in_cue_re.search(normalized) is not None

    # Builders
    def _build_similarity(self, normalized: str, original: str, limit: int) -> SearchIntent:
        reference = None
        for match in self._reference_re.finditer(original):
            token = _clean_token(match.group(1))
            # Plain words ("like roses") are not references; paths carry a separator or extension.
            if any(marker in token for marker in "/.:"):
                reference = token
                break
        return SimilarityIntent(reference_path=reference, limit=limit)

    def _build_body_part(self, normalized: str, original: str, limit: int) -> SearchIntent:
        match = self._body_part_re.search(normalized)
        return BodyPartIntent(part=match.group(1).lower() if match else None, limit=limit)

    def _build_exclusion(self, normalized: str, original: str, limit: int) -> SearchIntent:
        return ExclusionIntent(limit=limit)

    def _build_path(self, normalized: str, original: str, limit: int) -> SearchIntent:
        fragment = None
        for pattern in (self._path_cue_re, self._in_cue_re):
            for match in pattern.finditer(original):
                token = _clean_token(match.group(1))
                if token and token.lower() not in self._path_stop_words:
                    fragment = token
                    break
            if fragment:
                break
        return PathIntent(fragment=fragment, limit=limit)

    def _build_keyword(self, normalized: str, original: str, limit: int) -> SearchIntent:
        return KeywordIntent(term=self.keyword_term(normalized), limit=limit)

    def keyword_term(self, normalized: str) -> str:
        """Strip stop words, punctuation, and the limit phrase's number from ``normalized``."""

        limit_match = self._limit_re.search(normalized)
        if limit_match:
            normalized = normalized[: limit_match.start(1)] + normalized[limit_match.end(1) :]
        tokens = re.findall(r"[\w'-]+", normalized)
        kept = [token.strip("'-") for token in tokens if token.strip("'-") not in self._stop_words]
        return " ".join(token for token in kept if token)
