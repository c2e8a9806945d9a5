# Path: inkfinder/search/strategies.py
# Purpose: Define the retrieval strategies dispatched by the search pipeline.
# Layer: inkfinder/search.
# Details: Attribute strategies pair a primary store query with a fallback scan; similarity ranks stored vectors.

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from inkfinder.errors import ParseAmbiguity, SearchError, StoreQueryError, StoreUnavailableError
from inkfinder.models.domain import (
    BodyPartIntent,
    ExclusionIntent,
    KeywordIntent,
    PathIntent,
    SearchIntent,
)
from inkfinder.store.base import BODY_PART, KEYWORD, NO_TATTOO, PATH, ImageStore, Row

logger = logging.getLogger(__name__)

Query = Callable[[], Tuple[List[Row], int]]


@dataclass
class StrategyOutcome:
    """Raw rows from one strategy run plus any fault recovered along the way."""

    rows: List[Row] = field(default_factory=list)
    total_count: int = 0
    error: Optional[SearchError] = None
    used_fallback: bool = False


def run_with_fallback(name: str, primary: Query, fallback: Optional[Query] = None) -> StrategyOutcome:
    """Try ``primary``; switch to ``fallback`` only when the store reports it unavailable.

    Store faults end here: a failed query yields an empty outcome carrying the error.
    Anything that is not a store fault propagates.
    """

    try:
        rows, total = primary()
        return StrategyOutcome(rows=rows, total_count=total)
    except StoreUnavailableError as exc:
        if fallback is None:
            logger.error(f"{name} search unavailable and no fallback exists: {exc}")
            return StrategyOutcome(error=exc)
        logger.warning(f"{name} primary query unavailable ({exc}); using fallback scan")
    except StoreQueryError as exc:
        logger.error(f"{name} search failed: {exc}")
        return StrategyOutcome(error=exc)

    try:
        rows, total = fallback()
        return StrategyOutcome(rows=rows, total_count=total, used_fallback=True)
    except StoreQueryError as exc:
        logger.error(f"{name} fallback query also failed: {exc}")
        return StrategyOutcome(error=exc, used_fallback=True)


class SearchStrategy(ABC):
    """Interface shared by every retrieval mechanism."""

    id: str
    description: str


class AttributeSearchStrategy(SearchStrategy):
    """Strategy mapping one intent parameter onto a store query and its count."""

    kind: str

    @abstractmethod
    def build_params(self, intent: SearchIntent) -> Dict[str, Any]:
        """Return store parameters for ``intent``; raise ParseAmbiguity when a required one is missing."""

    def primary(self, store: ImageStore, params: Dict[str, Any], limit: int, offset: int) -> Tuple[List[Row], int]:
        return store.search(self.kind, params, limit, offset)

    def fallback(self, store: ImageStore, params: Dict[str, Any], limit: int, offset: int) -> Tuple[List[Row], int]:
        return store.scan(self.kind, params, limit, offset)

    def postprocess(self, rows: List[Row]) -> List[Row]:
        return rows

    def run(self, store: ImageStore, intent: SearchIntent, limit: int, offset: int) -> StrategyOutcome:
        params = self.build_params(intent)
        outcome = run_with_fallback(
            self.id,
            lambda: self.primary(store, params, limit, offset),
            lambda: self.fallback(store, params, limit, offset),
        )
        outcome.rows = self.postprocess(outcome.rows)
        logger.info(
            f"{self.id} search {params} (limit={limit}, offset={offset}) returned "
            f"{len(outcome.rows)} of {outcome.total_count} rows"
        )
        return outcome


class KeywordSearch(AttributeSearchStrategy):
    """Case-insensitive free-text match over the analysis document."""

    id = "keyword"
    kind = KEYWORD
    description = "Match every keyword against the analysed attributes document."

    def build_params(self, intent: SearchIntent) -> Dict[str, Any]:
        term = intent.term if isinstance(intent, KeywordIntent) else ""
        terms = [word for word in term.lower().split() if len(word) > 1]
        if not terms:
            raise ParseAmbiguity("No keyword left to search for.", intent)
        return {"terms": terms}


class BodyPartSearch(AttributeSearchStrategy):
    """Equality match on the analysed body part."""

    id = "bodyPart"
    kind = BODY_PART
    description = "Match images whose analysis places the tattoo on a body part."

    def build_params(self, intent: SearchIntent) -> Dict[str, Any]:
        part = intent.part if isinstance(intent, BodyPartIntent) else None
        if not part or not part.strip():
            raise ParseAmbiguity("No body part was named.", intent)
        # The store compares case-sensitively against lower-case analysis values.
        return {"part": part.strip().lower()}


class PathSearch(AttributeSearchStrategy):
    """Substring match on canonical paths over embedding rows."""

    id = "path"
    kind = PATH
    description = "Match canonical paths containing a folder or file fragment."

    def build_params(self, intent: SearchIntent) -> Dict[str, Any]:
        fragment = intent.fragment if isinstance(intent, PathIntent) else None
        if not fragment or not fragment.strip():
            raise ParseAmbiguity("No folder or path fragment was given.", intent)
        return {"fragment": fragment.strip()}

    def postprocess(self, rows: List[Row]) -> List[Row]:
        # One row per embedding; keep the first row for each image.
        seen = set()
        unique: List[Row] = []
        for row in rows:
            if row["image_path"] in seen:
                continue
            seen.add(row["image_path"])
            unique.append(row)
        return unique


class ExclusionSearch(AttributeSearchStrategy):
    """Images whose analysis reports no tattoo."""

    id = "noTattoo"
    kind = NO_TATTOO
    description = "Match images analysed as not containing a tattoo."

    def build_params(self, intent: SearchIntent) -> Dict[str, Any]:
        if not isinstance(intent, ExclusionIntent):
            raise ParseAmbiguity("Exclusion search needs an exclusion intent.", intent)
        return {}


class SimilaritySearch(SearchStrategy):
    """Nearest-neighbor retrieval that never returns the reference image itself."""

    id = "similarity"
    description = "Rank stored embeddings by cosine similarity to a query vector."

    def __init__(self, overfetch: int = 2) -> None:
        self.overfetch = overfetch

    def run(
        self,
        store: ImageStore,
        vector: np.ndarray,
        threshold: float,
        limit: int,
        reference_path: Optional[str] = None,
    ) -> StrategyOutcome:
        # The reference (and its other embedding types) would otherwise take the top slots.
        request = limit * self.overfetch + 1 if reference_path else limit
        outcome = run_with_fallback(self.id, lambda: self._neighbors(store, vector, threshold, request))

        kept: List[Row] = []
        seen = set()
        for row in outcome.rows:
            path = row.get("image_path") or row.get("path")
            if path == reference_path or path in seen:
                continue
            seen.add(path)
            kept.append(row)
            if len(kept) >= limit:
                break
        outcome.rows = kept
        outcome.total_count = len(kept)
        logger.info(
            f"Similarity search (threshold={threshold}, limit={limit}, reference={reference_path}) "
            f"returned {len(kept)} rows"
        )
        return outcome

    @staticmethod
    def _neighbors(store: ImageStore, vector: np.ndarray, threshold: float, limit: int) -> Tuple[List[Row], int]:
        rows = store.nearest_neighbors(vector, threshold, limit)
        return rows, len(rows)


DEFAULT_ATTRIBUTE_STRATEGIES: Tuple[type, ...] = (KeywordSearch, BodyPartSearch, PathSearch, ExclusionSearch)
