# Path: inkfinder/search/pipeline.py
# Purpose: Orchestrate search workflow by combining interpretation, strategies, embeddings, and the store.
# Layer: inkfinder/search.
# Details: Dispatches one strategy per intent, normalizes rows, and renders chat responses; holds no per-request state.

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from config import AppSettings
from inkfinder.embedders.base import Embedder
from inkfinder.errors import ParseAmbiguity, StoreQueryError
from inkfinder.models.domain import (
    INTENT_TYPES,
    ChatSearchResponse,
    KeywordIntent,
    PaginationState,
    SearchIntent,
    SearchPage,
    SimilarityIntent,
    intent_from_params,
)
from inkfinder.store.base import ImageStore

from . import responses
from .browse import FolderNode, folder_hierarchy
from .chat_gate import ImageSearchGate
from .embedding_provider import DONE, NEIGHBORS_FOUND, EmbeddingProvider, ProgressCallback, ProgressTracker
from .interpreter import QueryInterpreter
from .normalizer import normalize
from .strategies import DEFAULT_ATTRIBUTE_STRATEGIES, AttributeSearchStrategy, SimilaritySearch

logger = logging.getLogger(__name__)


class SearchPipeline:
    """High-level service bridging chat/API layers with strategies and the metadata store."""

    def __init__(
        self,
        store: ImageStore,
        embedder: Optional[Embedder] = None,
        settings: Optional[AppSettings] = None,
        strategies: Optional[Dict[str, AttributeSearchStrategy]] = None,
    ) -> None:
        self.store = store
        self.settings = settings or AppSettings()
        self.interpreter = QueryInterpreter(self.settings.vocabulary, self.settings.search)
        self.gate = ImageSearchGate(self.settings.vocabulary)
        self.embeddings = EmbeddingProvider(store, embedder, self.settings.search.reference_embedding_type)
        self.similarity = SimilaritySearch()
        self.strategies: Dict[str, AttributeSearchStrategy] = strategies or {
            strategy.id: strategy for strategy in (cls() for cls in DEFAULT_ATTRIBUTE_STRATEGIES)
        }

    def _coerce_intent(
        self, intent: Union[SearchIntent, Mapping[str, Any], str, None], default_limit: int
    ) -> SearchIntent:
        if isinstance(intent, tuple(INTENT_TYPES.values())):
            return intent
        if isinstance(intent, Mapping):
            return intent_from_params(intent, default_limit)
        logger.warning(f"Unrecognized intent {intent!r}; searching it as a keyword")
        return KeywordIntent(term="" if intent is None else str(intent), limit=default_limit)

    def _clamp(self, value: Optional[int], default: int) -> int:
        if value is None or value < 1:
            return default
        return min(value, self.settings.search.max_limit)

    def execute(
        self,
        intent: Union[SearchIntent, Mapping[str, Any], str],
        page: int = 0,
        page_size: Optional[int] = None,
        threshold: Optional[float] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> SearchPage:
        """
        Run exactly one strategy for ``intent`` and return one normalized page.

        Non-fatal faults (parse ambiguity, store failures, including a failed reference lookup) come back on ``SearchPage.error``.
        MissingEmbeddingError and EmbeddingServiceError propagate.

        External calls:
        - inkfinder/search/strategies.py::AttributeSearchStrategy.run - primary query with fallback scan.
        - inkfinder/search/embedding_provider.py::EmbeddingProvider.resolve_query_vector - query vector lookup.
        - inkfinder/search/strategies.py::SimilaritySearch.run - nearest neighbors minus the reference.
        """

        default_limit = self.settings.search.chat_default_limit
        intent = self._coerce_intent(intent, default_limit)
        limit = self._clamp(getattr(intent, "limit", None), default_limit)
        page_size = self._clamp(page_size, limit)
        pagination = PaginationState(page=page, page_size=page_size)

        try:
            if isinstance(intent, SimilarityIntent):
                return self._execute_similarity(intent, pagination, limit, threshold, ProgressTracker(progress))

            strategy = self.strategies.get(intent.tag) or self.strategies[KeywordIntent.tag]
            outcome = strategy.run(self.store, intent, pagination.page_size, pagination.offset)
        except ParseAmbiguity as exc:
            logger.info(f"Skipping search for {intent}: {exc}")
            return SearchPage(records=[], total_count=0, pagination=pagination, error=exc)
        except StoreQueryError as exc:
            logger.error(f"Search for {intent} could not read the store: {exc}")
            return SearchPage(records=[], total_count=0, pagination=pagination, error=exc)

        records = normalize(outcome.rows, strategy.id)
        return SearchPage(
            records=records,
            total_count=outcome.total_count,
            pagination=PaginationState(page=page, page_size=page_size, total_count=outcome.total_count),
            error=outcome.error,
        )

    def _execute_similarity(
        self,
        intent: SimilarityIntent,
        pagination: PaginationState,
        limit: int,
        threshold: Optional[float],
        progress: ProgressTracker,
    ) -> SearchPage:
        vector = self.embeddings.resolve_query_vector(intent, progress)
        if threshold is None:
            threshold = intent.threshold if intent.threshold is not None else self.settings.search.similarity_threshold

        outcome = self.similarity.run(self.store, vector, threshold, limit, reference_path=intent.reference_path)
        progress.report(NEIGHBORS_FOUND)

        # Neighbors have no offset in the store; pages slice the bounded result set.
        records = normalize(outcome.rows, self.similarity.id)
        window = records[pagination.offset : pagination.offset + pagination.page_size]
        progress.report(DONE)
        return SearchPage(
            records=window,
            total_count=len(records),
            pagination=PaginationState(page=pagination.page, page_size=pagination.page_size, total_count=len(records)),
            error=outcome.error,
        )

    def search(
        self,
        intent: Union[SearchIntent, Mapping[str, Any], str],
        page: int = 0,
        page_size: Optional[int] = None,
        threshold: Optional[float] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> SearchPage:
        """Paginated browse entry point; the caller resupplies the full intent for every page."""

        default_size = self.settings.search.page_default_size
        intent = self._coerce_intent(intent, default_size)
        return self.execute(
            intent, page=page, page_size=page_size or default_size, threshold=threshold, progress=progress
        )

    def looks_like_image_search(self, text: str) -> bool:
        return self.gate.looks_like_image_search(text)

    def process_image_search_request(
        self,
        text: str,
        image: Optional[bytes] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> ChatSearchResponse:
        """Interpret chat text, run the matching strategy, and describe the outcome."""

        intent = self.interpreter.interpret(text, self.settings.search.chat_default_limit, image=image)
        logger.info(f"Chat search {text!r} interpreted as {intent.tag}")
        result = self.execute(intent, page=0, page_size=intent.limit, progress=progress)

        if isinstance(result.error, ParseAmbiguity):
            response = responses.render_clarification(intent)
        elif result.error is not None:
            response = responses.render_failure(intent)
        else:
            response = responses.render(intent, len(result.records))

        return ChatSearchResponse(
            intent=intent,
            results=result.records,
            response=response,
            total_count=result.total_count,
            error=result.error,
        )

    def folder_hierarchy(self) -> List[FolderNode]:
        return folder_hierarchy(self.store.image_paths())

    def body_part_counts(self) -> Dict[str, int]:
        return self.store.body_part_counts()
