# Path: inkfinder/search/embedding_provider.py
# Purpose: Resolve the query vector for a similarity intent.
# Layer: inkfinder/search.
# Details: Embeds uploaded bytes through the configured embedder or loads the stored vector for a reference path.

from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np

from inkfinder.embedders.base import Embedder
from inkfinder.errors import EmbeddingServiceError, MissingEmbeddingError, ParseAmbiguity
from inkfinder.models.domain import SimilarityIntent
from inkfinder.store.base import ImageStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

# Checkpoints reported across the embed -> search pipeline.
STARTED = 10
PAYLOAD_READY = 30
EMBEDDING_LOADED = 40
VECTOR_READY = 60
NEIGHBORS_FOUND = 90
DONE = 100


class ProgressTracker:
    """Forward strictly increasing progress values to an optional UI callback.

    Progress is advisory: callback failures are logged and never interrupt a search.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self.callback = callback
        self.value = 0

    def report(self, value: int) -> None:
        if value <= self.value:
            return
        self.value = value
        logger.debug(f"Similarity search progress: {value}%")
        if self.callback is None:
            return
        try:
            self.callback(value)
        except Exception as exc:
            logger.warning(f"Progress callback failed at {value}%: {exc}")


class EmbeddingProvider:
    """Produce query vectors from raw image bytes or previously stored embeddings."""

    def __init__(
        self,
        store: ImageStore,
        embedder: Optional[Embedder] = None,
        reference_embedding_type: str = "full",
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.reference_embedding_type = reference_embedding_type

    def resolve_query_vector(
        self, intent: SimilarityIntent, progress: Optional[ProgressTracker] = None
    ) -> np.ndarray:
        """Return the query vector for ``intent``.

        Raises EmbeddingServiceError when raw bytes cannot be embedded, MissingEmbeddingError
        when the reference path has no stored vector, and ParseAmbiguity when the intent
        names neither.
        """

        progress = progress or ProgressTracker()
        progress.report(STARTED)

        if intent.raw_image is not None:
            if self.embedder is None:
                raise EmbeddingServiceError("No embedding service is configured for uploaded images.")
            progress.report(PAYLOAD_READY)
            vector = self.embedder.embed_image(intent.raw_image)
            logger.info(f"Embedded uploaded image with {self.embedder.name} ({vector.shape[0]} dims)")
        elif intent.reference_path:
            vector = self.store.get_embedding(intent.reference_path, self.reference_embedding_type)
            if vector is None:
                raise MissingEmbeddingError(intent.reference_path, self.reference_embedding_type)
            progress.report(EMBEDDING_LOADED)
            logger.info(f"Loaded {self.reference_embedding_type} embedding for {intent.reference_path}")
        else:
            raise ParseAmbiguity("Similarity search needs a reference path or an uploaded image.", intent)

        progress.report(VECTOR_READY)
        return np.asarray(vector, dtype=np.float32)
