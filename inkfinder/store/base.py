# Path: inkfinder/store/base.py
# Purpose: Define the ImageStore interface consumed by search strategies.
# Layer: inkfinder/store.
# Details: Attribute queries come in a primary (optimized) and a scan (fallback) form; vectors are looked up by path.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

Row = Dict[str, Any]

KEYWORD = "keyword"
BODY_PART = "bodyPart"
PATH = "path"
NO_TATTOO = "noTattoo"

ATTRIBUTE_KINDS = (KEYWORD, BODY_PART, PATH, NO_TATTOO)


class ImageStore(ABC):
    """Abstract metadata store holding analysis documents and embedding rows.

    ``kind`` is one of :data:`ATTRIBUTE_KINDS`. Expected ``params`` per kind:

    - ``keyword``: ``{"terms": [str, ...]}``
    - ``bodyPart``: ``{"part": str}``
    - ``path``: ``{"fragment": str}``
    - ``noTattoo``: ``{}``

    Analysis rows have ``id``, ``path`` and ``analysis`` keys; path rows are embedding
    rows with ``id``, ``image_path``, ``embedding_type`` and ``created_at``.
    """

    name: str

    @abstractmethod
    def search(self, kind: str, params: Mapping[str, Any], limit: int, offset: int) -> Tuple[List[Row], int]:
        """Run the optimized query for ``kind``.

        Raises StoreUnavailableError when the optimized mechanism is missing and
        StoreQueryError for any other failure.
        """

    @abstractmethod
    def scan(self, kind: str, params: Mapping[str, Any], limit: int, offset: int) -> Tuple[List[Row], int]:
        """Run the slower fallback query for ``kind`` without relying on search indexes."""

    @abstractmethod
    def get_embedding(self, path: str, embedding_type: str = "full") -> Optional[np.ndarray]:
        """Return the stored vector for an exact path and embedding type, or None."""

    @abstractmethod
    def nearest_neighbors(self, vector: np.ndarray, threshold: float, limit: int) -> List[Row]:
        """Return up to ``limit`` rows with cosine similarity >= ``threshold``, best first.

        Each row carries ``id``, ``image_path``, ``embedding_type`` and ``similarity``.
        """

    @abstractmethod
    def image_paths(self) -> List[str]:
        """Return every distinct canonical path known to the store."""

    @abstractmethod
    def body_part_counts(self) -> Dict[str, int]:
        """Return the number of analysed images per body part."""
