# Path: inkfinder/embedders/base.py
# Purpose: Define the Embedder interface for turning raw image bytes into vectors.
# Layer: inkfinder/embedders.
# Details: Provides the abstract contract shared by the remote service client and the local embedder.

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np


class Embedder(ABC):
    """Abstract base class for all embedders used by the search core."""

    name: str
    dim: int

    @abstractmethod
    def embed_image(self, data: bytes) -> np.ndarray:
        """Return an embedding for encoded image bytes (PNG, JPEG, ...)."""

    @staticmethod
    def _normalize(vector: np.ndarray) -> np.ndarray:
        """Normalize embedding vectors to unit length to simplify similarity comparisons."""

        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector.astype(np.float32)
        return (vector / norm).astype(np.float32)
