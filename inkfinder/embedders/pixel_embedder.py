# Path: inkfinder/embedders/pixel_embedder.py
# Purpose: Provide a deterministic local embedder for ingest and offline use.
# Layer: inkfinder/embedders.
# Details: Decodes image bytes with Pillow and derives a vector from pixel statistics.

from __future__ import annotations

import io

import numpy as np
from PIL import Image, UnidentifiedImageError

from inkfinder.errors import EmbeddingServiceError

from .base import Embedder


class PixelEmbedder(Embedder):
    """Embedder built from colour histograms and a downsampled thumbnail.

    Identical images map to identical vectors, so a stored image is always its own
    nearest neighbor.
    """

    def __init__(self, dim: int = 512, thumbnail_size: int = 8, bins: int = 16) -> None:
        self.dim = dim
        self.thumbnail_size = thumbnail_size
        self.bins = bins
        self.name = "pixel"

    def embed_image(self, data: bytes) -> np.ndarray:
        try:
            image = Image.open(io.BytesIO(data)).convert("RGB")
        except (UnidentifiedImageError, OSError) as exc:
            raise EmbeddingServiceError(f"Could not decode image: {exc}") from exc

        pixels = np.asarray(image, dtype=np.float32)
        histograms = [
            np.histogram(pixels[..., channel], bins=self.bins, range=(0, 255))[0].astype(np.float32)
            for channel in range(3)
        ]
        histogram = np.concatenate(histograms)
        histogram /= max(float(histogram.sum()), 1.0)

        thumb = image.resize((self.thumbnail_size, self.thumbnail_size))
        thumb_vector = np.asarray(thumb, dtype=np.float32).flatten() / 255.0

        vector = np.concatenate([histogram, thumb_vector])
        padded = np.pad(vector, (0, max(0, self.dim - vector.size)), mode="wrap")
        return self._normalize(padded[: self.dim])
