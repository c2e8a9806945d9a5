# Path: inkfinder/embedders/remote_embedder.py
# Purpose: Call the external embedding generation service for uploaded image bytes.
# Layer: inkfinder/embedders.
# Details: Posts base64 payloads with requests and converts any failure into EmbeddingServiceError.

from __future__ import annotations

import base64
import logging
from typing import Optional

import numpy as np
import requests

from config import EmbeddingServiceSettings
from inkfinder.errors import EmbeddingServiceError

from .base import Embedder

logger = logging.getLogger(__name__)


class RemoteEmbedder(Embedder):
    """Client for an HTTP embedding service.

    Request body: ``{"image_base64": str, "embedding_type": str}``.
    Response body: ``{"embedding": [float, ...]}``.
    """

    def __init__(
        self,
        settings: Optional[EmbeddingServiceSettings] = None,
        session: Optional[requests.Session] = None,
        embedding_type: str = "full",
    ) -> None:
        self.settings = settings or EmbeddingServiceSettings()
        self.session = session or requests.Session()
        self.embedding_type = embedding_type
        self.dim = self.settings.dim
        self.name = "remote"

    def embed_image(self, data: bytes) -> np.ndarray:
        if not data:
            raise EmbeddingServiceError("Image payload is empty.")

        headers = {"Content-Type": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"

        payload = {
            "image_base64": base64.b64encode(data).decode("ascii"),
            "embedding_type": self.embedding_type,
        }
        logger.info(f"Requesting {self.embedding_type} embedding for {len(data)} bytes from {self.settings.url}")
        try:
            response = self.session.post(
                self.settings.url,
                json=payload,
                headers=headers,
                timeout=self.settings.timeout_seconds,
            )
        except requests.exceptions.RequestException as exc:
            raise EmbeddingServiceError(f"Embedding service unavailable: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise EmbeddingServiceError(
                f"Embedding service returned status {response.status_code}: {self._error_message(response)}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise EmbeddingServiceError("Embedding service returned invalid JSON.", response.status_code) from exc

        embedding = body.get("embedding") if isinstance(body, dict) else None
        if not embedding:
            raise EmbeddingServiceError("Embedding service response contained no embedding.", response.status_code)

        vector = np.asarray(embedding, dtype=np.float32)
        if vector.ndim != 1:
            raise EmbeddingServiceError(f"Expected a flat embedding, got shape {vector.shape}.", response.status_code)
        return vector

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                return str(error.get("message", error))
            if error:
                return str(error)
        return str(body)[:200]
