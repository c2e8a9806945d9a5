# Path: tests/conftest.py
# Purpose: Shared fixtures for the inkfinder test-suite.
# Layer: tests.
# Details: Seeds an in-memory SQLite store with analysis rows and small embeddings.

from __future__ import annotations

from typing import Iterator, List

import numpy as np
import pytest

from config import AppSettings
from inkfinder.embedders.base import Embedder
from inkfinder.search.pipeline import SearchPipeline
from inkfinder.store.sqlite_store import SqliteImageStore

SEED = [
    # path, insights, extra analysis, embedding
    (
        "local:arm/rose.jpg",
        {"bodyPart": "arm", "isLikelyTattoo": True, "colors": ["red", "green"], "fadingPercentage": 10},
        {"description": "red rose with thorns"},
        [1.0, 0.0, 0.0, 0.0],
    ),
    (
        "local:arm/skull.jpg",
        {"bodyPart": "arm", "isLikelyTattoo": True, "colors": ["black"]},
        {"description": "black skull"},
        [0.9, 0.1, 0.0, 0.0],
    ),
    (
        "local:leg/dragon.jpg",
        {"bodyPart": "leg", "isLikelyTattoo": True, "colors": ["green"]},
        {"description": "green dragon"},
        [0.0, 1.0, 0.0, 0.0],
    ),
    (
        "local:clean/skin.jpg",
        {"bodyPart": "back", "isLikelyTattoo": False},
        {"description": "bare back"},
        [0.0, 0.0, 1.0, 0.0],
    ),
]


class FakeEmbedder(Embedder):
    """Returns a fixed vector and records the payloads it was given."""

    def __init__(self, vector: List[float]) -> None:
        self.vector = np.asarray(vector, dtype=np.float32)
        self.dim = self.vector.size
        self.name = "fake"
        self.calls: List[bytes] = []

    def embed_image(self, data: bytes) -> np.ndarray:
        self.calls.append(data)
        return self.vector


@pytest.fixture()
def store() -> Iterator[SqliteImageStore]:
    store = SqliteImageStore(":memory:")
    for path, insights, extra, vector in SEED:
        store.add_analysis(path, insights=insights, analysis=extra)
        store.add_embedding(path, np.asarray(vector, dtype=np.float32))
    # An embedded image without analysis.
    store.add_embedding("local:summer2023/beach.png", np.asarray([0.8, 0.2, 0.0, 0.0], dtype=np.float32))
    yield store
    store.close()


@pytest.fixture()
def embedder() -> FakeEmbedder:
    return FakeEmbedder([1.0, 0.0, 0.0, 0.0])


@pytest.fixture()
def settings() -> AppSettings:
    return AppSettings()


@pytest.fixture()
def pipeline(store: SqliteImageStore, embedder: FakeEmbedder, settings: AppSettings) -> SearchPipeline:
    return SearchPipeline(store=store, embedder=embedder, settings=settings)
