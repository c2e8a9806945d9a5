from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
import pytest

from inkfinder.errors import StoreQueryError, StoreUnavailableError
from inkfinder.models.domain import BodyPartIntent, ExclusionIntent, KeywordIntent, PathIntent
from inkfinder.search.pipeline import SearchPipeline
from inkfinder.search.strategies import BodyPartSearch, KeywordSearch, PathSearch, SimilaritySearch
from inkfinder.store import sqlite_store
from inkfinder.store.base import ImageStore
from inkfinder.store.sqlite_store import SqliteImageStore


class BrokenStore(ImageStore):
    """Store whose primary and fallback queries both fail."""

    def __init__(self, primary_error: Exception) -> None:
        self.primary_error = primary_error
        self.scans = 0

    def search(self, kind: str, params: Mapping[str, Any], limit: int, offset: int) -> Tuple[List[Dict], int]:
        raise self.primary_error

    def scan(self, kind: str, params: Mapping[str, Any], limit: int, offset: int) -> Tuple[List[Dict], int]:
        self.scans += 1
        raise StoreQueryError("database is locked")

    def get_embedding(self, path: str, embedding_type: str = "full") -> Optional[np.ndarray]:
        return None

    def nearest_neighbors(self, vector: np.ndarray, threshold: float, limit: int) -> List[Dict]:
        return []

    def image_paths(self) -> List[str]:
        return []

    def body_part_counts(self) -> Dict[str, int]:
        return {}


def test_keyword_search_uses_full_text_index(store: SqliteImageStore) -> None:
    outcome = KeywordSearch().run(store, KeywordIntent(term="rose", limit=12), limit=12, offset=0)

    assert [row["path"] for row in outcome.rows] == ["local:arm/rose.jpg"]
    assert outcome.total_count == 1
    assert outcome.used_fallback is False


def test_keyword_search_requires_every_term(store: SqliteImageStore) -> None:
    outcome = KeywordSearch().run(store, KeywordIntent(term="green dragon", limit=12), limit=12, offset=0)

    assert [row["path"] for row in outcome.rows] == ["local:leg/dragon.jpg"]


def test_fallback_scan_matches_primary_results(store: SqliteImageStore) -> None:
    intent = BodyPartIntent(part="Arm", limit=12)
    primary = BodyPartSearch().run(store, intent, limit=12, offset=0)

    store.drop_search_indexes()
    fallback = BodyPartSearch().run(store, intent, limit=12, offset=0)

    assert fallback.used_fallback is True
    assert fallback.error is None
    assert [row["path"] for row in fallback.rows] == [row["path"] for row in primary.rows]
    assert fallback.total_count == primary.total_count == 2


def test_keyword_fallback_is_case_insensitive(store: SqliteImageStore) -> None:
    store.drop_search_indexes()

    outcome = KeywordSearch().run(store, KeywordIntent(term="SKULL", limit=12), limit=12, offset=0)

    assert [row["path"] for row in outcome.rows] == ["local:arm/skull.jpg"]


def test_reinstalled_indexes_are_backfilled(store: SqliteImageStore) -> None:
    store.drop_search_indexes()
    store.install_search_indexes()

    outcome = KeywordSearch().run(store, KeywordIntent(term="dragon", limit=12), limit=12, offset=0)

    assert outcome.used_fallback is False
    assert outcome.total_count == 1


def test_failed_fallback_reports_error_instead_of_raising() -> None:
    store = BrokenStore(StoreUnavailableError("no such table: image_insights"))

    outcome = BodyPartSearch().run(store, BodyPartIntent(part="arm", limit=12), limit=12, offset=0)

    assert outcome.rows == []
    assert isinstance(outcome.error, StoreQueryError)
    assert store.scans == 1


def test_non_availability_error_skips_fallback() -> None:
    store = BrokenStore(StoreQueryError("disk I/O error"))

    outcome = KeywordSearch().run(store, KeywordIntent(term="rose", limit=12), limit=12, offset=0)

    assert outcome.error is not None
    assert store.scans == 0


def test_pipeline_reports_store_failure_distinct_from_empty(settings) -> None:
    pipeline = SearchPipeline(store=BrokenStore(StoreUnavailableError("no such module: fts5")), settings=settings)

    chat = pipeline.process_image_search_request("find rose tattoos")

    assert chat.results == []
    assert chat.error is not None
    assert "unavailable" in chat.response


def test_path_search_dedupes_embedding_rows(store: SqliteImageStore) -> None:
    store.add_embedding("local:summer2023/beach.png", np.asarray([0.1, 0.2, 0.3, 0.4]), embedding_type="crop")

    outcome = PathSearch().run(store, PathIntent(fragment="SUMMER2023", limit=12), limit=12, offset=0)

    assert [row["image_path"] for row in outcome.rows] == ["local:summer2023/beach.png"]
    # The count is taken over embedding rows.
    assert outcome.total_count == 2


def test_path_search_escapes_like_wildcards(store: SqliteImageStore) -> None:
    outcome = PathSearch().run(store, PathIntent(fragment="%", limit=12), limit=12, offset=0)

    assert outcome.rows == []


def test_exclusion_search(pipeline: SearchPipeline) -> None:
    page = pipeline.search(ExclusionIntent(limit=20))

    assert [record.path for record in page.records] == ["local:clean/skin.jpg"]
    assert page.records[0].attributes.is_likely_tattoo is False


def test_pagination_walks_every_page() -> None:
    store = SqliteImageStore(":memory:")
    for index in range(45):
        store.add_analysis(f"local:arm/{index:02d}.jpg", insights={"bodyPart": "arm", "isLikelyTattoo": True})
    pipeline = SearchPipeline(store=store)

    pages = [pipeline.search({"type": "bodyPart", "part": "arm"}, page=page, page_size=20) for page in range(3)]

    assert [len(page.records) for page in pages] == [20, 20, 5]
    assert all(page.total_count == 45 for page in pages)
    assert pages[0].pagination.page_count == 3
    seen = [record.path for page in pages for record in page.records]
    assert len(set(seen)) == 45
    store.close()


def test_similarity_excludes_reference(store: SqliteImageStore) -> None:
    vector = store.get_embedding("local:arm/rose.jpg")

    outcome = SimilaritySearch().run(store, vector, threshold=0.5, limit=12, reference_path="local:arm/rose.jpg")

    paths = [row["image_path"] for row in outcome.rows]
    assert paths == ["local:arm/skull.jpg", "local:summer2023/beach.png"]
    assert all(0.5 <= row["similarity"] <= 1.0 for row in outcome.rows)
    assert outcome.total_count == 2


def test_similarity_limit_is_applied_after_exclusion(store: SqliteImageStore) -> None:
    store.add_embedding("local:arm/rose.jpg", np.asarray([1.0, 0.0, 0.0, 0.0]), embedding_type="crop")
    vector = store.get_embedding("local:arm/rose.jpg")

    outcome = SimilaritySearch().run(store, vector, threshold=0.5, limit=1, reference_path="local:arm/rose.jpg")

    assert [row["image_path"] for row in outcome.rows] == ["local:arm/skull.jpg"]


def test_nearest_neighbors_skips_other_dimensions(store: SqliteImageStore) -> None:
    store.add_embedding("local:odd/wide.jpg", np.ones(8, dtype=np.float32))

    rows = store.nearest_neighbors(np.asarray([1.0, 0.0, 0.0, 0.0]), threshold=0.0, limit=50)

    assert "local:odd/wide.jpg" not in [row["image_path"] for row in rows]


def test_get_embedding_missing(store: SqliteImageStore) -> None:
    assert store.get_embedding("local:nope.jpg") is None
    assert store.get_embedding("local:arm/rose.jpg", embedding_type="crop") is None


@pytest.mark.parametrize("intent", [KeywordIntent(term="", limit=12), PathIntent(fragment=None, limit=12)])
def test_missing_parameters_become_ambiguity(pipeline: SearchPipeline, intent) -> None:
    page = pipeline.execute(intent)

    assert page.records == []
    assert page.ok is False


def test_browse_helpers(store: SqliteImageStore, pipeline: SearchPipeline) -> None:
    assert store.body_part_counts() == {"arm": 2, "back": 1, "leg": 1}
    folders = {node.path: node.count for node in pipeline.folder_hierarchy()}
    assert folders["local:arm"] == 2
    assert folders["local:summer2023"] == 1


def test_store_without_full_text_support_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        sqlite_store,
        "INDEX_SCHEMA",
        "CREATE VIRTUAL TABLE IF NOT EXISTS image_analysis_fts USING nosuchmodule(analysis_id, document);",
    )
    store = SqliteImageStore(":memory:")
    store.add_analysis("local:arm/rose.jpg", insights={"bodyPart": "arm"}, analysis={"description": "rose"})

    outcome = KeywordSearch().run(store, KeywordIntent(term="rose", limit=12), limit=12, offset=0)

    assert outcome.used_fallback is True
    assert [row["path"] for row in outcome.rows] == ["local:arm/rose.jpg"]
    store.close()


def test_keyword_matches_word_prefixes_on_both_paths(store: SqliteImageStore) -> None:
    store.add_analysis("local:back/garden.jpg", insights={"bodyPart": "back"}, analysis={"description": "climbing roses"})
    intent = KeywordIntent(term="rose", limit=12)

    primary = KeywordSearch().run(store, intent, limit=12, offset=0)
    store.drop_search_indexes()
    fallback = KeywordSearch().run(store, intent, limit=12, offset=0)

    expected = ["local:arm/rose.jpg", "local:back/garden.jpg"]
    assert sorted(row["path"] for row in primary.rows) == expected
    assert sorted(row["path"] for row in fallback.rows) == expected
    assert primary.used_fallback is False


def test_path_pagination_reports_raw_row_total_on_every_page() -> None:
    store = SqliteImageStore(":memory:")
    vector = np.asarray([1.0, 0.0], dtype=np.float32)
    for index in range(30):
        path = f"local:batch/{index:02d}.jpg"
        store.add_embedding(path, vector)
        if index % 2 == 0:
            store.add_embedding(path, vector, embedding_type="crop")
    pipeline = SearchPipeline(store=store)

    pages = [pipeline.search({"type": "path", "fragment": "batch"}, page=page, page_size=20) for page in range(3)]

    assert [page.total_count for page in pages] == [45, 45, 45]
    assert all(page.pagination.page_count == 3 for page in pages)
    paths = {record.path for page in pages for record in page.records}
    assert len(paths) == 30
    store.close()
