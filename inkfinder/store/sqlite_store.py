# Path: inkfinder/store/sqlite_store.py
# Purpose: Provide a SQLite-backed ImageStore with optional search indexes.
# Layer: inkfinder/store.
# Details: FTS5 and a denormalized insights table serve primary queries; JSON/LIKE scans serve fallbacks.

from __future__ import annotations

import json
import logging
import sqlite3
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import numpy as np

from inkfinder.errors import StoreQueryError, StoreUnavailableError

from .base import BODY_PART, KEYWORD, NO_TATTOO, PATH, ImageStore, Row

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS image_analysis (
    id TEXT PRIMARY KEY,
    path TEXT NOT NULL,
    analysis TEXT NOT NULL DEFAULT '{}',
    created_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_image_analysis_path ON image_analysis(path);
CREATE TABLE IF NOT EXISTS image_embeddings (
    id TEXT PRIMARY KEY,
    image_path TEXT NOT NULL,
    embedding_type TEXT NOT NULL,
    embedding TEXT NOT NULL,
    created_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_image_embeddings_path ON image_embeddings(image_path, embedding_type);
"""

INDEX_SCHEMA = """
CREATE VIRTUAL TABLE IF NOT EXISTS image_analysis_fts USING fts5(analysis_id UNINDEXED, document);
CREATE TABLE IF NOT EXISTS image_insights (
    analysis_id TEXT PRIMARY KEY,
    body_part TEXT,
    is_likely_tattoo INTEGER
);
CREATE INDEX IF NOT EXISTS idx_image_insights_body_part ON image_insights(body_part);
CREATE INDEX IF NOT EXISTS idx_image_insights_tattoo ON image_insights(is_likely_tattoo);
"""

_UNAVAILABLE_MARKERS = ("no such table", "no such module", "no such function")


def _like_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _fts_query(terms: List[str]) -> str:
    # Prefix tokens so "rose" also matches "roses", like the LIKE scan does.
    return " ".join('"' + term.replace('"', '""') + '"*' for term in terms)


def analysis_document(analysis: Any) -> str:
    """Flatten an analysis payload into the text indexed for keyword search."""

    parts: List[str] = []

    def walk(value: Any) -> None:
        if isinstance(value, dict):
            for item in value.values():
                walk(item)
        elif isinstance(value, (list, tuple)):
            for item in value:
                walk(item)
        elif isinstance(value, str):
            parts.append(value)
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            parts.append(str(value))

    walk(analysis)
    return " ".join(parts)


class SqliteImageStore(ImageStore):
    """ImageStore persisted in a single SQLite database.

    ``database`` may be a filesystem path or ``":memory:"``; in-memory stores use a
    shared-cache URI so every connection sees the same data.
    """

    def __init__(self, database: Path | str = ":memory:", with_search_indexes: bool = True) -> None:
        self.name = "sqlite"
        if str(database) == ":memory:":
            self._target = f"file:inkfinder-{uuid.uuid4().hex}?mode=memory&cache=shared"
            self._uri = True
            # Shared in-memory databases vanish once the last connection closes.
            self._keeper: Optional[sqlite3.Connection] = sqlite3.connect(self._target, uri=True)
        else:
            path = Path(database)
            path.parent.mkdir(parents=True, exist_ok=True)
            self._target = str(path)
            self._uri = False
            self._keeper = None

        with self._connect() as conn:
            conn.executescript(SCHEMA)
        if with_search_indexes:
            try:
                self.install_search_indexes()
            except sqlite3.OperationalError as exc:
                logger.warning(f"Search indexes unavailable ({exc}); attribute searches will use fallback scans")
                self.drop_search_indexes()

    # SQLite helpers
    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._target, uri=self._uri)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def close(self) -> None:
        if self._keeper is not None:
            self._keeper.close()
            self._keeper = None

    def _has_table(self, conn: sqlite3.Connection, name: str) -> bool:
        row = conn.execute("SELECT 1 FROM sqlite_master WHERE name = ?", (name,)).fetchone()
        return row is not None

    def _query(self, sql: str, params: Tuple[Any, ...], primary: bool) -> List[sqlite3.Row]:
        try:
            with self._connect() as conn:
                return conn.execute(sql, params).fetchall()
        except sqlite3.OperationalError as exc:
            message = str(exc).lower()
            if primary and any(marker in message for marker in _UNAVAILABLE_MARKERS):
                raise StoreUnavailableError(str(exc)) from exc
            raise StoreQueryError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise StoreQueryError(str(exc)) from exc

    @staticmethod
    def _analysis_row(row: sqlite3.Row) -> Row:
        try:
            analysis = json.loads(row["analysis"]) if row["analysis"] else {}
        except json.JSONDecodeError:
            analysis = {}
        return {"id": row["id"], "path": row["path"], "analysis": analysis}

    @staticmethod
    def _embedding_row(row: sqlite3.Row) -> Row:
        return {
            "id": row["id"],
            "image_path": row["image_path"],
            "embedding_type": row["embedding_type"],
            "created_at": row["created_at"],
        }

    # Search indexes
    def install_search_indexes(self) -> None:
        """Create the FTS and insights indexes and backfill them from image_analysis."""

        with self._connect() as conn:
            conn.executescript(INDEX_SCHEMA)
            conn.execute("DELETE FROM image_analysis_fts")
            conn.execute("DELETE FROM image_insights")
            rows = conn.execute("SELECT id, analysis FROM image_analysis").fetchall()
            for row in rows:
                self._index_analysis(conn, row["id"], json.loads(row["analysis"] or "{}"))
        logger.info(f"Search indexes installed for {len(rows)} analysis rows")

    def drop_search_indexes(self) -> None:
        """Remove the FTS and insights indexes; primary queries then report the store as unavailable."""

        with self._connect() as conn:
            conn.execute("DROP TABLE IF EXISTS image_analysis_fts")
            conn.execute("DROP TABLE IF EXISTS image_insights")
        logger.info("Search indexes dropped")

    def _index_analysis(self, conn: sqlite3.Connection, analysis_id: str, analysis: Mapping[str, Any]) -> None:
        insights = analysis.get("insights") or {}
        tattoo = insights.get("isLikelyTattoo")
        conn.execute(
            "INSERT INTO image_analysis_fts (analysis_id, document) VALUES (?, ?)",
            (analysis_id, analysis_document(analysis)),
        )
        conn.execute(
            "INSERT OR REPLACE INTO image_insights (analysis_id, body_part, is_likely_tattoo) VALUES (?, ?, ?)",
            (analysis_id, insights.get("bodyPart"), None if tattoo is None else int(bool(tattoo))),
        )

    # Writes
    def add_analysis(
        self,
        path: str,
        insights: Optional[Mapping[str, Any]] = None,
        analysis: Optional[Mapping[str, Any]] = None,
        record_id: Optional[str] = None,
    ) -> str:
        """Store an analysis document for ``path`` and return its identifier."""

        payload: Dict[str, Any] = dict(analysis or {})
        if insights is not None:
            payload["insights"] = dict(insights)
        record_id = record_id or uuid.uuid4().hex
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO image_analysis (id, path, analysis, created_at) VALUES (?, ?, ?, ?)",
                (record_id, path, json.dumps(payload), time.time()),
            )
            if self._has_table(conn, "image_analysis_fts") and self._has_table(conn, "image_insights"):
                conn.execute("DELETE FROM image_analysis_fts WHERE analysis_id = ?", (record_id,))
                self._index_analysis(conn, record_id, payload)
        return record_id

    def add_embedding(
        self,
        path: str,
        vector: np.ndarray,
        embedding_type: str = "full",
        record_id: Optional[str] = None,
    ) -> str:
        """Store one embedding row for ``path``; an image may hold several rows of different types."""

        record_id = record_id or uuid.uuid4().hex
        values = np.asarray(vector, dtype=np.float32).ravel().tolist()
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO image_embeddings (id, image_path, embedding_type, embedding, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (record_id, path, embedding_type, json.dumps(values), time.time()),
            )
        return record_id

    # Attribute queries
    def search(self, kind: str, params: Mapping[str, Any], limit: int, offset: int) -> Tuple[List[Row], int]:
        if kind == KEYWORD:
            match = _fts_query(list(params["terms"]))
            rows = self._query(
                "SELECT a.id, a.path, a.analysis FROM image_analysis_fts "
                "JOIN image_analysis a ON a.id = image_analysis_fts.analysis_id "
                "WHERE image_analysis_fts MATCH ? ORDER BY image_analysis_fts.rank, a.path LIMIT ? OFFSET ?",
                (match, limit, offset),
                primary=True,
            )
            count = self._query(
                "SELECT COUNT(*) FROM image_analysis_fts WHERE image_analysis_fts MATCH ?", (match,), primary=True
            )
            return [self._analysis_row(row) for row in rows], int(count[0][0])

        if kind in (BODY_PART, NO_TATTOO):
            column, value = ("body_part", params["part"]) if kind == BODY_PART else ("is_likely_tattoo", 0)
            rows = self._query(
                "SELECT a.id, a.path, a.analysis FROM image_insights i "
                f"JOIN image_analysis a ON a.id = i.analysis_id WHERE i.{column} = ? "
                "ORDER BY a.path LIMIT ? OFFSET ?",
                (value, limit, offset),
                primary=True,
            )
            count = self._query(f"SELECT COUNT(*) FROM image_insights WHERE {column} = ?", (value,), primary=True)
            return [self._analysis_row(row) for row in rows], int(count[0][0])

        if kind == PATH:
            pattern = _like_pattern(params["fragment"])
            rows = self._query(
                "SELECT id, image_path, embedding_type, created_at FROM image_embeddings "
                "WHERE image_path LIKE ? ESCAPE '\\' ORDER BY image_path, created_at LIMIT ? OFFSET ?",
                (pattern, limit, offset),
                primary=True,
            )
            count = self._query(
                "SELECT COUNT(*) FROM image_embeddings WHERE image_path LIKE ? ESCAPE '\\'", (pattern,), primary=True
            )
            return [self._embedding_row(row) for row in rows], int(count[0][0])

        raise StoreQueryError(f"Unsupported search kind: {kind}")

    def scan(self, kind: str, params: Mapping[str, Any], limit: int, offset: int) -> Tuple[List[Row], int]:
        if kind == KEYWORD:
            terms = [term.lower() for term in params["terms"]]
            where = " AND ".join("lower(analysis) LIKE ? ESCAPE '\\'" for _ in terms) or "1"
            args = tuple(_like_pattern(term) for term in terms)
        elif kind == BODY_PART:
            where = "json_extract(analysis, '$.insights.bodyPart') = ?"
            args = (params["part"],)
        elif kind == NO_TATTOO:
            where = "json_extract(analysis, '$.insights.isLikelyTattoo') = 0"
            args = ()
        elif kind == PATH:
            needle = params["fragment"].casefold()
            rows = self._query(
                "SELECT id, image_path, embedding_type, created_at FROM image_embeddings ORDER BY image_path, created_at",
                (),
                primary=False,
            )
            matched = [self._embedding_row(row) for row in rows if needle in row["image_path"].casefold()]
            return matched[offset : offset + limit], len(matched)
        else:
            raise StoreQueryError(f"Unsupported search kind: {kind}")

        rows = self._query(
            f"SELECT id, path, analysis FROM image_analysis WHERE {where} ORDER BY path LIMIT ? OFFSET ?",
            args + (limit, offset),
            primary=False,
        )
        count = self._query(f"SELECT COUNT(*) FROM image_analysis WHERE {where}", args, primary=False)
        return [self._analysis_row(row) for row in rows], int(count[0][0])

    # Vectors
    def get_embedding(self, path: str, embedding_type: str = "full") -> Optional[np.ndarray]:
        rows = self._query(
            "SELECT embedding FROM image_embeddings WHERE image_path = ? AND embedding_type = ? "
            "ORDER BY created_at LIMIT 1",
            (path, embedding_type),
            primary=False,
        )
        if not rows:
            return None
        values = json.loads(rows[0]["embedding"])
        if not values:
            return None
        return np.asarray(values, dtype=np.float32)

    def nearest_neighbors(self, vector: np.ndarray, threshold: float, limit: int) -> List[Row]:
        query = np.asarray(vector, dtype=np.float32).ravel()
        query_norm = float(np.linalg.norm(query))
        if query_norm == 0 or limit <= 0:
            return []

        rows = self._query(
            "SELECT id, image_path, embedding_type, embedding FROM image_embeddings ORDER BY created_at",
            (),
            primary=False,
        )
        candidates: List[sqlite3.Row] = []
        vectors: List[np.ndarray] = []
        for row in rows:
            candidate = np.asarray(json.loads(row["embedding"]), dtype=np.float32)
            if candidate.shape != query.shape:
                logger.debug(f"Skipping {row['image_path']} ({row['embedding_type']}): dimension {candidate.shape}")
                continue
            candidates.append(row)
            vectors.append(candidate)
        if not vectors:
            return []

        matrix = np.vstack(vectors)
        norms = np.linalg.norm(matrix, axis=1)
        norms[norms == 0] = np.inf
        scores = (matrix @ query) / (norms * query_norm)
        # Stable sort keeps insertion order among equal scores.
        ranked = np.argsort(-scores, kind="stable")

        results: List[Row] = []
        for idx in ranked:
            score = float(scores[idx])
            if score < threshold:
                break
            row = candidates[idx]
            results.append(
                {
                    "id": row["id"],
                    "image_path": row["image_path"],
                    "embedding_type": row["embedding_type"],
                    "similarity": min(max(score, 0.0), 1.0),
                }
            )
            if len(results) >= limit:
                break
        return results

    # Browse helpers
    def image_paths(self) -> List[str]:
        rows = self._query(
            "SELECT image_path AS path FROM image_embeddings UNION SELECT path FROM image_analysis ORDER BY path",
            (),
            primary=False,
        )
        return [row["path"] for row in rows]

    def body_part_counts(self) -> Dict[str, int]:
        rows = self._query(
            "SELECT json_extract(analysis, '$.insights.bodyPart') AS body_part, COUNT(*) AS total "
            "FROM image_analysis WHERE json_extract(analysis, '$.insights.bodyPart') IS NOT NULL GROUP BY body_part ORDER BY total DESC, body_part",
            (),
            primary=False,
        )
        return {row["body_part"]: int(row["total"]) for row in rows}
