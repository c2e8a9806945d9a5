# Path: inkfinder/indexing/index_builder.py
# Purpose: Populate the metadata store with embeddings and analysis for scanned images.
# Layer: inkfinder/indexing.
# Details: Embeds image bytes in a single pass with progress reporting and imports analysis sidecars.

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from tqdm import tqdm

from inkfinder.embedders.base import Embedder
from inkfinder.errors import EmbeddingServiceError
from inkfinder.store.sqlite_store import SqliteImageStore

from .scanner import ScannedImage

logger = logging.getLogger(__name__)


@dataclass
class IndexReport:
    """Counts collected while building the index."""

    embedded: int = 0
    analysed: int = 0
    skipped: int = 0


def load_analysis_sidecar(path: Path) -> Dict[str, Dict[str, Any]]:
    """Read ``{relative_path: analysis}`` from a JSON sidecar file.

    Entries may be a full analysis document or a bare insights mapping.
    """

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Analysis sidecar {path} must contain a JSON object.")
    documents: Dict[str, Dict[str, Any]] = {}
    for relative, entry in payload.items():
        if not isinstance(entry, dict):
            continue
        documents[relative] = entry if "insights" in entry else {"insights": entry}
    return documents


class IndexBuilder:
    """Embed scanned images and push embeddings and analysis into the store."""

    def __init__(self, embedder: Embedder, store: SqliteImageStore, embedding_type: str = "full") -> None:
        self.embedder = embedder
        self.store = store
        self.embedding_type = embedding_type

    def build_index(
        self,
        images: Iterable[ScannedImage],
        analysis: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> IndexReport:
        """
        Encode images and store one embedding row per image, plus any analysis found for it.

        External calls:
        - inkfinder/embedders/base.py::Embedder.embed_image - create embeddings for each image.
        - inkfinder/store/sqlite_store.py::SqliteImageStore.add_embedding - persist vectors by canonical path.
        - inkfinder/store/sqlite_store.py::SqliteImageStore.add_analysis - persist analysis insights.
        """

        analysis = analysis or {}
        report = IndexReport()
        for image in tqdm(list(images), desc="Indexing images", unit="img"):
            try:
                vector = self.embedder.embed_image(image.file_path.read_bytes())
            except (OSError, EmbeddingServiceError) as exc:
                logger.warning(f"Skipping {image.file_path}: {exc}")
                report.skipped += 1
                continue
            self.store.add_embedding(image.canonical_path, vector, self.embedding_type)
            report.embedded += 1

            document = analysis.get(image.relative_path)
            if document is not None:
                insights = dict(document.get("insights") or {})
                if isinstance(insights.get("bodyPart"), str):
                    insights["bodyPart"] = insights["bodyPart"].lower()
                extra = {key: value for key, value in document.items() if key != "insights"}
                self.store.add_analysis(image.canonical_path, insights=insights, analysis=extra)
                report.analysed += 1

        logger.info(f"Indexed {report.embedded} images ({report.analysed} analysed, {report.skipped} skipped)")
        return report
