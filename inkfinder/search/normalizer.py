# Path: inkfinder/search/normalizer.py
# Purpose: Map heterogeneous strategy rows onto the canonical ImageRecord shape.
# Layer: inkfinder/search.
# Details: Derives filenames, lifts analysis insights into attributes, and de-duplicates by canonical path.

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, List, Mapping, Set, Union

from inkfinder.models.domain import ImageAttributes, ImageRecord

logger = logging.getLogger(__name__)

RawRecord = Union[ImageRecord, Mapping[str, Any]]


def filename_from_path(path: str) -> str:
    """Return the last ``/`` segment of a canonical path, without a bare provider prefix."""

    segment = path.rsplit("/", 1)[-1]
    if "/" not in path and ":" in segment:
        segment = segment.split(":", 1)[1]
    return segment


def synthesize_id(kind: str, path: str) -> str:
    """Stable identifier for rows the store returned without one."""

    return f"{kind}-{uuid.uuid5(uuid.NAMESPACE_URL, path).hex[:16]}"


def _attributes(row: Mapping[str, Any]) -> ImageAttributes:
    attributes = row.get("attributes")
    if isinstance(attributes, ImageAttributes):
        return attributes
    if attributes is None:
        analysis = row.get("analysis")
        if isinstance(analysis, Mapping):
            attributes = analysis.get("insights")
        else:
            attributes = row.get("insights")
    return ImageAttributes.from_mapping(attributes if isinstance(attributes, Mapping) else None)


def to_record(row: RawRecord, kind: str) -> ImageRecord | None:
    """Convert one raw row; returns None for rows without a usable path."""

    if isinstance(row, ImageRecord):
        return row

    path = row.get("path") or row.get("image_path")
    if not path:
        logger.debug(f"Dropping {kind} row without a path: {dict(row)}")
        return None
    path = str(path)

    similarity = row.get("similarity")
    embedding_type = row.get("embedding_type") or row.get("embeddingType") or row.get("type")
    return ImageRecord(
        id=str(row.get("id") or synthesize_id(kind, path)),
        path=path,
        filename=filename_from_path(path),
        attributes=_attributes(row),
        similarity=float(similarity) if similarity is not None else None,
        embedding_type=str(embedding_type) if embedding_type else None,
    )


def normalize(raw_records: Iterable[RawRecord], strategy_kind: str) -> List[ImageRecord]:
    """Normalize rows and keep the first record seen for each path, preserving order."""

    seen: Set[str] = set()
    records: List[ImageRecord] = []
    for row in raw_records:
        record = to_record(row, strategy_kind)
        if record is None or record.path in seen:
            continue
        seen.add(record.path)
        records.append(record)
    return records
