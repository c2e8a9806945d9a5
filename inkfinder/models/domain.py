# Path: inkfinder/models/domain.py
# Purpose: Define domain models shared across interpretation, search, and response layers.
# Layer: inkfinder/models.
# Details: Lightweight dataclasses simplify serialization between API, CLI, and core services.

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Dict, List, Mapping, Optional, Union

if TYPE_CHECKING:
    from inkfinder.errors import SearchError

KNOWN_ATTRIBUTE_KEYS = {
    "bodyPart": "body_part",
    "isLikelyTattoo": "is_likely_tattoo",
    "fadingPercentage": "fading_percentage",
    "colors": "colors",
}


@dataclass(frozen=True)
class ImageAttributes:
    """Analysis insights attached to an image.

    Known keys are lifted into typed fields; anything else is kept verbatim in ``extra``.
    """

    body_part: Optional[str] = None
    is_likely_tattoo: Optional[bool] = None
    fading_percentage: Optional[float] = None
    colors: Optional[List[Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "ImageAttributes":
        if not payload:
            return cls()
        known: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in payload.items():
            if key in KNOWN_ATTRIBUTE_KEYS:
                known[KNOWN_ATTRIBUTE_KEYS[key]] = value
            else:
                extra[key] = value
        if known.get("colors") is not None:
            known["colors"] = list(known["colors"])
        return cls(**known, extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase mapping exposed to API callers."""

        payload: Dict[str, Any] = dict(self.extra)
        for public, attr in KNOWN_ATTRIBUTE_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                payload[public] = value
        return payload


@dataclass(frozen=True)
class ImageRecord:
    """Canonical view of one image in a result set."""

    id: str
    path: str
    filename: str
    attributes: ImageAttributes = field(default_factory=ImageAttributes)
    similarity: Optional[float] = None
    embedding_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "path": self.path,
            "filename": self.filename,
            "attributes": self.attributes.to_dict(),
        }
        if self.similarity is not None:
            payload["similarity"] = self.similarity
        if self.embedding_type is not None:
            payload["embeddingType"] = self.embedding_type
        return payload


@dataclass(frozen=True)
class KeywordIntent:
    """Free-text match against the analysis document."""

    tag: ClassVar[str] = "keyword"
    term: str
    limit: int


@dataclass(frozen=True)
class BodyPartIntent:
    """Equality match on the analysed body part."""

    tag: ClassVar[str] = "bodyPart"
    part: Optional[str]
    limit: int


@dataclass(frozen=True)
class PathIntent:
    """Substring match on the canonical path."""

    tag: ClassVar[str] = "path"
    fragment: Optional[str]
    limit: int


@dataclass(frozen=True)
class ExclusionIntent:
    """Images analysed as not containing a tattoo."""

    tag: ClassVar[str] = "noTattoo"
    limit: int


@dataclass(frozen=True)
class SimilarityIntent:
    """Nearest-neighbor search against a stored path or uploaded image bytes."""

    tag: ClassVar[str] = "similarity"
    reference_path: Optional[str] = None
    raw_image: Optional[bytes] = field(default=None, repr=False)
    limit: int = 12
    threshold: Optional[float] = None


SearchIntent = Union[KeywordIntent, BodyPartIntent, PathIntent, ExclusionIntent, SimilarityIntent]

INTENT_TYPES = {
    KeywordIntent.tag: KeywordIntent,
    BodyPartIntent.tag: BodyPartIntent,
    PathIntent.tag: PathIntent,
    ExclusionIntent.tag: ExclusionIntent,
    SimilarityIntent.tag: SimilarityIntent,
}


def intent_to_params(intent: SearchIntent) -> Dict[str, Any]:
    """Serialize an intent into the ``searchParams`` mapping returned to callers."""

    payload = asdict(intent)
    payload.pop("raw_image", None)
    params: Dict[str, Any] = {"type": intent.tag}
    for key, value in payload.items():
        if key == "reference_path":
            params["referencePath"] = value
        else:
            params[key] = value
    if isinstance(intent, SimilarityIntent):
        params["hasImage"] = intent.raw_image is not None
    return params


def _limit_from(value: Any, default_limit: int) -> int:
    try:
        return int(value) if value is not None and value != "" else default_limit
    except (TypeError, ValueError):
        return default_limit


def intent_from_params(payload: Mapping[str, Any], default_limit: int) -> SearchIntent:
    """Build an intent from a ``searchParams``-style mapping.

    Unknown or missing ``type`` values fall back to a keyword intent over ``term``/``text``.
    """

    limit = _limit_from(payload.get("limit"), default_limit)
    tag = payload.get("type")
    if tag == BodyPartIntent.tag:
        return BodyPartIntent(part=payload.get("part"), limit=limit)
    if tag == PathIntent.tag:
        return PathIntent(fragment=payload.get("fragment"), limit=limit)
    if tag == ExclusionIntent.tag:
        return ExclusionIntent(limit=limit)
    if tag == SimilarityIntent.tag:
        try:
            threshold = float(payload["threshold"]) if payload.get("threshold") is not None else None
        except (TypeError, ValueError):
            threshold = None
        return SimilarityIntent(reference_path=payload.get("referencePath"), limit=limit, threshold=threshold)
    return KeywordIntent(term=str(payload.get("term") or payload.get("text") or ""), limit=limit)


@dataclass(frozen=True)
class PaginationState:
    """Caller-owned pagination cursor passed back on every page request."""

    page: int = 0
    page_size: int = 20
    total_count: int = 0

    def __post_init__(self) -> None:
        if self.page < 0:
            raise ValueError("page must be >= 0")
        if self.page_size <= 0:
            raise ValueError("page_size must be > 0")
        if self.total_count < 0:
            raise ValueError("total_count must be >= 0")

    @property
    def offset(self) -> int:
        return self.page * self.page_size

    @property
    def page_count(self) -> int:
        return -(-self.total_count // self.page_size)


@dataclass
class SearchPage:
    """One page of normalized results plus the store's authoritative count.

    ``error`` carries a non-fatal fault (parse ambiguity or an exhausted fallback);
    such a page is empty and must not be read as "nothing matched".
    """

    records: List[ImageRecord]
    total_count: int
    pagination: PaginationState = field(default_factory=PaginationState)
    error: Optional["SearchError"] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ChatSearchResponse:
    """Result of processing one natural-language search request."""

    intent: SearchIntent
    results: List[ImageRecord]
    response: str
    total_count: int = 0
    error: Optional["SearchError"] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "searchParams": intent_to_params(self.intent),
            "results": [record.to_dict() for record in self.results],
            "response": self.response,
            "totalCount": self.total_count,
            "error": str(self.error) if self.error is not None else None,
        }
