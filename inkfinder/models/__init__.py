# Path: inkfinder/models/__init__.py
# Purpose: Package initializer for domain model definitions.
# Layer: inkfinder/models.
# Details: Exposes dataclasses used across interpretation, search, and response layers.

from .domain import (
    BodyPartIntent,
    ChatSearchResponse,
    ExclusionIntent,
    ImageAttributes,
    ImageRecord,
    KeywordIntent,
    PaginationState,
    PathIntent,
    SearchIntent,
    SearchPage,
    SimilarityIntent,
    intent_from_params,
    intent_to_params,
)

__all__ = [
    "BodyPartIntent",
    "ChatSearchResponse",
    "ExclusionIntent",
    "ImageAttributes",
    "ImageRecord",
    "KeywordIntent",
    "PaginationState",
    "PathIntent",
    "SearchIntent",
    "SearchPage",
    "SimilarityIntent",
    "intent_from_params",
    "intent_to_params",
]
