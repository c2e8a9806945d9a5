# Path: inkfinder/errors.py
# Purpose: Define the typed error hierarchy raised or reported by the search core.
# Layer: inkfinder.
# Details: Distinguishes "search could not run" faults from "nothing matched" outcomes.

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from inkfinder.models.domain import SearchIntent


class SearchError(Exception):
    """Base class for every fault produced by the search core."""


class ParseAmbiguity(SearchError):
    """The interpreter could not extract a parameter the chosen strategy requires."""

    def __init__(self, message: str, intent: Optional["SearchIntent"] = None) -> None:
        super().__init__(message)
        self.intent = intent


class StoreQueryError(SearchError):
    """A metadata store query failed."""


class StoreUnavailableError(StoreQueryError):
    """The optimized query mechanism behind a strategy is missing from the store."""


class MissingEmbeddingError(SearchError):
    """The reference path has no stored vector of the requested type."""

    def __init__(self, path: str, embedding_type: str = "full") -> None:
        super().__init__(f"No {embedding_type} embedding found for {path}")
        self.path = path
        self.embedding_type = embedding_type


class EmbeddingServiceError(SearchError):
    """External embedding generation failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


EmbeddingGenerationError = EmbeddingServiceError

__all__ = [
    "EmbeddingGenerationError",
    "EmbeddingServiceError",
    "MissingEmbeddingError",
    "ParseAmbiguity",
    "SearchError",
    "StoreQueryError",
    "StoreUnavailableError",
]
