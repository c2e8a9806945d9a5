# Path: inkfinder/search/__init__.py
# Purpose: Package initializer for search strategies and pipeline orchestration.
# Layer: inkfinder/search.
# Details: Exposes the interpreter, chat gate, strategies, and the main search pipeline entrypoint.

from .chat_gate import ImageSearchGate
from .embedding_provider import EmbeddingProvider, ProgressTracker
from .interpreter import QueryInterpreter
from .normalizer import normalize
from .pipeline import SearchPipeline
from .responses import render, render_clarification
from .strategies import (
    BodyPartSearch,
    ExclusionSearch,
    KeywordSearch,
    PathSearch,
    SearchStrategy,
    SimilaritySearch,
)

__all__ = [
    "SearchPipeline",
    "SearchStrategy",
    "KeywordSearch",
    "BodyPartSearch",
    "PathSearch",
    "ExclusionSearch",
    "SimilaritySearch",
    "QueryInterpreter",
    "ImageSearchGate",
    "EmbeddingProvider",
    "ProgressTracker",
    "normalize",
    "render",
    "render_clarification",
]
