# Path: config/settings.py
# Purpose: Provide typed application configuration models.
# Layer: config.
# Details: Centralizes settings for search defaults, vocabularies, the embedding service, and the metadata store.

import os
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field


class SearchSettings(BaseModel):
    """Defaults governing result limits, pagination, and similarity thresholds."""

    chat_default_limit: int = Field(default=12, description="Result limit for chat-originated searches.")
    page_default_size: int = Field(default=20, description="Default page size for paginated browse requests.")
    max_limit: int = Field(default=50, description="Upper bound applied to any requested limit.")
    similarity_threshold: float = Field(default=0.5, description="Minimum cosine similarity for neighbors.")
    reference_embedding_type: str = Field(default="full", description="Embedding type used for reference lookups.")


class VocabularySettings(BaseModel):
    """Word lists driving query interpretation and the chat search gate."""

    similarity_triggers: List[str] = Field(
        default_factory=lambda: ["similar", "similarly", "like", "resembles", "resemble", "resembling"]
    )
    similarity_markers: List[str] = Field(
        default_factory=lambda: ["similar to", "like"],
        description="Phrases after which a reference path is expected.",
    )
    body_parts: List[str] = Field(
        default_factory=lambda: [
            "arm",
            "leg",
            "back",
            "chest",
            "face",
            "neck",
            "shoulder",
            "hand",
            "foot",
            "ankle",
            "thigh",
            "calf",
            "forearm",
            "wrist",
        ]
    )
    body_part_phrase: str = Field(default="body part")
    exclusion_phrases: List[str] = Field(
        default_factory=lambda: ["no tattoo", "without tattoo", "non-tattoo", "clean skin"]
    )
    path_words: List[str] = Field(default_factory=lambda: ["folder", "directory", "path"])
    path_fillers: List[str] = Field(
        default_factory=lambda: ["the", "a", "my", "named", "called"],
        description="Words skipped between a path cue and the fragment it introduces.",
    )
    stop_words: List[str] = Field(
        default_factory=lambda: ["show", "find", "search", "me", "for", "images", "with", "tattoo", "tattoos", "containing"]
    )
    limit_verbs: List[str] = Field(default_factory=lambda: ["limit", "show", "find", "get"])
    gate_categories: List[List[str]] = Field(
        default_factory=lambda: [
            ["find", "search", "show", "get", "display"],
            ["image", "images", "picture", "pictures", "photo", "photos"],
            ["tattoo", "tattoos", "tat", "tats"],
            ["folder", "directory", "path"],
            ["body part", "arm", "leg", "back", "chest", "shoulder"],
            ["similar", "like", "resemble", "resembles"],
        ],
        description="Independent keyword categories; a message matching two or more is treated as a search.",
    )
    gate_min_matches: int = Field(default=2)


class EmbeddingServiceSettings(BaseModel):
    """Settings for the external embedding generation service."""

    url: str = Field(default="http://localhost:8080/embed", description="Endpoint accepting base64 image payloads.")
    api_key: str | None = Field(default=None, description="Bearer token sent with each request when set.")
    timeout_seconds: float = Field(default=30.0, description="Per-request timeout for embedding generation.")
    dim: int = Field(default=512, description="Expected embedding dimensionality.")


class StoreSettings(BaseModel):
    """Settings controlling the metadata store location and canonical path prefix."""

    database_path: Path = Field(default=Path("storage/db/images.sqlite3"), description="Path to the metadata database.")
    provider: str = Field(default="local", description="Provider prefix used when building canonical paths.")


class AppSettings(BaseModel):
    """Top-level application settings shared across services and interfaces."""

    search: SearchSettings = Field(default_factory=SearchSettings)
    vocabulary: VocabularySettings = Field(default_factory=VocabularySettings)
    embedding_service: EmbeddingServiceSettings = Field(default_factory=EmbeddingServiceSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    log_level: str = Field(default="INFO", description="Verbosity level for application logs.")

    @classmethod
    def from_env(cls) -> "AppSettings":
        """Instantiate settings, applying INKFINDER_* environment overrides when present."""

        settings = cls()
        env = os.environ
        if env.get("INKFINDER_DB_PATH"):
            settings.store.database_path = Path(env["INKFINDER_DB_PATH"])
        if env.get("INKFINDER_PROVIDER"):
            settings.store.provider = env["INKFINDER_PROVIDER"]
        if env.get("INKFINDER_EMBEDDING_URL"):
            settings.embedding_service.url = env["INKFINDER_EMBEDDING_URL"]
        if env.get("INKFINDER_EMBEDDING_API_KEY"):
            settings.embedding_service.api_key = env["INKFINDER_EMBEDDING_API_KEY"]
        if env.get("INKFINDER_SIMILARITY_THRESHOLD"):
            settings.search.similarity_threshold = float(env["INKFINDER_SIMILARITY_THRESHOLD"])
        if env.get("INKFINDER_LOG_LEVEL"):
            settings.log_level = env["INKFINDER_LOG_LEVEL"].upper()
        return settings


__all__ = ["AppSettings", "EmbeddingServiceSettings", "SearchSettings", "StoreSettings", "VocabularySettings"]
