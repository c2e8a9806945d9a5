# Path: config/__init__.py
# Purpose: Package initializer for configuration module.
# Layer: config.
# Details: Exposes settings models for application-wide configuration.

from .settings import AppSettings, EmbeddingServiceSettings, SearchSettings, StoreSettings, VocabularySettings

__all__ = ["AppSettings", "EmbeddingServiceSettings", "SearchSettings", "StoreSettings", "VocabularySettings"]
