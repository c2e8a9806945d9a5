# Path: inkfinder/store/__init__.py
# Purpose: Package initializer for metadata store interfaces and implementations.
# Layer: inkfinder/store.
# Details: Exposes the base store contract and the SQLite-backed reference class.

from .base import ATTRIBUTE_KINDS, BODY_PART, KEYWORD, NO_TATTOO, PATH, ImageStore
from .sqlite_store import SqliteImageStore

__all__ = ["ATTRIBUTE_KINDS", "BODY_PART", "KEYWORD", "NO_TATTOO", "PATH", "ImageStore", "SqliteImageStore"]
