# Path: inkfinder/indexing/__init__.py
# Purpose: Package initializer for indexing utilities.
# Layer: inkfinder/indexing.
# Details: Exposes scanning and index building helpers used to populate the metadata store.

from .index_builder import IndexBuilder
from .scanner import ImageScanner, ScannedImage, canonical_path

__all__ = ["ImageScanner", "IndexBuilder", "ScannedImage", "canonical_path"]
