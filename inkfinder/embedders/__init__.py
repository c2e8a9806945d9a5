# Path: inkfinder/embedders/__init__.py
# Purpose: Package initializer for embedder implementations and interfaces.
# Layer: inkfinder/embedders.
# Details: Exposes the base interface, the embedding service client, and the local pixel embedder.

from .base import Embedder
from .pixel_embedder import PixelEmbedder
from .remote_embedder import RemoteEmbedder

__all__ = ["Embedder", "PixelEmbedder", "RemoteEmbedder"]
