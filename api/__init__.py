# Path: api/__init__.py
# Purpose: Package initializer for the HTTP API layer.
# Layer: api.
# Details: Exposes the FastAPI application factory.

from .app import create_app

__all__ = ["create_app"]
