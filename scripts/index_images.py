# Path: scripts/index_images.py
# Purpose: CLI tool to scan image folders and populate the metadata store.
# Layer: scripts.
# Details: Demonstrates how to wire scanning, embedding, and the SQLite store together.

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import AppSettings
from inkfinder.embedders.pixel_embedder import PixelEmbedder
from inkfinder.embedders.remote_embedder import RemoteEmbedder
from inkfinder.indexing.index_builder import IndexBuilder, load_analysis_sidecar
from inkfinder.indexing.scanner import ImageScanner
from inkfinder.store.sqlite_store import SqliteImageStore


def main() -> None:
    """Run indexing over a folder of images."""

    parser = argparse.ArgumentParser(description="Index images for inkfinder")
    parser.add_argument("--folder", type=Path, default=Path("storage/images"), help="Folder containing images to index")
    parser.add_argument("--analysis", type=Path, default=None, help="JSON sidecar mapping relative paths to analysis")
    parser.add_argument("--provider", type=str, default=None, help="Canonical path prefix (defaults to settings)")
    parser.add_argument("--remote", action="store_true", help="Use the embedding service instead of the local embedder")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    scanner = ImageScanner(args.folder, provider=args.provider or settings.store.provider)
    images = scanner.scan()

    if args.remote:
        embedder = RemoteEmbedder(settings.embedding_service)
    else:
        embedder = PixelEmbedder(dim=settings.embedding_service.dim)
    store = SqliteImageStore(settings.store.database_path)
    analysis = load_analysis_sidecar(args.analysis) if args.analysis else None

    report = IndexBuilder(embedder=embedder, store=store).build_index(images, analysis)
    print(
        f"Indexed {report.embedded} images into {settings.store.database_path} "
        f"({report.analysed} with analysis, {report.skipped} skipped)"
    )


if __name__ == "__main__":
    main()
