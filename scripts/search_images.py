# Path: scripts/search_images.py
# Purpose: CLI to run natural-language or explicit searches against the metadata store.
# Layer: scripts.
# Details: Wires settings, store, embedder, and pipeline; shows similarity progress with tqdm.

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from tqdm import tqdm

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import AppSettings
from inkfinder.embedders.remote_embedder import RemoteEmbedder
from inkfinder.errors import SearchError
from inkfinder.models.domain import SimilarityIntent
from inkfinder.search.pipeline import SearchPipeline
from inkfinder.store.sqlite_store import SqliteImageStore


def main() -> int:
    """Execute a search from the command line."""

    parser = argparse.ArgumentParser(description="Search the inkfinder image index")
    parser.add_argument("text", nargs="?", help="Natural-language request, e.g. 'show me arm tattoos'")
    parser.add_argument("--image", type=Path, help="Find images similar to this local file")
    parser.add_argument("--page", type=int, default=0, help="Page to fetch for paginated searches")
    parser.add_argument("--page-size", type=int, default=None, help="Page size for paginated searches")
    args = parser.parse_args()

    if not args.text and not args.image:
        parser.error("give a search request or --image")

    settings = AppSettings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    store = SqliteImageStore(settings.store.database_path)
    pipeline = SearchPipeline(store=store, embedder=RemoteEmbedder(settings.embedding_service), settings=settings)

    with tqdm(total=100, desc="Searching", unit="%", leave=False) as bar:

        def advance(value: int) -> None:
            bar.update(value - bar.n)

        try:
            if args.image:
                intent = SimilarityIntent(raw_image=args.image.read_bytes(), limit=settings.search.page_default_size)
                page = pipeline.search(intent, page=args.page, page_size=args.page_size, progress=advance)
                records, summary = page.records, f"{page.total_count} similar images"
            elif args.page or args.page_size:
                intent = pipeline.interpreter.interpret(args.text, settings.search.page_default_size)
                page = pipeline.search(intent, page=args.page, page_size=args.page_size)
                records, summary = page.records, f"page {args.page}: {len(page.records)} of {page.total_count}"
            else:
                outcome = pipeline.process_image_search_request(args.text, progress=advance)
                records, summary = outcome.results, outcome.response
        except SearchError as exc:
            print(f"Search failed: {exc}", file=sys.stderr)
            return 1

    print(summary)
    for record in records:
        score = f" similarity={record.similarity:.3f}" if record.similarity is not None else ""
        print(f"{record.filename}\t{record.path}{score}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
