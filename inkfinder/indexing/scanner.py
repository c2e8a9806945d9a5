# Path: inkfinder/indexing/scanner.py
# Purpose: Scan folders and collect image files with their canonical storage paths.
# Layer: inkfinder/indexing.
# Details: Canonical paths are provider-prefixed, POSIX-style, and relative to the scanned root.

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp"}


def canonical_path(provider: str, relative: Path | str) -> str:
    """Build ``provider:relative/path`` from a path relative to the provider root."""

    relative_posix = Path(relative).as_posix().lstrip("/")
    return f"{provider}:{relative_posix}"


@dataclass(frozen=True)
class ScannedImage:
    """An image file discovered on disk."""

    file_path: Path
    relative_path: str
    canonical_path: str


class ImageScanner:
    """Scan filesystem paths for supported image files."""

    def __init__(self, root: Path, provider: str = "local") -> None:
        self.root = Path(root)
        self.provider = provider

    def scan(self) -> List[ScannedImage]:
        """Return discovered images sorted by relative path."""

        images: List[ScannedImage] = []
        for path in sorted(self._iter_image_files()):
            relative = path.relative_to(self.root).as_posix()
            images.append(ScannedImage(path, relative, canonical_path(self.provider, relative)))
        return images

    def _iter_image_files(self) -> Iterable[Path]:
        """Yield image files under the root directory."""

        for path in self.root.rglob("*"):
            if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS:
                yield path
