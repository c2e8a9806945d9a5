# Path: inkfinder/search/browse.py
# Purpose: Derive browse structures (folder tree) from canonical image paths.
# Layer: inkfinder/search.
# Details: Pure helpers used by the pipeline and the folder listing endpoint.

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional


@dataclass
class FolderNode:
    """One folder level derived from image paths."""

    path: str
    name: str
    parent: Optional[str]
    count: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {"path": self.path, "name": self.name, "parent": self.parent, "count": self.count}


def folder_hierarchy(paths: Iterable[str]) -> List[FolderNode]:
    """Build the folder list for ``paths``; ``count`` is the number of images at or below each folder."""

    folders: Dict[str, FolderNode] = {}
    for image_path in paths:
        if not image_path:
            continue
        segments = [segment for segment in image_path.split("/") if segment]
        segments.pop()  # filename
        current = ""
        for segment in segments:
            parent = current or None
            current = f"{current}/{segment}" if current else segment
            node = folders.get(current)
            if node is None:
                node = folders[current] = FolderNode(path=current, name=segment, parent=parent)
            node.count += 1
    return sorted(folders.values(), key=lambda node: node.path)
