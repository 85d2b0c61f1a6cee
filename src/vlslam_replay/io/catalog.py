"""Mesh/category catalog reader."""

from __future__ import annotations

import json
from pathlib import Path


def load_catalog(root: str | Path, category_file: str) -> list[str]:
    """Read the entry names of a category catalog.

    The catalog is a JSON document with an ``entries`` array of names,
    e.g. ``{"entries": ["chair_0001", "chair_0002"]}``.

    Args:
        root: Directory containing the catalog
        category_file: Catalog file name, must end in ``.json``

    Returns:
        Entry names in document order

    Raises:
        ValueError: If the name is not a .json file or the document is malformed
        FileNotFoundError: If the catalog does not exist
    """
    if not category_file.endswith(".json"):
        raise ValueError(f"Catalog must be a .json file, got {category_file}")

    path = Path(root) / category_file
    if not path.exists():
        raise FileNotFoundError(f"Catalog not found: {path}")

    with open(path, "r") as f:
        try:
            content = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid catalog JSON in {path}") from e

    entries = content.get("entries") if isinstance(content, dict) else None
    if not isinstance(entries, list):
        raise ValueError(f"Catalog {path} has no 'entries' array")

    return [str(value) for value in entries]
