"""Bounding-box list records.

A ``.bbox`` file is a YAML document:

    bounding_boxes:
      - top_left_x: 12.0
        top_left_y: 40.5
        bottom_right_x: 96.0
        bottom_right_y: 120.0
        label: 3
        class_name: chair
        scores: [0.1, 0.8, 0.1]

The replay loader only deserializes these records; interpreting them is up
to the consumer.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Iterable

import yaml

from ..errors import DecodeError


@dataclass
class BoundingBox:
    """Axis-aligned detection box in pixel coordinates."""

    top_left_x: float
    top_left_y: float
    bottom_right_x: float
    bottom_right_y: float
    label: int = -1
    class_name: str = ""
    scores: list[float] = field(default_factory=list)


def load_bounding_boxes(path: str | Path) -> list[BoundingBox]:
    """Read a bounding-box list from disk.

    Args:
        path: Path to a .bbox file

    Returns:
        Bounding boxes in file order (empty list for an empty document)

    Raises:
        DecodeError: If the file cannot be opened or does not match the schema
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise DecodeError(f"Failed to open bbox file @ {path}") from e
    except yaml.YAMLError as e:
        raise DecodeError(f"Invalid bbox file @ {path}: {e}") from e

    if data is None:
        return []
    if not isinstance(data, dict):
        raise DecodeError(f"Invalid bbox file @ {path}: expected a mapping")

    entries = data.get("bounding_boxes") or []
    if not isinstance(entries, list):
        raise DecodeError(f"Invalid bbox file @ {path}: bounding_boxes must be a list")

    boxes = []
    for entry in entries:
        try:
            boxes.append(
                BoundingBox(
                    top_left_x=float(entry["top_left_x"]),
                    top_left_y=float(entry["top_left_y"]),
                    bottom_right_x=float(entry["bottom_right_x"]),
                    bottom_right_y=float(entry["bottom_right_y"]),
                    label=int(entry.get("label", -1)),
                    class_name=str(entry.get("class_name", "")),
                    scores=[float(s) for s in entry.get("scores") or []],
                )
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"Invalid bounding box in {path}: {entry!r}") from e

    return boxes


def save_bounding_boxes(path: str | Path, boxes: Iterable[BoundingBox]) -> None:
    """Write a bounding-box list as a .bbox file."""
    with open(path, "w") as f:
        yaml.safe_dump({"bounding_boxes": [asdict(box) for box in boxes]}, f)
