"""Per-extension file lists of a recorded dataset.

Images, edge maps and bounding boxes are enumerated independently and
sorted lexicographically by path. Position in the sorted list is the frame
ordinal that aligns them with each other and with the packet log; file
names are never matched against one another.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import DatasetIOError

logger = logging.getLogger(__name__)


def list_files(root: Path, suffix: str) -> list[Path]:
    """Return regular files directly under ``root`` ending in ``suffix``, sorted.

    Raises:
        DatasetIOError: If the directory cannot be listed
    """
    try:
        files = [p for p in root.iterdir() if p.is_file() and p.name.endswith(suffix)]
    except OSError as e:
        raise DatasetIOError(f"Failed to list {suffix} files @ {root}") from e

    return sorted(files, key=str)


@dataclass(frozen=True)
class FrameIndex:
    """Sorted image, edge-map and bounding-box paths of a dataset root."""

    root: Path
    images: tuple[Path, ...]
    edges: tuple[Path, ...]
    bboxes: tuple[Path, ...]

    @classmethod
    def build(
        cls,
        root: str | Path,
        image_suffix: str = ".png",
        edge_suffix: str = ".edge",
        bbox_suffix: str = ".bbox",
    ) -> FrameIndex:
        """Enumerate the dataset files under ``root``.

        Raises:
            DatasetIOError: If root is not a readable directory or holds no images
        """
        root = Path(root)
        if not root.is_dir():
            raise DatasetIOError(f"Dataset root is not a directory: {root}")

        images = list_files(root, image_suffix)
        if not images:
            raise DatasetIOError(f"No {image_suffix} images found @ {root}")

        edges = list_files(root, edge_suffix)
        bboxes = list_files(root, bbox_suffix)

        logger.debug(
            "Indexed %s: %d images, %d edge maps, %d bbox files",
            root,
            len(images),
            len(edges),
            len(bboxes),
        )
        return cls(root=root, images=tuple(images), edges=tuple(edges), bboxes=tuple(bboxes))

    @property
    def size(self) -> int:
        """Number of frames (one per image)."""
        return len(self.images)

    def image_path(self, i: int) -> Path:
        """Image path of frame ``i``. The caller checks bounds."""
        return self.images[i]

    def edge_path(self, i: int) -> Path | None:
        """Edge-map path of frame ``i``, or None if the frame has none."""
        return self.edges[i] if 0 <= i < len(self.edges) else None

    def bbox_path(self, i: int) -> Path | None:
        """Bounding-box path of frame ``i``, or None if the frame has none."""
        return self.bboxes[i] if 0 <= i < len(self.bboxes) else None

    def __len__(self) -> int:
        """Number of frames."""
        return self.size
