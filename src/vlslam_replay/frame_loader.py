"""Index-aligned frame loader for recorded tracking sessions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import cv2
import numpy as np

from .config import ReplayConfig
from .errors import DatasetIOError
from .frame_index import FrameIndex
from .io.bbox import BoundingBox, load_bounding_boxes
from .io.edge_map import load_edge_map
from .io.packet_store import Packet, PacketStore
from .landmarks import LandmarkAggregator, SparseDepthRecord
from .pose import SE3

logger = logging.getLogger(__name__)


def empty_image() -> np.ndarray:
    """Placeholder for a color image that could not be decoded."""
    return np.empty((0, 0, 3), dtype=np.uint8)


@dataclass
class FrameBundle:
    """Everything recorded for one frame ordinal.

    Attributes:
        index: Frame ordinal
        image: BGR color image, empty (0x0x3) if it could not be decoded
        edge_map: uint8 edge-probability image, None if the frame has none
        bounding_boxes: Detections, None if the frame has no bbox file
        pose: Camera pose T_world_camera
        gravity_rotation: 3x3 gravity-alignment rotation
        source_path: Path of the color image
    """

    index: int
    image: np.ndarray
    edge_map: np.ndarray | None
    bounding_boxes: list[BoundingBox] | None
    pose: SE3
    gravity_rotation: np.ndarray
    source_path: Path | None = None

    @property
    def has_image(self) -> bool:
        """Return True if the color image was decoded."""
        return self.image.size > 0


class FrameLoader:
    """Replays a dataset root frame by frame.

    The root holds one structured packet log (``dataset``) plus ``.png``,
    ``.edge`` and ``.bbox`` files. Each source is sorted independently and
    frame ``i`` takes the i-th entry of every one of them. Edge maps and
    bounding boxes may cover only the first frames.

    Example usage:
        loader = FrameLoader("data/session")
        for i in range(len(loader)):
            bundle = loader.grab(i)
            print(bundle.pose, bundle.edge_map is not None)
    """

    def __init__(self, dataroot: str | Path, config: ReplayConfig | None = None) -> None:
        """Open a recorded dataset.

        Args:
            dataroot: Dataset root directory
            config: Layout and filtering options (defaults if omitted)

        Raises:
            DatasetIOError: If the root, its files, or the packet log are missing
            LoadError: If the packet log cannot be parsed
        """
        self.dataroot = Path(dataroot)
        self.config = config or ReplayConfig()

        log_path = self.dataroot / self.config.log_name
        if not log_path.is_file():
            raise DatasetIOError(f"Failed to open dataset log: {log_path}")

        self._store = PacketStore.load(log_path)
        self._index = FrameIndex.build(
            self.dataroot,
            image_suffix=self.config.image_suffix,
            edge_suffix=self.config.edge_suffix,
            bbox_suffix=self.config.bbox_suffix,
        )

        if len(self._store) != self._index.size:
            logger.warning(
                "Packet log has %d packets but %d images were found @ %s",
                len(self._store),
                self._index.size,
                self.dataroot,
            )

    @property
    def index(self) -> FrameIndex:
        """Sorted file lists of the dataset."""
        return self._index

    @property
    def store(self) -> PacketStore:
        """Parsed packet log."""
        return self._store

    def _in_range(self, i: int) -> bool:
        """Return True if frame ``i`` has both an image and a packet."""
        return 0 <= i < len(self) and i < len(self._store)

    def packet(self, i: int) -> Packet | None:
        """Return the packet of frame ``i``, or None if out of range."""
        if not self._in_range(i):
            return None
        return self._store.get(i)

    def grab(self, i: int) -> FrameBundle | None:
        """Load the bundle of frame ``i``.

        A missing edge map or bbox file leaves that field None, and an
        unreadable image yields an empty image. A present but corrupt edge
        map or bbox file raises.

        Args:
            i: Frame ordinal

        Returns:
            FrameBundle, or None if ``i`` is outside [0, len(self))

        Raises:
            DecodeError: If the frame's edge map or bbox file is corrupt
        """
        if not self._in_range(i):
            return None
        logger.debug("Grabbing frame %d", i)

        packet = self._store.get(i)
        pose = packet.pose()
        Rg = packet.gravity_rotation()

        png_file = self._index.image_path(i)
        image = cv2.imread(str(png_file), cv2.IMREAD_COLOR)
        if image is None:
            logger.warning("Failed to decode image, continuing with empty image: %s", png_file)
            image = empty_image()

        edge_map = None
        edge_file = self._index.edge_path(i)
        if edge_file is not None:
            edge_map = load_edge_map(edge_file)

        bounding_boxes = None
        bbox_file = self._index.bbox_path(i)
        if bbox_file is not None:
            bounding_boxes = load_bounding_boxes(bbox_file)

        return FrameBundle(
            index=i,
            image=image,
            edge_map=edge_map,
            bounding_boxes=bounding_boxes,
            pose=pose,
            gravity_rotation=Rg,
            source_path=png_file,
        )

    def grab_with_path(self, i: int) -> tuple[FrameBundle, Path] | None:
        """Load frame ``i`` and also return its image path.

        Returns:
            Tuple of (bundle, image_path), or None if ``i`` is out of range
        """
        bundle = self.grab(i)
        if bundle is None:
            return None
        return bundle, self._index.image_path(i)

    def grab_point_cloud(
        self,
        i: int,
        image: np.ndarray,
        aggregator: LandmarkAggregator | None = None,
    ) -> LandmarkAggregator | None:
        """Fold the landmarks of frame ``i`` into an aggregator.

        Args:
            i: Frame ordinal
            image: Color image used to sample landmark colors
            aggregator: Aggregator to update, a new one if omitted

        Returns:
            The updated aggregator, or None if ``i`` is out of range
        """
        packet = self.packet(i)
        if packet is None:
            return None

        if aggregator is None:
            aggregator = LandmarkAggregator(self.config.retained_statuses)
        aggregator.accumulate(packet, image)
        return aggregator

    def grab_sparse_depth(self, i: int) -> dict[int, SparseDepthRecord] | None:
        """Camera-frame sparse depth of frame ``i``, or None if out of range."""
        packet = self.packet(i)
        if packet is None:
            return None
        return LandmarkAggregator(self.config.retained_statuses).project(packet)

    def __len__(self) -> int:
        """Number of frames (one per discovered image)."""
        return self._index.size

    def __iter__(self) -> Iterator[FrameBundle]:
        """Iterate over the bundles of every frame in order."""
        for i in range(len(self)):
            bundle = self.grab(i)
            if bundle is None:
                return
            yield bundle
