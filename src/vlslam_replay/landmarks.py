"""Landmark aggregation across frames and per-frame sparse depth.

Colors are smoothed with an integer halved sum rather than a true running
mean: each new qualifying observation of a landmark sets

    color = (color + sampled) >> 1

per channel, so later observations weigh more. The stored world position
is always the one from the most recent qualifying observation. Both rules
are order dependent and fully deterministic for a given call sequence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, NamedTuple

import numpy as np

from .io.packet_store import FeatureObservation, FeatureStatus, Packet

logger = logging.getLogger(__name__)

DEFAULT_RETAINED_STATUSES = (FeatureStatus.INSTATE, FeatureStatus.GOODDROP)


@dataclass
class LandmarkRecord:
    """Aggregated state of one persistent landmark.

    Attributes:
        position_world: Position from the latest qualifying observation
        color: Smoothed color in the source image's channel order
    """

    position_world: np.ndarray  # (3,) float64
    color: tuple[int, int, int]

    def __post_init__(self) -> None:
        """Ensure arrays are proper types."""
        self.position_world = np.asarray(self.position_world, dtype=np.float64).flatten()
        self.color = tuple(int(c) for c in self.color)

    def update(self, position_world: np.ndarray, color: tuple[int, int, int]) -> None:
        """Fold in a newer observation: halve-sum the color, replace the position."""
        self.color = tuple((old + new) >> 1 for old, new in zip(self.color, color))
        self.position_world = np.asarray(position_world, dtype=np.float64).flatten()


class SparseDepthRecord(NamedTuple):
    """Recorded pixel of a landmark and its depth in the camera frame."""

    px: float
    py: float
    depth: float


def sample_color(image: np.ndarray, pixel: np.ndarray) -> tuple[int, int, int] | None:
    """Nearest-pixel color at (x, y), truncated to integer coordinates.

    Grayscale images yield the intensity on all three channels.

    Returns:
        Color tuple, or None if the pixel is non-finite or outside the image
    """
    if not np.isfinite(pixel[:2]).all():
        return None

    col = int(pixel[0])
    row = int(pixel[1])
    if image.ndim < 2 or not (0 <= row < image.shape[0] and 0 <= col < image.shape[1]):
        return None

    value = image[row, col]
    if np.ndim(value) == 0:
        v = int(value)
        return (v, v, v)
    return tuple(int(c) for c in value[:3])


class LandmarkAggregator:
    """Landmark point cloud folded from per-frame observations.

    An aggregator owns its id -> record mapping and has no internal locking.
    To aggregate frames in parallel, fill one aggregator per worker and
    combine them with ``merge``.

    Example usage:
        aggregator = LandmarkAggregator()
        for i in range(len(loader)):
            bundle = loader.grab(i)
            aggregator.accumulate(loader.packet(i), bundle.image)
        positions, colors = aggregator.point_cloud()
    """

    def __init__(
        self, retained_statuses: Iterable[FeatureStatus] = DEFAULT_RETAINED_STATUSES
    ) -> None:
        """Initialize an empty aggregator.

        Args:
            retained_statuses: Observation statuses that qualify for
                aggregation and projection
        """
        self._retained = frozenset(retained_statuses)
        self._records: dict[int, LandmarkRecord] = {}
        self.skipped_observations = 0

    def qualifying(self, packet: Packet) -> list[FeatureObservation]:
        """Observations of ``packet`` whose status is retained, in packet order."""
        return [f for f in packet.features if f.status in self._retained]

    def accumulate(self, packet: Packet, image: np.ndarray) -> None:
        """Fold the qualifying observations of one frame into the cloud.

        Colors are sampled from ``image`` at each observation's pixel.
        Observations falling outside the image are skipped and counted in
        ``skipped_observations``.

        Args:
            packet: Recorded packet of the frame
            image: Color image of the same frame
        """
        image = np.asarray(image)
        for feature in self.qualifying(packet):
            color = sample_color(image, feature.pixel)
            if color is None:
                self.skipped_observations += 1
                continue

            record = self._records.get(feature.id)
            if record is None:
                self._records[feature.id] = LandmarkRecord(feature.position_world, color)
            else:
                record.update(feature.position_world, color)

    def project(self, packet: Packet) -> dict[int, SparseDepthRecord]:
        """Camera-frame depth of each qualifying landmark in ``packet``.

        The depth is the z component of T_camera_world @ X_world; the pixel
        is the recorded observation, not a reprojection. When an id appears
        more than once, the last observation wins.

        Args:
            packet: Recorded packet of the frame

        Returns:
            Mapping from landmark id to (px, py, depth)
        """
        T_camera_world = packet.pose().inverse()
        features = self.qualifying(packet)
        if not features:
            return {}

        points_camera = T_camera_world.transform_points(
            np.array([f.position_world for f in features], dtype=np.float64)
        )

        out: dict[int, SparseDepthRecord] = {}
        for feature, point in zip(features, points_camera):
            out[feature.id] = SparseDepthRecord(
                px=float(feature.pixel[0]),
                py=float(feature.pixel[1]),
                depth=float(point[2]),
            )
        return out

    def merge(self, other: LandmarkAggregator) -> None:
        """Fold another aggregator into this one.

        Ids only in ``other`` are copied. Colliding ids use the same rule as
        ``accumulate``, treating ``other`` as the newer observation. For ids
        observed more than once the result depends on how frames were split
        between the aggregators.
        """
        for landmark_id, theirs in other._records.items():
            record = self._records.get(landmark_id)
            if record is None:
                self._records[landmark_id] = LandmarkRecord(
                    theirs.position_world.copy(), theirs.color
                )
            else:
                record.update(theirs.position_world, theirs.color)
        self.skipped_observations += other.skipped_observations

    def get(self, landmark_id: int) -> LandmarkRecord | None:
        """Return the record of a landmark, or None if never observed."""
        return self._records.get(landmark_id)

    @property
    def records(self) -> dict[int, LandmarkRecord]:
        """Snapshot of the id -> record mapping in first-seen order."""
        return dict(self._records)

    def point_cloud(self) -> tuple[np.ndarray, np.ndarray]:
        """Return (positions Nx3 float64, colors Nx3 uint8) in first-seen order."""
        if not self._records:
            return np.empty((0, 3), dtype=np.float64), np.empty((0, 3), dtype=np.uint8)

        positions = np.array(
            [r.position_world for r in self._records.values()], dtype=np.float64
        )
        colors = np.array([r.color for r in self._records.values()], dtype=np.uint8)
        return positions, colors

    def save_ply(self, path: str | Path, bgr: bool = True) -> None:
        """Write the aggregated cloud as an ASCII PLY with vertex colors.

        Args:
            path: Output file path
            bgr: Colors were sampled from BGR images (as loaded by OpenCV)
                and are swapped to RGB on output
        """
        positions, colors = self.point_cloud()
        if bgr:
            colors = colors[:, ::-1]

        with Path(path).open("w", encoding="utf-8") as f:
            f.write("ply\nformat ascii 1.0\n")
            f.write(f"element vertex {positions.shape[0]}\n")
            f.write("property float x\nproperty float y\nproperty float z\n")
            f.write("property uchar red\nproperty uchar green\nproperty uchar blue\n")
            f.write("end_header\n")
            for p, c in zip(positions, colors):
                f.write(f"{p[0]} {p[1]} {p[2]} {int(c[0])} {int(c[1])} {int(c[2])}\n")

        logger.info("Wrote %d landmarks to %s", positions.shape[0], path)

    def clear(self) -> None:
        """Remove all records."""
        self._records.clear()
        self.skipped_observations = 0

    def __contains__(self, landmark_id: object) -> bool:
        """Return True if the landmark has a record."""
        return landmark_id in self._records

    def __len__(self) -> int:
        """Number of distinct landmarks aggregated."""
        return len(self._records)
