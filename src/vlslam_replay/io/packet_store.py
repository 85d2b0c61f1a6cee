"""Structured per-frame packet log.

The log is a NumPy ``.npz`` archive holding one packet per frame:

    poses            (N, 12) float64   row-major 3x4 T_world_camera
    gravity          (N, 2)  float64   gravity log-vector (x, y)
    feature_offsets  (N+1,)  int64     packet k owns features [off[k], off[k+1])
    feature_ids      (M,)    int64     persistent landmark ids
    feature_status   (M,)    int32     FeatureStatus values
    feature_world    (M, 3)  float64   landmark positions in world frame
    feature_pixel    (M, 2)  float64   observed pixel coordinates (x, y)
"""

from __future__ import annotations

import zipfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator

import numpy as np

from ..errors import LoadError
from ..pose import SE3, gravity_rotation


class FeatureStatus(Enum):
    """Tracking status of a landmark observation."""

    EMPTY = 0
    INITIALIZING = 1
    READY = 2
    INSTATE = 3
    GOODDROP = 4
    KEEP = 5
    REJECTED = 6
    DROPPED = 7


@dataclass
class FeatureObservation:
    """A landmark observed in one packet.

    Attributes:
        id: Persistent landmark identifier
        status: Tracking status at this frame
        position_world: 3D landmark position in world frame
        pixel: Observed pixel coordinates (x, y)
    """

    id: int
    status: FeatureStatus
    position_world: np.ndarray  # (3,) float64
    pixel: np.ndarray  # (2,) float64

    def __post_init__(self) -> None:
        """Ensure arrays are proper types."""
        self.id = int(self.id)
        self.status = FeatureStatus(self.status)
        self.position_world = np.asarray(self.position_world, dtype=np.float64).flatten()
        self.pixel = np.asarray(self.pixel, dtype=np.float64).flatten()


@dataclass
class Packet:
    """Recorded state of one frame.

    Attributes:
        pose_matrix: Row-major 3x4 T_world_camera (12 values)
        gravity: Gravity log-vector (wx, wy)
        features: Landmark observations at this frame
    """

    pose_matrix: np.ndarray  # (12,) float64
    gravity: np.ndarray  # (2,) float64
    features: list[FeatureObservation] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Ensure arrays are proper types."""
        self.pose_matrix = np.asarray(self.pose_matrix, dtype=np.float64).flatten()
        self.gravity = np.asarray(self.gravity, dtype=np.float64).flatten()

        if self.pose_matrix.shape != (12,):
            raise ValueError(f"Pose must have 12 values, got {self.pose_matrix.shape}")
        if self.gravity.shape != (2,):
            raise ValueError(f"Gravity must have 2 values, got {self.gravity.shape}")

    def pose(self) -> SE3:
        """Return the camera pose T_world_camera."""
        return SE3.from_matrix3x4(self.pose_matrix)

    def gravity_rotation(self) -> np.ndarray:
        """Return the 3x3 gravity-alignment rotation."""
        return gravity_rotation(self.gravity)


_REQUIRED_KEYS = (
    "poses",
    "gravity",
    "feature_offsets",
    "feature_ids",
    "feature_status",
    "feature_world",
    "feature_pixel",
)


class PacketStore:
    """Random access to the packets of a recorded session.

    Example usage:
        store = PacketStore.load("data/session/dataset")
        packet = store.get(0)
        print(packet.pose(), len(packet.features))
    """

    def __init__(self, packets: list[Packet]) -> None:
        """Wrap an already parsed packet sequence."""
        self._packets = packets

    @classmethod
    def load(cls, path: str | Path) -> PacketStore:
        """Parse a packet log from disk.

        Args:
            path: Path to the structured log file

        Returns:
            PacketStore holding every packet in recording order

        Raises:
            LoadError: If the file cannot be opened or does not match the schema
        """
        path = Path(path)
        try:
            with np.load(path, allow_pickle=False) as archive:
                missing = [key for key in _REQUIRED_KEYS if key not in archive.files]
                if missing:
                    raise LoadError(f"Packet log {path} is missing {missing}")
                arrays = {key: archive[key] for key in _REQUIRED_KEYS}
        except LoadError:
            raise
        except (ValueError, OSError, EOFError, KeyError, zipfile.BadZipFile) as e:
            raise LoadError(f"Failed to read packet log {path}: {e}") from e
        except (AttributeError, TypeError) as e:
            raise LoadError(f"Packet log {path} is not an archive") from e

        try:
            packets = cls._parse(arrays)
        except (ValueError, IndexError) as e:
            raise LoadError(f"Malformed packet log {path}: {e}") from e

        return cls(packets)

    @staticmethod
    def _parse(arrays: dict[str, np.ndarray]) -> list[Packet]:
        """Split the flat feature arrays into per-packet observations."""
        poses = np.asarray(arrays["poses"], dtype=np.float64).reshape(-1, 12)
        gravity = np.asarray(arrays["gravity"], dtype=np.float64).reshape(-1, 2)
        offsets = np.asarray(arrays["feature_offsets"], dtype=np.int64).ravel()
        ids = np.asarray(arrays["feature_ids"], dtype=np.int64).ravel()
        status = np.asarray(arrays["feature_status"], dtype=np.int64).ravel()
        world = np.asarray(arrays["feature_world"], dtype=np.float64).reshape(-1, 3)
        pixel = np.asarray(arrays["feature_pixel"], dtype=np.float64).reshape(-1, 2)

        n_packets = len(poses)
        n_features = len(ids)

        if len(gravity) != n_packets:
            raise ValueError(f"{len(gravity)} gravity vectors for {n_packets} packets")
        if len(offsets) != n_packets + 1:
            raise ValueError(
                f"{len(offsets)} feature offsets for {n_packets} packets"
            )
        if not (len(status) == len(world) == len(pixel) == n_features):
            raise ValueError("Feature arrays have inconsistent lengths")
        if offsets[0] != 0 or offsets[-1] != n_features or np.any(np.diff(offsets) < 0):
            raise ValueError("Feature offsets are not a monotonic partition")

        packets = []
        for k in range(n_packets):
            start, end = offsets[k], offsets[k + 1]
            features = [
                FeatureObservation(
                    id=ids[j],
                    status=FeatureStatus(int(status[j])),
                    position_world=world[j],
                    pixel=pixel[j],
                )
                for j in range(start, end)
            ]
            packets.append(
                Packet(pose_matrix=poses[k], gravity=gravity[k], features=features)
            )

        return packets

    def get(self, i: int) -> Packet:
        """Return packet ``i``. The caller is responsible for bounds checks."""
        return self._packets[i]

    def __len__(self) -> int:
        """Number of packets in the log."""
        return len(self._packets)

    def __iter__(self) -> Iterator[Packet]:
        """Iterate over packets in recording order."""
        return iter(self._packets)


def write_packets(path: str | Path, packets: Iterable[Packet]) -> None:
    """Serialize packets into a structured log file.

    The file is written at exactly ``path`` (no ``.npz`` suffix is added).
    """
    packets = list(packets)
    features = [f for packet in packets for f in packet.features]

    offsets = np.zeros(len(packets) + 1, dtype=np.int64)
    offsets[1:] = np.cumsum([len(packet.features) for packet in packets])

    with open(path, "wb") as f:
        np.savez(
            f,
            poses=np.array([p.pose_matrix for p in packets], dtype=np.float64).reshape(-1, 12),
            gravity=np.array([p.gravity for p in packets], dtype=np.float64).reshape(-1, 2),
            feature_offsets=offsets,
            feature_ids=np.array([ft.id for ft in features], dtype=np.int64),
            feature_status=np.array([ft.status.value for ft in features], dtype=np.int32),
            feature_world=np.array(
                [ft.position_world for ft in features], dtype=np.float64
            ).reshape(-1, 3),
            feature_pixel=np.array(
                [ft.pixel for ft in features], dtype=np.float64
            ).reshape(-1, 2),
        )
