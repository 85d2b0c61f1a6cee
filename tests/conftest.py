"""Shared fixtures for building synthetic recorded datasets."""

from pathlib import Path
from typing import Callable

import cv2
import numpy as np
import pytest

from vlslam_replay.io import (
    BoundingBox,
    FeatureObservation,
    FeatureStatus,
    Packet,
    save_bounding_boxes,
    save_edge_map,
    write_packets,
)

IDENTITY_POSE = np.hstack([np.eye(3), np.zeros((3, 1))]).ravel()


def make_packet(
    features: list[tuple[int, FeatureStatus, tuple, tuple]] | None = None,
    pose: np.ndarray = IDENTITY_POSE,
    gravity: tuple[float, float] = (0.0, 0.0),
) -> Packet:
    """Build a packet from (id, status, world_xyz, pixel_xy) tuples."""
    return Packet(
        pose_matrix=pose,
        gravity=np.array(gravity),
        features=[
            FeatureObservation(
                id=fid,
                status=status,
                position_world=np.array(world, dtype=np.float64),
                pixel=np.array(pixel, dtype=np.float64),
            )
            for fid, status, world, pixel in (features or [])
        ],
    )


@pytest.fixture
def make_dataset(tmp_path: Path) -> Callable[..., Path]:
    """Factory creating a dataset root under tmp_path.

    Frame k gets a 20x30 image filled with value k * 40, the translation
    (k, 0, 0) and one INSTATE landmark with id 100 + k.
    """

    def _make(
        n_images: int = 3,
        n_edges: int = 0,
        n_bboxes: int = 0,
        n_packets: int | None = None,
    ) -> Path:
        root = tmp_path / "session"
        root.mkdir()

        for k in range(n_images):
            image = np.full((20, 30, 3), k * 40, dtype=np.uint8)
            cv2.imwrite(str(root / f"frame_{k:04d}.png"), image)

        for k in range(n_edges):
            probabilities = np.full((20, 30), 0.1 * (k + 1), dtype=np.float32)
            save_edge_map(root / f"frame_{k:04d}.edge", probabilities)

        for k in range(n_bboxes):
            save_bounding_boxes(
                root / f"frame_{k:04d}.bbox",
                [BoundingBox(1.0, 2.0, 10.0, 12.0, label=k, class_name="chair")],
            )

        packets = []
        for k in range(n_images if n_packets is None else n_packets):
            pose = np.hstack([np.eye(3), np.array([[k], [0.0], [0.0]])]).ravel()
            packets.append(
                make_packet(
                    [(100 + k, FeatureStatus.INSTATE, (k, 0.0, 5.0), (3.0, 4.0))],
                    pose=pose,
                    gravity=(0.01 * k, -0.02 * k),
                )
            )
        write_packets(root / "dataset", packets)

        return root

    return _make
