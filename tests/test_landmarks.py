"""Tests for LandmarkAggregator."""

from pathlib import Path

import numpy as np
import pytest

from vlslam_replay.io.packet_store import FeatureStatus
from vlslam_replay.landmarks import (
    LandmarkAggregator,
    LandmarkRecord,
    SparseDepthRecord,
    sample_color,
)

from conftest import make_packet

INSTATE = FeatureStatus.INSTATE
GOODDROP = FeatureStatus.GOODDROP


def image_with(pixels: dict[tuple[int, int], int], shape=(10, 10, 3)) -> np.ndarray:
    """Black image with gray values at (x, y) pixels."""
    image = np.zeros(shape, dtype=np.uint8)
    for (x, y), value in pixels.items():
        image[y, x] = value
    return image


def assert_same_records(a: LandmarkAggregator, b: LandmarkAggregator) -> None:
    assert set(a.records) == set(b.records)
    for landmark_id, record in a.records.items():
        other = b.get(landmark_id)
        assert record.color == other.color
        np.testing.assert_array_equal(record.position_world, other.position_world)


class TestAccumulate:
    """Test suite for LandmarkAggregator.accumulate."""

    def test_repeated_id_in_one_packet(self):
        """Two observations of id 42 average their colors and keep the last position."""
        packet = make_packet(
            [
                (42, INSTATE, (1.0, 2.0, 3.0), (1.0, 1.0)),
                (42, GOODDROP, (4.0, 5.0, 6.0), (3.0, 2.0)),
            ]
        )
        image = image_with({(1, 1): 100, (3, 2): 200})

        aggregator = LandmarkAggregator()
        aggregator.accumulate(packet, image)

        record = aggregator.get(42)
        assert record.color == (150, 150, 150)
        np.testing.assert_array_equal(record.position_world, [4.0, 5.0, 6.0])
        assert len(aggregator) == 1

    def test_halved_sum_is_recency_weighted(self):
        """Observations 0, 0, 200 give 100 rather than their mean of 66."""
        image = image_with({(0, 0): 0, (1, 0): 200})
        aggregator = LandmarkAggregator()

        aggregator.accumulate(make_packet([(1, INSTATE, (0, 0, 0), (0, 0))]), image)
        aggregator.accumulate(make_packet([(1, INSTATE, (0, 0, 0), (0, 0))]), image)
        aggregator.accumulate(make_packet([(1, INSTATE, (0, 0, 0), (1, 0))]), image)

        assert aggregator.get(1).color == (100, 100, 100)

    def test_no_saturation_on_bright_colors(self):
        image = image_with({(0, 0): 255, (1, 0): 255})
        packet = make_packet(
            [(5, INSTATE, (0, 0, 0), (0, 0)), (5, INSTATE, (0, 0, 0), (1, 0))]
        )

        aggregator = LandmarkAggregator()
        aggregator.accumulate(packet, image)

        assert aggregator.get(5).color == (255, 255, 255)

    def test_ignores_other_statuses(self):
        packet = make_packet(
            [
                (1, FeatureStatus.REJECTED, (0, 0, 0), (0, 0)),
                (2, FeatureStatus.DROPPED, (0, 0, 0), (0, 0)),
                (3, FeatureStatus.INITIALIZING, (0, 0, 0), (0, 0)),
                (4, GOODDROP, (0, 0, 0), (0, 0)),
            ]
        )

        aggregator = LandmarkAggregator()
        aggregator.accumulate(packet, image_with({}))

        assert list(aggregator.records) == [4]
        assert 1 not in aggregator

    def test_custom_retained_statuses(self):
        packet = make_packet(
            [(1, INSTATE, (0, 0, 0), (0, 0)), (2, FeatureStatus.KEEP, (0, 0, 0), (0, 0))]
        )

        aggregator = LandmarkAggregator(retained_statuses=[FeatureStatus.KEEP])
        aggregator.accumulate(packet, image_with({}))

        assert list(aggregator.records) == [2]

    def test_pixel_truncated_row_y_col_x(self):
        image = np.zeros((4, 6, 3), dtype=np.uint8)
        image[2, 5] = (10, 20, 30)
        packet = make_packet([(9, INSTATE, (0, 0, 0), (5.9, 2.7))])

        aggregator = LandmarkAggregator()
        aggregator.accumulate(packet, image)

        assert aggregator.get(9).color == (10, 20, 30)

    def test_grayscale_image(self):
        image = np.zeros((4, 4), dtype=np.uint8)
        image[1, 2] = 77

        assert sample_color(image, np.array([2.0, 1.0])) == (77, 77, 77)

    def test_out_of_image_observations_skipped(self):
        packet = make_packet(
            [
                (1, INSTATE, (0, 0, 0), (10.0, 0.0)),
                (2, INSTATE, (0, 0, 0), (0.0, -3.0)),
                (3, INSTATE, (0, 0, 0), (9.0, 9.0)),
            ]
        )

        aggregator = LandmarkAggregator()
        aggregator.accumulate(packet, image_with({}))

        assert list(aggregator.records) == [3]
        assert aggregator.skipped_observations == 2

    def test_non_finite_pixels_skipped(self):
        packet = make_packet(
            [
                (1, INSTATE, (0, 0, 0), (np.nan, 1.0)),
                (2, GOODDROP, (0, 0, 0), (1.0, np.inf)),
                (3, INSTATE, (0, 0, 0), (1.0, 1.0)),
            ]
        )

        aggregator = LandmarkAggregator()
        aggregator.accumulate(packet, np.zeros((4, 4, 3), dtype=np.uint8))

        assert list(aggregator.records) == [3]
        assert aggregator.skipped_observations == 2

    def test_empty_image_skips_everything(self):
        packet = make_packet([(1, INSTATE, (0, 0, 0), (0.0, 0.0))])

        aggregator = LandmarkAggregator()
        aggregator.accumulate(packet, np.empty((0, 0, 3), dtype=np.uint8))

        assert len(aggregator) == 0
        assert aggregator.skipped_observations == 1

    def test_replay_is_deterministic(self):
        rng = np.random.default_rng(3)
        image = rng.integers(0, 256, size=(8, 8, 3), dtype=np.uint8)
        packets = [
            make_packet(
                [
                    (
                        int(rng.integers(0, 5)),
                        INSTATE if rng.random() < 0.5 else GOODDROP,
                        tuple(rng.normal(size=3)),
                        tuple(rng.uniform(0, 8, size=2)),
                    )
                    for _ in range(6)
                ]
            )
            for _ in range(10)
        ]

        first, second = LandmarkAggregator(), LandmarkAggregator()
        for packet in packets:
            first.accumulate(packet, image)
        for packet in packets:
            second.accumulate(packet, image)

        assert_same_records(first, second)

    def test_clear(self):
        aggregator = LandmarkAggregator()
        aggregator.accumulate(make_packet([(1, INSTATE, (0, 0, 0), (0, 0))]), image_with({}))

        aggregator.clear()

        assert len(aggregator) == 0
        assert aggregator.skipped_observations == 0


class TestMerge:
    """Test suite for LandmarkAggregator.merge."""

    def test_disjoint_merge_equals_sequential(self):
        image = image_with({(1, 1): 30, (2, 2): 60, (3, 3): 90, (4, 4): 120})
        first_half = make_packet(
            [(1, INSTATE, (1, 0, 0), (1, 1)), (2, GOODDROP, (2, 0, 0), (2, 2))]
        )
        second_half = make_packet(
            [(3, INSTATE, (3, 0, 0), (3, 3)), (4, INSTATE, (4, 0, 0), (4, 4))]
        )

        sequential = LandmarkAggregator()
        sequential.accumulate(first_half, image)
        sequential.accumulate(second_half, image)

        left, right = LandmarkAggregator(), LandmarkAggregator()
        left.accumulate(first_half, image)
        right.accumulate(second_half, image)
        left.merge(right)

        assert_same_records(left, sequential)

    def test_colliding_ids_use_halved_sum(self):
        left, right = LandmarkAggregator(), LandmarkAggregator()
        left.accumulate(
            make_packet([(7, INSTATE, (1, 1, 1), (0, 0))]), image_with({(0, 0): 100})
        )
        right.accumulate(
            make_packet([(7, INSTATE, (2, 2, 2), (0, 0))]), image_with({(0, 0): 200})
        )

        left.merge(right)

        assert left.get(7).color == (150, 150, 150)
        np.testing.assert_array_equal(left.get(7).position_world, [2, 2, 2])

    def test_merge_does_not_alias_records(self):
        left, right = LandmarkAggregator(), LandmarkAggregator()
        right.accumulate(make_packet([(1, INSTATE, (1, 1, 1), (0, 0))]), image_with({}))

        left.merge(right)
        right.get(1).update(np.array([9.0, 9.0, 9.0]), (200, 200, 200))

        np.testing.assert_array_equal(left.get(1).position_world, [1, 1, 1])
        assert left.get(1).color == (0, 0, 0)


class TestProject:
    """Test suite for LandmarkAggregator.project."""

    def test_hand_computed_depth(self):
        """Camera rotated 90 degrees about x and raised by 1 along z.

        X_camera = R^T (X_world - t) = R^T (2, -4, 0) = (2, 0, 4).
        """
        R = np.array([[1.0, 0.0, 0.0], [0.0, 0.0, -1.0], [0.0, 1.0, 0.0]])
        t = np.array([[0.0], [0.0], [1.0]])
        packet = make_packet(
            [(11, INSTATE, (2.0, -4.0, 1.0), (320.5, 240.25))],
            pose=np.hstack([R, t]).ravel(),
        )

        depth = LandmarkAggregator().project(packet)

        assert set(depth) == {11}
        record = depth[11]
        assert isinstance(record, SparseDepthRecord)
        assert record.px == 320.5
        assert record.py == 240.25
        assert record.depth == pytest.approx(4.0)

    def test_depth_matches_inverse_pose(self):
        rng = np.random.default_rng(11)
        angle = 0.4
        R = np.array(
            [[np.cos(angle), 0, np.sin(angle)], [0, 1, 0], [-np.sin(angle), 0, np.cos(angle)]]
        )
        t = np.array([[0.5], [-1.0], [2.0]])
        features = [
            (i, INSTATE, tuple(rng.normal(size=3) * 5), (float(i), float(i))) for i in range(5)
        ]
        packet = make_packet(features, pose=np.hstack([R, t]).ravel())

        depth = LandmarkAggregator().project(packet)

        for fid, _, world, _ in features:
            expected = (R.T @ (np.array(world) - t.ravel()))[2]
            assert depth[fid].depth == pytest.approx(expected)

    def test_duplicate_id_last_wins(self):
        packet = make_packet(
            [
                (3, INSTATE, (0.0, 0.0, 2.0), (1.0, 1.0)),
                (3, GOODDROP, (0.0, 0.0, 7.0), (5.0, 6.0)),
            ]
        )

        depth = LandmarkAggregator().project(packet)

        assert depth[3] == SparseDepthRecord(5.0, 6.0, 7.0)

    def test_filters_statuses(self):
        packet = make_packet(
            [
                (1, FeatureStatus.REJECTED, (0, 0, 1), (0, 0)),
                (2, INSTATE, (0, 0, 1), (0, 0)),
            ]
        )

        assert set(LandmarkAggregator().project(packet)) == {2}

    def test_no_features(self):
        assert LandmarkAggregator().project(make_packet([])) == {}

    def test_project_does_not_touch_records(self):
        aggregator = LandmarkAggregator()
        aggregator.project(make_packet([(1, INSTATE, (0, 0, 1), (0, 0))]))

        assert len(aggregator) == 0


class TestPointCloud:
    """Test suite for point cloud export."""

    def test_point_cloud_arrays(self):
        aggregator = LandmarkAggregator()
        image = np.zeros((2, 2, 3), dtype=np.uint8)
        image[0, 1] = (1, 2, 3)
        aggregator.accumulate(
            make_packet(
                [(5, INSTATE, (1, 2, 3), (1, 0)), (6, INSTATE, (4, 5, 6), (0, 0))]
            ),
            image,
        )

        positions, colors = aggregator.point_cloud()

        np.testing.assert_array_equal(positions, [[1, 2, 3], [4, 5, 6]])
        np.testing.assert_array_equal(colors, [[1, 2, 3], [0, 0, 0]])
        assert colors.dtype == np.uint8

    def test_empty_point_cloud(self):
        positions, colors = LandmarkAggregator().point_cloud()

        assert positions.shape == (0, 3)
        assert colors.shape == (0, 3)

    def test_save_ply_swaps_bgr(self, tmp_path: Path):
        aggregator = LandmarkAggregator()
        image = np.zeros((1, 1, 3), dtype=np.uint8)
        image[0, 0] = (10, 20, 30)
        aggregator.accumulate(make_packet([(1, INSTATE, (0.5, 1.5, 2.5), (0, 0))]), image)

        path = tmp_path / "cloud.ply"
        aggregator.save_ply(path)

        lines = path.read_text().splitlines()
        assert lines[0] == "ply"
        assert "element vertex 1" in lines
        assert lines[lines.index("end_header") + 1] == "0.5 1.5 2.5 30 20 10"

    def test_record_normalizes_types(self):
        record = LandmarkRecord(position_world=[1, 2, 3], color=(np.uint8(5), 6, 7))

        assert record.position_world.dtype == np.float64
        assert record.color == (5, 6, 7)
