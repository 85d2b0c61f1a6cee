#!/usr/bin/env python3
"""Demo script: grab a few frames and print their sparse depth.

Usage:
    uv run python examples/replay_demo.py
"""

import numpy as np

from vlslam_replay import FrameLoader, LandmarkAggregator


def main() -> None:
    """Run the replay demo."""
    # Configuration
    dataset_path = "data/vlslam/session0"
    max_frames = 10

    loader = FrameLoader(dataset_path)
    aggregator = LandmarkAggregator()
    print(f"Loaded {len(loader)} frames from {dataset_path}")

    for i in range(min(max_frames, len(loader))):
        result = loader.grab_with_path(i)
        if result is None:
            break
        bundle, path = result

        aggregator.accumulate(loader.packet(i), bundle.image)
        depth = loader.grab_sparse_depth(i)

        depths = np.array([d.depth for d in depth.values()]) if depth else np.empty(0)
        median = float(np.median(depths)) if depths.size else float("nan")
        print(
            f"{i:4d} {path.name:>24} landmarks={len(depths):4d} "
            f"median_depth={median:6.2f} cloud={len(aggregator)}"
        )

    positions, colors = aggregator.point_cloud()
    print(f"\nAggregated {positions.shape[0]} landmarks")


if __name__ == "__main__":
    main()
