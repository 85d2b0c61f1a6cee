#!/usr/bin/env python3
"""Replay a recorded dataset and aggregate its landmark point cloud.

This script:
1. Opens the dataset root (packet log, .png, .edge and .bbox files)
2. Grabs every frame in ordinal order
3. Folds qualifying landmark observations into one colored point cloud
4. Optionally writes the cloud as an ASCII PLY

Usage:
    uv run python scripts/replay_dataset.py --dataset data/session
    uv run python scripts/replay_dataset.py --dataset data/session --ply out/cloud.ply
    uv run python scripts/replay_dataset.py --dataset data/session --config replay.yaml
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from vlslam_replay import FrameLoader, LandmarkAggregator, ReplayConfig, load_catalog


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Replay a recorded visual-tracking dataset",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--dataset",
        type=Path,
        required=True,
        help="Dataset root containing the 'dataset' log and frame files",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional YAML file overriding file names and retained statuses",
    )
    parser.add_argument(
        "--max-frames",
        type=int,
        default=None,
        help="Max frames to replay (default: all)",
    )
    parser.add_argument(
        "--ply",
        type=Path,
        default=None,
        help="Write the aggregated landmark cloud to this PLY file",
    )
    parser.add_argument(
        "--catalog-root",
        type=Path,
        default=None,
        help="Directory holding a mesh/category catalog",
    )
    parser.add_argument(
        "--catalog",
        type=str,
        default=None,
        help="Catalog JSON file name under --catalog-root",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every grabbed frame",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.dataset.exists():
        print(f"Error: Dataset directory not found: {args.dataset}")
        sys.exit(1)

    config = ReplayConfig.from_yaml(args.config) if args.config else ReplayConfig()
    loader = FrameLoader(args.dataset, config)
    aggregator = LandmarkAggregator(config.retained_statuses)

    if args.catalog:
        entries = load_catalog(args.catalog_root or args.dataset, args.catalog)
        print(f"Catalog {args.catalog}: {len(entries)} entries")

    n_frames = len(loader)
    if args.max_frames is not None:
        n_frames = min(n_frames, args.max_frames)

    print("=" * 60)
    print("Dataset Replay")
    print("=" * 60)
    print(f"Dataset: {args.dataset}")
    print(f"Frames: {n_frames} (images={loader.index.size}, "
          f"edges={len(loader.index.edges)}, bboxes={len(loader.index.bboxes)})")
    print()

    print(f"{'Frame':>6} {'Image':^7} {'Edge':^6} {'BBox':>5} {'Depth':>6} {'Map':>7} | Position")
    print("-" * 80)

    start_time = time.time()
    for i in range(n_frames):
        bundle = loader.grab(i)
        if bundle is None:
            break

        loader.grab_point_cloud(i, bundle.image, aggregator)
        depth = loader.grab_sparse_depth(i) or {}

        n_boxes = len(bundle.bounding_boxes) if bundle.bounding_boxes is not None else 0
        pos = bundle.pose.position
        print(
            f"{i:6d} {'ok' if bundle.has_image else 'empty':^7} "
            f"{'yes' if bundle.edge_map is not None else '-':^6} "
            f"{n_boxes:5d} {len(depth):6d} {len(aggregator):7d} | "
            f"[{pos[0]:7.2f}, {pos[1]:7.2f}, {pos[2]:7.2f}]"
        )

    elapsed = time.time() - start_time

    print()
    print("=" * 60)
    print(f"Replayed {n_frames} frames in {elapsed:.1f}s")
    print(f"  Landmarks: {len(aggregator)}")
    print(f"  Skipped observations: {aggregator.skipped_observations}")

    if args.ply is not None:
        args.ply.parent.mkdir(parents=True, exist_ok=True)
        aggregator.save_ply(args.ply)
        print(f"  Point cloud saved to: {args.ply}")
    print("=" * 60)


if __name__ == "__main__":
    main()
