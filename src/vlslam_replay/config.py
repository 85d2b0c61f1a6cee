"""Replay configuration: file naming and landmark status filtering."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from .io.packet_store import FeatureStatus


@dataclass(frozen=True)
class ReplayConfig:
    """Dataset layout and filtering options.

    Attributes:
        log_name: File name of the structured packet log under the root
        image_suffix: Suffix of color images
        edge_suffix: Suffix of edge-probability records
        bbox_suffix: Suffix of bounding-box records
        retained_statuses: Observation statuses used for aggregation and depth
    """

    log_name: str = "dataset"
    image_suffix: str = ".png"
    edge_suffix: str = ".edge"
    bbox_suffix: str = ".bbox"
    retained_statuses: tuple[FeatureStatus, ...] = (
        FeatureStatus.INSTATE,
        FeatureStatus.GOODDROP,
    )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> ReplayConfig:
        """Load configuration overrides from a YAML file.

        Example file:
            log_name: dataset
            image_suffix: .png
            retained_statuses: [INSTATE, GOODDROP]

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file contains unknown keys or invalid values
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Invalid config in {yaml_path}: expected a mapping")

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys in {yaml_path}: {sorted(unknown)}")

        if "retained_statuses" in data:
            names = data["retained_statuses"]
            if not isinstance(names, list):
                raise ValueError(f"retained_statuses must be a list in {yaml_path}")
            try:
                data["retained_statuses"] = tuple(FeatureStatus[str(n)] for n in names)
            except KeyError as e:
                raise ValueError(f"Unknown feature status {e} in {yaml_path}") from e

        for key in ("log_name", "image_suffix", "edge_suffix", "bbox_suffix"):
            if key in data and not isinstance(data[key], str):
                raise ValueError(f"{key} must be a string in {yaml_path}")

        return cls(**data)
