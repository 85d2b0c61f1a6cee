"""Offline replay of recorded visual-tracking sessions."""

__version__ = "0.1.0"

# Re-export main classes for convenient imports
from .config import ReplayConfig
from .errors import DatasetIOError, DecodeError, LoadError, ReplayError
from .frame_index import FrameIndex
from .frame_loader import FrameBundle, FrameLoader
from .io import (
    BoundingBox,
    FeatureObservation,
    FeatureStatus,
    Packet,
    PacketStore,
    decode_edge_map,
    load_catalog,
)
from .landmarks import LandmarkAggregator, LandmarkRecord, SparseDepthRecord
from .pose import SE3, gravity_rotation

__all__ = [
    "__version__",
    # Loader
    "FrameLoader",
    "FrameBundle",
    "FrameIndex",
    "ReplayConfig",
    # Recorded data
    "PacketStore",
    "Packet",
    "FeatureObservation",
    "FeatureStatus",
    "BoundingBox",
    "decode_edge_map",
    "load_catalog",
    # Landmarks
    "LandmarkAggregator",
    "LandmarkRecord",
    "SparseDepthRecord",
    # Pose
    "SE3",
    "gravity_rotation",
    # Errors
    "ReplayError",
    "DatasetIOError",
    "LoadError",
    "DecodeError",
]
