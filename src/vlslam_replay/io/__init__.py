"""Readers and writers for recorded dataset files."""

from .bbox import BoundingBox, load_bounding_boxes, save_bounding_boxes
from .catalog import load_catalog
from .edge_map import decode_edge_map, encode_edge_map, load_edge_map, save_edge_map
from .packet_store import (
    FeatureObservation,
    FeatureStatus,
    Packet,
    PacketStore,
    write_packets,
)

__all__ = [
    # Packet log
    "PacketStore",
    "Packet",
    "FeatureObservation",
    "FeatureStatus",
    "write_packets",
    # Edge maps
    "decode_edge_map",
    "encode_edge_map",
    "load_edge_map",
    "save_edge_map",
    # Bounding boxes
    "BoundingBox",
    "load_bounding_boxes",
    "save_bounding_boxes",
    # Catalog
    "load_catalog",
]
