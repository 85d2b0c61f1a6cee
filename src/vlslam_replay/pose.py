"""SE(3) pose representation and gravity-alignment rotation."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.spatial.transform import Rotation


@dataclass
class SE3:
    """Rigid body transformation (rotation + translation) in SE(3).

    Recorded packets store the camera pose T_world_camera, which maps
    points from the camera frame to the world frame:

        p_world = R @ p_camera + t

    Its inverse T_camera_world is what projects landmarks into the camera.

    Attributes:
        rotation: 3x3 orthonormal rotation matrix (det = +1)
        translation: 3D translation vector
    """

    rotation: np.ndarray  # 3x3 rotation matrix
    translation: np.ndarray  # (3,) translation vector

    def __post_init__(self) -> None:
        """Validate and normalize inputs."""
        self.rotation = np.asarray(self.rotation, dtype=np.float64)
        self.translation = np.asarray(self.translation, dtype=np.float64).flatten()

        if self.rotation.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got {self.rotation.shape}")
        if self.translation.shape != (3,):
            raise ValueError(
                f"Translation must be (3,), got {self.translation.shape}"
            )

    @classmethod
    def from_matrix3x4(cls, values: np.ndarray) -> SE3:
        """Create SE3 from a row-major 3x4 matrix [R | t].

        This is the layout of the pose stored in each recorded packet.

        Args:
            values: 12 values (flat, row-major) or a 3x4 array

        Returns:
            SE3 transformation
        """
        values = np.asarray(values, dtype=np.float64)
        if values.size != 12:
            raise ValueError(f"Pose must have 12 values, got {values.size}")

        M = values.reshape(3, 4)
        return cls(rotation=M[:, :3], translation=M[:, 3])

    def to_matrix(self) -> np.ndarray:
        """Convert to 4x4 homogeneous transformation matrix."""
        T = np.eye(4, dtype=np.float64)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    def to_matrix3x4(self) -> np.ndarray:
        """Convert to the row-major 3x4 matrix [R | t]."""
        return self.to_matrix()[:3, :]

    def inverse(self) -> SE3:
        """Compute the inverse transformation T^{-1}.

        For T = [R, t], the inverse is [R^T, -R^T @ t].

        Returns:
            Inverse SE3 transformation
        """
        R_inv = self.rotation.T
        t_inv = -R_inv @ self.translation
        return SE3(rotation=R_inv, translation=t_inv)

    def compose(self, other: SE3) -> SE3:
        """Compose with another transformation: self @ other.

        Example:
            T_world_prev.compose(T_prev_curr) gives T_world_curr
        """
        R = self.rotation @ other.rotation
        t = self.rotation @ other.translation + self.translation
        return SE3(rotation=R, translation=t)

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Apply the transformation to Nx3 points.

        Args:
            points: Nx3 array of 3D points in the source frame

        Returns:
            Nx3 array of 3D points in the target frame
        """
        points = np.asarray(points, dtype=np.float64)
        if points.ndim == 1:
            points = points.reshape(1, 3)

        if points.shape[1] != 3:
            raise ValueError(f"Points must be Nx3, got {points.shape}")

        return (self.rotation @ points.T).T + self.translation

    def transform_point(self, point: np.ndarray) -> np.ndarray:
        """Apply the transformation to a single 3D point."""
        point = np.asarray(point, dtype=np.float64).flatten()
        if point.shape != (3,):
            raise ValueError(f"Point must be (3,), got {point.shape}")
        return self.rotation @ point + self.translation

    @property
    def position(self) -> np.ndarray:
        """Return camera position in world frame."""
        return self.translation.copy()

    def __repr__(self) -> str:
        """Return string representation."""
        pos = self.position
        return f"SE3(position=[{pos[0]:.3f}, {pos[1]:.3f}, {pos[2]:.3f}])"

    def __matmul__(self, other: SE3) -> SE3:
        """Matrix multiplication operator for composition."""
        return self.compose(other)


def gravity_rotation(log_vector: np.ndarray) -> np.ndarray:
    """Gravity-alignment rotation from the recorded 2D log-vector.

    The recording stores only the x/y components of the so(3) vector;
    the z component is fixed to zero before applying the exponential map.

    Args:
        log_vector: (wx, wy) rotation vector components in radians

    Returns:
        3x3 rotation matrix exp([wx, wy, 0])
    """
    w = np.asarray(log_vector, dtype=np.float64).flatten()
    if w.shape != (2,):
        raise ValueError(f"Gravity log-vector must be (2,), got {w.shape}")

    return Rotation.from_rotvec([w[0], w[1], 0.0]).as_matrix()
