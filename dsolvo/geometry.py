"""Rotations (SO3) and rigid-body transforms (SE3) in three dimensions."""

from __future__ import annotations

import math

import numpy as np

_EPS = 1e-10


def _hat(v: np.ndarray) -> np.ndarray:
    x, y, z = v
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def _as_matrix3(matrix) -> np.ndarray:
    m = np.array(matrix, dtype=float)
    if m.shape != (3, 3):
        raise ValueError(f"rotation matrix must be 3x3, got shape {m.shape}")
    return m


def _is_point_data(other) -> bool:
    return isinstance(other, (np.ndarray, list, tuple))


class SO3:
    """A rotation in three dimensions, stored as a 3x3 matrix."""

    __slots__ = ("matrix",)

    def __init__(self, matrix=None):
        m = np.eye(3) if matrix is None else _as_matrix3(matrix)
        m.flags.writeable = False
        self.matrix = m

    @classmethod
    def exp(cls, omega) -> SO3:
        """Rotation from an axis-angle vector (Rodrigues' formula)."""
        w = np.asarray(omega, dtype=float).reshape(3)
        theta = float(np.linalg.norm(w))
        k = _hat(w)
        if theta < _EPS:
            return cls(np.eye(3) + k + 0.5 * (k @ k))
        a = math.sin(theta) / theta
        b = (1.0 - math.cos(theta)) / (theta * theta)
        return cls(np.eye(3) + a * k + b * (k @ k))

    def unit_quaternion(self) -> np.ndarray:
        """Quaternion coefficients in (x, y, z, w) order, with w >= 0."""
        m = self.matrix
        diag_sum = float(m[0, 0] + m[1, 1] + m[2, 2])
        if diag_sum > 0.0:
            s = 2.0 * math.sqrt(diag_sum + 1.0)
            w = 0.25 * s
            x = (m[2, 1] - m[1, 2]) / s
            y = (m[0, 2] - m[2, 0]) / s
            z = (m[1, 0] - m[0, 1]) / s
        elif m[0, 0] > m[1, 1] and m[0, 0] > m[2, 2]:
            s = 2.0 * math.sqrt(1.0 + m[0, 0] - m[1, 1] - m[2, 2])
            w = (m[2, 1] - m[1, 2]) / s
            x = 0.25 * s
            y = (m[0, 1] + m[1, 0]) / s
            z = (m[0, 2] + m[2, 0]) / s
        elif m[1, 1] > m[2, 2]:
            s = 2.0 * math.sqrt(1.0 + m[1, 1] - m[0, 0] - m[2, 2])
            w = (m[0, 2] - m[2, 0]) / s
            x = (m[0, 1] + m[1, 0]) / s
            y = 0.25 * s
            z = (m[1, 2] + m[2, 1]) / s
        else:
            s = 2.0 * math.sqrt(1.0 + m[2, 2] - m[0, 0] - m[1, 1])
            w = (m[1, 0] - m[0, 1]) / s
            x = (m[0, 2] + m[2, 0]) / s
            y = (m[1, 2] + m[2, 1]) / s
            z = 0.25 * s
        q = np.array([x, y, z, w], dtype=float)
        q /= np.linalg.norm(q)
        return -q if q[3] < 0 else q

    def log(self) -> np.ndarray:
        """Axis-angle vector of this rotation."""
        q = self.unit_quaternion()
        v, w = q[:3], q[3]
        n = float(np.linalg.norm(v))
        if n < _EPS:
            return (2.0 / w) * (1.0 - n * n / (3.0 * w * w)) * v
        if abs(w) < _EPS:
            factor = math.pi / n
        else:
            factor = 2.0 * math.atan(n / w) / n
        return factor * v

    def inverse(self) -> SO3:
        return SO3(self.matrix.T)

    def __mul__(self, other):
        if isinstance(other, SO3):
            return SO3(self.matrix @ other.matrix)
        if _is_point_data(other):
            return self.matrix @ np.asarray(other, dtype=float)
        return NotImplemented

    def __repr__(self) -> str:
        return f"SO3(log={self.log().tolist()})"


class SE3:
    """A rigid-body transform: rotation followed by translation."""

    __slots__ = ("rotation", "translation")

    def __init__(self, rotation=None, translation=None):
        if rotation is None:
            rotation = SO3()
        elif not isinstance(rotation, SO3):
            rotation = SO3(rotation)
        self.rotation = rotation
        self.translation = (
            np.zeros(3)
            if translation is None
            else np.array(translation, dtype=float).reshape(3)
        )

    @classmethod
    def identity(cls) -> SE3:
        return cls()

    @classmethod
    def from_matrix(cls, matrix) -> SE3:
        """Build from a 4x4 homogeneous or a 3x4 [R|t] matrix."""
        m = np.asarray(matrix, dtype=float)
        if m.shape not in ((4, 4), (3, 4)):
            raise ValueError(f"pose matrix must be 4x4 or 3x4, got shape {m.shape}")
        return cls(m[:3, :3], m[:3, 3])

    def inverse(self) -> SE3:
        r_inv = self.rotation.inverse()
        return SE3(r_inv, -(r_inv.matrix @ self.translation))

    def __mul__(self, other):
        if isinstance(other, SE3):
            return SE3(
                self.rotation * other.rotation,
                self.rotation.matrix @ other.translation + self.translation,
            )
        if _is_point_data(other):
            return self.transform(other)
        return NotImplemented

    def matrix(self) -> np.ndarray:
        """4x4 homogeneous matrix."""
        m = np.eye(4)
        m[:3, :3] = self.rotation.matrix
        m[:3, 3] = self.translation
        return m

    def unit_quaternion(self) -> np.ndarray:
        return self.rotation.unit_quaternion()

    def transform(self, points) -> np.ndarray:
        """Transform a point of shape (3,) or points of shape (3, N)."""
        p = np.asarray(points, dtype=float)
        if p.shape[0] != 3:
            raise ValueError(f"points must have 3 rows, got shape {p.shape}")
        t = self.translation.reshape((3,) + (1,) * (p.ndim - 1))
        return self.rotation.matrix @ p + t

    def __repr__(self) -> str:
        return (
            f"SE3(quat={self.unit_quaternion().tolist()}, "
            f"trans={self.translation.tolist()})"
        )