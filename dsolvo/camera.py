"""Pinhole camera model, projection helpers and a vignette model."""

from __future__ import annotations

import math

import numpy as np


def _column(values: np.ndarray, like: np.ndarray) -> np.ndarray:
    """Reshape a 1-D array so it broadcasts along the columns of ``like``."""
    return values.reshape((-1,) + (1,) * (like.ndim - 1))


def _fmt_vec(values) -> str:
    return " ".join(f"{v:g}" for v in np.ravel(values))


def scale_fxycxy(fxycxy, scale: float) -> np.ndarray:
    """Scale intrinsics (fx, fy, cx, cy), treating pixel centres at +0.5."""
    fc = np.asarray(fxycxy, dtype=float)
    if scale == 1.0:
        return fc.copy()
    out = np.empty(4)
    out[:2] = scale * fc[:2]
    out[2:] = scale * (fc[2:] + 0.5) - 0.5
    return out


def dproj_dpoint(pt) -> np.ndarray:
    """Jacobian (2x3) of the projection with respect to the 3d point."""
    x, y, z = np.asarray(pt, dtype=float)
    z_inv = 1.0 / z
    z_inv2 = z_inv * z_inv
    return np.array([[z_inv, 0.0, -x * z_inv2], [0.0, z_inv, -y * z_inv2]])


def pyr_level_to_scale(level: int) -> float:
    return 2.0 ** (-level)


def project(pt) -> np.ndarray:
    """Project 3d point(s), shape (3,) or (3, N), to the z = 1 plane."""
    p = np.asarray(pt, dtype=float)
    return p[:2] / p[2:3]


def homogenize(v) -> np.ndarray:
    """Append a row of ones to 2d point(s)."""
    a = np.asarray(v, dtype=float)
    return np.concatenate([a, np.ones((1,) + a.shape[1:])], axis=0)


def pnorm_from_pixel(uv, fc) -> np.ndarray:
    """Convert pixel(s) to normalized image coordinates."""
    u = np.asarray(uv, dtype=float)
    f = np.asarray(fc, dtype=float)
    return (u - _column(f[2:], u)) / _column(f[:2], u)


def pixel_from_pnorm(nc, fc) -> np.ndarray:
    """Convert normalized image coordinates to pixel(s)."""
    n = np.asarray(nc, dtype=float)
    f = np.asarray(fc, dtype=float)
    return n * _column(f[:2], n) + _column(f[2:], n)


def scale_uv(uv, scale: float) -> np.ndarray:
    """Scale pixel(s) assuming the centre of the top-left pixel is (0, 0)."""
    return (np.asarray(uv, dtype=float) + 0.5) * scale - 0.5


class Camera:
    """Pinhole camera, optionally stereo with a horizontal baseline."""

    def __init__(self, size=(0, 0), fxycxy=None, baseline: float = 0.0,
                 scale: float = 1.0):
        width, height = size if len(size) == 2 else (0, 0)
        self.size = (int(width), int(height))
        self.fxycxy = (
            np.zeros(4) if fxycxy is None else np.array(fxycxy, dtype=float).reshape(4)
        )
        self.baseline = float(baseline)
        self.scale = float(scale)
        if self.baseline < 0:
            raise ValueError(f"baseline must be >= 0, got {self.baseline}")
        if self.scale <= 0:
            raise ValueError(f"scale must be > 0, got {self.scale}")

    @classmethod
    def from_mat(cls, size, intrin) -> Camera:
        """Create from five values: fx, fy, cx, cy, baseline."""
        arr = np.asarray(intrin)
        if arr.size != 5:
            raise ValueError(f"intrinsics must hold 5 values, got {arr.size}")
        if arr.dtype != np.float64:
            raise ValueError(f"intrinsics must be float64, got {arr.dtype}")
        flat = arr.ravel()
        return cls(size, flat[:4], float(flat[4]))

    def scaled(self, scale: float) -> Camera:
        if scale == 1.0:
            return Camera(self.size, self.fxycxy, self.baseline, self.scale)
        return Camera(
            (math.ceil(self.size[0] * scale), math.ceil(self.size[1] * scale)),
            scale_fxycxy(self.fxycxy, scale),
            self.baseline,
            self.scale * scale,
        )

    def at_level(self, level: int) -> Camera:
        return self.scaled(pyr_level_to_scale(level))

    @property
    def fx(self) -> float:
        return float(self.fxycxy[0])

    @property
    def fy(self) -> float:
        return float(self.fxycxy[1])

    @property
    def cx(self) -> float:
        return float(self.fxycxy[2])

    @property
    def cy(self) -> float:
        return float(self.fxycxy[3])

    @property
    def fxy(self) -> np.ndarray:
        return self.fxycxy[:2].copy()

    @property
    def cxy(self) -> np.ndarray:
        return self.fxycxy[2:].copy()

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]

    @property
    def ok(self) -> bool:
        return self.size[0] * self.size[1] > 0

    @property
    def is_stereo(self) -> bool:
        return self.baseline > 0

    def forward(self, pt) -> np.ndarray:
        """Project 3d point(s) (z > 0) to pixel coordinates."""
        return pixel_from_pnorm(project(pt), self.fxycxy)

    def backward(self, uv) -> np.ndarray:
        """Back-project pixel(s) to homogeneous normalized points (z = 1)."""
        return homogenize(pnorm_from_pixel(uv, self.fxycxy))

    def idepth_to_disp(self, idepth):
        """d = f * b * q."""
        return self.fx * self.baseline * np.asarray(idepth, dtype=float)

    def depth_to_disp(self, depth: float) -> float:
        """d = f * b / z."""
        return self.fx * self.baseline / depth

    def disp_to_idepth(self, disp: float) -> float:
        """q = d / (f * b)."""
        return disp / (self.fx * self.baseline)

    def __repr__(self) -> str:
        return (
            f"Camera(w={self.width}, h={self.height}, "
            f"fxycxy=[{_fmt_vec(self.fxycxy)}], b={self.baseline:g}, "
            f"scale={self.scale:g})"
        )


class VignetteModel:
    """Radial vignette: 1 + v0 * r + v1 * r^2 + v2 * r^4 (r normalized)."""

    def __init__(self, size=(0, 0), cxy=(0.0, 0.0), vs=(0.0, 0.0, 0.0)):
        width, height = size
        self.cxy = np.array(cxy, dtype=float).reshape(2)
        self.vs = np.array(vs, dtype=float).reshape(3)
        self.max_radius = float(np.linalg.norm(self.cxy))
        self.map = np.empty((int(height), int(width)))
        if self.map.size:
            self.update_map()

    @property
    def ok(self) -> bool:
        return bool(np.any(self.vs != 0))

    @property
    def noop(self) -> bool:
        return not self.ok

    def set_params(self, vs) -> None:
        self.vs = np.array(vs, dtype=float).reshape(3)
        if self.noop:
            self.map.fill(1.0)
            return
        self.update_map()

    def update_map(self) -> None:
        rows, cols = self.map.shape
        xs = np.arange(cols, dtype=float)
        ys = np.arange(rows, dtype=float)[:, None]
        r2 = ((xs - self.cxy[0]) ** 2 + (ys - self.cxy[1]) ** 2) / self.max_radius**2
        v0, v1, v2 = self.vs
        self.map[...] = 1.0 + v0 * np.sqrt(r2) + v1 * r2 + v2 * r2 * r2

    def correct(self, gray) -> np.ndarray:
        """Return an 8-bit image with the vignette divided out."""
        img = np.asarray(gray)
        if self.noop:
            return img.copy()
        if img.dtype != np.uint8:
            raise ValueError(f"image must be uint8, got {img.dtype}")
        if img.shape != self.map.shape:
            raise ValueError(
                f"image shape {img.shape} does not match map shape {self.map.shape}"
            )
        corrected = np.rint(img / self.map)
        return np.clip(corrected, 0, 255).astype(np.uint8)

    def __repr__(self) -> str:
        rows, cols = self.map.shape
        return (
            f"VignetteModel(w={cols}, h={rows}, r={self.max_radius:g}, "
            f"cxy=[{_fmt_vec(self.cxy)}], vs=[{_fmt_vec(self.vs)}])"
        )