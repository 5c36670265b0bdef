"""Frames, keyframes and their photometric/geometric state."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from dsolvo.geometry import SE3, SO3


class Dim:
    """Dimensions of the per-frame parameter blocks."""

    POSE = 6
    AFFINE = 2
    MONO = POSE + AFFINE
    STEREO = MONO + AFFINE
    FRAME = STEREO


def _fmt_vec(values) -> str:
    return " ".join(f"{v:g}" for v in np.ravel(values))


def _check_pyramid(pyramid) -> list[np.ndarray]:
    levels = [np.asarray(img) for img in pyramid]
    if not levels:
        raise ValueError("image pyramid must have at least one level")
    prev_shape = None
    for i, img in enumerate(levels):
        if img.ndim != 2 or img.size == 0:
            raise ValueError(f"pyramid level {i} must be a non-empty 2d image")
        if prev_shape is not None and (
            img.shape[0] > prev_shape[0] or img.shape[1] > prev_shape[1]
        ):
            raise ValueError(f"pyramid level {i} is larger than the level above it")
        prev_shape = img.shape
    return levels


def _check_stereo_pair(left: list[np.ndarray], right: list[np.ndarray]) -> None:
    if len(left) != len(right):
        raise ValueError(
            f"stereo pyramids differ in levels: {len(left)} vs {len(right)}"
        )
    for i, (img_l, img_r) in enumerate(zip(left, right)):
        if img_l.shape != img_r.shape:
            raise ValueError(
                f"stereo level {i} shapes differ: {img_l.shape} vs {img_r.shape}"
            )


class AffineModel:
    """Brightness affine model, intensity' = e^a * (intensity - b)."""

    __slots__ = ("ab",)

    def __init__(self, a: float = 0.0, b: float = 0.0):
        self.ab = np.array([a, b], dtype=float)

    @property
    def a(self) -> float:
        return float(self.ab[0])

    @property
    def b(self) -> float:
        return float(self.ab[1])

    def copy(self) -> AffineModel:
        return AffineModel(self.a, self.b)

    def __repr__(self) -> str:
        return f"AffineModel(a={self.a:g}, b={self.b:g})"


class ErrorState:
    """Frame error state: rotation, translation, left and right affine."""

    __slots__ = ("x",)

    def __init__(self, delta=None):
        if delta is None:
            self.x = np.zeros(Dim.FRAME)
        else:
            x = np.array(delta, dtype=float).reshape(-1)
            if x.size != Dim.FRAME:
                raise ValueError(f"error state must have {Dim.FRAME} values, got {x.size}")
            self.x = x

    @property
    def ab_l(self) -> np.ndarray:
        return self.x[Dim.POSE:Dim.POSE + 2].copy()

    @property
    def ab_r(self) -> np.ndarray:
        return self.x[Dim.MONO:Dim.MONO + 2].copy()

    @property
    def d_t(self) -> SE3:
        return SE3(SO3.exp(self.x[:3]), self.x[3:6])

    def __iadd__(self, dx) -> ErrorState:
        self.x = self.x + np.asarray(dx, dtype=float).reshape(Dim.FRAME)
        return self

    def __repr__(self) -> str:
        return f"ErrorState([{_fmt_vec(self.x)}])"


@dataclass
class FrameState:
    """Pose of the left camera and affine models of both images."""

    T_w_cl: SE3 = field(default_factory=SE3)
    affine_l: AffineModel = field(default_factory=AffineModel)
    affine_r: AffineModel = field(default_factory=AffineModel)

    def copy(self) -> FrameState:
        return FrameState(
            SE3(self.T_w_cl.rotation, self.T_w_cl.translation.copy()),
            self.affine_l.copy(),
            self.affine_r.copy(),
        )

    def __add__(self, error: ErrorState) -> FrameState:
        if not isinstance(error, ErrorState):
            return NotImplemented
        return FrameState(
            self.T_w_cl * error.d_t,
            AffineModel(*(self.affine_l.ab + error.ab_l)),
            AffineModel(*(self.affine_r.ab + error.ab_r)),
        )

    def __sub__(self, error: ErrorState) -> FrameState:
        if not isinstance(error, ErrorState):
            return NotImplemented
        return FrameState(
            self.T_w_cl * error.d_t.inverse(),
            AffineModel(*(self.affine_l.ab - error.ab_l)),
            AffineModel(*(self.affine_r.ab - error.ab_r)),
        )

    def __str__(self) -> str:
        return (
            f"State(quat=[{_fmt_vec(self.T_w_cl.unit_quaternion())}], "
            f"trans=[{_fmt_vec(self.T_w_cl.translation)}], "
            f"aff_l=[{_fmt_vec(self.affine_l.ab)}], "
            f"aff_r=[{_fmt_vec(self.affine_r.ab)}])"
        )


class Frame:
    """A mono or stereo frame: image pyramids plus state."""

    def __init__(self, grays_l=None, tf_w_cl=None, grays_r=None,
                 affine_l=None, affine_r=None):
        self.grays_l: list[np.ndarray] = (
            [] if grays_l is None else _check_pyramid(grays_l)
        )
        self.grays_r: list[np.ndarray] = (
            [] if not grays_r else _check_pyramid(grays_r)
        )
        self.state = FrameState(
            SE3() if tf_w_cl is None else tf_w_cl,
            AffineModel() if affine_l is None else affine_l.copy(),
            AffineModel() if affine_r is None else affine_r.copy(),
        )
        if self.is_stereo:
            _check_stereo_pair(self.grays_l, self.grays_r)

    @property
    def levels(self) -> int:
        return len(self.grays_l)

    @property
    def empty(self) -> bool:
        return not self.grays_l

    @property
    def is_stereo(self) -> bool:
        return bool(self.grays_r)

    @property
    def image_size(self) -> tuple[int, int]:
        """(width, height) of the full-resolution image."""
        if self.empty:
            return (0, 0)
        rows, cols = self.grays_l[0].shape
        return (cols, rows)

    @property
    def gray_l(self) -> np.ndarray:
        if self.empty:
            raise IndexError("frame has no images")
        return self.grays_l[0]

    @property
    def twc(self) -> SE3:
        return self.state.T_w_cl

    def set_grays(self, grays_l, grays_r=None) -> None:
        left = _check_pyramid(grays_l)
        right = [] if not grays_r else _check_pyramid(grays_r)
        if right:
            _check_stereo_pair(left, right)
        self.grays_l = left
        self.grays_r = right

    def set_twc(self, tf_w_cl: SE3) -> None:
        self.state.T_w_cl = tf_w_cl

    def set_state(self, state: FrameState) -> None:
        self.state = state.copy()

    def update_state(self, dx) -> None:
        self.state = self.state + ErrorState(dx)

    def _summary(self) -> str:
        width, height = self.image_size
        return (
            f"w={width}, h={height}, levels={self.levels}, "
            f"stereo={self.is_stereo}"
        )

    def _state_summary(self) -> str:
        return (
            f"trans=[{_fmt_vec(self.state.T_w_cl.translation)}], "
            f"affine_l=[{_fmt_vec(self.state.affine_l.ab)}], "
            f"affine_r=[{_fmt_vec(self.state.affine_r.ab)}]"
        )

    def __str__(self) -> str:
        return f"Frame({self._summary()}, {self._state_summary()})"


@dataclass
class KeyframeStatus:
    """Counters describing how a keyframe was initialized."""

    pixels: int = 0
    depths: int = 0
    patches: int = 0
    info_bad: int = 0
    info_uncert: int = 0
    info_ok: int = 0
    info_max: int = 0

    def frame_status(self) -> str:
        return (
            f"pixels={self.pixels:4d}, depths={self.depths:4d}, "
            f"patches={self.patches:4d}"
        )

    def point_status(self) -> str:
        return (
            f"info_bad={self.info_bad:3d}, info_uncert={self.info_uncert:3d}, "
            f"info_ok={self.info_ok:3d}, info_max={self.info_max:3d}"
        )

    def __str__(self) -> str:
        return f"KeyframeStatus({self.frame_status()} | {self.point_status()})"


class Keyframe(Frame):
    """A frame whose first estimate can be fixed by a marginalization prior."""

    def __init__(self):
        super().__init__()
        self.status = KeyframeStatus()
        self.fixed = False
        self.x = ErrorState()

    @property
    def is_fixed(self) -> bool:
        return self.fixed

    def set_fixed(self) -> None:
        self.fixed = True

    def get_first_estimate(self) -> FrameState:
        """The linearization point: the state minus the accumulated error."""
        if not self.fixed:
            return self.state.copy()
        return self.state - self.x

    def update_state(self, dx) -> None:
        if self.fixed:
            self.x += dx
        super().update_state(dx)

    def set_frame(self, frame: Frame) -> None:
        self.reset()
        self.set_state(frame.state)
        self.grays_l = [img.copy() for img in frame.grays_l]
        if frame.is_stereo:
            self.grays_r = [img.copy() for img in frame.grays_r]

    def reset(self) -> None:
        self.status = KeyframeStatus()
        self.fixed = False
        self.x = ErrorState()

    @property
    def ok(self) -> bool:
        return self.status.pixels > 0

    def __str__(self) -> str:
        return (
            f"Keyframe({self._summary()}, fixed={self.fixed}, "
            f"{self._state_summary()})"
        )