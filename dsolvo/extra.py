"""Motion prediction, trajectory output and playback configuration."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from dsolvo.geometry import SE3, SO3


def _fmt_num(value) -> str:
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


class MotionModel:
    """Constant-velocity model with exponential smoothing of the velocity."""

    def __init__(self, alpha: float = 0.5):
        self.alpha = float(alpha)
        self.initialized = False
        self.T_last = SE3()
        self.omg = np.zeros(3)
        self.vel = np.zeros(3)

    @property
    def ok(self) -> bool:
        return self.initialized

    def init(self, T_w_c: SE3 | None = None, vel=None, omg=None) -> None:
        self.T_last = SE3() if T_w_c is None else T_w_c
        self.vel = np.zeros(3) if vel is None else np.array(vel, dtype=float).reshape(3)
        self.omg = np.zeros(3) if omg is None else np.array(omg, dtype=float).reshape(3)
        self.initialized = True

    def predict(self, dt: float) -> SE3:
        """Pose expected dt after the last corrected pose."""
        return self.T_last * self.predict_delta(dt)

    def predict_delta(self, dt: float) -> SE3:
        return SE3(SO3.exp(self.omg * dt), self.vel * dt)

    def correct(self, T_w_c: SE3, dt: float) -> None:
        """Update with a measured pose; velocity only changes when dt > 0."""
        if dt > 0:
            tf_delta = self.T_last.inverse() * T_w_c
            w = self.alpha / dt
            self.omg = (1 - self.alpha) * self.omg + w * tf_delta.rotation.log()
            self.vel = (1 - self.alpha) * self.vel + w * tf_delta.translation
        self.T_last = T_w_c

    def scale(self, s: float) -> None:
        self.omg = self.omg * s
        self.vel = self.vel * s

    def reset_velocity(self) -> None:
        self.vel = np.zeros(3)
        self.omg = np.zeros(3)


class TumFormatWriter:
    """Writes poses as lines of 'stamp tx ty tz qx qy qz qw'.

    With an empty filename nothing is written.
    """

    def __init__(self, filename: str = ""):
        self.filename = str(filename)
        self._file = open(self.filename, "w", encoding="utf-8") if self.filename else None

    @property
    def is_dummy(self) -> bool:
        return not self.filename

    def write(self, i: int, pose: SE3) -> None:
        if self._file is None or self._file.closed:
            return
        t = pose.translation
        q = pose.unit_quaternion()
        values = [int(i), t[0], t[1], t[2], q[0], q[1], q[2], q[3]]
        self._file.write(" ".join(_fmt_num(v) for v in values) + "\n")
        self._file.flush()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()

    def __enter__(self) -> TumFormatWriter:
        return self

    def __exit__(self, *args) -> None:
        self.close()


@dataclass
class PlayCfg:
    """Which frames of a dataset to play and how."""

    index: int = 0
    nframes: int = 0
    skip: int = 0
    nlevels: int = 0
    affine: bool = False

    def check(self) -> None:
        if self.index < 0:
            raise ValueError(f"index must be >= 0, got {self.index}")
        if self.nframes <= 0:
            raise ValueError(f"nframes must be > 0, got {self.nframes}")
        if self.skip < 0:
            raise ValueError(f"skip must be >= 0, got {self.skip}")
        if self.nlevels <= 0:
            raise ValueError(f"nlevels must be > 0, got {self.nlevels}")

    def __str__(self) -> str:
        return (
            f"PlayCfg(index={self.index}, nframes={self.nframes}, "
            f"skip={self.skip}, nlevels={self.nlevels}, affine={self.affine})"
        )