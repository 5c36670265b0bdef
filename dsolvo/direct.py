"""Configuration, status and cost helpers shared by the direct methods."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

import numpy as np

from dsolvo.camera import Camera, homogenize, pixel_from_pnorm, pnorm_from_pixel, project
from dsolvo.frame import Dim, Frame, FrameState
from dsolvo.geometry import SE3

_GREEN = "\x1b[92m"
_RED = "\x1b[91m"
_RESET = "\x1b[0m"

_POINT5_POW = (1.0, 0.25, 0.0625, 0.015625)


@dataclass
class DirectOptmCfg:
    """Optimization settings: start level, iterations and stop threshold."""

    init_level: int = 0
    max_iters: int = 8
    max_xs: float = 0.1

    def check(self) -> None:
        if self.init_level < -2:
            raise ValueError(f"init_level must be >= -2, got {self.init_level}")
        if self.max_iters <= 0:
            raise ValueError(f"max_iters must be > 0, got {self.max_iters}")
        if self.max_xs < 0:
            raise ValueError(f"max_xs must be >= 0, got {self.max_xs}")

    def get_init_level(self, num_levels: int) -> int:
        """Actual level to start from given the pyramid depth."""
        max_level = num_levels - 1
        if self.init_level <= 0:
            return max_level + self.init_level
        return min(self.init_level, max_level)

    def __str__(self) -> str:
        return (
            f"DirectOptmCfg(init_level={self.init_level}, "
            f"max_iters={self.max_iters}, max_xs={self.max_xs})"
        )


@dataclass
class DirectCostCfg:
    """Cost settings: brightness model, stereo use and robust weighting."""

    affine: bool = False
    stereo: bool = False
    c2: int = 2
    dof: int = 4
    max_outliers: int = 1
    grad_factor: float = 1.5
    min_depth: float = 0.2

    def check(self) -> None:
        if self.c2 <= 0:
            raise ValueError(f"c2 must be > 0, got {self.c2}")
        if self.dof <= 0:
            raise ValueError(f"dof must be > 0, got {self.dof}")
        if not 0 <= self.max_outliers < 3:
            raise ValueError(f"max_outliers must be in [0, 3), got {self.max_outliers}")
        if self.grad_factor < 1.0:
            raise ValueError(f"grad_factor must be >= 1, got {self.grad_factor}")
        if self.min_depth <= 0:
            raise ValueError(f"min_depth must be > 0, got {self.min_depth}")

    def get_frame_dim(self) -> int:
        """Number of optimized parameters per frame."""
        return Dim.POSE + Dim.AFFINE * int(self.affine) * (int(self.stereo) + 1)

    def __str__(self) -> str:
        return (
            f"DirectCostCfg(affine={self.affine}, stereo={self.stereo}, "
            f"c2={self.c2}, dof={self.dof}, max_outliers={self.max_outliers}, "
            f"grad_factor={self.grad_factor}, min_depth={self.min_depth})"
        )


@dataclass
class DirectCfg:
    """Full configuration of a direct method."""

    optm: DirectOptmCfg = field(default_factory=DirectOptmCfg)
    cost: DirectCostCfg = field(default_factory=DirectCostCfg)

    def check(self) -> None:
        self.optm.check()
        self.cost.check()

    def __str__(self) -> str:
        return f"{self.optm}, {self.cost}"


@dataclass
class DirectStatus:
    """Outcome of a direct optimization run."""

    num_kfs: int = 0
    num_points: int = 0
    num_levels: int = 0
    num_iters: int = 0
    num_costs: int = 0
    cost: float = 0.0
    converged: bool = False

    def accumulate(self, status: DirectStatus) -> None:
        """Fold in the result of one more pyramid level."""
        self.num_levels += status.num_levels
        self.num_iters += status.num_iters
        self.num_costs = status.num_costs
        self.cost = status.cost
        self.converged = status.converged

    def __str__(self) -> str:
        return (
            f"DirectStatus(num_kfs={self.num_kfs}, num_points={self.num_points}, "
            f"num_levels={self.num_levels}, num_iters={self.num_iters}, "
            f"num_costs={self.num_costs}, cost={self.cost:.2e}, "
            f"converged={self.converged})"
        )


class DirectCost:
    """Photometric cost against one pyramid level of a target frame."""

    def __init__(self, level: int = 0, camera: Camera | None = None,
                 frame1: Frame | None = None, cfg: DirectCostCfg | None = None):
        self.camera = Camera() if camera is None else camera
        self.cfg = DirectCostCfg() if cfg is None else replace(cfg)
        self.gray1l: np.ndarray | None = None
        self.gray1r: np.ndarray | None = None
        self.T10 = SE3()
        self.eas = np.zeros(3)
        self.bs = np.zeros(3)

        if frame1 is None:
            return

        if level >= frame1.levels:
            raise ValueError(f"level {level} not in frame with {frame1.levels} levels")
        self.gray1l = frame1.grays_l[level]
        if self.gray1l.size == 0:
            raise ValueError("target image is empty")
        rows, cols = self.gray1l.shape
        if (self.camera.width, self.camera.height) != (cols, rows):
            raise ValueError(
                f"camera size {self.camera.width}x{self.camera.height} does not "
                f"match image size {cols}x{rows}"
            )
        if self.cfg.stereo:
            if not self.camera.is_stereo:
                raise ValueError("cfg stereo but camera is mono")
            if not frame1.is_stereo:
                raise ValueError("cfg stereo but frame1 is mono")
            self.gray1r = frame1.grays_r[level]
            if self.gray1r.size == 0:
                raise ValueError("right target image is empty")

    def calc_weight(self, g2, r2, wi: float = 1.0) -> np.ndarray:
        """Gradient-weighted Student-t weight for each residual."""
        g2 = np.asarray(g2, dtype=float)
        r2 = np.asarray(r2, dtype=float)
        c2 = self.cfg.c2
        dof = self.cfg.dof
        wg = c2 / (c2 + g2)
        return wg * (wi * (dof + 1)) / (dof + r2 * wg)

    def get_num_outliers(self, g2, r2) -> int:
        """Count residuals larger than grad_factor times the gradient."""
        g2 = np.asarray(g2, dtype=float)
        r2 = np.asarray(r2, dtype=float)
        return int(np.count_nonzero(r2 > self.cfg.grad_factor * g2))

    def is_warp_bad(self, g2, r2) -> bool:
        return self.get_num_outliers(g2, r2) > self.cfg.max_outliers

    def apply_disp(self, uv1s, disps) -> np.ndarray:
        """Shift pixels left by the disparity of the given inverse depths."""
        out = np.array(uv1s, dtype=float)
        out[0] = out[0] - self.camera.idepth_to_disp(disps)
        return out

    @staticmethod
    def extract_state(state0: FrameState, state1: FrameState):
        """Relative transform T_1_0, exp of affine a's and affine b's.

        Affine values are ordered (frame 0 left, frame 1 left, frame 1 right).
        """
        T_1_0 = state1.T_w_cl.inverse() * state0.T_w_cl
        eas = np.exp(
            np.array([state0.affine_l.a, state1.affine_l.a, state1.affine_r.a])
        )
        bs = np.array([state0.affine_l.b, state1.affine_l.b, state1.affine_r.b])
        return T_1_0, eas, bs


class DirectMethod:
    """Base of the direct methods: holds the config and point ranges."""

    def __init__(self, cfg: DirectCfg | None = None):
        self.cfg = DirectCfg() if cfg is None else cfg
        self.cfg.check()
        self.pranges: list[range] = []

    @staticmethod
    def log_iter(level, iteration, num_cost, xs=None, x2=None) -> str:
        """One line describing an iteration; each argument but x2 is a pair."""
        line = (
            f"-- [L {level[0]}/{level[1]} I {iteration[0]}/{iteration[1]}]: "
            f"num={num_cost[0]}, cost={num_cost[1]:.2e}"
        )
        if xs is None:
            return line
        line += f", xs={xs[0]:.3f}/{xs[1]:.3f}"
        if x2 is not None:
            line += f", x2={x2:.2e}"
        return line

    @staticmethod
    def log_converge(level: int, status: DirectStatus) -> str:
        if status.converged:
            return f"{_GREEN}=== Level {level} converged {status}{_RESET}"
        return f"{_RED}=== Level {level} diverged {status}{_RESET}"


def transform_scaled(tf: SE3, pt, s: float) -> np.ndarray:
    """R * p + t * s for a point (3,) or points (3, N)."""
    p = np.asarray(pt, dtype=float)
    t = tf.translation.reshape((3,) + (1,) * (p.ndim - 1))
    return tf.rotation.matrix @ p + t * s


def warp(uv0, fc0, q0: float, tf_1_0: SE3, fc1) -> np.ndarray:
    """Warp pixel(s) with inverse depth q0 from frame 0 into frame 1."""
    nh0 = homogenize(pnorm_from_pixel(uv0, fc0))
    pt1 = transform_scaled(tf_1_0, nh0, q0)
    return pixel_from_pnorm(project(pt1), fc1)


def fast_point5_pow(n: int) -> float:
    """Look-up of 0.25 ** n for n in 0..3."""
    if not 0 <= n < len(_POINT5_POW):
        raise ValueError(f"n must be in [0, {len(_POINT5_POW)}), got {n}")
    return _POINT5_POW[n]