# dsolvo

Building blocks for direct sparse visual odometry, written with NumPy.

## Modules

- `dsolvo.geometry`: rotations and rigid-body transforms (`SO3`, `SE3`).
  `SO3.exp` and `SO3.log` map between axis-angle vectors and rotations,
  `unit_quaternion` gives `(x, y, z, w)` coefficients with `w >= 0`, and
  `SE3` composes with `*`, inverts, builds from a 4x4 or 3x4 matrix and
  transforms points of shape `(3,)` or `(3, N)`.
- `dsolvo.camera`: a pinhole `Camera` with pyramid scaling (`scaled`,
  `at_level`), batch projection (`forward`) and back-projection (`backward`),
  and disparity / inverse-depth conversion (`idepth_to_disp`,
  `depth_to_disp`, `disp_to_idepth`). `Camera.from_mat` builds one from five
  float64 values `fx, fy, cx, cy, baseline`. Helper functions: `project`,
  `homogenize`, `pnorm_from_pixel`, `pixel_from_pnorm`, `scale_uv`,
  `scale_fxycxy`, `dproj_dpoint` and `pyr_level_to_scale`. `VignetteModel`
  holds a radial vignette map and `correct` divides it out of an 8-bit image.
- `dsolvo.frame`: `Frame`s holding left (and optionally right) image pyramids
  with a `FrameState` (pose of the left camera plus left and right
  `AffineModel`s). `ErrorState` is a 10-value increment (rotation,
  translation, left affine, right affine) that `FrameState` adds and
  subtracts. A `Keyframe` can be fixed with `set_fixed`; from then on it
  accumulates its updates so that `get_first_estimate` returns the
  linearization point. `Dim` gives the parameter block sizes.
- `dsolvo.direct`: configuration and status for direct photometric methods
  (`DirectCfg`, `DirectOptmCfg`, `DirectCostCfg`, `DirectStatus`), the
  `DirectCost` helpers (robust weights, outlier counting, disparity shift,
  relative state extraction), `DirectMethod` log formatting, plus
  `transform_scaled`, `warp` and `fast_point5_pow`. Invalid configuration
  values raise `ValueError` from `check()`.
- `dsolvo.extra`: a constant-velocity `MotionModel` with exponential
  smoothing, a `TumFormatWriter` for trajectories, and `PlayCfg` settings.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
import numpy as np

from dsolvo.camera import Camera
from dsolvo.geometry import SE3
from dsolvo.extra import MotionModel, TumFormatWriter

camera = Camera((640, 480), np.array([500.0, 500.0, 319.5, 239.5]), 0.1, 1.0)
half = camera.at_level(1)          # camera for pyramid level 1
pts = np.array([[0.0, 1.0], [0.0, 0.5], [2.0, 4.0]])   # 3 x N points
uv = camera.forward(pts)           # 2 x N pixels
rays = camera.backward(uv)         # 3 x N rays with z = 1

model = MotionModel(0.5)
model.init(SE3.identity(), np.zeros(3), np.zeros(3))
model.correct(SE3(np.eye(3), np.array([0.0, 0.0, 1.0])), 0.1)
predicted = model.predict(0.1)

with TumFormatWriter("poses.txt") as writer:
    writer.write(0, predicted)
```

The trajectory file has one pose on each line:
`index tx ty tz qx qy qz qw`. A `TumFormatWriter` made with an empty
filename writes nothing.

## What it does not do

This package is a set of building blocks, not a working odometry system. It
does not read datasets or images from disk, build image pyramids, select
pixels, hold per-keyframe points or patches, run frame alignment or bundle
adjustment, or draw anything. There is no command-line program; everything is
used from Python.