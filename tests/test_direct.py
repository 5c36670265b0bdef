import numpy as np
import pytest

from dsolvo.camera import Camera
from dsolvo.direct import (
    DirectCfg,
    DirectCost,
    DirectCostCfg,
    DirectMethod,
    DirectOptmCfg,
    DirectStatus,
    fast_point5_pow,
    transform_scaled,
    warp,
)
from dsolvo.frame import AffineModel, Dim, Frame, FrameState
from dsolvo.geometry import SE3


def test_transform_scaled():
    p0 = np.array([1.0, 1.0, 1.0])
    t0 = SE3.identity()
    np.testing.assert_array_equal(transform_scaled(t0, p0, 1), p0)
    np.testing.assert_array_equal(transform_scaled(t0, p0, 2), p0)

    t1 = SE3(None, np.ones(3))
    np.testing.assert_array_equal(transform_scaled(t1, p0, 1), [2, 2, 2])
    np.testing.assert_array_equal(transform_scaled(t1, p0, 2), [3, 3, 3])


def test_transform_scaled_batch():
    pts = np.ones((3, 4))
    t1 = SE3(None, np.ones(3))
    out = transform_scaled(t1, pts, 2)
    assert out.shape == (3, 4)
    np.testing.assert_array_equal(out, np.full((3, 4), 3.0))


@pytest.mark.parametrize(
    "init_level, expected", [(0, 3), (2, 2), (5, 3), (-1, 2)]
)
def test_get_init_level(init_level, expected):
    cfg = DirectOptmCfg(init_level=init_level)
    assert cfg.get_init_level(4) == expected


@pytest.mark.parametrize(
    "affine, stereo, expected",
    [
        (False, False, Dim.POSE),
        (False, True, Dim.POSE),
        (True, False, Dim.MONO),
        (True, True, Dim.STEREO),
    ],
)
def test_get_frame_dim(affine, stereo, expected):
    cfg = DirectCostCfg(affine=affine, stereo=stereo)
    assert cfg.get_frame_dim() == expected


@pytest.mark.parametrize(
    "cfg",
    [
        DirectOptmCfg(init_level=-3),
        DirectOptmCfg(max_iters=0),
        DirectOptmCfg(max_xs=-1.0),
    ],
)
def test_optm_cfg_check_rejects(cfg):
    with pytest.raises(ValueError):
        cfg.check()


@pytest.mark.parametrize(
    "cfg",
    [
        DirectCostCfg(c2=0),
        DirectCostCfg(dof=0),
        DirectCostCfg(max_outliers=3),
        DirectCostCfg(max_outliers=-1),
        DirectCostCfg(grad_factor=0.5),
        DirectCostCfg(min_depth=0.0),
    ],
)
def test_cost_cfg_check_rejects(cfg):
    with pytest.raises(ValueError):
        cfg.check()


def test_direct_method_checks_cfg():
    with pytest.raises(ValueError):
        DirectMethod(DirectCfg(optm=DirectOptmCfg(max_iters=0)))
    method = DirectMethod()
    assert method.cfg.optm.max_iters == 8
    assert method.pranges == []


def test_status_accumulate():
    total = DirectStatus(num_kfs=2, num_levels=1, num_iters=3, num_costs=10, cost=5.0)
    total.accumulate(
        DirectStatus(num_levels=1, num_iters=4, num_costs=20, cost=1.0, converged=True)
    )
    assert total.num_kfs == 2
    assert total.num_levels == 2
    assert total.num_iters == 7
    assert total.num_costs == 20
    assert total.cost == 1.0
    assert total.converged is True


def test_calc_weight_decreases_with_residual():
    cost = DirectCost()
    g2 = np.zeros(3)
    r2 = np.array([0.0, 1.0, 100.0])
    ws = cost.calc_weight(g2, r2)
    assert ws[0] == pytest.approx((cost.cfg.dof + 1) / cost.cfg.dof)
    assert ws[0] > ws[1] > ws[2]


def test_calc_weight_scales_with_wi():
    cost = DirectCost()
    g2 = np.array([1.0, 4.0])
    r2 = np.array([2.0, 3.0])
    np.testing.assert_allclose(
        cost.calc_weight(g2, r2, 0.5), 0.5 * cost.calc_weight(g2, r2)
    )


def test_outliers():
    cost = DirectCost()
    g2 = np.ones(4)
    r2 = np.array([0.0, 1.0, 2.0, 3.0])
    assert cost.get_num_outliers(g2, r2) == 2
    assert cost.is_warp_bad(g2, r2) is True
    assert cost.is_warp_bad(g2, np.array([0.0, 0.0, 0.0, 2.0])) is False


def test_apply_disp():
    cost = DirectCost(camera=Camera((10, 10), [2, 2, 0, 0], 0.5))
    uv = np.array([[5.0, 6.0], [1.0, 2.0]])
    out = cost.apply_disp(uv, np.array([1.0, 2.0]))
    np.testing.assert_allclose(out[0], [4.0, 4.0])
    np.testing.assert_array_equal(out[1], uv[1])
    np.testing.assert_array_equal(uv[0], [5.0, 6.0])


def test_extract_state():
    state0 = FrameState(SE3(), AffineModel(0.0, 1.0))
    state1 = FrameState(SE3(None, [1.0, 0.0, 0.0]), AffineModel(0.0, 2.0),
                        AffineModel(0.0, 3.0))
    T10, eas, bs = DirectCost.extract_state(state0, state1)
    np.testing.assert_allclose(T10.translation, [-1.0, 0.0, 0.0])
    np.testing.assert_allclose(eas, np.ones(3))
    np.testing.assert_array_equal(bs, [1.0, 2.0, 3.0])


def test_direct_cost_with_frame():
    images = [np.zeros((8, 8), np.uint8), np.zeros((4, 4), np.uint8)]
    frame = Frame(images, SE3())
    cost = DirectCost(1, Camera((4, 4), [1, 1, 1, 1]), frame, DirectCostCfg())
    assert cost.gray1l.shape == (4, 4)
    with pytest.raises(ValueError):
        DirectCost(0, Camera((4, 4), [1, 1, 1, 1]), frame, DirectCostCfg())
    with pytest.raises(ValueError):
        DirectCost(1, Camera((4, 4), [1, 1, 1, 1]), frame, DirectCostCfg(stereo=True))


def test_warp_identity():
    fc = np.ones(4)
    uvs = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    np.testing.assert_allclose(warp(uvs, fc, 1.0, SE3(), fc), uvs)
    np.testing.assert_allclose(warp(uvs[:, 0], fc, 1.0, SE3(), fc), uvs[:, 0])


def test_log_iter():
    short = DirectMethod.log_iter((1, 4), (2, 8), (100, 1500.0))
    assert short == "-- [L 1/4 I 2/8]: num=100, cost=1.50e+03"
    full = DirectMethod.log_iter((1, 4), (2, 8), (100, 1500.0), (0.5, 0.25), 2.0)
    assert full == short + ", xs=0.500/0.250, x2=2.00e+00"


def test_log_converge():
    ok = DirectMethod.log_converge(2, DirectStatus(converged=True))
    bad = DirectMethod.log_converge(2, DirectStatus())
    assert "=== Level 2 converged" in ok
    assert "=== Level 2 diverged" in bad


def test_fast_point5_pow():
    assert [fast_point5_pow(n) for n in range(4)] == [1.0, 0.25, 0.0625, 0.015625]
    with pytest.raises(ValueError):
        fast_point5_pow(4)
    with pytest.raises(ValueError):
        fast_point5_pow(-1)