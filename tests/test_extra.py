import numpy as np
import pytest

from dsolvo.extra import MotionModel, PlayCfg, TumFormatWriter
from dsolvo.geometry import SE3, SO3


def test_motion_model_init():
    model = MotionModel()
    assert model.ok is False
    assert model.alpha == 0.5
    pose = SE3(SO3.exp([0.1, 0.0, 0.0]), [1.0, 2.0, 3.0])
    model.init(pose, [1.0, 0.0, 0.0], [0.0, 0.2, 0.0])
    assert model.ok is True
    np.testing.assert_array_equal(model.vel, [1.0, 0.0, 0.0])
    np.testing.assert_array_equal(model.omg, [0.0, 0.2, 0.0])
    np.testing.assert_array_equal(model.T_last.translation, pose.translation)


def test_predict_zero_velocity_keeps_pose():
    model = MotionModel()
    pose = SE3(SO3.exp([0.0, 0.3, 0.0]), [4.0, 5.0, 6.0])
    model.init(pose)
    predicted = model.predict(2.0)
    np.testing.assert_allclose(predicted.matrix(), pose.matrix())


def test_correct_without_dt_only_updates_pose():
    model = MotionModel()
    model.init()
    pose = SE3(None, [1.0, 1.0, 1.0])
    model.correct(pose, 0.0)
    np.testing.assert_array_equal(model.vel, np.zeros(3))
    np.testing.assert_array_equal(model.omg, np.zeros(3))
    np.testing.assert_array_equal(model.T_last.translation, pose.translation)


def test_correct_full_alpha_repeats_motion():
    model = MotionModel(alpha=1.0)
    T0 = SE3(SO3.exp([0.0, 0.0, 0.1]), [0.0, 0.0, 0.0])
    T1 = SE3(SO3.exp([0.0, 0.0, 0.3]), [1.0, 0.5, 0.0])
    model.init(T0)
    model.correct(T1, 0.5)
    delta = T0.inverse() * T1
    expected = T1 * delta
    np.testing.assert_allclose(model.predict(0.5).matrix(), expected.matrix(), atol=1e-12)
    np.testing.assert_allclose(model.predict_delta(0.5).matrix(), delta.matrix(), atol=1e-12)


def test_correct_blends_velocity():
    model = MotionModel(alpha=0.25)
    model.init(SE3(), [4.0, 0.0, 0.0])
    model.correct(SE3(None, [4.0, 0.0, 0.0]), 1.0)
    np.testing.assert_allclose(model.vel, [4.0, 0.0, 0.0])


def test_scale_and_reset():
    model = MotionModel()
    model.init(SE3(), [1.0, 2.0, 3.0], [0.1, 0.2, 0.3])
    model.scale(2.0)
    np.testing.assert_allclose(model.vel, [2.0, 4.0, 6.0])
    np.testing.assert_allclose(model.omg, [0.2, 0.4, 0.6])
    model.reset_velocity()
    np.testing.assert_array_equal(model.vel, np.zeros(3))
    np.testing.assert_array_equal(model.omg, np.zeros(3))


def test_tum_writer_writes_lines(tmp_path):
    path = tmp_path / "traj.txt"
    with TumFormatWriter(str(path)) as writer:
        assert writer.is_dummy is False
        writer.write(3, SE3(None, [1.0, 2.0, 3.0]))
        writer.write(4, SE3(None, [1.5, 0.0, -2.0]))
    lines = path.read_text().splitlines()
    assert lines[0] == "3 1 2 3 0 0 0 1"
    assert lines[1].split()[:4] == ["4", "1.5", "0", "-2"]


def test_tum_writer_quaternion_roundtrip(tmp_path):
    path = tmp_path / "traj.txt"
    pose = SE3(SO3.exp([0.2, -0.1, 0.4]), [0.1, 0.2, 0.3])
    with TumFormatWriter(str(path)) as writer:
        writer.write(0, pose)
    values = [float(v) for v in path.read_text().split()]
    np.testing.assert_allclose(values[1:4], pose.translation)
    np.testing.assert_allclose(values[4:], pose.unit_quaternion())


def test_tum_writer_dummy(tmp_path):
    writer = TumFormatWriter()
    writer.write(0, SE3())
    writer.close()
    assert writer.is_dummy is True
    assert writer.filename == ""
    assert list(tmp_path.iterdir()) == []


def test_play_cfg_check():
    cfg = PlayCfg(index=0, nframes=1, skip=0, nlevels=1)
    cfg.check()
    assert str(cfg) == "PlayCfg(index=0, nframes=1, skip=0, nlevels=1, affine=False)"


@pytest.mark.parametrize(
    "cfg",
    [
        PlayCfg(),
        PlayCfg(index=-1, nframes=1, nlevels=1),
        PlayCfg(nframes=1, skip=-1, nlevels=1),
        PlayCfg(nframes=1, nlevels=0),
    ],
)
def test_play_cfg_check_rejects(cfg):
    with pytest.raises(ValueError):
        cfg.check()