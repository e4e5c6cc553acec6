import numpy as np
import pytest

from posing.fabrik import FABRIKConfig, SolveStatus
from posing.rig import humanoid_rig
from scene.drag import DragSession


def _session(**kwargs):
    rig = humanoid_rig()
    cfg = FABRIKConfig(tolerance=0.001, max_iterations=50)
    return rig, DragSession.for_limb(rig, "leftArm", config=cfg, **kwargs)


def test_drag_lifecycle_reaches_hold():
    rig, session = _session()
    assert not session.active

    chain = session.begin((0.73, 1.4, 0.0))
    assert session.active
    assert chain.joint_names() == ["LeftShoulder", "LeftArm", "LeftForeArm", "LeftHand"]
    lengths = chain.segment_lengths()
    root = chain.root.position.copy()

    hold = np.array([0.5, 1.1, 0.1])
    assert session.update(hold) is True
    assert np.linalg.norm(chain.effector.position - hold) < 0.001
    np.testing.assert_allclose(chain.segment_lengths(), lengths, atol=1e-6)
    np.testing.assert_array_equal(chain.root.position, root)
    assert session.frames == 1

    done = session.end()
    assert done is chain
    assert not session.active


def test_drag_does_not_touch_rig_bones():
    rig, session = _session()
    before = rig.world_positions()
    session.begin((0.73, 1.4, 0.0))
    session.update((0.4, 1.0, 0.2))
    session.end()
    np.testing.assert_array_equal(rig.world_positions(), before)


def test_unreachable_hold_stretches_arm():
    rig, session = _session()
    chain = session.begin((0.73, 1.4, 0.0))

    assert session.update((3.0, 3.0, 3.0)) is False
    assert session.last_result.status is SolveStatus.TARGET_UNREACHABLE
    reach = np.linalg.norm(chain.effector.position - chain.root.position)
    assert reach == pytest.approx(chain.total_length())


def test_update_and_end_require_begin():
    _, session = _session()
    with pytest.raises(RuntimeError):
        session.update((0, 0, 0))
    with pytest.raises(RuntimeError):
        session.end()


def test_begin_again_rebuilds_from_rig():
    _, session = _session()
    first = session.begin((0.73, 1.4, 0.0))
    session.update((0.4, 1.0, 0.2))
    second = session.begin((0.73, 1.4, 0.0))
    assert second is not first
    np.testing.assert_allclose(second.effector.position, [0.73, 1.4, 0.0], atol=1e-9)
    assert session.frames == 0


def test_clamped_drag_keeps_positions_valid():
    _, session = _session(clamp_limits=True)
    chain = session.begin((0.73, 1.4, 0.0))
    lengths = chain.segment_lengths()
    session.update((0.2, 0.9, 0.3))
    np.testing.assert_allclose(chain.segment_lengths(), lengths, atol=1e-6)
    np.testing.assert_allclose(np.linalg.norm(chain.orientations(), axis=1), 1.0, atol=1e-9)


def test_verbose_prints_progress(capsys):
    _, session = _session(verbose=True)
    session.begin((0.73, 1.4, 0.0))
    session.update((5.0, 5.0, 5.0))
    session.end()
    out = capsys.readouterr().out
    assert "[INFO] drag 'leftArm' begin" in out
    assert "[WARN] drag 'leftArm' frame 1: target_unreachable" in out
    assert "end after 1 frames" in out


def test_bad_construction():
    rig = humanoid_rig()
    with pytest.raises(KeyError):
        DragSession.for_limb(rig, "tail")
    with pytest.raises(KeyError):
        DragSession(rig, ["LeftArm", "Nope"], "x")
    with pytest.raises(ValueError):
        DragSession(rig, ["LeftArm"], "x")
