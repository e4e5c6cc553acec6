import numpy as np
import pytest

from posing.chain import build_chain
from posing.fabrik import FABRIKConfig, FABRIKSolver, SolveStatus, solve_fabrik
from posing.rig import Bone
from posing.vecmath import quat_rotate


def _chain(points, target, name="chain"):
    bones = [Bone(name=f"b_{i}", position=np.array(p, dtype=float)) for i, p in enumerate(points)]
    return build_chain(bones, np.array(target, dtype=float), name)


def _straight_chain(target):
    return _chain([(0, 0, 0), (0, 1, 0), (0, 2, 0)], target)


def test_converges_when_target_is_reachable():
    chain = _straight_chain((0, 1.5, 0))
    solver = FABRIKSolver(chain, tolerance=0.001, max_iterations=50)

    assert solver.solve() is True
    assert np.linalg.norm(chain.effector.position - [0, 1.5, 0]) < 0.001
    assert solver.last_result.status is SolveStatus.CONVERGED
    np.testing.assert_allclose(chain.segment_lengths(), [1.0, 1.0], atol=1e-6)
    np.testing.assert_allclose(chain.root.position, [0, 0, 0])


def test_unreachable_target_stretches_toward_it():
    chain = _straight_chain((0, 5, 0))
    solver = FABRIKSolver(chain)

    assert solver.solve() is False
    assert solver.last_result.status is SolveStatus.TARGET_UNREACHABLE
    np.testing.assert_allclose(chain.joints[1].position, [0, 1, 0], atol=1e-12)
    np.testing.assert_allclose(chain.joints[2].position, [0, 2, 0], atol=1e-12)
    np.testing.assert_allclose(chain.segment_lengths(), [1.0, 1.0], atol=1e-12)


def test_unreachable_target_off_axis():
    chain = _straight_chain((3, 4, 0))  # distance 5
    solver = FABRIKSolver(chain)

    assert solver.solve() is False
    np.testing.assert_allclose(chain.joints[1].position, [0.6, 0.8, 0], atol=1e-9)
    np.testing.assert_allclose(chain.joints[2].position, [1.2, 1.6, 0], atol=1e-9)
    np.testing.assert_allclose(chain.root.position, [0, 0, 0])


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_segment_lengths_survive_solve(seed):
    rng = np.random.default_rng(seed)
    pts = np.cumsum(rng.normal(size=(5, 3)), axis=0)
    chain = _chain(pts, (0, 0, 0))
    lengths = chain.segment_lengths()
    direction = rng.normal(size=3)
    direction /= np.linalg.norm(direction)
    chain.set_target(chain.root.position + direction * 0.7 * lengths.sum())

    FABRIKSolver(chain, tolerance=1e-4, max_iterations=30).solve()

    np.testing.assert_allclose(chain.segment_lengths(), lengths, atol=1e-6)
    np.testing.assert_allclose(chain.root.position, pts[0], atol=1e-12)


def test_root_stays_put_after_one_iteration():
    chain = _chain([(0, 0, 0), (1, 0, 0), (1, 1, 0)], (0.5, 1.2, 0.3))
    root = chain.root.position.copy()

    FABRIKSolver(chain, tolerance=1e-9, max_iterations=1).solve()

    np.testing.assert_array_equal(chain.root.position, root)


def test_budget_exhausted_reports_not_converged():
    chain = _chain([(0, 0, 0), (1, 0, 0), (2, 0, 0)], (0, 1.5, 0))
    solver = FABRIKSolver(chain, tolerance=1e-9, max_iterations=1)

    assert solver.solve() is False
    res = solver.last_result
    assert res.status is SolveStatus.NOT_CONVERGED
    assert res.iterations == 1
    assert res.error > 1e-9
    assert np.all(np.isfinite(chain.positions()))


def test_second_solve_on_converged_chain_barely_moves():
    chain = _chain([(0, 0, 0), (0.5, 1, 0), (0, 2, 0)], (0.3, 1.2, 0.2))
    solver = FABRIKSolver(chain, tolerance=0.001, max_iterations=50)
    assert solver.solve()
    before = chain.effector.position.copy()

    assert solver.solve()
    assert np.linalg.norm(chain.effector.position - before) < solver.tolerance
    assert solver.last_result.iterations == 1


def test_single_joint_chain_is_rejected_without_mutation():
    chain = _chain([(1, 2, 3)], (5, 5, 5))
    solver = FABRIKSolver(chain)

    assert solver.solve() is False
    assert solver.last_result.status is SolveStatus.INVALID_CHAIN
    np.testing.assert_array_equal(chain.root.position, [1, 2, 3])


def test_lengths_are_measured_every_call():
    chain = _straight_chain((0.5, 1.0, 0.0))
    solver = FABRIKSolver(chain, tolerance=1e-4, max_iterations=50)
    solver.solve()

    # caller respaces the chain between frames
    chain.joints[1].position[:] = [0, 2, 0]
    chain.joints[2].position[:] = [0, 3, 0]
    lengths = chain.segment_lengths()
    chain.set_target((1.0, 1.5, 0.0))
    solver.solve()

    np.testing.assert_allclose(chain.segment_lengths(), lengths, atol=1e-6)


def test_coincident_joints_never_produce_nan():
    # zero-length middle segment
    chain = _chain([(0, 0, 0), (0, 1, 0), (0, 1, 0), (0, 2, 0)], (1, 1, 0))
    FABRIKSolver(chain, tolerance=1e-4, max_iterations=20).solve()
    assert np.all(np.isfinite(chain.positions()))
    np.testing.assert_allclose(chain.segment_lengths(), [1.0, 0.0, 1.0], atol=1e-6)

    # an intermediate joint sitting exactly on the target
    chain = _chain([(0, 0, 0), (1, 0, 0), (1, 1, 0)], (1, 0, 0))
    FABRIKSolver(chain, tolerance=1e-4, max_iterations=20).solve()
    assert np.all(np.isfinite(chain.positions()))
    np.testing.assert_allclose(chain.segment_lengths(), [1.0, 1.0], atol=1e-6)


def test_solve_fabrik_leaves_input_untouched():
    pts = np.array([[0, 0, 0], [1, 0, 0], [2, 0, 0]], dtype=float)
    res = solve_fabrik(pts, (1, 1, 0), max_iters=20, tolerance=1e-4)

    np.testing.assert_array_equal(pts, [[0, 0, 0], [1, 0, 0], [2, 0, 0]])
    assert res.reached
    assert res.error < 1e-4


def test_update_rotations_points_rest_axis_at_next_joint():
    chain = _chain([(0, 0, 0), (1, 0, 0), (1, 0, 2)], (0, 0, 0))
    solver = FABRIKSolver(chain)
    solver.update_rotations()

    np.testing.assert_allclose(quat_rotate(chain.joints[0].orientation, [0, 1, 0]), [1, 0, 0], atol=1e-9)
    np.testing.assert_allclose(quat_rotate(chain.joints[1].orientation, [0, 1, 0]), [0, 0, 1], atol=1e-9)
    # effector keeps what it had
    np.testing.assert_allclose(chain.effector.orientation, [0, 0, 0, 1])


def test_update_rotations_skips_coincident_joints():
    chain = _chain([(0, 0, 0), (0, 0, 0), (0, 1, 0)], (0, 1, 0))
    chain.joints[0].orientation = np.array([0.0, 0.0, 1.0, 0.0])
    FABRIKSolver(chain).update_rotations()
    np.testing.assert_allclose(chain.joints[0].orientation, [0, 0, 1, 0])


def test_config_defaults_and_validation():
    cfg = FABRIKConfig()
    assert cfg.tolerance == 0.01
    assert cfg.max_iterations == 10

    with pytest.raises(ValueError):
        FABRIKConfig(tolerance=0.0)
    with pytest.raises(ValueError):
        FABRIKConfig(max_iterations=0)

    chain = _straight_chain((0, 1, 0))
    solver = FABRIKSolver.from_config(chain, FABRIKConfig(tolerance=0.005, max_iterations=30))
    assert solver.tolerance == 0.005
    assert solver.max_iterations == 30
