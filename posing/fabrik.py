# -*- coding: utf-8 -*-
"""FABRIK (Forward And Backward Reaching IK) for a single chain.

Two entry points:

- solve_fabrik: array in, IKResult out, no side effects.
- FABRIKSolver: bound to one Chain, solves it in place once per frame.

The root joint is an immovable anchor. Segment lengths are re-measured from
the current positions at the start of every call and then treated as rigid.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .chain import Chain
from .vecmath import EPS, REST_AXIS, normalize, quat_from_unit_vectors

# fraction of the mean segment length used to bend a chain lying on the
# root->target line; FABRIK cannot leave that line on its own
BEND_NUDGE = 0.05


class SolveStatus(enum.Enum):
    CONVERGED = "converged"
    NOT_CONVERGED = "not_converged"
    TARGET_UNREACHABLE = "target_unreachable"
    INVALID_CHAIN = "invalid_chain"


@dataclass
class IKResult:
    positions: np.ndarray
    status: SolveStatus
    iterations: int
    error: float  # |effector - target| after the call

    @property
    def reached(self) -> bool:
        return self.status is SolveStatus.CONVERGED


@dataclass
class FABRIKConfig:
    tolerance: float = 0.01
    max_iterations: int = 10

    def __post_init__(self):
        if not self.tolerance > 0.0:
            raise ValueError(f"tolerance must be > 0, got {self.tolerance}")
        if int(self.max_iterations) != self.max_iterations or self.max_iterations < 1:
            raise ValueError(f"max_iterations must be a positive integer, got {self.max_iterations}")
        self.tolerance = float(self.tolerance)
        self.max_iterations = int(self.max_iterations)


# -----------------------
# Helpers
# -----------------------

def _perp(u: np.ndarray) -> np.ndarray:
    """Any unit vector perpendicular to unit u (deterministic)."""
    tmp = np.array([1.0, 0.0, 0.0]) if abs(u[0]) < 0.9 else np.array([0.0, 1.0, 0.0])
    n = np.cross(u, tmp)
    return n / np.linalg.norm(n)


def _segment_directions(pos: np.ndarray) -> List[np.ndarray]:
    """Unit direction of every segment (i -> i+1).

    A zero-length segment inherits the previous segment's direction, the
    first one falls back to REST_AXIS.
    """
    dirs = []
    prev = REST_AXIS
    for i in range(len(pos) - 1):
        d, _ = normalize(pos[i + 1] - pos[i], fallback=prev)
        dirs.append(d)
        prev = d
    return dirs


def _bend_if_on_line(pos: np.ndarray, target: np.ndarray, lengths: np.ndarray) -> None:
    """Push intermediate joints off the root->target line when all of them lie on it."""
    J = len(pos)
    if J < 3:
        return
    total = float(np.sum(lengths))
    if total <= EPS:
        return
    axis, ok = normalize(target - pos[0])
    if not ok:
        axis, ok = normalize(pos[-1] - pos[0])
        if not ok:
            return
    rel = pos[1:] - pos[0]
    off_line = rel - np.outer(rel @ axis, axis)
    if float(np.max(np.linalg.norm(off_line, axis=1))) > 1e-6 * total:
        return
    offset = _perp(axis) * (BEND_NUDGE * total / (J - 1))
    pos[1:-1] += offset


# -----------------------
# Core
# -----------------------

def solve_fabrik(
    positions: np.ndarray,
    target,
    *,
    max_iters: int = 10,
    tolerance: float = 0.01,
) -> IKResult:
    """Solve one chain given as (J,3) positions, root first.

    The input array is not modified. Degenerate directions (two coincident
    points during a pass) reuse the last valid direction of that segment, so
    NaN never reaches a joint.
    """
    pos = np.array(positions, dtype=np.float64).reshape(-1, 3)
    target = np.asarray(target, dtype=np.float64).reshape(3)
    J = len(pos)
    if J < 2:
        err = float(np.linalg.norm(pos[-1] - target)) if J else float("inf")
        return IKResult(pos, SolveStatus.INVALID_CHAIN, 0, err)

    lengths = np.linalg.norm(pos[1:] - pos[:-1], axis=1)
    total_len = float(np.sum(lengths))
    root_pos = pos[0].copy()
    dirs = _segment_directions(pos)

    # out of reach: stretch straight from the root toward the target
    if float(np.linalg.norm(target - root_pos)) > total_len:
        d, _ = normalize(target - root_pos, fallback=dirs[0])
        for i in range(1, J):
            pos[i] = pos[i - 1] + d * lengths[i - 1]
        err = float(np.linalg.norm(pos[-1] - target))
        return IKResult(pos, SolveStatus.TARGET_UNREACHABLE, 0, err)

    if float(np.linalg.norm(pos[-1] - target)) >= tolerance:
        _bend_if_on_line(pos, target, lengths)

    for it in range(max_iters):
        # forward reach: effector pinned on the target, walk toward the root
        pos[-1] = target
        for i in range(J - 2, -1, -1):
            d, ok = normalize(pos[i] - pos[i + 1], fallback=-dirs[i])
            if ok:
                dirs[i] = -d
            pos[i] = pos[i + 1] + d * lengths[i]

        # backward reach: root back on its anchor, walk toward the effector
        pos[0] = root_pos
        for i in range(1, J):
            d, ok = normalize(pos[i] - pos[i - 1], fallback=dirs[i - 1])
            if ok:
                dirs[i - 1] = d
            pos[i] = pos[i - 1] + d * lengths[i - 1]

        err = float(np.linalg.norm(pos[-1] - target))
        if err < tolerance:
            return IKResult(pos, SolveStatus.CONVERGED, it + 1, err)

    err = float(np.linalg.norm(pos[-1] - target))
    return IKResult(pos, SolveStatus.NOT_CONVERGED, max_iters, err)


class FABRIKSolver:
    """
    FABRIK bound to one Chain.

    The chain is not owned: the caller keeps it, updates its target with
    `chain.set_target` and reads `chain.joints` after each `solve()`.
    Nothing carries over between calls except the chain itself.
    """

    def __init__(self, chain: Chain, tolerance: float = 0.01, max_iterations: int = 10):
        self.config = FABRIKConfig(tolerance, max_iterations)
        self.chain = chain
        self.last_result: Optional[IKResult] = None

    @classmethod
    def from_config(cls, chain: Chain, config: FABRIKConfig) -> "FABRIKSolver":
        return cls(chain, config.tolerance, config.max_iterations)

    @property
    def tolerance(self) -> float:
        return self.config.tolerance

    @property
    def max_iterations(self) -> int:
        return self.config.max_iterations

    def solve(self) -> bool:
        """Run one solve on the chain in place.

        True only when the effector ends within tolerance of the target.
        False covers an invalid chain (< 2 joints, nothing is touched), an
        unreachable target (chain stretched toward it) and an exhausted
        iteration budget (partial pose kept); `last_result.status` says which.
        """
        chain = self.chain
        if chain.n < 2:
            self.last_result = IKResult(chain.positions(), SolveStatus.INVALID_CHAIN, 0, float("inf"))
            return False

        result = solve_fabrik(
            chain.positions(),
            chain.target,
            max_iters=self.config.max_iterations,
            tolerance=self.config.tolerance,
        )
        for joint, p in zip(chain.joints, result.positions):
            joint.position[:] = p
        self.last_result = result
        return result.reached

    def update_rotations(self) -> None:
        """Point every non-effector joint's REST_AXIS at its successor.

        Derived state only, solve() never reads it. Coincident joints keep
        their previous orientation.
        """
        joints = self.chain.joints
        for i in range(len(joints) - 1):
            d, ok = normalize(joints[i + 1].position - joints[i].position)
            if not ok:
                continue
            joints[i].orientation = quat_from_unit_vectors(REST_AXIS, d)
