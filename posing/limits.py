# -*- coding: utf-8 -*-
"""Joint rotation limits, applied after solving.

Positions are never touched here: clamping positions would break the rigid
segment lengths the solver maintains. Instead each joint's local rotation
(relative to the previous joint in the chain, the root relative to world) is
clipped per Euler XYZ axis against its `JointConstraints`, and the world
orientations are recomposed root to tip.

Typical order per frame::

    solver.solve()
    solver.update_rotations()
    clamp_rotations(chain)
"""

from __future__ import annotations

from typing import List

import numpy as np

from .chain import Chain
from .vecmath import euler_to_quat, quat_conjugate, quat_identity, quat_multiply, quat_to_euler


def local_rotations(chain: Chain) -> List[np.ndarray]:
    """Per-joint rotation relative to the previous joint, (x,y,z,w)."""
    out = []
    parent = quat_identity()
    for joint in chain.joints:
        out.append(quat_multiply(quat_conjugate(parent), joint.orientation))
        parent = joint.orientation
    return out


def clamp_rotations(chain: Chain, tol: float = 1e-9) -> int:
    """Clip local rotations of all non-effector joints to their limits.

    Returns the number of joints that were clipped. The effector keeps its
    local rotation and follows its clamped parent.
    """
    locals_ = local_rotations(chain)
    clamped = 0
    for i, joint in enumerate(chain.joints[:-1]):
        c = joint.constraints
        if c is None:
            continue
        euler = quat_to_euler(locals_[i])
        clipped = np.clip(euler, c.min_rotation, c.max_rotation)
        if np.any(np.abs(clipped - euler) > tol):
            locals_[i] = euler_to_quat(clipped)
            clamped += 1

    if clamped:
        parent = quat_identity()
        for joint, q_local in zip(chain.joints, locals_):
            q = quat_multiply(parent, q_local)
            joint.orientation = q / np.linalg.norm(q)
            parent = joint.orientation
    return clamped
