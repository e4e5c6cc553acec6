# -*- coding: utf-8 -*-
"""IK chain data model.

A Chain is a transient numerical proxy for a run of skeleton bones
(shoulder -> upper arm -> forearm -> hand, hip -> thigh -> shin -> foot).
It is built from live bone world positions when a drag gesture starts,
mutated in place by the solver once per frame, and thrown away when the
gesture ends. It never owns the bones themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from .vecmath import as_quat, as_vec3, quat_identity


class InvalidChain(ValueError):
    """Raised when a chain cannot be built from the given joints."""


@dataclass
class JointConstraints:
    """Per-axis Euler XYZ rotation bounds (radians).

    Metadata only: the solver ignores it, `posing.limits.clamp_rotations`
    applies it after solving.
    """

    min_rotation: np.ndarray
    max_rotation: np.ndarray

    def __post_init__(self):
        self.min_rotation = as_vec3(self.min_rotation, "min_rotation")
        self.max_rotation = as_vec3(self.max_rotation, "max_rotation")
        if np.any(self.min_rotation > self.max_rotation):
            raise ValueError(
                f"min_rotation {self.min_rotation} exceeds max_rotation {self.max_rotation}"
            )

    @staticmethod
    def symmetric(limit: float = np.pi / 2) -> "JointConstraints":
        lim = abs(float(limit))
        return JointConstraints(np.full(3, -lim), np.full(3, lim))

    def copy(self) -> "JointConstraints":
        return JointConstraints(self.min_rotation.copy(), self.max_rotation.copy())


@dataclass
class Joint:
    """One articulation point of a chain."""

    name: str
    position: np.ndarray
    orientation: np.ndarray = field(default_factory=quat_identity)  # (x,y,z,w)
    constraints: Optional[JointConstraints] = None

    def __post_init__(self):
        # Shape guards
        self.position = as_vec3(self.position, f"joint '{self.name}' position")
        self.orientation = as_quat(self.orientation, f"joint '{self.name}' orientation")


class Chain:
    """Ordered joints (root first, effector last) sharing one target.

    Ownership: a Chain has a single writer at a time, the drag session that
    built it. The solver mutates `joints[i].position` / `.orientation` in
    place; solving the same chain from two call sites is not supported.
    The target is stored as a private copy, read it with `target` and
    change it with `set_target`.
    """

    def __init__(self, name: str, joints: List[Joint], target):
        self.name = name
        self.joints: List[Joint] = joints
        self._target = as_vec3(target, "target")

    # -------- basic props --------
    @property
    def n(self) -> int:
        return len(self.joints)

    @property
    def effector(self) -> Joint:
        return self.joints[-1]

    @property
    def root(self) -> Joint:
        return self.joints[0]

    @property
    def target(self) -> np.ndarray:
        return self._target.copy()

    def set_target(self, target) -> None:
        self._target = as_vec3(target, "target")

    # -------- read back --------
    def positions(self) -> np.ndarray:
        """(J,3) copy of the joint positions."""
        return np.array([j.position for j in self.joints], dtype=np.float64).reshape(-1, 3)

    def orientations(self) -> np.ndarray:
        """(J,4) copy of the joint orientations."""
        return np.array([j.orientation for j in self.joints], dtype=np.float64).reshape(-1, 4)

    def joint_names(self) -> List[str]:
        return [j.name for j in self.joints]

    def segment_lengths(self) -> np.ndarray:
        """(J-1,) distances between consecutive joints, measured now."""
        p = self.positions()
        if len(p) < 2:
            return np.zeros(0)
        return np.linalg.norm(p[1:] - p[:-1], axis=1)

    def total_length(self) -> float:
        return float(np.sum(self.segment_lengths()))

    def is_reachable(self) -> bool:
        if self.n == 0:
            return False
        return float(np.linalg.norm(self._target - self.root.position)) <= self.total_length()

    def __repr__(self) -> str:
        return f"Chain(name={self.name!r}, joints={self.joint_names()}, target={self._target.tolist()})"


def build_chain(
    sources: Sequence,
    target,
    name: str,
    constraints: Optional[JointConstraints] = None,
) -> Chain:
    """
    Build a Chain from an ordered sequence of joint sources.

    Each source exposes `position` (3,) and `orientation` (x,y,z,w), and
    optionally `name`. Values are copied, so later edits to the chain do
    not leak into the sources and vice versa.

    Precondition: all source positions and `target` are expressed in the
    same coordinate space (world space by convention). No conversion
    happens here; mixing bone-local and world coordinates yields a pose
    that looks plausible but is wrong.

    Every joint gets `constraints` (copied) or the default +-90 degree
    symmetric limits.
    """
    sources = list(sources)
    if len(sources) < 1:
        raise InvalidChain(f"chain '{name}' needs at least 1 joint, got 0")

    base = constraints if constraints is not None else JointConstraints.symmetric(np.pi / 2)

    joints: List[Joint] = []
    for i, src in enumerate(sources):
        joint_name = getattr(src, "name", None) or f"joint_{i}"
        joints.append(Joint(
            name=joint_name,
            position=np.array(src.position, dtype=np.float64),
            orientation=np.array(src.orientation, dtype=np.float64),
            constraints=base.copy(),
        ))

    return Chain(name, joints, target)
