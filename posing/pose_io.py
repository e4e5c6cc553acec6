# -*- coding: utf-8 -*-
"""Pose snapshots: extract from / apply to a Rig, JSON import/export.

JSON layout (one pose, i.e. one step of a climbing course)::

    {
      "joints": {"LeftArm": {"position": [x, y, z], "rotation": [rx, ry, rz]}, ...},
      "position": {"x": 0, "y": 0, "z": 0},
      "rotation": {"x": 0, "y": 0, "z": 0}
    }

Bone values are LOCAL (parent-relative); rotations are Euler XYZ radians.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict

import numpy as np

from posing.rig import Rig, humanoid_rig
from posing.vecmath import as_vec3, euler_to_quat, quat_to_euler

_AXES = ("x", "y", "z")


@dataclass
class JointPose:
    position: np.ndarray
    rotation: np.ndarray  # Euler XYZ

    def __post_init__(self):
        self.position = as_vec3(self.position, "joint pose position")
        self.rotation = as_vec3(self.rotation, "joint pose rotation")


@dataclass
class PoseData:
    joints: Dict[str, JointPose] = field(default_factory=dict)
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.position = as_vec3(self.position, "pose position")
        self.rotation = as_vec3(self.rotation, "pose rotation")


def extract_pose(rig: Rig) -> PoseData:
    """Snapshot every bone's local transform plus the model transform."""
    joints = {
        b.name: JointPose(b.position.copy(), quat_to_euler(b.orientation))
        for b in rig.bones
    }
    return PoseData(joints=joints, position=rig.position.copy(), rotation=rig.rotation.copy())


def apply_pose(rig: Rig, pose: PoseData) -> None:
    """Write a pose onto a rig.

    Bones absent from the pose keep their current transform; pose entries
    naming bones the rig does not have are ignored.
    """
    rig.position = pose.position.copy()
    rig.rotation = pose.rotation.copy()
    for bone in rig.bones:
        jp = pose.joints.get(bone.name)
        if jp is None:
            continue
        bone.position = jp.position.copy()
        bone.orientation = euler_to_quat(jp.rotation)


def default_t_pose() -> PoseData:
    """Rest pose of `humanoid_rig`: arms out, zero rotations."""
    return extract_pose(humanoid_rig())


# -----------------------
# dict / JSON
# -----------------------

def pose_to_dict(pose: PoseData) -> Dict[str, Any]:
    return {
        "joints": {
            name: {"position": jp.position.tolist(), "rotation": jp.rotation.tolist()}
            for name, jp in pose.joints.items()
        },
        "position": dict(zip(_AXES, pose.position.tolist())),
        "rotation": dict(zip(_AXES, pose.rotation.tolist())),
    }


def _xyz(d: Any, key: str) -> np.ndarray:
    if not isinstance(d, dict):
        raise ValueError(f"pose '{key}' must be an object with x/y/z, got {type(d).__name__}")
    try:
        return np.array([float(d[a]) for a in _AXES])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"pose '{key}' needs numeric x/y/z: {exc}") from exc


def pose_from_dict(data: Dict[str, Any]) -> PoseData:
    if not isinstance(data, dict) or "joints" not in data:
        raise ValueError("pose document must be an object with a 'joints' key")
    joints_raw = data["joints"]
    if not isinstance(joints_raw, dict):
        raise ValueError("pose 'joints' must be an object keyed by bone name")

    joints: Dict[str, JointPose] = {}
    for name, entry in joints_raw.items():
        try:
            joints[name] = JointPose(entry["position"], entry["rotation"])
        except (KeyError, TypeError) as exc:
            raise ValueError(f"joint '{name}' needs 'position' and 'rotation': {exc}") from exc

    return PoseData(
        joints=joints,
        position=_xyz(data.get("position", {"x": 0, "y": 0, "z": 0}), "position"),
        rotation=_xyz(data.get("rotation", {"x": 0, "y": 0, "z": 0}), "rotation"),
    )


def save_pose_json(path: str, pose: PoseData) -> None:
    """Save a pose to a .json file."""
    dir_path = os.path.dirname(path)
    if dir_path:
        os.makedirs(dir_path, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(pose_to_dict(pose), f, indent=2)


def load_pose_json(path: str) -> PoseData:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path}: not valid JSON ({exc})") from exc
    return pose_from_dict(data)
