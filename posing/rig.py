# -*- coding: utf-8 -*-
# 人体骨架（关节源）：局部变换 + 正向运动学
"""
Minimal humanoid rig used as the joint source for IK chains.

Bones store LOCAL transforms (relative to the parent bone); the rig itself
carries the model transform (position + Euler XYZ rotation) of the whole
character on the wall. `world_joints` snapshots bones into world space so a
chain can be built from them at the start of a drag.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import numpy as np

from .vecmath import (
    as_quat, as_vec3, euler_xyz_to_rot, mat4_from_rt, quat_identity,
    quat_to_rot, rot_to_quat,
)


# canonical limb chains (Mixamo naming), root -> effector
LIMB_CHAINS: Dict[str, tuple] = {
    "leftArm":  ("LeftShoulder", "LeftArm", "LeftForeArm", "LeftHand"),
    "rightArm": ("RightShoulder", "RightArm", "RightForeArm", "RightHand"),
    "leftLeg":  ("LeftUpLeg", "LeftLeg", "LeftFoot"),
    "rightLeg": ("RightUpLeg", "RightLeg", "RightFoot"),
}


@dataclass
class Bone:
    """A bone with parent index and local transform."""
    name: str
    parent: int = -1  # -1 for root
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation: np.ndarray = field(default_factory=quat_identity)  # (x,y,z,w)

    def __post_init__(self):
        self.position = as_vec3(self.position, f"bone '{self.name}' position")
        self.orientation = as_quat(self.orientation, f"bone '{self.name}' orientation")


class Rig:
    """
    Bone hierarchy with forward kinematics.
    Bones must be ordered parents-before-children.
    """
    def __init__(self, bones: Optional[List[Bone]] = None,
                 position: Sequence[float] = (0.0, 0.0, 0.0),
                 rotation: Sequence[float] = (0.0, 0.0, 0.0)):
        self.bones: List[Bone] = []
        self.name_to_index: Dict[str, int] = {}
        self.position = as_vec3(position, "rig position")
        self.rotation = as_vec3(rotation, "rig rotation")  # Euler XYZ radians
        for b in bones or []:
            self.add_bone(b)

    # -------- basic props --------
    @property
    def n(self) -> int:
        return len(self.bones)

    def parents(self) -> np.ndarray:
        return np.array([b.parent for b in self.bones], dtype=np.int32)

    # -------- building / editing --------
    def add_bone(self, bone: Bone) -> int:
        idx = len(self.bones)
        if bone.parent >= idx:
            raise ValueError(f"bone '{bone.name}' parent {bone.parent} must come before it (index {idx})")
        if bone.name in self.name_to_index:
            raise ValueError(f"duplicate bone name '{bone.name}'")
        self.bones.append(bone)
        self.name_to_index[bone.name] = idx
        return idx

    def bone_index(self, name: str) -> int:
        try:
            return self.name_to_index[name]
        except KeyError:
            raise KeyError(f"unknown bone '{name}'") from None

    def bone(self, name: str) -> Bone:
        return self.bones[self.bone_index(name)]

    def bone_names(self) -> List[str]:
        return [b.name for b in self.bones]

    # -------- FK --------
    def model_matrix(self) -> np.ndarray:
        return mat4_from_rt(euler_xyz_to_rot(*self.rotation), self.position)

    def world_matrices(self) -> np.ndarray:
        """
        Local transforms -> world transforms (FK), including the model transform.
        Returns: (J,4,4).
        """
        M = self.model_matrix()
        G = np.zeros((self.n, 4, 4))
        for j, b in enumerate(self.bones):
            local = mat4_from_rt(quat_to_rot(b.orientation), b.position)
            G[j] = (M if b.parent < 0 else G[b.parent]) @ local
        return G

    def world_positions(self) -> np.ndarray:
        """(J,3) world-space bone positions."""
        return self.world_matrices()[:, :3, 3].copy()

    def world_joints(self, names: Sequence[str]) -> List[Bone]:
        """World-space snapshots of the named bones, usable as chain sources."""
        G = self.world_matrices()
        out = []
        for name in names:
            j = self.bone_index(name)
            out.append(Bone(name=name, parent=-1,
                            position=G[j, :3, 3].copy(),
                            orientation=rot_to_quat(G[j, :3, :3])))
        return out


def humanoid_rig(position: Sequence[float] = (0.0, 0.0, 0.0)) -> Rig:
    """
    A small Mixamo-named humanoid in T-pose, Y up, facing +Z, about 1.7 units tall.
    Offsets are local (relative to the parent bone).
    """
    layout = [
        # name,           parent,          local offset
        ("Hips",          None,            (0.0, 1.0, 0.0)),
        ("Spine",         "Hips",          (0.0, 0.1, 0.0)),
        ("Spine1",        "Spine",         (0.0, 0.15, 0.0)),
        ("Neck",          "Spine1",        (0.0, 0.2, 0.0)),
        ("Head",          "Neck",          (0.0, 0.1, 0.0)),
        ("LeftShoulder",  "Spine1",        (0.08, 0.15, 0.0)),
        ("LeftArm",       "LeftShoulder",  (0.12, 0.0, 0.0)),
        ("LeftForeArm",   "LeftArm",       (0.28, 0.0, 0.0)),
        ("LeftHand",      "LeftForeArm",   (0.25, 0.0, 0.0)),
        ("RightShoulder", "Spine1",        (-0.08, 0.15, 0.0)),
        ("RightArm",      "RightShoulder", (-0.12, 0.0, 0.0)),
        ("RightForeArm",  "RightArm",      (-0.28, 0.0, 0.0)),
        ("RightHand",     "RightForeArm",  (-0.25, 0.0, 0.0)),
        ("LeftUpLeg",     "Hips",          (0.1, -0.05, 0.0)),
        ("LeftLeg",       "LeftUpLeg",     (0.0, -0.45, 0.0)),
        ("LeftFoot",      "LeftLeg",       (0.0, -0.42, 0.0)),
        ("RightUpLeg",    "Hips",          (-0.1, -0.05, 0.0)),
        ("RightLeg",      "RightUpLeg",    (0.0, -0.45, 0.0)),
        ("RightFoot",     "RightLeg",      (0.0, -0.42, 0.0)),
    ]
    rig = Rig(position=position)
    for name, parent, offset in layout:
        p = -1 if parent is None else rig.bone_index(parent)
        rig.add_bone(Bone(name=name, parent=p, position=np.array(offset)))
    return rig
