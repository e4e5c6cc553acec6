# -*- coding: utf-8 -*-
# 向量 / 四元数 / 欧拉角的基础函数
"""
Conventions used across `posing`:
  - quaternions are (x, y, z, w)
  - Euler angles are XYZ radians, composed as R = Rz @ Ry @ Rx
  - everything is float64 so rigid segment lengths survive many solver passes
"""
from __future__ import annotations
from typing import Optional, Sequence, Tuple
import numpy as np

EPS = 1e-9

# bone rest direction: a joint's orientation maps this onto joint->next
REST_AXIS = np.array([0.0, 1.0, 0.0])


def as_vec3(v, name: str = "vector") -> np.ndarray:
    a = np.array(v, dtype=np.float64).reshape(-1)
    if a.shape != (3,):
        raise ValueError(f"{name} must have 3 components, got shape {a.shape}")
    if not np.all(np.isfinite(a)):
        raise ValueError(f"{name} must be finite, got {a}")
    return a


def as_quat(q, name: str = "quaternion") -> np.ndarray:
    a = np.array(q, dtype=np.float64).reshape(-1)
    if a.shape != (4,):
        raise ValueError(f"{name} must have 4 components (x,y,z,w), got shape {a.shape}")
    n = float(np.linalg.norm(a))
    if not np.isfinite(n) or n <= EPS:
        raise ValueError(f"{name} must be a finite non-zero quaternion, got {a}")
    return a / n


def normalize(v: np.ndarray, fallback: Optional[np.ndarray] = None) -> Tuple[np.ndarray, bool]:
    """Unit vector of `v`.

    Returns (unit, ok). When |v| is ~0 the direction is undefined; `fallback`
    (or REST_AXIS) is returned instead and ok is False.
    """
    n = float(np.linalg.norm(v))
    if n <= EPS:
        fb = REST_AXIS if fallback is None else fallback
        return np.array(fb, dtype=np.float64), False
    return v / n, True


# -----------------------
# Matrices
# -----------------------

def mat4_from_rt(R: np.ndarray, t: np.ndarray) -> np.ndarray:
    """Compose 4x4 from 3x3 rotation and 3 translation."""
    M = np.eye(4)
    M[:3, :3] = R
    M[:3, 3] = t
    return M


def quat_to_rot(q: np.ndarray) -> np.ndarray:
    """Quaternion (x,y,z,w) to 3x3 rotation."""
    x, y, z, w = q
    xx, yy, zz = x*x, y*y, z*z
    xy, xz, yz = x*y, x*z, y*z
    wx, wy, wz = w*x, w*y, w*z
    return np.array([
        [1 - 2*(yy+zz),     2*(xy - wz),     2*(xz + wy)],
        [    2*(xy + wz), 1 - 2*(xx+zz),     2*(yz - wx)],
        [    2*(xz - wy),     2*(yz + wx), 1 - 2*(xx+yy)]
    ], dtype=np.float64)


def rot_to_quat(R: np.ndarray) -> np.ndarray:
    """3x3 rotation to quaternion (x,y,z,w), w >= 0."""
    m = np.asarray(R, dtype=np.float64)
    tr = m[0, 0] + m[1, 1] + m[2, 2]
    if tr > 0.0:
        s = 2.0 * np.sqrt(tr + 1.0)
        q = np.array([(m[2, 1] - m[1, 2]) / s,
                      (m[0, 2] - m[2, 0]) / s,
                      (m[1, 0] - m[0, 1]) / s,
                      0.25 * s])
    elif m[0, 0] > m[1, 1] and m[0, 0] > m[2, 2]:
        s = 2.0 * np.sqrt(1.0 + m[0, 0] - m[1, 1] - m[2, 2])
        q = np.array([0.25 * s,
                      (m[0, 1] + m[1, 0]) / s,
                      (m[0, 2] + m[2, 0]) / s,
                      (m[2, 1] - m[1, 2]) / s])
    elif m[1, 1] > m[2, 2]:
        s = 2.0 * np.sqrt(1.0 + m[1, 1] - m[0, 0] - m[2, 2])
        q = np.array([(m[0, 1] + m[1, 0]) / s,
                      0.25 * s,
                      (m[1, 2] + m[2, 1]) / s,
                      (m[0, 2] - m[2, 0]) / s])
    else:
        s = 2.0 * np.sqrt(1.0 + m[2, 2] - m[0, 0] - m[1, 1])
        q = np.array([(m[0, 2] + m[2, 0]) / s,
                      (m[1, 2] + m[2, 1]) / s,
                      0.25 * s,
                      (m[1, 0] - m[0, 1]) / s])
    q /= np.linalg.norm(q)
    if q[3] < 0.0:
        q = -q
    return q


def euler_xyz_to_rot(rx, ry, rz) -> np.ndarray:
    """Euler XYZ (radians) to rotation matrix."""
    cx, sx = np.cos(rx), np.sin(rx)
    cy, sy = np.cos(ry), np.sin(ry)
    cz, sz = np.cos(rz), np.sin(rz)
    Rx = np.array([[1,0,0],[0,cx,-sx],[0,sx,cx]], dtype=np.float64)
    Ry = np.array([[cy,0,sy],[0,1,0],[-sy,0,cy]], dtype=np.float64)
    Rz = np.array([[cz,-sz,0],[sz,cz,0],[0,0,1]], dtype=np.float64)
    return Rz @ Ry @ Rx


def rot_to_euler_xyz(R: np.ndarray) -> np.ndarray:
    """Inverse of euler_xyz_to_rot. ry is kept in [-pi/2, pi/2]."""
    sy = -float(np.clip(R[2, 0], -1.0, 1.0))
    ry = np.arcsin(sy)
    if abs(sy) < 1.0 - 1e-9:
        rx = np.arctan2(R[2, 1], R[2, 2])
        rz = np.arctan2(R[1, 0], R[0, 0])
    else:
        # gimbal lock: fold everything into rx
        rz = 0.0
        rx = np.arctan2(-R[1, 2], R[1, 1])
    return np.array([rx, ry, rz], dtype=np.float64)


def euler_to_quat(euler: Sequence[float]) -> np.ndarray:
    rx, ry, rz = euler
    return rot_to_quat(euler_xyz_to_rot(rx, ry, rz))


def quat_to_euler(q: np.ndarray) -> np.ndarray:
    return rot_to_euler_xyz(quat_to_rot(q))


# -----------------------
# Quaternion algebra
# -----------------------

def quat_identity() -> np.ndarray:
    return np.array([0.0, 0.0, 0.0, 1.0])


def quat_multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Hamilton product a*b (apply b first, then a)."""
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return np.array([
        aw*bx + ax*bw + ay*bz - az*by,
        aw*by - ax*bz + ay*bw + az*bx,
        aw*bz + ax*by - ay*bx + az*bw,
        aw*bw - ax*bx - ay*by - az*bz,
    ], dtype=np.float64)


def quat_conjugate(q: np.ndarray) -> np.ndarray:
    return np.array([-q[0], -q[1], -q[2], q[3]], dtype=np.float64)


def quat_rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    return quat_to_rot(q) @ np.asarray(v, dtype=np.float64)


def quat_from_unit_vectors(v_from: np.ndarray, v_to: np.ndarray) -> np.ndarray:
    """Shortest-arc rotation taking unit vector v_from onto unit vector v_to."""
    r = float(np.dot(v_from, v_to)) + 1.0
    if r < EPS:
        # opposite vectors: rotate 180 degrees about any perpendicular axis
        if abs(v_from[0]) > abs(v_from[2]):
            q = np.array([-v_from[1], v_from[0], 0.0, 0.0])
        else:
            q = np.array([0.0, -v_from[2], v_from[1], 0.0])
    else:
        c = np.cross(v_from, v_to)
        q = np.array([c[0], c[1], c[2], r])
    return q / np.linalg.norm(q)
