# -*- coding: utf-8 -*-
"""
posing 包：攀岩姿态编辑器的 IK 数值核心。

当前提供：
- Chain / build_chain: 从骨骼世界坐标构建 IK 链（按值拷贝）。
- FABRIKSolver: 绑定到一条链，每帧调用一次 solve()。
- clamp_rotations: 求解后的关节旋转限位（不改位置）。
- Rig / pose_io: 骨架关节源与姿态 JSON 导入导出。

所有坐标默认在同一空间（世界坐标），本包不做坐标系转换。
"""

from .chain import Chain, InvalidChain, Joint, JointConstraints, build_chain  # noqa: F401
from .fabrik import FABRIKConfig, FABRIKSolver, IKResult, SolveStatus, solve_fabrik  # noqa: F401
from .limits import clamp_rotations  # noqa: F401
