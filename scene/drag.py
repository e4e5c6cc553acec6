# -*- coding: utf-8 -*-
"""拖拽会话: 把 Rig、IK 链和 FABRIK 求解器串起来.

一次拖拽手势的生命周期:

- begin(target): 从 Rig 当前的世界坐标构建一条新的 Chain
- update(target): 每帧调用一次, 更新目标并求解
- end(): 手势结束, 返回最后的 Chain, 会话不再持有它

同一时刻只有一个会话写入它的 Chain (UI 里一次只拖一个末端)。
把求解结果写回骨骼(局部坐标转换)由调用方负责。
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from posing.chain import Chain, build_chain
from posing.fabrik import FABRIKConfig, FABRIKSolver, IKResult
from posing.limits import clamp_rotations
from posing.rig import LIMB_CHAINS, Rig


class DragSession:
    """单条 IK 链的拖拽驱动."""

    def __init__(
        self,
        rig: Rig,
        bone_names: Sequence[str],
        name: str,
        config: Optional[FABRIKConfig] = None,
        clamp_limits: bool = False,
        verbose: bool = False,
    ):
        if len(bone_names) < 2:
            raise ValueError(f"drag chain '{name}' needs at least 2 bones, got {len(bone_names)}")
        for b in bone_names:
            rig.bone_index(b)  # KeyError early for unknown bones

        self.rig = rig
        self.bone_names = list(bone_names)
        self.name = name
        self.config = config if config is not None else FABRIKConfig()
        self.clamp_limits = clamp_limits
        self.verbose = verbose

        self.chain: Optional[Chain] = None
        self.solver: Optional[FABRIKSolver] = None
        self.frames = 0

    @classmethod
    def for_limb(cls, rig: Rig, limb: str, **kwargs) -> "DragSession":
        if limb not in LIMB_CHAINS:
            raise KeyError(f"unknown limb '{limb}', expected one of {sorted(LIMB_CHAINS)}")
        return cls(rig, LIMB_CHAINS[limb], limb, **kwargs)

    @property
    def active(self) -> bool:
        return self.chain is not None

    @property
    def last_result(self) -> Optional[IKResult]:
        return self.solver.last_result if self.solver is not None else None

    def begin(self, target) -> Chain:
        """开始手势: 从 Rig 的实时世界坐标重新构建链 (重复调用即重新开始)."""
        sources = self.rig.world_joints(self.bone_names)
        self.chain = build_chain(sources, target, self.name)
        self.solver = FABRIKSolver.from_config(self.chain, self.config)
        self.frames = 0
        if self.verbose:
            print(f"[INFO] drag '{self.name}' begin: {len(sources)} joints, "
                  f"reach={self.chain.total_length():.4f}, target={np.round(self.chain.target, 4)}")
        return self.chain

    def update(self, target) -> bool:
        """单帧: 设置目标 -> solve -> 更新朝向 (可选限位)."""
        if self.chain is None or self.solver is None:
            raise RuntimeError(f"drag '{self.name}' is not active, call begin() first")

        self.chain.set_target(target)
        ok = self.solver.solve()
        self.solver.update_rotations()
        if self.clamp_limits:
            clamp_rotations(self.chain)
        self.frames += 1

        if self.verbose and not ok:
            res = self.solver.last_result
            print(f"[WARN] drag '{self.name}' frame {self.frames}: {res.status.value}, error={res.error:.4f}")
        return ok

    def end(self) -> Chain:
        if self.chain is None:
            raise RuntimeError(f"drag '{self.name}' is not active")
        chain = self.chain
        if self.verbose:
            print(f"[INFO] drag '{self.name}' end after {self.frames} frames")
        self.chain = None
        self.solver = None
        return chain
