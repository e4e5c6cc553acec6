# -*- coding: utf-8 -*-
"""
tools/solve_chain.py

用途：
- 从命令行给出一条链的关节坐标和目标点，跑一次 FABRIK；
- 打印求解状态、迭代次数和关节坐标；
- 可选地用 PyVista 查看结果。

命令行用法::

    python -m tools.solve_chain --joints "0,0,0;0,1,0;0,2,0" --target 0,1.5,0 \\
        --tolerance 0.001 --max-iters 50 --rotations
"""

from __future__ import annotations

import argparse
from typing import List, Optional

import numpy as np

from posing.chain import InvalidChain, build_chain
from posing.fabrik import FABRIKSolver
from posing.rig import Bone


def _parse_point(text: str) -> np.ndarray:
    parts = [p for p in text.replace(" ", "").split(",") if p]
    if len(parts) != 3:
        raise ValueError(f"expected x,y,z, got '{text}'")
    return np.array([float(p) for p in parts])


def parse_joints(text: str) -> List[Bone]:
    """'x,y,z;x,y,z;...' -> world-space joint sources."""
    return [Bone(name=f"joint_{i}", position=_parse_point(chunk))
            for i, chunk in enumerate(c for c in text.split(";") if c.strip())]


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="对一条关节链运行 FABRIK IK 并打印结果")
    parser.add_argument("--joints", required=True, help="关节世界坐标, 如 '0,0,0;0,1,0;0,2,0' (根在前)")
    parser.add_argument("--target", required=True, help="目标点 x,y,z")
    parser.add_argument("--name", default="chain", help="链名称")
    parser.add_argument("--tolerance", type=float, default=0.01)
    parser.add_argument("--max-iters", type=int, default=10)
    parser.add_argument("--rotations", action="store_true", help="同时输出关节朝向四元数 (x,y,z,w)")
    parser.add_argument("--view", action="store_true", help="用 PyVista 打开结果预览")
    args = parser.parse_args(argv)

    try:
        sources = parse_joints(args.joints)
        target = _parse_point(args.target)
        chain = build_chain(sources, target, args.name)
        solver = FABRIKSolver(chain, tolerance=args.tolerance, max_iterations=args.max_iters)
    except (InvalidChain, ValueError) as exc:
        raise SystemExit(f"[ERROR] {exc}")

    ok = solver.solve()
    res = solver.last_result
    print(f"=== {chain.name}: {res.status.value} ===")
    print(f"  ▶ iterations: {res.iterations}")
    print(f"  ▶ error     : {res.error:.6f}")

    if args.rotations:
        solver.update_rotations()
    for j in chain.joints:
        line = f"  {j.name}: {np.round(j.position, 6).tolist()}"
        if args.rotations:
            line += f"  q={np.round(j.orientation, 6).tolist()}"
        print(line)

    if args.view:
        try:
            from render.chain_view import show_chain
        except ImportError:
            print("[WARN] 未安装 pyvista，无法进行 3D 预览。可使用:")
            print("       pip install pyvista")
        else:
            show_chain(chain)

    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
