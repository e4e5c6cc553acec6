# -*- coding: utf-8 -*-
"""
render 包：负责把 IK 链画出来，用于调试拖拽求解。

当前提供：
- chain_to_polydata: Chain -> PyVista PolyData（关节点 + 骨段线）。
- show_chain: 打开交互窗口，或离屏保存 PNG。
"""

from .chain_view import build_chain_plotter, chain_to_polydata, show_chain  # noqa: F401
