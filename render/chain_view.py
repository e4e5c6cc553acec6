# -*- coding: utf-8 -*-
"""Debug view of an IK chain with PyVista: joints, segments and target."""

from __future__ import annotations

from typing import Optional

import numpy as np
import pyvista as pv

from posing.chain import Chain

JOINT_COLOR = "limegreen"
EFFECTOR_COLOR = "red"
SEGMENT_COLOR = "black"
TARGET_COLOR = "magenta"


def chain_to_polydata(chain: Chain) -> pv.PolyData:
    """Joints as points, one line cell per segment."""
    pts = chain.positions()
    poly = pv.PolyData(pts)
    if len(pts) >= 2:
        n_seg = len(pts) - 1
        lines = np.column_stack([
            np.full(n_seg, 2, dtype=np.int64),
            np.arange(n_seg, dtype=np.int64),
            np.arange(1, n_seg + 1, dtype=np.int64),
        ]).ravel()
        poly.lines = lines
    poly.point_data["joint_index"] = np.arange(len(pts), dtype=np.int32)
    return poly


def build_chain_plotter(
    chain: Chain,
    *,
    joint_radius: float = 0.05,
    target_radius: float = 0.08,
    off_screen: bool = False,
    title: Optional[str] = None,
) -> pv.Plotter:
    plotter = pv.Plotter(off_screen=off_screen)
    plotter.set_background("white")

    pts = chain.positions()
    for i, p in enumerate(pts):
        color = EFFECTOR_COLOR if i == len(pts) - 1 else JOINT_COLOR
        plotter.add_mesh(pv.Sphere(radius=joint_radius, center=p, theta_resolution=8, phi_resolution=8),
                         color=color, name=f"joint_{chain.joints[i].name}")

    if len(pts) >= 2:
        plotter.add_mesh(chain_to_polydata(chain), color=SEGMENT_COLOR, line_width=3, name="segments")

    plotter.add_mesh(pv.Sphere(radius=target_radius, center=chain.target, theta_resolution=8, phi_resolution=8),
                     color=TARGET_COLOR, name="target")
    plotter.add_axes()
    plotter.show_grid(color="lightgray")
    plotter.add_text(title or f"ik_chain_{chain.name}", font_size=12)
    return plotter


def show_chain(chain: Chain, title: Optional[str] = None, screenshot: Optional[str] = None) -> None:
    """Open an interactive window, or render offscreen to `screenshot` (PNG) when given."""
    plotter = build_chain_plotter(chain, off_screen=screenshot is not None, title=title)
    if screenshot is not None:
        plotter.show(screenshot=screenshot)
        print(f"[INFO] chain view saved: {screenshot}")
    else:
        plotter.show()
