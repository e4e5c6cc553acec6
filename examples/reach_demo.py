# -*- coding: utf-8 -*-
"""Reach demo: drag the left hand from its rest position onto a hold, frame by frame."""

from __future__ import annotations

import numpy as np

from posing.chain import Chain
from posing.fabrik import FABRIKConfig
from posing.rig import humanoid_rig
from scene.drag import DragSession

# hold on the wall, world space (wall plane z = 0.3 in front of the climber)
DEFAULT_HOLD = (0.45, 1.65, 0.3)


def run_reach(
    hold=DEFAULT_HOLD,
    frames: int = 30,
    limb: str = "leftArm",
    verbose: bool = False,
) -> tuple[Chain, list[tuple[bool, float]]]:
    """
    Move the drag target linearly from the effector's start to `hold`
    over `frames` frames, solving once per frame like the viewport does.
    Returns the final chain and per-frame (converged, error).
    """
    rig = humanoid_rig()
    session = DragSession.for_limb(
        rig, limb, config=FABRIKConfig(tolerance=0.001, max_iterations=20), verbose=verbose
    )

    start = rig.world_joints(session.bone_names)[-1].position
    hold = np.asarray(hold, dtype=np.float64)
    session.begin(start)

    history = []
    for t in np.linspace(0.0, 1.0, frames + 1)[1:]:
        ok = session.update((1.0 - t) * start + t * hold)
        history.append((ok, session.last_result.error))

    return session.end(), history


if __name__ == "__main__":
    chain, history = run_reach(verbose=True)
    ok, err = history[-1]
    print(f"Reach done. frames={len(history)}, converged={ok}, error={err:.5f}")
    for j in chain.joints:
        print(f"  {j.name}: {np.round(j.position, 4).tolist()}")
