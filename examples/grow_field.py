"""
Grow root systems on a random field without any rendering.

Usage (from repo root):
    python examples/grow_field.py --ticks 100 --nitros 8 --seed 3 --out roots.vtu
Requires:
    root-tactics (numpy, scipy, meshio)
Produces:
    A per-tick log of biomass and branch counts, and optionally one line-mesh
    file per plant.
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path

import root_tactics as rt
from root_tactics import GrowthPolicy, World

logger = logging.getLogger("grow_field")


def main() -> None:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("--width", type=int, default=800)
    ap.add_argument("--height", type=int, default=550)
    ap.add_argument("--nitros", type=int, default=10)
    ap.add_argument("--ticks", type=int, default=100)
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--conic-ratio", type=float, default=80.0)
    ap.add_argument("--children-weight-rate", type=float, default=0.8)
    ap.add_argument("--child-weight-rate", type=float, default=0.03)
    ap.add_argument("--out", type=Path, default=None, help="Write plant meshes here")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args()

    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    rt.set_log_level(args.log_level)
    logger.setLevel(args.log_level.upper())

    policy = GrowthPolicy(
        conic_ratio=args.conic_ratio,
        children_weight_rate=args.children_weight_rate,
        child_weight_rate=args.child_weight_rate,
    )
    if args.seed is not None:
        rt.seed(args.seed)
    world = World.random(args.width, args.height, args.nitros, policy)

    for _ in range(args.ticks):
        world.tick()
        for plant in world.plants:
            logger.info(
                "tick=%d plant=%d biomass=%.2f branches=%d nitro=%.3f water=%.3f",
                world.ticks,
                plant.index,
                plant.total_biomass,
                plant.branch_count,
                plant.nitro_access,
                plant.water_access,
            )

    shares = world.decision_breakdown(0)
    logger.info(
        "root decision: %s",
        ", ".join(f"{action.value}={share:.2f}" for action, share in shares.items()),
    )

    if args.out is not None:
        for plant in world.plants:
            target = args.out.with_name(f"{args.out.stem}_{plant.index}{args.out.suffix}")
            plant.save_meshio(str(target))
            logger.info("wrote %s", target)


if __name__ == "__main__":
    main()
