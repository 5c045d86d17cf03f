# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""
Command line entry point.

    python -m silodem silo.json --ovito ovito.txt --physics physics.txt
"""

from __future__ import annotations

import argparse
import logging
import math
import sys

from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .config import SiloConfig
from .silo import Silo
from .writers import Writer

logger = logging.getLogger("silodem")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="silodem",
        description="Simulate granular discharge through a silo outlet.",
    )
    parser.add_argument("config", type=Path, help="JSON file with the simulation parameters")
    parser.add_argument("--ovito", type=Path, help="write an OVITO trajectory to this file")
    parser.add_argument("--physics", type=Path, help="write the kinetic energy and flow log to this file")
    parser.add_argument("--vtk", type=Path, help="write ParaView files to this directory")
    parser.add_argument("--seed", type=int, help="override the random seed of the config")
    parser.add_argument(
        "--collider",
        default="naive",
        choices=["naive", "celllist"],
        help="neighbor search (default: naive)",
    )
    parser.add_argument("--quiet", action="store_true", help="only log warnings and errors")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = SiloConfig.load(args.config)
        silo = Silo.create(config, seed=args.seed, collider=args.collider)
    except (OSError, KeyError, TypeError, ValueError) as err:
        logger.error("Could not set up the simulation from %s: %s", args.config, err)
        return 1

    total = math.ceil(config.duration / silo.dt)
    with tqdm(total=total, unit="step", disable=args.quiet) as bar:
        snapshots = silo.run(callback=lambda _: bar.update())

    outputs = [("ovito", args.ovito), ("physics", args.physics), ("vtk", args.vtk)]
    for name, path in outputs:
        if path is None:
            continue
        Writer.create(name).save(snapshots, path)
        logger.info("Saved %s output to %s", name, path)

    return 0


if __name__ == "__main__":
    sys.exit(main())
