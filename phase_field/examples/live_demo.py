"""Live desktop demo.

Opens a window running the field at 60 fps. Drag the slider to scroll,
move the mouse over the field to push nodes around, press ``m`` for
reduced motion and ``p`` to pause.
"""

from __future__ import annotations

import argparse
import logging

from ..config import PRESETS, get_preset
from ..simulation.engine import FieldEngine
from ..simulation.scheduler import FrameScheduler
from ..visualization.hosts import MatplotlibHost


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--preset", choices=sorted(PRESETS), default="network")
    parser.add_argument("--width", type=int, default=960)
    parser.add_argument("--height", type=int, default=540)
    parser.add_argument("--dpr", type=float, default=1.0)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    host = MatplotlibHost(args.width, args.height, args.dpr)
    host.run(FrameScheduler(FieldEngine(get_preset(args.preset)), host))


if __name__ == "__main__":
    main()
