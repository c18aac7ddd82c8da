#!/usr/bin/env python3
"""Generate PEGrid Verilog from pegrid."""

import argparse
import sys
from pathlib import Path

# Add src to path if running from scripts/
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from amaranth.back import verilog  # noqa: E402

from pegrid.config import PEConfig  # noqa: E402
from pegrid.core.grid import PEGrid  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Generate PEGrid Verilog")
    parser.add_argument("--rows", type=int, default=2, help="Grid rows (default: 2)")
    parser.add_argument("--cols", type=int, default=2, help="Grid columns (default: 2)")
    parser.add_argument("--fifo-depth", type=int, default=8, help="Queue depth (default: 8)")
    args = parser.parse_args()

    gen_dir = project_root / "gen"
    gen_dir.mkdir(exist_ok=True)

    config = PEConfig(grid_rows=args.rows, grid_cols=args.cols, fifo_depth=args.fifo_depth)
    grid = PEGrid(config)

    name = f"PEGrid_{args.rows}x{args.cols}"
    output_path = gen_dir / f"pe_grid_{args.rows}x{args.cols}.v"
    with open(output_path, "w") as f:
        f.write(verilog.convert(grid, name=name))

    print(f"Generated {output_path}")


if __name__ == "__main__":
    main()
