#!/usr/bin/env python3
"""Generate PE Verilog from pegrid."""

import sys
from pathlib import Path

# Add src to path if running from scripts/
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from amaranth.back import verilog  # noqa: E402

from pegrid.config import WIDE_CONFIG, PEConfig  # noqa: E402
from pegrid.core.pe import PE  # noqa: E402


def main():
    gen_dir = project_root / "gen"
    gen_dir.mkdir(exist_ok=True)

    pe = PE(PEConfig())

    output_path = gen_dir / "pe.v"
    with open(output_path, "w") as f:
        f.write(verilog.convert(pe, name="PE"))

    print(f"Generated {output_path}")

    # 16-bit variant
    pe_wide = PE(WIDE_CONFIG)

    output_path_wide = gen_dir / "pe_wide.v"
    with open(output_path_wide, "w") as f:
        f.write(verilog.convert(pe_wide, name="PE_wide"))

    print(f"Generated {output_path_wide}")


if __name__ == "__main__":
    main()
