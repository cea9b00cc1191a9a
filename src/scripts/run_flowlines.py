#!/usr/bin/env python3
"""
Flow-Line Runner

A small CLI for generating a full set of flow lines over one of the built-in
fields and saving them to .npz.
"""

import argparse
import sys
import time
from pathlib import Path

# Add src to path
SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from flowlines import FlowConfig, fields, run_model, utils


def build_field(name: str, config: FlowConfig):
    cx = config.width / 2.0
    cy = config.height / 2.0
    if name == "uniform":
        return fields.uniform_field(1.0, 0.0)
    if name == "vortex":
        return fields.vortex_field(cx, cy)
    if name == "wave":
        return fields.wave_field(wavelength=config.width / 3.0)
    if name == "disk":
        radius = 0.45 * min(config.width, config.height)
        return fields.masked_to_disk(fields.vortex_field(cx, cy), cx, cy, radius)
    raise ValueError(f"Unknown field: {name}")


def main():
    parser = argparse.ArgumentParser(
        description="Generate space-filling flow lines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--field",
        choices=["uniform", "vortex", "wave", "disk"],
        default="vortex",
        help="Built-in field to trace (default: vortex)",
    )
    parser.add_argument(
        "--params",
        type=str,
        default=None,
        help="JSON or TOML file with FlowConfig values",
    )
    parser.add_argument(
        "--density",
        action="store_true",
        help="Denser lines near the centre (radial density)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output .npz file path (auto-generated if not provided)",
    )
    parser.add_argument("--verbose", action="store_true")

    args = parser.parse_args()

    params = utils.load_params(args.params) if args.params else {}
    params["seed"] = args.seed
    params["verbose"] = args.verbose
    config = FlowConfig.from_dict(params)

    field_fn = build_field(args.field, config)
    density_fn = None
    if args.density:
        density_fn = fields.radial_density(
            config.width / 2.0, config.height / 2.0, 0.5 * min(config.width, config.height)
        )

    print(f"Generating {args.field} flow lines: {config.width}x{config.height}, seed={args.seed}")
    start_time = time.time()
    result = run_model(field_fn, config, density_fn)
    elapsed_time = time.time() - start_time
    result.ensure_meta()["field"] = args.field

    if args.out is None:
        output_dir = Path("results")
        output_dir.mkdir(exist_ok=True)
        args.out = str(output_dir / f"flow_{args.field}_S{args.seed}_{utils.now_str()}.npz")

    utils.save_flowlines(args.out, result)

    print("\nGeneration completed.")
    print(f"   Time elapsed: {elapsed_time:.2f} seconds")
    print(f"   Lines generated: {result.num_lines}")
    print(f"   Output saved to: {args.out}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
