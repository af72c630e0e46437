#!/usr/bin/env python3
"""
Single Voxel Automaton Runner

A small CLI for one generation run. Prints the voxel counts per type and,
optionally, renders the result through plot_voxels.
"""

import argparse
import sys
import time
from pathlib import Path

# Add src to path
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from voxel_automaton import AutomatonConfig, VoxelAutomaton, utils


def build_config(args) -> AutomatonConfig:
    """Merge a parameter file (if any) with command line overrides."""
    params = utils.load_params(args.params) if args.params else {}
    overrides = {
        "levels": args.levels,
        "sparsity": args.sparsity,
        "flip_p": args.flip_p,
        "seed": args.seed,
        "rule_mode": args.rule_mode,
    }
    params.update({k: v for k, v in overrides.items() if v is not None})
    return AutomatonConfig.from_dict(params)


def main():
    parser = argparse.ArgumentParser(
        description="Run a single voxel automaton generation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--params",
        type=str,
        default=None,
        help="JSON or TOML file with levels/sparsity/flip_p/seed/rule_mode",
    )
    parser.add_argument(
        "--levels",
        type=int,
        default=None,
        help="Grid size exponent L, K = 2^L + 1 (default: 7)",
    )
    parser.add_argument(
        "--sparsity",
        type=float,
        default=None,
        help="Probability that a rule entry is non-empty (default: 0.35)",
    )
    parser.add_argument(
        "--flip-p",
        type=float,
        default=None,
        help="Stochastic flip probability (default: 0.0)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility (default: fresh entropy)",
    )
    parser.add_argument(
        "--rule-mode",
        choices=["cyclic", "mirror"],
        default=None,
        help="3-count tables with cyclic flip, or 2-count tables with mirror flip",
    )
    parser.add_argument(
        "--plot",
        type=str,
        default=None,
        help="Render the grid to this PNG path",
    )

    args = parser.parse_args()

    try:
        config = build_config(args)
    except (ValueError, FileNotFoundError) as e:
        print(f"Invalid configuration: {e}")
        return 2

    start_time = time.time()
    automaton = VoxelAutomaton(config)
    automaton.run()
    result = automaton.result()
    elapsed_time = time.time() - start_time

    counts = result.meta["counts"]
    print(f"\n✅ Generation completed successfully!")
    print(f"   Time elapsed: {elapsed_time:.2f} seconds")
    print(f"   Grid: {result.size}^3, cell writes: {automaton.writes}")
    for voxel_type, count in counts.items():
        print(f"   Type {voxel_type}: {count}")

    if args.plot:
        import plot_voxels

        palette = plot_voxels.pick_palette(rng=utils.make_rng(config.seed))
        plot_voxels.render(
            result, palette, title=plot_voxels.format_title(result.meta), output=args.plot
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
