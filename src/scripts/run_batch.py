#!/usr/bin/env python3
"""
Batch Voxel Automaton Runner

Runs one generation per seed in parallel and records the per-type voxel
counts of each run in a JSON manifest. Grids themselves are not stored.
"""

import argparse
import json
import sys
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Any

# Add src to path
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from voxel_automaton import AutomatonConfig, VoxelAutomaton, utils


def run_single_generation(
    levels: int, sparsity: float, flip_p: float, rule_mode: str, seed: int
) -> Dict[str, Any]:
    """
    Run a single generation and summarise it.

    This function is designed to be called in parallel by ProcessPoolExecutor.
    It must be at module level (not nested) for pickling.
    """
    config = AutomatonConfig(
        levels=levels,
        sparsity=sparsity,
        flip_p=flip_p,
        seed=seed,
        rule_mode=rule_mode,
    )
    automaton = VoxelAutomaton(config)
    automaton.run()
    result = automaton.result()

    counts = result.meta["counts"]
    return {
        "seed": seed,
        "counts": {str(t): c for t, c in counts.items()},
        "total": int(sum(counts.values())),
        "fill_fraction": float(sum(counts.values())) / result.grid.size,
        "writes": automaton.writes,
        "elapsed_seconds": automaton.elapsed,
    }


def main():
    parser = argparse.ArgumentParser(
        description="Generate a batch of voxel automaton runs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--levels",
        type=int,
        default=6,
        help="Grid size exponent L (default: 6)",
    )
    parser.add_argument(
        "--sparsity",
        type=float,
        default=0.35,
        help="Rule sparsity lambda (default: 0.35)",
    )
    parser.add_argument(
        "--flip-p",
        type=float,
        default=0.0,
        help="Stochastic flip probability (default: 0.0)",
    )
    parser.add_argument(
        "--rule-mode",
        choices=["cyclic", "mirror"],
        default="cyclic",
        help="Rule table mode (default: cyclic)",
    )
    parser.add_argument(
        "--count",
        type=int,
        required=True,
        help="Number of generations to run",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Number of parallel processes (default: 1)",
    )
    parser.add_argument(
        "--name",
        type=str,
        default="batch",
        help="Batch name for output folder (default: 'batch')",
    )
    parser.add_argument(
        "--base-seed",
        type=int,
        default=42,
        help="Base seed (each run gets base_seed + index) (default: 42)",
    )

    args = parser.parse_args()

    # Fail fast on bad parameters before spawning workers
    AutomatonConfig(
        levels=args.levels,
        sparsity=args.sparsity,
        flip_p=args.flip_p,
        rule_mode=args.rule_mode,
    )

    first_seed = args.base_seed
    last_seed = args.base_seed + args.count - 1

    timestamp = utils.now_str()
    batch_dir = Path("results") / "batches" / f"{args.name}_L{args.levels}_S{first_seed}-{last_seed}_{timestamp}"
    batch_dir.mkdir(parents=True, exist_ok=True)

    manifest = {
        "levels": args.levels,
        "sparsity": args.sparsity,
        "flip_p": args.flip_p,
        "rule_mode": args.rule_mode,
        "count": args.count,
        "base_seed": args.base_seed,
        "jobs": args.jobs,
        "timestamp": timestamp,
        "batch_name": args.name,
    }

    manifest_path = batch_dir / "manifest.json"
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    print(f"Batch generation started:")
    print(f"  Grid exponent L: {args.levels}")
    print(f"  Sparsity: {args.sparsity}  flip_p: {args.flip_p}  mode: {args.rule_mode}")
    print(f"  Total runs: {args.count}")
    print(f"  Parallel jobs: {args.jobs}")
    print(f"  Output directory: {batch_dir}")
    print()

    tasks = [
        (args.levels, args.sparsity, args.flip_p, args.rule_mode, args.base_seed + i)
        for i in range(args.count)
    ]

    start_time = time.time()
    results = []
    failed = []

    with ProcessPoolExecutor(max_workers=args.jobs) as executor:
        future_to_task = {
            executor.submit(run_single_generation, *task): task
            for task in tasks
        }

        completed = 0
        for future in as_completed(future_to_task):
            completed += 1
            task = future_to_task[future]
            try:
                result = future.result()
                results.append(result)
                print(
                    f"  [{completed}/{args.count}] Completed: seed={result['seed']}, "
                    f"voxels={result['total']}"
                )
            except Exception as e:
                failed.append({"task": list(task), "error": str(e)})
                print(f"  [{completed}/{args.count}] FAILED: seed={task[-1]} - {e}")

    elapsed_time = time.time() - start_time

    results.sort(key=lambda r: r["seed"])
    manifest["results"] = {
        "total": args.count,
        "successful": len(results),
        "failed": len(failed),
        "elapsed_seconds": elapsed_time,
    }
    manifest["runs"] = results
    if failed:
        manifest["failures"] = failed

    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    print()
    print("=" * 60)
    print("Batch generation completed!")
    print(f"  Successful: {len(results)}/{args.count}")
    print(f"  Failed: {len(failed)}/{args.count}")
    print(f"  Total time: {elapsed_time:.2f} seconds")
    print(f"  Manifest: {manifest_path}")
    print("=" * 60)

    return 0 if len(failed) == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
