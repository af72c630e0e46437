# src/scripts/plot_voxels.py
import argparse
import os
import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT / "src") not in sys.path:
    sys.path.append(str(ROOT / "src"))

from voxel_automaton import AutomatonConfig, VoxelAutomaton, utils  # type: ignore[import]

# Background, ground, then one color per voxel type
PALETTES = {
    "twilight": ["#292831", "#333f58", "#4a7a96", "#ee8695", "#fbbbad"],
    "punk": ["#21181b", "#cd5f2a", "#f2ab37", "#d8ae8b", "#faf5d8"],
    "slimy": ["#0a1a2f", "#04373b", "#1a644e", "#40985e", "#d1cb95"],
    "dreams": ["#372134", "#474476", "#4888b7", "#6dbcb9", "#8cefb6"],
    "sheep": ["#480a30", "#b41360", "#ff327c", "#ff80ae", "#ffdae8"],
}


def pick_palette(name=None, rng=None):
    """
    Return a palette by name, or a random one with its non-background
    colors shuffled.
    """
    if name is not None:
        if name not in PALETTES:
            raise ValueError(f"Unknown palette: {name}")
        return list(PALETTES[name])
    rng = rng or np.random.default_rng()
    palette = list(PALETTES[list(PALETTES)[rng.integers(len(PALETTES))]])
    rest = palette[1:]
    rng.shuffle(rest)
    return [palette[0], *rest]


def format_title(meta):
    if not meta:
        return None
    counts = meta.get("counts", {})
    parts = [
        f"L={meta.get('levels', '?')}",
        f"λ={meta.get('sparsity', '?')}",
        f"flip={meta.get('flip_p', '?')}",
        f"seed={meta.get('seed', '?')}",
        f"N={sum(counts.values()) if counts else '?'}",
    ]
    return " | ".join(parts)


def render(result, palette, title=None, output=None, dpi=200, marker_size=None, elev=25, azim=45):
    """
    Draw every non-empty voxel as a square marker, one color per type.

    The seeded layer is drawn as the ground plane (see utils.voxel_instances).
    """
    positions, types = utils.voxel_instances(result.grid)
    if positions.shape[0] == 0:
        print("No voxels to render")
        return

    size = result.size
    if marker_size is None:
        marker_size = max(1.0, 4000.0 / size)

    fig = plt.figure(figsize=(7, 7))
    fig.patch.set_facecolor(palette[0])
    ax = fig.add_subplot(projection="3d")
    ax.set_facecolor(palette[0])

    print(f"Rendering {positions.shape[0]:,} voxels ({size}^3 grid)...")
    for voxel_type in (1, 2, 3):
        mask = types == voxel_type
        if not np.any(mask):
            continue
        pts = positions[mask]
        # matplotlib's z axis is vertical, so swap in the remapped height
        ax.scatter(
            pts[:, 0], pts[:, 2], pts[:, 1],
            c=palette[1 + voxel_type],
            marker="s",
            s=marker_size,
            depthshade=True,
            linewidths=0,
        )

    ax.set_xlim(0, size - 1)
    ax.set_ylim(0, size - 1)
    ax.set_zlim(0, size - 1)
    ax.set_box_aspect((1, 1, 1))
    ax.view_init(elev=elev, azim=azim)
    ax.axis("off")

    if title:
        ax.set_title(title, color=palette[-1], pad=10)

    if output:
        os.makedirs(os.path.dirname(output) if os.path.dirname(output) else ".", exist_ok=True)
        plt.savefig(output, dpi=dpi, bbox_inches="tight", facecolor=palette[0])
        print(f"Saved figure to {output}")

    plt.close(fig)


def main():
    parser = argparse.ArgumentParser(
        description="Generate a voxel field and render it with matplotlib"
    )
    parser.add_argument("--params", default=None, help="JSON/TOML parameter file")
    parser.add_argument("--levels", type=int, default=None, help="grid size exponent L (K = 2^L + 1)")
    parser.add_argument("--sparsity", type=float, default=None, help="rule sparsity lambda")
    parser.add_argument("--flip-p", type=float, default=None, help="stochastic flip probability")
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument("--rule-mode", choices=["cyclic", "mirror"], default=None)
    parser.add_argument("--palette", choices=sorted(PALETTES), default=None)
    parser.add_argument("--out", default=None, help="output image path (PNG)")
    parser.add_argument("--dpi", type=int, default=200)
    args = parser.parse_args()

    params = utils.load_params(args.params) if args.params else {}
    overrides = {
        "levels": args.levels,
        "sparsity": args.sparsity,
        "flip_p": args.flip_p,
        "seed": args.seed,
        "rule_mode": args.rule_mode,
    }
    params.update({k: v for k, v in overrides.items() if v is not None})
    params.setdefault("levels", 6)
    config = AutomatonConfig.from_dict(params)

    automaton = VoxelAutomaton(config)
    automaton.run()
    result = automaton.result()

    if args.out is None:
        seed_str = config.seed if config.seed is not None else "rand"
        args.out = str(Path("results") / f"voxels_L{config.levels}_S{seed_str}_{utils.now_str()}.png")

    palette = pick_palette(args.palette, np.random.default_rng(config.seed))
    render(result, palette, title=format_title(result.meta), output=args.out, dpi=args.dpi)
    return 0


if __name__ == "__main__":
    sys.exit(main())
