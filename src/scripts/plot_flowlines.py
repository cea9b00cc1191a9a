# src/scripts/plot_flowlines.py
import argparse
import sys
from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection
import numpy as np

SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from flowlines import utils


def format_title(meta, num_lines=None):
    """
    Build a title string from run metadata.
    """
    if not meta:
        return None
    field = meta.get("field", "?")
    num = num_lines if num_lines is not None else meta.get("num_lines", "?")
    seed = meta.get("seed")
    seed_str = str(seed) if seed is not None else "?"
    parts = [f"Field={field}", f"lines={num}", f"seed={seed_str}"]
    levels = meta.get("level_count")
    if levels is not None:
        parts.append(f"L={levels}")
    return " | ".join(parts)


def render(result, title=None, output=None, color="black", linewidth=0.6, dpi=300):
    """
    Draw every line of a FlowLinesResult as a polyline, y axis pointing down.
    """
    lines = [line for line in result.lines() if len(line) >= 2]
    if not lines:
        print("No lines to render")
        return

    meta = result.meta or {}
    width = meta.get("width")
    height = meta.get("height")
    if width is None or height is None:
        pts = np.vstack(lines)
        width = float(pts[:, 0].max())
        height = float(pts[:, 1].max())

    fig, ax = plt.subplots(figsize=(8, 8 * height / width))
    ax.add_collection(LineCollection(lines, colors=color, linewidths=linewidth))
    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)
    ax.set_aspect("equal")
    ax.axis("off")
    if title:
        ax.set_title(title, fontsize=9)

    if output:
        fig.savefig(output, dpi=dpi, bbox_inches="tight")
        print(f"Saved {output}")
    else:
        plt.show()
    plt.close(fig)


def main():
    parser = argparse.ArgumentParser(description="Plot saved flow lines")
    parser.add_argument("path", type=str, help=".npz written by run_flowlines.py")
    parser.add_argument("--out", type=str, default=None, help="Image path (shows a window if omitted)")
    parser.add_argument("--color", type=str, default="black")
    parser.add_argument("--linewidth", type=float, default=0.6)
    parser.add_argument("--dpi", type=int, default=300)
    args = parser.parse_args()

    result = utils.load_flowlines(args.path)
    render(
        result,
        title=format_title(result.meta, result.num_lines),
        output=args.out,
        color=args.color,
        linewidth=args.linewidth,
        dpi=args.dpi,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
