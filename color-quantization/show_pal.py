import argparse
from pathlib import Path

import matplotlib.pyplot as plt

from mediancut import MAX_PALETTE
from pal import ImageData, MedianCut, Palette


def _main(files: list[Path], as_image: bool, show_2d: bool, max_colors: int):
    plt.style.use("dark_background")
    fig = plt.figure()

    nrows, ncols = len(files), 1
    if as_image:
        mc = MedianCut(max_colors)
        ncols += 1
    else:
        mc = None

    if show_2d:
        ncols += 1

    for i, path in enumerate(files):
        base_idx = i * ncols + 1

        if mc is None:
            pal = Palette.from_path(path)
        else:
            imd = ImageData.from_path(path)
            pal = mc(imd).palette

            ax = fig.add_subplot(nrows, ncols, base_idx)
            ax.imshow(imd.img)
            base_idx += 1

        if show_2d:
            ax = fig.add_subplot(nrows, ncols, base_idx)
            ax.imshow(pal.as_image())
            base_idx += 1

        ax = fig.add_subplot(nrows, ncols, base_idx, projection="3d")
        ax.set_title(f"{path.name}: {len(pal.colors)} colors")
        ax.set_xlabel("R")
        ax.set_ylabel("G")
        ax.set_zlabel("B")
        ax.set_xlim([0, 0xFF])
        ax.set_ylim([0, 0xFF])
        ax.set_zlim([0, 0xFF])
        for r, g, b, _ in pal.colors:
            ax.plot(r, g, b, "o", color=f"#{r:02x}{g:02x}{b:02x}")

    plt.show()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Display a palette")
    parser.add_argument(
        "--show-2d",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Show 2D palette image",
    )
    parser.add_argument(
        "--as-image",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Consider the input files as images (a palette will be computed)",
    )
    parser.add_argument(
        "--max-colors",
        type=int,
        choices=range(1, MAX_PALETTE + 1),
        default=16,
        metavar="N",
        help="Palette size when computing a palette from an image",
    )
    parser.add_argument(
        "files",
        nargs="+",
        type=Path,
        help="Input files: palette images or input images (if --as-image is specified)",
    )
    args = parser.parse_args()

    _main(args.files, args.as_image, args.show_2d, args.max_colors)
