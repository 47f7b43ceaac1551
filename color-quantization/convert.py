import argparse
import sys
from pathlib import Path
from typing import NoReturn

from mediancut import MAX_PALETTE
from pal import ImageData, ImageError, MedianCut, save_image


def _palette_size(value: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise argparse.ArgumentTypeError(f"invalid palette size: {value!r}")
    n = int(value)
    if not 1 <= n <= MAX_PALETTE:
        raise argparse.ArgumentTypeError(
            f"palette size must be between 1 and {MAX_PALETTE}, got {n}"
        )
    return n


def _fatal(prog: str, message: str) -> NoReturn:
    print(f"{prog}: {message}", file=sys.stderr)
    sys.exit(1)


def _main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="mediancut",
        description="Performs color quantization on the given image using a "
        "slightly modified version of the median cut algorithm.",
    )
    parser.add_argument(
        "-p",
        "--palette-size",
        type=_palette_size,
        default=4,
        metavar="N",
        help="Number of colors in the output image (default 4)",
    )
    parser.add_argument(
        "--palette",
        type=Path,
        help="Palette output",
    )
    parser.add_argument("input", type=Path, help="The image to convert")
    parser.add_argument("output", type=Path, help="The output image (PNG)")
    args = parser.parse_args(argv)

    try:
        imd = ImageData.from_path(args.input)
        try:
            result = MedianCut(args.palette_size)(imd)
        except MemoryError:
            _fatal(parser.prog, "no memory")
        print(f"saving output image to {args.output}")
        save_image(result.output, args.output)
        if args.palette:
            print(f"saving palette to {args.palette}")
            result.palette.save(args.palette)
    except ImageError as e:
        _fatal(parser.prog, str(e))


if __name__ == "__main__":
    _main()
