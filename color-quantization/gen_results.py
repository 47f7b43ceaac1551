import argparse
import csv
import os
from itertools import repeat
from multiprocessing import Pool, cpu_count
from pathlib import Path
from typing import Any

from convert import _palette_size
from pal import ImageData, MedianCut, save_image


def _fieldnames(palette_sizes: list[int]) -> list[str]:
    """Each field is a CSV column"""
    return ["ipath"] + [f"mse_{n}" for n in palette_sizes]


def _quantize(args, path: Path):
    row: dict[str, Any] = dict(ipath=path)

    imd = ImageData.from_path(path)

    for n in args.palette_sizes:
        result = MedianCut(n)(imd)

        # Unique identifier for this analysis
        uid = f"{n}-{path.stem}"

        # Write palette in a file
        palpath = args.outdir / f"pal-{uid}.png"
        print(f"saving palette to {palpath}")
        result.palette.save(palpath)

        # Write output image in a file
        opath = args.outdir / f"out-{uid}.png"
        print(f"saving output image to {opath}")
        save_image(result.output, opath)

        row[f"mse_{n}"] = result.mse

    return row


def _quantize_mt(mt_args):
    args, path = mt_args
    return _quantize(args, Path(path))


def _main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Quantize all specified images at several palette sizes "
        "and gather the resulting MSE"
    )
    parser.add_argument(
        "--outdir",
        type=Path,
        default=Path("results"),
        help="Destination output dir",
    )
    parser.add_argument(
        "--palette-sizes",
        type=_palette_size,
        nargs="+",
        default=[2, 4, 8, 16, 32, 64, 128],
        help="Palette sizes to try",
    )
    parser.add_argument(
        "--nb-threads",
        type=int,
        default=cpu_count(),
        help="Number of parallel processes",
    )
    parser.add_argument("files", nargs="+", help="All the images to analyze")
    args = parser.parse_args(argv)

    os.makedirs(args.outdir, exist_ok=True)

    quant_args = zip(repeat(args), args.files)
    with Pool(args.nb_threads) as p:
        rows = p.map(_quantize_mt, quant_args)

    with open(args.outdir / "data.csv", "w", newline="") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=_fieldnames(args.palette_sizes))
        writer.writeheader()
        writer.writerows(sorted(rows, key=lambda r: str(r["ipath"])))


if __name__ == "__main__":
    _main()
