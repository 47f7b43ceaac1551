from collections import Counter
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from mediancut import OPAQUE, quantize, rgba

SWATCH_COLUMNS = 16


class ImageError(Exception):
    """An image could not be decoded or encoded"""


@dataclass
class Palette:
    """Set of colors, saved as a swatch of 16 colors per row"""

    colors: list[rgba]

    def as_image(self) -> Image.Image:
        rows = max(1, -(-len(self.colors) // SWATCH_COLUMNS))
        pad = SWATCH_COLUMNS * rows - len(self.colors)
        im = Image.new(mode="RGBA", size=(SWATCH_COLUMNS, rows))
        # unused cells stay fully transparent
        im.putdata(sorted(self.colors) + [(0, 0, 0, 0)] * pad)
        return im

    def save(self, path: Path):
        save_image(self.as_image(), path)

    @classmethod
    def from_path(cls, path: Path):
        im = _open_rgba(path)
        assert im.width == SWATCH_COLUMNS

        # Ignore transparent colors
        px = [c for c in im.get_flattened_data() if c[3] == OPAQUE]
        return cls(list(dict.fromkeys(px)))


@dataclass
class Result:
    """Result of the quantization"""

    max_colors: int
    output: Image.Image
    palette: Palette
    mse: float


@dataclass
class ImageData:
    img: Image.Image
    path: Path
    stats: Counter

    @property
    def pixels(self) -> list[rgba]:
        return list(self.img.get_flattened_data())

    @classmethod
    def from_path(cls, path: Path):
        im = _open_rgba(path)
        print(f"building {path} stats")
        return cls(im, path, Counter(im.get_flattened_data()))


def _open_rgba(path: Path) -> Image.Image:
    try:
        with Image.open(path) as im:
            return im.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageError(f"cannot parse image '{path}': {e}") from e


def save_image(im: Image.Image, path: Path):
    """Write im to path, always as PNG whatever the extension"""
    try:
        im.save(path, format="PNG")
    except (OSError, ValueError) as e:
        raise ImageError(f"cannot write image '{path}': {e}") from e


@dataclass
class MedianCut:
    """
    Heckbert's Median-Cut algorithm on raw RGB byte ranges, every pixel being
    replaced by the average of its bucket
    """

    max_colors: int = 4

    def __call__(self, imd: ImageData) -> Result:
        pixels = imd.pixels
        width, height = imd.img.size

        print(
            f"start cutting initial bucket of {len(pixels)} pixels "
            f"({len(imd.stats)} different colors)"
        )
        colors = quantize(pixels, width, height, self.max_colors)
        print(f"quantized image to {len(colors)} colors")
        assert len(set(pixels)) <= self.max_colors

        output = Image.new(mode="RGBA", size=imd.img.size)
        output.putdata(pixels)

        print("calculating MSE of the final image")
        mse = self.mse(imd.img.get_flattened_data(), pixels)
        print(f"MSE={mse}")

        return Result(self.max_colors, output, Palette(colors), mse)

    @classmethod
    def _distsq(cls, p0: rgba, p1: rgba) -> int:
        """Distance squared of 2 colors, alpha ignored"""
        r0, g0, b0 = p0[:3]
        r1, g1, b1 = p1[:3]
        return (r1 - r0) ** 2 + (g1 - g0) ** 2 + (b1 - b0) ** 2

    @classmethod
    def mse(cls, icolors, ocolors) -> float:
        icolors, ocolors = list(icolors), list(ocolors)
        assert len(icolors) == len(ocolors) > 0
        return sum(cls._distsq(a, b) for a, b in zip(icolors, ocolors)) / len(icolors)
