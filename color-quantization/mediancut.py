import operator
from bisect import bisect_left, bisect_right
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

rgba = tuple[int, int, int, int]

MAX_PALETTE = 128
CHANNELS = 3  # R, G, B; alpha never takes part in ranges or cuts
OPAQUE = 0xFF


def mean_u8(values: Sequence[int]) -> int:
    """
    Floor mean of byte values, accumulated as a quotient and a remainder so
    that nothing ever holds the full sum.
    """
    count = len(values)
    assert count > 0
    x, y = 0, 0
    for v in values:
        x += v // count
        y += v % count
        if y >= count:
            x += 1
            y -= count
    return x


@dataclass(slots=True)
class Bucket:
    """A bucket is a contiguous run of the working colors shared by a tree"""

    colors: list[rgba] = field(repr=False)
    start: int
    end: int

    range: int = field(init=False)
    range_chan: int = field(init=False)
    average: rgba | None = field(init=False)

    def __post_init__(self):
        self.update_stats()

    def __len__(self) -> int:
        return self.end - self.start

    @property
    def view(self) -> list[rgba]:
        return self.colors[self.start : self.end]

    def update_stats(self):
        """
        Find the channel with the largest range. A bucket of less than 2
        colors keeps a null range and is never cut. On equal ranges the
        lowest channel wins.
        """
        self.average = None
        self.range = 0
        self.range_chan = 0
        if len(self) < 2:
            return

        view = self.view
        for chan in range(CHANNELS):
            lo = hi = view[0][chan]
            for color in view:
                v = color[chan]
                if v < lo:
                    lo = v
                elif v > hi:
                    hi = v
            if hi - lo > self.range:
                self.range = hi - lo
                self.range_chan = chan

    def update_average(self):
        view = self.view
        self.average = (
            mean_u8([c[0] for c in view]),
            mean_u8([c[1] for c in view]),
            mean_u8([c[2] for c in view]),
            OPAQUE,
        )

    def cut(self) -> tuple["Bucket", "Bucket", int]:
        """
        Sort the bucket colors along range_chan and cut right after the last
        color equal to the median value. This is not an exact median split:
        every color sharing the median value ends up on the left.

        When the median value is also the maximum, the cut happens before its
        run instead, so that the right bucket is never empty. The returned
        threshold is the largest value of the left bucket.
        """
        assert self.range > 0
        key = operator.itemgetter(self.range_chan)
        view = sorted(self.view, key=key)
        self.colors[self.start : self.end] = view

        median = key(view[len(view) // 2])
        cut = bisect_right(view, median, key=key)
        if cut == len(view):
            cut = bisect_left(view, median, key=key)
        threshold = key(view[cut - 1])

        left = Bucket(self.colors, self.start, self.start + cut)
        right = Bucket(self.colors, self.start + cut, self.end)
        return left, right, threshold


@dataclass(slots=True, frozen=True)
class Split:
    left: int  # colors with color[chan] <= threshold
    right: int  # colors with color[chan] > threshold
    chan: int
    threshold: int


Node = Bucket | Split


@dataclass
class Tree:
    """
    Binary partition of the working colors. Nodes live in an arena sized for
    a full tree of max_colors leaves, and refer to each other by index.
    """

    colors: list[rgba] = field(repr=False)
    max_colors: int

    nodes: list[Node | None] = field(init=False)
    size: int = field(init=False)

    def __post_init__(self):
        self.nodes = [None] * (2 * self.max_colors - 1)
        self.nodes[0] = Bucket(self.colors, 0, len(self.colors))
        self.size = 1

    @property
    def nb_leaves(self) -> int:
        return (self.size + 1) // 2

    def leaves(self) -> Iterator[Bucket]:
        for node in self.nodes[: self.size]:
            if isinstance(node, Bucket):
                yield node

    def _get_next_bucket_to_split(self) -> int | None:
        """
        Select the leaf with the largest range. On equal ranges the last one
        scanned wins. None when every leaf has a null range.
        """
        best = None
        max_range = 0
        for i, node in enumerate(self.nodes[: self.size]):
            if isinstance(node, Bucket) and node.range >= max_range:
                best = i
                max_range = node.range
        if max_range == 0:
            return None
        return best

    def split(self, index: int):
        """Turn the leaf at index into a Split over two new leaves"""
        bucket = self.nodes[index]
        assert isinstance(bucket, Bucket)
        assert self.size + 2 <= len(self.nodes)

        left, right, threshold = bucket.cut()
        assert len(left) >= 1
        assert len(right) >= 1

        lidx, ridx = self.size, self.size + 1
        self.nodes[lidx] = left
        self.nodes[ridx] = right
        self.nodes[index] = Split(lidx, ridx, bucket.range_chan, threshold)
        self.size += 2

    def grow(self) -> bool:
        """Cut the widest bucket; False once the tree cannot grow anymore"""
        if self.nb_leaves == self.max_colors:
            return False
        index = self._get_next_bucket_to_split()
        if index is None:
            return False
        self.split(index)
        return True

    def finalize(self):
        for bucket in self.leaves():
            bucket.update_average()

    def lookup(self, color: Sequence[int]) -> rgba:
        """Walk down to the bucket of color and return its average"""
        node = self.nodes[0]
        while isinstance(node, Split):
            if color[node.chan] <= node.threshold:
                node = self.nodes[node.left]
            else:
                node = self.nodes[node.right]
        assert isinstance(node, Bucket)
        if node.average is None:
            raise ValueError("bucket has no average, the tree is not finalized")
        return node.average

    @property
    def palette(self) -> list[rgba]:
        """Bucket averages in arena order, without duplicates"""
        return list(
            dict.fromkeys(b.average for b in self.leaves() if b.average is not None)
        )


def grow_tree(colors: list[rgba], max_colors: int) -> Iterator[Tree]:
    """
    Yield the tree once with its single root bucket, then again after every
    cut. The averages are not computed.
    """
    tree = Tree(colors, max_colors)
    yield tree
    while tree.grow():
        yield tree


def build_tree(colors: list[rgba], max_colors: int) -> Tree:
    tree = None
    for tree in grow_tree(colors, max_colors):
        pass
    assert tree is not None
    tree.finalize()
    return tree


def quantize(
    pixels: list[rgba], width: int, height: int, palette_size: int
) -> list[rgba]:
    """
    Median cut quantization of pixels, in place. The working copy gets
    reordered by the cuts, the original order of pixels is kept. Returns the
    palette.
    """
    assert 1 <= palette_size <= MAX_PALETTE
    assert len(pixels) == width * height > 0

    tree = build_tree(list(pixels), palette_size)

    colormap = {color: tree.lookup(color) for color in dict.fromkeys(pixels)}
    for i, color in enumerate(pixels):
        pixels[i] = colormap[color]

    return tree.palette
