import argparse
import csv

import matplotlib
import pytest
from PIL import Image

matplotlib.use("Agg")

import gen_results  # noqa: E402
import show_pal  # noqa: E402
from pal import Palette  # noqa: E402


@pytest.fixture
def image_path(tmp_path):
    path = tmp_path / "photo.png"
    im = Image.new(mode="RGB", size=(4, 2))
    im.putdata(
        [(0, 0, 0), (255, 0, 0), (0, 255, 0), (0, 0, 255)] * 2,
    )
    im.save(path)
    return path


def test_fieldnames():
    assert gen_results._fieldnames([2, 16]) == ["ipath", "mse_2", "mse_16"]


def test_gen_results_quantize(image_path, tmp_path):
    outdir = tmp_path / "results"
    outdir.mkdir()
    args = argparse.Namespace(outdir=outdir, palette_sizes=[1, 4])

    row = gen_results._quantize(args, image_path)

    assert row["ipath"] == image_path
    assert row["mse_4"] == 0
    assert row["mse_1"] > 0
    for n in (1, 4):
        assert (outdir / f"out-{n}-photo.png").exists()
        assert (outdir / f"pal-{n}-photo.png").exists()
    assert len(Palette.from_path(outdir / "pal-4-photo.png").colors) == 4


@pytest.fixture
def no_show(monkeypatch):
    shown = []
    monkeypatch.setattr(show_pal.plt, "show", lambda: shown.append(True))
    yield shown
    show_pal.plt.close("all")


def test_show_palette_file(tmp_path, no_show):
    path = tmp_path / "pal.png"
    Palette([(255, 0, 0, 0xFF), (0, 128, 255, 0xFF)]).save(path)
    show_pal._main([path], as_image=False, show_2d=True, max_colors=4)
    assert no_show == [True]
    assert len(show_pal.plt.gcf().axes) == 2


def test_show_palette_from_image(image_path, no_show):
    show_pal._main([image_path], as_image=True, show_2d=False, max_colors=2)
    assert no_show == [True]
    assert len(show_pal.plt.gcf().axes) == 2


def test_gen_results_csv(image_path, tmp_path):
    outdir = tmp_path / "results"
    gen_results._main(
        ["--outdir", str(outdir), "--palette-sizes", "1", "2", "--nb-threads", "1", str(image_path)]
    )

    with open(outdir / "data.csv", newline="") as csvfile:
        reader = csv.DictReader(csvfile)
        assert reader.fieldnames == ["ipath", "mse_1", "mse_2"]
        rows = list(reader)
    assert len(rows) == 1
    assert rows[0]["ipath"] == str(image_path)
    assert float(rows[0]["mse_1"]) > float(rows[0]["mse_2"]) > 0
    for n in (1, 2):
        assert (outdir / f"out-{n}-photo.png").exists()
        assert (outdir / f"pal-{n}-photo.png").exists()
