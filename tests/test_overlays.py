import pytest

from barplot.layout import Margins
from barplot.overlays import (IMAGE_FIT_SIZE, ImageOverlay, TextOverlay, add_image_overlay, add_text_overlay,
                              fit_scale, image_data_uri, next_overlay_id, overlay_origin, remove_overlay)


def test_text_defaults():
    text = TextOverlay()
    assert (text.text, text.x, text.y, text.font_size) == ("New Text", 100.0, 100.0, 16.0)
    assert text.color == "#ffffff"
    assert text.opacity == 1.0


@pytest.mark.parametrize("width,height,scale", [
    (300, 150, 0.5),
    (100, 600, 0.25),
    (80, 40, 1.0),
    (0, 0, 1.0),
])
def test_fit_scale(width, height, scale):
    assert fit_scale(width, height) == pytest.approx(scale)


def test_fitted_image_size():
    (image,) = add_image_overlay((), "data:image/png;base64,AAAA", 600, 300)
    assert image.width == pytest.approx(IMAGE_FIT_SIZE)
    assert image.height == pytest.approx(IMAGE_FIT_SIZE / 2)
    assert image.id == "image-1"


def test_explicit_scale_is_kept():
    (image,) = add_image_overlay((), "x", 600, 300, scale=0.1)
    assert image.scale == 0.1


def test_ids_are_unique():
    items = add_text_overlay(())
    items = add_text_overlay(items, text="Second")
    assert [t.id for t in items] == ["text-1", "text-2"]

    items = remove_overlay(items, "text-1")
    items = add_text_overlay(items)
    assert [t.id for t in items] == ["text-2", "text-3"]


def test_next_id_skips_taken():
    existing = [ImageOverlay(id="image-2")]
    assert next_overlay_id("image", existing) == "image-3"


def test_origin_is_relative_to_plot_area():
    margins = Margins(top=50, right=10, bottom=40, left=60)
    assert overlay_origin(margins, 5, -10) == (65, 40)


def test_image_data_uri():
    assert image_data_uri(b"\x89PNG", "image/png") == "data:image/png;base64,iVBORw=="
