import numpy as np

from annotation import render_overlay, tint
from conftest import disc_image, threshold_predictor
from detection import placeholder_masks, synthesize


def test_tint_only_under_mask():
    mask = np.zeros((4, 4), dtype=np.uint8)
    mask[1, 1] = 255
    layer = tint((255, 0, 0), mask)

    assert layer.shape == (4, 4, 3)
    assert layer[1, 1].tolist() == [255, 0, 0]
    assert layer[0, 0].tolist() == [0, 0, 0]


def test_overlay_colors():
    roi = disc_image(radius=30, fg=50, bg=100)
    masks = synthesize(threshold_predictor(roi))
    overlay = render_overlay(roi, masks)

    assert overlay.shape == (200, 200, 3)
    assert overlay.dtype == np.uint8

    b, g, r = (int(v) for v in overlay[100, 80])  # blob interior
    assert r > b and r > g

    b, g, r = (int(v) for v in overlay[100, 30])  # strict background
    assert g > r
    assert b > r


def test_overlay_is_reproducible():
    roi = disc_image(radius=30, fg=50, bg=100)
    masks = synthesize(threshold_predictor(roi))
    assert np.array_equal(render_overlay(roi, masks), render_overlay(roi, masks))


def test_placeholder_overlay_is_black():
    overlay = render_overlay(None, placeholder_masks())
    assert overlay.shape == (3, 3)
    assert not overlay.any()
