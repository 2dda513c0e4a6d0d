import pathlib

import cv2
import numpy as np
import pytest

TEST_DIR = pathlib.Path(__file__).parent


def disc_image(shape=(200, 200), center=(80, 100), radius=30, fg=255, bg=0):
    """uint8 image of one filled disc; center is (x, y)."""
    img = np.full(shape, bg, dtype=np.uint8)
    cv2.circle(img, center, radius, int(fg), -1)
    return img


def threshold_predictor(roi):
    """Stand-in model: dark pixels of the ROI are blob."""
    return np.where(roi < 100, 255, 0).astype(np.uint8)


def manifest_line(uid, detect="x", scale="x", dark=10, light=200, name="sampleA", sid=1):
    return f"{uid}\tframe_{uid}.jpg\t{sid}\t{name}\t{detect}\t{scale}\t{dark}\t{light}\t\n"


@pytest.fixture
def data_dir(tmp_path):
    """A blobroi output directory with four ROIs; uid 3 failed detection."""
    sources = tmp_path / "sources"
    sources.mkdir()
    for uid in (1, 2, 3, 4):
        roi = disc_image(center=(70 + uid * 5, 100), radius=25 + uid, fg=40, bg=180)
        cv2.imwrite(str(sources / f"{uid}.jpg"), roi)

    lines = [manifest_line(1), manifest_line(2), manifest_line(3, detect="."), manifest_line(4)]
    (tmp_path / "rois.tsv").write_text("".join(lines), encoding="utf-8")
    return tmp_path
