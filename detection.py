"""Foreground and background mask synthesis from a probability raster."""

from typing import List, Sequence, Tuple

import cv2
import numpy as np

from config import DEFAULT_CUTOFF, DEFAULT_MAX_AREA, DEFAULT_MIN_AREA, DEFAULT_PADDING
from models import MaskSet

PLACEHOLDER_SIZE = (3, 3)


def square_kernel() -> np.ndarray:
    return cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))


def binarize(raster: np.ndarray, cutoff: int = DEFAULT_CUTOFF) -> np.ndarray:
    """Binary mask (uint8, 0 or 255): 255 where raster > cutoff."""
    _, binary = cv2.threshold(raster, cutoff, 255, cv2.THRESH_BINARY)
    return binary


def find_contours(binary: np.ndarray) -> Sequence[np.ndarray]:
    """Outer and inner boundaries of a binary mask."""
    contours, _ = cv2.findContours(binary, cv2.RETR_TREE, cv2.CHAIN_APPROX_SIMPLE)
    return contours


def is_foreground_area(
    area: float,
    min_area: float = DEFAULT_MIN_AREA,
    max_area: float = DEFAULT_MAX_AREA,
) -> bool:
    return min_area < area < max_area


def inset_rectangle(shape: Tuple[int, int], padding: int = DEFAULT_PADDING) -> np.ndarray:
    """Mask with a filled rectangle inset by padding from every border."""
    rows, cols = shape
    mask = np.zeros((rows, cols), dtype=np.uint8)
    rect = np.array(
        [
            [padding, padding],
            [cols - padding, padding],
            [cols - padding, rows - padding],
            [padding, rows - padding],
        ],
        dtype=np.int32,
    )
    cv2.drawContours(mask, [rect], 0, 255, cv2.FILLED)
    return mask


def right_exclusion(contour: np.ndarray, shape: Tuple[int, int]) -> np.ndarray:
    """Polygon from the contour's right edge to the ROI's right edge, full height."""
    rows, cols = shape
    x, _, w, _ = cv2.boundingRect(contour)
    return np.array(
        [[x + w, 0], [cols, 0], [cols, rows], [x + w, rows]],
        dtype=np.int32,
    )


def placeholder_masks() -> MaskSet:
    """All-black 3x3 masks standing in for an ROI whose detection failed."""
    def black():
        return np.zeros(PLACEHOLDER_SIZE, dtype=np.uint8)

    return MaskSet(
        foreground=black(),
        background_loose=black(),
        background_strict=black(),
        probability=black(),
        has_foreground=False,
        placeholder=True,
    )


def synthesize(
    raster: np.ndarray,
    cutoff: int = DEFAULT_CUTOFF,
    min_area: float = DEFAULT_MIN_AREA,
    max_area: float = DEFAULT_MAX_AREA,
    padding: int = DEFAULT_PADDING,
) -> MaskSet:
    """Build foreground and background masks from a probability raster.

    Every contour whose area lies strictly inside (min_area, max_area) is
    foreground; passing contours accumulate, since a model may report one
    hollow blob as an inner and an outer boundary. The loose background is
    the inset rectangle minus each foreground contour and everything to the
    right of its bounding box (a dark band sits there in the source images).
    The strict background is the loose one eroded padding times.

    Args:
        raster: (H, W) uint8 probability raster
        cutoff: Binarization cutoff (0-255)
        min_area: Exclusive lower bound on foreground contour area
        max_area: Exclusive upper bound on foreground contour area
        padding: Inset of the background rectangle and erosion count

    Returns:
        MaskSet with the same height and width as raster
    """
    shape = raster.shape[:2]
    contours = find_contours(binarize(raster, cutoff))

    foreground = np.zeros(shape, dtype=np.uint8)
    background_loose = inset_rectangle(shape, padding)
    passing: List[int] = []

    for idx, contour in enumerate(contours):
        if not is_foreground_area(cv2.contourArea(contour), min_area, max_area):
            continue
        passing.append(idx)
        cv2.drawContours(foreground, contours, idx, 255, cv2.FILLED)
        cv2.drawContours(background_loose, [right_exclusion(contour, shape)], 0, 0, cv2.FILLED)
        cv2.drawContours(background_loose, contours, idx, 0, cv2.FILLED)

    background_strict = cv2.erode(background_loose, square_kernel(), iterations=padding)

    return MaskSet(
        foreground=foreground,
        background_loose=background_loose,
        background_strict=background_strict,
        probability=raster.copy(),
        has_foreground=bool(passing),
        contours=contours,
        passing=passing,
    )
