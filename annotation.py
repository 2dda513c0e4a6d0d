"""Color overlay of the three mask classes for visual inspection."""

import cv2
import numpy as np

from config import DEFAULT_OVERLAY_ALPHA
from detection import PLACEHOLDER_SIZE
from models import MaskSet

# BGR
BLUE = (255, 0, 0)
GREEN = (0, 255, 0)
RED = (0, 0, 255)
BLACK = (0, 0, 0)


def tint(color, mask: np.ndarray) -> np.ndarray:
    """Solid color layer under mask, black elsewhere."""
    solid = np.full(mask.shape[:2] + (3,), color, dtype=np.uint8)
    return cv2.bitwise_and(solid, solid, mask=mask)


def render_overlay(
    roi: np.ndarray,
    masks: MaskSet,
    alpha: float = DEFAULT_OVERLAY_ALPHA,
) -> np.ndarray:
    """Annotate an ROI with its mask set.

    Contours passing the area test are outlined red, the rest thin black.
    Loose background (blue), strict background (green) and foreground (red)
    are then blended over the running composite in that order.

    Args:
        roi: (H, W) uint8 grayscale ROI
        masks: MaskSet from detection.synthesize
        alpha: Weight of each tint layer; the composite keeps 1 - alpha

    Returns:
        (H, W, 3) uint8 BGR image, or a 3x3 single-channel black image for
        placeholder masks
    """
    if masks.placeholder or roi is None:
        return np.zeros(PLACEHOLDER_SIZE, dtype=np.uint8)

    overlay = cv2.cvtColor(roi, cv2.COLOR_GRAY2BGR)
    passing = set(masks.passing)
    for idx in range(len(masks.contours)):
        if idx in passing:
            cv2.drawContours(overlay, masks.contours, idx, RED, 2)
        else:
            cv2.drawContours(overlay, masks.contours, idx, BLACK, 1)

    for color, mask in (
        (BLUE, masks.background_loose),
        (GREEN, masks.background_strict),
        (RED, masks.foreground),
    ):
        overlay = cv2.addWeighted(tint(color, mask), alpha, overlay, 1.0 - alpha, 0)

    return overlay
