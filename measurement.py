"""Region intensity statistics and log-domain metrics."""

import math
from typing import Optional, Tuple

import cv2
import numpy as np

from config import DEFAULT_DILATE_ITERATIONS
from detection import square_kernel
from models import MaskSet, Measurement, RawRow, RoiRecord, StatsRow

MISSING = -1


def masked_mean(image: np.ndarray, mask: np.ndarray) -> float:
    """Mean of image under the nonzero pixels of mask; 0.0 for an empty mask."""
    if mask.shape != image.shape[:2] or not cv2.countNonZero(mask):
        return 0.0
    return float(cv2.mean(image, mask=mask)[0])


def measure(
    roi: Optional[np.ndarray],
    masks: MaskSet,
    dilate_iterations: int = DEFAULT_DILATE_ITERATIONS,
) -> Measurement:
    """Sample the ROI under the foreground and both background masks.

    The foreground is dilated before sampling so that the blob's rim is
    included. Without a foreground, mean and size are both -1.
    """
    if roi is None or masks.placeholder:
        return Measurement(MISSING, MISSING, 0.0, 0.0)

    fg_mean: float = MISSING
    fg_size: int = MISSING
    if masks.has_foreground:
        grown = cv2.dilate(masks.foreground, square_kernel(), iterations=dilate_iterations)
        fg_mean = masked_mean(roi, grown)
        fg_size = int(cv2.countNonZero(grown))

    return Measurement(
        foreground_mean=fg_mean,
        foreground_size=fg_size,
        background_strict_mean=masked_mean(roi, masks.background_strict),
        background_loose_mean=masked_mean(roi, masks.background_loose),
    )


def raw_row(record: RoiRecord, masks: MaskSet, m: Measurement) -> RawRow:
    return RawRow(
        uid=record.uid,
        filename=record.filename,
        sample_id=record.sample_id,
        sample_name=record.sample_name,
        detect_success=record.detect_success,
        scale_success=record.scale_success,
        has_foreground=masks.has_foreground,
        foreground_mean=m.foreground_mean,
        foreground_size=m.foreground_size,
        background_strict_mean=m.background_strict_mean,
        background_loose_mean=m.background_loose_mean,
        scale_dark=record.scale_dark,
        scale_light=record.scale_light,
    )


def passes_gate(row: RawRow) -> bool:
    """True when every logarithm taken by stats_row has a positive argument."""
    return (
        row.detect_success
        and row.scale_success
        and row.has_foreground
        and row.foreground_size > 0
        and row.foreground_mean > 0
        and (row.background_strict_mean - row.foreground_mean) > 0
        and row.scale_light > 0
        and row.scale_dark > 0
        and row.scale_light > row.scale_dark
        and row.background_loose_mean > 0
        and row.background_strict_mean > 0
    )


def stats_row(row: RawRow) -> Optional[StatsRow]:
    """Log-domain statistics for a raw row, or None if the gate rejects it."""
    if not passes_gate(row):
        return None

    absorbance = (row.background_strict_mean - row.foreground_mean) * row.foreground_size
    return StatsRow(
        uid=row.uid,
        filename=row.filename,
        sample_id=row.sample_id,
        log_abs=math.log(absorbance),
        log_delta=math.log(row.scale_light - row.scale_dark),
        log_light=math.log(row.scale_light),
        log_dark=math.log(row.scale_dark),
        log_back_loose=math.log(row.background_loose_mean),
        log_back_strict=math.log(row.background_strict_mean),
        log_mean=math.log(row.foreground_mean),
        log_size=math.log(row.foreground_size),
        sample_name=row.sample_name,
    )


def aggregate(
    record: RoiRecord,
    roi: Optional[np.ndarray],
    masks: MaskSet,
    dilate_iterations: int = DEFAULT_DILATE_ITERATIONS,
) -> Tuple[RawRow, Optional[StatsRow]]:
    """Raw ledger row (always) and stats ledger row (when gated in) for one ROI."""
    raw = raw_row(record, masks, measure(roi, masks, dilate_iterations))
    return raw, stats_row(raw)
