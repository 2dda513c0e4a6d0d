"""Core per-ROI pipeline: inference, masks, statistics, overlay."""

import logging
import time
from typing import Optional

import numpy as np

from annotation import render_overlay
from config import RunConfig
from detection import placeholder_masks, synthesize
from image_io import save_image
from measurement import aggregate
from models import Predictor, RoiRecord, RoiResult

logger = logging.getLogger(__name__)


def load_roi(record: RoiRecord) -> Optional[np.ndarray]:
    """The ROI image of a detected record, or None if it must be skipped."""
    if not record.detect_success:
        logger.info(f"detection {record.uid} failed.")
        return None
    try:
        return record.image
    except ValueError as e:
        logger.error(f"uid {record.uid}: {e}; recorded as a failed detection")
        return None


def process_roi(record: RoiRecord, predictor: Predictor, config: RunConfig) -> RoiResult:
    """Run one ROI through the whole pipeline.

    Failed detections (and unreadable sources) skip inference and get the
    3x3 placeholder mask set; they still produce a raw ledger row.

    Args:
        record: Manifest record; its image is loaded lazily
        predictor: ROI -> probability raster (an InferenceEngine in production)
        config: Run configuration

    Returns:
        RoiResult with masks, overlay and ledger rows
    """
    start = time.time()
    roi = load_roi(record)

    if roi is None:
        masks = placeholder_masks()
    else:
        masks = synthesize(
            predictor(roi),
            cutoff=config.cutoff,
            min_area=config.min_area,
            max_area=config.max_area,
            padding=config.padding,
        )

    raw, stats = aggregate(record, roi, masks, config.foreground_dilate_iterations)
    overlay = render_overlay(roi, masks, alpha=config.overlay_alpha)

    elapsed = time.time() - start
    logger.debug(f"processing detection {record.uid} ... {elapsed:.2f} s")
    return RoiResult(
        record=record,
        masks=masks,
        overlay=overlay,
        raw=raw,
        stats=stats,
        elapsed=elapsed,
    )


def save_roi_images(result: RoiResult, config: RunConfig) -> None:
    """Write annots/{uid}.jpg (overlay) and masks/{uid}.jpg (probability raster)."""
    uid = result.record.uid
    save_image(config.annot_path(uid), result.overlay)
    save_image(config.mask_path(uid), result.masks.probability)
