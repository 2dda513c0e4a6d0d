"""Batch processing of a blobroi output directory."""

import logging
from typing import Dict, Optional

from config import RunConfig
from image_io import ensure_run_dirs
from manifest import read_manifest
from models import Predictor
from output import LedgerMerger
from processing import process_roi, save_roi_images
from progress import ProgressRenderer

logger = logging.getLogger(__name__)


def process_batch(
    config: RunConfig,
    predictor: Predictor,
    progress_renderer: Optional[ProgressRenderer] = None,
) -> Dict[str, object]:
    """Process every manifest ROI in [start_id, end_id] and rewrite both ledgers.

    ROIs are handled one at a time in manifest order. The ledgers are written
    once, after the last ROI.

    Args:
        config: Run configuration
        predictor: ROI -> probability raster
        progress_renderer: Optional terminal progress line

    Returns:
        Dictionary with processing summary

    Raises:
        FileNotFoundError: If the data directory or rois.tsv is missing
    """
    if not config.data_dir.is_dir():
        raise FileNotFoundError(f"Data directory not found: {config.data_dir}")

    scan = read_manifest(config.manifest_path, config.start_id, config.end_id)
    ensure_run_dirs(config.data_dir)

    merger = LedgerMerger(
        config.raw_ledger_path,
        config.stats_ledger_path,
        config.start_id,
        config.end_id,
        legacy_high_bound=config.legacy_high_bound,
    )
    merger.load()
    merger.observe_skipped(scan.max_skipped_uid)

    records = scan.records
    if progress_renderer is not None:
        progress_renderer.reset(len(records))

    failed = 0
    with_foreground = 0
    stats_rows = 0

    for idx, record in enumerate(records):
        result = process_roi(record, predictor, config)
        save_roi_images(result, config)
        merger.add(result.raw, result.stats)

        is_failed = result.masks.placeholder
        failed += int(is_failed)
        with_foreground += int(result.masks.has_foreground)
        stats_rows += int(result.stats is not None)

        if progress_renderer is not None:
            progress_renderer.update(
                idx + 1,
                record.uid,
                result.elapsed,
                failed=is_failed,
                has_foreground=result.masks.has_foreground,
            )

    merger.write()

    logger.info(
        f"Processed {len(records)} ROI(s): {failed} failed, "
        f"{with_foreground} with foreground, {stats_rows} stats row(s)"
    )
    return {
        "processed": len(records),
        "failed": failed,
        "with_foreground": with_foreground,
        "stats_rows": stats_rows,
        "skipped_malformed": scan.skipped_malformed,
        "output_dir": str(config.data_dir),
    }
