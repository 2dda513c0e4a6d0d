"""Command-line interface for blob intensity statistics."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from batch import process_batch
from config import DEFAULT_END_ID, DEFAULT_START_ID, LOG_NAME, RunConfig, load_params
from inference import InferenceEngine, ModelLoadError
from progress import ProgressRenderer

__version__ = "1.5"

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="blobquant",
        description=(
            "Measure the intensity of blob patches in extracted ROI datasets, "
            "locating each blob with a pretrained segmentation network."
        ),
    )
    parser.add_argument(
        "source",
        type=Path,
        metavar="SOURCE",
        help="The blobroi output directory (holds rois.tsv and sources/).",
    )
    parser.add_argument(
        "-m",
        "--start",
        type=int,
        default=DEFAULT_START_ID,
        metavar="M",
        help="Starting uid (included) to process.",
    )
    parser.add_argument(
        "-n",
        "--end",
        type=int,
        default=DEFAULT_END_ID,
        metavar="N",
        help="Ending uid (included) to process.",
    )
    parser.add_argument(
        "-c",
        "--cutoff",
        type=int,
        default=None,
        metavar="CUTOFF",
        help="Prediction grayscale cutoff for the foreground mask (180).",
    )
    parser.add_argument(
        "-t",
        "--model",
        type=Path,
        required=True,
        metavar="PT",
        help="Path to the TorchScript model (*.pt).",
    )
    parser.add_argument(
        "--params",
        type=Path,
        help="Optional JSON file overriding cutoff, min_area, max_area, padding, "
        "foreground_dilate_iterations and overlay_alpha.",
    )
    parser.add_argument(
        "--legacy-high-bound",
        action="store_true",
        help="Carry prior ledger rows above --end only up to the highest skipped "
        "manifest uid, as older releases did.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log per-ROI details.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def setup_logging(data_dir: Optional[Path], verbose: bool = False) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if data_dir is not None:
        handlers.insert(0, logging.FileHandler(data_dir / LOG_NAME))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )


def build_config(args: argparse.Namespace) -> RunConfig:
    params = load_params(args.params)
    if args.cutoff is not None:
        params["cutoff"] = args.cutoff
    return RunConfig(
        data_dir=args.source,
        model_path=args.model,
        start_id=args.start,
        end_id=args.end,
        legacy_high_bound=args.legacy_high_bound,
        **params,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    args = parse_args(argv)

    if not args.source.is_dir():
        setup_logging(None, args.verbose)
        logger.error(f"data output path does not exist: {args.source}")
        return 1
    setup_logging(args.source, args.verbose)

    try:
        config = build_config(args)
    except (FileNotFoundError, ValueError, ValidationError) as exc:
        logger.error(f"Invalid configuration: {exc}")
        return 1

    if not config.manifest_path.is_file():
        logger.error(f"rois.tsv not found under the source folder: {config.data_dir}")
        return 1

    try:
        engine = InferenceEngine(config.model_path)
    except (FileNotFoundError, ModelLoadError) as exc:
        logger.error(f"pytorch model not found or invalid: {exc}")
        return 1

    try:
        renderer = ProgressRenderer(enable=sys.stdout.isatty())
        summary = process_batch(config, engine, progress_renderer=renderer)
    except FileNotFoundError as exc:
        logger.error(str(exc))
        return 1

    print(
        f"Processed {summary['processed']} ROI(s), {summary['failed']} failed detection(s), "
        f"{summary['stats_rows']} stats row(s). Ledgers in {summary['output_dir']}."
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
