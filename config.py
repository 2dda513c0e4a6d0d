"""Configuration and constants for blob intensity statistics."""

import json
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# File layout of a blobroi output directory.
MANIFEST_NAME = "rois.tsv"
RAW_LEDGER_NAME = "raw.tsv"
STATS_LEDGER_NAME = "stats.tsv"
LOG_NAME = "blobquant.log"
SOURCES_DIR = "sources"
ANNOTS_DIR = "annots"
MASKS_DIR = "masks"

# end_id + 1 is computed during the merge; keep clear of the int32 limit.
DEFAULT_START_ID = 1
DEFAULT_END_ID = 2**31 - 1 - 10

DEFAULT_CUTOFF = 180
DEFAULT_MIN_AREA = 1000.0
DEFAULT_MAX_AREA = 50000.0
DEFAULT_PADDING = 5
DEFAULT_DILATE_ITERATIONS = 2
DEFAULT_OVERLAY_ALPHA = 0.3

TUNABLE_KEYS = (
    "cutoff",
    "min_area",
    "max_area",
    "padding",
    "foreground_dilate_iterations",
    "overlay_alpha",
)


class RunConfig(BaseModel):
    """Everything a run needs, fixed once at process start."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    data_dir: Path
    model_path: Optional[Path] = None
    start_id: int = DEFAULT_START_ID
    end_id: int = DEFAULT_END_ID
    cutoff: int = Field(DEFAULT_CUTOFF, ge=0, le=255)
    min_area: float = Field(DEFAULT_MIN_AREA, ge=0)
    max_area: float = Field(DEFAULT_MAX_AREA, gt=0)
    padding: int = Field(DEFAULT_PADDING, ge=0)
    foreground_dilate_iterations: int = Field(DEFAULT_DILATE_ITERATIONS, ge=0)
    overlay_alpha: float = Field(DEFAULT_OVERLAY_ALPHA, ge=0, le=1)
    legacy_high_bound: bool = False

    @model_validator(mode="after")
    def _check_ranges(self) -> "RunConfig":
        if self.start_id > self.end_id:
            raise ValueError(
                f"start_id ({self.start_id}) must not exceed end_id ({self.end_id})"
            )
        if self.min_area >= self.max_area:
            raise ValueError(
                f"min_area ({self.min_area}) must be below max_area ({self.max_area})"
            )
        return self

    @property
    def manifest_path(self) -> Path:
        return self.data_dir / MANIFEST_NAME

    @property
    def raw_ledger_path(self) -> Path:
        return self.data_dir / RAW_LEDGER_NAME

    @property
    def stats_ledger_path(self) -> Path:
        return self.data_dir / STATS_LEDGER_NAME

    def source_path(self, uid: int) -> Path:
        return self.data_dir / SOURCES_DIR / f"{uid}.jpg"

    def annot_path(self, uid: int) -> Path:
        return self.data_dir / ANNOTS_DIR / f"{uid}.jpg"

    def mask_path(self, uid: int) -> Path:
        return self.data_dir / MASKS_DIR / f"{uid}.jpg"


def default_params() -> Dict[str, float]:
    return {
        "cutoff": DEFAULT_CUTOFF,
        "min_area": DEFAULT_MIN_AREA,
        "max_area": DEFAULT_MAX_AREA,
        "padding": DEFAULT_PADDING,
        "foreground_dilate_iterations": DEFAULT_DILATE_ITERATIONS,
        "overlay_alpha": DEFAULT_OVERLAY_ALPHA,
    }


def load_params(params_file: Optional[Path] = None) -> Dict[str, float]:
    """Load mask and overlay tunables from JSON, merged over the defaults.

    Args:
        params_file: Optional path to a JSON object with any of the tunable keys

    Returns:
        Dictionary with every tunable key

    Raises:
        FileNotFoundError: If params_file is given but does not exist
        ValueError: If the file is not a JSON object or names unknown keys
    """
    result = default_params()
    if params_file is None:
        return result
    if not params_file.exists():
        raise FileNotFoundError(f"Params file not found: {params_file}")

    with params_file.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {params_file}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Params file must contain a JSON object.")
    unknown = sorted(set(data) - set(TUNABLE_KEYS))
    if unknown:
        raise ValueError(f"Unknown params in {params_file}: {', '.join(unknown)}")

    result.update(data)
    return result
