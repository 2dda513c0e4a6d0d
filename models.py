"""Data models for blob intensity statistics."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import numpy as np

from image_io import load_grayscale

# Grayscale ROI in, 8-bit probability raster of the same size out.
Predictor = Callable[[np.ndarray], np.ndarray]


@dataclass
class RoiRecord:
    """One row of the upstream rois.tsv manifest."""
    uid: int
    filename: str
    sample_id: int
    sample_name: str
    detect_success: bool
    scale_success: bool
    scale_dark: int
    scale_light: int
    source_path: Optional[Path] = None
    _image: Optional[np.ndarray] = field(default=None, repr=False, compare=False)

    @property
    def image(self) -> Optional[np.ndarray]:
        """Grayscale ROI, read from source_path on first access.

        Raises ValueError when the source file cannot be decoded.
        """
        if self._image is None and self.source_path is not None:
            self._image = load_grayscale(self.source_path)
        return self._image


@dataclass
class MaskSet:
    """Masks derived from one ROI; never persisted except as rendered JPEGs."""
    foreground: np.ndarray
    background_loose: np.ndarray
    background_strict: np.ndarray
    probability: np.ndarray
    has_foreground: bool
    contours: Sequence[np.ndarray] = ()
    passing: List[int] = field(default_factory=list)  # indices into contours
    placeholder: bool = False


@dataclass
class Measurement:
    """Region means and size sampled from an ROI."""
    foreground_mean: float  # -1 without foreground
    foreground_size: int  # -1 without foreground
    background_strict_mean: float
    background_loose_mean: float


@dataclass
class RawRow:
    uid: int
    filename: str
    sample_id: int
    sample_name: str
    detect_success: bool
    scale_success: bool
    has_foreground: bool
    foreground_mean: float
    foreground_size: int
    background_strict_mean: float
    background_loose_mean: float
    scale_dark: int
    scale_light: int


@dataclass
class StatsRow:
    """Natural-log statistics; only built when every log argument is positive."""
    uid: int
    filename: str
    sample_id: int
    log_abs: float
    log_delta: float
    log_light: float
    log_dark: float
    log_back_loose: float
    log_back_strict: float
    log_mean: float
    log_size: float
    sample_name: str


@dataclass
class RoiResult:
    """Everything one ROI contributes to a run."""
    record: RoiRecord
    masks: MaskSet
    overlay: np.ndarray
    raw: RawRow
    stats: Optional[StatsRow] = None
    elapsed: float = 0.0
