"""Image I/O utilities for blob intensity statistics."""

from pathlib import Path

import cv2
import numpy as np

from config import ANNOTS_DIR, MASKS_DIR


def ensure_output(output_dir: Path) -> None:
    """Ensure output directory exists."""
    output_dir.mkdir(parents=True, exist_ok=True)


def ensure_run_dirs(data_dir: Path) -> None:
    """Create the annots/ and masks/ subdirectories of a data directory."""
    ensure_output(data_dir / ANNOTS_DIR)
    ensure_output(data_dir / MASKS_DIR)


def load_grayscale(path: Path) -> np.ndarray:
    """Load an image as a single-channel uint8 array.

    Raises:
        ValueError: If the file is missing or cannot be decoded
    """
    gray_np = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if gray_np is None:
        raise ValueError(f"Failed to load image: {path}")
    return gray_np


def save_image(path: Path, image: np.ndarray) -> None:
    """Write an image, creating parent directories as needed."""
    ensure_output(path.parent)
    if not cv2.imwrite(str(path), image):
        raise OSError(f"cv2.imwrite failed for {path}")
