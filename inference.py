"""TorchScript inference for blob probability maps."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import numpy as np
import torch

logger = logging.getLogger(__name__)


class ModelLoadError(RuntimeError):
    """The model artifact exists but TorchScript could not load it."""


def select_device() -> torch.device:
    """Pick CUDA when both CUDA and cuDNN are usable, otherwise CPU."""
    gpu = True
    if torch.cuda.is_available():
        logger.info("cuda available on this device.")
    else:
        logger.info("no gpu or no correct cuda driver installed.")
        gpu = False

    if gpu and torch.backends.cudnn.is_available():
        logger.info("cudnn available on this device.")
    else:
        gpu = False

    if gpu:
        logger.info(f"found {torch.cuda.device_count()} available gpu(s) installed on this device.")
        return torch.device("cuda")
    return torch.device("cpu")


def reverse_polarity(roi: np.ndarray) -> np.ndarray:
    """Blobs were trained with reversed pixel values so that they read high."""
    return 255 - roi


def to_input_tensor(roi: np.ndarray, device: torch.device) -> torch.Tensor:
    """(H, W) uint8 -> (1, 1, H, W) float32 on device, values left in 0-255."""
    tensor = torch.from_numpy(np.ascontiguousarray(roi)).to(torch.float32)
    return tensor.unsqueeze(0).unsqueeze(0).to(device)


def to_gray_raster(output: torch.Tensor) -> np.ndarray:
    """Model output in [0, 1] -> (H, W) uint8 raster in [0, 255]."""
    # Batch and class dimensions are both 1: one ROI, one foreground channel.
    output = output.squeeze(0).squeeze(0).detach()
    output = output.mul(255).clamp(0, 255).to(torch.uint8)
    return output.cpu().numpy()


class InferenceEngine:
    def __init__(self, model_path: Union[str, Path], device: Optional[torch.device] = None):
        """Load a TorchScript segmentation model and move it to a device.

        Args:
            model_path: Path to the *.pt TorchScript artifact
            device: Device chosen once at startup (default: select_device())

        Raises:
            FileNotFoundError: If model_path is not a file
            ModelLoadError: If TorchScript rejects the artifact
        """
        if not os.path.isfile(model_path):
            raise FileNotFoundError(f"Model file not found: {model_path}")

        logger.info(f"loading model file from: {model_path} ...")
        try:
            model = torch.jit.load(str(model_path), map_location="cpu")
        except (RuntimeError, ValueError) as e:
            raise ModelLoadError(f"Invalid TorchScript model {model_path}: {e}") from e
        logger.info("loading model file successfully.")

        self.device = device if device is not None else select_device()
        logger.info(f"transporting model to {self.device.type}")
        model.eval()
        self.model = model.to(self.device)
        self.model_path = str(model_path)

    def predict(self, roi: np.ndarray) -> np.ndarray:
        """Run the model on one grayscale ROI.

        Args:
            roi: (H, W) uint8 grayscale image

        Returns:
            (H, W) uint8 foreground probability raster
        """
        tensor = to_input_tensor(reverse_polarity(roi), self.device)
        with torch.no_grad():
            output = self.model(tensor)
        raster = to_gray_raster(output)
        if raster.shape != roi.shape:
            raise ValueError(
                f"Model output shape {raster.shape} does not match ROI shape {roi.shape}"
            )
        return raster

    __call__ = predict
