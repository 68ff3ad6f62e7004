# repositories/model_repository.py
from __future__ import annotations
import logging
from typing import Callable

import cv2
import numpy as np

from ..models.errors import InferenceError
from ..models.segmentation_model import SegmentationModel
from ..models.segmentation_outcome import SegmentationKind

logger = logging.getLogger(__name__)


class ModelRepository:
    """
    Fixed-size on-device inference.

    • Stretches the source into the model's input box (aspect not preserved).
    • Normalises RGB to [0, 1], drops alpha.
    • Thresholds the output into a binary alpha plane at model resolution.
    """

    def __init__(self, model_loader: Callable[[SegmentationKind], SegmentationModel] = SegmentationModel) -> None:
        self.model_loader = model_loader

    # ---------- private helpers ----------
    @staticmethod
    def _preprocess(rgba: np.ndarray, width: int, height: int) -> np.ndarray:
        """(H, W, 4) uint8 → (1, height, width, 3) float32 in [0, 1]."""
        stretched = cv2.resize(np.ascontiguousarray(rgba[:, :, :3]), (width, height), interpolation=cv2.INTER_LINEAR)
        return (stretched.astype("float32") / 255.0)[None, ...]

    @staticmethod
    def threshold(values: np.ndarray, width: int, height: int, thr: float = 0.5) -> np.ndarray:
        """
        Flat model output → (height, width) uint8 alpha.
        Strictly greater than *thr* is foreground (255), everything else 0.
        """
        values = np.asarray(values).ravel()
        if values.size < width * height:
            raise InferenceError(
                f"Model output has {values.size} values, expected at least {width * height}"
            )
        plane = values[: width * height].reshape(height, width)
        return np.where(plane > thr, 255, 0).astype("uint8")

    # ---------- public API ----------
    def retrieve_mask(self, rgba: np.ndarray, kind: SegmentationKind, thr: float = 0.5) -> np.ndarray:
        """
        Returns uint8 alpha (Hm, Wm) with values {0, 255}, at model resolution.
        """
        model = self.model_loader(kind)
        width, height = model.input_size
        out = model.infer(self._preprocess(rgba, width, height))
        return self.threshold(out, width, height, thr)
