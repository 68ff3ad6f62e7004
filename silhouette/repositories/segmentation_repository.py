# repositories/segmentation_repository.py
from __future__ import annotations
import logging

import cv2
import numpy as np

from ..models.errors import BackendError, NoSubjectFound, ProcessingError
from ..models.segmentation_engine import SegmentationEngine

logger = logging.getLogger(__name__)

_CLEAR = np.zeros(4, dtype="float32")  # fully transparent background
_WHITE = np.full(4, 255.0, dtype="float32")  # opaque white foreground layer


class SegmentationRepository:
    """
    One-image native inference + coordinate reconciliation.

    • Calls the MediaPipe engine (mask comes back at model resolution).
    • Scales the mask anisotropically to the source's resolution.
    • Blends against a transparent background, alpha = foreground probability.
    """

    def __init__(self, engine: SegmentationEngine | None = None) -> None:
        # engine is created lazily so a missing capability surfaces as a backend error
        self._engine = engine

    @property
    def engine(self) -> SegmentationEngine:
        if self._engine is None:
            self._engine = SegmentationEngine()
        return self._engine

    # ---------- private helpers ----------
    @staticmethod
    def scale_to_source(mask: np.ndarray, width: int, height: int) -> np.ndarray:
        """
        Independent X/Y scale: sx = W / Wm, sy = H / Hm.
        Model output boxes rarely share the photo's aspect ratio.
        """
        mask_h, mask_w = mask.shape[:2]
        sx = width / max(mask_w, 1)
        sy = height / max(mask_h, 1)
        if mask_w == width and mask_h == height:
            return mask
        logger.debug(f"Scaling native mask {mask_w}x{mask_h} → {width}x{height} (sx={sx:.3f}, sy={sy:.3f})")
        return cv2.resize(mask, (width, height), interpolation=cv2.INTER_LINEAR)

    @staticmethod
    def blend_with_clear(weight: np.ndarray) -> np.ndarray:
        """
        White foreground over a transparent background, weighted by *weight*.
        Returns (H, W, 4) uint8 whose alpha is the foreground probability.
        """
        w = np.clip(weight, 0.0, 1.0)[:, :, None]
        blended = _WHITE * w + _CLEAR * (1.0 - w)
        return np.rint(blended).astype("uint8")

    # ---------- public API ----------
    def retrieve_probability_rgba(self, rgb: np.ndarray) -> np.ndarray:
        """
        rgb : (H, W, 3) uint8 source pixels.
        Returns (H, W, 4) uint8 at source resolution.
        """
        height, width = rgb.shape[:2]
        try:
            soft = self.engine.predict(rgb)
        except BackendError:
            raise
        except Exception as err:  # mediapipe surfaces graph failures as RuntimeError/ValueError
            raise ProcessingError(f"Native segmentation failed: {err}") from err

        if soft is None or soft.size == 0:
            raise NoSubjectFound("Native segmentation produced no person mask")
        if soft.ndim == 3:
            soft = soft[:, :, 0]
        if soft.ndim != 2:
            raise ProcessingError(f"Unexpected native mask shape {soft.shape}")

        try:
            scaled = self.scale_to_source(soft.astype("float32"), width, height)
            return self.blend_with_clear(scaled)
        except cv2.error as err:
            raise ProcessingError(f"Could not render native mask: {err}") from err
