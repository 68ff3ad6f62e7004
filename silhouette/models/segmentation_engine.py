# models/segmentation_engine.py
"""
Singleton wrapper around MediaPipe Selfie Segmentation.

• Loads the TFLite graph once per Python process.
• Runs on the model's native input box, so .predict(rgb) returns a
  float mask (Hm, Wm) in [0, 1] at *model* resolution, not source resolution.
"""
from __future__ import annotations
import logging
import os
import threading
from typing import Tuple

import cv2
import numpy as np
from dotenv import load_dotenv

from .errors import BackendUnavailable

load_dotenv()

logger = logging.getLogger(__name__)

# model_selection=0 → general model (256×256), 1 → landscape model (256×144)
_NATIVE_INPUT_SIZES = {0: (256, 256), 1: (256, 144)}


class SegmentationEngine:
    _instance: "SegmentationEngine" | None = None
    _lock = threading.RLock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._init_runtime()
                # only publish a fully initialised engine; a failed load is retried next time
                cls._instance = instance
            return cls._instance

    # --------------------------------------------------
    def _init_runtime(self) -> None:
        if os.getenv("NATIVE_SEGMENTATION_ENABLED", "1") in ("0", "false", "False"):
            raise BackendUnavailable("Native segmentation disabled by NATIVE_SEGMENTATION_ENABLED")

        self.model_selection = int(os.getenv("NATIVE_MODEL_SELECTION", "0"))
        self.input_size: Tuple[int, int] = _NATIVE_INPUT_SIZES.get(
            self.model_selection, _NATIVE_INPUT_SIZES[0]
        )

        try:
            import mediapipe as mp
            self._mp_seg = mp.solutions.selfie_segmentation.SelfieSegmentation(
                model_selection=self.model_selection
            )
        except (ImportError, AttributeError, RuntimeError) as err:
            raise BackendUnavailable(f"MediaPipe selfie segmentation unavailable: {err}") from err

        logger.info(f"MediaPipe selfie segmentation loaded (model_selection={self.model_selection}, "
                    f"input={self.input_size[0]}x{self.input_size[1]})")

    # --------------------------------------------------
    def predict(self, rgb: np.ndarray) -> np.ndarray | None:
        """
        Args
        ----
        rgb : np.ndarray  (H, W, 3)  uint8  RGB order

        Returns
        -------
        mask : np.ndarray  (Hm, Wm)  float32  [0, 1], or None when the
               graph produced no mask at all.
        """
        w, h = self.input_size
        model_rgb = cv2.resize(np.ascontiguousarray(rgb), (w, h), interpolation=cv2.INTER_AREA)
        # the graph object is stateful, one frame at a time
        with self._lock:
            results = self._mp_seg.process(model_rgb)
        if results.segmentation_mask is None:
            return None
        return results.segmentation_mask.astype("float32")

    # --------------------------------------------------
    @classmethod
    def is_loaded(cls) -> bool:
        return cls._instance is not None

    @classmethod
    def release(cls) -> None:
        """Close the MediaPipe graph and drop the process-wide instance."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance._mp_seg.close()
                cls._instance = None
                logger.info("MediaPipe selfie segmentation released")
