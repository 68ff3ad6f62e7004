# models/segmentation_model.py
from __future__ import annotations
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple

import numpy as np
import onnxruntime as ort
from dotenv import load_dotenv

from .errors import InferenceError, ModelUnavailable
from .segmentation_outcome import SegmentationKind

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelSpec:
    asset: str
    input_size: Tuple[int, int]  # (width, height) of the fixed input box


MODEL_SPECS: Dict[SegmentationKind, ModelSpec] = {
    SegmentationKind.BODY: ModelSpec("selfie_segmentation.onnx", (256, 256)),
    SegmentationKind.CLOTHES: ModelSpec("u2netp_clothes.onnx", (320, 320)),
}


class SegmentationModel:
    """
    Process-wide cache of onnxruntime sessions, one per SegmentationKind.

    • Lazily loaded under a lock, so concurrent callers never load twice.
    • Read-only after load: InferenceSession.run is safe to call from
      several threads at once.
    • release() / release_all() drop the sessions to free model memory.
    """

    _instances: Dict[SegmentationKind, "SegmentationModel"] = {}
    _lock = threading.RLock()

    # ───────────────────────── singleton ctor
    def __new__(cls, kind: SegmentationKind | str = SegmentationKind.BODY):
        kind = SegmentationKind(kind)
        with cls._lock:
            if kind not in cls._instances:
                instance = super().__new__(cls)
                instance._init(kind)
                cls._instances[kind] = instance
            return cls._instances[kind]

    # ───────────────────────── actual init
    def _init(self, kind: SegmentationKind) -> None:
        spec = MODEL_SPECS[kind]
        model_dir = Path(os.getenv("SILHOUETTE_MODEL_DIR", "assets/models"))
        self.kind = kind
        self.path = model_dir / spec.asset
        self.input_size = spec.input_size

        if not self.path.is_file():
            raise ModelUnavailable(f"Model asset not found: {self.path}")

        providers = [p.strip() for p in os.getenv("ORT_PROVIDERS", "CPUExecutionProvider").split(",") if p.strip()]
        try:
            self.session = ort.InferenceSession(str(self.path), providers=providers)
        except Exception as err:  # onnxruntime raises its own Fail/InvalidGraph types
            raise ModelUnavailable(f"Failed to load {self.path.name}: {err}") from err

        model_input = self.session.get_inputs()[0]
        self.input_name = model_input.name
        # NCHW models declare 3 channels on axis 1, NHWC models on the last axis
        self.channels_first = len(model_input.shape) == 4 and model_input.shape[1] == 3
        logger.info(f"Loaded {kind.value} model {self.path.name} "
                    f"(input={self.input_size[0]}x{self.input_size[1]}, "
                    f"layout={'NCHW' if self.channels_first else 'NHWC'})")

    # ───────────────────────── public API
    def infer(self, tensor: np.ndarray) -> np.ndarray:
        """
        Args
        ----
        tensor : np.ndarray  (1, H, W, 3)  float32  [0, 1]

        Returns
        -------
        out : np.ndarray  flat float32, one value per output position
        """
        if self.channels_first:
            tensor = np.transpose(tensor, (0, 3, 1, 2))
        try:
            outputs = self.session.run(None, {self.input_name: np.ascontiguousarray(tensor)})
        except Exception as err:  # onnxruntime wraps runtime failures in its own types
            raise InferenceError(f"{self.path.name} inference failed: {err}") from err
        if not outputs:
            raise InferenceError(f"{self.path.name} returned no outputs")
        return np.asarray(outputs[0], dtype="float32").ravel()

    # ───────────────────────── teardown
    @classmethod
    def is_loaded(cls, kind: SegmentationKind | str) -> bool:
        return SegmentationKind(kind) in cls._instances

    @classmethod
    def release(cls, kind: SegmentationKind | str) -> None:
        with cls._lock:
            if cls._instances.pop(SegmentationKind(kind), None) is not None:
                logger.info(f"Released {SegmentationKind(kind).value} model")

    @classmethod
    def release_all(cls) -> None:
        with cls._lock:
            cls._instances.clear()
