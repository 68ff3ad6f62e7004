"""
Interchangeable mask backends.

Each backend implements ``attempt(source) -> Mask`` and signals failure by
raising a BackendError subclass. The mask generator walks an ordered list
of them; the opaque fallback always closes the list and never raises.
"""
from __future__ import annotations
import os
from typing import List, Protocol

import numpy as np
from dotenv import load_dotenv

from ..models.errors import BackendUnavailable, InvalidSourceReference, ModelUnavailable, NoSubjectFound
from ..models.image import Mask, SourceImage
from ..models.segmentation_engine import SegmentationEngine
from ..models.segmentation_model import SegmentationModel
from ..models.segmentation_outcome import SegmentationKind
from ..repositories.model_repository import ModelRepository
from ..repositories.segmentation_repository import SegmentationRepository

load_dotenv()


class SegmentationBackend(Protocol):
    name: str

    def is_available(self) -> bool:
        ...

    def attempt(self, source: SourceImage) -> Mask:
        ...


# --------------------------------------------------------------
class NativeSegmentationBackend:
    """Platform person segmentation (MediaPipe), highest fidelity."""

    name = "native"

    def __init__(self, repo: SegmentationRepository | None = None, thr: float | None = None):
        self.repo = repo or SegmentationRepository()
        self.thr = thr if thr is not None else float(os.getenv("NATIVE_MASK_THRESHOLD", "0.5"))

    def is_available(self) -> bool:
        try:
            self.repo.engine
        except BackendUnavailable:
            return False
        return True

    def attempt(self, source: SourceImage) -> Mask:
        if source.path is None:
            raise InvalidSourceReference(f"Source is not a local file: {source.locator}")

        rgba = self.repo.retrieve_probability_rgba(source.rgb)
        # masks leave the generator binary; strictly above thr is foreground
        binary = np.where(rgba[:, :, 3] > round(self.thr * 255), 255, 0).astype("uint8")
        if not binary.any():
            raise NoSubjectFound("No pixel above the foreground threshold")
        return Mask.from_alpha(binary)


# --------------------------------------------------------------
class OnDeviceModelBackend:
    """Fixed-input onnxruntime model selected by kind (body / clothes)."""

    name = "model"

    def __init__(
            self,
            kind: SegmentationKind | str = SegmentationKind.BODY,
            repo: ModelRepository | None = None,
            thr: float | None = None,
    ):
        self.kind = SegmentationKind(kind)
        self.repo = repo or ModelRepository()
        self.thr = thr if thr is not None else float(os.getenv("MODEL_MASK_THRESHOLD", "0.5"))

    def is_available(self) -> bool:
        try:
            self.repo.model_loader(self.kind)
        except ModelUnavailable:
            return False
        return True

    def attempt(self, source: SourceImage) -> Mask:
        alpha = self.repo.retrieve_mask(source.pixels, self.kind, thr=self.thr)
        return Mask.from_alpha(alpha)


# --------------------------------------------------------------
class OpaqueFallbackBackend:
    """All-opaque mask at the source's size: compositing leaves the photo uncut."""

    name = "opaque"

    def is_available(self) -> bool:
        return True

    def attempt(self, source: SourceImage) -> Mask:
        return Mask.opaque(source.width, source.height)


def default_backends(kind: SegmentationKind | str = SegmentationKind.BODY) -> List[SegmentationBackend]:
    """Priority order: native → on-device model → opaque fallback."""
    return [
        NativeSegmentationBackend(),
        OnDeviceModelBackend(kind),
        OpaqueFallbackBackend(),
    ]


def release_models() -> None:
    """Drop every cached engine/session so the host can reclaim model memory."""
    SegmentationEngine.release()
    SegmentationModel.release_all()
