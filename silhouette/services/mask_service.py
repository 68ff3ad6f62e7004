from __future__ import annotations
import logging
from typing import List, Sequence, Tuple

from ..models.errors import BackendError
from ..models.image import SourceImage
from ..models.segmentation_outcome import OutcomeStatus, SegmentationKind, SegmentationOutcome
from .segmentation_backends import OpaqueFallbackBackend, SegmentationBackend, default_backends

logger = logging.getLogger(__name__)


class MaskService:
    """
    Mask generator: walks an ordered backend list, first mask wins.

    The degradation policy is the list itself. The opaque fallback is
    appended when the caller's list does not already end with one, so
    generate() always returns a mask for a decoded source.
    """

    def __init__(
            self,
            backends: Sequence[SegmentationBackend] | None = None,
            kind: SegmentationKind | str = SegmentationKind.BODY,
    ) -> None:
        chain = list(backends) if backends is not None else default_backends(kind)
        if not chain or not isinstance(chain[-1], OpaqueFallbackBackend):
            chain.append(OpaqueFallbackBackend())
        self.backends: List[SegmentationBackend] = chain

    def generate(self, source: SourceImage) -> SegmentationOutcome:
        fallthroughs: List[Tuple[str, str]] = []

        for backend in self.backends:
            try:
                mask = backend.attempt(source)
            except BackendError as err:
                logger.warning(f"{backend.name} backend failed ({type(err).__name__}: {err}), falling through")
                fallthroughs.append((backend.name, f"{type(err).__name__}: {err}"))
                continue

            status = OutcomeStatus.DEGRADED if isinstance(backend, OpaqueFallbackBackend) else OutcomeStatus.SUCCESS
            logger.info(f"Mask from {backend.name} backend ({mask.width}x{mask.height}, {status.value})")
            return SegmentationOutcome(status=status, mask=mask, backend=backend.name, fallthroughs=fallthroughs)

        # unreachable: the chain always ends with the opaque fallback
        raise RuntimeError("Backend chain exhausted without a mask")

    def availability(self) -> dict:
        """Backend name → whether it can currently run."""
        return {backend.name: backend.is_available() for backend in self.backends}
