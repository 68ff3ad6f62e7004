from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from .image import Mask


class SegmentationKind(str, Enum):
    """Which on-device model to run: a person or a garment."""

    BODY = "body"
    CLOTHES = "clothes"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    DEGRADED = "degraded"  # opaque fallback mask, no cutout performed


@dataclass(frozen=True)
class SegmentationOutcome:
    """
    Result of running the backend chain once.

    Failure is never returned: a source that cannot be decoded raises
    DecodeError before the chain starts.
    """
    status: OutcomeStatus
    mask: Mask
    backend: str
    fallthroughs: List[Tuple[str, str]] = field(default_factory=list)  # (backend, reason)

    @property
    def degraded(self) -> bool:
        return self.status is OutcomeStatus.DEGRADED
