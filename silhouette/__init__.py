from .models.errors import (
    BackendError,
    DecodeError,
    EncodeError,
    InferenceError,
    ModelUnavailable,
    NoSubjectFound,
    SilhouetteError,
)
from .models.segmentation_outcome import SegmentationKind
from .pipeline.silhouette_extractor import SilhouetteExtractor, extract_silhouette, extract_silhouette_async

__all__ = [
    "BackendError",
    "DecodeError",
    "EncodeError",
    "InferenceError",
    "ModelUnavailable",
    "NoSubjectFound",
    "SegmentationKind",
    "SilhouetteError",
    "SilhouetteExtractor",
    "extract_silhouette",
    "extract_silhouette_async",
]
