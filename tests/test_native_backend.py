"""Native backend: model-resolution masks scaled anisotropically to the photo."""

from __future__ import annotations

import numpy as np
import pytest

from silhouette.models.errors import (
    BackendUnavailable,
    InvalidSourceReference,
    NoSubjectFound,
    ProcessingError,
)
from silhouette.repositories.segmentation_repository import SegmentationRepository
from silhouette.services.segmentation_backends import NativeSegmentationBackend

from .conftest import make_source, solid_rgba


class FakeEngine:
    def __init__(self, mask=None, error: Exception | None = None):
        self.mask = mask
        self.error = error
        self.seen = []

    def predict(self, rgb):
        self.seen.append(rgb.shape)
        if self.error is not None:
            raise self.error
        return self.mask


def quadrant_mask(size: int = 32) -> np.ndarray:
    mask = np.zeros((size, size), dtype="float32")
    mask[: size // 2, : size // 2] = 1.0
    return mask


def backend_with(engine) -> NativeSegmentationBackend:
    return NativeSegmentationBackend(SegmentationRepository(engine=engine), thr=0.5)


def test_quadrant_scales_to_source_quadrant() -> None:
    source = make_source(solid_rgba(64, 64, (0, 0, 255, 255)))

    mask = backend_with(FakeEngine(quadrant_mask())).attempt(source)

    assert (mask.width, mask.height) == (64, 64)
    assert (mask.alpha[:32, :32] == 255).all()
    assert (mask.alpha[32:, :] == 0).all()
    assert (mask.alpha[:, 32:] == 0).all()
    # transition sits exactly on the quadrant edge
    assert mask.alpha[0, 31] == 255 and mask.alpha[0, 32] == 0
    assert mask.alpha[31, 0] == 255 and mask.alpha[32, 0] == 0


def test_scaling_is_independent_per_axis() -> None:
    # 32x32 mask onto a 64 wide, 128 tall photo: sx=2, sy=4
    source = make_source(solid_rgba(64, 128, (0, 0, 0, 255)))

    mask = backend_with(FakeEngine(quadrant_mask())).attempt(source)

    assert (mask.width, mask.height) == (64, 128)
    assert mask.alpha[63, 0] == 255 and mask.alpha[64, 0] == 0
    assert mask.alpha[0, 31] == 255 and mask.alpha[0, 32] == 0
    assert (mask.alpha[:60, :30] == 255).all()
    assert (mask.alpha[70:, :] == 0).all()
    assert (mask.alpha[:, 34:] == 0).all()


def test_mask_is_binary_with_white_rgb() -> None:
    soft = np.linspace(0.0, 1.0, 16 * 16, dtype="float32").reshape(16, 16)
    source = make_source(solid_rgba(40, 24, (5, 5, 5, 255)))

    mask = backend_with(FakeEngine(soft)).attempt(source)

    assert set(np.unique(mask.alpha)) <= {0, 255}
    assert (mask.pixels[:, :, :3] == 255).all()


def test_blend_with_clear_alpha_tracks_probability() -> None:
    weight = np.array([[0.0, 0.25, 1.0]], dtype="float32")

    rgba = SegmentationRepository.blend_with_clear(weight)

    assert rgba[0, :, 3].tolist() == [0, 64, 255]


def test_engine_without_mask_is_no_subject() -> None:
    with pytest.raises(NoSubjectFound):
        backend_with(FakeEngine(None)).attempt(make_source(solid_rgba(8, 8, (0, 0, 0, 255))))


def test_empty_mask_is_no_subject() -> None:
    empty = np.zeros((16, 16), dtype="float32")

    with pytest.raises(NoSubjectFound):
        backend_with(FakeEngine(empty)).attempt(make_source(solid_rgba(8, 8, (0, 0, 0, 255))))


def test_engine_crash_is_processing_error() -> None:
    engine = FakeEngine(error=RuntimeError("graph exploded"))

    with pytest.raises(ProcessingError):
        backend_with(engine).attempt(make_source(solid_rgba(8, 8, (0, 0, 0, 255))))


def test_malformed_mask_is_processing_error() -> None:
    with pytest.raises(ProcessingError):
        backend_with(FakeEngine(np.zeros((2, 2, 2, 2), dtype="float32"))).attempt(
            make_source(solid_rgba(8, 8, (0, 0, 0, 255)))
        )


def test_source_without_local_file_is_rejected() -> None:
    engine = FakeEngine(quadrant_mask())

    with pytest.raises(InvalidSourceReference):
        backend_with(engine).attempt(make_source(solid_rgba(8, 8, (0, 0, 0, 255)), path=None))
    assert engine.seen == []


def test_engine_receives_rgb_only() -> None:
    engine = FakeEngine(quadrant_mask())

    backend_with(engine).attempt(make_source(solid_rgba(10, 6, (0, 0, 0, 255))))

    assert engine.seen == [(6, 10, 3)]


def test_disabled_capability_is_unavailable() -> None:
    backend = NativeSegmentationBackend()

    assert backend.is_available() is False
    with pytest.raises(BackendUnavailable):
        backend.attempt(make_source(solid_rgba(8, 8, (0, 0, 0, 255))))
