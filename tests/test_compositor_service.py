"""Compositing: RGB verbatim, alpha from the resampled mask."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from silhouette.models.errors import DecodeError
from silhouette.models.image import Mask
from silhouette.services.compositor_service import CompositorService

from .conftest import make_source, read_png, solid_rgba


def test_resample_uniform_opaque_mask_stays_opaque() -> None:
    mask = Mask.opaque(50, 30)

    resampled = CompositorService.resample_mask(mask, 123, 77)

    assert (resampled.width, resampled.height) == (123, 77)
    assert (resampled.alpha == 255).all()


def test_red_source_with_small_opaque_mask(image_service) -> None:
    source = make_source(solid_rgba(100, 100, (255, 0, 0, 255)))
    mask = Mask(solid_rgba(50, 50, (255, 255, 255, 255)))

    result = CompositorService(image_service).compose(source, mask)

    assert result.pixels.shape == (100, 100, 4)
    assert (result.pixels == np.array([255, 0, 0, 255], dtype=np.uint8)).all()


def test_rgb_is_copied_verbatim_regardless_of_mask() -> None:
    rng = np.random.default_rng(7)
    source = make_source(rng.integers(0, 256, (40, 60, 4), dtype=np.uint8))
    alpha = rng.choice(np.array([0, 255], dtype=np.uint8), size=(40, 60))

    result = CompositorService().compose(source, Mask.from_alpha(alpha))

    assert (result.pixels[:, :, :3] == source.pixels[:, :, :3]).all()
    assert (result.pixels[:, :, 3] == alpha).all()


def test_alpha_matches_resampled_mask() -> None:
    source = make_source(solid_rgba(64, 48, (0, 128, 0, 255)))
    alpha = np.zeros((12, 16), dtype=np.uint8)
    alpha[:6, :] = 255
    mask = Mask.from_alpha(alpha)

    result = CompositorService().compose(source, mask)
    expected = CompositorService.resample_mask(mask, 64, 48).alpha

    assert (result.pixels[:, :, 3] == expected).all()
    assert (result.pixels[:, :, :3] == (0, 128, 0)).all()


def test_source_alpha_is_ignored() -> None:
    source = make_source(solid_rgba(4, 4, (10, 10, 10, 0)))

    result = CompositorService().compose(source, Mask.opaque(4, 4))

    assert (result.pixels[:, :, 3] == 255).all()


def test_compose_does_not_touch_inputs() -> None:
    source = make_source(solid_rgba(8, 8, (1, 2, 3, 4)))
    mask = Mask.from_alpha(np.zeros((4, 4), dtype=np.uint8))

    CompositorService().compose(source, mask)

    assert (source.pixels == (1, 2, 3, 4)).all()
    assert (mask.alpha == 0).all()
    assert not source.pixels.flags.writeable


def test_compose_files_writes_new_png(image_service, write_png, output_dir) -> None:
    original = write_png(solid_rgba(20, 10, (0, 0, 255, 255)), "original.png")
    mask_pixels = solid_rgba(10, 5, (255, 255, 255, 0))
    mask_pixels[:, :5, 3] = 255
    mask_path = write_png(mask_pixels, "mask.png")

    out = CompositorService(image_service).compose_files(str(original), str(mask_path))

    written = read_png(out)
    assert written.shape == (10, 20, 4)
    assert (written[:, :, :3] == (0, 0, 255)).all()
    assert (written[:, :9, 3] == 255).all()
    assert (written[:, 11:, 3] == 0).all()
    assert list(output_dir.iterdir()) == [Path(out)]


def test_compose_files_rejects_undecodable_mask(image_service, write_png, tmp_path) -> None:
    original = write_png(solid_rgba(4, 4, (0, 0, 0, 255)))
    bad_mask = tmp_path / "mask.png"
    bad_mask.write_bytes(b"nope")

    with pytest.raises(DecodeError):
        CompositorService(image_service).compose_files(str(original), str(bad_mask))
