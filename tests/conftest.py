"""Shared fixtures: on-disk photos, isolated output folders, fake backends."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path

import numpy as np
import pytest
from PIL import Image as PILImage

from silhouette.models.errors import BackendError
from silhouette.models.image import Mask, SourceImage
from silhouette.models.segmentation_engine import SegmentationEngine
from silhouette.models.segmentation_model import SegmentationModel
from silhouette.repositories.image_repository import ImageRepository
from silhouette.services.image_service import ImageService


def solid_rgba(width: int, height: int, color) -> np.ndarray:
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:, :] = color
    return pixels


def png_bytes(pixels: np.ndarray) -> bytes:
    buf = BytesIO()
    PILImage.fromarray(pixels).save(buf, format="PNG")
    return buf.getvalue()


def read_png(path) -> np.ndarray:
    with PILImage.open(path) as img:
        return np.array(img.convert("RGBA"))


def make_source(pixels: np.ndarray, path: Path | None = Path("photo.png")) -> SourceImage:
    return SourceImage(pixels=pixels, locator=str(path), path=path)


class StaticBackend:
    """Backend returning a fixed mask, counting calls."""

    def __init__(self, name: str, mask: Mask):
        self.name = name
        self.mask = mask
        self.calls = 0

    def is_available(self) -> bool:
        return True

    def attempt(self, source):
        self.calls += 1
        return self.mask


class FailingBackend:
    """Backend raising the given BackendError, counting calls."""

    def __init__(self, name: str, error: BackendError):
        self.name = name
        self.error = error
        self.calls = 0

    def is_available(self) -> bool:
        return False

    def attempt(self, source):
        self.calls += 1
        raise self.error


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv("SILHOUETTE_OUTPUT_DIR", str(tmp_path / "silhouettes"))
    monkeypatch.setenv("SILHOUETTE_MODEL_DIR", str(tmp_path / "no-models"))
    monkeypatch.setenv("NATIVE_SEGMENTATION_ENABLED", "0")
    monkeypatch.setenv("UPLOAD_FOLDER", str(tmp_path / "uploads"))
    yield
    SegmentationEngine.release()
    SegmentationModel.release_all()


@pytest.fixture
def output_dir(tmp_path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def image_service(output_dir) -> ImageService:
    return ImageService(ImageRepository(output_dir=output_dir))


@pytest.fixture
def write_png(tmp_path):
    def _write(pixels: np.ndarray, name: str = "source.png") -> Path:
        path = tmp_path / name
        path.write_bytes(png_bytes(pixels))
        return path

    return _write
