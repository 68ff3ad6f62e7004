from __future__ import annotations
import logging
import os
import uuid
from io import BytesIO
from pathlib import Path
from typing import Iterable, Iterator, Union
from urllib.parse import unquote, urlparse

import numpy as np
from PIL import Image as PILImage, ImageOps, UnidentifiedImageError
from dotenv import load_dotenv

from ..models.errors import DecodeError, EncodeError
from ..models.image import SourceImage

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageRepository:
    """
    Handles file I/O and PNG encode/decode for pixel buffers.
    No segmentation logic in here.
    """
    def __init__(self, output_dir: Union[str, Path, None] = None):
        self.output_dir = Path(output_dir or os.getenv("SILHOUETTE_OUTPUT_DIR", "data/silhouettes"))
        self.VALID_EXTS = {
            ext.strip().lower()
            for ext in os.getenv("VALID_IMAGE_EXTENSIONS", ".png,.jpg,.jpeg,.webp,.bmp").split(",")
        }

    # ---------- locators ----------
    @staticmethod
    def resolve_locator(locator: Union[str, Path]) -> Path:
        """
        Accept a plain filesystem path or a file:// URI.
        Anything else (http://, content://, ...) is not a local file.
        """
        if isinstance(locator, Path):
            return locator
        parsed = urlparse(locator)
        if parsed.scheme == "file":
            if parsed.netloc not in ("", "localhost"):
                raise DecodeError(f"Not a local file reference: {locator}")
            return Path(unquote(parsed.path))
        # single letters are Windows drive letters, not schemes
        if parsed.scheme and len(parsed.scheme) > 1:
            raise DecodeError(f"Not a local file reference: {locator}")
        return Path(locator)

    @staticmethod
    def format_locator(path: Path, like: Union[str, Path]) -> str:
        """Return *path* in the same style as the caller's locator."""
        if isinstance(like, str) and like.startswith("file:"):
            return path.resolve().as_uri()
        return str(path)

    def new_output_path(self, prefix: str = "sil") -> Path:
        return self.output_dir / f"{prefix}_{uuid.uuid4().hex}.png"

    # ---------- codec ----------
    @staticmethod
    def _reduce_to_8bit(pil_img: PILImage.Image) -> PILImage.Image:
        """16-bit grayscale (I;16, I) → 8-bit L, keeping the high byte."""
        arr = np.clip(np.asarray(pil_img, dtype=np.int64), 0, 65535) >> 8
        return PILImage.fromarray(arr.astype(np.uint8))

    @staticmethod
    def decode(data: bytes) -> np.ndarray:
        """bytes → (H, W, 4) uint8 RGBA, camera EXIF orientation applied."""
        try:
            with PILImage.open(BytesIO(data)) as pil_img:
                pil_img = ImageOps.exif_transpose(pil_img)
                if pil_img.mode.startswith("I"):
                    pil_img = ImageRepository._reduce_to_8bit(pil_img)
                rgba = pil_img.convert("RGBA")
        except (UnidentifiedImageError, PILImage.DecompressionBombError, OSError, ValueError) as err:
            raise DecodeError(f"Not a decodable image: {err}") from err
        return np.array(rgba, dtype=np.uint8)

    @staticmethod
    def encode(pixels: np.ndarray) -> bytes:
        """(H, W, 4) uint8 RGBA → PNG bytes."""
        try:
            pil_img = PILImage.fromarray(np.ascontiguousarray(pixels))
            buf = BytesIO()
            pil_img.save(buf, format="PNG")
        except (ValueError, TypeError, OSError) as err:
            raise EncodeError(f"Could not encode PNG: {err}") from err
        return buf.getvalue()

    # ---------- file I/O ----------
    def load(self, locator: Union[str, Path]) -> SourceImage:
        path = self.resolve_locator(locator)
        try:
            data = path.read_bytes()
        except OSError as err:
            raise DecodeError(f"Image not found or unreadable: {path}") from err
        return SourceImage(pixels=self.decode(data), locator=str(locator), path=path)

    def save(self, pixels: np.ndarray, path: Path) -> Path:
        png = self.encode(pixels)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # "x" → never overwrite an existing file
            fh = open(path, "xb")
        except OSError as err:
            raise EncodeError(f"Could not write {path}: {err}") from err
        try:
            with fh:
                fh.write(png)
        except OSError as err:
            # no truncated artifact left behind
            path.unlink(missing_ok=True)
            raise EncodeError(f"Could not write {path}: {err}") from err
        return path

    def iter_dir(self, folder: Union[str, Path], *, recursive: bool = False) -> Iterator[Path]:
        """
        Yield image paths one at a time, skipping unknown extensions.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        pattern = "**/*" if recursive else "*"
        for p in sorted(folder.glob(pattern)):
            if not p.is_file():
                continue
            if p.suffix.lower() not in self.VALID_EXTS:
                logger.debug(f"Skipping due to extension: {p}")
                continue
            yield p

    def expand_inputs(self, inputs: Iterable[Union[str, Path]], *, recursive: bool = False) -> Iterator[Path]:
        for item in inputs:
            p = Path(item)
            if p.is_dir():
                yield from self.iter_dir(p, recursive=recursive)
            else:
                yield p
