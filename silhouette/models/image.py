from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import numpy as np


def as_pixel_buffer(pixels: np.ndarray) -> np.ndarray:
    """
    Validate an RGBA8 raster and freeze it.

    Shape (H, W, 4), dtype uint8, C-contiguous, no padding.
    The returned array is read-only, so downstream stages must allocate
    their own buffer instead of editing this one.
    """
    if not isinstance(pixels, np.ndarray):
        raise ValueError(f"Pixel buffer must be a numpy array, got {type(pixels).__name__}")
    if pixels.dtype != np.uint8:
        raise ValueError(f"Pixel buffer must be uint8, got {pixels.dtype}")
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Pixel buffer must be (H, W, 4), got {pixels.shape}")
    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise ValueError("Pixel buffer must not be empty")

    frozen = np.ascontiguousarray(pixels)
    if frozen is pixels:
        frozen = pixels.view()
    frozen.flags.writeable = False
    return frozen


@dataclass(frozen=True, eq=False)
class SourceImage:
    """
    Decoded source photo: RGBA pixels + the locator it came from.
    """
    pixels: np.ndarray  # Shape (H, W, 4), dtype uint8, RGBA order.
    locator: str  # Locator exactly as the caller passed it.
    path: Path | None = None  # Resolved local file.

    def __post_init__(self):
        object.__setattr__(self, "pixels", as_pixel_buffer(self.pixels))

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def rgb(self) -> np.ndarray:
        return self.pixels[:, :, :3]


@dataclass(frozen=True, eq=False)
class Mask:
    """
    Foreground mask. Only the alpha channel carries meaning:
    0 = background (discard), 255 = foreground (keep). RGB is white.
    """
    pixels: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "pixels", as_pixel_buffer(self.pixels))

    @classmethod
    def from_alpha(cls, alpha: np.ndarray) -> "Mask":
        if alpha.ndim != 2:
            raise ValueError(f"Alpha plane must be (H, W), got {alpha.shape}")
        h, w = alpha.shape
        rgba = np.full((h, w, 4), 255, dtype=np.uint8)
        rgba[:, :, 3] = alpha
        return cls(rgba)

    @classmethod
    def opaque(cls, width: int, height: int) -> "Mask":
        return cls(np.full((height, width, 4), 255, dtype=np.uint8))

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[:, :, 3]


@dataclass(frozen=True, eq=False)
class CompositeResult:
    """
    Final cutout: source RGB carried verbatim (not premultiplied) with the
    mask's alpha, at the source's resolution.
    """
    pixels: np.ndarray
    backend: str  # Name of the backend whose mask was used.

    def __post_init__(self):
        object.__setattr__(self, "pixels", as_pixel_buffer(self.pixels))

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]
