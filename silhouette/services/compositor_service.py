from __future__ import annotations
import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from ..models.errors import EncodeError
from ..models.image import CompositeResult, Mask, SourceImage
from .image_service import ImageService

logger = logging.getLogger(__name__)


class CompositorService:
    """
    Merge a photo's RGB with a mask's alpha.

    • Mask is resampled (bilinear) to the photo's size first.
    • RGB is copied verbatim, never premultiplied: viewers that assume
      premultiplied alpha may show a faint halo at cut edges.
    """

    def __init__(self, image_service: ImageService | None = None):
        self.image_service = image_service or ImageService()

    @staticmethod
    def resample_mask(mask: Mask, width: int, height: int) -> Mask:
        if mask.width == width and mask.height == height:
            return mask
        logger.debug(f"Resampling mask {mask.width}x{mask.height} → {width}x{height}")
        resized = cv2.resize(mask.pixels, (width, height), interpolation=cv2.INTER_LINEAR)
        return Mask(resized)

    def compose(self, source: SourceImage, mask: Mask, backend: str = "unknown") -> CompositeResult:
        resampled = self.resample_mask(mask, source.width, source.height)

        out = np.empty((source.height, source.width, 4), dtype=np.uint8)
        out[:, :, :3] = source.pixels[:, :, :3]
        out[:, :, 3] = resampled.alpha
        try:
            return CompositeResult(pixels=out, backend=backend)
        except ValueError as err:
            raise EncodeError(f"Could not build output image: {err}") from err

    def compose_files(self, original_locator: Union[str, Path], mask_locator: Union[str, Path]) -> str:
        """
        Compose two files already on disk. Raises DecodeError / EncodeError.
        """
        source = self.image_service.load(original_locator)
        mask = self.image_service.load_mask(mask_locator)
        result = self.compose(source, mask, backend="file")
        return self.image_service.save_result(result, like=original_locator)
