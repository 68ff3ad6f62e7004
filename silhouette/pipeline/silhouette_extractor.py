# pipeline/silhouette_extractor.py
from __future__ import annotations
import asyncio
import logging
from pathlib import Path
from typing import Tuple, Union

from ..models.segmentation_outcome import SegmentationKind, SegmentationOutcome
from ..services.compositor_service import CompositorService
from ..services.image_service import ImageService
from ..services.mask_service import MaskService

logger = logging.getLogger(__name__)


class SilhouetteExtractor:
    """
    Photo → transparent cutout.

        • decode source once (DecodeError propagates)
        • backend chain → exactly one mask
        • composite + write one new PNG (EncodeError propagates)

    The source file is never modified.
    """

    def __init__(
            self,
            *,
            mask_service: MaskService | None = None,
            compositor: CompositorService | None = None,
            image_service: ImageService | None = None,
            kind: SegmentationKind | str = SegmentationKind.BODY,
    ):
        self.image_service = image_service or ImageService()
        self.mask_service = mask_service or MaskService(kind=kind)
        self.compositor = compositor or CompositorService(self.image_service)

    def extract(self, source_locator: Union[str, Path]) -> str:
        return self.run(source_locator)[0]

    def run(self, source_locator: Union[str, Path]) -> Tuple[str, SegmentationOutcome]:
        """Like extract(), also returning which backend produced the mask."""
        source = self.image_service.load(source_locator)
        logger.info(f"Extracting silhouette from {source.locator} ({source.width}x{source.height})")

        outcome = self.mask_service.generate(source)

        result = self.compositor.compose(source, outcome.mask, backend=outcome.backend)
        output_locator = self.image_service.save_result(result, like=source_locator)
        logger.info(f"Silhouette saved to {output_locator} (backend={outcome.backend})")
        return output_locator, outcome


# ------------------------------------------------------------------
def extract_silhouette(
    source_locator: Union[str, Path],
    *,
    kind: SegmentationKind | str = SegmentationKind.BODY,
    extractor: SilhouetteExtractor | None = None,
) -> str:
    """
    Produce a cutout for *source_locator* and return the new file's locator.

    Always returns when the source decodes; the result may be uncut if no
    segmentation backend could run.
    """
    extractor = extractor or SilhouetteExtractor(kind=kind)
    return extractor.extract(source_locator)


async def extract_silhouette_async(
    source_locator: Union[str, Path],
    *,
    kind: SegmentationKind | str = SegmentationKind.BODY,
    extractor: SilhouetteExtractor | None = None,
) -> str:
    """
    Awaitable form of extract_silhouette. The work runs on a worker thread
    and is not interrupted if the awaiting task is cancelled.
    """
    return await asyncio.to_thread(extract_silhouette, source_locator, kind=kind, extractor=extractor)
