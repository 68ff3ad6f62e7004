from pathlib import Path
from typing import Iterable, Iterator, Union

from ..models.image import CompositeResult, Mask, SourceImage
from ..repositories.image_repository import ImageRepository


class ImageService:
    """I/O helpers. No segmentation logic, no model imports."""

    def __init__(self, image_repository: ImageRepository | None = None):
        self.image_repository = image_repository or ImageRepository()

    @property
    def output_dir(self) -> Path:
        return self.image_repository.output_dir

    def load(self, locator: Union[str, Path]) -> SourceImage:
        """Decode a source photo once. Raises DecodeError."""
        return self.image_repository.load(locator)

    def load_mask(self, locator: Union[str, Path]) -> Mask:
        """Decode a mask file; only its alpha channel is kept."""
        pixels = self.image_repository.load(locator).pixels
        return Mask.from_alpha(pixels[:, :, 3])

    def save_result(self, result: CompositeResult, like: Union[str, Path]) -> str:
        """
        Write *result* as PNG to a brand-new file and return its locator,
        formatted the same way as *like* (path or file:// URI).
        """
        path = self.image_repository.save(result.pixels, self.image_repository.new_output_path())
        return self.image_repository.format_locator(path, like)

    def stream_inputs(self, inputs: Iterable[Union[str, Path]], *, recursive: bool = False) -> Iterator[Path]:
        """
        Expand files and folders into image paths lazily.
        """
        return self.image_repository.expand_inputs(inputs, recursive=recursive)
