import argparse
import logging
import os
import sys
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from ..models.errors import DecodeError, EncodeError
from ..models.segmentation_outcome import SegmentationKind
from ..pipeline.silhouette_extractor import SilhouetteExtractor
from ..services.image_service import ImageService
from ..repositories.image_repository import ImageRepository
from ..services.segmentation_backends import release_models

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cut subjects out of photos into transparent PNGs")
    parser.add_argument("inputs", nargs="+", help="Image files or folders")
    parser.add_argument("--kind", choices=[k.value for k in SegmentationKind], default=SegmentationKind.BODY.value)
    parser.add_argument("--output-dir", default=None, help="Where cutouts are written (SILHOUETTE_OUTPUT_DIR)")
    parser.add_argument("--recursive", action="store_true", help="Descend into sub-folders")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    image_service = ImageService(ImageRepository(output_dir=args.output_dir))
    extractor = SilhouetteExtractor(kind=args.kind, image_service=image_service)

    processed, failed, degraded = 0, 0, 0
    try:
        for path in image_service.stream_inputs(args.inputs, recursive=args.recursive):
            try:
                output, outcome = extractor.run(str(path))
            except (DecodeError, EncodeError) as err:
                logger.error(f"Skipping {path}: {err}")
                failed += 1
                continue
            processed += 1
            degraded += outcome.degraded
            print(f"{path} -> {output} [{outcome.backend}]")
    finally:
        release_models()

    logger.info(f"Done: {processed} cutouts ({degraded} uncut fallbacks), {failed} failed")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
