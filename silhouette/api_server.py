#!/usr/bin/env python3
"""
Silhouette Extractor API Server
Upload a photo, get back a transparent-background PNG cutout.
"""

import os
import logging
import uuid
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename

from .models.errors import DecodeError, EncodeError
from .models.segmentation_outcome import SegmentationKind
from .pipeline.silhouette_extractor import SilhouetteExtractor
from .services.image_service import ImageService
from .services.mask_service import MaskService

logger = logging.getLogger(__name__)


def allowed_file(filename: str, allowed_extensions) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in allowed_extensions


def create_app(extractors=None, image_service: ImageService = None) -> Flask:
    """
    Build the Flask app.

    extractors: optional {SegmentationKind: SilhouetteExtractor} map, one
    pipeline per kind. Built lazily from the environment when omitted.
    """
    app = Flask(__name__)
    CORS(app)  # Enable CORS for the mobile/web client

    upload_folder = Path(os.getenv("UPLOAD_FOLDER", "data/temp_uploads"))
    allowed_extensions = set(os.getenv("ALLOWED_EXTENSIONS", "png,jpg,jpeg,webp,bmp").split(","))
    max_mb = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25"))
    app.config['UPLOAD_FOLDER'] = str(upload_folder)
    app.config['MAX_CONTENT_LENGTH'] = max_mb * 1024 * 1024

    upload_folder.mkdir(parents=True, exist_ok=True)

    image_service = image_service or ImageService()
    extractors = dict(extractors or {})

    def get_extractor(kind: SegmentationKind) -> SilhouetteExtractor:
        if kind not in extractors:
            extractors[kind] = SilhouetteExtractor(kind=kind, image_service=image_service)
        return extractors[kind]

    @app.route('/api/silhouette', methods=['POST'])
    def create_silhouette():
        """Cut the subject out of an uploaded photo."""
        if 'image' not in request.files:
            return jsonify({'success': False, 'message': 'No image provided'}), 400

        file = request.files['image']
        if file.filename == '':
            return jsonify({'success': False, 'message': 'No file selected'}), 400
        if not allowed_file(file.filename, allowed_extensions):
            return jsonify({'success': False, 'message': 'Unsupported file type'}), 400

        try:
            kind = SegmentationKind(request.form.get('kind', SegmentationKind.BODY.value))
        except ValueError:
            return jsonify({'success': False, 'message': 'kind must be "body" or "clothes"'}), 400

        filename = secure_filename(file.filename)
        upload_path = upload_folder / f"src_{uuid.uuid4().hex}_{filename}"
        file.save(str(upload_path))

        try:
            output_locator, outcome = get_extractor(kind).run(str(upload_path))
        except DecodeError as e:
            logger.warning(f"Rejected upload {filename}: {e}")
            return jsonify({'success': False, 'message': f'Could not decode image: {e}'}), 400
        except EncodeError as e:
            logger.error(f"Could not write silhouette for {filename}: {e}")
            return jsonify({'success': False, 'message': 'Could not produce silhouette'}), 500
        finally:
            # Clean up temp upload
            upload_path.unlink(missing_ok=True)

        output_name = Path(output_locator).name
        return jsonify({
            'success': True,
            'output': output_locator,
            'url': f"/api/silhouette/{output_name}",
            'backend': outcome.backend,
            'degraded': outcome.degraded,
            'fallthroughs': [{'backend': name, 'reason': reason} for name, reason in outcome.fallthroughs],
        })

    @app.route('/api/silhouette/<filename>')
    def serve_silhouette(filename):
        """Serve a produced cutout."""
        image_path = image_service.output_dir / secure_filename(filename)
        if image_path.is_file():
            return send_file(image_path.resolve(), mimetype='image/png')
        return jsonify({'error': 'Image not found'}), 404

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint, with which backends can currently run."""
        try:
            kind = SegmentationKind(request.args.get('kind', SegmentationKind.BODY.value))
        except ValueError:
            return jsonify({'error': 'kind must be "body" or "clothes"'}), 400
        mask_service: MaskService = get_extractor(kind).mask_service
        return jsonify({
            'status': 'healthy',
            'message': 'Silhouette Extractor API is running',
            'backends': mask_service.availability(),
        })

    @app.errorhandler(413)
    def too_large(e):
        """Handle file too large error."""
        return jsonify({'error': f'File too large. Maximum size is {max_mb}MB.'}), 413

    @app.errorhandler(500)
    def internal_error(e):
        """Handle internal server error."""
        logger.error(f"Internal server error: {e}")
        return jsonify({'error': 'Internal server error'}), 500

    return app


def main():
    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )
    app = create_app()
    logger.info(f"Upload directory: {app.config['UPLOAD_FOLDER']}")
    app.run(host='0.0.0.0', port=int(os.getenv("API_SERVER_PORT", "5002")))


if __name__ == '__main__':
    main()
