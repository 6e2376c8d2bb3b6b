#!/usr/bin/env python3
"""
Web service converting images to embeddable SVG.
Endpoints: conversion, live preview approximation, health check.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename

from svgconvert.config import Config
from svgconvert.conversion import ConversionOrchestrator
from svgconvert.errors import ConversionError, InvalidOptions, NoImageProvided
from svgconvert.options import ConversionOptions
from svgconvert.preview import DEFAULT_PROFILE, LivePreview

app = Flask(__name__)
app.config.from_object(Config)
CORS(app, origins=app.config['CORS_ORIGINS'])

logging.basicConfig(
    level=app.config['LOG_LEVEL'],
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'bmp', 'gif', 'webp', 'tiff'}

orchestrator = ConversionOrchestrator(
    timeout=app.config['CONVERSION_TIMEOUT'],
    max_image_bytes=app.config['MAX_CONTENT_LENGTH'],
)


def allowed_file(filename):
    # browsers upload blobs without an extension
    suffix = Path(filename).suffix.lower().lstrip('.')
    return not suffix or suffix in ALLOWED_EXTENSIONS


def read_upload():
    """Return the uploaded image bytes, or raise NoImageProvided."""
    file = request.files.get('image')
    if file is None or file.filename == '':
        raise NoImageProvided()
    filename = secure_filename(file.filename)
    if not allowed_file(filename):
        raise InvalidOptions(f'Unsupported file type: {filename}')
    data = file.read()
    if not data:
        raise NoImageProvided('Uploaded image is empty')
    return data


@app.errorhandler(ConversionError)
def conversion_failed(e):
    if e.status_code >= 500:
        logger.error('Conversion error: %s', e)
    return jsonify({'success': False, 'error': str(e), 'retriable': e.retriable}), e.status_code


@app.errorhandler(RequestEntityTooLarge)
def too_large(e):
    limit = app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)
    return jsonify({'success': False, 'error': f'Image exceeds the {limit}MB upload limit'}), 413


@app.route('/')
def index():
    return jsonify({'service': 'svg-converter', 'status': 'running'})


@app.route('/health')
@app.route('/api/health')
def health():
    return jsonify({'status': 'healthy', 'timestamp': datetime.now(timezone.utc).isoformat()})


@app.route('/convert-to-svg', methods=['POST'])
@app.route('/api/convert-to-svg', methods=['POST'])
async def convert():
    """Convert an uploaded image to SVG."""
    image = read_upload()
    options = ConversionOptions.from_form(request.form)
    content_area = request.form.get('contentArea') or request.form.get('borderData')

    logger.info('Options: %s (content area supplied: %s)', options, content_area is not None)
    result = await orchestrator.convert(image, options, content_area)
    return jsonify(result.to_dict())


@app.route('/api/preview', methods=['POST'])
async def preview():
    """Fast approximate preview of an uploaded image."""
    image = read_upload()
    options = ConversionOptions.from_form(request.form)
    live = LivePreview(DEFAULT_PROFILE, processor=orchestrator.processor)
    svg = await live.update(image, options)
    if not svg:
        return jsonify({'error': 'Preview could not be generated', 'success': False}), 422
    return jsonify({'svg': svg, 'success': True})


if __name__ == '__main__':
    port = app.config['PORT']
    print("Starting SVG conversion server...")
    print(f"Listening on http://localhost:{port}")
    app.run(debug=False, host='0.0.0.0', port=port)
