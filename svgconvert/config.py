"""Process-wide settings, read once from the environment at startup."""

import os

DEFAULT_CORS_ORIGINS = ','.join(f'http://localhost:{port}' for port in range(5173, 5178))


def _origins(value):
    return [origin.strip() for origin in value.split(',') if origin.strip()]


class Config:
    MAX_CONTENT_LENGTH = int(float(os.environ.get('SVG_MAX_UPLOAD_MB', '10')) * 1024 * 1024)
    CONVERSION_TIMEOUT = float(os.environ.get('SVG_CONVERSION_TIMEOUT', '60'))
    CORS_ORIGINS = _origins(os.environ.get('SVG_CORS_ORIGINS', DEFAULT_CORS_ORIGINS))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    PORT = int(os.environ.get('PORT', '3001'))
