"""Raster image to embeddable SVG conversion."""

from .borders import ContentArea, BorderMeasurement, detect, resolve, detect_content_area
from .canonical import canonicalize, recolor, validate_svg
from .conversion import ConversionOrchestrator, ConversionResult
from .errors import ConversionError
from .options import ConversionOptions, Quality, TargetSize
from .pixels import PixelBuffer
from .preview import LivePreview, PreviewVectorizer

__version__ = '1.0.0'
