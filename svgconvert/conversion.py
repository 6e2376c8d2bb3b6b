"""The conversion pipeline: decode, crop, resize, enhance, trace, canonicalize."""

import asyncio
import logging
from dataclasses import dataclass

from .borders import ContentArea
from .canonical import canonicalize, svg_dimensions
from .errors import (ConversionError, ConversionTimeout, DownstreamProcessingError,
                     MalformedContentArea, NoImageProvided, PayloadTooLarge)
from .imaging import ImageProcessor
from .options import ConversionOptions
from .tracing import Tracer, parameters_for

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60
DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class ConversionResult:
    svg: str
    original_size: int
    svg_size: int
    original_width: int
    original_height: int
    format: str

    def to_dict(self):
        return {
            'success': True,
            'svg': self.svg,
            'originalSize': self.original_size,
            'svgSize': self.svg_size,
            'metadata': {
                'originalWidth': self.original_width,
                'originalHeight': self.original_height,
                'format': self.format,
            },
        }

    @classmethod
    def from_dict(cls, data):
        metadata = data.get('metadata') or {}
        return cls(
            svg=data['svg'],
            original_size=data.get('originalSize', 0),
            svg_size=data.get('svgSize', len(data['svg'])),
            original_width=metadata.get('originalWidth'),
            original_height=metadata.get('originalHeight'),
            format=metadata.get('format'),
        )


class ConversionOrchestrator:
    """Runs one conversion request end to end.

    Holds no per-request state, so a single instance can serve concurrent
    requests. The processor and tracer can be swapped for tests.
    """

    def __init__(self, processor=None, tracer=None, timeout=DEFAULT_TIMEOUT,
                 max_image_bytes=DEFAULT_MAX_IMAGE_BYTES):
        self.processor = processor or ImageProcessor()
        self.tracer = tracer or Tracer()
        self.timeout = timeout
        self.max_image_bytes = max_image_bytes

    async def convert(self, image, options=None, content_area=None):
        """Convert image bytes to a canonical SVG document.

        ``content_area`` may be a ContentArea, a mapping or a JSON string.
        Raises ConversionError (or a subclass) on any failure.
        """
        self.check_payload(image)
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.run, image, options, content_area),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error('Conversion timed out after %ss', self.timeout)
            raise ConversionTimeout(
                f'Conversion did not finish within {self.timeout} seconds, please retry'
            ) from None

    def check_payload(self, image):
        if not image:
            raise NoImageProvided()
        if self.max_image_bytes and len(image) > self.max_image_bytes:
            raise PayloadTooLarge(
                f'Image is {len(image)} bytes, the limit is {self.max_image_bytes} bytes'
            )

    def run(self, image, options=None, content_area=None):
        """Synchronous pipeline; ``convert`` runs this in a worker thread."""
        options = options or ConversionOptions()
        self.check_payload(image)
        logger.info('Converting image to SVG (%d bytes, %s)', len(image), options)
        try:
            return self._run(image, options, content_area)
        except ConversionError:
            raise
        except Exception as e:
            logger.exception('Conversion failed')
            raise DownstreamProcessingError(str(e) or e.__class__.__name__) from e

    def _run(self, image, options, content_area):
        processor = self.processor
        with processor.decode(image) as decoded:
            logger.info('Original dimensions: %dx%d (%s)',
                        decoded.width, decoded.height, decoded.format)
            source = decoded.image
            bitmap = source

            if options.remove_border:
                bitmap = self._remove_border(bitmap, content_area)

            size = options.target_size.pixels
            if size:
                bitmap = _replace(bitmap, processor.resize_to_fit(bitmap, size), source)
                logger.info('Resized to %dx%d (target %dpx)', bitmap.width, bitmap.height, size)

            bitmap = _replace(bitmap, processor.enhance(bitmap), source)
            try:
                png = processor.encode_png(bitmap)
            finally:
                _replace(bitmap, None, source)

        parameters = parameters_for(options.quality)
        raw = self.tracer.trace(png, parameters)
        svg = canonicalize(raw, options)
        width, height = svg_dimensions(svg)
        logger.info('Conversion complete, SVG size: %d characters, view box %sx%s',
                    len(svg), width, height)
        return ConversionResult(
            svg=svg,
            original_size=len(image),
            svg_size=len(svg),
            original_width=decoded.width,
            original_height=decoded.height,
            format=decoded.format,
        )

    def _remove_border(self, bitmap, content_area):
        if content_area is not None:
            try:
                area = ContentArea.parse(content_area)
            except MalformedContentArea as e:
                logger.warning('Ignoring malformed content area (%s), falling back to trim', e)
            else:
                area = area.clamp(bitmap.width, bitmap.height)
                logger.info('Cropping to precomputed content area %s', area.to_dict())
                return self.processor.crop(bitmap, area)
        logger.info('Trimming background border')
        return self.processor.trim(bitmap)


def _replace(current, produced, source):
    """Close the intermediate ``current`` once ``produced`` supersedes it."""
    if current is not source and current is not produced:
        current.close()
    return produced
