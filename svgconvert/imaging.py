"""Raster operations around the tracer: decode, crop, trim, resize, enhance."""

import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageChops, ImageEnhance, ImageOps, UnidentifiedImageError

from .errors import DecodeError
from .pixels import PixelBuffer

logger = logging.getLogger(__name__)

TRIM_BACKGROUND = '#ffffff'
TRIM_THRESHOLD = 10
BRIGHTNESS = 1.1
SATURATION = 1.2


@dataclass
class DecodedImage:
    image: Image.Image
    width: int
    height: int
    format: str

    def close(self):
        self.image.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class ImageProcessor:
    """Pillow implementation of the raster steps of a conversion.

    Every method returns a new image; inputs are left untouched.
    """

    def decode(self, data):
        """Decode image bytes, keeping only the first frame."""
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise DecodeError(f'Could not decode image: {e}') from e
        fmt = (image.format or 'unknown').lower()
        if getattr(image, 'n_frames', 1) > 1:
            logger.info('Image has %d frames, using the first', image.n_frames)
            image.seek(0)
            first = image.copy()
            image.close()
            image = first
        return DecodedImage(image=image, width=image.width, height=image.height, format=fmt)

    def crop(self, image, area):
        area = area.clamp(image.width, image.height)
        return image.crop(area.box)

    def trim(self, image, background=TRIM_BACKGROUND, threshold=TRIM_THRESHOLD):
        """Trim margins close to ``background``.

        Returns the image unchanged when nothing differs from the background.
        """
        rgb = _flatten(image)
        diff = ImageChops.difference(rgb, Image.new('RGB', rgb.size, background))
        mask = diff.convert('L').point(lambda p: 255 if p > threshold else 0)
        bbox = mask.getbbox()
        if bbox is None:
            logger.info('Trim found no content, keeping the full image')
            return image
        return image.crop(bbox)

    def resize_to_fit(self, image, target):
        """Resize so the longer edge equals ``target``, enlarging if needed."""
        scale = target / max(image.width, image.height)
        size = (max(1, round(image.width * scale)), max(1, round(image.height * scale)))
        return image.resize(size, Image.LANCZOS)

    def enhance(self, image):
        """Normalize levels and boost brightness and saturation for tracing."""
        rgb = _flatten(image)
        rgb = ImageOps.autocontrast(rgb)
        rgb = ImageEnhance.Brightness(rgb).enhance(BRIGHTNESS)
        return ImageEnhance.Color(rgb).enhance(SATURATION)

    def encode_png(self, image):
        """Encode losslessly with no compression."""
        buffer = io.BytesIO()
        image.save(buffer, format='PNG', compress_level=0)
        return buffer.getvalue()

    def thumbnail(self, image, max_size):
        """Downsized copy that fits a ``max_size`` box (never enlarges)."""
        copy = image.copy()
        copy.thumbnail((max_size, max_size), Image.LANCZOS)
        return copy

    def to_pixel_buffer(self, image):
        return PixelBuffer.from_image(image)


def _flatten(image):
    """RGB copy with any transparency composited onto white."""
    if image.mode in ('RGBA', 'LA') or (image.mode == 'P' and 'transparency' in image.info):
        rgba = image.convert('RGBA')
        background = Image.new('RGBA', rgba.size, (255, 255, 255, 255))
        return Image.alpha_composite(background, rgba).convert('RGB')
    return image.convert('RGB')
