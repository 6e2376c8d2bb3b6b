"""Read-only RGBA pixel buffers."""

import numpy as np


class PixelBuffer:
    """Immutable RGBA view over decoded image data.

    Samples are stored row-major with a top-left origin, four channels
    (red, green, blue, alpha) per pixel.
    """

    __slots__ = ('width', 'height', '_pixels')

    def __init__(self, width, height, pixels):
        pixels = np.array(pixels, dtype=np.uint8, copy=True)
        if pixels.shape != (height, width, 4):
            raise ValueError(
                f'Pixel array shape {pixels.shape} does not match {width}x{height} RGBA'
            )
        pixels.flags.writeable = False
        self.width = width
        self.height = height
        self._pixels = pixels

    @classmethod
    def from_bytes(cls, width, height, data):
        """Build a buffer from a flat sequence of RGBA samples."""
        if width < 1 or height < 1:
            raise ValueError('Pixel buffer must be at least 1x1')
        flat = np.frombuffer(bytes(data), dtype=np.uint8)
        if flat.size != width * height * 4:
            raise ValueError(
                f'Expected {width * height * 4} samples for {width}x{height}, got {flat.size}'
            )
        return cls(width, height, flat.reshape(height, width, 4))

    @classmethod
    def from_image(cls, image):
        """Build a buffer from a Pillow image (any mode)."""
        rgba = image.convert('RGBA')
        width, height = rgba.size
        return cls.from_bytes(width, height, rgba.tobytes())

    @property
    def pixels(self):
        """The (height, width, 4) uint8 array. Read-only."""
        return self._pixels

    @property
    def size(self):
        return self.width, self.height

    def brightness(self):
        """Per-pixel mean of the red, green and blue channels (alpha ignored)."""
        return self._pixels[..., :3].astype(np.float64).mean(axis=2)

    def alpha(self):
        return self._pixels[..., 3]

    def __repr__(self):
        return f'PixelBuffer({self.width}x{self.height})'
