"""Border detection and content-area resolution.

Detection scans brightness inward from each edge of an image to measure the
background margin framing its content. The measurement can be taken on a
downsized copy (the live preview) or at full resolution (the precise pass
that drives cropping before tracing); the resolver maps it back to an exact
rectangle in original-image pixels.
"""

import json
import math
from dataclasses import dataclass

import numpy as np

from .errors import MalformedContentArea

# Coarse threshold for interactive previews, finer one for the pre-crop pass.
PREVIEW_THRESHOLD = 220
PRECISE_THRESHOLD = 240


@dataclass(frozen=True)
class BorderMeasurement:
    """Thickness, in pixels, of the background margin on each edge."""

    top: int = 0
    bottom: int = 0
    left: int = 0
    right: int = 0

    @property
    def has_border(self):
        return any((self.top, self.bottom, self.left, self.right))

    def to_dict(self):
        return {'top': self.top, 'bottom': self.bottom, 'left': self.left, 'right': self.right}


@dataclass(frozen=True)
class ContentArea:
    """Axis-aligned rectangle in original-image pixel coordinates."""

    x: int
    y: int
    width: int
    height: int

    @property
    def box(self):
        """(left, upper, right, lower) tuple as used by ``Image.crop``."""
        return self.x, self.y, self.x + self.width, self.y + self.height

    def clamp(self, image_width, image_height):
        """Return a copy that lies inside the image and is at least 1x1."""
        x = min(max(self.x, 0), image_width - 1)
        y = min(max(self.y, 0), image_height - 1)
        width = min(max(self.width, 1), image_width - x)
        height = min(max(self.height, 1), image_height - y)
        return ContentArea(x, y, width, height)

    def to_dict(self):
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}

    def to_json(self):
        return json.dumps(self.to_dict())

    @classmethod
    def parse(cls, payload):
        """Parse a content area from a JSON string, bytes or mapping.

        Accepts ``{x, y, width, height}``, the ``left``/``top`` aliases, and
        the ``{"contentArea": {...}}`` wrapper sent by older clients.
        """
        if isinstance(payload, cls):
            return payload
        if isinstance(payload, (bytes, bytearray)):
            payload = payload.decode('utf-8', errors='replace')
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                raise MalformedContentArea(f'Content area is not valid JSON: {e}') from None
        if not isinstance(payload, dict):
            raise MalformedContentArea('Content area must be a JSON object')
        if isinstance(payload.get('contentArea'), dict):
            payload = payload['contentArea']

        x = _field(payload, 'x', 'left')
        y = _field(payload, 'y', 'top')
        width = _field(payload, 'width')
        height = _field(payload, 'height')
        if x < 0 or y < 0:
            raise MalformedContentArea('Content area origin must not be negative')
        if width < 1 or height < 1:
            raise MalformedContentArea('Content area must be at least 1x1')
        return cls(x, y, width, height)


def _field(payload, *names):
    for name in names:
        if name in payload:
            value = payload[name]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise MalformedContentArea(f'Content area field {name!r} must be a number')
            if not math.isfinite(value):
                raise MalformedContentArea(f'Content area field {name!r} must be finite')
            return int(round(value))
    raise MalformedContentArea(f'Content area is missing {names[0]!r}')


def _leading_true(mask):
    """Number of consecutive True values at the start of a 1-D mask."""
    if mask.all():
        return int(mask.size)
    return int(np.argmin(mask))


def detect(buffer, brightness_threshold=PREVIEW_THRESHOLD):
    """Measure the background margin on each edge of ``buffer``.

    A row or column belongs to the margin only when every pixel in it has a
    brightness (mean of red, green and blue) at or above the threshold. An
    entirely background image measures its full height or width on every
    edge; ``resolve`` turns that into a 1x1 area.
    """
    background = buffer.brightness() >= brightness_threshold
    rows = background.all(axis=1)
    columns = background.all(axis=0)
    return BorderMeasurement(
        top=_leading_true(rows),
        bottom=_leading_true(rows[::-1]),
        left=_leading_true(columns),
        right=_leading_true(columns[::-1]),
    )


def resolve(measurement, original_width, original_height, scale_factor=1):
    """Convert a border measurement into a content area at original resolution.

    ``scale_factor`` is the ratio between the resolution detection ran at and
    the original resolution (0.5 when detecting on a half-size copy).
    """
    if scale_factor <= 0:
        raise ValueError('scale_factor must be positive')
    inverse = 1.0 / scale_factor
    left = int(round(measurement.left * inverse))
    top = int(round(measurement.top * inverse))
    right = int(round(measurement.right * inverse))
    bottom = int(round(measurement.bottom * inverse))

    width = max(1, original_width - left - right)
    height = max(1, original_height - top - bottom)
    return ContentArea(left, top, width, height).clamp(original_width, original_height)


def detect_content_area(buffer, brightness_threshold=PRECISE_THRESHOLD, original_size=None):
    """Detect borders on ``buffer`` and resolve them against ``original_size``.

    When ``original_size`` is omitted the buffer is taken to be the original.
    """
    measurement = detect(buffer, brightness_threshold)
    if original_size is None:
        return resolve(measurement, buffer.width, buffer.height)
    original_width, original_height = original_size
    scale_factor = buffer.width / original_width
    return resolve(measurement, original_width, original_height, scale_factor)
