"""Instant, approximate SVG previews.

The preview samples a coarse grid of pixels and draws each visible cell as a
small square whose opacity follows its darkness. It is only shown while the
real conversion runs and is never returned as a conversion result.
"""

import asyncio
import logging
from dataclasses import dataclass

import numpy as np
import svgwrite
from PIL import ImageColor

from .borders import PREVIEW_THRESHOLD, detect, resolve
from .imaging import ImageProcessor
from .options import ConversionOptions

logger = logging.getLogger(__name__)

ALPHA_CUTOFF = 50
WHITE_CUTOFF = 240
MIN_OPACITY = 0.2
OVERLAY_COLOR = '#ff9800'
OVERLAY_OPACITY = 0.6


class PreviewCancelled(Exception):
    pass


class CancellationToken:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def raise_if_cancelled(self):
        if self.cancelled:
            raise PreviewCancelled()


@dataclass(frozen=True)
class PreviewProfile:
    """Performance knobs: decode size, grid step and rows per chunk."""

    max_image_size: int = 800
    grid_step: int = 2
    chunk_rows: int = 20
    constrained: bool = False

    @property
    def decode_size(self):
        # constrained runtimes decode at half the nominal size
        return self.max_image_size // 2 if self.constrained else self.max_image_size


DEFAULT_PROFILE = PreviewProfile()
CONSTRAINED_PROFILE = PreviewProfile(max_image_size=400, grid_step=4, chunk_rows=10, constrained=True)


def _hex_color(color):
    r, g, b = ImageColor.getrgb(color)[:3]
    return f'#{r:02x}{g:02x}{b:02x}'


class PreviewVectorizer:
    def __init__(self, grid_step=2, chunk_rows=20):
        if grid_step < 1 or chunk_rows < 1:
            raise ValueError('grid_step and chunk_rows must be positive')
        self.grid_step = grid_step
        self.chunk_rows = chunk_rows

    @classmethod
    def from_profile(cls, profile):
        return cls(grid_step=profile.grid_step, chunk_rows=profile.chunk_rows)

    def render(self, buffer, content_area=None, options=None):
        """Render a preview document for ``buffer``.

        With ``options.remove_border`` and a content area, only the content
        is drawn and the border strips are highlighted; coordinates stay in
        buffer space either way.
        """
        drawing, region, color = self._begin(buffer, content_area, options)
        for rows in self._chunks(region):
            self._draw_rows(drawing, buffer, region, rows, color)
        return drawing.tostring()

    async def render_async(self, buffer, content_area=None, options=None, token=None):
        """Like ``render`` but yields between chunks and honours ``token``."""
        token = token or CancellationToken()
        drawing, region, color = self._begin(buffer, content_area, options)
        for rows in self._chunks(region):
            token.raise_if_cancelled()
            self._draw_rows(drawing, buffer, region, rows, color)
            await asyncio.sleep(0)
        token.raise_if_cancelled()
        return drawing.tostring()

    def _begin(self, buffer, content_area, options):
        options = options or ConversionOptions()
        width, height = buffer.size
        drawing = svgwrite.Drawing(size=('100%', '100%'), debug=False)
        drawing.viewbox(0, 0, width, height)

        region = (0, 0, width, height)
        if options.remove_border and content_area is not None:
            area = content_area.clamp(width, height)
            region = area.box
            self._draw_overlay(drawing, width, height, region)
        return drawing, region, _hex_color(options.color)

    def _draw_overlay(self, drawing, width, height, region):
        left, top, right, bottom = region
        strips = [
            (0, 0, width, top),
            (0, bottom, width, height - bottom),
            (0, 0, left, height),
            (right, 0, width - right, height),
        ]
        for x, y, w, h in strips:
            if w <= 0 or h <= 0:
                continue
            drawing.add(drawing.rect(
                insert=(x, y), size=(w, h),
                fill=OVERLAY_COLOR, fill_opacity=OVERLAY_OPACITY,
                stroke=OVERLAY_COLOR, stroke_width=2, stroke_dasharray='4,2',
            ))

    def _chunks(self, region):
        _, top, _, bottom = region
        span = self.grid_step * self.chunk_rows
        for start in range(top, bottom, span):
            yield range(start, min(start + span, bottom), self.grid_step)

    def _draw_rows(self, drawing, buffer, region, rows, color):
        left, _, right, _ = region
        step = self.grid_step
        rows = slice(rows.start, rows.stop, step)
        columns = slice(left, right, step)
        brightness = buffer.pixels[rows, columns, :3].astype(np.float64).mean(axis=2)
        visible = (buffer.alpha()[rows, columns] >= ALPHA_CUTOFF) & (brightness <= WHITE_CUTOFF)
        for row, column in np.argwhere(visible):
            opacity = max(MIN_OPACITY, 1 - brightness[row, column] / 255)
            drawing.add(drawing.rect(
                insert=(left + int(column) * step, rows.start + int(row) * step),
                size=(step, step),
                fill=color,
                opacity=round(float(opacity), 2),
            ))


class LivePreview:
    """Keeps the latest preview for an image that keeps changing.

    Each ``update`` supersedes the previous one: the older run is cancelled
    at its next chunk boundary and can never overwrite a newer result.
    """

    def __init__(self, profile=DEFAULT_PROFILE, processor=None):
        self.profile = profile
        self.processor = processor or ImageProcessor()
        self.vectorizer = PreviewVectorizer.from_profile(profile)
        self.svg = ''
        self._token = None
        self._generation = 0

    def cancel(self):
        if self._token is not None:
            self._token.cancel()

    def clear(self):
        self.cancel()
        self._generation += 1
        self.svg = ''

    async def update(self, image, options=None):
        options = options or ConversionOptions()
        if not image:
            self.clear()
            return self.svg

        self.cancel()
        token = CancellationToken()
        self._token = token
        self._generation += 1
        generation = self._generation

        try:
            buffer = await asyncio.to_thread(self._decode, image)
            token.raise_if_cancelled()
            area = None
            if options.remove_border:
                measurement = detect(buffer, PREVIEW_THRESHOLD)
                if measurement.has_border:
                    area = resolve(measurement, buffer.width, buffer.height)
            svg = await self.vectorizer.render_async(buffer, area, options, token)
        except PreviewCancelled:
            logger.debug('Preview run %d superseded', generation)
            return self.svg
        except Exception:
            logger.exception('Live preview error')
            if generation == self._generation:
                self.svg = ''
            return self.svg

        if token.cancelled or generation != self._generation:
            return self.svg
        self.svg = svg
        return svg

    def _decode(self, image):
        with self.processor.decode(image) as decoded:
            with self.processor.thumbnail(decoded.image, self.profile.decode_size) as small:
                return self.processor.to_pixel_buffer(small)
