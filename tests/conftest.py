import io

import pytest
from PIL import Image, ImageDraw

from svgconvert.pixels import PixelBuffer

WHITE = (255, 255, 255)
BLUE = (0, 0, 255)

RAW_TRACE = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<!-- Generator: visioncortex VTracer 0.6.4 -->\n'
    '<svg version="1.1" xmlns="http://www.w3.org/2000/svg" width="120" height="80">\n'
    '<path d="M 10 10 C 20 20 30 30 40 40 Z " fill="#000000" transform="translate(4,5)"/>\n'
    '</svg>\n'
)


def draw(size, background=WHITE, box=None, fill=BLUE, mode='RGB'):
    """Image of ``size`` with an optional filled ``box`` (x, y, width, height)."""
    image = Image.new(mode, size, background)
    if box is not None:
        x, y, width, height = box
        ImageDraw.Draw(image).rectangle([x, y, x + width - 1, y + height - 1], fill=fill)
    return image


def png_bytes(image, fmt='PNG'):
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_image():
    return draw


@pytest.fixture
def make_png():
    def factory(*args, **kwargs):
        return png_bytes(draw(*args, **kwargs))
    return factory


@pytest.fixture
def bordered_image():
    """400x300 white image with a solid blue 300x200 interior at (50, 50)."""
    return draw((400, 300), box=(50, 50, 300, 200))


@pytest.fixture
def bordered_png(bordered_image):
    return png_bytes(bordered_image)


@pytest.fixture
def bordered_buffer(bordered_image):
    return PixelBuffer.from_image(bordered_image)


@pytest.fixture
def raw_trace():
    return RAW_TRACE


class FakeTracer:
    """Records what it was asked to trace and returns canned markup."""

    def __init__(self, output=RAW_TRACE, error=None):
        self.output = output
        self.error = error
        self.calls = []

    def trace(self, png, parameters):
        with Image.open(io.BytesIO(png)) as image:
            self.calls.append({'size': image.size, 'mode': image.mode, 'parameters': parameters})
        if self.error is not None:
            raise self.error
        return self.output


@pytest.fixture
def fake_tracer():
    return FakeTracer()
