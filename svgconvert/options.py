"""Conversion options shared by the server, the client and the preview."""

from dataclasses import dataclass
from enum import Enum

from PIL import ImageColor

from .errors import InvalidOptions

DEFAULT_COLOR = '#000000'


class TargetSize(Enum):
    AUTO = 'auto'
    SMALL = 'small'
    MEDIUM = 'medium'
    LARGE = 'large'

    @property
    def pixels(self):
        """Longer-edge target in pixels, or None for AUTO."""
        return SIZE_TARGETS.get(self)


class Quality(Enum):
    STANDARD = 'standard'
    HIGH = 'high'


SIZE_TARGETS = {
    TargetSize.SMALL: 128,
    TargetSize.MEDIUM: 256,
    TargetSize.LARGE: 512,
}


def normalize_color(value):
    """Validate a CSS color string and return it normalized.

    Accepts anything Pillow understands (hex, rgb(), hsl(), named colors).
    Runs of whitespace are collapsed so the value survives canonicalization
    unchanged.
    """
    color = ' '.join((value or '').split())
    if not color:
        return DEFAULT_COLOR
    try:
        ImageColor.getrgb(color)
    except ValueError:
        raise InvalidOptions(f'Invalid color: {value!r}') from None
    return color


def is_default_color(color):
    return ImageColor.getrgb(color)[:3] == (0, 0, 0)


def _parse_bool(value):
    if isinstance(value, bool):
        return value
    text = str(value or '').strip().lower()
    if text in ('true', '1', 'yes', 'on'):
        return True
    if text in ('', 'false', '0', 'no', 'off'):
        return False
    raise InvalidOptions(f'Invalid boolean: {value!r}')


def _parse_enum(enum_cls, value, default, name):
    if value is None or value == '':
        return default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise InvalidOptions(f'Invalid {name} {value!r} (expected one of: {allowed})') from None


@dataclass(frozen=True)
class ConversionOptions:
    remove_border: bool = False
    color: str = DEFAULT_COLOR
    target_size: TargetSize = TargetSize.AUTO
    quality: Quality = Quality.STANDARD

    def __post_init__(self):
        object.__setattr__(self, 'remove_border', _parse_bool(self.remove_border))
        object.__setattr__(self, 'color', normalize_color(self.color))
        object.__setattr__(self, 'target_size',
                           _parse_enum(TargetSize, self.target_size, TargetSize.AUTO, 'size'))
        object.__setattr__(self, 'quality',
                           _parse_enum(Quality, self.quality, Quality.STANDARD, 'quality'))

    @property
    def recolor_requested(self):
        return not is_default_color(self.color)

    @classmethod
    def from_form(cls, form):
        """Build options from request form fields.

        ``svgColor`` is accepted as an alias of ``color`` for older clients.
        """
        return cls(
            remove_border=form.get('removeBorder', 'false'),
            color=form.get('color') or form.get('svgColor') or DEFAULT_COLOR,
            target_size=form.get('size', TargetSize.AUTO.value),
            quality=form.get('quality', Quality.STANDARD.value),
        )

    def to_form(self):
        return {
            'removeBorder': 'true' if self.remove_border else 'false',
            'color': self.color,
            'size': self.target_size.value,
            'quality': self.quality.value,
        }
