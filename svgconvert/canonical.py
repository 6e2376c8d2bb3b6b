"""Canonicalization of traced SVG markup.

Tracer output is rewritten into a compact document that scales to its
container and can be embedded as-is (Power Apps image controls reject
anything that does not start with the ``<svg`` root). Every step is a plain
string rewrite, so the same input always yields the same bytes.
"""

import logging
import re
from dataclasses import dataclass, field

from .errors import InvalidSvgError
from .options import ConversionOptions, normalize_color

logger = logging.getLogger(__name__)

SVG_NAMESPACE = 'http://www.w3.org/2000/svg'
MAX_EMBED_SIZE = 500_000

_PROLOG_RE = re.compile(r'^(?:\s|<\?.*?\?>|<!--.*?-->|<!DOCTYPE[^>]*>)*', re.DOTALL | re.IGNORECASE)
_ROOT_RE = re.compile(r'<svg(?=[\s/>])[^>]*>')
_TAG_END_RE = re.compile(r'\s*/?>$')
_NUMBER_RE = re.compile(r'\s*(\d+(?:\.\d+)?)(?:px)?\s*')
_PAINT_RE = re.compile(r'(?<![\w:-])(fill|stroke)="[^"]*"')
_COMMENT_RE = re.compile(r'<!--.*?-->', re.DOTALL)
_DECLARATION_RE = re.compile(r'<\?.*?\?>', re.DOTALL)
_DOCTYPE_RE = re.compile(r'<!DOCTYPE[^>]*>', re.IGNORECASE)
_WHITESPACE_RE = re.compile(r'\s+')
_BETWEEN_TAGS_RE = re.compile(r'>\s+<')
_LEADING_JUNK_RE = re.compile(r'^[^<]*')


def _attribute_re(name):
    return re.compile(r'(?<=\s)' + re.escape(name) + r'\s*=\s*(?:"[^"]*"|\'[^\']*\')')


def get_attribute(tag, name):
    match = _attribute_re(name).search(tag)
    if match is None:
        return None
    value = match.group(0).split('=', 1)[1].strip()
    return value[1:-1]


def set_attribute(tag, name, value):
    """Set ``name`` on a start tag, replacing an existing value or appending."""
    pattern = _attribute_re(name)
    replacement = f'{name}="{value}"'
    if pattern.search(tag):
        return pattern.sub(lambda _: replacement, tag, count=1)
    end = _TAG_END_RE.search(tag)
    return f'{tag[:end.start()]} {replacement}{tag[end.start():]}'


def _rewrite_root(svg, rewrite):
    """Apply ``rewrite`` to the root ``<svg>`` start tag, if there is one."""
    start = _PROLOG_RE.match(svg).end()
    match = _ROOT_RE.search(svg, start)
    if match is None:
        return svg
    return svg[:match.start()] + rewrite(match.group(0)) + svg[match.end():]


def _numeric(value):
    if value is None:
        return None
    match = _NUMBER_RE.fullmatch(value)
    return match.group(1) if match else None


def add_viewbox(svg):
    """Add a viewBox derived from the root's width/height if missing."""
    def rewrite(tag):
        if get_attribute(tag, 'viewBox') is not None:
            return tag
        width = _numeric(get_attribute(tag, 'width'))
        height = _numeric(get_attribute(tag, 'height'))
        if width is None or height is None:
            return tag
        return set_attribute(tag, 'viewBox', f'0 0 {width} {height}')

    return _rewrite_root(svg, rewrite)


def add_namespace(svg):
    def rewrite(tag):
        if get_attribute(tag, 'xmlns') is not None:
            return tag
        return set_attribute(tag, 'xmlns', SVG_NAMESPACE)

    return _rewrite_root(svg, rewrite)


def fill_container(svg):
    """Force the root to 100% width and height."""
    def rewrite(tag):
        tag = set_attribute(tag, 'width', '100%')
        return set_attribute(tag, 'height', '100%')

    return _rewrite_root(svg, rewrite)


def add_preserve_aspect_ratio(svg):
    def rewrite(tag):
        if get_attribute(tag, 'preserveAspectRatio') is not None:
            return tag
        return set_attribute(tag, 'preserveAspectRatio', 'xMidYMid meet')

    return _rewrite_root(svg, rewrite)


def recolor(svg, color):
    """Rewrite every fill and stroke attribute in the document to ``color``."""
    if not svg or not color:
        return svg
    color = normalize_color(color)
    return _PAINT_RE.sub(lambda m: f'{m.group(1)}="{color}"', svg)


def strip_comments(svg):
    svg = _COMMENT_RE.sub('', svg)
    svg = _DECLARATION_RE.sub('', svg)
    return _DOCTYPE_RE.sub('', svg)


def collapse_whitespace(svg):
    svg = _WHITESPACE_RE.sub(' ', svg)
    svg = _BETWEEN_TAGS_RE.sub('><', svg)
    return svg.strip()


@dataclass
class SvgValidation:
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    size: int = 0

    @property
    def is_valid(self):
        return not self.errors


def validate_svg(svg):
    """Check a document against what embedding contexts accept."""
    result = SvgValidation(size=len(svg.encode('utf-8')))
    if not svg.startswith('<svg'):
        result.errors.append('Generated content is not a valid SVG')
        return result
    if not svg.rstrip().endswith('</svg>'):
        result.errors.append('SVG document is missing its closing </svg> tag')
    if '<script' in svg:
        result.errors.append('SVG contains script tags which are not allowed in Power Apps')

    if 'xmlns=' not in svg:
        result.warnings.append('SVG missing xmlns attribute')
    if 'viewBox=' not in svg and 'width=' not in svg:
        result.warnings.append('SVG missing both viewBox and width attributes')
    if result.size > MAX_EMBED_SIZE:
        result.warnings.append('SVG file is quite large (>500KB), consider optimizing further')
    if 'foreignObject' in svg:
        result.warnings.append('SVG contains foreignObject which may not work in Power Apps')
    return result


def svg_dimensions(svg):
    """Return (width, height) of the root, falling back to the viewBox."""
    start = _PROLOG_RE.match(svg).end()
    match = _ROOT_RE.search(svg, start)
    if match is None:
        return None, None
    tag = match.group(0)
    width = _numeric(get_attribute(tag, 'width'))
    height = _numeric(get_attribute(tag, 'height'))
    width = float(width) if width is not None else None
    height = float(height) if height is not None else None

    viewbox = get_attribute(tag, 'viewBox')
    if (width is None or height is None) and viewbox:
        values = viewbox.replace(',', ' ').split()
        if len(values) >= 4:
            width = width if width is not None else float(values[2])
            height = height if height is not None else float(values[3])
    return width, height


def canonicalize(raw, options=None):
    """Normalize raw tracer markup into an embeddable SVG document.

    Raises InvalidSvgError when the result is not an SVG root.
    """
    if options is None:
        options = ConversionOptions()
    if isinstance(raw, bytes):
        raw = raw.decode('utf-8')

    svg = add_viewbox(raw)
    svg = add_namespace(svg)
    svg = fill_container(svg)
    svg = add_preserve_aspect_ratio(svg)
    if options.recolor_requested:
        svg = recolor(svg, options.color)
        logger.info('Applied color: %s', options.color)
    svg = strip_comments(svg)
    svg = collapse_whitespace(svg)
    svg = _LEADING_JUNK_RE.sub('', svg)

    validation = validate_svg(svg)
    if not validation.is_valid:
        raise InvalidSvgError(validation.errors[0])
    for warning in validation.warnings:
        logger.warning(warning)
    return svg
