"""Bitmap to SVG tracing with vtracer."""

import io
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path

import vtracer
from PIL import Image

from .errors import TraceError
from .options import Quality

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceParameters:
    """Tracing knobs for one quality tier.

    ``threshold`` binarizes the bitmap before tracing (darker pixels become
    ink), ``opt_tolerance`` bounds how far fitted curves may drift from the
    pixel outline, and ``alpha_max`` controls corner smoothing: lower values
    keep corners sharper. ``turn_policy`` is informational only: vtracer has
    no such option, so it is logged but does not change the trace.
    """

    threshold: int
    opt_tolerance: float
    alpha_max: float
    turn_policy: str = 'minority'
    opt_curve: bool = True
    filter_speckle: int = 4
    path_precision: int = 3

    def vtracer_settings(self):
        return {
            'colormode': 'binary',
            'hierarchical': 'stacked',
            'mode': 'spline' if self.opt_curve else 'polygon',
            'filter_speckle': self.filter_speckle,
            'color_precision': 6,
            'layer_difference': 16,
            'corner_threshold': int(round(self.alpha_max * 60)),
            'length_threshold': 3.5 + self.opt_tolerance * 10,
            'max_iterations': 10,
            'splice_threshold': 45,
            'path_precision': self.path_precision,
        }


QUALITY_PARAMETERS = {
    Quality.HIGH: TraceParameters(threshold=128, opt_tolerance=0.2, alpha_max=1.0),
    Quality.STANDARD: TraceParameters(threshold=160, opt_tolerance=0.4, alpha_max=1.3),
}


def parameters_for(quality):
    return QUALITY_PARAMETERS[Quality(quality)]


def binarize(image, threshold):
    """Black ink where luminance is below ``threshold``, white elsewhere."""
    gray = image.convert('L')
    return gray.point(lambda p: 0 if p < threshold else 255)


class Tracer:
    """Trace PNG bytes into raw SVG markup."""

    def trace(self, png_bytes, parameters):
        try:
            with Image.open(io.BytesIO(png_bytes)) as image:
                bitmap = binarize(image, parameters.threshold)
        except OSError as e:
            raise TraceError(f'Could not read bitmap for tracing: {e}') from e

        logger.info('Tracing %dx%d bitmap (threshold=%d, turn policy=%s)',
                    bitmap.width, bitmap.height, parameters.threshold, parameters.turn_policy)
        with tempfile.TemporaryDirectory(prefix='svgconvert-') as temp_dir:
            input_path = Path(temp_dir) / 'input.png'
            output_path = Path(temp_dir) / 'output.svg'
            bitmap.save(input_path, format='PNG')
            try:
                vtracer.convert_image_to_svg_py(
                    str(input_path),
                    str(output_path),
                    **parameters.vtracer_settings(),
                )
                return output_path.read_text(encoding='utf-8')
            except Exception as e:
                raise TraceError(f'Tracing failed: {e}') from e
