from pathlib import Path

import pytest
import vtracer

from svgconvert.errors import TraceError
from svgconvert.options import Quality
from svgconvert.tracing import Tracer, binarize, parameters_for

from conftest import png_bytes


def test_quality_tiers():
    high = parameters_for(Quality.HIGH)
    standard = parameters_for('standard')
    assert (high.threshold, high.opt_tolerance, high.alpha_max) == (128, 0.2, 1.0)
    assert (standard.threshold, standard.opt_tolerance, standard.alpha_max) == (160, 0.4, 1.3)
    for params in (high, standard):
        assert params.turn_policy == 'minority'
        assert params.opt_curve is True


def test_vtracer_settings():
    high = parameters_for(Quality.HIGH).vtracer_settings()
    standard = parameters_for(Quality.STANDARD).vtracer_settings()
    assert high['colormode'] == 'binary'
    assert high['mode'] == 'spline'
    # tighter tier keeps more corners and shorter segments
    assert high['corner_threshold'] < standard['corner_threshold']
    assert high['length_threshold'] < standard['length_threshold']
    assert 3.5 <= high['length_threshold'] <= 10


def test_binarize(make_image):
    image = make_image((3, 1))
    image.putpixel((0, 0), (100, 100, 100))
    image.putpixel((1, 0), (150, 150, 150))
    assert list(binarize(image, 128).getdata()) == [0, 255, 255]
    assert list(binarize(image, 160).getdata()) == [0, 0, 255]


def test_trace_runs_vtracer_and_cleans_up(monkeypatch, bordered_image):
    seen = {}

    def fake_convert(input_path, output_path, **settings):
        seen['input'] = Path(input_path)
        seen['settings'] = settings
        Path(output_path).write_text('<svg></svg>', encoding='utf-8')

    monkeypatch.setattr(vtracer, 'convert_image_to_svg_py', fake_convert)
    svg = Tracer().trace(png_bytes(bordered_image), parameters_for(Quality.HIGH))

    assert svg == '<svg></svg>'
    assert seen['settings'] == parameters_for(Quality.HIGH).vtracer_settings()
    assert not seen['input'].exists()
    assert not seen['input'].parent.exists()


def test_trace_failure_is_wrapped(monkeypatch, bordered_image):
    seen = {}

    def broken(input_path, output_path, **settings):
        seen['input'] = Path(input_path)
        raise RuntimeError('boom')

    monkeypatch.setattr(vtracer, 'convert_image_to_svg_py', broken)
    with pytest.raises(TraceError, match='boom'):
        Tracer().trace(png_bytes(bordered_image), parameters_for(Quality.STANDARD))
    assert not seen['input'].parent.exists()


def test_trace_rejects_unreadable_bitmap():
    with pytest.raises(TraceError):
        Tracer().trace(b'garbage', parameters_for(Quality.STANDARD))


def test_real_trace(bordered_image):
    svg = Tracer().trace(png_bytes(bordered_image), parameters_for(Quality.HIGH))
    assert '<svg' in svg
    assert '<path' in svg
