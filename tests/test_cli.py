import convert_to_svg
from svgconvert.conversion import ConversionOrchestrator

from conftest import FakeTracer


def test_preview_mode_writes_svg(tmp_path, bordered_png):
    source = tmp_path / 'scan.png'
    source.write_bytes(bordered_png)

    assert convert_to_svg.main([str(source), '--preview', '--remove-border']) == 0
    svg = (tmp_path / 'scan.svg').read_text(encoding='utf-8')
    assert svg.startswith('<svg')
    assert '#ff9800' in svg


def test_convert_with_options(tmp_path, monkeypatch, bordered_png):
    tracer = FakeTracer()
    monkeypatch.setattr(convert_to_svg, 'ConversionOrchestrator',
                        lambda **kwargs: ConversionOrchestrator(tracer=tracer, **kwargs))
    source = tmp_path / 'scan.png'
    source.write_bytes(bordered_png)
    target = tmp_path / 'out.svg'

    code = convert_to_svg.main([
        str(source), '-o', str(target), '--remove-border', '--color', 'red', '--size', 'small',
        '--content-area', '{"x": 50, "y": 50, "width": 300, "height": 200}',
    ])

    assert code == 0
    assert 'fill="red"' in target.read_text(encoding='utf-8')
    assert tracer.calls[0]['size'] == (128, 85)


def test_missing_input(tmp_path, capsys):
    assert convert_to_svg.main([str(tmp_path / 'missing.png')]) == 1
    assert 'Input file not found' in capsys.readouterr().err


def test_invalid_color(tmp_path, bordered_png, capsys):
    source = tmp_path / 'scan.png'
    source.write_bytes(bordered_png)
    assert convert_to_svg.main([str(source), '--color', 'nope']) == 1
    assert 'Invalid color' in capsys.readouterr().err
