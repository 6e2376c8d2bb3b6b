import json

import pytest
import requests

from svgconvert.client import BackendConfig, ConversionClient
from svgconvert.errors import BackendUnavailable, ConversionError
from svgconvert.options import ConversionOptions


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """Answers health checks per URL and records conversion posts."""

    def __init__(self, health=None, convert=None):
        self.health = health or {}
        self.convert = convert
        self.gets = []
        self.posts = []

    def get(self, url, timeout=None):
        self.gets.append(url)
        answer = self.health.get(url)
        if answer is None:
            raise requests.exceptions.ConnectionError(f'refused: {url}')
        return answer

    def post(self, url, files=None, data=None, timeout=None):
        self.posts.append({'url': url, 'files': files, 'data': data})
        if isinstance(self.convert, Exception):
            raise self.convert
        return self.convert


SUCCESS = {
    'success': True,
    'svg': '<svg width="100%" height="100%"></svg>',
    'originalSize': 1234,
    'svgSize': 38,
    'metadata': {'originalWidth': 400, 'originalHeight': 300, 'format': 'png'},
}


@pytest.mark.parametrize('host, scheme, port, expected', [
    ('localhost', 'http', '5173', ('http://localhost:3001',)),
    ('127.0.0.1', 'http', None, ('http://localhost:3001', 'http://127.0.0.1:3001')),
    ('192.168.1.5', 'http', '8080', ('http://localhost:3001', 'http://192.168.1.5:3001')),
    ('converter.vercel.app', 'https', None, ('https://converter.vercel.app/api',)),
    ('example.com', 'https', '443', ('https://example.com/api',)),
    ('example.com', 'http', 5173, ('http://localhost:3001',)),
])
def test_resolve_backend(host, scheme, port, expected):
    assert BackendConfig.resolve(host, scheme, port).candidates == expected


def test_rediscover_pins_first_live_candidate():
    config = BackendConfig(candidates=('http://a', 'http://b', 'http://c'))
    session = FakeSession(health={
        'http://b/health': FakeResponse({'status': 'OK'}),
        'http://c/health': FakeResponse({'status': 'healthy'}),
    })
    client = ConversionClient(config, session=session)

    assert client.rediscover()
    assert client.base_url == 'http://b'
    assert session.gets == ['http://a/health', 'http://b/health']


def test_rediscover_rejects_unhealthy_and_invalid_answers():
    config = BackendConfig(candidates=('http://a', 'http://b'))
    session = FakeSession(health={
        'http://a/health': FakeResponse({'status': 'starting'}),
        'http://b/health': FakeResponse(ValueError('not json')),
    })
    client = ConversionClient(config, session=session)
    assert not client.rediscover()
    assert not client.connected


def test_convert_without_backend():
    client = ConversionClient(BackendConfig.from_url('http://nowhere/'), session=FakeSession())
    with pytest.raises(BackendUnavailable):
        client.convert(b'image')


def test_convert_sends_precise_content_area(bordered_png):
    session = FakeSession(
        health={'http://svc/health': FakeResponse({'status': 'healthy'})},
        convert=FakeResponse(SUCCESS),
    )
    client = ConversionClient(BackendConfig.from_url('http://svc'), session=session)
    options = ConversionOptions(remove_border=True, color='#ff0000', target_size='medium')

    result = client.convert(bordered_png, options, filename='scan.png')

    assert result.svg == SUCCESS['svg']
    assert (result.original_width, result.original_height) == (400, 300)
    post, = session.posts
    assert post['url'] == 'http://svc/convert-to-svg'
    assert post['files']['image'] == ('scan.png', bordered_png)
    assert post['data']['removeBorder'] == 'true'
    assert post['data']['size'] == 'medium'
    assert json.loads(post['data']['contentArea']) == {'x': 50, 'y': 50, 'width': 300, 'height': 200}


def test_convert_without_border_removal_sends_no_area(bordered_png):
    session = FakeSession(
        health={'http://svc/health': FakeResponse({'status': 'healthy'})},
        convert=FakeResponse(SUCCESS),
    )
    client = ConversionClient(BackendConfig.from_url('http://svc'), session=session)
    client.convert(bordered_png)
    assert 'contentArea' not in session.posts[0]['data']


def test_undecodable_image_is_left_to_the_server():
    session = FakeSession(
        health={'http://svc/health': FakeResponse({'status': 'healthy'})},
        convert=FakeResponse({'success': False, 'error': 'Could not decode image'}, status_code=500),
    )
    client = ConversionClient(BackendConfig.from_url('http://svc'), session=session)
    with pytest.raises(ConversionError, match='Could not decode image'):
        client.convert(b'junk', ConversionOptions(remove_border=True))
    assert 'contentArea' not in session.posts[0]['data']


def test_connection_loss_forgets_backend(bordered_png):
    session = FakeSession(
        health={'http://svc/health': FakeResponse({'status': 'healthy'})},
        convert=requests.exceptions.ConnectionError('reset'),
    )
    client = ConversionClient(BackendConfig.from_url('http://svc'), session=session)
    with pytest.raises(BackendUnavailable):
        client.convert(bordered_png)
    assert not client.connected


def test_change_color():
    svg = '<svg><path fill="#000000"/></svg>'
    assert ConversionClient.change_color(svg, '#00ff00') == '<svg><path fill="#00ff00"/></svg>'
