"""HTTP client for the conversion service.

The backend location is resolved once into a ``BackendConfig`` and handed to
the client; ``ConversionClient.rediscover`` is the only thing that changes
which candidate URL is in use.
"""

import ipaddress
import logging
from dataclasses import dataclass

import requests

from .borders import PRECISE_THRESHOLD, detect_content_area
from .canonical import recolor
from .conversion import ConversionResult
from .errors import BackendUnavailable, ConversionError
from .imaging import ImageProcessor
from .options import ConversionOptions

logger = logging.getLogger(__name__)

BACKEND_PORT = 3001
HEALTH_TIMEOUT = 3
CONVERT_TIMEOUT = 120
LOCAL_PREFIXES = ('192.168.', '10.', '172.16.')


def _is_ipv4(host):
    try:
        return isinstance(ipaddress.ip_address(host), ipaddress.IPv4Address)
    except ValueError:
        return False


@dataclass(frozen=True)
class BackendConfig:
    candidates: tuple

    @classmethod
    def resolve(cls, host, scheme='http', port=None):
        """Work out candidate backend URLs for a frontend served from ``host``.

        Local development (localhost, private networks, the Vite dev port)
        talks to the standalone server on port 3001; anything else goes
        through the ``/api`` prefix of the host it was served from. Bare
        IPv4 hosts also try port 3001 on that address.
        """
        local = (host in ('localhost', '127.0.0.1')
                 or host.startswith(LOCAL_PREFIXES)
                 or str(port) == '5173')
        if local:
            primary = f'http://localhost:{BACKEND_PORT}'
        else:
            primary = f'{scheme}://{host}/api'

        candidates = [primary]
        if _is_ipv4(host):
            fallback = f'{scheme}://{host}:{BACKEND_PORT}'
            if fallback not in candidates:
                candidates.append(fallback)
        return cls(candidates=tuple(candidates))

    @classmethod
    def from_url(cls, url):
        return cls(candidates=(url.rstrip('/'),))


class ConversionClient:
    def __init__(self, config, session=None, processor=None):
        self.config = config
        self.session = session or requests.Session()
        self.processor = processor or ImageProcessor()
        self.base_url = None

    @property
    def connected(self):
        return self.base_url is not None

    def rediscover(self):
        """Probe every candidate's health endpoint and pin the first live one."""
        for url in self.config.candidates:
            try:
                response = self.session.get(f'{url}/health', timeout=HEALTH_TIMEOUT)
                status = response.json().get('status')
            except (requests.exceptions.RequestException, ValueError) as e:
                logger.info('Backend not reachable at %s: %s', url, e)
                continue
            if status in ('healthy', 'OK'):
                logger.info('Backend connection established: %s', url)
                self.base_url = url
                return True
        logger.info('Backend not available on any URL')
        self.base_url = None
        return False

    def detect_content_area(self, image):
        """Full-resolution border detection for precise server-side cropping."""
        with self.processor.decode(image) as decoded:
            buffer = self.processor.to_pixel_buffer(decoded.image)
        return detect_content_area(buffer, PRECISE_THRESHOLD)

    def convert(self, image, options=None, filename='image.png'):
        options = options or ConversionOptions()
        if not self.connected and not self.rediscover():
            raise BackendUnavailable('Conversion backend is not available')

        data = options.to_form()
        if options.remove_border:
            try:
                area = self.detect_content_area(image)
            except ConversionError as e:
                logger.warning('Border detection failed, leaving it to the server: %s', e)
            else:
                data['contentArea'] = area.to_json()

        try:
            response = self.session.post(
                f'{self.base_url}/convert-to-svg',
                files={'image': (filename, image)},
                data=data,
                timeout=CONVERT_TIMEOUT,
            )
        except requests.exceptions.Timeout:
            raise BackendUnavailable('Conversion request timed out') from None
        except requests.exceptions.RequestException as e:
            self.base_url = None
            raise BackendUnavailable(f'Conversion request failed: {e}') from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not response.ok or not payload.get('success'):
            message = payload.get('error') or f'Backend error: {response.status_code}'
            raise ConversionError(message)
        return ConversionResult.from_dict(payload)

    @staticmethod
    def change_color(svg, color):
        return recolor(svg, color)
