import base64
import binascii
import re
import struct
from io import BytesIO
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from telestrations.errors import InvalidDrawingPayload

DEFAULT_MAX_DRAWING_BYTES = 5 * 1024 * 1024

_DATA_URL_RE = re.compile(r'^data:(?P<mime>image/[a-z0-9.+-]+);base64,(?P<data>[A-Za-z0-9+/=\s]+)$', re.IGNORECASE)

# Declared MIME type -> format name Pillow reports after parsing
_FORMATS = {
    'image/png': 'PNG',
    'image/jpeg': 'JPEG',
    'image/gif': 'GIF',
    'image/webp': 'WEBP',
}


def decode_drawing(data_url, max_bytes: int = DEFAULT_MAX_DRAWING_BYTES) -> Tuple[str, bytes]:
    """Validate a canvas ``data:`` URL and return ``(mime_type, image_bytes)``.

    Raises InvalidDrawingPayload when the payload is not a base64 encoded
    PNG/JPEG/GIF/WebP image that Pillow can parse, when the parsed format
    does not match the declared one, or when the image exceeds ``max_bytes``.
    """
    if not isinstance(data_url, str) or not data_url:
        raise InvalidDrawingPayload('Drawing must be a data URL string')
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise InvalidDrawingPayload('Drawing is not a base64 image data URL')
    mime = match.group('mime').lower()
    if mime == 'image/jpg':
        mime = 'image/jpeg'
    expected_format = _FORMATS.get(mime)
    if expected_format is None:
        raise InvalidDrawingPayload(f'Unsupported image type {mime}')

    encoded = re.sub(r'\s+', '', match.group('data'))
    # Cheap size check before decoding: base64 inflates by 4/3
    if max_bytes and len(encoded) * 3 // 4 > max_bytes + 2:
        raise InvalidDrawingPayload(f'Drawing exceeds {max_bytes} bytes')
    try:
        image = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidDrawingPayload(f'Drawing is not valid base64: {exc}') from exc

    if not image:
        raise InvalidDrawingPayload('Drawing is empty')
    if max_bytes and len(image) > max_bytes:
        raise InvalidDrawingPayload(f'Drawing exceeds {max_bytes} bytes')

    try:
        with Image.open(BytesIO(image)) as parsed:
            parsed_format = parsed.format
            parsed.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, struct.error, Image.DecompressionBombError) as exc:
        raise InvalidDrawingPayload(f'Drawing is not a readable {mime} image: {exc}') from exc
    if parsed_format != expected_format:
        raise InvalidDrawingPayload(f'Drawing declared as {mime} but contains {parsed_format}')
    return mime, image
