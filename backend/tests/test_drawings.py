import base64

import pytest

from conftest import image_data_url
from telestrations.errors import InvalidDrawingPayload
from telestrations.services.rooms.drawings import decode_drawing


def _url(mime, body):
    return f'data:{mime};base64,' + base64.b64encode(body).decode('ascii')


def test_decodes_png(drawing_url):
    mime, image = decode_drawing(drawing_url(b'Z'))
    assert mime == 'image/png'
    assert image.startswith(b'\x89PNG')


def test_decodes_gif():
    mime, _ = decode_drawing(image_data_url(b'G', 'GIF'))
    assert mime == 'image/gif'


def test_accepts_jpeg_alias():
    jpeg_url = image_data_url(b'J', 'JPEG').replace('image/jpeg', 'image/jpg', 1)
    mime, _ = decode_drawing(jpeg_url)
    assert mime == 'image/jpeg'


@pytest.mark.parametrize('payload', [
    None,
    '',
    42,
    'hello',
    'data:text/plain;base64,aGVsbG8=',
    'data:image/png;base64,***',
    'data:image/png;base64,aGVsbG8=',  # valid base64 but not PNG bytes
    'data:image/bmp;base64,Qk0=',
])
def test_rejects_malformed_payloads(payload):
    with pytest.raises(InvalidDrawingPayload):
        decode_drawing(payload)


def test_rejects_png_signature_followed_by_garbage():
    with pytest.raises(InvalidDrawingPayload):
        decode_drawing(_url('image/png', b'\x89PNG\r\n\x1a\n' + b'not an image at all'))


def test_rejects_truncated_png(drawing_url):
    full = base64.b64decode(drawing_url(b'T').split(',', 1)[1])
    with pytest.raises(InvalidDrawingPayload):
        decode_drawing(_url('image/png', full[:len(full) // 2]))


def test_rejects_mismatched_declared_type():
    gif_body = image_data_url(b'G', 'GIF').split(',', 1)[1]
    with pytest.raises(InvalidDrawingPayload):
        decode_drawing('data:image/png;base64,' + gif_body)


def test_rejects_oversize_payload(drawing_url):
    with pytest.raises(InvalidDrawingPayload):
        decode_drawing(_url('image/png', b'\x89PNG\r\n\x1a\n' + b'x' * 200), max_bytes=64)
    with pytest.raises(InvalidDrawingPayload):
        decode_drawing(image_data_url(b'J', 'JPEG'), max_bytes=32)
