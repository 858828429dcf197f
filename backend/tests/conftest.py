import base64
import os
import sys
from io import BytesIO

import pytest
from PIL import Image

# Ensure the backend root (containing the `telestrations` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from telestrations import create_app, socketio
from telestrations.registry import EXTENSION_KEY as REGISTRY_KEY
from telestrations.rooms import EXTENSION_KEY as DIRECTORY_KEY


def image_data_url(marker=b'A', fmt='PNG'):
    """A 2x2 image as a data URL; ``marker`` picks the colour so drawings stay distinct."""
    buf = BytesIO()
    Image.new('RGB', (2, 2), (marker[0], 0, 0)).save(buf, format=fmt)
    mime = 'image/jpeg' if fmt == 'JPEG' else f'image/{fmt.lower()}'
    return f'data:{mime};base64,' + base64.b64encode(buf.getvalue()).decode('ascii')


def png_data_url(marker=b'A'):
    return image_data_url(marker, 'PNG')


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:3000']
    EMPTY_ROOM_SWEEP_INTERVAL_SEC = 120
    ROOM_ID_LENGTH = 3
    MAX_DRAWING_BYTES = 1024
    ENFORCE_ONE_DRAWING_PER_ROUND = False


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
    application.extensions[DIRECTORY_KEY].clear()
    application.extensions[REGISTRY_KEY].clear()


@pytest.fixture()
def directory(flask_app):
    return flask_app.extensions[DIRECTORY_KEY]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio_client(flask_app):
    """Factory for extra Socket.IO clients; all are disconnected on teardown."""
    created = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass


@pytest.fixture()
def sio_client(make_sio_client):
    return make_sio_client()


@pytest.fixture()
def drawing_url():
    return png_data_url


@pytest.fixture()
def app_factory():
    """Build an app from TestConfig with overrides; rooms are cleared on teardown."""
    built = []

    def _build(**overrides):
        config_class = type('OverriddenTestConfig', (TestConfig,), overrides)
        application = create_app(config_class)
        built.append(application)
        return application

    yield _build
    for application in built:
        application.extensions[DIRECTORY_KEY].clear()
        application.extensions[REGISTRY_KEY].clear()
