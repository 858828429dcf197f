from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

from telestrations.registry import ConnectionRegistry, EXTENSION_KEY as REGISTRY_KEY
from telestrations.rooms import RoomDirectory, EXTENSION_KEY as DIRECTORY_KEY
from telestrations.services.rooms.drawings import DEFAULT_MAX_DRAWING_BYTES

socketio = SocketIO(async_mode=None)

# Room for the data URL prefix, room id and event framing around a drawing
MESSAGE_OVERHEAD_BYTES = 64 * 1024


def max_message_bytes(max_drawing_bytes: int) -> int:
    """Largest Socket.IO message needed to carry a drawing of ``max_drawing_bytes``."""
    encoded = (max_drawing_bytes + 2) // 3 * 4
    return encoded + MESSAGE_OVERHEAD_BYTES


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    max_drawing_bytes = int(flask_app.config.get('MAX_DRAWING_BYTES', DEFAULT_MAX_DRAWING_BYTES))

    CORS(flask_app, origins=allowed_origins)
    socketio.init_app(
        flask_app,
        cors_allowed_origins=allowed_origins,
        max_http_buffer_size=max_message_bytes(max_drawing_bytes),
    )

    # One directory and one registry per application instance
    flask_app.extensions[DIRECTORY_KEY] = RoomDirectory.from_config(flask_app.config)
    flask_app.extensions[REGISTRY_KEY] = ConnectionRegistry()

    from telestrations.main import main
    flask_app.register_blueprint(main)

    from telestrations.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from telestrations.services.rooms.sweeper import start_empty_room_sweeper
    start_empty_room_sweeper(flask_app)

    flask_app.logger.info(
        f"[startup] origins={allowed_origins} sweep={flask_app.config.get('EMPTY_ROOM_SWEEP_INTERVAL_SEC')}s"
    )
    return flask_app
