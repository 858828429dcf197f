from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from telestrations import socketio
from telestrations.errors import (
    DrawingAlreadySubmitted,
    DuplicateRoom,
    InvalidDrawingPayload,
    NotRoomMember,
    RoomIdsExhausted,
    RoomNotFound,
    UsernameTaken,
)
from telestrations.registry import EXTENSION_KEY as REGISTRY_KEY, get_registry
from telestrations.rooms import get_directory

NAMESPACE = '/'
CREATE_ATTEMPTS = 3

ROOM_NOT_FOUND = 'Room not found'
SAVE_FAILED = 'Error saving drawing'
DRAWING_SAVED = 'Drawing saved successfully'


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _room_id(value):
    if value is None:
        return None
    return str(value).strip() or None


def handle_connect(auth=None):
    sid = _get_sid()
    get_registry().connect(sid)
    emit('connected', {'sid': sid})


def handle_disconnect(reason=None):
    sid = _get_sid()
    room_id = get_registry().disconnect(sid)
    destroyed = get_directory().remove_user_from_all_rooms(sid)
    for rid in destroyed:
        _close_room(rid, skip_sid=sid)
    current_app.logger.info(f"[disconnect] sid={sid} room={room_id} destroyed={destroyed} reason={reason}")


def handle_create_room(username=None):
    if isinstance(username, dict):
        username = username.get('username')
    if not isinstance(username, str) or not username.strip():
        emit('room-error', 'Username is required')
        return
    sid = _get_sid()
    directory = get_directory()
    _detach(sid)

    room = None
    for _ in range(CREATE_ATTEMPTS):
        try:
            room = directory.create_room(directory.generate_room_id(), sid, username)
            break
        except DuplicateRoom:
            continue
        except RoomIdsExhausted:
            break
    if room is None:
        current_app.logger.warning(f"[room-create-failed] sid={sid} rooms={len(directory)}")
        emit('room-error', 'No rooms available')
        return

    join_room(room.id)
    get_registry().bind(sid, room.id)
    emit('room-created', room.id)
    current_app.logger.info(f"[room-create] room={room.id} sid={sid} user={username}")


def handle_start_game(room_id=None):
    if isinstance(room_id, dict):
        room_id = room_id.get('roomId')
    room_id = _room_id(room_id)
    sid = _get_sid()
    room = get_directory().get_room(room_id)
    if room is None:
        emit('room-error', ROOM_NOT_FOUND)
        return
    if not room.has_member(sid):
        current_app.logger.warning(f"[game-start] room={room_id} sid={sid} not a member")
        emit('room-error', 'Not a member of this room')
        return
    try:
        round_number = room.start_round()
    except RoomNotFound:
        emit('room-error', ROOM_NOT_FOUND)
        return
    emit('game-started', to=room_id, include_self=False)
    current_app.logger.info(f"[game-start] room={room_id} round={round_number} sid={sid}")


def handle_join_room(room_id=None, username=None):
    if isinstance(room_id, dict):
        username = room_id.get('username')
        room_id = room_id.get('roomId')
    room_id = _room_id(room_id)
    sid = _get_sid()
    room = get_directory().get_room(room_id)
    if room is None:
        emit('room-error', ROOM_NOT_FOUND)
        return
    if not isinstance(username, str) or not username.strip():
        emit('room-error', 'Username is required')
        return

    try:
        room.add_user(sid, username)
    except UsernameTaken:
        emit('room-error', 'Username already taken')
        return
    except RoomNotFound:
        emit('room-error', ROOM_NOT_FOUND)
        return

    # Only leave the previous room once the new membership is in place
    _detach(sid, keep_room_id=room_id)
    join_room(room_id)
    get_registry().bind(sid, room_id)
    emit('room-joined', room_id)
    emit('user-joined', to=room_id)
    current_app.logger.info(f"[room-join] room={room_id} sid={sid} user={username}")


def handle_leave_room(room_id=None):
    if isinstance(room_id, dict):
        room_id = room_id.get('roomId')
    room_id = _room_id(room_id)
    sid = _get_sid()
    if get_directory().get_room(room_id) is None:
        current_app.logger.warning(f"[room-leave] room={room_id} sid={sid} room not found")
        return
    _leave(sid, room_id)
    emit('room-left', room_id)


def handle_save_drawing(data=None, drawing_data_url=None):
    if isinstance(data, dict):
        room_id = data.get('roomId')
        drawing_data_url = data.get('drawingDataUrl')
    else:
        room_id = data
    room_id = _room_id(room_id)
    sid = _get_sid()
    room = get_directory().get_room(room_id)
    if room is None:
        current_app.logger.error(f"[drawing-save] room={room_id} sid={sid} room not found")
        emit('drawing-error', SAVE_FAILED)
        return

    try:
        drawing = room.save_drawing(sid, drawing_data_url)
    except InvalidDrawingPayload as exc:
        current_app.logger.warning(f"[drawing-invalid] room={room_id} sid={sid} {exc}")
        emit('drawing-error', 'Invalid drawing data')
        return
    except NotRoomMember:
        emit('drawing-error', 'Not a member of this room')
        return
    except DrawingAlreadySubmitted:
        emit('drawing-error', 'Drawing already submitted this round')
        return
    except RoomNotFound:
        emit('drawing-error', SAVE_FAILED)
        return
    except Exception:
        current_app.logger.exception(f"[drawing-save] room={room_id} sid={sid} unexpected failure")
        emit('drawing-error', SAVE_FAILED)
        return

    emit('drawing-saved', DRAWING_SAVED)
    current_app.logger.info(
        f"[drawing-save] room={room_id} sid={sid} index={drawing.index} round={drawing.round_number} bytes={drawing.size}"
    )


def handle_view_all_drawings(room_id=None):
    if isinstance(room_id, dict):
        room_id = room_id.get('roomId')
    room_id = _room_id(room_id)
    sid = _get_sid()
    room = get_directory().get_room(room_id)
    if room is None:
        current_app.logger.error(f"[replay] room={room_id} sid={sid} room not found")
        emit('room-error', ROOM_NOT_FOUND)
        return

    emit('view-all-drawings', to=room_id)
    app = current_app._get_current_object()
    drawings = room.iter_drawings()
    if app.config.get('TESTING') and not app.config.get('ENABLE_BACKGROUND_REPLAY_IN_TESTS'):
        _replay_drawings(app, sid, drawings)
    else:
        socketio.start_background_task(_replay_drawings, app, sid, drawings)


# ---- Replay and membership helpers ----

def _replay_drawings(app, sid, drawings) -> None:
    """Send each drawing to ``sid`` in order, then the finished marker."""
    registry = app.extensions[REGISTRY_KEY]
    sent = 0
    for index, drawing in drawings:
        if not registry.is_connected(sid):
            app.logger.info(f"[replay-abort] sid={sid} disconnected after {sent} drawings")
            return
        socketio.emit('drawing-data', {'index': index, 'imageData': drawing.image_data}, to=sid, namespace=NAMESPACE)
        sent += 1
        socketio.sleep(0)
    if registry.is_connected(sid):
        socketio.emit('view-all-drawings-finished', to=sid, namespace=NAMESPACE)
    app.logger.info(f"[replay] sid={sid} sent={sent}")


def _close_room(room_id: str, skip_sid=None) -> None:
    """Destroy a room and tell whoever is still in it."""
    get_directory().remove_room(room_id)
    get_registry().unbind_room(room_id)
    socketio.emit('room-closed', room_id, to=room_id, skip_sid=skip_sid, namespace=NAMESPACE)
    socketio.close_room(room_id, namespace=NAMESPACE)
    current_app.logger.info(f"[room-close] room={room_id}")


def _leave(sid: str, room_id: str) -> bool:
    """Remove ``sid`` from ``room_id``; returns True when the room was destroyed."""
    leave_room(room_id)
    get_registry().unbind(sid, room_id)
    room = get_directory().get_room(room_id)
    if room is None:
        return False
    room.remove_user(sid)
    current_app.logger.info(f"[room-leave] room={room_id} sid={sid}")
    if room.is_creator(sid) or room.is_empty():
        _close_room(room_id, skip_sid=sid)
        return True
    return False


def _detach(sid: str, keep_room_id=None) -> None:
    # A connection belongs to at most one room at a time
    current = get_registry().room_of(sid)
    if current and current != keep_room_id:
        _leave(sid, current)


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the default namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('create-room', handle_create_room, namespace=NAMESPACE)
    socketio.on_event('start-game', handle_start_game, namespace=NAMESPACE)
    socketio.on_event('join-room', handle_join_room, namespace=NAMESPACE)
    socketio.on_event('leave-room', handle_leave_room, namespace=NAMESPACE)
    socketio.on_event('save-drawing', handle_save_drawing, namespace=NAMESPACE)
    socketio.on_event('view-all-drawings', handle_view_all_drawings, namespace=NAMESPACE)
