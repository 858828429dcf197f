"""Domain errors raised by rooms and the room directory.

Socket handlers catch these and report them to the originating connection
as named error events; none of them should escape a handler.
"""


class TelestrationsError(Exception):
    """Base class for all room/session errors."""


class RoomNotFound(TelestrationsError):
    def __init__(self, room_id):
        super().__init__(f'Room {room_id!r} not found')
        self.room_id = room_id


class DuplicateRoom(TelestrationsError):
    def __init__(self, room_id):
        super().__init__(f'Room {room_id!r} already exists')
        self.room_id = room_id


class RoomIdsExhausted(TelestrationsError):
    pass


class UsernameTaken(TelestrationsError):
    def __init__(self, username):
        super().__init__(f'Username {username!r} already taken')
        self.username = username


class NotRoomMember(TelestrationsError):
    pass


class InvalidDrawingPayload(TelestrationsError):
    pass


class DrawingAlreadySubmitted(TelestrationsError):
    pass
