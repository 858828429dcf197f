import threading
from typing import Dict, Iterator, List, Tuple

from telestrations.errors import (
    DrawingAlreadySubmitted,
    NotRoomMember,
    RoomNotFound,
    UsernameTaken,
)
from telestrations.services.rooms.drawings import DEFAULT_MAX_DRAWING_BYTES, decode_drawing

ROOM_ACTIVE = 'active'
ROOM_DESTROYED = 'destroyed'


class Member:
    def __init__(self, sid: str, username: str, join_order: int):
        self.sid = sid
        self.username = username
        self.join_order = join_order


class Drawing:
    """One submitted drawing. ``image_data`` is the data URL as received."""

    def __init__(self, index: int, sid: str, username: str, round_number: int,
                 mime_type: str, image_data: str, size: int):
        self.index = index
        self.sid = sid
        self.username = username
        self.round_number = round_number
        self.mime_type = mime_type
        self.image_data = image_data
        self.size = size


class Room:
    """Runtime state of one game session.

    Membership is keyed by the connection sid and kept in join order. The
    drawing list is append-only; its order is the replay order.
    """

    def __init__(self, room_id: str, creator_sid: str, creator_username: str,
                 max_drawing_bytes: int = DEFAULT_MAX_DRAWING_BYTES,
                 enforce_one_drawing_per_round: bool = False):
        self.id = room_id
        self.creator = creator_sid
        self.state = ROOM_ACTIVE
        self.round_number = 0
        self.members: Dict[str, Member] = {}
        self.drawings: List[Drawing] = []
        self.max_drawing_bytes = max_drawing_bytes
        self.enforce_one_drawing_per_round = enforce_one_drawing_per_round
        self._join_counter = 0
        self._lock = threading.RLock()
        self.add_user(creator_sid, creator_username)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    @property
    def is_destroyed(self) -> bool:
        return self.state == ROOM_DESTROYED

    def _ensure_alive(self) -> None:
        if self.is_destroyed:
            raise RoomNotFound(self.id)

    def add_user(self, sid: str, username: str) -> Member:
        with self._lock:
            self._ensure_alive()
            existing = self.members.get(sid)
            if existing is not None:
                # Same connection joining twice keeps its original record
                return existing
            wanted = (username or '').strip().casefold()
            if any(m.username.strip().casefold() == wanted for m in self.members.values()):
                raise UsernameTaken(username)
            self._join_counter += 1
            member = Member(sid, username, self._join_counter)
            self.members[sid] = member
            return member

    def remove_user(self, sid: str) -> bool:
        with self._lock:
            return self.members.pop(sid, None) is not None

    def has_member(self, sid: str) -> bool:
        return sid in self.members

    def is_creator(self, sid: str) -> bool:
        return self.creator == sid

    def is_empty(self) -> bool:
        return not self.members

    def usernames(self) -> List[str]:
        with self._lock:
            return [m.username for m in self.members.values()]

    # ------------------------------------------------------------------
    # Rounds and drawings
    # ------------------------------------------------------------------

    def start_round(self) -> int:
        with self._lock:
            self._ensure_alive()
            self.round_number += 1
            return self.round_number

    def save_drawing(self, sid: str, data_url) -> Drawing:
        """Validate ``data_url`` and append it as the next drawing.

        Raises InvalidDrawingPayload, NotRoomMember, DrawingAlreadySubmitted
        (only with per-round enforcement on) or RoomNotFound once destroyed.
        """
        mime_type, image = decode_drawing(data_url, self.max_drawing_bytes)
        with self._lock:
            self._ensure_alive()
            member = self.members.get(sid)
            if member is None:
                raise NotRoomMember(f'{sid} is not a member of room {self.id}')
            if self.enforce_one_drawing_per_round and any(
                d.round_number == self.round_number for d in self.drawings_by(sid)
            ):
                raise DrawingAlreadySubmitted(
                    f'{member.username} already submitted a drawing in round {self.round_number}'
                )
            drawing = Drawing(
                index=len(self.drawings),
                sid=sid,
                username=member.username,
                round_number=self.round_number,
                mime_type=mime_type,
                image_data=data_url.strip(),
                size=len(image),
            )
            self.drawings.append(drawing)
            return drawing

    def iter_drawings(self) -> Iterator[Tuple[int, Drawing]]:
        """Return an iterator of ``(index, drawing)`` in submission order.

        The sequence is snapshotted at call time, so drawings saved while a
        replay is in flight are left for the next replay. Each call starts a
        fresh replay.
        """
        with self._lock:
            snapshot = list(self.drawings)
        return iter(enumerate(snapshot))

    def drawings_by(self, sid: str) -> List[Drawing]:
        with self._lock:
            return [d for d in self.drawings if d.sid == sid]

    def destroy(self) -> None:
        with self._lock:
            self.state = ROOM_DESTROYED
            self.members.clear()

    def __repr__(self):
        return f'<Room {self.id} members={len(self.members)} drawings={len(self.drawings)} state={self.state}>'
