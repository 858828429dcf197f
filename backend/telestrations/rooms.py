import random
import string
import threading
from typing import Dict, List, Optional

from flask import current_app

from telestrations.errors import DuplicateRoom, RoomIdsExhausted
from telestrations.models import Room
from telestrations.services.rooms.drawings import DEFAULT_MAX_DRAWING_BYTES

EXTENSION_KEY = 'room_directory'


class RoomDirectory:
    """All live rooms of this process, keyed by room id.

    Built once by the application factory and reached through
    ``get_directory()``. ``clear()`` drops every room.
    """

    def __init__(self, room_id_length: int = 3, max_drawing_bytes: int = DEFAULT_MAX_DRAWING_BYTES,
                 enforce_one_drawing_per_round: bool = False):
        self.room_id_length = room_id_length
        self.max_drawing_bytes = max_drawing_bytes
        self.enforce_one_drawing_per_round = enforce_one_drawing_per_round
        self.rooms: Dict[str, Room] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config):
        return cls(
            room_id_length=int(config.get('ROOM_ID_LENGTH', 3)),
            max_drawing_bytes=int(config.get('MAX_DRAWING_BYTES', DEFAULT_MAX_DRAWING_BYTES)),
            enforce_one_drawing_per_round=bool(config.get('ENFORCE_ONE_DRAWING_PER_ROUND', False)),
        )

    def generate_room_id(self, max_attempts: int = 100) -> str:
        """Generate a short numeric room id not used by a live room."""
        with self._lock:
            for _ in range(max_attempts):
                room_id = ''.join(random.choices(string.digits, k=self.room_id_length))
                if room_id not in self.rooms:
                    return room_id
        raise RoomIdsExhausted(f'No free room id after {max_attempts} attempts')

    def create_room(self, room_id: str, creator_sid: str, creator_username: str) -> Room:
        with self._lock:
            if room_id in self.rooms:
                raise DuplicateRoom(room_id)
            room = Room(
                room_id,
                creator_sid,
                creator_username,
                max_drawing_bytes=self.max_drawing_bytes,
                enforce_one_drawing_per_round=self.enforce_one_drawing_per_round,
            )
            self.rooms[room_id] = room
            return room

    def get_room(self, room_id) -> Optional[Room]:
        if room_id is None:
            return None
        return self.rooms.get(str(room_id))

    def remove_room(self, room_id) -> Optional[Room]:
        with self._lock:
            room = self.rooms.pop(str(room_id), None)
        if room is not None:
            room.destroy()
        return room

    def remove_empty_rooms(self) -> List[str]:
        with self._lock:
            empty = [room_id for room_id, room in self.rooms.items() if room.is_empty()]
            for room_id in empty:
                self.remove_room(room_id)
        return empty

    def get_all_usernames(self) -> List[str]:
        with self._lock:
            rooms = list(self.rooms.values())
        return [name for room in rooms for name in room.usernames()]

    def get_usernames_in_a_room(self, room_id) -> List[str]:
        room = self.get_room(room_id)
        return room.usernames() if room else []

    def get_host(self, room_id) -> Optional[str]:
        room = self.get_room(room_id)
        return room.creator if room else None

    def remove_user_from_all_rooms(self, sid: str) -> List[str]:
        """Drop ``sid`` from every room it is in.

        Rooms it created, or rooms left with no members, are destroyed.
        Returns the ids of destroyed rooms.
        """
        destroyed = []
        with self._lock:
            for room_id, room in list(self.rooms.items()):
                if not room.remove_user(sid):
                    continue
                if room.is_creator(sid) or room.is_empty():
                    self.remove_room(room_id)
                    destroyed.append(room_id)
        return destroyed

    def clear(self) -> None:
        with self._lock:
            for room_id in list(self.rooms):
                self.remove_room(room_id)

    def __len__(self):
        return len(self.rooms)

    def __contains__(self, room_id):
        return str(room_id) in self.rooms


def get_directory() -> RoomDirectory:
    return current_app.extensions[EXTENSION_KEY]
