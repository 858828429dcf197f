import threading
from typing import Dict, List, Optional

from flask import current_app

EXTENSION_KEY = 'connection_registry'


class ConnectionRegistry:
    """Live socket ids and the room each one currently belongs to."""

    def __init__(self):
        self._rooms: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()

    def connect(self, sid: str) -> None:
        with self._lock:
            self._rooms.setdefault(sid, None)

    def disconnect(self, sid: str) -> Optional[str]:
        """Forget ``sid`` and return the room it was bound to, if any."""
        with self._lock:
            return self._rooms.pop(sid, None)

    def is_connected(self, sid: str) -> bool:
        return sid in self._rooms

    def bind(self, sid: str, room_id: str) -> None:
        with self._lock:
            self._rooms[sid] = room_id

    def unbind(self, sid: str, room_id: Optional[str] = None) -> None:
        with self._lock:
            if sid in self._rooms and (room_id is None or self._rooms[sid] == room_id):
                self._rooms[sid] = None

    def unbind_room(self, room_id: str) -> List[str]:
        with self._lock:
            sids = [sid for sid, rid in self._rooms.items() if rid == room_id]
            for sid in sids:
                self._rooms[sid] = None
        return sids

    def room_of(self, sid: str) -> Optional[str]:
        return self._rooms.get(sid)

    def clear(self) -> None:
        with self._lock:
            self._rooms.clear()


def get_registry() -> ConnectionRegistry:
    return current_app.extensions[EXTENSION_KEY]
