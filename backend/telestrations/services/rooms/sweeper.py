from typing import List

from telestrations import socketio
from telestrations.registry import EXTENSION_KEY as REGISTRY_KEY
from telestrations.rooms import EXTENSION_KEY as DIRECTORY_KEY

NAMESPACE = '/'


def sweep_empty_rooms(app) -> List[str]:
    """Remove rooms without members and release their socket rooms."""
    directory = app.extensions[DIRECTORY_KEY]
    registry = app.extensions[REGISTRY_KEY]
    removed = directory.remove_empty_rooms()
    for room_id in removed:
        registry.unbind_room(room_id)
        socketio.close_room(room_id, namespace=NAMESPACE)
    if removed:
        app.logger.info(f"[sweep] removed={removed} remaining={len(directory)}")
    return removed


def start_empty_room_sweeper(app) -> None:
    """Run ``sweep_empty_rooms`` every EMPTY_ROOM_SWEEP_INTERVAL_SEC.

    - No-ops in TESTING mode unless ENABLE_SWEEPER_IN_TESTS is set
    - Runs as a Socket.IO background task so it shares the server's scheduler
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SWEEPER_IN_TESTS'):
        return
    interval = int(app.config.get('EMPTY_ROOM_SWEEP_INTERVAL_SEC', 120))
    if interval <= 0:
        app.logger.info("[sweep-disabled] interval <= 0")
        return

    def _worker():
        while True:
            socketio.sleep(interval)
            try:
                sweep_empty_rooms(app)
            except Exception:
                app.logger.exception("[sweep-error] empty room sweep failed")

    app.logger.info(f"[sweep-start] interval={interval}s")
    socketio.start_background_task(_worker)
