import logging
import random
import string
import time
from typing import Callable, Dict, List, Optional

from gallery.messages import RoomNotFoundError
from gallery.room import (
    DEFAULT_MAX_CLIENTS,
    DEFAULT_MIN_REQ_PLAYERS,
    DEFAULT_NUMBER_OF_TARGET_ROWS,
    ShootingGalleryRoom,
)
from gallery.sink import SocketIOSink

logger = logging.getLogger(__name__)


def generate_room_code(existing, length=6):
    """Generate a unique, short room code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in existing:
            return code


class RoomManager:
    """Keeps every live room in memory and drives their tickers."""

    def __init__(self):
        self.rooms: Dict[str, ShootingGalleryRoom] = {}
        self.socketio = None
        self.max_clients = DEFAULT_MAX_CLIENTS
        self.min_req_players = DEFAULT_MIN_REQ_PLAYERS
        self.number_of_target_rows = DEFAULT_NUMBER_OF_TARGET_ROWS
        self.tick_interval_ms = 50
        self.auto_dispose = True
        self.empty_room_grace_sec = 30.0
        self.start_tickers = True
        # room id -> monotonic time it was first seen empty
        self._empty_since: Dict[str, float] = {}
        # called with the room id after a room is disposed
        self.on_dispose: Optional[Callable[[str], None]] = None

    def init_app(self, flask_app, socketio) -> None:
        cfg = flask_app.config
        self.socketio = socketio
        self.max_clients = int(cfg.get('MAX_CLIENTS', DEFAULT_MAX_CLIENTS))
        self.min_req_players = int(cfg.get('MIN_REQ_PLAYERS', DEFAULT_MIN_REQ_PLAYERS))
        self.number_of_target_rows = int(cfg.get('NUMBER_OF_TARGET_ROWS', DEFAULT_NUMBER_OF_TARGET_ROWS))
        self.tick_interval_ms = int(cfg.get('TICK_INTERVAL_MS', 50))
        self.auto_dispose = bool(cfg.get('AUTO_DISPOSE_EMPTY_ROOMS', True))
        self.empty_room_grace_sec = float(cfg.get('EMPTY_ROOM_GRACE_SEC', 30))
        # Tests drive ticks by hand
        self.start_tickers = not cfg.get('TESTING')
        self.rooms.clear()
        self._empty_since.clear()

    def create_room(self, options=None, sink=None, **room_kwargs) -> ShootingGalleryRoom:
        room_id = generate_room_code(self.rooms)
        if sink is None:
            sink = SocketIOSink(self.socketio, room_id)
        room = ShootingGalleryRoom(room_id, sink, max_clients=self.max_clients, **room_kwargs)
        room.initialize(
            options,
            min_req_players=self.min_req_players,
            number_of_target_rows=self.number_of_target_rows,
        )
        self.rooms[room_id] = room
        if self.start_tickers and self.socketio is not None:
            self.socketio.start_background_task(self._ticker, room)
        return room

    def get_room(self, room_id: str) -> ShootingGalleryRoom:
        room = self.rooms.get((room_id or '').upper())
        if room is None:
            raise RoomNotFoundError(room_id)
        return room

    def find_room(self, room_id: str) -> Optional[ShootingGalleryRoom]:
        return self.rooms.get((room_id or '').upper())

    def list_rooms(self) -> List[dict]:
        return [room.call(None, room.summary) for room in list(self.rooms.values())]

    def dispose_room(self, room_id: str) -> bool:
        room = self.find_room(room_id)
        if room is None:
            return False
        room.call(None, self._dispose, room)
        return True

    def _dispose(self, room: ShootingGalleryRoom) -> None:
        # Runs inside the room's mailbox so no join can slip in half way
        if self.rooms.get(room.room_id) is room:
            del self.rooms[room.room_id]
        self._empty_since.pop(room.room_id, None)
        room.dispose()
        if self.on_dispose is not None:
            self.on_dispose(room.room_id)

    def leave(self, room: ShootingGalleryRoom, session_id: str):
        return room.call(session_id, self._leave, room, session_id)

    def _leave(self, room: ShootingGalleryRoom, session_id: str):
        user = room.on_leave(session_id)
        if self.auto_dispose and room.is_empty():
            self._dispose(room)
        return user

    def dispose_if_idle(self, room: ShootingGalleryRoom, now: Optional[float] = None) -> bool:
        """Dispose ``room`` once it has stayed empty for the grace period.

        Covers rooms that nobody ever joins; rooms emptied by a leave are
        disposed straight away.
        """
        if not self.auto_dispose or room.disposed:
            return False
        now = time.monotonic() if now is None else now
        return bool(room.call(None, self._dispose_if_idle, room, now))

    def _dispose_if_idle(self, room: ShootingGalleryRoom, now: float) -> bool:
        if not room.is_empty():
            self._empty_since.pop(room.room_id, None)
            return False
        since = self._empty_since.setdefault(room.room_id, now)
        if now - since < self.empty_room_grace_sec:
            return False
        logger.info(f"[idle] room={room.room_id} empty for {now - since:.1f}s")
        self._dispose(room)
        return True

    def _ticker(self, room: ShootingGalleryRoom) -> None:
        interval = self.tick_interval_ms / 1000.0
        last = time.monotonic()
        while self.rooms.get(room.room_id) is room:
            self.socketio.sleep(interval)
            now = time.monotonic()
            elapsed_ms = (now - last) * 1000.0
            last = now
            try:
                room.call(None, room.tick, elapsed_ms)
                self.dispose_if_idle(room, now)
            except Exception:
                logger.exception(f"[tick-fail] room={room.room_id}")
        logger.info(f"[ticker-stop] room={room.room_id}")
