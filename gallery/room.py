"""The authoritative server-side shooting gallery room.

A room processes one input at a time. Ticks, custom methods, attribute
updates and join/leave events are posted to the room's mailbox and drained
in arrival order, so no handler ever sees another one half way through.
"""

import logging
import queue
import random
import threading
import uuid
from typing import Any, Callable, Dict, Optional

from gallery import messages
from gallery.messages import (
    InvalidOptionsError,
    MethodNotFoundError,
    RoomError,
    RoomFullError,
    RoomLockedError,
    RoomNotFoundError,
)
from gallery.models import CountDownState, NetworkedEntity, NetworkedUser, ServerGameState
from gallery.services.rounds.machine import game_loop
from gallery.services.rounds.scoring import score_target, unlock_if_able
from gallery.sink import Sink
from gallery.state import RoomState
from gallery.targets import random_lineup

logger = logging.getLogger(__name__)

DEFAULT_MIN_REQ_PLAYERS = 2
DEFAULT_NUMBER_OF_TARGET_ROWS = 4
DEFAULT_MAX_CLIENTS = 8

# name -> handler(room, client, request)
CUSTOM_METHODS: Dict[str, Callable] = {
    'scoreTarget': score_target,
}


class RoomOptions:
    def __init__(self, min_req_players=DEFAULT_MIN_REQ_PLAYERS,
                 number_of_target_rows=DEFAULT_NUMBER_OF_TARGET_ROWS):
        self.min_req_players = min_req_players
        self.number_of_target_rows = number_of_target_rows

    @staticmethod
    def _int_option(options, key, default, minimum):
        raw = options.get(key)
        if raw is None or raw == '':
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise InvalidOptionsError(f"{key} must be an integer, got {raw!r}") from None
        if isinstance(raw, bool) or value < minimum:
            raise InvalidOptionsError(f"{key} must be >= {minimum}, got {raw!r}")
        return value

    @classmethod
    def from_dict(cls, options: Optional[Dict[str, Any]], min_req_players=DEFAULT_MIN_REQ_PLAYERS,
                  number_of_target_rows=DEFAULT_NUMBER_OF_TARGET_ROWS) -> 'RoomOptions':
        options = options or {}
        return cls(
            min_req_players=cls._int_option(options, 'minReqPlayers', min_req_players, 1),
            number_of_target_rows=cls._int_option(options, 'numberOfTargetRows', number_of_target_rows, 1),
        )

    def to_dict(self):
        return {
            'minReqPlayers': self.min_req_players,
            'numberOfTargetRows': self.number_of_target_rows,
        }


class _Envelope:
    __slots__ = ('session_id', 'fn', 'args', 'result', 'error')

    def __init__(self, session_id, fn, args):
        self.session_id = session_id
        self.fn = fn
        self.args = args
        self.result = None
        self.error = None


class ShootingGalleryRoom:
    def __init__(self, room_id: str, sink: Sink, max_clients: int = DEFAULT_MAX_CLIENTS,
                 rng: Optional[random.Random] = None, lineup_factory: Optional[Callable] = None):
        self.room_id = room_id
        self.sink = sink
        self.max_clients = max_clients
        self.rng = rng or random.Random()
        self.lineup_factory = lineup_factory
        self.options = RoomOptions()
        self.state = RoomState(sink)
        self.locked = False
        self.disposed = False

        self.current_state = ServerGameState.NONE
        self.last_state = ServerGameState.NONE
        self.count_down_state = CountDownState.ENTER
        self.curr_count_down = 0.0

        self._mailbox: 'queue.Queue[_Envelope]' = queue.Queue()
        self._drain_lock = threading.Lock()

    # ---- serialized input ----
    def call(self, session_id: Optional[str], fn: Callable, *args):
        """Run ``fn(*args)`` in turn with every other input to this room.

        A ``RoomError`` is re-raised to the caller; anything else is logged
        and reported to ``session_id`` without stopping the room.
        """
        envelope = _Envelope(session_id, fn, args)
        self._mailbox.put(envelope)
        self.drain()
        if envelope.error is not None:
            raise envelope.error
        return envelope.result

    def drain(self) -> None:
        with self._drain_lock:
            while True:
                try:
                    envelope = self._mailbox.get_nowait()
                except queue.Empty:
                    return
                try:
                    envelope.result = envelope.fn(*envelope.args)
                except RoomError as exc:
                    logger.debug(f"[room-error] room={self.room_id} session={envelope.session_id} {exc}")
                    envelope.error = exc
                except Exception:
                    logger.exception(f"[room-fail] room={self.room_id} session={envelope.session_id}")
                    self.sink.send_error(envelope.session_id, 'Internal server error')

    # ---- lock ----
    def lock(self) -> None:
        if not self.locked:
            self.locked = True
            logger.info(f"[lock] room={self.room_id} locked")

    def unlock(self) -> None:
        if self.locked:
            self.locked = False
            logger.info(f"[lock] room={self.room_id} unlocked")

    def has_reached_max_clients(self) -> bool:
        return len(self.state.users) >= self.max_clients

    # ---- lifecycle hooks ----
    def initialize(self, options: Optional[Dict[str, Any]] = None, **defaults) -> None:
        self.options = RoomOptions.from_dict(options, **defaults)
        self.state.clear_round()
        self.current_state = ServerGameState.WAITING
        self.last_state = ServerGameState.NONE
        self.count_down_state = CountDownState.ENTER
        self.curr_count_down = 0.0
        self.state.set_room_attribute(messages.CURRENT_STATE, self.current_state.value)
        self.state.set_room_attribute(messages.LAST_STATE, self.last_state.value)
        logger.info(f"[init] room={self.room_id} options={self.options.to_dict()}")

    def tick(self, delta_ms: float) -> None:
        game_loop(self, delta_ms / 1000.0)

    def handle_custom_method(self, client: Optional[str], request) -> Any:
        handler = CUSTOM_METHODS.get(request.method)
        if handler is None:
            raise MethodNotFoundError(request.method)
        return handler(self, client, request)

    def handle_user_left(self) -> None:
        if not self.locked:
            return
        # Locked rooms left full after a reset reopen as soon as someone leaves
        if self.current_state == ServerGameState.WAITING:
            unlock_if_able(self)
        else:
            logger.debug(f"[lock] room={self.room_id} stays locked, state={self.current_state.value}")

    # ---- membership ----
    def on_join(self, session_id: str, user_id: Optional[str] = None) -> NetworkedUser:
        if self.disposed:
            raise RoomNotFoundError(self.room_id)
        existing = self.state.user_for_session(session_id)
        if existing:
            return existing
        if self.locked:
            raise RoomLockedError(f"Room {self.room_id} is locked")
        if self.has_reached_max_clients():
            raise RoomFullError(f"Room {self.room_id} is full")
        user_id = user_id or session_id
        if user_id in self.state.users:
            raise RoomError(f"User {user_id} is already in room {self.room_id}")
        user = NetworkedUser(user_id=user_id, session_id=session_id)
        self.state.add_user(user)
        self.sink.broadcast(messages.USER_JOINED, user.to_dict())
        logger.info(f"[join] room={self.room_id} user={user_id} users={len(self.state.users)}")
        return user

    def on_leave(self, session_id: str) -> Optional[NetworkedUser]:
        user = self.state.user_for_session(session_id)
        if not user:
            return None
        for entity in self.state.entities_owned_by(user.user_id):
            self.state.remove_entity(entity.entity_id)
            self.sink.broadcast(messages.ENTITY_REMOVED, {'entityId': entity.entity_id})
        self.state.remove_user(user.user_id)
        self.sink.broadcast(messages.USER_LEFT, {'userId': user.user_id})
        logger.info(f"[leave] room={self.room_id} user={user.user_id} users={len(self.state.users)}")
        self.handle_user_left()
        return user

    def set_attribute(self, session_id: Optional[str], user_id: str, attributes_to_set: Dict[str, Any]) -> bool:
        """Apply a per-user attribute update; clients may only touch their own user."""
        if session_id is not None:
            sender = self.state.user_for_session(session_id)
            if not sender or sender.user_id != user_id:
                logger.debug(f"[attr-skip] session={session_id} may not set attributes of user={user_id}")
                return False
        return self.state.set_user_attributes(user_id, attributes_to_set)

    def create_entity(self, session_id: str, creation_id: str = '',
                      attributes: Optional[Dict[str, Any]] = None) -> NetworkedEntity:
        owner = self.state.user_for_session(session_id)
        if not owner:
            raise RoomError('Join the room before creating entities')
        entity = NetworkedEntity(
            entity_id=uuid.uuid4().hex,
            owner_id=owner.user_id,
            creation_id=creation_id or '',
            attributes={str(k): str(v) for k, v in (attributes or {}).items()},
        )
        self.state.add_entity(entity)
        self.sink.broadcast(messages.ENTITY_CREATED, entity.to_dict())
        return entity

    def remove_entity(self, session_id: str, entity_id: str) -> bool:
        owner = self.state.user_for_session(session_id)
        entity = self.state.entities.get(entity_id)
        if not entity or not owner or entity.owner_id != owner.user_id:
            logger.debug(f"[entity-skip] session={session_id} cannot remove entity={entity_id}")
            return False
        self.state.remove_entity(entity_id)
        self.sink.broadcast(messages.ENTITY_REMOVED, {'entityId': entity_id})
        return True

    # ---- helpers for the state machine ----
    def make_lineup(self, count: int, rows: int):
        if self.lineup_factory is not None:
            return list(self.lineup_factory(count, rows))
        return random_lineup(count, rows, self.rng)

    def to_dict(self):
        payload = self.state.to_dict()
        payload.update({
            'room_id': self.room_id,
            'locked': self.locked,
            'max_clients': self.max_clients,
            'options': self.options.to_dict(),
            'current_state': self.current_state.value,
            'last_state': self.last_state.value,
        })
        return payload

    def summary(self):
        return {
            'room_id': self.room_id,
            'clients': len(self.state.users),
            'max_clients': self.max_clients,
            'locked': self.locked,
            'state': self.current_state.value,
        }

    def is_empty(self) -> bool:
        return not self.state.users

    def dispose(self) -> None:
        """Close the room; members are told and later joins are refused."""
        if self.disposed:
            return
        self.disposed = True
        self.lock()
        self.sink.broadcast(messages.DISPOSED, {'room_id': self.room_id})
        logger.info(f"[dispose] room={self.room_id} users={len(self.state.users)}")
