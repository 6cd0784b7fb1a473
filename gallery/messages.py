"""Message kinds exchanged with clients and the errors surfaced to them."""

from typing import Any, Dict, List, Optional

# Server -> all clients broadcasts
NEW_TARGET_LINE_UP = 'newTargetLineUp'
BEGIN_ROUND_COUNT_DOWN = 'beginRoundCountDown'
BEGIN_ROUND = 'beginRound'
ON_SCORE_UPDATE = 'onScoreUpdate'
ON_ROUND_END = 'onRoundEnd'

# Replication / room membership events
ROOM_ATTRIBUTES = 'room_attributes'
USER_ATTRIBUTES = 'user_attributes'
USER_JOINED = 'user_joined'
USER_LEFT = 'user_left'
ENTITY_CREATED = 'entity_created'
ENTITY_REMOVED = 'entity_removed'
DISPOSED = 'disposed'
ERROR = 'error'

# Room attribute keys
CURRENT_STATE = 'currentGameState'
LAST_STATE = 'lastGameState'
GENERAL_MESSAGE = 'generalMessage'
BEGIN_ROUND_COUNT_DOWN_LABEL = 'countDown'
CURRENT_COUNT_DOWN_STATE = 'CurrentCountDownState'
CURR_COUNT_DOWN = 'currCountDown'

# User attribute keys / values
CLIENT_READY_STATE = 'readyState'
READY = 'ready'
WAITING = 'waiting'


class RoomError(Exception):
    """Base class for errors reported back to the client that caused them."""


class MethodNotFoundError(RoomError):
    def __init__(self, method):
        super().__init__(f"No Method: {method} found")
        self.method = method


class InvalidParamsError(RoomError):
    pass


class InvalidTargetCountError(RoomError, ValueError):
    pass


class InvalidOptionsError(RoomError, ValueError):
    pass


class RoomNotFoundError(RoomError):
    def __init__(self, room_id):
        super().__init__(f"Room not found: {room_id}")
        self.room_id = room_id


class RoomLockedError(RoomError):
    pass


class RoomFullError(RoomError):
    pass


class CustomMethodRequest:
    """A ``{method, param}`` custom method call as sent by a client."""

    def __init__(self, method: str, param: Optional[List[Any]] = None):
        self.method = method
        self.param = param

    @classmethod
    def from_payload(cls, data: Optional[Dict[str, Any]]) -> 'CustomMethodRequest':
        data = data or {}
        method = data.get('method')
        if not method or not isinstance(method, str):
            raise InvalidParamsError('method is required')
        param = data.get('param')
        if param is not None and not isinstance(param, (list, tuple)):
            param = [param]
        return cls(method, list(param) if param is not None else None)
