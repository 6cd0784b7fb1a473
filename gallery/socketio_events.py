from functools import wraps
from typing import Dict

from flask import request
from flask_socketio import emit, join_room, leave_room

from gallery import rooms, socketio
from gallery.messages import CustomMethodRequest, InvalidParamsError, RoomError
from gallery.sink import NAMESPACE, channel_for

# socket id -> room id it has joined
_sid_to_room: Dict[str, str] = {}


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _reports_room_errors(handler):
    """Send a RoomError back to the calling socket as an ``error`` event."""
    @wraps(handler)
    def wrapper(data=None):
        try:
            return handler(data)
        except RoomError as exc:
            emit('error', {'message': str(exc)})
    return wrapper


def _current_room(data):
    room_id = (data or {}).get('room_id') or _sid_to_room.get(_get_sid())
    if not room_id:
        raise InvalidParamsError('room_id is required')
    return rooms.get_room(room_id)


def _leave_current(sid: str) -> None:
    room_id = _sid_to_room.pop(sid, None)
    if not room_id:
        return
    leave_room(channel_for(room_id))
    room = rooms.find_room(room_id)
    if room is not None:
        rooms.leave(room, sid)


def _forget_room(room_id: str) -> None:
    """Drop every socket mapping and the Socket.IO channel of a disposed room."""
    for sid in [s for s, r in list(_sid_to_room.items()) if r == room_id]:
        _sid_to_room.pop(sid, None)
    socketio.server.close_room(channel_for(room_id), namespace=NAMESPACE)


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    sid = _get_sid()
    room_id = _sid_to_room.pop(sid, None)
    room = rooms.find_room(room_id) if room_id else None
    if room is not None:
        rooms.leave(room, sid)


@_reports_room_errors
def handle_join_room(data):
    room_id = (data or {}).get('room_id')
    if not room_id:
        raise InvalidParamsError('room_id is required')
    room = rooms.get_room(room_id)
    sid = _get_sid()
    # Only give up the current room once the new one has accepted us
    user = room.call(sid, room.on_join, sid, (data or {}).get('user_id'))
    if _sid_to_room.get(sid) not in (None, room.room_id):
        _leave_current(sid)
    join_room(channel_for(room.room_id))
    _sid_to_room[sid] = room.room_id
    emit('joined', {'room_id': room.room_id, 'user_id': user.user_id, 'session_id': sid})
    emit('room_attributes', room.call(sid, lambda: dict(room.state.attributes)))


@_reports_room_errors
def handle_leave_room(data):
    sid = _get_sid()
    room_id = _sid_to_room.get(sid)
    if not room_id:
        raise InvalidParamsError('Not in a room')
    _leave_current(sid)
    emit('left', {'room_id': room_id})


@_reports_room_errors
def handle_set_attribute(data):
    room = _current_room(data)
    data = data or {}
    user_id = data.get('userId')
    attributes = data.get('attributesToSet')
    if not user_id or not isinstance(attributes, dict):
        raise InvalidParamsError('userId and attributesToSet are required')
    room.call(_get_sid(), room.set_attribute, _get_sid(), user_id, attributes)


@_reports_room_errors
def handle_create_entity(data):
    room = _current_room(data)
    data = data or {}
    sid = _get_sid()
    entity = room.call(sid, room.create_entity, sid, data.get('creationId', ''), data.get('attributes'))
    emit('entity_owned', entity.to_dict())


@_reports_room_errors
def handle_remove_entity(data):
    room = _current_room(data)
    entity_id = (data or {}).get('entityId')
    if not entity_id:
        raise InvalidParamsError('entityId is required')
    room.call(_get_sid(), room.remove_entity, _get_sid(), entity_id)


@_reports_room_errors
def handle_custom_method(data):
    room = _current_room(data)
    method_request = CustomMethodRequest.from_payload(data)
    sid = _get_sid()
    room.call(sid, room.handle_custom_method, sid, method_request)


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    rooms.on_dispose = _forget_room
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('join_room', handle_join_room, namespace=NAMESPACE)
    socketio.on_event('leave_room', handle_leave_room, namespace=NAMESPACE)
    socketio.on_event('set_attribute', handle_set_attribute, namespace=NAMESPACE)
    socketio.on_event('create_entity', handle_create_entity, namespace=NAMESPACE)
    socketio.on_event('remove_entity', handle_remove_entity, namespace=NAMESPACE)
    socketio.on_event('custom_method', handle_custom_method, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
