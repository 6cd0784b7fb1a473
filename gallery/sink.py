"""Output side of a room: everything a room tells its clients goes through a sink."""

from typing import Any, Dict, Optional

from gallery import messages

NAMESPACE = '/ws'


def channel_for(room_id: str) -> str:
    return f"gallery:{room_id}"


class Sink:
    """Fire-and-forget fan-out interface used by a room."""

    def broadcast(self, kind: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError

    def send(self, session_id: str, kind: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError

    def set_user_attributes(self, user_id: str, attributes: Dict[str, str]) -> None:
        self.broadcast(messages.USER_ATTRIBUTES, {'userId': user_id, 'attributes': dict(attributes)})

    def set_room_attributes(self, attributes: Dict[str, str]) -> None:
        self.broadcast(messages.ROOM_ATTRIBUTES, dict(attributes))

    def send_error(self, session_id: Optional[str], message: str) -> None:
        if session_id:
            self.send(session_id, messages.ERROR, {'message': message})


class SocketIOSink(Sink):
    """Emits on the room's Socket.IO channel in the ``/ws`` namespace."""

    def __init__(self, socketio, room_id: str, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.room_id = room_id
        self.namespace = namespace

    def broadcast(self, kind, payload):
        self.socketio.emit(kind, payload, to=channel_for(self.room_id), namespace=self.namespace)

    def send(self, session_id, kind, payload):
        self.socketio.emit(kind, payload, to=session_id, namespace=self.namespace)
