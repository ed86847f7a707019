from typing import Any

NAMESPACE = '/ws'


def room_group(room_code: str) -> str:
    return f"room:{room_code.upper()}"


class SocketIOBroadcaster:
    """Fan-out over Flask-SocketIO, one group per room code.

    Safe to call from background tasks: everything goes through the
    server object rather than the request-bound helpers.
    """

    def __init__(self, socketio, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def send_to_room(self, room_code: str, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, to=room_group(room_code), namespace=self.namespace)

    def send_to_connection(self, connection_id: str, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, to=connection_id, namespace=self.namespace)

    def add_to_room(self, connection_id: str, room_code: str) -> None:
        self.socketio.server.enter_room(connection_id, room_group(room_code), namespace=self.namespace)

    def remove_from_room(self, connection_id: str, room_code: str) -> None:
        self.socketio.server.leave_room(connection_id, room_group(room_code), namespace=self.namespace)

    def close_room(self, room_code: str) -> None:
        self.socketio.close_room(room_group(room_code), namespace=self.namespace)
