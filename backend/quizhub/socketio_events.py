from functools import wraps
from flask import request, current_app
from flask_login import current_user
from flask_socketio import emit
from quizhub import socketio
from quizhub.services.live import get_live_quiz_service
from quizhub.services.live.broadcast import NAMESPACE
from quizhub.services.live.errors import InvalidRequest, LiveQuizError


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _identity():
    """(user_id, display_name, is_host) for the connected user."""
    return current_user.id, current_user.username, bool(current_user.is_host)


def _require_room_code(data) -> str:
    room_code = data.get('room_code')
    if not isinstance(room_code, str) or not room_code.strip():
        raise InvalidRequest('room_code is required')
    return room_code


def _rejects_live_errors(handler):
    """Turn engine rejections into an ``error`` event for the caller only."""
    @wraps(handler)
    def wrapper(data=None):
        try:
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise InvalidRequest('Payload must be an object.')
            return handler(data)
        except LiveQuizError as exc:
            current_app.logger.info(f"[rejected] event={handler.__name__} sid={_get_sid()} kind={exc.kind} message={exc.message}")
            emit('error', exc.to_dict())
    return wrapper


def handle_connect(auth=None):
    if not current_user.is_authenticated:
        # Refuse anonymous sockets; identity comes from the login session
        return False
    emit('connected', {'message': 'Connected to /ws', 'user': current_user.to_dict()})


def handle_disconnect(reason=None):
    get_live_quiz_service().disconnect(_get_sid())


@_rejects_live_errors
def handle_host_create_room(data):
    _, _, is_host = _identity()
    room_code = get_live_quiz_service().create_room(data.get('quiz_id'), is_host, connection_id=_get_sid())
    emit('room_created', {'room_code': room_code})


@_rejects_live_errors
def handle_host_start_session(data):
    room_code = _require_room_code(data)
    _, _, is_host = _identity()
    # The question itself reaches the host through the room broadcast
    get_live_quiz_service().start_session(room_code, is_host)


@_rejects_live_errors
def handle_host_end_session(data):
    room_code = _require_room_code(data)
    _, _, is_host = _identity()
    get_live_quiz_service().end_session(room_code, is_host)


@_rejects_live_errors
def handle_join_room(data):
    room_code = _require_room_code(data)
    user_id, username, _ = _identity()
    get_live_quiz_service().join(room_code, _get_sid(), user_id, username)


@_rejects_live_errors
def handle_submit_answer(data):
    room_code = _require_room_code(data)
    get_live_quiz_service().submit_answer(room_code, _get_sid(), data)
    # Score stays private until the reveal
    emit('answer_acknowledged', {'room_code': room_code.strip().upper()})


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('host_create_room', handle_host_create_room, namespace=NAMESPACE)
    socketio.on_event('host_start_session', handle_host_start_session, namespace=NAMESPACE)
    socketio.on_event('host_end_session', handle_host_end_session, namespace=NAMESPACE)
    socketio.on_event('join_room', handle_join_room, namespace=NAMESPACE)
    socketio.on_event('submit_answer', handle_submit_answer, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
