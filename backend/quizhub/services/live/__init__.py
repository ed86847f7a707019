"""Live quiz session engine: rooms, scoring, timers and broadcast.

This package keeps the live-session mechanics importable by Socket.IO
handlers and HTTP routes alike, leaving transport concerns to them.
"""

from flask import current_app

from .broadcast import SocketIOBroadcaster
from .catalog import SqlQuizCatalog
from .errors import InvalidState, LiveQuizError, PlayerNotFound, RoomNotFound, Unauthorized
from .orchestrator import LiveQuizService
from .rooms import RoomRegistry
from .scoring import AnswerSubmission, ScoreResult, score_answer
from .timers import BackgroundTimerService

EXTENSION_KEY = 'live_quiz'


def init_live_quiz(app, socketio) -> LiveQuizService:
    """Build the app's LiveQuizService from config and register it."""
    cfg = app.config
    timers_enabled = not cfg.get('TESTING') or cfg.get('ENABLE_SCHEDULER_IN_TESTS', False)
    service = LiveQuizService(
        catalog=SqlQuizCatalog(app),
        broadcaster=SocketIOBroadcaster(socketio),
        timers=BackgroundTimerService(
            socketio,
            enabled=timers_enabled,
            heartbeat_sec=int(cfg.get('TIMER_HEARTBEAT_SEC', 0)),
        ),
        question_duration_sec=int(cfg.get('QUESTION_DURATION_SEC', 20)),
        reveal_duration_sec=int(cfg.get('REVEAL_DURATION_SEC', 5)),
        room_code_length=int(cfg.get('ROOM_CODE_LENGTH', 4)),
    )
    app.extensions[EXTENSION_KEY] = service
    return service


def get_live_quiz_service() -> LiveQuizService:
    return current_app.extensions[EXTENSION_KEY]


__all__ = [
    'AnswerSubmission',
    'BackgroundTimerService',
    'InvalidState',
    'LiveQuizError',
    'LiveQuizService',
    'PlayerNotFound',
    'RoomNotFound',
    'RoomRegistry',
    'ScoreResult',
    'SocketIOBroadcaster',
    'SqlQuizCatalog',
    'Unauthorized',
    'get_live_quiz_service',
    'init_live_quiz',
    'score_answer',
]
