import random
import string
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .snapshots import QuestionSnapshot, QuizSnapshot

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits

LOBBY = 'lobby'
QUESTION_ACTIVE = 'question_active'
REVEAL = 'reveal'
FINISHED = 'finished'


def generate_room_code(length: int = 4) -> str:
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))


@dataclass
class Player:
    connection_id: str
    user_id: int
    username: str
    score: int = 0
    has_answered: bool = False


@dataclass
class Room:
    code: str
    quiz: QuizSnapshot
    time_limit_sec: int = 20
    current_question_index: int = -1
    question_started_at: Optional[float] = None
    answers_open: bool = False
    is_finished: bool = False
    players: Dict[str, Player] = field(default_factory=dict)
    timer: Optional[object] = None
    host_connection_id: Optional[str] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def quiz_title(self) -> str:
        return self.quiz.title

    @property
    def question_count(self) -> int:
        return self.quiz.question_count

    @property
    def phase(self) -> str:
        if self.is_finished:
            return FINISHED
        if self.current_question_index < 0:
            return LOBBY
        return QUESTION_ACTIVE if self.answers_open else REVEAL

    @property
    def current_question(self) -> Optional[QuestionSnapshot]:
        if 0 <= self.current_question_index < self.question_count:
            return self.quiz.questions[self.current_question_index]
        return None

    def has_next_question(self) -> bool:
        return self.current_question_index + 1 < self.question_count

    def player_list(self) -> List[Player]:
        with self.lock:
            return list(self.players.values())


class RoomRegistry:
    """All active rooms keyed by upper-cased room code."""

    def __init__(self, code_length: int = 4, time_limit_sec: int = 20):
        self.code_length = code_length
        self.time_limit_sec = time_limit_sec
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def create_room(self, quiz: Optional[QuizSnapshot], host_connection_id: Optional[str] = None) -> Optional[str]:
        """Store a new room for ``quiz`` and return its code.

        Returns None when the quiz has no questions or when every code of
        the configured length is already taken.
        """
        if quiz is None or not quiz.questions:
            return None
        with self._lock:
            if len(self._rooms) >= len(ROOM_CODE_ALPHABET) ** self.code_length:
                return None
            code = generate_room_code(self.code_length)
            while code in self._rooms:
                code = generate_room_code(self.code_length)
            self._rooms[code] = Room(
                code=code,
                quiz=quiz,
                time_limit_sec=self.time_limit_sec,
                host_connection_id=host_connection_id,
            )
            return code

    def get_room(self, code: Optional[str]) -> Optional[Room]:
        if not code or not isinstance(code, str):
            return None
        with self._lock:
            return self._rooms.get(code.strip().upper())

    def get_room_by_connection(self, connection_id: str) -> Optional[Room]:
        with self._lock:
            rooms = list(self._rooms.values())
        for room in rooms:
            with room.lock:
                if connection_id in room.players:
                    return room
        return None

    def rooms_hosted_by(self, connection_id: str) -> List[Room]:
        with self._lock:
            return [room for room in self._rooms.values() if room.host_connection_id == connection_id]

    def add_player(self, code: str, player: Player) -> Optional[Room]:
        room = self.get_room(code)
        if room is None:
            return None
        with room.lock:
            room.players.setdefault(player.connection_id, player)
        return room

    def remove_player(self, connection_id: str) -> Optional[Room]:
        room = self.get_room_by_connection(connection_id)
        if room is None:
            return None
        with room.lock:
            room.players.pop(connection_id, None)
        return room

    def remove_room(self, code: str) -> Optional[Room]:
        if not code or not isinstance(code, str):
            return None
        with self._lock:
            return self._rooms.pop(code.strip().upper(), None)

    def rooms(self) -> List[Room]:
        with self._lock:
            return list(self._rooms.values())
