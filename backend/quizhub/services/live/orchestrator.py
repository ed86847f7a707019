import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .errors import InvalidState, PlayerNotFound, RoomNotFound, Unauthorized
from .rooms import FINISHED, LOBBY, QUESTION_ACTIVE, Player, Room, RoomRegistry
from .scoring import AnswerSubmission, score_answer
from .views import final_payload, player_list_payload, question_view, reveal_payload
from .views import room_summary as summarize_room

logger = logging.getLogger(__name__)


class LiveQuizService:
    """Creates rooms, admits players and drives rooms through their phases.

    Phase advancement only ever happens in ``on_question_timer_expire``,
    which the timer service invokes once per question. Join, submit and
    disconnect only touch player state.
    """

    def __init__(
        self,
        catalog,
        broadcaster,
        timers,
        registry: Optional[RoomRegistry] = None,
        question_duration_sec: int = 20,
        reveal_duration_sec: int = 5,
        room_code_length: int = 4,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.catalog = catalog
        self.broadcaster = broadcaster
        self.timers = timers
        self.registry = registry or RoomRegistry(code_length=room_code_length, time_limit_sec=question_duration_sec)
        self.reveal_duration_sec = reveal_duration_sec
        self.clock = clock

    # ---- Host operations ----

    def create_room(self, quiz_id, requester_is_host: bool, connection_id: Optional[str] = None) -> str:
        if not requester_is_host:
            raise Unauthorized('Only hosts can create rooms.')
        quiz = self.catalog.fetch_quiz_with_questions(quiz_id)
        room_code = self.registry.create_room(quiz, host_connection_id=connection_id)
        if room_code is None:
            raise RoomNotFound('Quiz not found or has no questions.')
        logger.info(f"[room-created] room={room_code} quiz={quiz.id} questions={quiz.question_count}")
        if connection_id:
            # Host watches the lobby without playing
            self.broadcaster.add_to_room(connection_id, room_code)
        return room_code

    def start_session(self, room_code: str, requester_is_host: bool) -> Dict[str, Any]:
        if not requester_is_host:
            raise Unauthorized('Only hosts can start a session.')
        room = self._require_room(room_code)
        with room.lock:
            if room.is_finished or room.current_question_index != -1:
                raise InvalidState('Quiz has already started.')
            self._present_question(room, 0)
            view = question_view(room, 0)
            self._arm_timer(room, 0)
            player_count = len(room.players)
        logger.info(f"[session-start] room={room.code} players={player_count}")
        self.broadcaster.send_to_room(room.code, 'new_question', view)
        return view

    def end_session(self, room_code: str, requester_is_host: bool) -> None:
        if not requester_is_host:
            raise Unauthorized('Only hosts can end a session.')
        self._close_room(self._require_room(room_code), 'host_ended')

    # ---- Player operations ----

    def join(self, room_code: str, connection_id: str, user_id: int, display_name: str) -> Room:
        room = self._require_room(room_code)
        previous = self.registry.get_room_by_connection(connection_id)
        if previous is room:
            self.broadcaster.send_to_connection(connection_id, 'joined', {'room_code': room.code, 'quiz_title': room.quiz_title})
            return room
        with room.lock:
            if room.phase != LOBBY:
                raise InvalidState('Quiz has already started.')
            room.players[connection_id] = Player(connection_id=connection_id, user_id=user_id, username=display_name)
        if previous is not None:
            self._leave(previous, connection_id)
            self.broadcaster.remove_from_room(connection_id, previous.code)
        self.broadcaster.add_to_room(connection_id, room.code)
        logger.info(f"[player-join] room={room.code} user={user_id} sid={connection_id}")
        self.broadcaster.send_to_room(room.code, 'player_list', player_list_payload(room))
        self.broadcaster.send_to_connection(connection_id, 'joined', {'room_code': room.code, 'quiz_title': room.quiz_title})
        return room

    def submit_answer(
        self,
        room_code: str,
        connection_id: str,
        answer: Union[AnswerSubmission, Mapping[str, Any], None],
    ) -> int:
        """Score ``answer`` at most once per player per question.

        Returns the player's score. Repeat, late and stale submissions return
        it unchanged without raising.
        """
        if not isinstance(answer, AnswerSubmission):
            answer = AnswerSubmission.from_payload(answer)
        room = self._require_room(room_code)
        with room.lock:
            player = room.players.get(connection_id)
            if player is None:
                raise PlayerNotFound('You are not in this room.')
            question = room.current_question
            index = room.current_question_index
            if room.phase != QUESTION_ACTIVE or question is None or player.has_answered:
                return player.score
            if answer.question_index is not None and answer.question_index != index:
                return player.score
            elapsed = self.clock() - room.question_started_at
            if elapsed > room.time_limit_sec:
                logger.info(f"[answer-late] room={room.code} question={index} user={player.user_id} elapsed={elapsed:.2f}s")
                return player.score
            result = score_answer(question, answer, elapsed, room.time_limit_sec)
            player.has_answered = True
            player.score += result.points_awarded
            logger.info(
                f"[answer] room={room.code} question={index} user={player.user_id} "
                f"correct={result.is_correct} awarded={result.points_awarded} elapsed={elapsed:.2f}s"
            )
            return player.score

    def disconnect(self, connection_id: str) -> Optional[Room]:
        """Drop ``connection_id`` from whatever it hosted or played in.

        A lobby whose host leaves is closed. A room that has started and
        loses its last player is removed. Returns the room the connection
        played in, if any.
        """
        for hosted in self.registry.rooms_hosted_by(connection_id):
            with hosted.lock:
                waiting = hosted.phase == LOBBY
            if waiting:
                self._close_room(hosted, 'host_left')

        room = self.registry.get_room_by_connection(connection_id)
        if room is None:
            return None
        self._leave(room, connection_id)
        with room.lock:
            empty = not room.players
            phase = room.phase
        if empty and phase == FINISHED:
            self.registry.remove_room(room.code)
            logger.info(f"[room-removed] room={room.code} finished and empty")
        elif empty and phase != LOBBY:
            self._close_room(room, 'empty')
        return room

    def room_summary(self, room_code: str) -> Dict[str, Any]:
        room = self._require_room(room_code)
        with room.lock:
            return summarize_room(room, self.reveal_duration_sec)

    # ---- Timer path ----

    def on_question_timer_expire(self, room_code: str, question_index: int) -> None:
        """Reveal the answer for ``question_index`` then move the room on.

        Never raises: a failure abandons this room's progression.
        """
        try:
            self._reveal_and_advance(room_code, question_index)
        except Exception:
            room = self.registry.get_room(room_code)
            phase = room.phase if room is not None else 'gone'
            logger.exception(f"[timer-error] room={room_code} question={question_index} phase={phase} progression abandoned")
            if room is not None:
                with room.lock:
                    self._dispose_timer(room)

    def _reveal_and_advance(self, room_code: str, question_index: int) -> None:
        room = self.registry.get_room(room_code)
        if room is None:
            logger.info(f"[timer-abort] room={room_code} question={question_index} room no longer exists")
            return
        with room.lock:
            if room.is_finished or room.current_question_index != question_index or not room.answers_open:
                logger.info(
                    f"[timer-abort] room={room.code} expected_question={question_index} "
                    f"actual_question={room.current_question_index} phase={room.phase}"
                )
                return
            room.answers_open = False
            payload = reveal_payload(room, question_index)
        logger.info(f"[reveal] room={room.code} question={question_index}")
        self.broadcaster.send_to_room(room.code, 'question_result', payload)

        self.timers.sleep(self.reveal_duration_sec)

        # Re-fetch: the room may have been ended during the pause
        room = self.registry.get_room(room_code)
        if room is None:
            logger.info(f"[timer-abort] room={room_code} question={question_index} removed during reveal")
            return
        with room.lock:
            if room.is_finished or room.current_question_index != question_index:
                logger.info(f"[timer-abort] room={room.code} question={question_index} changed during reveal")
                return
            if room.has_next_question():
                next_index = question_index + 1
                self._present_question(room, next_index)
                view = question_view(room, next_index)
                self._arm_timer(room, next_index)
            else:
                next_index = None
                room.is_finished = True
                room.current_question_index = room.question_count
                self._dispose_timer(room)
                payload = final_payload(room)
                results = [(p.user_id, p.score) for p in room.players.values()]

        if next_index is not None:
            logger.info(f"[next-question] room={room.code} question {question_index} -> {next_index}")
            self.broadcaster.send_to_room(room.code, 'new_question', view)
            return

        logger.info(f"[finish] room={room.code} players={len(results)}")
        self.broadcaster.send_to_room(room.code, 'quiz_finished', payload)
        if results:
            self.catalog.record_results(room.quiz.id, results)
        else:
            self.registry.remove_room(room.code)
            self.broadcaster.close_room(room.code)
            logger.info(f"[room-removed] room={room.code} finished and empty")

    # ---- Helpers ----

    def _require_room(self, room_code: str) -> Room:
        room = self.registry.get_room(room_code)
        if room is None:
            raise RoomNotFound('Room not found.')
        return room

    def _present_question(self, room: Room, index: int) -> None:
        for player in room.players.values():
            player.has_answered = False
        room.current_question_index = index
        room.question_started_at = self.clock()
        room.answers_open = True

    def _arm_timer(self, room: Room, index: int) -> None:
        room.timer = self.timers.schedule(
            room.time_limit_sec,
            self.on_question_timer_expire,
            room.code,
            index,
            key=f"room={room.code} question={index}",
        )

    def _close_room(self, room: Room, reason: str) -> None:
        with room.lock:
            self._dispose_timer(room)
            room.answers_open = False
            room.is_finished = True
        if self.registry.remove_room(room.code) is None:
            return
        logger.info(f"[session-end] room={room.code} reason={reason}")
        self.broadcaster.send_to_room(room.code, 'session_ended', {'room_code': room.code, 'reason': reason})
        self.broadcaster.close_room(room.code)

    def _dispose_timer(self, room: Room) -> None:
        if room.timer is not None:
            room.timer.cancel()
            room.timer = None

    def _leave(self, room: Room, connection_id: str) -> None:
        with room.lock:
            player = room.players.pop(connection_id, None)
        if player is None:
            return
        logger.info(f"[player-leave] room={room.code} user={player.user_id} sid={connection_id}")
        self.broadcaster.send_to_room(room.code, 'player_list', player_list_payload(room))
