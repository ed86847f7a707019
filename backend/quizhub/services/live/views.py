"""Client-facing payloads built from room state.

Question views never carry correctness. Correct answers only leave the
server in the reveal payload, after the answer window has closed.
"""

from typing import Any, Dict, List

from .rooms import Room
from .snapshots import FILL_IN_THE_BLANK, QuestionSnapshot


def question_view(room: Room, index: int) -> Dict[str, Any]:
    question: QuestionSnapshot = room.quiz.questions[index]
    if question.type == FILL_IN_THE_BLANK:
        options = []
    else:
        options = [{'id': o.id, 'text': o.text} for o in question.options]
    return {
        'room_code': room.code,
        'index': index,
        'question_count': room.question_count,
        'id': question.id,
        'text': question.text,
        'type': question.type,
        'points': question.points,
        'time_limit': room.time_limit_sec,
        'options': options,
    }


def leaderboard(room: Room) -> List[Dict[str, Any]]:
    players = sorted(room.player_list(), key=lambda p: -p.score)
    return [{'username': p.username, 'score': p.score} for p in players]


def reveal_payload(room: Room, index: int) -> Dict[str, Any]:
    question = room.quiz.questions[index]
    return {
        'room_code': room.code,
        'index': index,
        'correct_option_ids': list(question.correct_option_ids),
        'correct_answers': list(question.correct_texts) if question.type == FILL_IN_THE_BLANK else [],
        'leaderboard': leaderboard(room),
    }


def final_payload(room: Room) -> Dict[str, Any]:
    return {'room_code': room.code, 'leaderboard': leaderboard(room)}


def player_list_payload(room: Room) -> List[Dict[str, Any]]:
    # Scores stay hidden until the reveal
    return [
        {'connection_id': p.connection_id, 'user_id': p.user_id, 'username': p.username}
        for p in room.player_list()
    ]


def room_summary(room: Room, reveal_duration_sec: int) -> Dict[str, Any]:
    return {
        'room_code': room.code,
        'quiz_id': room.quiz.id,
        'quiz_title': room.quiz_title,
        'phase': room.phase,
        'current_question_index': room.current_question_index,
        'question_count': room.question_count,
        'players': player_list_payload(room),
        'durations': {
            'question': room.time_limit_sec,
            'reveal': reveal_duration_sec,
        },
    }
