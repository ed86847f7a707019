from quizhub import socketio
from quizhub.models import QuizAttempt, User

from conftest import events_named


def _create_room(host, quiz_id):
    host.emit('host_create_room', {'quiz_id': quiz_id}, namespace='/ws')
    created = events_named(host.get_received('/ws'), 'room_created')
    assert created, 'room_created not received'
    return created[0]['room_code']


def test_anonymous_socket_is_refused(flask_app):
    anon = socketio.test_client(flask_app, namespace='/ws')
    assert not anon.is_connected('/ws')


def test_connect_and_ping(sio_for):
    sio = sio_for('testuser1')
    assert sio.is_connected('/ws')
    connected = events_named(sio.get_received('/ws'), 'connected')
    assert connected[0]['user']['username'] == 'testuser1'
    sio.emit('ping', {'n': 1}, namespace='/ws')
    assert events_named(sio.get_received('/ws'), 'pong') == [{'n': 1}]


def test_host_creates_room_and_player_joins(sio_for, demo_quiz):
    host = sio_for('admin')
    host.get_received('/ws')
    code = _create_room(host, demo_quiz.id)
    assert len(code) == 4

    player = sio_for('testuser1')
    player.get_received('/ws')
    player.emit('join_room', {'room_code': code.lower()}, namespace='/ws')
    received = player.get_received('/ws')
    assert events_named(received, 'joined') == [{'room_code': code, 'quiz_title': 'General Knowledge'}]
    assert [p['username'] for p in events_named(received, 'player_list')[-1]] == ['testuser1']

    # Host sits in the room group and sees the lobby fill up
    host_lists = events_named(host.get_received('/ws'), 'player_list')
    assert host_lists and host_lists[-1][0]['username'] == 'testuser1'


def test_player_cannot_create_room(sio_for, demo_quiz):
    player = sio_for('testuser1')
    player.get_received('/ws')
    player.emit('host_create_room', {'quiz_id': demo_quiz.id}, namespace='/ws')
    errors = events_named(player.get_received('/ws'), 'error')
    assert errors[0]['kind'] == 'unauthorized'


def test_create_room_for_missing_quiz(sio_for):
    host = sio_for('admin')
    host.get_received('/ws')
    host.emit('host_create_room', {'quiz_id': 9999}, namespace='/ws')
    errors = events_named(host.get_received('/ws'), 'error')
    assert errors[0]['kind'] == 'not_found'


def test_join_unknown_room_is_rejected(sio_for):
    player = sio_for('testuser1')
    player.get_received('/ws')
    player.emit('join_room', {'room_code': 'QQQQ'}, namespace='/ws')
    errors = events_named(player.get_received('/ws'), 'error')
    assert errors == [{'message': 'Room not found.', 'kind': 'not_found'}]


def test_join_without_code_is_rejected(sio_for):
    player = sio_for('testuser1')
    player.get_received('/ws')
    player.emit('join_room', {}, namespace='/ws')
    assert events_named(player.get_received('/ws'), 'error')[0]['kind'] == 'invalid_request'


def test_join_with_bare_string_payload_is_rejected(sio_for):
    player = sio_for('testuser1')
    player.get_received('/ws')
    player.emit('join_room', 'ABCD', namespace='/ws')
    errors = events_named(player.get_received('/ws'), 'error')
    assert errors == [{'message': 'Payload must be an object.', 'kind': 'invalid_request'}]


def test_non_string_room_code_is_rejected(sio_for):
    player = sio_for('testuser1')
    player.get_received('/ws')
    player.emit('join_room', {'room_code': 1234}, namespace='/ws')
    player.emit('submit_answer', {'room_code': ['AB12'], 'option_ids': [1]}, namespace='/ws')
    errors = events_named(player.get_received('/ws'), 'error')
    assert [e['kind'] for e in errors] == ['invalid_request', 'invalid_request']


def test_host_leaving_lobby_closes_room(sio_for, demo_quiz, flask_app):
    host = sio_for('admin')
    code = _create_room(host, demo_quiz.id)
    player = sio_for('testuser1')
    player.emit('join_room', {'room_code': code}, namespace='/ws')
    player.get_received('/ws')

    host.disconnect(namespace='/ws')
    assert events_named(player.get_received('/ws'), 'session_ended') == [{'room_code': code, 'reason': 'host_left'}]
    assert flask_app.extensions['live_quiz'].registry.get_room(code) is None


def test_player_cannot_start_session(sio_for, demo_quiz):
    host = sio_for('admin')
    code = _create_room(host, demo_quiz.id)
    player = sio_for('testuser1')
    player.emit('join_room', {'room_code': code}, namespace='/ws')
    player.get_received('/ws')
    player.emit('host_start_session', {'room_code': code}, namespace='/ws')
    received = player.get_received('/ws')
    assert events_named(received, 'error')[0]['kind'] == 'unauthorized'
    assert events_named(received, 'new_question') == []


def test_full_live_session(flask_app, sio_for, demo_quiz):
    service = flask_app.extensions['live_quiz']
    host = sio_for('admin')
    code = _create_room(host, demo_quiz.id)
    player = sio_for('testuser1')
    player.emit('join_room', {'room_code': code}, namespace='/ws')
    player.get_received('/ws')

    host.emit('host_start_session', {'room_code': code}, namespace='/ws')
    question = events_named(player.get_received('/ws'), 'new_question')[0]
    assert question['index'] == 0
    assert all(set(o) == {'id', 'text'} for o in question['options'])
    mars = next(o['id'] for o in question['options'] if o['text'] == 'Mars')

    late = sio_for('testuser2')
    late.emit('join_room', {'room_code': code}, namespace='/ws')
    assert events_named(late.get_received('/ws'), 'error')[0]['kind'] == 'invalid_state'

    player.emit('submit_answer', {'room_code': code, 'option_ids': [mars], 'question_index': 0}, namespace='/ws')
    received = player.get_received('/ws')
    assert events_named(received, 'answer_acknowledged') == [{'room_code': code}]
    assert events_named(received, 'question_result') == []

    # Scheduler is disabled in tests; drive the timer path directly
    service.on_question_timer_expire(code, 0)
    received = player.get_received('/ws')
    result = events_named(received, 'question_result')[0]
    assert result['correct_option_ids'] == [mars]
    assert result['leaderboard'][0]['username'] == 'testuser1'
    assert result['leaderboard'][0]['score'] > 10
    assert events_named(received, 'new_question')[0]['index'] == 1

    for index in range(1, len(demo_quiz.questions)):
        service.on_question_timer_expire(code, index)
    received = player.get_received('/ws')
    finished = events_named(received, 'quiz_finished')
    assert finished and finished[0]['leaderboard'][0]['username'] == 'testuser1'

    user = User.query.filter_by(username='testuser1').first()
    attempt = QuizAttempt.query.filter_by(user_id=user.id, quiz_id=demo_quiz.id).first()
    assert attempt is not None
    assert attempt.mode == 'live'
    assert attempt.score == result['leaderboard'][0]['score']


def test_host_end_session(sio_for, demo_quiz, flask_app):
    host = sio_for('admin')
    code = _create_room(host, demo_quiz.id)
    player = sio_for('testuser1')
    player.emit('join_room', {'room_code': code}, namespace='/ws')
    player.get_received('/ws')

    host.emit('host_end_session', {'room_code': code}, namespace='/ws')
    assert events_named(player.get_received('/ws'), 'session_ended') == [{'room_code': code, 'reason': 'host_ended'}]
    assert flask_app.extensions['live_quiz'].registry.get_room(code) is None


def test_disconnect_updates_player_list(sio_for, demo_quiz, flask_app):
    host = sio_for('admin')
    code = _create_room(host, demo_quiz.id)
    first = sio_for('testuser1')
    second = sio_for('testuser2')
    first.emit('join_room', {'room_code': code}, namespace='/ws')
    second.emit('join_room', {'room_code': code}, namespace='/ws')
    first.get_received('/ws')

    second.disconnect(namespace='/ws')
    lists = events_named(first.get_received('/ws'), 'player_list')
    assert [p['username'] for p in lists[-1]] == ['testuser1']
    room = flask_app.extensions['live_quiz'].registry.get_room(code)
    assert [p.username for p in room.player_list()] == ['testuser1']
