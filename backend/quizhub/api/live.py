from flask import Blueprint, jsonify
from flask_login import login_required

from quizhub.services.live import get_live_quiz_service
from quizhub.services.live.errors import LiveQuizError

live = Blueprint('live', __name__)

_STATUS_BY_KIND = {
    'not_found': 404,
    'invalid_state': 409,
    'unauthorized': 403,
    'invalid_request': 400,
}


@live.errorhandler(LiveQuizError)
def handle_live_quiz_error(exc):
    return jsonify({'error': exc.message, 'kind': exc.kind}), _STATUS_BY_KIND.get(exc.kind, 400)


@live.route('/rooms/<string:room_code>', methods=['GET'])
@login_required
def get_room_state(room_code):
    # Phase, player list and durations so clients can render lobby and countdowns
    return jsonify(get_live_quiz_service().room_summary(room_code))
