class LiveQuizError(Exception):
    """Base for rejections surfaced to the client that made the request."""

    kind = 'error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'message': self.message, 'kind': self.kind}


class RoomNotFound(LiveQuizError):
    kind = 'not_found'


class PlayerNotFound(LiveQuizError):
    kind = 'not_found'


class InvalidState(LiveQuizError):
    kind = 'invalid_state'


class Unauthorized(LiveQuizError):
    kind = 'unauthorized'


class InvalidRequest(LiveQuizError):
    kind = 'invalid_request'
