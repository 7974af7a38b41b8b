class SessionError(Exception):
    """Base class for errors local to a single request or event."""
    code = 'SessionError'

    def __init__(self, message: str = ''):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self):
        return {'error': self.code, 'message': self.message}


class SessionNotFound(SessionError):
    code = 'SessionNotFound'


class InvalidConfig(SessionError):
    code = 'InvalidConfig'


class SlotTaken(SessionError):
    code = 'SlotTaken'


class LobbyClosed(SessionError):
    code = 'LobbyClosed'


class Unauthorized(SessionError):
    """Privileged operation requested by someone other than the creator."""
    code = 'Unauthorized'
