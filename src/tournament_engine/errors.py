"""
Error taxonomy shared by every engine component.

All errors are recoverable: the caller fixes its input or configuration and
retries. ``service.TournamentService`` turns them into ``Result`` values.
"""


class TournamentError(Exception):
    """Base class for engine failures."""

    code = "tournament_error"

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'success': False, 'error': self.code, 'message': self.message}


class InvalidInput(TournamentError):
    """Too few teams, malformed options or an inconsistent result."""

    code = "invalid_input"


class SchedulingInfeasible(TournamentError):
    """No slot satisfies the calendar, court and rest constraints."""

    code = "scheduling_infeasible"


class InvalidTransition(TournamentError):
    """A result was reported for a match that cannot accept one."""

    code = "invalid_transition"
