"""Business-rule failures reported to clients as distinct error kinds.

Every error subclasses ``ValueError`` so existing ``except ValueError``
handlers keep working; routers map ``status_code`` and ``code`` onto the
HTTP response.
"""
from typing import Dict


class VoteError(ValueError):
    code = "vote_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> Dict[str, str]:
        return {"code": self.code, "message": self.message}


class AlreadyVoted(VoteError):
    code = "already_voted"
    status_code = 409


class PollNotActive(VoteError):
    code = "poll_not_active"


class PollDeadlinePassed(VoteError):
    code = "poll_deadline_passed"


class InvalidOption(VoteError):
    code = "invalid_option"


class RevoteCooldown(VoteError):
    code = "revote_cooldown"
    status_code = 409


class UndoNotAllowed(VoteError):
    code = "undo_not_allowed"
    status_code = 403


class VoteNotFound(VoteError):
    code = "vote_not_found"
    status_code = 404


class PollNotFound(VoteError):
    code = "poll_not_found"
    status_code = 404


class InvalidPollTransition(VoteError):
    code = "invalid_poll_transition"
    status_code = 409


class NotAuthorized(VoteError):
    code = "not_authorized"
    status_code = 401
