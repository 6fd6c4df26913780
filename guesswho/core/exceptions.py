"""
Domain error taxonomy
游戏领域错误类型

Every error carries a machine readable ``kind`` and a human readable message.
Services raise these; the API layer maps them to HTTP responses.
"""

from typing import Any, Dict, Optional


class GuessWhoError(Exception):
    """Base class for all caller-visible game errors"""

    kind = "error"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __repr__(self):
        return f"<{self.__class__.__name__}(kind={self.kind}, message={self.message!r})>"


class Unauthorized(GuessWhoError):
    """Missing or invalid caller identity"""
    kind = "unauthorized"
    status_code = 401


class NotFound(GuessWhoError):
    """Room code, player or word pack does not resolve"""
    kind = "not_found"
    status_code = 404


class CapacityExceeded(GuessWhoError):
    """Join attempted on a full room"""
    kind = "capacity_exceeded"
    status_code = 409


class AlreadyJoined(GuessWhoError):
    """Account already holds a membership in the room"""
    kind = "already_joined"
    status_code = 409


class InvalidPhaseTransition(GuessWhoError):
    """Operation not allowed in the room's current status or round"""
    kind = "invalid_phase_transition"
    status_code = 409


class InsufficientPlayers(GuessWhoError):
    """Start attempted without enough players for the configured factions"""
    kind = "insufficient_players"
    status_code = 409


class ValidationError(GuessWhoError):
    """Malformed clue, vote, guess or word pack payload"""
    kind = "validation_error"
    status_code = 422


class StorageUnavailable(GuessWhoError):
    """Transient storage failure, surfaced without retrying"""
    kind = "storage_unavailable"
    status_code = 503


class RoomCodeExhausted(GuessWhoError):
    """No free room code found within the configured number of attempts"""
    kind = "room_code_exhausted"
    status_code = 503


class AccountExists(GuessWhoError):
    """Username or email already registered"""
    kind = "account_exists"
    status_code = 409
