"""
liveboard/exceptions.py
Typed exceptions raised inside the live engine.

The progression controller converts every one of these into a failure
result; none of them crosses the controller boundary.
"""
from typing import Any, Dict, Optional

from liveboard.errors import ErrorCode


class ProgressionError(Exception):
    """Base exception for live engine errors"""
    code: str = ErrorCode.INVALID_INPUT
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class InvalidRoundError(ProgressionError):
    """Target round does not belong to the event."""
    code = ErrorCode.INVALID_ROUND
    
    def __init__(self, event_id: int, round_id: Any):
        super().__init__(
            "Invalid target round",
            details={"event_id": event_id, "round_id": round_id}
        )


class NoWinnersProvidedError(ProgressionError):
    """Winner list is empty or has no resolvable participant."""
    code = ErrorCode.NO_WINNERS_PROVIDED
    
    def __init__(self, message: str = "At least one winner with a team or user is required"):
        super().__init__(message)


class DuplicateWinnerPositionError(ProgressionError):
    code = ErrorCode.INVALID_INPUT
    
    def __init__(self, positions):
        super().__init__(
            "Winner positions must be unique",
            details={"duplicate_positions": sorted(positions)}
        )


class EventNotFoundError(ProgressionError):
    code = ErrorCode.EVENT_NOT_FOUND
    
    def __init__(self, event_id: Any):
        super().__init__("Event not found", details={"event_id": event_id})


class ParticipantNotFoundError(ProgressionError):
    code = ErrorCode.PARTICIPANT_NOT_FOUND
    
    def __init__(self, participant_key: str):
        super().__init__(
            "Participant is not registered for this event",
            details={"participant": participant_key}
        )


class PointsEntryNotFoundError(ProgressionError):
    code = ErrorCode.POINTS_NOT_FOUND
    
    def __init__(self, event_id: Any, participant_key: str):
        super().__init__(
            "Tournament points record not found",
            details={"event_id": event_id, "participant": participant_key}
        )


class EventAlreadyCompletedError(ProgressionError):
    """Raised when completion is requested twice without a reset."""
    code = ErrorCode.ALREADY_COMPLETED
    
    def __init__(self, event_id: Any):
        super().__init__("Event is already completed", details={"event_id": event_id})


class EventNotCompletedError(ProgressionError):
    code = ErrorCode.INVALID_STATE
    
    def __init__(self, event_id: Any, status: str):
        super().__init__(
            f"Event is {status}, not completed",
            details={"event_id": event_id, "status": status}
        )


class TournamentNotFoundError(ProgressionError):
    code = ErrorCode.NOT_FOUND
    
    def __init__(self, tournament_id: Any):
        super().__init__("Tournament not found", details={"tournament_id": tournament_id})


class EventLockedError(ProgressionError):
    """Progress of a completed event is frozen until it is reset."""
    code = ErrorCode.INVALID_STATE
    
    def __init__(self, event_id: Any):
        super().__init__(
            "Event is completed; reset its progress before editing",
            details={"event_id": event_id}
        )
