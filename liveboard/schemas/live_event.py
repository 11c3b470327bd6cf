"""
liveboard/schemas/live_event.py
Pydantic schemas for the closed live-event command set.

Each command carries an `action` discriminator; anything outside this set
is rejected before the controller is entered.
"""
from typing import Optional, List, Literal, Union, Annotated
from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

from liveboard.services.participant_directory import Participant, participant_from_ids


class StrictModel(BaseModel):
    class Config:
        extra = "forbid"


class ParticipantFields(StrictModel):
    """Exactly one of team_id / user_id."""
    team_id: Optional[int] = Field(None, gt=0, description="Team participant")
    user_id: Optional[int] = Field(None, gt=0, description="Individual participant")
    
    @model_validator(mode='after')
    def require_one_participant(self):
        if (self.team_id is None) == (self.user_id is None):
            raise ValueError("Exactly one of team_id or user_id must be provided")
        return self
    
    @property
    def participant(self) -> Participant:
        return participant_from_ids(self.team_id, self.user_id)


# ================= COMMAND SCHEMAS =================

class MoveToRoundCommand(ParticipantFields):
    """
    Place a participant in a round.
    
    from_round_id = None means the participant comes from "unplaced".
    """
    action: Literal["move_to_round"] = "move_to_round"
    event_id: int = Field(..., gt=0)
    from_round_id: Optional[int] = Field(None, gt=0)
    to_round_id: int = Field(..., gt=0)
    
    class Config:
        json_schema_extra = {
            "example": {
                "action": "move_to_round",
                "event_id": 7,
                "team_id": 12,
                "from_round_id": 31,
                "to_round_id": 32
            }
        }


class EliminateCommand(ParticipantFields):
    action: Literal["eliminate"] = "eliminate"
    event_id: int = Field(..., gt=0)
    round_id: int = Field(..., gt=0)


class WinnerInput(StrictModel):
    """
    One placement. An entry without team_id and user_id is unresolvable and
    is dropped; both set is invalid.
    """
    position: int = Field(..., ge=1)
    team_id: Optional[int] = Field(None, gt=0)
    user_id: Optional[int] = Field(None, gt=0)
    prize: Optional[str] = Field(None, max_length=255)
    
    @model_validator(mode='after')
    def reject_both_participants(self):
        if self.team_id is not None and self.user_id is not None:
            raise ValueError("A winner references either a team or a user, not both")
        return self
    
    @property
    def participant(self) -> Optional[Participant]:
        return participant_from_ids(self.team_id, self.user_id)


class SetWinnersCommand(StrictModel):
    action: Literal["set_winners"] = "set_winners"
    event_id: int = Field(..., gt=0)
    winners: List[WinnerInput] = Field(default_factory=list)


class CompleteEventCommand(StrictModel):
    action: Literal["complete_event"] = "complete_event"
    event_id: int = Field(..., gt=0)


class ResetProgressCommand(StrictModel):
    action: Literal["reset_progress"] = "reset_progress"
    event_id: int = Field(..., gt=0)


class MatchResultInput(StrictModel):
    wins: int = Field(0, ge=0)
    losses: int = Field(0, ge=0)
    draws: int = Field(0, ge=0)


class AdjustPointsCommand(ParticipantFields):
    """Manual correction of a points row; points may be negative."""
    action: Literal["adjust_points"] = "adjust_points"
    event_id: int = Field(..., gt=0)
    points: int
    match_result: Optional[MatchResultInput] = None


class RoundInput(StrictModel):
    round_number: int = Field(..., ge=1)
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    
    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title cannot be empty")
        return v.strip()


class AddRoundsCommand(StrictModel):
    action: Literal["add_rounds"] = "add_rounds"
    event_id: int = Field(..., gt=0)
    rounds: List[RoundInput] = Field(..., min_length=1)


LiveCommand = Annotated[
    Union[
        MoveToRoundCommand,
        EliminateCommand,
        SetWinnersCommand,
        CompleteEventCommand,
        ResetProgressCommand,
        AdjustPointsCommand,
        AddRoundsCommand,
    ],
    Field(discriminator="action"),
]

live_command_adapter = TypeAdapter(LiveCommand)


def parse_command(payload: dict):
    """Validate a raw payload into one of the live commands."""
    return live_command_adapter.validate_python(payload)
