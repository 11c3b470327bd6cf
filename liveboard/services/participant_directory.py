"""
Participant Directory

Resolves an event entrant to either a team (with its member list) or an
individual. Read-only relative to the live engine.

A participant is a tagged variant: TeamParticipant or IndividualParticipant,
never both. Ledger identity is the pair (event, team id or user id), and a
team-keyed record never matches a user-keyed one.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union, List, Dict, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from liveboard.orm.registration import EventRegistration, RegistrationStatus
from liveboard.orm.team import TeamMember
from liveboard.exceptions import ParticipantNotFoundError, ProgressionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeamParticipant:
    team_id: int
    name: str = field(default="", compare=False)
    member_ids: Tuple[int, ...] = field(default=(), compare=False)
    
    @property
    def key(self) -> str:
        return f"team:{self.team_id}"


@dataclass(frozen=True)
class IndividualParticipant:
    user_id: int
    name: str = field(default="", compare=False)
    
    @property
    def key(self) -> str:
        return f"user:{self.user_id}"


Participant = Union[TeamParticipant, IndividualParticipant]


def participant_from_ids(team_id: Optional[int], user_id: Optional[int]) -> Optional[Participant]:
    """
    Build a participant from a (team_id, user_id) pair.
    
    Returns None when neither id is set. Raises when both are set, since a
    participant is exactly one of the two variants.
    """
    if team_id is not None and user_id is not None:
        raise ProgressionError(
            "A participant must reference either a team or a user, not both",
            details={"team_id": team_id, "user_id": user_id}
        )
    if team_id is not None:
        return TeamParticipant(team_id=team_id)
    if user_id is not None:
        return IndividualParticipant(user_id=user_id)
    return None


def participant_of(row: Any) -> Optional[Participant]:
    """Participant referenced by any ORM row carrying team_id / user_id."""
    return participant_from_ids(row.team_id, row.user_id)


def matches(row: Any, participant: Participant) -> bool:
    """True when a ledger/winner/points row belongs to the participant."""
    if isinstance(participant, TeamParticipant):
        return row.team_id is not None and row.team_id == participant.team_id
    if isinstance(participant, IndividualParticipant):
        return row.user_id is not None and row.user_id == participant.user_id
    raise TypeError(f"Unknown participant variant: {participant!r}")


def participant_filter(model, participant: Participant):
    """SQLAlchemy criterion selecting the participant's rows of `model`."""
    if isinstance(participant, TeamParticipant):
        return model.team_id == participant.team_id
    if isinstance(participant, IndividualParticipant):
        return model.user_id == participant.user_id
    raise TypeError(f"Unknown participant variant: {participant!r}")


def participant_columns(participant: Participant) -> Dict[str, Optional[int]]:
    """team_id / user_id column values for inserting a participant-keyed row."""
    if isinstance(participant, TeamParticipant):
        return {"team_id": participant.team_id, "user_id": None}
    return {"team_id": None, "user_id": participant.user_id}


def from_registration(registration: EventRegistration) -> Participant:
    """Resolve a registration into a fully described participant."""
    if registration.team_id is not None:
        team = registration.team
        return TeamParticipant(
            team_id=registration.team_id,
            name=team.name if team else "",
            member_ids=tuple(tm.member_id for tm in team.team_members) if team else (),
        )
    user = registration.user
    return IndividualParticipant(
        user_id=registration.user_id,
        name=user.full_name if user else "",
    )


class ParticipantDirectory:
    """Read-only lookups over event registrations."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def list_registrations(
        self,
        event_id: int,
        registered_only: bool = True
    ) -> List[EventRegistration]:
        query = select(EventRegistration).where(EventRegistration.event_id == event_id)
        if registered_only:
            query = query.where(EventRegistration.status == RegistrationStatus.REGISTERED.value)
        query = (
            query.order_by(EventRegistration.registered_at, EventRegistration.id)
            .execution_options(populate_existing=True)
        )
        
        result = await self.db.execute(query)
        return list(result.scalars().all())
    
    async def get_registration(
        self,
        event_id: int,
        participant: Participant
    ) -> Optional[EventRegistration]:
        result = await self.db.execute(
            select(EventRegistration).where(
                EventRegistration.event_id == event_id,
                EventRegistration.status == RegistrationStatus.REGISTERED.value,
                participant_filter(EventRegistration, participant),
            ).execution_options(populate_existing=True)
        )
        return result.scalars().first()
    
    async def resolve(self, event_id: int, participant: Participant) -> Participant:
        """
        Resolve a bare participant reference into its registered form.
        
        Raises:
            ParticipantNotFoundError: Not registered for the event
        """
        registration = await self.get_registration(event_id, participant)
        if registration is None:
            raise ParticipantNotFoundError(participant.key)
        return from_registration(registration)
    
    async def find_for_user(self, event_id: int, user_id: int) -> Optional[EventRegistration]:
        """
        Registration of a user for an event, either individually or through
        membership of a registered team.
        """
        direct = await self.get_registration(event_id, IndividualParticipant(user_id=user_id))
        if direct is not None:
            return direct
        
        result = await self.db.execute(
            select(EventRegistration)
            .join(TeamMember, TeamMember.team_id == EventRegistration.team_id)
            .where(
                EventRegistration.event_id == event_id,
                EventRegistration.status == RegistrationStatus.REGISTERED.value,
                TeamMember.member_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()
