"""
Shared fixtures for the live engine test suite.

Each test gets its own in-memory SQLite database. Seed data is written
through a separate session so the session under test starts empty.
"""
from types import SimpleNamespace
from typing import AsyncGenerator, List, Dict, Any, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from liveboard.orm.base import Base
from liveboard.orm.user import User, UserRole
from liveboard.orm.team import Team, TeamMember
from liveboard.orm.event import Event, EventStatus, Tournament
from liveboard.orm.event_round import EventRound
from liveboard.orm.registration import EventRegistration, RegistrationType, RegistrationStatus
from liveboard.services.audit_service import AuditSink
from liveboard.services.live_cache import LiveStateCache
from liveboard.services.participant_directory import TeamParticipant, IndividualParticipant
from liveboard.services.progression_controller import ProgressionController

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class MemoryAuditSink(AuditSink):
    """Collects audit records for assertions."""

    def __init__(self):
        self.records: List[Dict[str, Any]] = []

    async def record(self, action, actor_id, event_id, metadata=None) -> None:
        self.records.append({
            "action": action,
            "actor_id": actor_id,
            "event_id": event_id,
            "metadata": metadata or {},
        })

    def actions(self) -> List[str]:
        return [r["action"] for r in self.records]


# =============================================================================
# Database
# =============================================================================

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory, seed) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# =============================================================================
# Collaborators
# =============================================================================

@pytest.fixture
def audit_sink() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest.fixture
def cache() -> LiveStateCache:
    return LiveStateCache(ttl_seconds=30)


@pytest.fixture
def controller(db, audit_sink, cache) -> ProgressionController:
    return ProgressionController(db, audit=audit_sink, cache=cache, scoring_enabled=True)


# =============================================================================
# Seed data
# =============================================================================

async def _add_rounds(session: AsyncSession, event: Event, count: int) -> List[EventRound]:
    rounds = [
        EventRound(event_id=event.id, round_number=n, title=f"Round {n}")
        for n in range(1, count + 1)
    ]
    session.add_all(rounds)
    await session.flush()
    return rounds


def _register(event: Event, team: Optional[Team] = None, user: Optional[User] = None,
              status: str = RegistrationStatus.REGISTERED.value) -> EventRegistration:
    return EventRegistration(
        event_id=event.id,
        registration_type=RegistrationType.TEAM.value if team else RegistrationType.INDIVIDUAL.value,
        status=status,
        team_id=team.id if team else None,
        user_id=user.id if user else None,
    )


@pytest_asyncio.fixture
async def seed(session_factory) -> SimpleNamespace:
    """
    Users, three teams, one ongoing event and one tournament-linked event.

    Both events have three rounds. Teams A, B, C and the individual Ivy are
    registered for both; Pat's registration is pending.
    """
    async with session_factory() as session:
        staff = User(email="core@club.test", full_name="Core Staff", role=UserRole.core)
        members = [
            User(email=f"member{i}@club.test", full_name=f"Member {i}", role=UserRole.member)
            for i in range(1, 7)
        ]
        ivy = User(email="ivy@club.test", full_name="Ivy Solo", role=UserRole.member)
        pat = User(email="pat@club.test", full_name="Pat Pending", role=UserRole.member)
        outsider = User(email="outsider@club.test", full_name="Out Sider", role=UserRole.member)
        session.add_all([staff, *members, ivy, pat, outsider])
        await session.flush()

        teams = []
        for index, name in enumerate(["Alpha", "Bravo", "Charlie"]):
            pair = members[index * 2:index * 2 + 2]
            team = Team(name=name, leader_id=pair[0].id)
            team.team_members = [TeamMember(member_id=u.id) for u in pair]
            teams.append(team)
        session.add_all(teams)

        tournament = Tournament(title="Season Cup", year=2026)
        session.add(tournament)
        await session.flush()

        event = Event(title="Hack Night", event_type="competition", status=EventStatus.ONGOING.value)
        cup_event = Event(
            title="Cup Qualifier",
            event_type="competition",
            status=EventStatus.ONGOING.value,
            is_tournament=True,
            tournament_id=tournament.id,
        )
        empty_event = Event(title="Workshop", event_type="workshop", status=EventStatus.UPCOMING.value)
        session.add_all([event, cup_event, empty_event])
        await session.flush()

        rounds = await _add_rounds(session, event, 3)
        cup_rounds = await _add_rounds(session, cup_event, 3)

        registrations = []
        for target in (event, cup_event):
            registrations.extend(_register(target, team=t) for t in teams)
            registrations.append(_register(target, user=ivy))
            registrations.append(_register(target, user=pat, status=RegistrationStatus.PENDING.value))
        session.add_all(registrations)
        await session.commit()

        return SimpleNamespace(
            staff_id=staff.id,
            member_ids=[m.id for m in members],
            ivy_id=ivy.id,
            pat_id=pat.id,
            outsider_id=outsider.id,
            team_ids=[t.id for t in teams],
            tournament_id=tournament.id,
            event_id=event.id,
            cup_event_id=cup_event.id,
            empty_event_id=empty_event.id,
            round_ids=[r.id for r in rounds],
            cup_round_ids=[r.id for r in cup_rounds],
            team_a=TeamParticipant(team_id=teams[0].id),
            team_b=TeamParticipant(team_id=teams[1].id),
            team_c=TeamParticipant(team_id=teams[2].id),
            ivy=IndividualParticipant(user_id=ivy.id),
            pat=IndividualParticipant(user_id=pat.id),
        )
