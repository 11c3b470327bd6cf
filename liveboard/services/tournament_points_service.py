"""
Tournament points: explicit adjustments and the cross-event leaderboard.
"""
import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from liveboard.orm.event import Event
from liveboard.orm.team import Team
from liveboard.orm.user import User
from liveboard.orm.tournament_points import TournamentPoints
from liveboard.services.participant_directory import Participant, participant_filter

logger = logging.getLogger(__name__)


async def list_event_points(db: AsyncSession, event_id: int) -> List[TournamentPoints]:
    result = await db.execute(
        select(TournamentPoints)
        .where(TournamentPoints.event_id == event_id)
        .order_by(TournamentPoints.points.desc(), TournamentPoints.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_points_entry(
    db: AsyncSession,
    event_id: int,
    participant: Participant
) -> Optional[TournamentPoints]:
    result = await db.execute(
        select(TournamentPoints).where(
            TournamentPoints.event_id == event_id,
            participant_filter(TournamentPoints, participant)
        ).with_for_update()
    )
    return result.scalars().first()


def apply_adjustment(
    entry: TournamentPoints,
    points: int,
    wins: int = 0,
    losses: int = 0,
    draws: int = 0,
    record_match: bool = False
) -> TournamentPoints:
    """
    Increment a points row in place.
    
    A recorded match bumps matches_played by one and the result counters by
    the supplied amounts.
    """
    entry.points = (entry.points or 0) + points
    if record_match:
        entry.matches_played = (entry.matches_played or 0) + 1
        entry.wins = (entry.wins or 0) + wins
        entry.losses = (entry.losses or 0) + losses
        entry.draws = (entry.draws or 0) + draws
    entry.updated_at = datetime.utcnow()
    return entry


async def tournament_leaderboard(db: AsyncSession, tournament_id: int) -> List[Dict[str, Any]]:
    """
    Points summed per participant across every event of the tournament.
    
    Ordered by points descending, then display name.
    """
    query = (
        select(
            TournamentPoints.team_id,
            TournamentPoints.user_id,
            func.sum(TournamentPoints.points).label("points"),
            func.sum(TournamentPoints.matches_played).label("matches_played"),
            func.sum(TournamentPoints.wins).label("wins"),
            func.sum(TournamentPoints.losses).label("losses"),
            func.sum(TournamentPoints.draws).label("draws"),
            func.count(func.distinct(TournamentPoints.event_id)).label("events"),
            Team.name.label("team_name"),
            User.full_name.label("user_name"),
        )
        .join(Event, Event.id == TournamentPoints.event_id)
        .outerjoin(Team, Team.id == TournamentPoints.team_id)
        .outerjoin(User, User.id == TournamentPoints.user_id)
        .where(Event.tournament_id == tournament_id)
        .group_by(
            TournamentPoints.team_id,
            TournamentPoints.user_id,
            Team.name,
            User.full_name,
        )
    )
    result = await db.execute(query)
    
    rows = [
        {
            "team_id": row.team_id,
            "user_id": row.user_id,
            "name": row.team_name if row.team_id is not None else row.user_name,
            "points": int(row.points or 0),
            "matches_played": int(row.matches_played or 0),
            "wins": int(row.wins or 0),
            "losses": int(row.losses or 0),
            "draws": int(row.draws or 0),
            "events": int(row.events or 0),
        }
        for row in result.all()
    ]
    rows.sort(key=lambda r: (-r["points"], r["name"] or ""))
    
    for rank, row in enumerate(rows, start=1):
        row["rank"] = rank
    return rows
