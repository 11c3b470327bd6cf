"""
Scoring Engine

Derives tournament point awards for a completed tournament-linked event.

Winners are paid from the position table; every other participant that was
never formally eliminated is paid from the round-reached table using the
highest round it occupies. A winner is never paid twice.

Not idempotent: the caller must only invoke it from the single completion
transition of an event that was not already completed.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from liveboard.orm.event import Event
from liveboard.orm.event_progress import EventProgress
from liveboard.orm.event_winner import EventWinner
from liveboard.orm.tournament_points import TournamentPoints
from liveboard.services.participant_directory import (
    Participant, participant_of, participant_columns, matches
)
from liveboard.services.progress_ledger import ProgressLedger
from liveboard.services.winner_board import WinnerBoard

logger = logging.getLogger(__name__)


@dataclass
class Award:
    """One points row to be written."""
    participant: Participant
    points: int
    reason: str
    wins: int = 0
    losses: int = 0
    position: Optional[int] = None


class ScoringEngine:
    
    POSITION_POINTS = {1: 100, 2: 75, 3: 50}
    DEFAULT_POSITION_POINTS = 25
    
    ROUND_POINTS = {1: 10, 2: 20, 3: 30, 4: 40}
    DEFAULT_ROUND_POINTS = 5
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    @staticmethod
    def points_for_position(position: int) -> int:
        return ScoringEngine.POSITION_POINTS.get(position, ScoringEngine.DEFAULT_POSITION_POINTS)
    
    @staticmethod
    def points_for_round(round_number: Optional[int]) -> int:
        if round_number is None:
            return ScoringEngine.DEFAULT_ROUND_POINTS
        return ScoringEngine.ROUND_POINTS.get(round_number, ScoringEngine.DEFAULT_ROUND_POINTS)
    
    @staticmethod
    def compute_awards(
        winners: Sequence[EventWinner],
        progress: Sequence[EventProgress]
    ) -> List[Award]:
        """
        Pure award computation.
        
        Args:
            winners: Winner rows of the event
            progress: Ledger entries with eliminated = false
            
        Returns:
            Winner awards (by position) followed by round awards
        """
        awards = []
        for winner in sorted(winners, key=lambda w: w.position):
            participant = participant_of(winner)
            if participant is None:
                continue
            awards.append(Award(
                participant=participant,
                points=ScoringEngine.points_for_position(winner.position),
                reason=f"Position {winner.position}",
                wins=1,
                position=winner.position,
            ))
        
        # Highest round per participant; None when no round data at all
        furthest: Dict[Participant, Optional[int]] = {}
        order: List[Participant] = []
        for entry in progress:
            if entry.eliminated:
                continue
            participant = participant_of(entry)
            if participant is None:
                continue
            if any(matches(winner, participant) for winner in winners):
                continue
            
            round_number = entry.round.round_number if entry.round is not None else None
            if participant not in furthest:
                order.append(participant)
                furthest[participant] = round_number
            elif round_number is not None and (
                furthest[participant] is None or round_number > furthest[participant]
            ):
                furthest[participant] = round_number
        
        for participant in order:
            round_number = furthest[participant]
            awards.append(Award(
                participant=participant,
                points=ScoringEngine.points_for_round(round_number),
                reason=f"Reached Round {round_number}" if round_number is not None else "Participated",
                losses=1,
            ))
        
        return awards
    
    async def score_event(self, event: Event) -> List[TournamentPoints]:
        """
        Award points for a completed tournament-linked event.
        
        All rows are inserted in one batch; winner rows get points_awarded.
        """
        winners = await WinnerBoard(self.db).list_winners(event.id)
        progress = await ProgressLedger(self.db).surviving_entries(event.id)
        
        awards = self.compute_awards(winners, progress)
        
        for winner in winners:
            winner.points_awarded = self.points_for_position(winner.position)
        
        now = datetime.utcnow()
        rows = [
            TournamentPoints(
                tournament_id=event.tournament_id,
                event_id=event.id,
                points=award.points,
                reason=award.reason,
                matches_played=1,
                wins=award.wins,
                losses=award.losses,
                draws=0,
                created_at=now,
                updated_at=now,
                **participant_columns(award.participant)
            )
            for award in awards
        ]
        self.db.add_all(rows)
        await self.db.flush()
        
        logger.info(
            f"Scored event {event.id}: {sum(1 for a in awards if a.position)} winner award(s), "
            f"{sum(1 for a in awards if not a.position)} round award(s)"
        )
        return rows
    
    async def clear(self, event_id: int) -> int:
        """Delete every points row of an event."""
        result = await self.db.execute(
            delete(TournamentPoints)
            .where(TournamentPoints.event_id == event_id)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount or 0
