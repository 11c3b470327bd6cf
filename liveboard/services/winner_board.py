"""
Winner Board

Final placements of an event. Setting winners is a full replace:
clear-then-insert inside the caller's transaction, never a patch.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from liveboard.orm.event_winner import EventWinner
from liveboard.services.participant_directory import Participant, participant_columns

logger = logging.getLogger(__name__)


class WinnerBoard:
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def list_winners(self, event_id: int) -> List[EventWinner]:
        result = await self.db.execute(
            select(EventWinner)
            .where(EventWinner.event_id == event_id)
            .order_by(EventWinner.position)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
    
    async def clear(self, event_id: int) -> int:
        result = await self.db.execute(
            delete(EventWinner)
            .where(EventWinner.event_id == event_id)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount or 0
    
    async def replace(
        self,
        event_id: int,
        placements: List[tuple]
    ) -> List[EventWinner]:
        """
        Replace every winner of the event.
        
        Args:
            placements: (position, participant, prize) tuples, positions unique
        """
        removed = await self.clear(event_id)
        # The delete must reach the database before the inserts reuse positions
        await self.db.flush()
        
        now = datetime.utcnow()
        winners = [
            EventWinner(
                event_id=event_id,
                position=position,
                prize=prize,
                created_at=now,
                **participant_columns(participant)
            )
            for position, participant, prize in placements
        ]
        self.db.add_all(winners)
        await self.db.flush()
        
        logger.info(f"Replaced {removed} winner(s) with {len(winners)} for event {event_id}")
        return winners
