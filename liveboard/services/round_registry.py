"""
Round Registry

Ordered rounds of an event. Append-only: a round whose number is already
taken for the event is skipped, so bulk adds are safe to re-run.
"""
import logging
from typing import List, Optional, Dict, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from liveboard.orm.event_round import EventRound

logger = logging.getLogger(__name__)


class RoundRegistry:
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def list_rounds(self, event_id: int) -> List[EventRound]:
        """Rounds of the event in sequence order."""
        result = await self.db.execute(
            select(EventRound)
            .where(EventRound.event_id == event_id)
            .order_by(EventRound.round_number)
        )
        return list(result.scalars().all())
    
    async def get_round(self, event_id: int, round_id: int) -> Optional[EventRound]:
        """Round by id, only if it belongs to the event."""
        result = await self.db.execute(
            select(EventRound).where(
                EventRound.id == round_id,
                EventRound.event_id == event_id
            )
        )
        return result.scalar_one_or_none()
    
    async def add_rounds(self, event_id: int, rounds: List[Dict[str, Any]]) -> List[EventRound]:
        """
        Append rounds to an event.
        
        Args:
            event_id: Event the rounds belong to
            rounds: Dicts with round_number, title and optional description
            
        Returns:
            The rounds actually inserted (empty when every number collided)
        """
        result = await self.db.execute(
            select(EventRound.round_number).where(EventRound.event_id == event_id)
        )
        taken = set(result.scalars().all())
        
        added = []
        for entry in rounds:
            number = entry["round_number"]
            if number in taken:
                logger.info(f"Round {number} already exists for event {event_id}, skipping")
                continue
            taken.add(number)
            added.append(EventRound(
                event_id=event_id,
                round_number=number,
                title=entry["title"],
                description=entry.get("description"),
            ))
        
        if added:
            self.db.add_all(added)
            await self.db.flush()
        
        return added
