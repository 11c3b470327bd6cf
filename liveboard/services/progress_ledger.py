"""
Progress Ledger

Data access over event_progress. One live entry per (event, participant);
moves update that entry in place so a reader never observes a participant
with zero live entries.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from liveboard.orm.event_progress import EventProgress
from liveboard.services.participant_directory import (
    Participant, participant_filter, participant_columns
)

logger = logging.getLogger(__name__)


class ProgressLedger:
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def get_entry(
        self,
        event_id: int,
        participant: Participant,
        lock: bool = False
    ) -> Optional[EventProgress]:
        """
        Live entry of a participant.
        
        Args:
            lock: Whether to use FOR UPDATE locking
        """
        query = select(EventProgress).where(
            EventProgress.event_id == event_id,
            participant_filter(EventProgress, participant)
        )
        
        if lock:
            query = query.with_for_update()
        
        result = await self.db.execute(query)
        return result.scalars().first()
    
    async def place(
        self,
        event_id: int,
        participant: Participant,
        round_id: int,
        moved_at: datetime,
        existing: Optional[EventProgress] = None
    ) -> EventProgress:
        """
        Point the participant's live entry at `round_id`.
        
        An existing entry is retargeted in place and reinstated; otherwise a
        new entry is inserted.
        """
        if existing is not None:
            existing.round_id = round_id
            existing.eliminated = False
            existing.eliminated_at = None
            existing.moved_at = moved_at
            await self.db.flush()
            return existing
        
        entry = EventProgress(
            event_id=event_id,
            round_id=round_id,
            eliminated=False,
            eliminated_at=None,
            moved_at=moved_at,
            **participant_columns(participant)
        )
        self.db.add(entry)
        await self.db.flush()
        return entry
    
    async def mark_eliminated(
        self,
        event_id: int,
        participant: Participant,
        round_id: int,
        eliminated_at: datetime
    ) -> int:
        """
        Eliminate the participant's entry in `round_id`.
        
        Already-eliminated entries are left untouched so eliminated_at keeps
        its first value.
        
        Returns:
            Number of rows affected (0 or 1)
        """
        result = await self.db.execute(
            update(EventProgress)
            .where(
                EventProgress.event_id == event_id,
                EventProgress.round_id == round_id,
                EventProgress.eliminated == False,  # noqa: E712
                participant_filter(EventProgress, participant)
            )
            .values(eliminated=True, eliminated_at=eliminated_at)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount or 0
    
    async def list_entries(self, event_id: int, newest_first: bool = False) -> List[EventProgress]:
        query = (
            select(EventProgress)
            .where(EventProgress.event_id == event_id)
            .execution_options(populate_existing=True)
        )
        if newest_first:
            query = query.order_by(EventProgress.moved_at.desc(), EventProgress.id.desc())
        else:
            query = query.order_by(EventProgress.id)
        
        result = await self.db.execute(query)
        return list(result.scalars().all())
    
    async def active_in_round(self, event_id: int, round_id: int) -> List[EventProgress]:
        """Non-eliminated entries currently placed in the round."""
        result = await self.db.execute(
            select(EventProgress).where(
                EventProgress.event_id == event_id,
                EventProgress.round_id == round_id,
                EventProgress.eliminated.is_(False)
            ).order_by(EventProgress.moved_at)
        )
        return list(result.scalars().all())
    
    async def eliminated_entries(self, event_id: int) -> List[EventProgress]:
        result = await self.db.execute(
            select(EventProgress).where(
                EventProgress.event_id == event_id,
                EventProgress.eliminated.is_(True)
            ).order_by(EventProgress.eliminated_at)
        )
        return list(result.scalars().all())
    
    async def surviving_entries(self, event_id: int) -> List[EventProgress]:
        """Entries never formally eliminated, with their round loaded."""
        result = await self.db.execute(
            select(EventProgress)
            .where(
                EventProgress.event_id == event_id,
                EventProgress.eliminated.is_(False)
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
    
    async def clear(self, event_id: int) -> int:
        """Delete the whole ledger of an event."""
        result = await self.db.execute(
            delete(EventProgress)
            .where(EventProgress.event_id == event_id)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount or 0
