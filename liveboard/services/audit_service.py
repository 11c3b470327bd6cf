"""
Audit Service

Fire-and-forget record of every mutating action on a live event.
A failing audit write is logged and swallowed; it never fails the action.
"""
import json
import logging
from datetime import datetime
from typing import Optional, Dict, Any, Callable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from liveboard.orm.audit_log import AuditLogEntry

logger = logging.getLogger(__name__)


class AuditAction:
    MOVE_TO_ROUND = "move_to_round"
    ELIMINATE = "eliminate"
    SET_WINNERS = "set_winners"
    COMPLETE_EVENT = "complete_event"
    RESET_PROGRESS = "reset_progress"
    ADJUST_POINTS = "adjust_points"
    ADD_ROUNDS = "add_rounds"


class AuditSink:
    """Sink interface: record(action, actor_id, event_id, metadata)."""
    
    async def record(
        self,
        action: str,
        actor_id: Optional[int],
        event_id: Optional[int],
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        raise NotImplementedError


class LoggingAuditSink(AuditSink):
    """Audit sink that only writes to the application log."""
    
    async def record(self, action, actor_id, event_id, metadata=None) -> None:
        logger.info(f"AUDIT {action} actor={actor_id} event={event_id} metadata={metadata or {}}")


class DatabaseAuditSink(AuditSink):
    """
    Append-only audit_log writer.
    
    Uses its own session so the audit row commits independently of the
    action being recorded.
    """
    
    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory
    
    async def record(self, action, actor_id, event_id, metadata=None) -> None:
        try:
            async with self.session_factory() as session:
                last = await session.execute(
                    select(AuditLogEntry.entry_hash)
                    .order_by(AuditLogEntry.id.desc())
                    .limit(1)
                )
                
                entry = AuditLogEntry(
                    action=action,
                    actor_id=actor_id,
                    event_id=event_id,
                    details_json=json.dumps(metadata or {}, sort_keys=True, default=str),
                    previous_hash=last.scalar_one_or_none(),
                    created_at=datetime.utcnow(),
                )
                entry.entry_hash = entry.compute_hash()
                
                session.add(entry)
                await session.commit()
        except Exception as e:
            logger.error(f"Audit write failed for {action} on event {event_id}: {type(e).__name__}: {str(e)}")


async def list_audit_entries(db: AsyncSession, event_id: int) -> List[AuditLogEntry]:
    result = await db.execute(
        select(AuditLogEntry)
        .where(AuditLogEntry.event_id == event_id)
        .order_by(AuditLogEntry.id)
    )
    return list(result.scalars().all())


def verify_chain(entries: List[AuditLogEntry]) -> bool:
    """
    Recompute every hash of a slice of the log ordered by id.
    
    Links are checked between entries with consecutive ids; a filtered
    slice (one event) skips the gaps.
    """
    previous = None
    for entry in entries:
        if previous is not None and entry.id == previous.id + 1:
            if entry.previous_hash != previous.entry_hash:
                return False
        if entry.compute_hash() != entry.entry_hash:
            return False
        previous = entry
    return True
