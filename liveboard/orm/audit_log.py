"""
liveboard/orm/audit_log.py
Append-only audit trail of staff actions on live events.

Each entry stores the SHA256 of its content chained to the previous entry.
"""
import hashlib
import json
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, Index

from liveboard.orm.base import Base


class AuditLogEntry(Base):
    __tablename__ = "audit_log"
    
    id = Column(Integer, primary_key=True)
    action = Column(String(50), nullable=False, index=True)
    actor_id = Column(Integer, nullable=True)
    event_id = Column(Integer, nullable=True)
    details_json = Column(Text, nullable=True)
    previous_hash = Column(String(64), nullable=True)
    entry_hash = Column(String(64), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    
    __table_args__ = (
        Index("idx_audit_event", "event_id"),
    )
    
    def compute_hash(self) -> str:
        """
        Compute SHA256 hash of entry data.
        
        Includes the previous entry hash so the log forms a chain.
        """
        data = {
            "action": self.action,
            "actor_id": self.actor_id,
            "event_id": self.event_id,
            "details": self.details_json,
            "created_at": self.created_at.isoformat() if self.created_at else "",
            "previous_hash": self.previous_hash or "",
        }
        
        serialized = json.dumps(data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(serialized.encode()).hexdigest()
    
    def to_dict(self):
        return {
            "id": self.id,
            "action": self.action,
            "actor_id": self.actor_id,
            "event_id": self.event_id,
            "details": json.loads(self.details_json) if self.details_json else None,
            "entry_hash": self.entry_hash,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
