"""
liveboard/orm/event_round.py
Ordered rounds of an event.

Rounds are append-only: created once at event setup, never reordered.
"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, Text, ForeignKey, UniqueConstraint, CheckConstraint
)

from liveboard.orm.base import Base


class EventRound(Base):
    __tablename__ = "event_rounds"
    
    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    round_number = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    __table_args__ = (
        UniqueConstraint("event_id", "round_number", name="uq_event_round_number"),
        CheckConstraint("round_number >= 1", name="ck_round_number_positive"),
    )
    
    def __repr__(self):
        return f"<EventRound(id={self.id}, event={self.event_id}, number={self.round_number})>"
    
    def to_dict(self):
        return {
            "id": self.id,
            "event_id": self.event_id,
            "round_number": self.round_number,
            "title": self.title,
            "description": self.description,
        }
