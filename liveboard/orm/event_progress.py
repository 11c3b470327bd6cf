"""
liveboard/orm/event_progress.py
Progress ledger: one live placement per participant per event.

The two unique constraints are the storage form of the placement invariant.
SQL treats NULLs as distinct, so team rows and individual rows never collide.
"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from liveboard.orm.base import Base, PARTICIPANT_XOR_CHECK


class EventProgress(Base):
    """
    Current placement of a participant.
    
    Attributes:
        round_id: Current round (NULL = registered but not placed)
        eliminated: Excluded from active-in-round views when true
        eliminated_at: Set once, on the first elimination
        moved_at: Timestamp of the last effective placement change
    """
    __tablename__ = "event_progress"
    
    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    round_id = Column(Integer, ForeignKey("event_rounds.id", ondelete="SET NULL"), nullable=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    eliminated = Column(Boolean, nullable=False, default=False)
    eliminated_at = Column(DateTime, nullable=True)
    moved_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    round = relationship("EventRound", lazy="selectin")
    team = relationship("Team", lazy="selectin")
    user = relationship("User", lazy="selectin")
    
    __table_args__ = (
        UniqueConstraint("event_id", "team_id", name="uq_progress_event_team"),
        UniqueConstraint("event_id", "user_id", name="uq_progress_event_user"),
        CheckConstraint(PARTICIPANT_XOR_CHECK, name="ck_progress_one_participant"),
        CheckConstraint(
            "(NOT eliminated) OR (eliminated_at IS NOT NULL)",
            name="ck_progress_eliminated_has_timestamp"
        ),
        Index("idx_progress_event_round", "event_id", "round_id"),
    )
    
    def to_dict(self):
        return {
            "id": self.id,
            "event_id": self.event_id,
            "round_id": self.round_id,
            "team_id": self.team_id,
            "user_id": self.user_id,
            "eliminated": bool(self.eliminated),
            "eliminated_at": self.eliminated_at.isoformat() if self.eliminated_at else None,
            "moved_at": self.moved_at.isoformat() if self.moved_at else None,
            "team": {"id": self.team.id, "name": self.team.name} if self.team else None,
            "profile": self.user.to_dict() if self.user else None,
            "round": self.round.to_dict() if self.round else None,
        }
