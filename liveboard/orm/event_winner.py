"""
liveboard/orm/event_winner.py
Winner board: final placements of an event.
"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship

from liveboard.orm.base import Base, PARTICIPANT_XOR_CHECK


class EventWinner(Base):
    __tablename__ = "event_winners"
    
    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    points_awarded = Column(Integer, nullable=True)
    prize = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    team = relationship("Team", lazy="selectin")
    user = relationship("User", lazy="selectin")
    
    __table_args__ = (
        UniqueConstraint("event_id", "position", name="uq_winner_event_position"),
        CheckConstraint("position >= 1", name="ck_winner_position_positive"),
        CheckConstraint(PARTICIPANT_XOR_CHECK, name="ck_winner_one_participant"),
    )
    
    def to_dict(self):
        return {
            "id": self.id,
            "event_id": self.event_id,
            "position": self.position,
            "team_id": self.team_id,
            "user_id": self.user_id,
            "points_awarded": self.points_awarded,
            "prize": self.prize,
            "team": self.team.to_dict(include_members=True) if self.team else None,
            "profile": self.user.to_dict() if self.user else None,
        }
