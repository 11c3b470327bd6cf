"""
liveboard/orm/tournament_points.py
Points awarded to a participant for a tournament-linked event.

Rows are created by the scoring engine at completion time and afterwards
only changed by explicit point adjustments.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from liveboard.orm.base import Base, PARTICIPANT_XOR_CHECK


class TournamentPoints(Base):
    __tablename__ = "tournament_points"
    
    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    
    # May go negative through manual corrective adjustments
    points = Column(Integer, nullable=False, default=0)
    reason = Column(String(255), nullable=True)
    matches_played = Column(Integer, nullable=False, default=0)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    draws = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    team = relationship("Team", lazy="selectin")
    user = relationship("User", lazy="selectin")
    
    __table_args__ = (
        CheckConstraint(PARTICIPANT_XOR_CHECK, name="ck_points_one_participant"),
        Index("idx_points_event", "event_id"),
    )
    
    def to_dict(self):
        return {
            "id": self.id,
            "tournament_id": self.tournament_id,
            "event_id": self.event_id,
            "team_id": self.team_id,
            "user_id": self.user_id,
            "points": self.points,
            "reason": self.reason,
            "matches_played": self.matches_played,
            "wins": self.wins,
            "losses": self.losses,
            "draws": self.draws,
            "team": {"id": self.team.id, "name": self.team.name} if self.team else None,
            "profile": {"full_name": self.user.full_name} if self.user else None,
        }
