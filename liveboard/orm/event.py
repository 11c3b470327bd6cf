"""
liveboard/orm/event.py
Event and tournament models.

The event owns its lifecycle status; the live engine only ever moves it
between ONGOING and COMPLETED (complete / reset).
"""
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from liveboard.orm.base import BaseModel


class EventStatus(str, Enum):
    """Event lifecycle status."""
    UPCOMING = "upcoming"
    REGISTRATION_OPEN = "registration_open"
    ONGOING = "ongoing"
    COMPLETED = "completed"


class TournamentStatus(str, Enum):
    UPCOMING = "upcoming"
    REGISTRATION_OPEN = "registration_open"
    ONGOING = "ongoing"
    COMPLETED = "completed"


class Tournament(BaseModel):
    """
    Cross-event tournament.
    
    Tournament-linked events feed points into this tournament's leaderboard.
    """
    __tablename__ = "tournaments"
    
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    year = Column(Integer, nullable=True)
    status = Column(String(30), nullable=False, default=TournamentStatus.UPCOMING.value)
    
    events = relationship("Event", back_populates="tournament")
    
    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "year": self.year,
            "status": self.status,
        }


class Event(BaseModel):
    """
    Competition or workshop instance.
    
    Attributes:
        status: Current lifecycle status (EventStatus value)
        is_tournament: Whether completion feeds the scoring engine
        tournament_id: Tournament the points are credited to (nullable)
        completed_at: Set by completion, cleared by reset
    """
    __tablename__ = "events"
    
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    event_type = Column(String(50), nullable=True)
    status = Column(String(30), nullable=False, default=EventStatus.UPCOMING.value)
    is_tournament = Column(Boolean, nullable=False, default=False)
    tournament_id = Column(
        Integer,
        ForeignKey("tournaments.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    completed_at = Column(DateTime, nullable=True)
    
    tournament = relationship("Tournament", back_populates="events")
    
    __table_args__ = (
        CheckConstraint(
            f"status IN ('{EventStatus.UPCOMING.value}', '{EventStatus.REGISTRATION_OPEN.value}', "
            f"'{EventStatus.ONGOING.value}', '{EventStatus.COMPLETED.value}')",
            name="ck_event_status_valid"
        ),
        # COMPLETED requires a completion timestamp
        CheckConstraint(
            f"(status != '{EventStatus.COMPLETED.value}') OR (completed_at IS NOT NULL)",
            name="ck_event_completed_has_timestamp"
        ),
        Index("idx_event_status", "status"),
    )
    
    @property
    def is_completed(self) -> bool:
        return self.status == EventStatus.COMPLETED.value
    
    def to_dict(self):
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "event_type": self.event_type,
            "status": self.status,
            "is_tournament": bool(self.is_tournament),
            "tournament_id": self.tournament_id,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
