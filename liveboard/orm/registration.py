"""
liveboard/orm/registration.py
Event registrations: a team or an individual signed up for an event.
"""
from enum import Enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from liveboard.orm.base import Base, PARTICIPANT_XOR_CHECK


class RegistrationType(str, Enum):
    TEAM = "team"
    INDIVIDUAL = "individual"


class RegistrationStatus(str, Enum):
    REGISTERED = "registered"
    PENDING = "pending"
    CANCELLED = "cancelled"


class EventRegistration(Base):
    __tablename__ = "event_registrations"
    
    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    registration_type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=RegistrationStatus.REGISTERED.value)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    registered_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    team = relationship("Team", lazy="selectin")
    user = relationship("User", lazy="selectin")
    
    __table_args__ = (
        CheckConstraint(PARTICIPANT_XOR_CHECK, name="ck_registration_one_participant"),
        Index("idx_registration_event_status", "event_id", "status"),
    )
    
    def to_dict(self):
        return {
            "id": self.id,
            "event_id": self.event_id,
            "registration_type": self.registration_type,
            "status": self.status,
            "team_id": self.team_id,
            "user_id": self.user_id,
            "team": self.team.to_dict(include_members=True) if self.team else None,
            "profile": self.user.to_dict() if self.user else None,
            "registered_at": self.registered_at.isoformat() if self.registered_at else None,
        }
