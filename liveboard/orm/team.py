"""
liveboard/orm/team.py
Team model for event participants.
A team has a leader and a member list; it can register for any number of events.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from liveboard.orm.base import Base


class Team(Base):
    __tablename__ = "teams"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    leader_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    
    team_members = relationship(
        "TeamMember",
        back_populates="team",
        lazy="selectin",
        cascade="all, delete-orphan"
    )
    
    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}')>"
    
    def to_dict(self, include_members=False):
        data = {
            "id": self.id,
            "name": self.name,
            "leader_id": self.leader_id,
            "member_count": len(self.team_members) if self.team_members else 0,
        }
        
        if include_members and self.team_members:
            data["members"] = [
                {
                    "id": tm.member_id,
                    "full_name": tm.member.full_name if tm.member else None,
                    "email": tm.member.email if tm.member else None,
                }
                for tm in self.team_members
            ]
        
        return data


class TeamMember(Base):
    """Membership row linking a user to a team."""
    __tablename__ = "team_members"
    
    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    joined_at = Column(DateTime, default=datetime.utcnow)
    
    team = relationship("Team", back_populates="team_members")
    member = relationship("User", lazy="selectin")
    
    __table_args__ = (
        UniqueConstraint("team_id", "member_id", name="uq_team_member"),
    )
