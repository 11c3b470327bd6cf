"""
liveboard/orm/user.py
Portal user profile as seen by the live engine.

Only the fields needed to display a participant and to gate staff actions.
"""
from sqlalchemy import Column, Integer, String, Enum as SQLEnum
from enum import Enum
from liveboard.orm.base import Base


class UserRole(str, Enum):
    """Portal roles - core team members are staff"""
    core = "core"
    member = "member"


class User(Base):
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.member, index=True)
    
    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"
    
    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
        }
