"""Group model - collaborative scope shared by several users."""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from garage.database import Base


class Group(Base):
    """
    Group (équipe).

    Members of a group share read/write access to every invoice stamped with
    the group's id. Membership is held on AppUser.group_id.
    """

    __tablename__ = 'user_group'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    members = relationship('AppUser', back_populates='group')

    def __repr__(self):
        return f"<Group(id={self.id}, name='{self.name}')>"
