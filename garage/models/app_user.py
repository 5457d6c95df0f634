"""AppUser model - garage staff accounts with a role and an optional group."""
import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from garage.database import Base


class UserRole(enum.Enum):
    """Platform roles."""
    ADMIN = 'ADMIN'
    USER = 'USER'


class AppUser(Base):
    """AppUser model - staff member of the garage."""

    __tablename__ = 'app_user'

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=True)
    full_name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)  # ADMIN, USER
    # One group at a time; NULL means the user only sees their own invoices
    group_id = Column(Integer, ForeignKey('user_group.id'), nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    group = relationship('Group', back_populates='members')

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN.value

    def __repr__(self):
        return f"<AppUser(id={self.id}, email='{self.email}', role='{self.role}', group_id={self.group_id})>"
