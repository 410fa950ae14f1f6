"""
User, role assignment and profile models.

Roles are explicit rows in user_roles; nobody becomes admin by default.
"""

import enum

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from slotbook.db.base import Base, TimestampMixin


class AppRole(str, enum.Enum):
    ADMIN = "admin"
    MODERATOR = "moderator"
    USER = "user"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    slots = relationship("Slot", back_populates="owner")
    bookings = relationship("Booking", back_populates="user")
    waitlist_entries = relationship("WaitlistEntry", back_populates="user")
    roles = relationship("UserRole", back_populates="user", lazy="selectin", cascade="all, delete-orphan")
    profile = relationship("UserProfile", back_populates="user", uselist=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"


class UserRole(Base, TimestampMixin):
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)

    user = relationship("User", back_populates="roles")

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_role"),
        CheckConstraint("role IN ('admin', 'moderator', 'user')", name="check_user_role"),
    )


class UserProfile(Base, TimestampMixin):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    display_name = Column(String(255), nullable=True)
    venmo_username = Column(String(100), nullable=True)
    zelle_identifier = Column(String(255), nullable=True)
    payment_sharing_consent = Column(Boolean, nullable=False, default=False)
    webhook_url = Column(String(1000), nullable=True)

    user = relationship("User", back_populates="profile")

    def __repr__(self) -> str:
        return f"<UserProfile(user={self.user_id}, display_name={self.display_name})>"
