"""
Booking model representing a request for a table in a slot.

Key design decisions:
- Partial unique indexes allow one non-cancelled booking per (slot, user) and,
  for guests, per (slot, email); cancelled rows are kept as history
- Every booking consumes exactly one table, whatever its party_size
- Status transitions that touch the ledger live in the service layer
"""

import enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from slotbook.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    PENDING_LOTTERY = "pending_lottery"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


_ACTIVE = text("status != 'cancelled'")
_ACTIVE_GUEST = text("status != 'cancelled' AND user_id IS NULL")


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    slot_id = Column(Integer, ForeignKey("slots.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    party_size = Column(Integer, nullable=False, default=1)
    dietary_restrictions = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)

    slot = relationship("Slot", back_populates="bookings")
    user = relationship("User", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("party_size > 0", name="check_booking_party_size_positive"),
        CheckConstraint(
            "status IN ('pending_lottery', 'confirmed', 'cancelled', 'completed')",
            name="check_booking_status",
        ),
        Index(
            "uq_booking_active_user",
            "slot_id",
            "user_id",
            unique=True,
            postgresql_where=_ACTIVE,
            sqlite_where=_ACTIVE,
        ),
        Index(
            "uq_booking_active_guest_email",
            "slot_id",
            "customer_email",
            unique=True,
            postgresql_where=_ACTIVE_GUEST,
            sqlite_where=_ACTIVE_GUEST,
        ),
        Index("ix_bookings_slot_status", "slot_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, slot={self.slot_id}, user={self.user_id}, status={self.status})>"
