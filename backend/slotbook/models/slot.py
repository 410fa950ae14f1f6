"""
Slot model: a bookable time window with a table ledger.

Key design decisions:
- `total_tables` / `booked_tables` form the capacity ledger; booked_tables is
  written only by slotbook.services.ledger (conditional UPDATEs)
- CHECK constraints keep 0 <= booked_tables <= total_tables as the final net
- `version` is bumped on every ledger write so concurrent readers can detect change
- Deleting a slot removes its waitlist; bookings are kept (cancelled) with slot_id NULL
"""

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from slotbook.db.base import Base, TimestampMixin


class BookingMode(str, enum.Enum):
    FCFS = "fcfs"
    LOTTERY = "lottery"


class Slot(Base, TimestampMixin):
    __tablename__ = "slots"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, default="")
    description = Column(String(1000), nullable=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=True)
    total_tables = Column(Integer, nullable=False, default=1)
    booked_tables = Column(Integer, nullable=False, default=0)
    booking_mode = Column(String(20), nullable=False, default=BookingMode.FCFS.value)
    waitlist_enabled = Column(Boolean, nullable=False, default=False)
    # High-water mark of waitlist positions; positions are never handed out twice
    last_waitlist_position = Column(Integer, nullable=False, default=0)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    version = Column(Integer, nullable=False, default=1)

    owner = relationship("User", back_populates="slots")
    bookings = relationship("Booking", back_populates="slot", passive_deletes=True)
    waitlist_entries = relationship(
        "WaitlistEntry",
        back_populates="slot",
        order_by="WaitlistEntry.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("total_tables > 0", name="check_slot_total_tables_positive"),
        CheckConstraint("booked_tables >= 0", name="check_slot_booked_tables_non_negative"),
        CheckConstraint("booked_tables <= total_tables", name="check_slot_booked_lte_total"),
        CheckConstraint("booking_mode IN ('fcfs', 'lottery')", name="check_slot_booking_mode"),
        UniqueConstraint("owner_id", "date", "start_time", name="uq_slot_owner_date_time"),
        Index("ix_slots_date_time", "date", "start_time"),
    )

    @property
    def mode(self) -> BookingMode:
        return BookingMode(self.booking_mode)

    @property
    def tables_remaining(self) -> int:
        return self.total_tables - self.booked_tables

    def __repr__(self) -> str:
        return (
            f"<Slot(id={self.id}, date={self.date}, time={self.start_time}, "
            f"booked={self.booked_tables}/{self.total_tables}, mode={self.booking_mode})>"
        )
