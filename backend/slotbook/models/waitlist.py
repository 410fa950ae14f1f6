"""
Waitlist entries queued against a full slot.

`position` is an ordering key, not a rank: it is assigned as max + 1 under the
slot row lock and never renumbered, so gaps appear after entries leave.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from slotbook.db.base import Base, TimestampMixin


class WaitlistEntry(Base, TimestampMixin):
    __tablename__ = "waitlist_entries"

    id = Column(Integer, primary_key=True, index=True)
    slot_id = Column(Integer, ForeignKey("slots.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=True)
    party_size = Column(Integer, nullable=False, default=1)
    position = Column(Integer, nullable=False)
    notified_at = Column(DateTime(timezone=True), nullable=True)

    slot = relationship("Slot", back_populates="waitlist_entries")
    user = relationship("User", back_populates="waitlist_entries")

    __table_args__ = (
        UniqueConstraint("slot_id", "position", name="uq_waitlist_slot_position"),
        UniqueConstraint("slot_id", "user_id", name="uq_waitlist_slot_user"),
        CheckConstraint("position > 0", name="check_waitlist_position_positive"),
        CheckConstraint("party_size > 0", name="check_waitlist_party_size_positive"),
    )

    def __repr__(self) -> str:
        return f"<WaitlistEntry(id={self.id}, slot={self.slot_id}, user={self.user_id}, position={self.position})>"
