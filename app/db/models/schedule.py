from sqlalchemy import Column, BigInteger, Integer, String, DateTime, Enum, ForeignKey, Index, func
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.db.models.enums import SlotStatus

class Schedule(Base):
    __tablename__ = "schedules"
    __table_args__ = (
        Index("ix_schedules_room_start", "room_id", "start_time"),
    )

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)

    # naive wall-clock time in settings.TIMEZONE
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(Enum(SlotStatus, name="slot_status_enum"), nullable=False)

    title = Column(String(255))
    color = Column(String(20))

    # only set for BUSY slots
    teacher = Column(String(255))
    class_name = Column(String(255))
    external_id = Column(String(255))

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    room = relationship("Room", back_populates="schedules")
