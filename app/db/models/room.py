from sqlalchemy import Column, Integer, String, DateTime, func, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.db.session import Base

class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("full_code", "building_id", name="uq_rooms_full_code_building"),
    )

    id = Column(Integer, primary_key=True)
    building_id = Column(Integer, ForeignKey("buildings.id", ondelete="CASCADE"), nullable=False)
    floor = Column(String(10), nullable=False)       # "EG", "01"
    number = Column(String(10), nullable=False)      # "108"
    full_code = Column(String(40), nullable=False)   # "AP152.EG.108"
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    building = relationship("Building", back_populates="rooms")
    schedules = relationship("Schedule", back_populates="room", cascade="all, delete-orphan")
