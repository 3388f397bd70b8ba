# kpi_dashboard/models/session_slot.py
from sqlalchemy import Column, String, Text, DateTime, func
from kpi_dashboard.database import Base

class SessionSlot(Base):
    """Durable key-value slot, e.g. the signed-in identity under "kpi_user"."""

    __tablename__ = "session_slots"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
