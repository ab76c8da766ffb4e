"""
Per-restaurant, per-day aggregate of upload readiness and processing status.
"""
import uuid
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    String,
    UniqueConstraint,
    Uuid,
    false,
    func,
)
from synlitics.db.base import Base


class DailyUpload(Base):
    __tablename__ = "daily_uploads"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    restaurant_name = Column(String, nullable=False)
    upload_date = Column(Date, nullable=False)

    # One ready flag per upload source
    ubereats_ready = Column(Boolean, nullable=False, default=False, server_default=false())
    doordash_ready = Column(Boolean, nullable=False, default=False, server_default=false())
    grubhub_ready = Column(Boolean, nullable=False, default=False, server_default=false())
    offline_ready = Column(Boolean, nullable=False, default=False, server_default=false())

    # pending -> processing -> completed
    processing_status = Column(String(20), nullable=False, default="pending", server_default="pending")

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("restaurant_name", "upload_date", name="uq_daily_uploads_restaurant_date"),
    )
