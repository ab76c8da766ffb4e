"""
Upload-related Pydantic schemas: sources, statuses, and stored records.
"""
from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class UploadSource(str, Enum):
    """Origin of a daily sales export."""
    UBEREATS = "UberEats"
    DOORDASH = "DoorDash"
    GRUBHUB = "Grubhub"
    OFFLINE = "Offline"


class ProcessingStatus(str, Enum):
    """Lifecycle of a day's report generation. Only ever moves forward."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


class ProfileRecord(BaseModel):
    """A restaurant profile row."""
    id: UUID
    restaurant_name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DailyUploadRecord(BaseModel):
    """A (restaurant, date) daily upload row."""
    id: UUID
    user_id: UUID
    restaurant_name: str
    upload_date: date
    ubereats_ready: bool = False
    doordash_ready: bool = False
    grubhub_ready: bool = False
    offline_ready: bool = False
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def ready_flags(self) -> dict[str, bool]:
        from synlitics.services.upload_sources import UPLOAD_SLOTS

        return {slot.key: getattr(self, slot.key) for slot in UPLOAD_SLOTS}

    @property
    def ready_count(self) -> int:
        return sum(1 for ready in self.ready_flags().values() if ready)
