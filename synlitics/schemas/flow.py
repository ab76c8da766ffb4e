"""
Request and response schemas for the upload flow API.
"""
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr

from synlitics.schemas.upload import DailyUploadRecord, ProcessingStatus, UploadSource
from synlitics.services.flow_state import Stage, StepState, UploadState


class Credentials(BaseModel):
    """Schema for sign-in and sign-up requests."""
    email: EmailStr
    password: str


class OnboardingRequest(BaseModel):
    restaurant_name: str


class SlotView(BaseModel):
    source: UploadSource
    label: str
    key: str
    color: str
    ready: bool


class TimelineStep(BaseModel):
    label: str
    state: StepState


class FlowView(BaseModel):
    """Everything needed to render the current screen."""
    stage: Stage
    upload_state: Optional[UploadState] = None
    initializing: bool = False
    busy: bool = False
    error: Optional[str] = None
    email: Optional[str] = None
    restaurant_name: Optional[str] = None
    upload_date: Optional[str] = None
    processing_status: Optional[ProcessingStatus] = None
    slots: List[SlotView] = []
    ready_count: int = 0
    can_start_processing: bool = False
    timeline: List[TimelineStep] = []


class SessionResponse(BaseModel):
    """Schema for sign-in / sign-up response."""
    access_token: str
    token_type: str = "bearer"
    view: FlowView


class IdentityResponse(BaseModel):
    user_id: UUID
    email: str


class UploadResponse(BaseModel):
    """Response after a source file is accepted."""
    source: UploadSource
    path: str
    record: DailyUploadRecord
    view: FlowView
