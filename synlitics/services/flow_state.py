"""
Pure derivation of what the owner sees from what the session knows.

Nothing here performs I/O or mutates state: the stage, the upload state and
the processing timeline are all functions of ``SessionContext``.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from synlitics.schemas.upload import DailyUploadRecord, ProcessingStatus, ProfileRecord
from synlitics.services.collaborators import Identity


class Stage(str, Enum):
    """Screen shown to the owner."""
    LOADING = "loading"
    AUTH = "auth"
    ONBOARDING = "onboarding"
    UPLOAD = "upload"
    PROCESSING = "processing"


class UploadState(str, Enum):
    """State of today's daily upload record."""
    NO_RECORD_TODAY = "no_record_today"
    PARTIALLY_UPLOADED = "partially_uploaded"
    AWAITING_PROCESSING_START = "awaiting_processing_start"
    PROCESSING = "processing"
    COMPLETED = "completed"


class StepState(str, Enum):
    DONE = "done"
    ACTIVE = "active"
    PENDING = "pending"


@dataclass
class SessionContext:
    """Everything one client session knows about its owner."""
    initializing: bool = True
    identity: Optional[Identity] = None
    profile: Optional[ProfileRecord] = None
    record: Optional[DailyUploadRecord] = None


def derive_upload_state(record: Optional[DailyUploadRecord]) -> UploadState:
    """
    Classify today's record.

    A pending record needs at least one ready source before processing can
    start; no source is mandatory.
    """
    if record is None:
        return UploadState.NO_RECORD_TODAY
    if record.processing_status == ProcessingStatus.PROCESSING:
        return UploadState.PROCESSING
    if record.processing_status == ProcessingStatus.COMPLETED:
        return UploadState.COMPLETED
    if record.ready_count == 0:
        return UploadState.PARTIALLY_UPLOADED
    return UploadState.AWAITING_PROCESSING_START


def can_start_processing(record: Optional[DailyUploadRecord]) -> bool:
    return derive_upload_state(record) == UploadState.AWAITING_PROCESSING_START


def resolve_stage(context: SessionContext) -> Stage:
    """Map a session context to the screen to render."""
    if context.initializing:
        return Stage.LOADING
    if context.identity is None:
        return Stage.AUTH
    if context.profile is None:
        return Stage.ONBOARDING
    if derive_upload_state(context.record) in (UploadState.PROCESSING, UploadState.COMPLETED):
        return Stage.PROCESSING
    return Stage.UPLOAD


def processing_timeline(record: Optional[DailyUploadRecord]) -> List[Tuple[str, StepState]]:
    """Status rows of the processing screen, in display order."""
    status = record.processing_status if record else ProcessingStatus.PENDING
    processing = status == ProcessingStatus.PROCESSING
    completed = status == ProcessingStatus.COMPLETED

    if processing:
        normalization = StepState.ACTIVE
    elif completed:
        normalization = StepState.DONE
    else:
        normalization = StepState.PENDING

    return [
        ("Files Uploaded Securely", StepState.DONE),
        ("AI Normalization Engine Active", normalization),
        ("P&L Reconciliation", StepState.DONE if completed else StepState.PENDING),
        ("Daily Report Generation", StepState.ACTIVE if completed else StepState.PENDING),
    ]
