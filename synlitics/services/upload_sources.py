"""
Static lookup table of upload slots, one per upload source.
"""
from dataclasses import dataclass
from typing import List

from synlitics.schemas.upload import UploadSource


@dataclass(frozen=True)
class UploadSlot:
    source: UploadSource
    label: str
    key: str
    color: str


UPLOAD_SLOTS: List[UploadSlot] = [
    UploadSlot(UploadSource.UBEREATS, "Uber Eats", "ubereats_ready", "green"),
    UploadSlot(UploadSource.DOORDASH, "DoorDash", "doordash_ready", "red"),
    UploadSlot(UploadSource.GRUBHUB, "Grubhub", "grubhub_ready", "orange"),
    UploadSlot(UploadSource.OFFLINE, "Offline Sales", "offline_ready", "slate"),
]

_SLOTS_BY_SOURCE = {slot.source: slot for slot in UPLOAD_SLOTS}


def get_slot(source: UploadSource) -> UploadSlot:
    """Slot for a known source."""
    return _SLOTS_BY_SOURCE[source]


def parse_source(value: str) -> UploadSource | None:
    """
    Match a source name case-insensitively.

    Returns None for anything outside the four known sources.
    """
    normalized = value.strip().lower()
    for source in UploadSource:
        if source.value.lower() == normalized:
            return source
    return None
