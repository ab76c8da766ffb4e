"""
Tests for the upload slot table.
"""
from datetime import date
from uuid import uuid4

from synlitics.schemas.upload import DailyUploadRecord, UploadSource
from synlitics.services.upload_sources import UPLOAD_SLOTS, get_slot, parse_source


class TestUploadSlots:

    def test_one_slot_per_source(self):
        assert [slot.source for slot in UPLOAD_SLOTS] == list(UploadSource)

    def test_slot_keys_are_record_fields(self):
        for slot in UPLOAD_SLOTS:
            assert slot.key in DailyUploadRecord.model_fields

    def test_ready_flags_follow_slot_table(self):
        record = DailyUploadRecord(
            id=uuid4(),
            user_id=uuid4(),
            restaurant_name="Cafe",
            upload_date=date(2024, 6, 15),
            doordash_ready=True,
            offline_ready=True,
        )

        flags = record.ready_flags()

        assert list(flags) == [slot.key for slot in UPLOAD_SLOTS]
        assert flags == {
            "ubereats_ready": False,
            "doordash_ready": True,
            "grubhub_ready": False,
            "offline_ready": True,
        }
        assert record.ready_count == 2

    def test_offline_label(self):
        assert get_slot(UploadSource.OFFLINE).label == "Offline Sales"
        assert get_slot(UploadSource.UBEREATS).key == "ubereats_ready"


class TestParseSource:

    def test_case_insensitive(self):
        assert parse_source("doordash") == UploadSource.DOORDASH
        assert parse_source("UberEats") == UploadSource.UBEREATS
        assert parse_source(" GRUBHUB ") == UploadSource.GRUBHUB

    def test_unknown(self):
        assert parse_source("postmates") is None
