"""
Daily upload flow for one client session.

Resolves the session on startup, gates on the restaurant profile, and drives
today's daily upload record through

    no record -> sources uploaded -> processing -> completed

Stage selection is derived from the session context (see ``flow_state``);
this module only performs the transitions.
"""
import logging
import threading
from datetime import date, datetime, timezone
from pathlib import PurePosixPath
from typing import Callable, Optional
from uuid import UUID

from synlitics.core.config import Settings, get_settings
from synlitics.core.errors import (
    AuthError,
    FlowError,
    NotAuthenticatedError,
    ProcessingError,
    ProfileError,
    UploadError,
    ValidationError,
)
from synlitics.core.upload_date import format_upload_date, get_upload_date
from synlitics.schemas.flow import FlowView, SlotView, TimelineStep
from synlitics.schemas.upload import (
    DailyUploadRecord,
    ProcessingStatus,
    ProfileRecord,
    UploadSource,
)
from synlitics.services.collaborators import (
    AuthProvider,
    BlobStore,
    CollaboratorError,
    CompletionScheduler,
    Identity,
    RecordStore,
)
from synlitics.services.flow_state import (
    SessionContext,
    UploadState,
    can_start_processing,
    derive_upload_state,
    processing_timeline,
    resolve_stage,
)
from synlitics.services.upload_sources import UPLOAD_SLOTS, get_slot

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"
DAILY_UPLOADS_TABLE = "daily_uploads"
DAILY_UPLOAD_CONFLICT_KEYS = ["restaurant_name", "upload_date"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def storage_path(restaurant_name: str, upload_date: str, source: UploadSource) -> str:
    """
    Blob path of a source's export for a day.

    Independent of the uploaded file's extension so re-uploading a source
    always replaces the same object.
    """
    return f"{restaurant_name}/{upload_date}/{source.value}.csv"


class FlowSession:
    """
    State machine behind one owner's session.

    Mutating operations are serialized per session; collaborators are
    called synchronously and never retried. Failures leave the context
    untouched, set ``error`` and raise a ``FlowError``.
    """

    def __init__(
        self,
        auth: AuthProvider,
        blobs: BlobStore,
        records: RecordStore,
        scheduler: CompletionScheduler,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.auth = auth
        self.blobs = blobs
        self.records = records
        self.scheduler = scheduler
        self.settings = settings or get_settings()
        self.clock = clock

        self.context = SessionContext()
        self.busy = False
        self.error: Optional[str] = None

        self._lock = threading.RLock()
        # Bumped on every reset so callbacks from an earlier session go inert
        self._generation = 0

    # ------------------------------------------------------------------
    # Session resolution
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Restore an existing session, once. Any failure leaves the owner signed out."""
        with self._lock:
            if not self.context.initializing:
                return
            try:
                try:
                    identity = self.auth.get_current_session()
                except CollaboratorError as e:
                    logger.warning(f"Session restore error: {e.message}")
                    identity = None

                if identity is not None:
                    self.context.identity = identity
                    self._load_profile(identity)
            finally:
                self.context.initializing = False

    def sign_in(self, email: str, password: str) -> Identity:
        return self._authenticate(self.auth.sign_in, email, password)

    def sign_up(self, email: str, password: str) -> Identity:
        return self._authenticate(self.auth.sign_up, email, password)

    def _authenticate(self, action: Callable[[str, str], Identity], email: str, password: str) -> Identity:
        with self._lock, self._action():
            try:
                identity = action(email, password)
            except CollaboratorError as e:
                raise AuthError(e.message) from e

            if self.context.identity is not None and self.context.identity.user_id != identity.user_id:
                self._reset()
            self.context.initializing = False
            self.context.identity = identity
            self._load_profile(identity)
            return identity

    def logout(self) -> None:
        """Sign out and forget everything about the previous owner."""
        with self._lock:
            self._reset()
            try:
                self.auth.sign_out()
            except CollaboratorError as e:
                logger.warning(f"Sign out failed: {e.message}")

    def revalidate(self) -> bool:
        """
        Check the session against the auth provider again and re-read the
        owner's profile and today's record.

        A session that no longer resolves to the same owner is reset and
        False is returned.
        """
        with self._lock:
            identity = self.context.identity
            if identity is None:
                return False
            try:
                current = self.auth.get_current_session()
            except CollaboratorError as e:
                logger.warning(f"Session check error: {e.message}")
                current = None

            if current is None or current.user_id != identity.user_id:
                logger.info(f"Session for {identity.email} is no longer valid")
                self._reset()
                return False

            self._load_profile(identity)
            return True

    def _reset(self) -> None:
        self._generation += 1
        self.scheduler.cancel_all()
        self.context = SessionContext(initializing=False)
        self.busy = False
        self.error = None

    # ------------------------------------------------------------------
    # Profile / onboarding gate
    # ------------------------------------------------------------------

    def _load_profile(self, identity: Identity) -> None:
        try:
            row = self.records.find_one(PROFILES_TABLE, {"id": identity.user_id})
        except CollaboratorError as e:
            # Treated as "no profile yet"; the owner can re-enter their name
            logger.error(f"Profile error for {identity.user_id}: {e.message}")
            row = None

        if row is None:
            self.context.profile = None
            self.context.record = None
            return

        self.context.profile = ProfileRecord.model_validate(row)
        self._load_today_upload()

    def submit_onboarding(self, restaurant_name: str) -> ProfileRecord:
        """Create or rename the owner's restaurant profile."""
        with self._lock, self._action():
            identity = self.context.identity
            if identity is None:
                raise NotAuthenticatedError("Please log in first")

            name = (restaurant_name or "").strip()
            if not name:
                raise ValidationError("Please enter a restaurant name")

            try:
                row = self.records.upsert(
                    PROFILES_TABLE,
                    {"id": identity.user_id, "restaurant_name": name, "updated_at": self._now_naive()},
                    ["id"],
                )
            except CollaboratorError as e:
                raise ProfileError(e.message) from e

            self.context.profile = ProfileRecord.model_validate(row)
            self._load_today_upload()
            return self.context.profile

    # ------------------------------------------------------------------
    # Daily upload state machine
    # ------------------------------------------------------------------

    def today(self) -> str:
        return format_upload_date(self._upload_date())

    def _upload_date(self) -> date:
        return get_upload_date(self.clock(), self.settings.UPLOAD_TIMEZONE)

    def _load_today_upload(self) -> None:
        identity, profile = self.context.identity, self.context.profile
        try:
            row = self.records.find_one(DAILY_UPLOADS_TABLE, {
                "user_id": identity.user_id,
                "restaurant_name": profile.restaurant_name,
                "upload_date": self._upload_date(),
            })
        except CollaboratorError as e:
            logger.error(f"Daily upload error for {profile.restaurant_name}: {e.message}")
            row = None

        self.context.record = DailyUploadRecord.model_validate(row) if row else None

    def _ensure_today(self) -> None:
        """Swap in today's record once the upload date has moved past the loaded one."""
        record = self.context.record
        if record is not None and record.upload_date != self._upload_date():
            logger.info(f"Upload date moved past {record.upload_date}, reloading")
            self._load_today_upload()

    def refresh(self) -> None:
        """Re-read today's record, e.g. after another session changed it."""
        with self._lock:
            if self.context.identity is not None and self.context.profile is not None:
                self._load_today_upload()

    def upload_source(self, source: UploadSource, filename: str, content: bytes) -> DailyUploadRecord:
        """
        Store a source's export for today and mark the source ready.

        Re-uploading a source replaces the stored file and leaves a single
        record for the day.
        """
        with self._lock, self._action():
            identity, profile = self.context.identity, self.context.profile
            if identity is None or profile is None:
                raise NotAuthenticatedError()

            self._validate_file(filename, content)
            self._ensure_today()

            if derive_upload_state(self.context.record) in (UploadState.PROCESSING, UploadState.COMPLETED):
                raise UploadError("Today's uploads are already being processed")

            slot = get_slot(source)
            upload_date = self._upload_date()
            path = storage_path(profile.restaurant_name, format_upload_date(upload_date), source)

            try:
                self.blobs.put_object(self.settings.RAW_UPLOADS_BUCKET, path, content, overwrite=True)
                row = self.records.upsert(
                    DAILY_UPLOADS_TABLE,
                    {
                        "user_id": identity.user_id,
                        "restaurant_name": profile.restaurant_name,
                        "upload_date": upload_date,
                        slot.key: True,
                        "updated_at": self._now_naive(),
                    },
                    DAILY_UPLOAD_CONFLICT_KEYS,
                    insert_only=["user_id"],
                    expected={"processing_status": ProcessingStatus.PENDING.value},
                )
            except CollaboratorError as e:
                raise UploadError(e.message) from e

            record = DailyUploadRecord.model_validate(row)
            if record.processing_status != ProcessingStatus.PENDING:
                # Another session started processing the shared row first
                raise UploadError("Today's uploads are already being processed")
            logger.info(f"{source.value} export accepted for {profile.restaurant_name} on {upload_date}")
            self.context.record = record
            return record

    def _validate_file(self, filename: str, content: bytes) -> None:
        if not filename or not content:
            raise ValidationError("Please choose a non-empty file to upload")

        extension = PurePosixPath(filename).suffix.lower()
        allowed = [ext.lower() for ext in self.settings.ALLOWED_UPLOAD_EXTENSIONS]
        if extension not in allowed:
            raise ValidationError(f"File must be one of: {', '.join(allowed)}")

    def start_processing(self) -> bool:
        """
        Move today's record to ``processing`` and schedule its completion.

        Returns False, without touching any collaborator, when no source is
        ready or processing already started. The write only applies to a
        ``pending`` row, so a session holding an outdated copy also gets
        False and picks up the stored status instead.
        """
        with self._lock:
            self._ensure_today()
            record = self.context.record
            if not can_start_processing(record):
                return False

            with self._action():
                try:
                    started = self.records.update(
                        DAILY_UPLOADS_TABLE,
                        record.id,
                        {"processing_status": ProcessingStatus.PROCESSING.value},
                        expected={"processing_status": ProcessingStatus.PENDING.value},
                    )
                except CollaboratorError as e:
                    raise ProcessingError(e.message) from e

                if not started:
                    logger.info(f"Record {record.id} was already started elsewhere")
                    self._load_today_upload()
                    return False

                self.context.record = record.model_copy(
                    update={"processing_status": ProcessingStatus.PROCESSING}
                )

                generation = self._generation
                self.scheduler.schedule(
                    record.id,
                    lambda: self._complete_processing(record.id, generation),
                )
                logger.info(f"Processing started for record {record.id}")
                return True

    def _complete_processing(self, record_id: UUID, generation: int) -> None:
        with self._lock:
            record = self.context.record
            if (
                generation != self._generation
                or record is None
                or record.id != record_id
                or record.processing_status != ProcessingStatus.PROCESSING
            ):
                logger.debug(f"Ignoring stale completion for record {record_id}")
                return

            try:
                completed = self.records.update(
                    DAILY_UPLOADS_TABLE,
                    record_id,
                    {"processing_status": ProcessingStatus.COMPLETED.value},
                    expected={"processing_status": ProcessingStatus.PROCESSING.value},
                )
            except CollaboratorError as e:
                logger.warning(f"Failed to mark record {record_id} completed: {e.message}")
                return

            if not completed:
                self._load_today_upload()
                return

            self.context.record = record.model_copy(
                update={"processing_status": ProcessingStatus.COMPLETED}
            )
            logger.info(f"Processing completed for record {record_id}")

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def view(self) -> FlowView:
        # Never wait behind a running action just to render
        if self._lock.acquire(blocking=False):
            try:
                self._ensure_today()
            finally:
                self._lock.release()

        context = self.context
        record = context.record
        flags = record.ready_flags() if record else {}

        view = FlowView(
            stage=resolve_stage(context),
            initializing=context.initializing,
            busy=self.busy,
            error=self.error,
            email=context.identity.email if context.identity else None,
            restaurant_name=context.profile.restaurant_name if context.profile else None,
        )
        if context.profile is None:
            return view

        view.upload_state = derive_upload_state(record)
        view.upload_date = record.upload_date.isoformat() if record else self.today()
        view.processing_status = record.processing_status if record else None
        view.slots = [
            SlotView(
                source=slot.source,
                label=slot.label,
                key=slot.key,
                color=slot.color,
                ready=flags.get(slot.key, False),
            )
            for slot in UPLOAD_SLOTS
        ]
        view.ready_count = record.ready_count if record else 0
        view.can_start_processing = can_start_processing(record)
        view.timeline = [
            TimelineStep(label=label, state=state) for label, state in processing_timeline(record)
        ]
        return view

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now_naive(self) -> datetime:
        # Timestamp columns are stored as naive UTC
        return self.clock().astimezone(timezone.utc).replace(tzinfo=None)

    def _action(self) -> "_Action":
        return _Action(self)


class _Action:
    """Marks the session busy and records the error message of a failed action."""

    def __init__(self, flow: FlowSession):
        self.flow = flow

    def __enter__(self) -> None:
        self.flow.error = None
        self.flow.busy = True

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.flow.busy = False
        if isinstance(exc, FlowError):
            self.flow.error = exc.message
        return False
