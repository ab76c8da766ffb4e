"""
In-memory registry of flow sessions, one per access token.

Each session owns its context, scheduler and auth client, so nothing mutable
is shared between owners.
"""
import logging
import threading
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from synlitics.core.config import Settings, get_settings
from synlitics.core.security import decode_token
from synlitics.services.auth_provider import DatabaseAuthProvider
from synlitics.services.collaborators import BlobStore, CompletionScheduler
from synlitics.services.record_store import SqlRecordStore
from synlitics.services.scheduler import TimerCompletionScheduler
from synlitics.services.upload_flow import FlowSession

logger = logging.getLogger(__name__)


class FlowRegistry:
    """Creates, restores and forgets flow sessions."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        blobs: BlobStore,
        settings: Optional[Settings] = None,
        scheduler_factory: Optional[Callable[[], CompletionScheduler]] = None,
    ):
        self.session_factory = session_factory
        self.blobs = blobs
        self.settings = settings or get_settings()
        self.records = SqlRecordStore(session_factory)
        self.scheduler_factory = scheduler_factory or (
            lambda: TimerCompletionScheduler(self.settings.PROCESSING_DELAY_SECONDS)
        )
        self._sessions: Dict[str, FlowSession] = {}
        self._lock = threading.Lock()

    def create_session(self, access_token: Optional[str] = None) -> FlowSession:
        """Build a fresh session and resolve it against the auth provider."""
        flow = FlowSession(
            auth=DatabaseAuthProvider(self.session_factory, access_token),
            blobs=self.blobs,
            records=self.records,
            scheduler=self.scheduler_factory(),
            settings=self.settings,
        )
        flow.initialize()
        return flow

    def sign_in(self, email: str, password: str) -> FlowSession:
        flow = self.create_session()
        identity = flow.sign_in(email, password)
        self._register(identity.access_token, flow)
        return flow

    def sign_up(self, email: str, password: str) -> FlowSession:
        flow = self.create_session()
        identity = flow.sign_up(email, password)
        self._register(identity.access_token, flow)
        return flow

    def get(self, access_token: str) -> Optional[FlowSession]:
        """
        Session for a token, restoring it if this process has not seen it.

        Cached sessions are checked against the auth provider on every call
        and dropped once their token stops resolving, e.g. when it expired,
        was revoked elsewhere or its user is gone. Returns None when the
        token does not resolve to a signed-in owner.
        """
        with self._lock:
            flow = self._sessions.get(access_token)
        if flow is not None:
            if flow.revalidate():
                return flow
            with self._lock:
                if self._sessions.get(access_token) is flow:
                    del self._sessions[access_token]
            return None

        flow = self.create_session(access_token)
        if flow.context.identity is None:
            return None

        with self._lock:
            # Another request may have restored the same token meanwhile
            return self._sessions.setdefault(access_token, flow)

    def logout(self, access_token: str) -> bool:
        with self._lock:
            flow = self._sessions.pop(access_token, None)
        if flow is None:
            flow = self.create_session(access_token)
            if flow.context.identity is None:
                return False

        flow.logout()
        logger.info("Session signed out")
        return True

    def close(self) -> None:
        """Cancel every pending completion, e.g. on shutdown."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for flow in sessions:
            flow.scheduler.cancel_all()

    def _register(self, access_token: str, flow: FlowSession) -> None:
        """
        Cache ``flow`` under its token.

        Replaces earlier sessions of the same owner and forgets tokens that
        no longer decode. Dropped sessions keep their pending completions;
        their tokens are restored from the store if they are used again.
        """
        user_id = flow.context.identity.user_id
        with self._lock:
            stale = [
                token for token, other in self._sessions.items()
                if token != access_token and (
                    other.context.identity is None
                    or other.context.identity.user_id == user_id
                    or decode_token(token) is None
                )
            ]
            for token in stale:
                del self._sessions[token]
            self._sessions[access_token] = flow
        if stale:
            logger.debug(f"Dropped {len(stale)} cached session(s)")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
