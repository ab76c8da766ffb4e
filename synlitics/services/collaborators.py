"""
Interfaces of the external collaborators the upload flow depends on.

The flow never talks to a database, file system or clock directly; it goes
through these so each can be swapped (a hosted backend, an in-memory fake
in tests, a real job-completion callback instead of a timer).
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID


Row = Dict[str, Any]


class CollaboratorError(Exception):
    """A collaborator call failed. ``message`` is safe to show to the owner."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class Identity:
    """An authenticated user, as issued by the auth provider."""
    user_id: UUID
    email: str
    access_token: str


class AuthProvider(ABC):
    """Credential checks and session issuance."""

    @abstractmethod
    def get_current_session(self) -> Optional[Identity]:
        """Return the identity of the current session, if any."""

    @abstractmethod
    def sign_in(self, email: str, password: str) -> Identity:
        """Authenticate; raises CollaboratorError on bad credentials."""

    @abstractmethod
    def sign_up(self, email: str, password: str) -> Identity:
        """Create an account and sign in; raises CollaboratorError on conflict."""

    @abstractmethod
    def sign_out(self) -> None:
        """End the current session."""


class BlobStore(ABC):
    """Binary object storage for uploaded files."""

    @abstractmethod
    def put_object(self, bucket: str, path: str, content: bytes, overwrite: bool = False) -> None:
        """Store ``content`` at ``bucket/path``."""


class RecordStore(ABC):
    """Row-oriented database with upsert-on-conflict semantics."""

    @abstractmethod
    def find_one(self, table: str, filters: Row) -> Optional[Row]:
        """Return the single row matching all ``filters``, or None."""

    @abstractmethod
    def upsert(
        self,
        table: str,
        row: Row,
        conflict_keys: List[str],
        insert_only: Optional[List[str]] = None,
        expected: Optional[Row] = None,
    ) -> Row:
        """
        Insert ``row`` or update the supplied columns of the conflicting row.

        Columns named in ``insert_only`` are only written on insert. With
        ``expected``, a conflicting row that no longer holds those values is
        left unchanged. The stored row is returned either way.
        """

    @abstractmethod
    def update(self, table: str, row_id: UUID, patch: Row, expected: Optional[Row] = None) -> bool:
        """
        Apply ``patch`` to the row with primary key ``row_id``.

        With ``expected``, the row only changes while it still holds those
        values; False is returned otherwise.
        """


class CompletionScheduler(ABC):
    """
    Runs a one-shot completion callback for a daily upload record.

    Stands in for a real job-completion signal; implementations must let a
    pending callback be cancelled by record id.
    """

    @abstractmethod
    def schedule(self, record_id: UUID, callback: Callable[[], None]) -> None:
        """Arrange for ``callback`` to run once, replacing any pending one for ``record_id``."""

    @abstractmethod
    def cancel(self, record_id: UUID) -> bool:
        """Cancel the pending callback for ``record_id``. Returns True if one was pending."""

    @abstractmethod
    def cancel_all(self) -> None:
        """Cancel every pending callback."""
