"""
Auth provider backed by the users table, bcrypt hashes and JWT access tokens.
"""
import logging
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from synlitics.core.config import get_settings
from synlitics.core.security import (
    create_access_token,
    decode_token,
    hash_password,
    hash_token,
    token_expiry,
    verify_password,
)
from synlitics.models.token_blacklist import TokenBlacklist
from synlitics.models.user import User
from synlitics.services.collaborators import AuthProvider, CollaboratorError, Identity

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class DatabaseAuthProvider(AuthProvider):
    """
    Issues and checks sessions for one client.

    Like a browser-side auth client, each instance remembers the access token
    of the session it is currently holding.
    """

    def __init__(self, session_factory: Callable[[], Session], access_token: Optional[str] = None):
        self.session_factory = session_factory
        self.access_token = access_token

    def get_current_session(self) -> Optional[Identity]:
        if not self.access_token:
            return None

        payload = decode_token(self.access_token)
        if payload is None or payload.get("type") != "access" or not payload.get("sub"):
            return None

        try:
            with self.session_factory() as db:
                if self._is_revoked(db, self.access_token):
                    return None
                user = db.query(User).filter(User.id == UUID(payload["sub"])).first()
                if not user:
                    return None
                return Identity(user_id=user.id, email=user.email, access_token=self.access_token)
        except (SQLAlchemyError, ValueError) as e:
            raise CollaboratorError(f"Could not restore session: {e}") from e

    def sign_in(self, email: str, password: str) -> Identity:
        try:
            with self.session_factory() as db:
                user = db.query(User).filter(User.email == _normalize_email(email)).first()
                if not user or not verify_password(password, user.hashed_password):
                    raise CollaboratorError("Invalid email or password")
                return self._start_session(user)
        except SQLAlchemyError as e:
            logger.warning(f"Sign in failed for {email}: {e}")
            raise CollaboratorError("Authentication service unavailable") from e

    def sign_up(self, email: str, password: str) -> Identity:
        min_length = get_settings().MIN_PASSWORD_LENGTH
        if len(password) < min_length:
            raise CollaboratorError(f"Password should be at least {min_length} characters")

        try:
            with self.session_factory() as db:
                normalized = _normalize_email(email)
                if db.query(User).filter(User.email == normalized).first():
                    raise CollaboratorError("Email already registered")

                user = User(email=normalized, hashed_password=hash_password(password))
                db.add(user)
                db.commit()
                db.refresh(user)
                return self._start_session(user)
        except IntegrityError as e:
            # Lost a race with a concurrent sign-up for the same email
            raise CollaboratorError("Email already registered") from e
        except SQLAlchemyError as e:
            logger.warning(f"Sign up failed for {email}: {e}")
            raise CollaboratorError("Authentication service unavailable") from e

    def sign_out(self) -> None:
        token = self.access_token
        self.access_token = None
        if not token:
            return

        payload = decode_token(token)
        if payload is None:
            return

        try:
            with self.session_factory() as db:
                if not self._is_revoked(db, token):
                    db.add(TokenBlacklist(token_hash=hash_token(token), expires_at=token_expiry(payload)))
                    db.commit()
        except SQLAlchemyError as e:
            raise CollaboratorError(f"Sign out failed: {e}") from e

    def _start_session(self, user: User) -> Identity:
        self.access_token = create_access_token(subject=str(user.id))
        return Identity(user_id=user.id, email=user.email, access_token=self.access_token)

    @staticmethod
    def _is_revoked(db: Session, token: str) -> bool:
        return db.query(TokenBlacklist).filter(
            TokenBlacklist.token_hash == hash_token(token)
        ).first() is not None
