"""
Token blacklist model for handling token revocation.

Access tokens land here when their owner signs out, so a restored session
cannot reuse them.
"""
from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.sql import func

from synlitics.db.base import Base


class TokenBlacklist(Base):
    """Store revoked JWT tokens."""
    __tablename__ = "token_blacklist"

    # JWT token string (we hash it for security/space efficiency)
    token_hash = Column(String(64), primary_key=True)

    # When the token was blacklisted
    blacklisted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # When the token expires (for cleanup - we can delete expired blacklisted tokens)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_token_blacklist_expires', 'expires_at'),
    )
