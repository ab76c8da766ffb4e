from sqlalchemy import Column, String, DateTime, Uuid, ForeignKey, func
from synlitics.db.base import Base

class Profile(Base):
    """Restaurant profile, one per user. The primary key is the user id."""
    __tablename__ = "profiles"

    id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    restaurant_name = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
