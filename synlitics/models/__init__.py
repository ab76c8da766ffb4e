"""
SQLAlchemy models for Synlitics.
"""
# Core entities
from synlitics.models.user import User
from synlitics.models.profile import Profile
from synlitics.models.daily_upload import DailyUpload

# Token Blacklist
from synlitics.models.token_blacklist import TokenBlacklist


__all__ = [
    # Core
    "User",
    "Profile",
    "DailyUpload",
    # Token Blacklist
    "TokenBlacklist",
]
