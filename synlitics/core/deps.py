"""
FastAPI dependencies shared by the routers.
"""
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from synlitics.core.config import get_settings
from synlitics.db.session import SessionLocal
from synlitics.services.blob_store import LocalBlobStore
from synlitics.services.flow_registry import FlowRegistry
from synlitics.services.upload_flow import FlowSession

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_registry() -> FlowRegistry:
    """Process-wide registry of flow sessions."""
    settings = get_settings()
    return FlowRegistry(
        session_factory=SessionLocal,
        blobs=LocalBlobStore(settings.STORAGE_ROOT),
        settings=settings,
    )


def get_access_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_flow(
    access_token: str = Depends(get_access_token),
    registry: FlowRegistry = Depends(get_registry),
) -> FlowSession:
    """Flow session of the signed-in owner."""
    flow = registry.get(access_token)
    if flow is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return flow
