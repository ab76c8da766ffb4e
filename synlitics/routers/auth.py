"""
Authentication router with signup, login, logout and session endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from synlitics.core.deps import get_access_token, get_flow, get_registry
from synlitics.core.errors import FlowError
from synlitics.routers.errors import to_http_exception
from synlitics.schemas.flow import Credentials, IdentityResponse, SessionResponse
from synlitics.services.flow_registry import FlowRegistry
from synlitics.services.upload_flow import FlowSession

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def signup(credentials: Credentials, registry: FlowRegistry = Depends(get_registry)) -> SessionResponse:
    """
    Create an account and start a session.
    New owners land on onboarding.
    """
    try:
        flow = registry.sign_up(credentials.email, credentials.password)
    except FlowError as e:
        raise to_http_exception(e)

    return SessionResponse(access_token=flow.context.identity.access_token, view=flow.view())


@router.post("/login", response_model=SessionResponse)
def login(credentials: Credentials, registry: FlowRegistry = Depends(get_registry)) -> SessionResponse:
    """
    Authenticate and return the session token with the owner's current screen.
    """
    try:
        flow = registry.sign_in(credentials.email, credentials.password)
    except FlowError as e:
        raise to_http_exception(e)

    return SessionResponse(access_token=flow.context.identity.access_token, view=flow.view())


@router.post("/logout", status_code=status.HTTP_200_OK)
def logout(
    access_token: str = Depends(get_access_token),
    registry: FlowRegistry = Depends(get_registry),
) -> dict:
    """
    Sign out, revoke the token and cancel any pending processing completion.
    """
    if not registry.logout(access_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
        )
    return {"message": "Successfully logged out"}


@router.get("/session", response_model=IdentityResponse)
def get_session(flow: FlowSession = Depends(get_flow)) -> IdentityResponse:
    """Identity of the current session."""
    identity = flow.context.identity
    return IdentityResponse(user_id=identity.user_id, email=identity.email)
