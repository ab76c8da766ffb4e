"""
Upload flow router: onboarding, per-source uploads and processing.
"""
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from synlitics.core.deps import get_flow
from synlitics.core.errors import FlowError
from synlitics.core.upload_date import format_upload_date
from synlitics.routers.errors import to_http_exception
from synlitics.schemas.flow import FlowView, OnboardingRequest, UploadResponse
from synlitics.services.upload_flow import FlowSession, storage_path
from synlitics.services.upload_sources import parse_source

router = APIRouter(prefix="/flow", tags=["flow"])


@router.get("", response_model=FlowView)
def get_view(flow: FlowSession = Depends(get_flow)) -> FlowView:
    """Current screen for the signed-in owner."""
    return flow.view()


@router.post("/onboarding", response_model=FlowView)
def submit_onboarding(request: OnboardingRequest, flow: FlowSession = Depends(get_flow)) -> FlowView:
    """Save the restaurant name and continue to today's uploads."""
    try:
        flow.submit_onboarding(request.restaurant_name)
    except FlowError as e:
        raise to_http_exception(e)
    return flow.view()


@router.post("/uploads/{source}", response_model=UploadResponse)
async def upload_source(
    source: str,
    file: UploadFile = File(...),
    flow: FlowSession = Depends(get_flow),
) -> UploadResponse:
    """
    Upload today's export for one source.

    Accepts .csv and .xlsx files by name; contents are stored as-is and not
    parsed. Re-uploading a source replaces its file.
    """
    matched = parse_source(source)
    if matched is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown upload source: {source}",
        )

    content = await file.read()

    try:
        record = flow.upload_source(matched, file.filename or "", content)
    except FlowError as e:
        raise to_http_exception(e)

    return UploadResponse(
        source=matched,
        path=storage_path(record.restaurant_name, format_upload_date(record.upload_date), matched),
        record=record,
        view=flow.view(),
    )


@router.post("/processing", response_model=FlowView)
def start_processing(flow: FlowSession = Depends(get_flow)) -> FlowView:
    """Start processing today's uploads. Needs at least one uploaded source."""
    try:
        started = flow.start_processing()
    except FlowError as e:
        raise to_http_exception(e)

    if not started:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Upload at least one source before processing, or processing has already started",
        )
    return flow.view()
