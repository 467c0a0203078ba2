"""
Scan session routes
Handles photo upload, progress polling, confirmation and dismissal
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from api.models import AcceptRequest, ScanInfo
from api.services.sessions import SessionRegistry, get_engine, get_registry
from src.errors import CaptureError, InvalidTransitionError
from src.ocr import BaseOCRService
from src.scan import ScanSession, ScanState, capture_from_bytes

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_session_or_404(registry: SessionRegistry, session_id: str) -> ScanSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Scan session not found: {session_id}")
    return session


@router.post("", response_model=ScanInfo, status_code=201)
async def create_scan(
    file: UploadFile = File(...),
    reference_value: Optional[float] = Form(default=None),
    wait: bool = Form(default=False),
    registry: SessionRegistry = Depends(get_registry),
    engine: BaseOCRService = Depends(get_engine),
):
    """
    Upload an odometer photo and start recognition

    Args:
        file: The photo
        reference_value: Previously recorded odometer value, used to pick
                         the closest reading at or above it
        wait: If True, respond only after recognition finished; otherwise
              respond immediately and poll GET /api/scans/{id} for progress

    Returns:
        ScanInfo for the new session
    """
    data = await file.read()
    if reference_value is not None and float(reference_value).is_integer():
        reference_value = int(reference_value)

    session = ScanSession(engine, reference_value=reference_value)
    try:
        session.capture(capture_from_bytes(data, source=file.filename or "upload"))
    except CaptureError as e:
        raise HTTPException(status_code=400, detail=str(e))

    registry.add(session)
    logger.info(f"Scan {session.session_id}: created from {file.filename} (reference={reference_value})")

    if wait:
        await session.run()
    else:
        registry.start(session)

    return ScanInfo.from_session(session)


@router.get("/{session_id}", response_model=ScanInfo)
async def get_scan(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Current state, progress and reading of a scan session"""
    return ScanInfo.from_session(_get_session_or_404(registry, session_id))


@router.post("/{session_id}/accept", response_model=ScanInfo)
async def accept_scan(
    session_id: str,
    request: AcceptRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    """
    Confirm the best reading or one of the alternatives

    Returns 409 if the session is not awaiting confirmation and 400 if the
    value is not one of the offered readings.
    """
    session = _get_session_or_404(registry, session_id)
    try:
        session.accept(request.value)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ScanInfo.from_session(session)


@router.post("/{session_id}/dismiss", response_model=ScanInfo)
async def dismiss_scan(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """
    Dismiss a scan session

    A scan that is still recognizing cannot be aborted (409). Dismissing a
    session that is already confirmed or cancelled changes nothing.
    """
    session = _get_session_or_404(registry, session_id)
    if not session.dismiss() and session.state is ScanState.RECOGNIZING:
        raise HTTPException(status_code=409, detail="Scan is still recognizing and cannot be dismissed")

    return ScanInfo.from_session(session)
