"""
api/routes.py — FastAPI route definitions
==========================================
All HTTP endpoints are defined here and wired into the app via
`app.include_router(router)` in `api/app.py`.

Endpoint summary
----------------
    GET  /health              — Liveness check
    POST /preview/start       — Start pre-scan readiness & quality monitoring
    POST /scan/start          — Begin a fixed-duration scan (background tick)
    POST /scan/stop           — Cancel preview or scan; no result is produced
    GET  /scan/status         — State, progress, quality, readiness, waveform
    GET  /scan/result         — Vitals + wellness for the most recent completed scan
    GET  /history             — Results recorded since the server started
    GET  /docs                — Auto-generated Swagger UI (FastAPI built-in)
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from api.schemas import (
    HistoryResponse,
    MessageResponse,
    ScanRequest,
    StatusResponse,
    VitalsResponse,
)
from api.session import DeviceUnavailableError, SessionManager
from utils.logger import get_logger

logger = get_logger("api.routes")

router = APIRouter()


def get_manager(request: Request) -> SessionManager:
    """The SessionManager created by `create_app()`."""
    return request.app.state.manager


# ── Health ────────────────────────────────────────────────────────────────────

@router.get("/health")
async def health():
    """Simple liveness check."""
    return {"status": "ok", "service": "rPPG Contactless Vitals"}


# ── Preview / Scan Control ────────────────────────────────────────────────────

@router.post("/preview/start", response_model=MessageResponse)
def start_preview(manager: SessionManager = Depends(get_manager)):
    """
    Start readiness validation and signal-quality grading without
    recording a session.  Poll GET /scan/status for feedback.
    """
    try:
        manager.start_preview()
    except DeviceUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return MessageResponse(status="monitoring", message="Preview started. Poll GET /scan/status.")


@router.post("/scan/start", response_model=MessageResponse)
def start_scan(request: ScanRequest = ScanRequest(), manager: SessionManager = Depends(get_manager)):
    """
    Begin a scan.  Sampling runs on a background tick, so this endpoint
    returns immediately.  Returns 409 if a scan is already running and 503
    if the camera cannot be opened.
    """
    try:
        manager.start_scan(duration_seconds=request.duration_seconds)
    except DeviceUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return MessageResponse(
        status="sampling",
        message=(
            f"Scan started ({request.duration_seconds}s). "
            "Keep your face in the oval and poll GET /scan/status."
        ),
    )


@router.post("/scan/stop", response_model=MessageResponse)
def stop_scan(manager: SessionManager = Depends(get_manager)):
    """Cancel monitoring or an active scan.  Nothing is recorded."""
    manager.stop()
    return MessageResponse(status="idle", message="Stopped. No result was recorded.")


@router.get("/scan/status", response_model=StatusResponse)
def scan_status(manager: SessionManager = Depends(get_manager)):
    return StatusResponse(**manager.status())


@router.get("/scan/result", response_model=VitalsResponse)
def scan_result(manager: SessionManager = Depends(get_manager)):
    """
    Vitals of the most recent completed scan.

    Returns 409 while a scan is running, and 404 when no scan has produced
    a result (including a scan that ended with too few usable frames).
    """
    if manager.scanning:
        raise HTTPException(status_code=409, detail="Scan still in progress.")

    result = manager.latest_result()
    if result is None:
        outcome = manager.status()["outcome"]
        if outcome == "insufficient_signal":
            detail = "Last scan collected too few usable frames. Improve lighting, keep still and retry."
        else:
            detail = "No completed scan yet."
        raise HTTPException(status_code=404, detail=detail)
    return result


@router.get("/history", response_model=HistoryResponse)
def history(manager: SessionManager = Depends(get_manager)):
    return HistoryResponse(results=manager.history())
