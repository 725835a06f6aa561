"""
api/schemas.py — Pydantic request & response models
=====================================================
Centralises all data-transfer objects so that FastAPI can auto-generate
OpenAPI docs and perform input validation for free.
"""

from typing import Optional

from pydantic import BaseModel, Field

from config import MAX_SCAN_SECONDS, MIN_SCAN_SECONDS, SCAN_DURATION_SECONDS


# ── Request Models ───────────────────────────────────────────────────────────


class ScanRequest(BaseModel):
    """Optionally override the scan duration at scan time."""
    duration_seconds: int = Field(
        SCAN_DURATION_SECONDS,
        ge=MIN_SCAN_SECONDS,
        le=MAX_SCAN_SECONDS,
        description="Length of the sampling session in seconds.",
    )


# ── Response Models ──────────────────────────────────────────────────────────


class ReadinessData(BaseModel):
    face_detected: bool
    face_centered: bool
    stable: bool
    lighting: str = Field(..., pattern="^(too_dark|too_bright|optimal)$")
    orientation: bool
    is_valid: bool
    errors: list[str]


class StatusResponse(BaseModel):
    state: str                           # "idle" | "sampling" | "finalizing"
    monitoring: bool
    progress_percent: float
    remaining_seconds: int
    signal_quality: str                  # "Poor" | "Fair" | "Good"
    sample_count: int
    readiness: Optional[ReadinessData] = None
    waveform: list[float]
    outcome: Optional[str] = None        # "completed" | "insufficient_signal" | "cancelled"
    rejections: dict[str, int]


class VitalsData(BaseModel):
    heart_rate: int
    respiration_rate: int
    spo2: int = Field(..., ge=90, le=100)
    signal_quality: str
    timestamp: float
    sample_count: int


class StressData(BaseModel):
    score: float
    level: str
    label: str


class EnergyData(BaseModel):
    score: float
    level: str
    label: str


class ResilienceData(BaseModel):
    score: float
    label: str


class WellnessData(BaseModel):
    stress: StressData
    energy: EnergyData
    resilience: ResilienceData
    advisories: list[str]


class VitalsResponse(VitalsData):
    """Full payload returned for the most recent completed scan."""
    wellness: WellnessData
    disclaimer: str


class HistoryResponse(BaseModel):
    results: list[VitalsData]


class MessageResponse(BaseModel):
    status: str
    message: str
