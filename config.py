"""
config.py — Centralised configuration & hyper-parameters
=========================================================
Every tunable constant in the project lives here so that the rest of the
codebase can import from a single source of truth.
"""

# ─── Camera ──────────────────────────────────────────────────────────────────
CAMERA_INDEX: int = 0          # Device index passed to cv2.VideoCapture
CAMERA_WIDTH: int = 1280
CAMERA_HEIGHT: int = 720
CAMERA_FPS: int = 30           # Requested FPS; actual FPS may differ

# ─── Scan Timing ─────────────────────────────────────────────────────────────
SAMPLING_RATE_HZ: float = 30.0     # Target tick rate of the sampling loop
SCAN_DURATION_SECONDS: int = 30    # Default length of one measurement session
MIN_SCAN_SECONDS: int = 10
MAX_SCAN_SECONDS: int = 120

# ─── Face Mesh landmark indices ──────────────────────────────────────────────
# Indices into the MediaPipe Face Mesh topology (468 points, 478 with irises).
NOSE_TIP: int = 1               # Reference point for motion and centering
LEFT_CHEEK: int = 234
RIGHT_CHEEK: int = 454
LEFT_EYE_OUTER: int = 33
RIGHT_EYE_OUTER: int = 263

# Upper-forehead corners and inner brow ends bracketing the forehead ROI
FOREHEAD_LANDMARKS = [109, 338, 107, 336]

# Each ROI edge is pulled inward by this fraction to avoid hair and brows
ROI_SHRINK: float = 0.10

# ─── Sample acceptance ───────────────────────────────────────────────────────
MOTION_THRESHOLD: float = 0.005    # Nose-tip displacement (normalised) that rejects a sample
GREEN_MIN: float = 20.0            # Below → under-exposed
GREEN_MAX: float = 235.0           # Above → over-exposed

# ─── Signal processing ───────────────────────────────────────────────────────
DETREND_WINDOW: int = 30           # ≈ 1 s at the target sampling rate
MIN_SAMPLES_FOR_VITALS: int = 100  # Fewer samples at session end → no result

# Search bands (Hz) for the spectral peak.
# 0.8 Hz →  48 BPM     3.0 Hz → 180 BPM
# 0.1 Hz →   6 RPM     0.5 Hz →  30 RPM
HR_BAND_HZ = (0.8, 3.0)
RR_BAND_HZ = (0.1, 0.5)
FREQ_RESOLUTION_HZ: float = 0.02

# ─── Live waveform ───────────────────────────────────────────────────────────
WAVEFORM_SAMPLES: int = 150        # ≈ 5 s of history shown on screen
WAVEFORM_MIN_RANGE: float = 0.1    # Detrended range below this → flat line

# ─── Signal quality ──────────────────────────────────────────────────────────
QUALITY_WINDOW: int = 60           # Samples graded on every update
QUALITY_UPDATE_EVERY: int = 30     # New samples between two updates
QUALITY_MAX_SHORTFALL: float = 0.20   # Fraction of expected samples allowed missing
QUALITY_STD_FLOOR: float = 0.55    # Green std below → frozen / flat signal
QUALITY_STD_CEILING: float = 3.2   # Green std above → motion / flicker
PRESCAN_BUFFER_SAMPLES: int = 90   # Rolling buffer kept while monitoring before a scan

# ─── SpO2 (heuristic ratio-of-ratios) ────────────────────────────────────────
# spo2 = intercept − slope · R.  Empirical constants, NOT physically derived.
SPO2_INTERCEPT: float = 110.0
SPO2_SLOPE: float = 25.0
SPO2_MIN: int = 90
SPO2_MAX: int = 100
SPO2_FALLBACK: int = 97

# ─── Readiness ───────────────────────────────────────────────────────────────
CENTER_X_RANGE = (0.35, 0.65)
CENTER_Y_RANGE = (0.30, 0.70)
FACE_WIDTH_RANGE = (0.15, 0.55)    # Cheek-to-cheek width as a fraction of frame width
TILT_THRESHOLD_DEG: float = 15.0
YAW_RATIO_MAX: float = 2.5
STABILITY_THRESHOLD: float = 0.015
LIGHTING_TOO_DARK: float = 30.0
LIGHTING_TOO_BRIGHT: float = 240.0
LIGHTING_SAMPLE_SIZE: int = 50     # Central crop is resampled to N×N before averaging

# ─── History ─────────────────────────────────────────────────────────────────
HISTORY_LIMIT: int = 50            # Results kept in memory by the API layer

# ─── API ─────────────────────────────────────────────────────────────────────
API_TITLE = "rPPG Contactless Vitals API"
API_VERSION = "0.2.0"
API_HOST = "0.0.0.0"
API_PORT = 8000
API_CORS_ORIGINS = ("*",)          # Restrict to the frontend origin in production
