#!/usr/bin/env python3
"""
demo_cli.py — Standalone command-line demo
============================================
Runs the readiness check and a full scan WITHOUT the FastAPI server.
Useful for quick testing, demos, and debugging.

Usage:
    python demo_cli.py --duration 30 --show-feed

The preview phase waits until the readiness gate reports a valid position
(or --skip-readiness is given), then the scan runs for --duration seconds.

⚠️  DISCLAIMER: This is a WELLNESS ESTIMATION tool — NOT a medical device.
"""

import argparse
import sys
import time

import cv2

from camera.capture import CameraCapture
from config import FOREHEAD_LANDMARKS, MAX_SCAN_SECONDS, MIN_SCAN_SECONDS, SCAN_DURATION_SECONDS
from face.detector import FaceMeshProvider
from model.wellness import analyze_wellness
from rppg.pipeline import ScanOutcome, ScanSession, SessionState
from rppg.sampler import forehead_box
from utils.logger import get_logger

logger = get_logger("demo_cli")


def pretty_print(label: str, value, unit: str = "") -> None:
    """Colourised terminal output."""
    print(f"  \033[1;36m{label:<28}\033[0m \033[1;33m{value}\033[0m {unit}")


def _draw_overlay(frame, session: ScanSession, provider: FaceMeshProvider) -> bool:
    """Draw ROI, readiness messages and progress.  Returns False if the user pressed 'q'."""
    display = frame.copy()
    h, w = display.shape[:2]
    readiness = session.readiness

    landmarks = provider.detect(frame)
    if landmarks is not None:
        x, y, bw, bh = forehead_box(landmarks, w, h, FOREHEAD_LANDMARKS)
        colour = (0, 200, 0) if readiness.is_valid else (0, 165, 255)
        cv2.rectangle(display, (x, y), (x + bw, y + bh), colour, 2)

    for i, message in enumerate(readiness.errors):
        cv2.putText(display, message, (20, 70 + 22 * i), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 255), 2)

    if session.state is SessionState.SAMPLING:
        pct = int(session.progress)
        bar_w = 200
        filled = int(bar_w * pct / 100)
        cv2.rectangle(display, (20, 20), (20 + bar_w, 40), (255, 255, 255), 1)
        cv2.rectangle(display, (20, 20), (20 + filled, 40), (0, 200, 0), -1)
        cv2.putText(
            display, f"{pct}%  {session.quality.value}", (230, 35),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1,
        )

    cv2.imshow("rPPG Demo", display)
    return not (cv2.waitKey(1) & 0xFF == ord("q"))


def main():
    parser = argparse.ArgumentParser(description="rPPG Contactless Vitals CLI Demo")
    parser.add_argument("--duration", type=int, default=SCAN_DURATION_SECONDS, help="Scan duration (seconds)")
    parser.add_argument("--readiness-timeout", type=float, default=30.0,
                        help="Seconds to wait for a valid position before giving up")
    parser.add_argument("--skip-readiness", action="store_true", help="Start scanning immediately")
    parser.add_argument("--show-feed", action="store_true", help="Show live camera feed with overlay")
    args = parser.parse_args()

    if not MIN_SCAN_SECONDS <= args.duration <= MAX_SCAN_SECONDS:
        parser.error(f"--duration must be between {MIN_SCAN_SECONDS} and {MAX_SCAN_SECONDS} seconds.")

    print("\n" + "=" * 60)
    print("  rPPG CONTACTLESS VITALS — CLI DEMO")
    print("=" * 60)
    print("  ⚠️  This is a WELLNESS ESTIMATION tool — NOT medical grade.")
    print("=" * 60 + "\n")

    # ── Initialise components ────────────────────────────────────────────
    logger.info("Initialising camera…")
    camera = CameraCapture()
    if not camera.open() or camera.wait_for_frame(timeout=3.0) is None:
        print("ERROR: Could not open camera. Exiting.")
        camera.release()
        sys.exit(1)

    provider = FaceMeshProvider(camera)
    # Separate detector instance for the overlay so it never races the tick
    overlay_provider = FaceMeshProvider(camera) if args.show_feed else None
    session = ScanSession(frame_source=camera, landmark_provider=provider)

    cancelled = False
    try:
        # ── Readiness phase ──────────────────────────────────────────────
        if not args.skip_readiness:
            print("  Position your face in the centre of the frame and hold still…\n")
            session.start_monitoring()
            deadline = time.time() + args.readiness_timeout
            last_errors: tuple[str, ...] = ()
            while not session.readiness.is_valid:
                if time.time() > deadline:
                    print("  Readiness not reached in time: " + ", ".join(session.readiness.errors))
                    sys.exit(1)
                errors = session.readiness.errors
                if errors != last_errors:
                    print("    " + (", ".join(errors) or "…"))
                    last_errors = errors
                frame = camera.get_latest_frame()
                if overlay_provider is not None and frame is not None:
                    if not _draw_overlay(frame, session, overlay_provider):
                        cancelled = True
                        return
                time.sleep(0.05)
            print(f"  ✓ Ready (signal quality: {session.quality.value})\n")
            session.stop()

        # ── Scan phase ───────────────────────────────────────────────────
        print(f"  Scanning for {args.duration} s — keep still…\n")
        session.start(args.duration)
        while session.state is not SessionState.IDLE:
            frame = camera.get_latest_frame()
            if overlay_provider is not None and frame is not None:
                if not _draw_overlay(frame, session, overlay_provider):
                    cancelled = True
                    return
            time.sleep(0.05)
    finally:
        if cancelled:
            print("\n  Scan cancelled by user.")
        session.close()
        provider.close()
        if overlay_provider is not None:
            overlay_provider.close()
            cv2.destroyAllWindows()
        camera.release()

    rejections = session.rejection_counts
    print(f"\n  Accepted {session.sample_count} samples; rejected: {rejections or 'none'}\n")

    result = session.last_result
    if session.outcome is ScanOutcome.INSUFFICIENT_SIGNAL or result is None:
        print("  Not enough usable frames for a reading. Improve lighting, keep still and retry.")
        sys.exit(1)

    wellness = analyze_wellness(result.heart_rate, result.spo2, result.respiration_rate)

    # ── Pretty-print results ─────────────────────────────────────────────
    print("=" * 60)
    print("  RESULTS")
    print("=" * 60)
    pretty_print("Heart Rate", result.heart_rate, "BPM")
    pretty_print("Respiration Rate", result.respiration_rate, "breaths/min")
    pretty_print("SpO2 (experimental)", result.spo2, "%")
    pretty_print("Signal quality", result.signal_quality.value)

    print("\n  ── Wellness (ESTIMATED) ──")
    pretty_print("Stress", f"{wellness['stress']['label']} ({wellness['stress']['score']:.0f})")
    pretty_print("Energy", f"{wellness['energy']['label']} ({wellness['energy']['score']:.0f})")
    pretty_print("Resilience", f"{wellness['resilience']['label']} ({wellness['resilience']['score']:.0f})")
    for note in wellness["advisories"]:
        print(f"    ⚠️  {note}")

    print("\n" + "=" * 60)
    print("  ⚠️  DISCLAIMER: All values above are ESTIMATES.")
    print("      Do NOT use for medical diagnosis or treatment.")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
