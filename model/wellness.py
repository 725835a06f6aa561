"""
model/wellness.py — Wellness interpretation of a finished scan
================================================================

⚠️  DISCLAIMER: These are heuristic WELLNESS INDICATORS, not validated
    clinical measures and not a diagnosis.  They re-state three camera
    estimates (HR, RR, SpO2) as friendlier scores for display.

────────────────────────────────────────────────────────────────────────
Heuristics
────────────────────────────────────────────────────────────────────────
Stress (0–100, higher = more strained), baseline 30:
    HR  > 90 → +30      HR  > 80 → +15
    RR  > 22 → +30      RR  > 18 → +15
    SpO2 < 95 → +10
    > 70 → "High"   > 40 → "Moderate"   else "Low"

Energy (0–100), baseline 80:
    SpO2 < 95 → −30 (and a further −50 below 90)
    HR > 100 or HR < 50 → −20 each
    stress score > 70 → −20
    < 40 → "Low"   > 85 → "High"   else "Optimal"

Resilience (0–100), baseline 60:
    SpO2 ≥ 98 → +20,  55 ≤ HR ≤ 70 → +20,  12 ≤ RR ≤ 18 → +10,
    stress "High" → −20
    > 70 → "Strong"   > 40 → "Average"   else "Vulnerable"

Advisory notes are attached for readings far outside resting ranges; they
are prompts to re-measure or seek advice, never a finding.
────────────────────────────────────────────────────────────────────────
"""

from utils.logger import get_logger

logger = get_logger("model.wellness")

DISCLAIMER = (
    "This is a WELLNESS ESTIMATION tool, NOT a medical device. "
    "Heart rate, respiration rate and SpO2 are ESTIMATES derived from "
    "remote photoplethysmography and have NOT been validated for clinical use. "
    "Consult a qualified healthcare professional for diagnosis or treatment."
)


def _clamp_score(value: float) -> float:
    return float(min(100.0, max(0.0, value)))


def _stress(heart_rate: float, respiration_rate: float, spo2: float) -> dict:
    score = 30.0

    if heart_rate > 90:
        score += 30.0
    elif heart_rate > 80:
        score += 15.0

    if respiration_rate > 22:
        score += 30.0
    elif respiration_rate > 18:
        score += 15.0

    # Lower oxygenation acts as a physical stressor
    if spo2 < 95:
        score += 10.0

    score = _clamp_score(score)
    if score > 70:
        level = "High"
    elif score > 40:
        level = "Moderate"
    else:
        level = "Low"

    labels = {"High": "Elevated Stress", "Moderate": "Mild Strain", "Low": "Calm State"}
    return {"score": score, "level": level, "label": labels[level]}


def _energy(heart_rate: float, spo2: float, stress_score: float) -> dict:
    score = 80.0

    if spo2 < 95:
        score -= 30.0
    if spo2 < 90:
        score -= 50.0

    if heart_rate > 100:
        score -= 20.0
    if heart_rate < 50:
        score -= 20.0

    if stress_score > 70:
        score -= 20.0

    score = _clamp_score(score)
    if score < 40:
        level = "Low"
    elif score > 85:
        level = "High"
    else:
        level = "Optimal"

    labels = {"Low": "Fatigued", "High": "Energized", "Optimal": "Balanced"}
    return {"score": score, "level": level, "label": labels[level]}


def _resilience(heart_rate: float, respiration_rate: float, spo2: float, stress_level: str) -> dict:
    score = 60.0
    if spo2 >= 98:
        score += 20.0
    if 55 <= heart_rate <= 70:
        score += 20.0
    if 12 <= respiration_rate <= 18:
        score += 10.0
    if stress_level == "High":
        score -= 20.0

    score = _clamp_score(score)
    if score > 70:
        label = "Strong"
    elif score > 40:
        label = "Average"
    else:
        label = "Vulnerable"
    return {"score": score, "label": label}


def _advisories(heart_rate: float, respiration_rate: float, spo2: float) -> list[str]:
    notes: list[str] = []
    if spo2 < 92:
        notes.append("Low oxygen estimate: re-measure in good lighting, and seek advice if you feel unwell.")
    if heart_rate > 120:
        notes.append("High resting heart-rate estimate: rest for a few minutes and measure again.")
    if respiration_rate > 25:
        notes.append("Elevated breathing-rate estimate: sit still, breathe normally and measure again.")
    return notes


def analyze_wellness(heart_rate: float, spo2: float, respiration_rate: float) -> dict:
    """
    Map one set of vitals to stress / energy / resilience indicators.

    Parameters
    ----------
    heart_rate       : float   BPM.
    spo2             : float   Percent.
    respiration_rate : float   Breaths per minute.

    Returns
    -------
    dict with keys:
        stress     : {score, level, label}
        energy     : {score, level, label}
        resilience : {score, label}
        advisories : list[str]
    """
    stress = _stress(heart_rate, respiration_rate, spo2)
    energy = _energy(heart_rate, spo2, stress["score"])
    resilience = _resilience(heart_rate, respiration_rate, spo2, stress["level"])
    advisories = _advisories(heart_rate, respiration_rate, spo2)

    logger.info(
        "Wellness: stress=%s (%.0f), energy=%s (%.0f), resilience=%s (%.0f)",
        stress["level"], stress["score"],
        energy["level"], energy["score"],
        resilience["label"], resilience["score"],
    )

    return {
        "stress": stress,
        "energy": energy,
        "resilience": resilience,
        "advisories": advisories,
    }
