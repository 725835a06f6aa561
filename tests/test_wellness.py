import pytest

from model.wellness import DISCLAIMER, analyze_wellness


def test_resting_vitals():
    report = analyze_wellness(heart_rate=65, spo2=98, respiration_rate=14)
    assert report["stress"] == {"score": 30.0, "level": "Low", "label": "Calm State"}
    assert report["energy"] == {"score": 80.0, "level": "Optimal", "label": "Balanced"}
    assert report["resilience"] == {"score": 100.0, "label": "Strong"}
    assert report["advisories"] == []


def test_strained_vitals():
    report = analyze_wellness(heart_rate=125, spo2=90, respiration_rate=26)
    assert report["stress"]["level"] == "High"
    assert report["stress"]["score"] == 100.0
    assert report["energy"]["level"] == "Low"
    assert report["energy"]["label"] == "Fatigued"
    assert report["resilience"]["label"] == "Vulnerable"
    assert len(report["advisories"]) == 3


@pytest.mark.parametrize(
    "heart_rate, respiration_rate, level",
    [(75, 16, "Low"), (85, 16, "Moderate"), (95, 20, "High")],
)
def test_stress_levels(heart_rate, respiration_rate, level):
    report = analyze_wellness(heart_rate=heart_rate, spo2=97, respiration_rate=respiration_rate)
    assert report["stress"]["level"] == level


def test_scores_are_bounded():
    for hr in (40, 60, 90, 150):
        for rr in (6, 15, 30):
            for spo2 in (90, 95, 100):
                report = analyze_wellness(hr, spo2, rr)
                for key in ("stress", "energy", "resilience"):
                    assert 0.0 <= report[key]["score"] <= 100.0


def test_disclaimer_mentions_non_medical_use():
    assert "NOT a medical device" in DISCLAIMER
