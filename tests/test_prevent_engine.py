import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from prevent_engine import (
    MODEL_INFO,
    ascvd_risk_category,
    model_capabilities,
    prevent_ascvd_risk,
    prevent_from_snapshot,
)
from risk_types import Computed, Invalid, PatientLabSnapshot, Sex


def base_inputs(**overrides):
    d = dict(
        age=55,
        sex=Sex.MALE,
        total_cholesterol=213,
        hdl_cholesterol=50,
        systolic_bp=120,
        is_smoker=False,
        has_diabetes=False,
        on_antihypertensive=False,
        on_statin=False,
        egfr=90,
        bmi=25,
    )
    d.update(overrides)
    return d


def test_reference_male_55():
    out = prevent_ascvd_risk(**base_inputs())
    assert isinstance(out.ten_year, Computed)
    assert isinstance(out.thirty_year, Computed)
    assert out.ten_year.value == pytest.approx(3.17, abs=0.05)
    assert out.thirty_year.value == pytest.approx(13.08, abs=0.05)


@pytest.mark.parametrize("age", [60, 61, 65, 75, 90])
def test_thirty_year_zero_at_or_after_60(age):
    out = prevent_ascvd_risk(**base_inputs(age=age))
    assert out.thirty_year.status == "computed"
    assert out.thirty_year.value == 0.0
    assert out.ten_year.value > 0


def test_thirty_year_positive_below_60():
    out = prevent_ascvd_risk(**base_inputs(age=59))
    assert out.thirty_year.value > 0


def test_risk_factors_raise_risk():
    base = prevent_ascvd_risk(**base_inputs()).ten_year.value
    assert prevent_ascvd_risk(**base_inputs(is_smoker=True)).ten_year.value > base
    assert prevent_ascvd_risk(**base_inputs(has_diabetes=True)).ten_year.value > base
    assert prevent_ascvd_risk(**base_inputs(systolic_bp=160)).ten_year.value > base
    assert prevent_ascvd_risk(**base_inputs(bmi=38)).ten_year.value > base
    assert prevent_ascvd_risk(**base_inputs(egfr=30)).ten_year.value > base


def test_hinge_terms_flat_below_threshold():
    # SBP <= 110, BMI <= 30, eGFR >= 60 contribute nothing beyond the mean offset
    a = prevent_ascvd_risk(**base_inputs(systolic_bp=100, bmi=22, egfr=95))
    b = prevent_ascvd_risk(**base_inputs(systolic_bp=110, bmi=30, egfr=60))
    assert a == b


def test_statin_flag_does_not_change_estimate():
    a = prevent_ascvd_risk(**base_inputs(on_statin=False))
    b = prevent_ascvd_risk(**base_inputs(on_statin=True))
    assert a == b


def test_treated_branch_uses_same_placeholder_coefficient():
    a = prevent_ascvd_risk(**base_inputs(systolic_bp=150, on_antihypertensive=False))
    b = prevent_ascvd_risk(**base_inputs(systolic_bp=150, on_antihypertensive=True))
    assert a.ten_year.value == pytest.approx(b.ten_year.value)


def test_female_uses_female_baseline():
    m = prevent_ascvd_risk(**base_inputs(sex="Male"))
    f = prevent_ascvd_risk(**base_inputs(sex="Female"))
    assert f.ten_year.value < m.ten_year.value
    assert f.thirty_year.value < m.thirty_year.value


def test_clamped_to_0_100_for_extreme_inputs():
    out = prevent_ascvd_risk(**base_inputs(
        age=110, total_cholesterol=9999, hdl_cholesterol=10, systolic_bp=300,
        is_smoker=True, has_diabetes=True, bmi=90, egfr=1,
    ))
    assert out.ten_year.value == 100.0
    low = prevent_ascvd_risk(**base_inputs(age=1, total_cholesterol=50, hdl_cholesterol=100))
    assert 0.0 <= low.ten_year.value <= 100.0
    assert 0.0 <= low.thirty_year.value <= 100.0


def test_randomized_outputs_within_bounds():
    rng = random.Random(7)
    for _ in range(300):
        out = prevent_ascvd_risk(**base_inputs(
            age=rng.randint(30, 79),
            sex=rng.choice(["M", "F"]),
            total_cholesterol=rng.uniform(120, 320),
            hdl_cholesterol=rng.uniform(25, 90),
            systolic_bp=rng.uniform(90, 200),
            is_smoker=rng.random() < 0.3,
            has_diabetes=rng.random() < 0.25,
            on_antihypertensive=rng.random() < 0.4,
            on_statin=rng.random() < 0.3,
            egfr=rng.uniform(10, 120),
            bmi=rng.uniform(18, 45),
        ))
        for r in (out.ten_year, out.thirty_year):
            assert r.status == "computed"
            assert 0.0 <= r.value <= 100.0


@pytest.mark.parametrize(
    "overrides",
    [
        dict(age=None),
        dict(total_cholesterol=None),
        dict(hdl_cholesterol=None),
        dict(systolic_bp=None),
        dict(egfr=None),
        dict(bmi=None),
        dict(is_smoker=None),
        dict(on_statin=None),
        dict(total_cholesterol="high"),
        dict(age=0),
        dict(age=-40),
        dict(egfr=0),
        dict(egfr=-5),
        dict(sex="other"),
    ],
)
def test_invalid_inputs(overrides):
    out = prevent_ascvd_risk(**base_inputs(**overrides))
    assert isinstance(out.ten_year, Invalid)
    assert isinstance(out.thirty_year, Invalid)
    assert out.ten_year.reason


def test_from_snapshot_egfr_override():
    snap = PatientLabSnapshot(
        age=55, sex="M", total_cholesterol=213, hdl_cholesterol=50, systolic_bp=120, bmi=25,
        is_smoker=False, has_diabetes=False, on_antihypertensive=False, on_statin=False,
    )
    assert prevent_from_snapshot(snap).ten_year.status == "invalid"
    assert prevent_from_snapshot(snap, egfr=90) == prevent_ascvd_risk(**base_inputs())


def test_model_capabilities_flags_approximation():
    caps = model_capabilities()
    assert caps["approximate"] is True
    assert caps["placeholders"]
    caps["placeholders"].append("x")
    assert "x" not in MODEL_INFO["placeholders"]


@pytest.mark.parametrize(
    "value, prefix",
    [(1.0, "Low"), (4.99, "Low"), (5.0, "Borderline"), (7.49, "Borderline"),
     (7.5, "Intermediate"), (19.9, "Intermediate"), (20.0, "High"), (64.0, "High")],
)
def test_ascvd_risk_category(value, prefix):
    assert ascvd_risk_category(value).startswith(prefix)
