import math
import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kfre_engine import (
    KFRE_8_VAR,
    KFRE_BASELINE_SURVIVAL,
    kfre_8_variable,
    kfre_from_snapshot,
    kfre_risk_level,
)
from risk_types import Computed, Invalid, NotApplicable, PatientLabSnapshot, Sex


def test_egfr_at_or_above_60_not_applicable():
    for egfr in (60, 65, 90):
        out = kfre_8_variable(age=70, sex=Sex.MALE, egfr=egfr, uacr=300)
        assert isinstance(out.two_year, NotApplicable)
        assert isinstance(out.five_year, NotApplicable)


def test_missing_mandatory_fields_not_applicable():
    for kwargs in (
        dict(age=None, sex="M", egfr=45, uacr=300),
        dict(age=70, sex="M", egfr=None, uacr=300),
        dict(age=70, sex="M", egfr=45, uacr=None),
    ):
        out = kfre_8_variable(**kwargs)
        assert out.two_year.status == "not_applicable"
        assert out.five_year.status == "not_applicable"


def test_computed_below_60_and_five_year_not_less_than_two_year():
    out = kfre_8_variable(age=70, sex=Sex.MALE, egfr=45, uacr=300)
    assert isinstance(out.two_year, Computed)
    assert isinstance(out.five_year, Computed)
    assert out.five_year.value >= out.two_year.value
    assert 0 <= out.two_year.value <= 100
    assert 0 <= out.five_year.value <= 100


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(age=70, sex="M", egfr=45, uacr=0),
        dict(age=70, sex="M", egfr=45, uacr=-10),
        dict(age=0, sex="M", egfr=45, uacr=300),
        dict(age=-3, sex="M", egfr=45, uacr=300),
        dict(age=70, sex="M", egfr=0, uacr=300),
        dict(age=70, sex="M", egfr=-5, uacr=300),
        dict(age=70, sex="unknown", egfr=45, uacr=300),
        dict(age=70, sex="M", egfr=45, uacr="lots"),
        dict(age=70, sex="M", egfr=45, uacr=300, calcium=0),
        dict(age=70, sex="M", egfr=45, uacr=300, bicarbonate=-1),
    ],
)
def test_invalid_inputs(kwargs):
    out = kfre_8_variable(**kwargs)
    assert isinstance(out.two_year, Invalid)
    assert isinstance(out.five_year, Invalid)


def test_invalid_and_not_applicable_stay_distinct():
    invalid = kfre_8_variable(age=70, sex="M", egfr=45, uacr=0).two_year
    na = kfre_8_variable(age=70, sex="M", egfr=65, uacr=300).two_year
    assert invalid.status != na.status
    assert invalid != na


def test_domain_error_reported_before_egfr_scope_rule():
    # a bad UACR is a data-entry problem even when eGFR >= 60
    out = kfre_8_variable(age=70, sex="M", egfr=65, uacr=0)
    assert isinstance(out.two_year, Invalid)
    assert isinstance(out.five_year, Invalid)
    assert "UACR" in out.two_year.reason

    out = kfre_8_variable(age=70, sex="M", egfr=65, uacr=300, albumin=-1)
    assert isinstance(out.two_year, Invalid)

    # missing mandatory fields still short-circuit to NotApplicable first
    out = kfre_8_variable(age=None, sex="M", egfr=65, uacr=0)
    assert isinstance(out.two_year, NotApplicable)


def test_reference_value():
    # lp = -0.2301*6 - 0.1899 - 0.5364*3 + 0.4633*ln(1000) - 3.3644
    out = kfre_8_variable(age=60, sex=Sex.FEMALE, egfr=15, uacr=1000)
    assert out.two_year.value == pytest.approx(0.0605, rel=1e-2)
    assert out.five_year.value == pytest.approx(0.1717, rel=1e-2)


def test_linear_predictor_order_of_operations():
    age, egfr, uacr, ca, phos, alb, bic = 58, 22, 850, 9.1, 4.8, 3.6, 19
    c = KFRE_8_VAR
    lp = 0.0
    lp += c.age * (age / 10)
    lp += c.sex_female
    lp += c.egfr * (egfr / 5)
    lp += c.uacr_log * math.log(uacr)
    lp += c.calcium * ca
    lp += c.phosphate * phos
    lp += c.albumin * alb
    lp += c.bicarbonate * bic
    predictor = lp - c.sum_coeffs_times_mean
    expected_two = 100 * (1 - KFRE_BASELINE_SURVIVAL.two_year ** math.exp(predictor))
    expected_five = 100 * (1 - KFRE_BASELINE_SURVIVAL.five_year ** math.exp(predictor))

    out = kfre_8_variable(age, "F", egfr, uacr, calcium=ca, phosphate=phos, albumin=alb, bicarbonate=bic)
    assert out.two_year.value == expected_two
    assert out.five_year.value == expected_five


def test_optional_labs_only_when_present():
    base = kfre_8_variable(age=66, sex="M", egfr=28, uacr=420)
    with_phos = kfre_8_variable(age=66, sex="M", egfr=28, uacr=420, phosphate=5.5)
    with_alb = kfre_8_variable(age=66, sex="M", egfr=28, uacr=420, albumin=4.0)
    # positive coefficient raises risk, negative lowers it
    assert with_phos.two_year.value > base.two_year.value
    assert with_alb.two_year.value < base.two_year.value


def test_female_lower_risk_than_male():
    m = kfre_8_variable(age=66, sex="M", egfr=28, uacr=420)
    f = kfre_8_variable(age=66, sex="F", egfr=28, uacr=420)
    assert f.five_year.value < m.five_year.value


def test_monotonic_in_uacr_and_egfr_randomized():
    rng = random.Random(11)
    for _ in range(200):
        age = rng.randint(20, 90)
        sex = rng.choice(["M", "F"])
        egfr = rng.uniform(5, 58)
        uacr = rng.uniform(1, 3000)

        base = kfre_8_variable(age, sex, egfr, uacr)
        more_uacr = kfre_8_variable(age, sex, egfr, uacr * 1.5)
        lower_egfr = kfre_8_variable(age, sex, egfr - 1, uacr)

        assert base.five_year.value >= base.two_year.value
        assert more_uacr.two_year.value >= base.two_year.value
        assert more_uacr.five_year.value >= base.five_year.value
        assert lower_egfr.two_year.value >= base.two_year.value
        assert lower_egfr.five_year.value >= base.five_year.value


def test_deterministic():
    a = kfre_8_variable(71, "F", 33.3, 512, calcium=9.4, phosphate=4.1)
    b = kfre_8_variable(71, "F", 33.3, 512, calcium=9.4, phosphate=4.1)
    assert a == b


def test_from_snapshot_egfr_override():
    snap = PatientLabSnapshot(age=70, sex="M", uacr=300, egfr=65)
    assert kfre_from_snapshot(snap).two_year.status == "not_applicable"
    assert kfre_from_snapshot(snap, egfr=45).two_year.status == "computed"


@pytest.mark.parametrize("value, level", [(0.5, "Low Risk"), (5, "Low Risk"), (5.1, "Medium Risk"),
                                          (20, "Medium Risk"), (20.1, "High Risk"), (80, "High Risk")])
def test_kfre_risk_level(value, level):
    assert kfre_risk_level(value) == level
