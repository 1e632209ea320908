# prevent_engine.py
# PREVENT-style ASCVD risk (10-year + 30-year) — simplified model
#
# Approximate model, pending clinical calibration:
#   - female 10y and both 30y baseline survivals are placeholders
#   - treated / untreated SBP branches share placeholder coefficients
#   - statin, antihypertensive main effects and interaction terms are omitted
# These constants are kept as-is and surfaced through MODEL_INFO; do not tune.
#
# Rules kept exactly:
#   - 30-year risk is 0 whenever age >= 60
#   - both outputs clamped to [0, 100] (eGFR and KFRE are not clamped)

import logging
from dataclasses import dataclass
from typing import Any, Dict

from risk_types import (
    AscvdRisk,
    Computed,
    Invalid,
    PatientLabSnapshot,
    Sex,
    clamp,
    coerce_sex,
    safe_float,
    survival_risk_pct,
)

logger = logging.getLogger(__name__)


# ----------------------------
# Coefficients + cohort means
# ----------------------------
@dataclass(frozen=True)
class PreventTerms:
    age: float
    non_hdl_c: float
    sbp_treated: float
    sbp_untreated: float
    diabetes: float
    smoking: float
    bmi: float
    egfr: float
    statin: float
    antihypertensive: float


PREVENT_COEFFS = PreventTerms(
    age=0.7099,
    non_hdl_c=0.2921,
    sbp_treated=0.1508,
    sbp_untreated=0.1508,  # placeholder: same as treated
    diabetes=0.7189,
    smoking=0.3957,
    bmi=0.2,
    egfr=0.3,
    statin=0.1,  # placeholder, not in predictor
    antihypertensive=0.1,  # placeholder, not in predictor
)

PREVENT_MEANS = PreventTerms(
    age=5.54,
    non_hdl_c=3.49,
    sbp_treated=0.73,
    sbp_untreated=0.73,  # placeholder: same as treated
    diabetes=0.17,
    smoking=0.44,
    bmi=0,
    egfr=0,
    statin=0,
    antihypertensive=0,
)


@dataclass(frozen=True)
class BaselineSurvival:
    male: float
    female: float

    def for_sex(self, sex: Sex) -> float:
        return self.male if sex is Sex.MALE else self.female


BASELINE_SURVIVAL_10Y = BaselineSurvival(male=0.9634, female=0.98)  # female: placeholder
BASELINE_SURVIVAL_30Y = BaselineSurvival(male=0.85, female=0.92)  # both: placeholder

MG_DL_TO_MMOL_L = 1 / 38.67
THIRTY_YEAR_AGE_CUTOFF = 60

MODEL_INFO: Dict[str, Any] = {
    "model": "PREVENT-style ASCVD (simplified)",
    "approximate": True,
    "status": "approximate model, pending clinical calibration",
    "placeholders": [
        "female 10-year baseline survival",
        "male and female 30-year baseline survival",
        "treated/untreated SBP coefficients (identical)",
        "statin and antihypertensive terms omitted",
        "interaction terms omitted",
    ],
    "clamped": True,
}


def model_capabilities() -> Dict[str, Any]:
    return {**MODEL_INFO, "placeholders": list(MODEL_INFO["placeholders"])}


# ----------------------------
# Risk category (10-year, ACC/AHA bands)
# ----------------------------
def ascvd_risk_category(value: float) -> str:
    if value < 5:
        return "Low (<5%)"
    if value < 7.5:
        return "Borderline (5–7.4%)"
    if value < 20:
        return "Intermediate (7.5–19.9%)"
    return "High (≥20%)"


# ----------------------------
# Calculator
# ----------------------------
_NUMERIC_FIELDS = ("age", "total_cholesterol", "hdl_cholesterol", "systolic_bp", "egfr", "bmi")
_FLAG_FIELDS = ("is_smoker", "has_diabetes", "on_antihypertensive", "on_statin")


def prevent_ascvd_risk(
    age: Any,
    sex: Any,
    total_cholesterol: Any,
    hdl_cholesterol: Any,
    systolic_bp: Any,
    is_smoker: Any,
    has_diabetes: Any,
    on_antihypertensive: Any,
    on_statin: Any,
    egfr: Any,
    bmi: Any,
) -> AscvdRisk:
    """
    10-year and 30-year ASCVD risk (%). Every field is required; there is no
    NotApplicable branch. A missing or malformed field, age <= 0 or eGFR <= 0
    is Invalid.
    """
    raw = {
        "age": age,
        "total_cholesterol": total_cholesterol,
        "hdl_cholesterol": hdl_cholesterol,
        "systolic_bp": systolic_bp,
        "egfr": egfr,
        "bmi": bmi,
    }
    missing = [k for k in _NUMERIC_FIELDS if raw[k] is None]
    flags = {
        "is_smoker": is_smoker,
        "has_diabetes": has_diabetes,
        "on_antihypertensive": on_antihypertensive,
        "on_statin": on_statin,
    }
    missing += [k for k in _FLAG_FIELDS if flags[k] is None]
    if missing:
        return _invalid(f"Missing required inputs: {', '.join(missing)}.")

    vals = {k: safe_float(v) for k, v in raw.items()}
    bad = [k for k, v in vals.items() if v is None]
    if bad:
        return _invalid(f"Non-numeric inputs: {', '.join(bad)}.")

    if vals["age"] <= 0:
        return _invalid("Age must be a positive number of years.")

    if vals["egfr"] <= 0:
        return _invalid("eGFR must be a positive number.")

    s = coerce_sex(sex)
    if s is None:
        return _invalid("Sex must be Male or Female.")

    a = vals["age"]

    # Step 1: transforms
    age_t = a / 10
    non_hdl_c_t = (vals["total_cholesterol"] - vals["hdl_cholesterol"]) * MG_DL_TO_MMOL_L
    sbp_t = max(0, vals["systolic_bp"] - 110) / 20
    bmi_t = max(0, vals["bmi"] - 30) / 5
    egfr_t = max(0, 60 - vals["egfr"]) / 15

    diabetes_t = 1 if has_diabetes else 0
    smoker_t = 1 if is_smoker else 0
    treated = bool(on_antihypertensive)

    # Step 2: Σβ(x - x̄)
    c, m = PREVENT_COEFFS, PREVENT_MEANS
    lp = 0.0
    lp += c.age * (age_t - m.age)
    lp += c.non_hdl_c * (non_hdl_c_t - m.non_hdl_c)
    if treated:
        lp += c.sbp_treated * (sbp_t - m.sbp_treated)
    else:
        lp += c.sbp_untreated * (sbp_t - m.sbp_untreated)
    lp += c.diabetes * (diabetes_t - m.diabetes)
    lp += c.smoking * (smoker_t - m.smoking)
    lp += c.bmi * (bmi_t - m.bmi)
    lp += c.egfr * (egfr_t - m.egfr)

    # Step 3: risk
    ten = survival_risk_pct(BASELINE_SURVIVAL_10Y.for_sex(s), lp)

    thirty = 0.0
    if a < THIRTY_YEAR_AGE_CUTOFF:
        thirty = survival_risk_pct(BASELINE_SURVIVAL_30Y.for_sex(s), lp)

    ten_c = clamp(ten)
    thirty_c = clamp(thirty)
    logger.debug("ASCVD computed: 10y=%.4f 30y=%.4f (lp=%.4f)", ten_c, thirty_c, lp)
    return AscvdRisk(ten_year=Computed(float(ten_c)), thirty_year=Computed(float(thirty_c)))


def prevent_from_snapshot(snapshot: PatientLabSnapshot, egfr: Any = None) -> AscvdRisk:
    """eGFR argument overrides snapshot.egfr (e.g. a freshly computed value)."""
    return prevent_ascvd_risk(
        age=snapshot.age,
        sex=snapshot.sex,
        total_cholesterol=snapshot.total_cholesterol,
        hdl_cholesterol=snapshot.hdl_cholesterol,
        systolic_bp=snapshot.systolic_bp,
        is_smoker=snapshot.is_smoker,
        has_diabetes=snapshot.has_diabetes,
        on_antihypertensive=snapshot.on_antihypertensive,
        on_statin=snapshot.on_statin,
        egfr=egfr if egfr is not None else snapshot.egfr,
        bmi=snapshot.bmi,
    )


def _invalid(reason: str) -> AscvdRisk:
    logger.debug("ASCVD invalid: %s", reason)
    return AscvdRisk.both(Invalid(reason))
