# egfr_engine.py
# eGFR — CKD-EPI 2021 creatinine equation (race-free)
#
#   eGFR = 142 * min(SCr/κ, 1)^α * max(SCr/κ, 1)^-1.200 * 0.9938^age * (1.012 if female)
#   κ = 0.7 female / 0.9 male
#   α = -0.241 female / -0.302 male
#
# Also: KDIGO G stage (from eGFR), A category (from UACR, mg/g), and the
# G x A disability percentage with follow-up recommendations.
# Output is NOT clamped; an implausible eGFR from an extreme creatinine is
# still the formula's answer.

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from risk_types import (
    Computed,
    Invalid,
    PatientLabSnapshot,
    RiskResult,
    Sex,
    coerce_sex,
    safe_float,
)

logger = logging.getLogger(__name__)


# ----------------------------
# Coefficients
# ----------------------------
@dataclass(frozen=True)
class CkdEpiCoefficients:
    kappa: float
    alpha: float
    sex_factor: float


CKD_EPI_2021 = {
    Sex.FEMALE: CkdEpiCoefficients(kappa=0.7, alpha=-0.241, sex_factor=1.012),
    Sex.MALE: CkdEpiCoefficients(kappa=0.9, alpha=-0.302, sex_factor=1.0),
}
CKD_EPI_2021_INTERCEPT = 142
CKD_EPI_2021_MAX_EXPONENT = -1.200
CKD_EPI_2021_AGE_BASE = 0.9938


# ----------------------------
# eGFR
# ----------------------------
def egfr_ckd_epi_2021(creatinine: Any, age: Any, sex: Any) -> RiskResult:
    """
    Estimated GFR in mL/min/1.73m² (CKD-EPI 2021).

    Returns Computed(eGFR) or Invalid(reason) when creatinine <= 0, age <= 0,
    or sex is not Male/Female.
    """
    scr = safe_float(creatinine)
    if scr is None or scr <= 0:
        logger.debug("eGFR invalid: creatinine=%r", creatinine)
        return Invalid("Serum creatinine must be a positive number (mg/dL).")

    a = safe_float(age)
    if a is None or a <= 0:
        logger.debug("eGFR invalid: age=%r", age)
        return Invalid("Age must be a positive number of years.")

    s = coerce_sex(sex)
    if s is None:
        logger.debug("eGFR invalid: sex=%r", sex)
        return Invalid("Sex must be Male or Female.")

    c = CKD_EPI_2021[s]
    ratio = scr / c.kappa

    min_term = min(ratio, 1) ** c.alpha
    max_term = max(ratio, 1) ** CKD_EPI_2021_MAX_EXPONENT
    age_term = CKD_EPI_2021_AGE_BASE ** a

    egfr = CKD_EPI_2021_INTERCEPT * min_term * max_term * age_term * c.sex_factor
    logger.debug("eGFR computed: %.4f", egfr)
    return Computed(egfr)


def egfr_from_snapshot(snapshot: PatientLabSnapshot) -> RiskResult:
    return egfr_ckd_epi_2021(snapshot.serum_creatinine, snapshot.age, snapshot.sex)


# ----------------------------
# KDIGO staging
# ----------------------------
CKD_G_STAGE_DESCRIPTIONS: Dict[str, str] = {
    "G1": "Normal or high (≥90 mL/min/1.73m²)",
    "G2": "Mildly decreased (60–89 mL/min/1.73m²)",
    "G3a": "Mildly to moderately decreased (45–59 mL/min/1.73m²)",
    "G3b": "Moderately to severely decreased (30–44 mL/min/1.73m²)",
    "G4": "Severely decreased (15–29 mL/min/1.73m²)",
    "G5": "Kidney failure (<15 mL/min/1.73m²)",
}

ALBUMINURIA_DESCRIPTIONS: Dict[str, str] = {
    "A1": "Normal to mildly increased (<30 mg/g)",
    "A2": "Moderately increased (30–299 mg/g)",
    "A3": "Severely increased (≥300 mg/g)",
}


def ckd_g_stage(egfr: float) -> str:
    if egfr >= 90:
        return "G1"
    if egfr >= 60:
        return "G2"
    if egfr >= 45:
        return "G3a"
    if egfr >= 30:
        return "G3b"
    if egfr >= 15:
        return "G4"
    return "G5"


def albuminuria_category(uacr: float) -> str:
    # mg/g only
    if uacr < 30:
        return "A1"
    if uacr < 300:
        return "A2"
    return "A3"


def describe_g_stage(stage: str) -> str:
    return CKD_G_STAGE_DESCRIPTIONS.get(stage, stage)


def describe_a_category(category: str) -> str:
    return ALBUMINURIA_DESCRIPTIONS.get(category, category)


# ----------------------------
# Disability assessment (G stage x A category)
# ----------------------------
DISABILITY_MATRIX: Dict[str, Dict[str, int]] = {
    "G1": {"A1": 15, "A2": 40, "A3": 60},
    "G2": {"A1": 15, "A2": 40, "A3": 60},
    "G3a": {"A1": 40, "A2": 40, "A3": 60},
    "G3b": {"A1": 60, "A2": 60, "A3": 80},
    "G4": {"A1": 80, "A2": 80, "A3": 100},
    "G5": {"A1": 100, "A2": 100, "A3": 100},
}

RRT_DISABILITY_PCT = 100


def disability_percentage(g_stage: Optional[str], a_category: Optional[str], on_rrt: bool = False) -> int:
    """
    Disability % from the KDIGO G x A matrix. Renal replacement therapy
    (dialysis or transplant) is always 100%.
    Raises KeyError for an unknown stage/category.
    """
    if on_rrt:
        return RRT_DISABILITY_PCT
    return DISABILITY_MATRIX[g_stage][a_category]


def ckd_recommendations(
    g_stage: Optional[str], a_category: Optional[str], disability_pct: int, on_rrt: bool = False
) -> List[str]:
    if on_rrt:
        return [
            "Patient is on Renal Replacement Therapy (Dialysis/Transplant). "
            "Disability: 100% with Constant Attendance Allowance (CAA).",
            "Regular nephrology follow-up required.",
        ]

    recs: List[str] = []

    if g_stage in ("G4", "G5"):
        recs.append("Consider referral for renal replacement therapy planning.")
        recs.append("Intensive nephrology follow-up required (monthly or more frequent).")
    elif g_stage in ("G3a", "G3b"):
        recs.append("Regular nephrology follow-up recommended (every 3-6 months).")
        recs.append("Monitor for CKD progression and complications.")
    else:
        recs.append("Annual nephrology review recommended.")

    if a_category == "A3":
        recs.append("Significant proteinuria present. Consider ACE inhibitor/ARB therapy if not contraindicated.")
        recs.append("Strict blood pressure control essential (target <130/80 mmHg).")
    elif a_category == "A2":
        recs.append("Moderate albuminuria present. Blood pressure optimization recommended.")

    if disability_pct >= 60:
        recs.append(f"High disability percentage ({disability_pct}%). Consider medical board review for employment restrictions.")
    elif disability_pct >= 40:
        recs.append(f"Moderate disability ({disability_pct}%). Regular monitoring and functional assessment recommended.")

    recs.append("Maintain CKD-appropriate diet (low sodium, appropriate protein restriction).")
    recs.append("Avoid nephrotoxic medications (NSAIDs, contrast agents) when possible.")
    return recs
