# kfre_engine.py
# Kidney Failure Risk Equation — 8-variable model (Tangri et al., JAMA 2016),
# North American cohort coefficients.
#
# Scope rule (NotApplicable, both horizons):
#   - eGFR >= 60, or any of age / eGFR / UACR missing
# Domain errors (Invalid, both horizons):
#   - UACR <= 0 (log undefined), age <= 0, eGFR <= 0, sex not Male/Female,
#     an optional lab that is present but not a positive number
#
# risk_t = 100 * (1 - S0(t) ** exp(Σβx - Σβx̄))
# Not clamped: bounded by construction since 0 < S0 < 1.

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from risk_types import (
    Computed,
    Invalid,
    KfreRisk,
    NotApplicable,
    PatientLabSnapshot,
    Sex,
    coerce_sex,
    safe_float,
    survival_risk_pct,
)

logger = logging.getLogger(__name__)


# ----------------------------
# Coefficients (Table 3, North American cohort)
# ----------------------------
@dataclass(frozen=True)
class KfreCoefficients:
    age: float = -0.2301  # per 10 years
    sex_female: float = -0.1899  # reference: male
    egfr: float = -0.5364  # per 5 mL/min/1.73m²
    uacr_log: float = 0.4633  # per natural-log unit
    calcium: float = -0.1031  # per mg/dL
    phosphate: float = 0.2882  # per mg/dL
    albumin: float = -0.3204  # per g/dL
    bicarbonate: float = -0.1251  # per mEq/L
    # Σβx̄ over the cohort means, published as a single constant
    sum_coeffs_times_mean: float = 3.3644


@dataclass(frozen=True)
class KfreBaselineSurvival:
    two_year: float = 0.983
    five_year: float = 0.9525


KFRE_8_VAR = KfreCoefficients()
KFRE_BASELINE_SURVIVAL = KfreBaselineSurvival()

EGFR_APPLICABILITY_LIMIT = 60

OPTIONAL_LABS = ("calcium", "phosphate", "albumin", "bicarbonate")


# ----------------------------
# Risk banding (clinical tools view)
# ----------------------------
def kfre_risk_level(value: float) -> str:
    if value > 20:
        return "High Risk"
    if value > 5:
        return "Medium Risk"
    return "Low Risk"


# ----------------------------
# Calculator
# ----------------------------
def kfre_8_variable(
    age: Any,
    sex: Any,
    egfr: Any,
    uacr: Any,
    calcium: Any = None,
    phosphate: Any = None,
    albumin: Any = None,
    bicarbonate: Any = None,
) -> KfreRisk:
    missing = [k for k, v in (("age", age), ("egfr", egfr), ("uacr", uacr)) if v is None]
    if missing:
        logger.debug("KFRE not applicable: missing %s", missing)
        return KfreRisk.both(NotApplicable(f"KFRE requires {', '.join(missing)}."))

    a = safe_float(age)
    if a is None or a <= 0:
        return _invalid("Age must be a positive number of years.")

    s = coerce_sex(sex)
    if s is None:
        return _invalid("Sex must be Male or Female.")

    e = safe_float(egfr)
    if e is None or e <= 0:
        return _invalid("eGFR must be a positive number.")

    u = safe_float(uacr)
    if u is None or u <= 0:
        return _invalid("UACR must be a positive number (mg/g).")

    optional: Dict[str, Optional[float]] = {}
    for name, raw in zip(OPTIONAL_LABS, (calcium, phosphate, albumin, bicarbonate)):
        if raw is None:
            optional[name] = None
            continue
        v = safe_float(raw)
        if v is None or v <= 0:
            return _invalid(f"{name.capitalize()} must be a positive number when provided.")
        optional[name] = v

    if e >= EGFR_APPLICABILITY_LIMIT:
        logger.debug("KFRE not applicable: eGFR %.1f >= %s", e, EGFR_APPLICABILITY_LIMIT)
        return KfreRisk.both(
            NotApplicable(f"KFRE applies only when eGFR < {EGFR_APPLICABILITY_LIMIT} mL/min/1.73m².")
        )

    c = KFRE_8_VAR

    # Σβx; order of accumulation is part of the reproducibility contract
    lp = 0.0
    lp += c.age * (a / 10)
    lp += c.sex_female if s is Sex.FEMALE else 0
    lp += c.egfr * (e / 5)
    lp += c.uacr_log * math.log(u)

    for name in OPTIONAL_LABS:
        v = optional[name]
        if v is not None:
            lp += getattr(c, name) * v

    predictor = lp - c.sum_coeffs_times_mean

    two = survival_risk_pct(KFRE_BASELINE_SURVIVAL.two_year, predictor)
    five = survival_risk_pct(KFRE_BASELINE_SURVIVAL.five_year, predictor)

    logger.debug("KFRE computed: 2y=%.4f 5y=%.4f", two, five)
    return KfreRisk(two_year=Computed(two), five_year=Computed(five))


def kfre_from_snapshot(snapshot: PatientLabSnapshot, egfr: Any = None) -> KfreRisk:
    """eGFR argument overrides snapshot.egfr (e.g. a freshly computed value)."""
    return kfre_8_variable(
        age=snapshot.age,
        sex=snapshot.sex,
        egfr=egfr if egfr is not None else snapshot.egfr,
        uacr=snapshot.uacr,
        calcium=snapshot.calcium,
        phosphate=snapshot.phosphate,
        albumin=snapshot.albumin,
        bicarbonate=snapshot.bicarbonate,
    )


def _invalid(reason: str) -> KfreRisk:
    logger.debug("KFRE invalid: %s", reason)
    return KfreRisk.both(Invalid(reason))
