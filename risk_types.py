# risk_types.py
# Shared value types for the kidney + cardiovascular risk calculators.
#
# - PatientLabSnapshot: immutable per-call input record
# - RiskResult: tagged outcome (Computed / NotApplicable / Invalid)
# - KfreRisk / AscvdRisk: one RiskResult per prediction horizon
#
# A score is never a bare Optional[float]. "The model does not apply" and
# "the input was wrong" stay distinguishable all the way to the UI.

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


# ----------------------------
# Sex
# ----------------------------
class Sex(str, Enum):
    MALE = "Male"
    FEMALE = "Female"


_SEX_ALIASES = {
    "m": Sex.MALE,
    "male": Sex.MALE,
    "f": Sex.FEMALE,
    "female": Sex.FEMALE,
}


def coerce_sex(value: Any) -> Optional[Sex]:
    """Map "M"/"Male"/"f"/Sex.FEMALE etc. to Sex; anything else -> None."""
    if isinstance(value, Sex):
        return value
    if value is None:
        return None
    return _SEX_ALIASES.get(str(value).strip().lower())


# ----------------------------
# Numeric helpers
# ----------------------------
def safe_float(x: Any) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    try:
        v = float(x)
    except (TypeError, ValueError):
        return None
    if math.isnan(v) or math.isinf(v):
        return None
    return v


def clamp(x: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, x))


def survival_risk_pct(baseline_survival: float, linear_predictor: float) -> float:
    """Proportional-hazards transform: 100 * (1 - S0 ** exp(lp))."""
    try:
        hazard = math.exp(linear_predictor)
    except OverflowError:
        # S0 ** inf == 0.0 for 0 < S0 < 1
        hazard = math.inf
    return 100 * (1 - baseline_survival ** hazard)


# ----------------------------
# Tagged results
# ----------------------------
COMPUTED = "computed"
NOT_APPLICABLE = "not_applicable"
INVALID = "invalid"


@dataclass(frozen=True)
class Computed:
    value: float
    status: str = field(default=COMPUTED, init=False)

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise TypeError(f"Computed value must be a number, got {type(self.value).__name__}")

    @property
    def is_computed(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "value": self.value}


@dataclass(frozen=True)
class NotApplicable:
    reason: str
    status: str = field(default=NOT_APPLICABLE, init=False)

    @property
    def is_computed(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "reason": self.reason}


@dataclass(frozen=True)
class Invalid:
    reason: str
    status: str = field(default=INVALID, init=False)

    @property
    def is_computed(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "reason": self.reason}


RiskResult = Union[Computed, NotApplicable, Invalid]


@dataclass(frozen=True)
class KfreRisk:
    two_year: RiskResult
    five_year: RiskResult

    @classmethod
    def both(cls, result: RiskResult) -> "KfreRisk":
        return cls(two_year=result, five_year=result)

    def to_dict(self) -> Dict[str, Any]:
        return {"twoYear": self.two_year.to_dict(), "fiveYear": self.five_year.to_dict()}


@dataclass(frozen=True)
class AscvdRisk:
    ten_year: RiskResult
    thirty_year: RiskResult

    @classmethod
    def both(cls, result: RiskResult) -> "AscvdRisk":
        return cls(ten_year=result, thirty_year=result)

    def to_dict(self) -> Dict[str, Any]:
        return {"tenYear": self.ten_year.to_dict(), "thirtyYear": self.thirty_year.to_dict()}


# ----------------------------
# Input snapshot
# ----------------------------
@dataclass(frozen=True)
class PatientLabSnapshot:
    age: Optional[int]
    sex: Optional[Union[Sex, str]]
    serum_creatinine: Optional[float] = None  # mg/dL
    uacr: Optional[float] = None  # mg/g
    calcium: Optional[float] = None  # mg/dL
    phosphate: Optional[float] = None  # mg/dL
    albumin: Optional[float] = None  # g/dL
    bicarbonate: Optional[float] = None  # mEq/L
    total_cholesterol: Optional[float] = None  # mg/dL
    hdl_cholesterol: Optional[float] = None  # mg/dL
    systolic_bp: Optional[float] = None  # mmHg
    bmi: Optional[float] = None  # kg/m^2
    is_smoker: Optional[bool] = None
    has_diabetes: Optional[bool] = None
    on_antihypertensive: Optional[bool] = None
    on_statin: Optional[bool] = None
    egfr: Optional[float] = None  # mL/min/1.73m^2; supplied value wins over computed
    on_renal_replacement_therapy: Optional[bool] = None  # dialysis or transplant

    def has(self, k: str) -> bool:
        return getattr(self, k, None) is not None


# ----------------------------
# Trace helper (auditable rules)
# ----------------------------
def add_trace(trace: List[Dict[str, Any]], rule: str, value: Any = None, effect: str = "") -> None:
    trace.append({"rule": rule, "value": value, "effect": effect})
