# risk_engine.py
# Full patient assessment: eGFR -> {KFRE, ASCVD}
#
# - eGFR: supplied value wins; otherwise CKD-EPI 2021 from creatinine
# - KFRE and ASCVD run independently off that eGFR
# - KDIGO G stage / A category when computable
# - Disability % (G x A matrix, 100% on RRT) + follow-up recommendations
# - Rule trace: list of {rule, value, effect} for every branch taken
#
# The three calculators stay independently callable; this module only
# sequences them and shapes one dict for the UI / output adapter.

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from egfr_engine import (
    albuminuria_category,
    ckd_g_stage,
    ckd_recommendations,
    describe_a_category,
    describe_g_stage,
    disability_percentage,
    egfr_from_snapshot,
)
from kfre_engine import kfre_from_snapshot, kfre_risk_level
from prevent_engine import ascvd_risk_category, model_capabilities, prevent_from_snapshot
from risk_types import (
    Computed,
    Invalid,
    PatientLabSnapshot,
    RiskResult,
    add_trace,
    safe_float,
)

logger = logging.getLogger(__name__)


VERSION = {
    "engine": "renal-cv-risk v1.0",
    "egfr": "CKD-EPI 2021 creatinine (race-free)",
    "kfre": "KFRE 8-variable (Tangri 2016, North American cohort)",
    "ascvd": "PREVENT-style ASCVD (simplified; approximate)",
}


# ----------------------------
# eGFR resolution
# ----------------------------
def resolve_egfr(p: PatientLabSnapshot, trace: List[Dict[str, Any]]) -> Dict[str, Any]:
    if p.has("egfr"):
        supplied = safe_float(p.egfr)
        if supplied is None or supplied <= 0:
            add_trace(trace, "eGFR_supplied_invalid", p.egfr, "Supplied eGFR rejected")
            return {"result": Invalid("Supplied eGFR must be a positive number."), "source": "supplied"}
        add_trace(trace, "eGFR_supplied", supplied, "Using supplied eGFR")
        return {"result": Computed(supplied), "source": "supplied"}

    if not p.has("serum_creatinine"):
        add_trace(trace, "eGFR_missing_creatinine", None, "eGFR not calculated")
        return {"result": Invalid("Serum creatinine is required to estimate eGFR."), "source": "computed"}

    res = egfr_from_snapshot(p)
    if res.is_computed:
        add_trace(trace, "eGFR_computed", round(res.value, 2), "CKD-EPI 2021")
    else:
        add_trace(trace, "eGFR_invalid", res.reason, "eGFR not calculated")
    return {"result": res, "source": "computed"}


def ckd_staging(egfr: RiskResult, uacr: Any, trace: List[Dict[str, Any]], on_rrt: bool = False) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "gStage": None,
        "gDescription": None,
        "aCategory": None,
        "aDescription": None,
        "onRRT": bool(on_rrt),
        "disabilityPercentage": None,
        "recommendations": [],
    }

    if egfr.is_computed:
        g = ckd_g_stage(egfr.value)
        out["gStage"] = g
        out["gDescription"] = describe_g_stage(g)
        add_trace(trace, "CKD_G_stage", g, describe_g_stage(g))

    u = safe_float(uacr)
    if u is not None and u > 0:
        a = albuminuria_category(u)
        out["aCategory"] = a
        out["aDescription"] = describe_a_category(a)
        add_trace(trace, "CKD_A_category", a, describe_a_category(a))

    if out["gStage"] and out["aCategory"]:
        out["label"] = f"CKD {out['gStage']}{out['aCategory']}"

    # RRT overrides the matrix; otherwise both axes are needed
    if on_rrt or (out["gStage"] and out["aCategory"]):
        pct = disability_percentage(out["gStage"], out["aCategory"], on_rrt=bool(on_rrt))
        out["disabilityPercentage"] = pct
        out["recommendations"] = ckd_recommendations(out["gStage"], out["aCategory"], pct, on_rrt=bool(on_rrt))
        add_trace(trace, "CKD_disability", pct, "On RRT: 100%" if on_rrt else "G x A matrix")
    return out


def _band(result: RiskResult, banding) -> Optional[str]:
    return banding(result.value) if result.is_computed else None


# ----------------------------
# Public API
# ----------------------------
def evaluate(p: PatientLabSnapshot) -> Dict[str, Any]:
    trace: List[Dict[str, Any]] = []
    add_trace(trace, "Engine_start", VERSION["engine"], "Begin evaluation")

    egfr_info = resolve_egfr(p, trace)
    egfr_res: RiskResult = egfr_info["result"]
    egfr_value = egfr_res.value if egfr_res.is_computed else None

    ckd = ckd_staging(egfr_res, p.uacr, trace, on_rrt=bool(p.on_renal_replacement_therapy))

    # downstream calculators see the resolved eGFR only; None when unusable
    resolved = replace(p, egfr=egfr_value)

    kfre = kfre_from_snapshot(resolved)
    add_trace(trace, "KFRE", kfre.two_year.status, _effect(kfre.two_year))

    cardio = prevent_from_snapshot(resolved)
    add_trace(trace, "ASCVD", cardio.ten_year.status, _effect(cardio.ten_year))

    out = {
        "version": VERSION,
        "egfr": {**egfr_res.to_dict(), "source": egfr_info["source"]},
        "ckd": ckd,
        "kfre": kfre.to_dict(),
        "kfreRiskLevel": {
            "twoYear": _band(kfre.two_year, kfre_risk_level),
            "fiveYear": _band(kfre.five_year, kfre_risk_level),
        },
        "cardio": cardio.to_dict(),
        "cardioCategory": _band(cardio.ten_year, ascvd_risk_category),
        "modelCapabilities": {"ascvd": model_capabilities()},
        "results": {
            "egfr": egfr_res,
            "kfre": kfre,
            "cardio": cardio,
        },
        "trace": trace,
    }

    add_trace(trace, "Engine_end", VERSION["engine"], "Evaluation complete")
    logger.info(
        "Assessment complete: egfr=%s kfre=%s ascvd=%s",
        egfr_res.status,
        kfre.two_year.status,
        cardio.ten_year.status,
    )
    return out


def _effect(result: RiskResult) -> str:
    if result.is_computed:
        return f"{result.value:.2f}%"
    return result.reason


# ----------------------------
# Quick text
# ----------------------------
def _line(label: str, result: RiskResult, unit: str = "%", dp: int = 1, extra: str = "") -> str:
    if result.is_computed:
        v = int(round(result.value)) if dp == 0 else round(result.value, dp)
        txt = f"{v}{unit}"
        return f"{label}: {txt}{extra}"
    if result.status == "not_applicable":
        return f"{label}: N/A ({result.reason})"
    return f"{label}: invalid input ({result.reason})"


def render_quick_text(p: PatientLabSnapshot, out: Dict[str, Any]) -> str:
    res = out["results"]
    ckd = out["ckd"]

    lines = []
    lines.append(f"Renal + CV risk — {out['version']['engine']} — Quick Reference")
    lines.append(f"Patient: {p.age if p.age is not None else '—'} y, {getattr(p.sex, 'value', p.sex) or '—'}")
    lines.append("")

    src = out["egfr"]["source"]
    lines.append(_line(f"eGFR ({src})", res["egfr"], unit=" mL/min/1.73m²", dp=0))
    if ckd.get("label"):
        lines.append(f"Stage: {ckd['label']} — {ckd['gDescription']}; {ckd['aDescription']}")
    elif ckd.get("gStage"):
        lines.append(f"Stage: {ckd['gStage']} — {ckd['gDescription']}")
    if ckd.get("disabilityPercentage") is not None:
        rrt = " (on RRT)" if ckd.get("onRRT") else ""
        lines.append(f"Disability: {ckd['disabilityPercentage']}%{rrt}")

    lvl = out["kfreRiskLevel"]
    kfre = res["kfre"]
    lines.append(_line("KFRE 2-year", kfre.two_year, extra=f" ({lvl['twoYear']})" if lvl["twoYear"] else ""))
    lines.append(_line("KFRE 5-year", kfre.five_year, extra=f" ({lvl['fiveYear']})" if lvl["fiveYear"] else ""))

    cardio = res["cardio"]
    cat = out.get("cardioCategory")
    lines.append(_line("ASCVD 10-year", cardio.ten_year, extra=f" ({cat})" if cat else ""))
    lines.append(_line("ASCVD 30-year", cardio.thirty_year))
    if cardio.ten_year.is_computed:
        lines.append(f"Note: {out['modelCapabilities']['ascvd']['status']}.")

    return "\n".join(lines)
