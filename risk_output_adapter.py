# risk_output_adapter.py
# Output adapter: converts engine results into a camelCase display contract.
#
# Every score carries {status, value, display, severity}:
#   Computed       -> "12.3%"            severity by banding
#   NotApplicable  -> "N/A"              severity "info"
#   Invalid        -> "Invalid: <why>"   severity "error"
# A missing score is never rendered as 0.

from typing import Any, Dict, List, Optional

from egfr_engine import ckd_g_stage
from kfre_engine import kfre_risk_level
from prevent_engine import ascvd_risk_category
from risk_types import INVALID, NOT_APPLICABLE, PatientLabSnapshot, RiskResult

NA_TEXT = "N/A"


def format_result(result: RiskResult, unit: str = "%", dp: int = 1) -> str:
    if result.status == NOT_APPLICABLE:
        return NA_TEXT
    if result.status == INVALID:
        return f"Invalid: {result.reason}"
    v = result.value
    if dp == 0:
        txt = f"{int(round(v))}"
    else:
        txt = f"{round(v, dp):.{dp}f}"
    if not unit:
        return txt
    return f"{txt}{unit}" if unit == "%" else f"{txt} {unit}"


def _severity_kfre(v: float) -> str:
    lvl = kfre_risk_level(v)
    return {"High Risk": "high", "Medium Risk": "moderate"}.get(lvl, "low")


def _severity_ascvd(v: float) -> str:
    cat = ascvd_risk_category(v)
    if cat.startswith("High"):
        return "high"
    if cat.startswith("Intermediate") or cat.startswith("Borderline"):
        return "moderate"
    return "low"


def _severity_egfr(v: float) -> str:
    g = ckd_g_stage(v)
    if g in ("G1", "G2"):
        return "low"
    if g in ("G3a", "G3b"):
        return "moderate"
    return "high"


def _score(result: RiskResult, label: str, severity_fn, unit: str = "%", dp: int = 1,
           band: Optional[str] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {"label": label, "status": result.status, "display": format_result(result, unit, dp)}
    if result.is_computed:
        out["value"] = result.value
        out["severity"] = severity_fn(result.value)
        if band is not None:
            out["band"] = band
    else:
        out["value"] = None
        out["reason"] = result.reason
        out["severity"] = "error" if result.status == INVALID else "info"
    return out


def generate_risk_output(p: PatientLabSnapshot, engine_out: Dict[str, Any]) -> Dict[str, Any]:
    """
    CamelCase contract for the UI / downstream renderers.
    Expects engine_out from risk_engine.evaluate().
    """
    res = engine_out["results"]
    kfre = res["kfre"]
    cardio = res["cardio"]
    lvl = engine_out.get("kfreRiskLevel") or {}
    ckd = engine_out.get("ckd") or {}

    scores: List[Dict[str, Any]] = [
        _score(res["egfr"], "eGFR", _severity_egfr, unit="mL/min/1.73m²", dp=0, band=ckd.get("gStage")),
        _score(kfre.two_year, "KFRE 2-year", _severity_kfre, band=lvl.get("twoYear")),
        _score(kfre.five_year, "KFRE 5-year", _severity_kfre, band=lvl.get("fiveYear")),
        _score(cardio.ten_year, "ASCVD 10-year", _severity_ascvd, band=engine_out.get("cardioCategory")),
        _score(cardio.thirty_year, "ASCVD 30-year", _severity_ascvd),
    ]

    errors = [s for s in scores if s["status"] == INVALID]
    not_applicable = [s for s in scores if s["status"] == NOT_APPLICABLE]

    caps = (engine_out.get("modelCapabilities") or {}).get("ascvd") or {}
    notices: List[str] = []
    if caps.get("approximate") and cardio.ten_year.is_computed:
        notices.append(f"ASCVD: {caps.get('status')}.")
    if p.age is not None and cardio.thirty_year.is_computed and cardio.thirty_year.value == 0 and float(p.age) >= 60:
        notices.append("ASCVD 30-year risk is not estimated at age 60 or older (reported as 0).")

    title = "RENAL + CV RISK — SUMMARY"
    markdown = (
        f"{title}\n"
        + "\n".join([f"- {s['label']}: {s['display']}{' ('+s['band']+')' if s.get('band') else ''}" for s in scores])
        + ("\n\nNotes:\n" + "\n".join([f"- {n}" for n in notices]) if notices else "")
    )

    return {
        "title": title,
        "scores": scores,
        "ckdLabel": ckd.get("label"),
        "disabilityPercentage": ckd.get("disabilityPercentage"),
        "recommendations": list(ckd.get("recommendations") or []),
        "hasErrors": bool(errors),
        "errors": [{"label": s["label"], "reason": s["reason"]} for s in errors],
        "notApplicable": [{"label": s["label"], "reason": s["reason"]} for s in not_applicable],
        "notices": notices,
        "markdown": markdown,
    }
