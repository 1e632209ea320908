# app.py
# ============================================================
# Renal + CV risk — Streamlit front end
# - Collects labs / demographics into a PatientLabSnapshot
# - eGFR (CKD-EPI 2021) -> KFRE 2y/5y + ASCVD 10y/30y
# - Every score shows its tag: value / N/A (out of model scope) / invalid input
# - Approximate-model notice for the ASCVD estimate
# - CKD disability % (G x A matrix) with recommendations
# ============================================================

from __future__ import annotations

import os
from typing import Optional

import streamlit as st

from logging_config import get_logger, setup_logging
from risk_engine import VERSION, evaluate, render_quick_text
from risk_output_adapter import generate_risk_output
from risk_types import PatientLabSnapshot, Sex
from ui_components import render_ckd_stage_chip, render_result_badge

setup_logging(use_json=os.environ.get("RISK_LOG_JSON") == "1", log_level=os.environ.get("RISK_LOG_LEVEL", "INFO"))
logger = get_logger(__name__)


# ============================================================
# Styling
# ============================================================

st.set_page_config(page_title="Renal + CV Risk", layout="wide")

st.markdown(
    """
<style>
html, body, [class*="css"] {
  font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Inter, "Helvetica Neue", Arial, sans-serif;
  color: #111827;
}

.smallcaps {
  font-variant: all-small-caps;
  letter-spacing: 0.06em;
  color: rgba(17,24,39,0.72);
}

.card {
  background: #ffffff;
  border: 1px solid rgba(17,24,39,0.12);
  border-radius: 16px;
  padding: 16px;
}

.muted {
  color: rgba(17,24,39,0.65);
  font-size: 0.92rem;
}

.badge {
  display: inline-block;
  padding: 2px 10px;
  border-radius: 999px;
  border: 1px solid rgba(17,24,39,0.14);
  font-size: 0.82rem;
  margin-right: 6px;
}

pre {
  white-space: pre-wrap !important;
  word-wrap: break-word !important;
}
</style>
""",
    unsafe_allow_html=True,
)


# ============================================================
# Helpers
# ============================================================

def _optional_number(label: str, key: str, step: float = 0.1) -> Optional[float]:
    """Blank input -> None (not measured), never 0."""
    return st.number_input(label, min_value=0.0, value=None, step=step, key=key, placeholder="not measured")


def _yes_no(label: str, key: str) -> bool:
    return st.radio(label, options=["No", "Yes"], horizontal=True, key=key) == "Yes"


def build_snapshot(form: dict) -> PatientLabSnapshot:
    return PatientLabSnapshot(
        age=int(form["age"]) if form.get("age") is not None else None,
        sex=form.get("sex"),
        serum_creatinine=form.get("creatinine"),
        uacr=form.get("uacr"),
        calcium=form.get("calcium"),
        phosphate=form.get("phosphate"),
        albumin=form.get("albumin"),
        bicarbonate=form.get("bicarbonate"),
        total_cholesterol=form.get("tc"),
        hdl_cholesterol=form.get("hdl"),
        systolic_bp=form.get("sbp"),
        bmi=form.get("bmi"),
        is_smoker=form.get("smoker"),
        has_diabetes=form.get("diabetes"),
        on_antihypertensive=form.get("bp_treated"),
        on_statin=form.get("statin"),
        egfr=form.get("egfr_supplied"),
        on_renal_replacement_therapy=form.get("on_rrt"),
    )


# ============================================================
# Header
# ============================================================

st.markdown(
    f"""
<div class="card">
  <div style="display:flex;justify-content:space-between;align-items:center;gap:12px;">
    <div>
      <div class="smallcaps">Renal + CV Risk</div>
      <div style="font-size:1.35rem;font-weight:700;margin-top:4px;">eGFR → Kidney failure risk → ASCVD risk</div>
      <div class="muted" style="margin-top:4px;">Enter labs and demographics. Scores outside a model's scope show N/A; bad inputs are flagged separately.</div>
    </div>
    <div style="text-align:right;">
      <span class="badge">{VERSION['engine']}</span>
    </div>
  </div>
</div>
""",
    unsafe_allow_html=True,
)

left, right = st.columns([1.1, 0.9], gap="large")


# -----------------------------
# Left: inputs
# -----------------------------
with left:
    st.markdown('<div class="smallcaps">Input</div>', unsafe_allow_html=True)

    with st.form("inputs_form"):
        c1, c2 = st.columns(2)

        with c1:
            age = st.number_input("Age (years)", 1, 120, value=65, step=1)
            sex = st.radio("Sex", options=[Sex.MALE.value, Sex.FEMALE.value], horizontal=True)
            creatinine = st.number_input("Serum creatinine (mg/dL)", 0.0, 30.0, value=1.2, step=0.01)
            use_supplied = st.checkbox("Use a lab-reported eGFR instead of CKD-EPI 2021")
            egfr_supplied = st.number_input("Reported eGFR (mL/min/1.73m²)", 0.0, 200.0, value=60.0, step=1.0)
            uacr = st.number_input("UACR (mg/g)", 0.0, 10000.0, value=30.0, step=1.0)
            on_rrt = st.checkbox("On renal replacement therapy (dialysis / transplant)")

            st.markdown("**Optional KFRE labs**")
            calcium = _optional_number("Calcium (mg/dL)", "calcium")
            phosphate = _optional_number("Phosphate (mg/dL)", "phosphate")
            albumin = _optional_number("Albumin (g/dL)", "albumin")
            bicarbonate = _optional_number("Bicarbonate (mEq/L)", "bicarbonate", step=1.0)

        with c2:
            tc = st.number_input("Total cholesterol (mg/dL)", 0, 1000, value=200, step=1)
            hdl = st.number_input("HDL (mg/dL)", 0, 300, value=45, step=1)
            sbp = st.number_input("SBP (mmHg)", 0, 300, value=130, step=1)
            bmi = st.number_input("BMI (kg/m²)", 0.0, 100.0, value=27.0, step=0.1)

            smoker = _yes_no("Current smoker", "smoker")
            diabetes = _yes_no("Diabetes", "diabetes")
            bp_treated = _yes_no("On antihypertensive medication", "bp_treated")
            statin = _yes_no("On statin", "statin")

        submitted = st.form_submit_button("Calculate", type="primary", use_container_width=True)

    if submitted:
        form = {
            "age": age,
            "sex": sex,
            "creatinine": float(creatinine),
            "egfr_supplied": float(egfr_supplied) if use_supplied else None,
            "uacr": float(uacr),
            "calcium": calcium,
            "phosphate": phosphate,
            "albumin": albumin,
            "bicarbonate": bicarbonate,
            "tc": float(tc),
            "hdl": float(hdl),
            "sbp": float(sbp),
            "bmi": float(bmi),
            "smoker": smoker,
            "diabetes": diabetes,
            "bp_treated": bp_treated,
            "statin": statin,
            "on_rrt": on_rrt,
        }

        try:
            patient = build_snapshot(form)
            result = evaluate(patient)
            st.session_state["last_patient"] = patient
            st.session_state["last_result"] = result
            st.session_state["last_output"] = generate_risk_output(patient, result)
            st.session_state["last_output_text"] = render_quick_text(patient, result)
        except Exception as e:
            logger.exception("Risk engine failed")
            st.error(f"Engine error: {e}")


# -----------------------------
# Right: scores
# -----------------------------
with right:
    st.markdown('<div class="smallcaps">Scores</div>', unsafe_allow_html=True)

    out = st.session_state.get("last_output")
    result = st.session_state.get("last_result")

    if out and result:
        res = result["results"]
        ckd = result["ckd"]

        if out["hasErrors"]:
            st.error("Some inputs are out of range: " + " • ".join(f"{e['label']}: {e['reason']}" for e in out["errors"]))

        chip = render_ckd_stage_chip(ckd.get("gStage"), ckd.get("aCategory"))
        if chip:
            st.markdown(chip, unsafe_allow_html=True)

        st.markdown(
            render_result_badge(f"eGFR ({result['egfr']['source']})", res["egfr"], band=ckd.get("gDescription"),
                                unit="mL/min/1.73m²", dp=0),
            unsafe_allow_html=True,
        )

        k1, k2 = st.columns(2)
        lvl = result["kfreRiskLevel"]
        with k1:
            st.markdown(render_result_badge("KFRE 2-year", res["kfre"].two_year, band=lvl["twoYear"]), unsafe_allow_html=True)
        with k2:
            st.markdown(render_result_badge("KFRE 5-year", res["kfre"].five_year, band=lvl["fiveYear"]), unsafe_allow_html=True)

        a1, a2 = st.columns(2)
        with a1:
            st.markdown(render_result_badge("ASCVD 10-year", res["cardio"].ten_year, band=result["cardioCategory"]),
                        unsafe_allow_html=True)
        with a2:
            st.markdown(render_result_badge("ASCVD 30-year", res["cardio"].thirty_year), unsafe_allow_html=True)

        if out["disabilityPercentage"] is not None:
            rrt = " (on RRT)" if ckd.get("onRRT") else ""
            st.markdown(f"**Disability assessment:** {out['disabilityPercentage']}%{rrt}")
            with st.expander("Recommendations"):
                for r in out["recommendations"]:
                    st.markdown(f"- {r}")

        for n in out["notices"]:
            st.info(n)
    else:
        st.markdown('<div class="muted">Enter values and click <b>Calculate</b>.</div>', unsafe_allow_html=True)


# ============================================================
# Output area
# ============================================================

last_output_text = st.session_state.get("last_output_text")
if last_output_text:
    st.markdown("#### Summary")
    st.code(last_output_text)

    with st.expander("Rule trace"):
        st.json(st.session_state["last_result"]["trace"])

    with st.expander("Output contract"):
        st.json({k: v for k, v in st.session_state["last_output"].items() if k != "markdown"})

st.caption("Decision support only. The ASCVD estimate uses a simplified model pending clinical calibration.")
