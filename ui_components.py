# ui_components.py

import html

from risk_output_adapter import format_result
from risk_types import COMPUTED, INVALID, RiskResult

_STYLE_BY_STATUS = {
    COMPUTED: ("rgba(16,185,129,0.10)", "rgba(16,185,129,0.35)"),
    "not_applicable": ("rgba(107,114,128,0.10)", "rgba(107,114,128,0.35)"),
    INVALID: ("rgba(239,68,68,0.10)", "rgba(239,68,68,0.40)"),
}

_SEVERITY_COLORS = {
    "low": "#2e7d32",
    "moderate": "#f9a825",
    "high": "#c62828",
}


def render_result_badge(label: str, result: RiskResult, band: str | None = None,
                        unit: str = "%", dp: int = 1) -> str:
    """
    One score as a card. Computed / N/A / invalid each get their own look so
    an input error is never mistaken for an out-of-scope model.
    """
    bg, border = _STYLE_BY_STATUS.get(result.status, _STYLE_BY_STATUS[INVALID])
    value = html.escape(format_result(result, unit=unit, dp=dp))

    if result.is_computed:
        sub = html.escape(band) if band else ""
    elif result.status == INVALID:
        sub = "Check the entered values"
    else:
        sub = html.escape(result.reason)

    return f"""
    <div style="
        border:1px solid {border};
        background:{bg};
        border-radius:12px;
        padding:10px 12px;
        margin-bottom:8px;
    ">
      <div style="font-weight:600; font-size:0.82rem; color:rgba(31,41,55,0.70);">{html.escape(label)}</div>
      <div style="font-weight:800; font-size:1.35rem; margin-top:2px;">{value}</div>
      <div style="font-weight:600; font-size:0.78rem; color:rgba(31,41,55,0.70); margin-top:2px;">{sub}</div>
    </div>
    """


def render_ckd_stage_chip(g_stage: str | None, a_category: str | None = None) -> str:
    if not g_stage:
        return ""
    label = f"{g_stage}{a_category or ''}"
    if g_stage in ("G1", "G2"):
        col = _SEVERITY_COLORS["low"]
    elif g_stage in ("G3a", "G3b"):
        col = _SEVERITY_COLORS["moderate"]
    else:
        col = _SEVERITY_COLORS["high"]
    return (
        f'<span style="display:inline-block; padding:2px 10px; border-radius:999px; '
        f'background:{col}; color:white; font-weight:700; font-size:0.82rem;">CKD {html.escape(label)}</span>'
    )
