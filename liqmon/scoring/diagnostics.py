from __future__ import annotations

"""Descriptive per-region readings shown next to the composite score.

None of these feed the score; they annotate the live analysis the same way
the regional panels of the monitor always have.
"""

from typing import Dict


def china_signal(m2_growth: float) -> str:
    if m2_growth > 12:
        return "excess liquidity"
    if m2_growth > 10:
        return "healthy growth"
    if m2_growth > 8:
        return "neutral"
    if m2_growth > 6:
        return "slowing growth"
    return "liquidity shortage"


def carry_risk(usdjpy: float, spread: float) -> str:
    """Yen carry-trade risk from the USD/JPY level and the US-Japan 10y spread."""

    if usdjpy > 150 and spread > 4:
        return "extreme risk"
    if usdjpy > 145 and spread > 3.5:
        return "high risk"
    if usdjpy > 140:
        return "moderate risk"
    if usdjpy < 130:
        return "unwind in progress"
    return "stable"


def tga_impact(month_change: float) -> str:
    # Treasury cash drawn down releases reserves; a build drains them.
    if month_change < -100000:
        return "large liquidity injection"
    if month_change < -50000:
        return "liquidity injection"
    if month_change > 100000:
        return "large liquidity drain"
    if month_change > 50000:
        return "liquidity drain"
    return "neutral"


def debt_ceiling_risk(tga_balance: float) -> str:
    if tga_balance < 100000:
        return "debt ceiling risk"
    if tga_balance < 200000:
        return "watch"
    return "sufficient"


def em_signal(strength_index: float) -> str:
    if strength_index > 1:
        return "EM strength"
    if strength_index < -1:
        return "EM weakness"
    return "neutral"


def funding_signal(sofr_iorb_bp: float, on_rrp: float, walcl_wow: float, walcl: float) -> str:
    """Money-market regime from repo spreads, RRP usage and the Fed balance sheet."""

    tight = 0
    easing = 0
    excess = 0

    if sofr_iorb_bp >= 10:
        tight += 2
    elif sofr_iorb_bp < 5:
        easing += 1

    if on_rrp >= 300000:
        excess += 2
    elif on_rrp >= 200000:
        tight += 1
    else:
        easing += 1

    if walcl_wow < 0:
        tight += 2
    elif walcl_wow > 0:
        easing += 2

    if walcl < 6500000:
        tight += 1

    if excess >= 2:
        return "excess"
    if tight >= easing and tight >= 3:
        return "tight"
    if easing > tight:
        return "easing"
    return "neutral"


def regional_readings(values: Dict[str, float]) -> Dict[str, object]:
    """Build every regional reading from a flat mapping of derived values.

    Expected keys mirror the engine's derived quantities plus the
    supplementary series (``sofr``, ``iorb``, ``us_10y``, ``jgb_10y``,
    ``treasury_account_month_change``).
    """

    def get(name: str) -> float:
        return float(values.get(name, 0.0))

    spread = get("us_10y") - get("jgb_10y")
    sofr_iorb_bp = (get("sofr") - get("iorb")) * 100
    return {
        "china": {
            "m2_growth": get("money_supply_growth"),
            "signal": china_signal(get("money_supply_growth")),
        },
        "japan": {
            "usdjpy": get("carry_pair"),
            "us_jp_spread": spread,
            "carry_risk": carry_risk(get("carry_pair"), spread),
        },
        "treasury": {
            "balance": get("treasury_account"),
            "week_change": get("treasury_account_wow"),
            "month_change": get("treasury_account_month_change"),
            "impact": tga_impact(get("treasury_account_month_change")),
            "debt_ceiling": debt_ceiling_risk(get("treasury_account")),
        },
        "em": {
            "strength_index": get("em_strength"),
            "signal": em_signal(get("em_strength")),
        },
        "funding": {
            "sofr_iorb_bp": sofr_iorb_bp,
            "signal": funding_signal(
                sofr_iorb_bp,
                get("reverse_repo"),
                get("balance_sheet_wow"),
                get("balance_sheet"),
            ),
        },
    }


__all__ = [
    "carry_risk",
    "china_signal",
    "debt_ceiling_risk",
    "em_signal",
    "funding_signal",
    "regional_readings",
    "tga_impact",
]
