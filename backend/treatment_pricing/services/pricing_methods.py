"""
pricing_methods.py — Pricing strategy resolver.

Maps a pricing-method tag plus a measurement context to a cost and a
human-readable calculation trace ("$45 × 2.5m = $112.50").

Covers:
  - Canonical method codes and alias normalisation (per_sqm, per-metre, grid, flat …)
  - "inherit" resolution against a parent/template-level method
  - Cost formulas:
      per-linear-meter   base × rail_m
      per-linear-yard    base × rail_yd
      per-sqm            base × rail_m × drop_m
      per-drop           base × drop_m
      per-panel          base × curtain_count
      per-width          base × widths_required
      percentage         fabric_cost × base / 100
      pricing-grid       grid cell for (rail, drop)
      fixed / per-unit / per-item / per-piece / per-roll / unknown   base
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from treatment_pricing.config import LOGGER_PREFIX
from treatment_pricing.services.pricing_grid import get_price_from_grid

logger = logging.getLogger(f"{LOGGER_PREFIX}.pricing-methods")


# ---------------------------------------------------------------------------
# Method codes
# ---------------------------------------------------------------------------

FIXED = "fixed"
PER_UNIT = "per-unit"
PER_PIECE = "per-piece"
PER_ROLL = "per-roll"
PER_LINEAR_METER = "per-linear-meter"
PER_LINEAR_YARD = "per-linear-yard"
PER_SQM = "per-sqm"
PER_DROP = "per-drop"
PER_PANEL = "per-panel"
PER_WIDTH = "per-width"
PERCENTAGE = "percentage"
PRICING_GRID = "pricing-grid"
INHERIT = "inherit"

CM_PER_YARD: float = 91.44

# Lower-cased, hyphenated spelling -> canonical code
METHOD_ALIASES: Dict[str, str] = {
    "per-meter":         PER_LINEAR_METER,
    "per-metre":         PER_LINEAR_METER,
    "per-linear-meter":  PER_LINEAR_METER,
    "per-linear-metre":  PER_LINEAR_METER,
    "per-running-meter": PER_LINEAR_METER,
    "per-running-metre": PER_LINEAR_METER,
    "linear-meter":      PER_LINEAR_METER,
    "linear-metre":      PER_LINEAR_METER,
    "per-m":             PER_LINEAR_METER,
    "per-yard":          PER_LINEAR_YARD,
    "per-linear-yard":   PER_LINEAR_YARD,
    "per-running-yard":  PER_LINEAR_YARD,
    "per-sqm":           PER_SQM,
    "per-square-meter":  PER_SQM,
    "per-square-metre":  PER_SQM,
    "per-m2":            PER_SQM,
    "pricing-grid":      PRICING_GRID,
    "grid":              PRICING_GRID,
    "fixed":             FIXED,
    "fixed-price":       FIXED,
    "flat":              FIXED,
    "flat-rate":         FIXED,
    "per-unit":          PER_UNIT,
    "per-item":          PER_UNIT,
    "per-piece":         PER_PIECE,
    "per-roll":          PER_ROLL,
    "per-panel":         PER_PANEL,
    "per-drop":          PER_DROP,
    "per-width":         PER_WIDTH,
    "percentage":        PERCENTAGE,
    "percent":           PERCENTAGE,
    "inherit":           INHERIT,
}

# Quantity unit shown on breakdown lines for each method
METHOD_UNITS: Dict[str, str] = {
    PER_LINEAR_METER: "m",
    PER_LINEAR_YARD:  "yd",
    PER_SQM:          "sqm",
    PER_DROP:         "m",
    PER_PANEL:        "panel",
    PER_WIDTH:        "width",
    PERCENTAGE:       "%",
    PRICING_GRID:     "unit",
    PER_ROLL:         "roll",
}


def normalize_pricing_method(method: Optional[str]) -> Optional[str]:
    """
    Canonical code for ``method`` ('per_sqm' -> 'per-sqm', 'grid' -> 'pricing-grid').

    Blank input returns None; unrecognised spellings are returned lower-cased
    and hyphenated so they fall through to the fixed-price branch.
    """
    if method is None:
        return None
    text = str(method).strip().lower().replace("_", "-").replace(" ", "-")
    if not text:
        return None
    return METHOD_ALIASES.get(text, text)


def resolve_pricing_method(method: Optional[str], parent_method: Optional[str]) -> Optional[str]:
    """Substitute ``parent_method`` when ``method`` is inherit (or unset); otherwise unchanged."""
    normalized = normalize_pricing_method(method)
    if normalized is None or normalized == INHERIT:
        return normalize_pricing_method(parent_method)
    return normalized


# ---------------------------------------------------------------------------
# Context / result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PricingContext:
    """Measurements and running totals a pricing method can draw on (lengths in cm)."""
    base_cost: float = 0.0
    rail_width_cm: float = 0.0
    drop_cm: float = 0.0
    fullness: float = 1.0
    curtain_count: int = 1
    widths_required: int = 0
    fabric_cost: float = 0.0
    pricing_grid_data: Any = None
    currency_symbol: str = "$"


@dataclass(frozen=True)
class PriceCalculation:
    cost: float
    calculation: str
    method: str
    quantity: float
    unit: str


def _fmt(value: float) -> str:
    """Compact number for traces: 2.50 -> '2.5', 45.0 -> '45'."""
    return f"{value:.2f}".rstrip("0").rstrip(".")


def calculate_price(method: Optional[str], context: PricingContext) -> PriceCalculation:
    """
    Cost for one priced item under ``method``.

    ``inherit`` must be resolved by the caller (see resolve_pricing_method);
    an unresolved inherit, a missing method or an unknown method is priced
    as fixed.
    """
    code = normalize_pricing_method(method) or FIXED
    sym = context.currency_symbol
    base = float(context.base_cost or 0.0)
    rail_m = (context.rail_width_cm or 0.0) / 100
    drop_m = (context.drop_cm or 0.0) / 100

    if code == PER_LINEAR_METER:
        cost = base * rail_m
        return PriceCalculation(
            cost, f"{sym}{_fmt(base)} × {_fmt(rail_m)}m = {sym}{cost:.2f}", code, rail_m, "m",
        )

    if code == PER_LINEAR_YARD:
        yards = (context.rail_width_cm or 0.0) / CM_PER_YARD
        cost = base * yards
        return PriceCalculation(
            cost, f"{sym}{_fmt(base)} × {_fmt(yards)}yd = {sym}{cost:.2f}", code, yards, "yd",
        )

    if code == PER_SQM:
        sqm = rail_m * drop_m
        cost = base * sqm
        return PriceCalculation(
            cost, f"{sym}{_fmt(base)} × {_fmt(sqm)}sqm = {sym}{cost:.2f}", code, sqm, "sqm",
        )

    if code == PER_DROP:
        cost = base * drop_m
        return PriceCalculation(
            cost, f"{sym}{_fmt(base)} × {_fmt(drop_m)}m drop = {sym}{cost:.2f}", code, drop_m, "m",
        )

    if code == PER_PANEL:
        panels = context.curtain_count or 0
        cost = base * panels
        return PriceCalculation(
            cost, f"{sym}{_fmt(base)} × {panels} panel(s) = {sym}{cost:.2f}", code, panels, "panel",
        )

    if code == PER_WIDTH:
        widths = context.widths_required or 0
        cost = base * widths
        return PriceCalculation(
            cost, f"{sym}{_fmt(base)} × {widths} width(s) = {sym}{cost:.2f}", code, widths, "width",
        )

    if code == PERCENTAGE:
        fabric_cost = context.fabric_cost or 0.0
        cost = fabric_cost * base / 100
        return PriceCalculation(
            cost, f"{_fmt(base)}% of {sym}{fabric_cost:.2f} = {sym}{cost:.2f}", code, base, "%",
        )

    if code == PRICING_GRID:
        cost = get_price_from_grid(context.pricing_grid_data, context.rail_width_cm, context.drop_cm)
        if cost <= 0:
            logger.info("Grid-priced item has no matching cell for %.1f x %.1f cm",
                        context.rail_width_cm or 0.0, context.drop_cm or 0.0)
        return PriceCalculation(
            cost,
            f"Grid {_fmt(context.rail_width_cm or 0)} × {_fmt(context.drop_cm or 0)}cm = {sym}{cost:.2f}",
            code, 1, "unit",
        )

    if code == INHERIT:
        logger.warning("Unresolved 'inherit' pricing method priced as fixed")
    elif code not in (FIXED, PER_UNIT, PER_PIECE, PER_ROLL):
        logger.debug("Unknown pricing method '%s' priced as fixed", code)
    return PriceCalculation(base, f"{sym}{base:.2f} (fixed)", code, 1, METHOD_UNITS.get(code, "unit"))
