"""
pricing_grid.py — Width × drop price-grid normalisation and lookup.

Grids arrive in whichever shape the supplier import produced them:

  * standard:  {"widthColumns": [...], "dropRows": [{"drop": d, "prices": [...]}], "unit": "cm"}
  * ranges:    {"widthRanges": [...], "dropRanges": [...], "prices": [[...], ...]}
  * flat dict: {"widthColumns": [...], "dropRows": [d, ...], "prices": {"w_d": p}}
  * w/h:       {"widths": [...], "heights": [...], "prices": [[...], ...]}
  * cells:     [{"width": w, "height": h, "price": p}, ...]  (or under "cells")

2-D ``prices`` arrays are indexed ``prices[drop_index][width_index]``.
Breakpoints given as range labels ("100-150") use the upper bound, and
``unit: "mm"`` breakpoints are converted to cm.

Lookup is total: malformed data, empty grids and out-of-range queries all
return 0 so the caller can fall back to another strategy.
"""

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from treatment_pricing.config import LOGGER_PREFIX
from treatment_pricing.services.field_resolver import to_number

logger = logging.getLogger(f"{LOGGER_PREFIX}.pricing-grid")

_NUMBER_IN_TEXT = re.compile(r"\d+(?:\.\d+)?")

GRID_POLICIES: Tuple[str, ...] = ("ceiling", "nearest")


@dataclass(frozen=True)
class PricingGrid:
    """Normalised grid: ascending breakpoints in cm plus (width, height) -> price cells."""
    widths: Tuple[float, ...]
    heights: Tuple[float, ...]
    prices: Mapping[Tuple[float, float], float] = field(default_factory=dict)

    def price_at(self, width_bp: float, height_bp: float) -> float:
        return self.prices.get((width_bp, height_bp), 0.0)


def _parse_breakpoint(value: Any) -> Optional[float]:
    number = to_number(value)
    if number is not None:
        return number
    if isinstance(value, str):
        found = _NUMBER_IN_TEXT.findall(value.replace(",", ""))
        if found:
            return max(float(n) for n in found)
    return None


def _parse_price(value: Any) -> Optional[float]:
    number = to_number(value)
    if number is not None:
        return number
    if isinstance(value, str):
        found = _NUMBER_IN_TEXT.search(value.replace(",", ""))
        if found:
            return float(found.group())
    return None


def _build(cells: List[Tuple[Any, Any, Any]], unit: str) -> Optional[PricingGrid]:
    scale = 0.1 if str(unit).lower() == "mm" else 1.0
    prices: Dict[Tuple[float, float], float] = {}
    for raw_w, raw_h, raw_price in cells:
        width = _parse_breakpoint(raw_w)
        height = _parse_breakpoint(raw_h)
        price = _parse_price(raw_price)
        if width is None or height is None or price is None:
            continue
        key = (round(width * scale, 6), round(height * scale, 6))
        prices.setdefault(key, price)

    if not prices:
        return None
    widths = tuple(sorted({w for w, _ in prices}))
    heights = tuple(sorted({h for _, h in prices}))
    return PricingGrid(widths=widths, heights=heights, prices=MappingProxyType(prices))


def _cells_from_matrix(widths: List[Any], heights: List[Any], matrix: List[Any]):
    cells = []
    for row_idx, height in enumerate(heights):
        row = matrix[row_idx] if row_idx < len(matrix) else []
        if not isinstance(row, (list, tuple)):
            continue
        for col_idx, width in enumerate(widths):
            if col_idx < len(row):
                cells.append((width, height, row[col_idx]))
    return cells


def _cells_from_dict(data: Mapping[str, Any]) -> Optional[List[Tuple[Any, Any, Any]]]:
    width_columns = data.get("widthColumns")
    drop_rows = data.get("dropRows")
    prices = data.get("prices")

    if isinstance(data.get("cells"), list):
        return _cells_from_list(data["cells"])

    if isinstance(width_columns, list) and isinstance(drop_rows, list) and drop_rows:
        if isinstance(drop_rows[0], Mapping):
            # Standard shape: each drop row carries its own prices list
            cells = []
            for row in drop_rows:
                row_prices = row.get("prices") or []
                for col_idx, width in enumerate(width_columns):
                    if col_idx < len(row_prices):
                        cells.append((width, row.get("drop"), row_prices[col_idx]))
            return cells
        if isinstance(prices, Mapping):
            cells = []
            for drop in drop_rows:
                for width in width_columns:
                    value = None
                    for key in (f"{width}_{drop}", f"{width}-{drop}", f"{drop}_{width}"):
                        if key in prices:
                            value = prices[key]
                            break
                    cells.append((width, drop, value))
            return cells
        if isinstance(prices, list):
            return _cells_from_matrix(width_columns, drop_rows, prices)

    if isinstance(data.get("widthRanges"), list) and isinstance(data.get("dropRanges"), list):
        return _cells_from_matrix(data["widthRanges"], data["dropRanges"], prices or [])

    if isinstance(data.get("widths"), list) and isinstance(data.get("heights"), list):
        return _cells_from_matrix(data["widths"], data["heights"], prices or [])

    return None


def _cells_from_list(items: List[Any]) -> List[Tuple[Any, Any, Any]]:
    cells = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        width = item.get("width", item.get("width_cm"))
        height = item.get("height", item.get("drop", item.get("height_cm")))
        cells.append((width, height, item.get("price")))
    return cells


def normalize_grid(data: Any) -> Optional[PricingGrid]:
    """Convert any supported grid shape to a PricingGrid; None when nothing usable."""
    if isinstance(data, PricingGrid):
        return data
    try:
        if isinstance(data, list):
            return _build(_cells_from_list(data), "cm")
        if isinstance(data, Mapping):
            cells = _cells_from_dict(data)
            if cells is None:
                logger.warning("Unrecognised pricing grid shape (keys: %s)", sorted(map(str, data)))
                return None
            return _build(cells, data.get("unit", "cm"))
    except (TypeError, ValueError, AttributeError, KeyError, IndexError) as exc:
        logger.warning("Malformed pricing grid ignored: %s", exc)
        return None
    return None


def _pick(breakpoints: Tuple[float, ...], target: float, policy: str) -> Optional[float]:
    if not breakpoints:
        return None
    if policy == "nearest":
        # ties go to the larger breakpoint
        return min(breakpoints, key=lambda bp: (abs(bp - target), -bp))
    for bp in breakpoints:
        if bp >= target:
            return bp
    return None


def get_price_from_grid(
    grid_data: Any,
    width_cm: Any,
    height_cm: Any,
    policy: str = "ceiling",
) -> float:
    """
    Price for a (width, height) query in cm, or 0 when there is no match.

    ``policy="ceiling"`` (default) picks the smallest breakpoint ≥ the target
    on each axis; a query beyond every breakpoint is a miss.
    ``policy="nearest"`` picks the closest breakpoint on each axis.
    """
    grid = normalize_grid(grid_data)
    width = to_number(width_cm)
    height = to_number(height_cm)
    if grid is None or width is None or height is None:
        return 0.0

    if policy not in GRID_POLICIES:
        logger.warning("Unknown grid policy '%s', using ceiling match", policy)
        policy = "ceiling"

    width_bp = _pick(grid.widths, width, policy)
    height_bp = _pick(grid.heights, height, policy)
    if width_bp is None or height_bp is None:
        logger.info(
            "Pricing grid miss: %.1f x %.1f cm exceeds grid (max %.1f x %.1f)",
            width, height, grid.widths[-1], grid.heights[-1],
        )
        return 0.0

    price = grid.price_at(width_bp, height_bp)
    logger.debug("Pricing grid hit: %.1f x %.1f -> cell %s x %s = %.2f",
                 width, height, width_bp, height_bp, price)
    return price
