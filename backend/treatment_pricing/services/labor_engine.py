"""
labor_engine.py — Workroom labour estimate for made-to-measure treatments.

Covers:
  - Base make-up hours from finished fabric width and drop
  - Complexity multipliers (simple / moderate / complex)
  - Seam sewing hours passed through from the fabric calculator
  - Cost at an hourly labour rate

    base_hours       = BASE_SETUP_HOURS
                       + rail_m × fullness × HOURS_PER_FABRIC_METRE
                       + max(0, drop_m − STANDARD_DROP_M) × HOURS_PER_EXTRA_DROP_METRE
    complexity_hours = base_hours × (multiplier − 1)
    hours            = base_hours × multiplier + seam_hours
    cost             = hours × labor_rate
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from treatment_pricing.config import LOGGER_PREFIX
from treatment_pricing.services.errors import InvalidDimensionError
from treatment_pricing.services.field_resolver import to_number


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BASE_SETUP_HOURS: float = 0.5             # cutting table setup, pattern check
HOURS_PER_FABRIC_METRE: float = 0.4       # per metre of flat (gathered) fabric width
STANDARD_DROP_M: float = 2.4              # drops up to this length need no extra time
HOURS_PER_EXTRA_DROP_METRE: float = 0.3   # per metre of drop beyond standard

COMPLEXITY_MULTIPLIERS: Dict[str, float] = {
    "simple":   1.00,
    "moderate": 1.25,
    "complex":  1.50,
}
DEFAULT_COMPLEXITY: str = "moderate"

# Workroom hourly rate used when none is supplied
DEFAULT_LABOR_RATE: float = 25.0


@dataclass(frozen=True)
class LaborBreakdown:
    base_hours: float
    complexity_hours: float
    seam_hours: float


@dataclass(frozen=True)
class LaborResult:
    hours: float
    cost: float
    rate: float
    complexity: str
    multiplier: float
    breakdown: LaborBreakdown


# ---------------------------------------------------------------------------
# LaborEngine
# ---------------------------------------------------------------------------

class LaborEngine:
    """
    Labour hours and cost for one treatment.

    ``overrides`` may replace any of: base_setup_hours, hours_per_fabric_metre,
    standard_drop_m, hours_per_extra_drop_metre, complexity_multipliers,
    default_labor_rate.
    """

    def __init__(
        self,
        overrides: Optional[Dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        cfg = overrides or {}
        self.base_setup_hours = float(cfg.get("base_setup_hours", BASE_SETUP_HOURS))
        self.hours_per_fabric_metre = float(cfg.get("hours_per_fabric_metre", HOURS_PER_FABRIC_METRE))
        self.standard_drop_m = float(cfg.get("standard_drop_m", STANDARD_DROP_M))
        self.hours_per_extra_drop_metre = float(
            cfg.get("hours_per_extra_drop_metre", HOURS_PER_EXTRA_DROP_METRE)
        )
        self.complexity_multipliers: Dict[str, float] = dict(COMPLEXITY_MULTIPLIERS)
        self.complexity_multipliers.update(cfg.get("complexity_multipliers", {}))
        self.default_labor_rate = float(cfg.get("default_labor_rate", DEFAULT_LABOR_RATE))
        self.log = logger or logging.getLogger(f"{LOGGER_PREFIX}.labor")

    def get_complexity_multiplier(self, complexity: Optional[str]) -> float:
        """Multiplier for ``complexity``; ValueError for an unknown level."""
        key = (complexity or DEFAULT_COMPLEXITY).strip().lower()
        if key not in self.complexity_multipliers:
            raise ValueError(
                f"treatment_complexity must be one of {sorted(self.complexity_multipliers)}; "
                f"received {complexity!r}"
            )
        return self.complexity_multipliers[key]

    def calculate_base_hours(self, rail_width_cm: float, drop_cm: float, fullness: float = 1.0) -> float:
        rail_m = rail_width_cm / 100
        drop_m = drop_cm / 100
        extra_drop_m = max(0.0, drop_m - self.standard_drop_m)
        return (
            self.base_setup_hours
            + rail_m * fullness * self.hours_per_fabric_metre
            + extra_drop_m * self.hours_per_extra_drop_metre
        )

    def calculate_labor(self, params: Mapping[str, Any]) -> LaborResult:
        """
        Estimate labour for a treatment.

        ``params`` keys:
            rail_width            (cm, required > 0)
            drop                  (cm, required > 0)
            fullness              (default 1)
            labor_rate            (per hour, default DEFAULT_LABOR_RATE)
            seam_labor_hours      (default 0)
            treatment_complexity  simple | moderate | complex (default moderate)
        """
        rail = to_number(params.get("rail_width"))
        drop = to_number(params.get("drop"))
        if rail is None or rail <= 0:
            raise InvalidDimensionError("rail_width", params.get("rail_width"))
        if drop is None or drop <= 0:
            raise InvalidDimensionError("drop", params.get("drop"))

        fullness = to_number(params.get("fullness")) or 1.0
        rate = to_number(params.get("labor_rate"))
        if rate is None:
            rate = self.default_labor_rate
        if rate < 0:
            raise ValueError(f"labor_rate must not be negative; received {rate}")
        seam_hours = max(0.0, to_number(params.get("seam_labor_hours")) or 0.0)

        complexity = (params.get("treatment_complexity") or DEFAULT_COMPLEXITY).strip().lower()
        multiplier = self.get_complexity_multiplier(complexity)

        base_hours = self.calculate_base_hours(rail, drop, fullness)
        complexity_hours = base_hours * (multiplier - 1)
        hours = base_hours * multiplier + seam_hours
        cost = hours * rate

        self.log.debug(
            "Labor: %.2fh base × %.2f (%s) + %.2fh seams = %.2fh @ %.2f",
            base_hours, multiplier, complexity, seam_hours, hours, rate,
        )
        return LaborResult(
            hours=round(hours, 2),
            cost=round(cost, 2),
            rate=rate,
            complexity=complexity,
            multiplier=multiplier,
            breakdown=LaborBreakdown(
                base_hours=round(base_hours, 2),
                complexity_hours=round(complexity_hours, 2),
                seam_hours=round(seam_hours, 2),
            ),
        )


def calculate_labor(params: Mapping[str, Any]) -> LaborResult:
    """Labour estimate with default constants; see LaborEngine.calculate_labor."""
    return LaborEngine().calculate_labor(params)
