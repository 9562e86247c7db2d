"""
Pricing engine configuration — single source of truth for category keywords,
default pricing types, accessory formulas, hem defaults and logging settings.

Import from here in all services rather than hardcoding values.
"""
from __future__ import annotations

import os

# ── Logging ────────────────────────────────────────────────────────────────────

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")   # "json" | "text"

# Root name for every engine logger: treatment-pricing.<engine>
LOGGER_PREFIX: str = "treatment-pricing"


# ── Treatment categories ───────────────────────────────────────────────────────

CATEGORY_CURTAIN: str = "curtain"
CATEGORY_BLIND: str = "blind"
CATEGORY_WALLPAPER: str = "wallpaper"
CATEGORY_OTHER: str = "other"

# Checked in this order against treatment_category, category and name.
# Curtain words outrank the hardware words, so "Eyelet Curtains on Pole" is a
# curtain. Anything unmatched is priced as a curtain.
CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    (CATEGORY_WALLPAPER, ("wallpaper", "wall_covering", "wallcovering")),
    (CATEGORY_BLIND, (
        "blind", "shade", "roman", "roller", "venetian",
        "vertical", "cellular", "honeycomb",
    )),
    (CATEGORY_CURTAIN, ("curtain", "drape", "sheer")),
    (CATEGORY_OTHER, ("shutter", "awning", "hardware", "track", "pole")),
]

# Pricing type used when the template leaves pricing_type unset
DEFAULT_PRICING_TYPE: dict[str, str] = {
    CATEGORY_CURTAIN:   "per-linear-meter",
    CATEGORY_BLIND:     "per-sqm",
    CATEGORY_WALLPAPER: "per-roll",
    CATEGORY_OTHER:     "fixed",
}


# ── Panels & allowances ────────────────────────────────────────────────────────

# Curtains are made as a pair unless the template says otherwise
DEFAULT_PANEL_CONFIGURATION: str = "pair"
PAIR_CONFIGURATIONS: frozenset[str] = frozenset({"pair", "double"})

# Neutral fullness when a template carries none (warning raised)
DEFAULT_FULLNESS_RATIO: float = 1.0

# Sewing time added per seam joining two fabric widths
SEAM_LABOR_HOURS_PER_SEAM: float = 0.25

# Terminal fallback for blind hems once user-editable and legacy fields are empty
BLIND_HEM_DEFAULTS: dict[str, float] = {
    "header_hem_cm": 0.0,
    "bottom_hem_cm": 0.0,
    "side_hem_cm":   0.0,
}


# ── Headings & lining ──────────────────────────────────────────────────────────

# Heading selections that never carry an inventory price
NO_COST_HEADINGS: frozenset[str] = frozenset({"", "none", "standard"})
NO_LINING: frozenset[str] = frozenset({"", "none"})


# ── Currency ───────────────────────────────────────────────────────────────────

DEFAULT_CURRENCY: str = "GBP"

# Symbol used only inside human-readable calculation traces
CURRENCY_SYMBOLS: dict[str, str] = {
    "GBP": "£",
    "USD": "$",
    "AUD": "$",
    "NZD": "$",
    "CAD": "$",
    "EUR": "€",
}


# ── Hardware accessories ───────────────────────────────────────────────────────

# Quantity formulas applied when a bundle rule carries no qty_formula of its own.
# Evaluated by the safe expression engine against rail_width_cm / fullness.
DEFAULT_ACCESSORY_FORMULAS: dict[str, dict[str, str]] = {
    "runner":              {"formula": "CEIL(rail_width_cm / 10)",  "description": "1 per 10cm"},
    "end_cap":             {"formula": "2",                         "description": "2 per track"},
    "ceiling_bracket":     {"formula": "CEIL(rail_width_cm / 50)",  "description": "1 per 50cm"},
    "wall_single_bracket": {"formula": "CEIL(rail_width_cm / 50)",  "description": "1 per 50cm"},
    "wall_double_bracket": {"formula": "CEIL(rail_width_cm / 100)", "description": "1 per 100cm"},
    "jointer":             {"formula": "CEIL(rail_width_cm / 240) - 1", "description": "1 per join over 240cm"},
    "overlap":             {"formula": "0",                         "description": "Optional"},
    "wand":                {"formula": "0",                         "description": "Optional"},
    "magnet":              {"formula": "0",                         "description": "Optional"},
    "finial":              {"formula": "2",                         "description": "2 per pole"},
    "ring":                {"formula": "CEIL((rail_width_cm * fullness) / 10)", "description": "1 per 10cm of fabric"},
    "support_bracket":     {"formula": "CEIL(rail_width_cm / 100)", "description": "1 per 100cm"},
    "wall_bracket":        {"formula": "CEIL(rail_width_cm / 50)",  "description": "1 per 50cm"},
}

MOUNT_TYPES: tuple[str, ...] = ("ceiling", "wall", "both")
