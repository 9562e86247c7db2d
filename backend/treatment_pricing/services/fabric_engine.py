"""
fabric_engine.py — Fabric / material quantity calculator.

Covers:
  - Curtains (vertical drops or railroaded/horizontal): widths, seams, pattern
    repeat rounding, linear metres, leftover per panel
  - Blinds: effective width/height and square metres with hem priority
    (user-editable fields > legacy fields > centralised default)
  - Wallpaper: strips, repeat-matched strip length, strips per roll, rolls,
    leftovers and coverage waste
  - calculate_fabric_usage: resolves a job form + template + fabric record and
    dispatches to the curtain or blind path

All lengths are centimetres except wallpaper roll length (metres, as stored
on inventory records) and the linear-metre / sqm outputs.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from treatment_pricing.config import (
    BLIND_HEM_DEFAULTS,
    DEFAULT_FULLNESS_RATIO,
    DEFAULT_PANEL_CONFIGURATION,
    LOGGER_PREFIX,
    PAIR_CONFIGURATIONS,
    SEAM_LABOR_HOURS_PER_SEAM,
)
from treatment_pricing.services.errors import InvalidDimensionError
from treatment_pricing.services.field_resolver import (
    get_field,
    resolve_first,
    safe_ceil,
    safe_floor,
    to_number,
)
from treatment_pricing.services.treatment_category import is_blind

logger = logging.getLogger(f"{LOGGER_PREFIX}.fabric")

METERS_TO_YARDS: float = 1.09361
SQM_TO_SQYD: float = 1.19599

ORIENTATION_VERTICAL = "vertical"
ORIENTATION_HORIZONTAL = "horizontal"


def _require_positive(name: str, value: Any) -> float:
    number = to_number(value)
    if number is None or number <= 0:
        raise InvalidDimensionError(name, value)
    return number


# ---------------------------------------------------------------------------
# Curtains
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CurtainUsageInput:
    rail_width_cm: float
    drop_cm: float
    fullness: float = DEFAULT_FULLNESS_RATIO
    fabric_width_cm: Optional[float] = None
    curtain_count: int = 2
    side_hems_cm: float = 0.0
    header_hem_cm: float = 0.0
    bottom_hem_cm: float = 0.0
    pooling_cm: float = 0.0
    return_left_cm: float = 0.0
    return_right_cm: float = 0.0
    seam_hems_cm: float = 0.0
    vertical_repeat_cm: float = 0.0
    horizontal_repeat_cm: float = 0.0
    waste_percent: float = 0.0
    orientation: str = ORIENTATION_VERTICAL


@dataclass(frozen=True)
class CurtainUsageResult:
    orientation: str
    required_width_cm: float
    total_width_cm: float
    total_drop_cm: float
    fabric_width_cm: float
    widths_required: int
    seams_required: int
    seam_allowance_total_cm: float
    seam_labor_hours: float
    linear_meters: float
    leftover_per_panel_cm: float
    leftover_total_cm: float
    warnings: Tuple[str, ...] = ()

    @property
    def yards(self) -> float:
        return self.linear_meters * METERS_TO_YARDS


def _round_up_to_repeat(length_cm: float, repeat_cm: float) -> float:
    if repeat_cm and repeat_cm > 0:
        return safe_ceil(length_cm / repeat_cm) * repeat_cm
    return length_cm


def calculate_curtain_usage(params: CurtainUsageInput) -> CurtainUsageResult:
    """
    Linear metres of fabric for a curtain make-up.

    Vertical (standard) — drops run down the fabric, widths are joined side by side:
        required_width = rail × fullness
        total_width    = required_width + return_left + return_right
                         + side_hems × 2 × curtain_count      (→ horizontal repeat)
        widths         = ceil(total_width / fabric_width)     (0 if fabric width unknown)
        seams          = max(0, widths − 1)
        seam_allowance = seams × seam_hems × 2
        total_drop     = drop + header + bottom + pooling     (→ vertical repeat)
        linear_m       = (total_drop + seam_allowance) / 100 × widths × (1 + waste%)

    Horizontal (railroaded) — the fabric width covers the drop and the cut runs
    across the rail:
        pieces         = ceil(total_drop / fabric_width)
        linear_m       = (total_width + seam_allowance) / 100 × pieces × (1 + waste%)
    """
    rail = _require_positive("rail_width_cm", params.rail_width_cm)
    drop = _require_positive("drop_cm", params.drop_cm)
    fullness = _require_positive("fullness", params.fullness)
    warnings: List[str] = []

    required_width = rail * fullness
    total_width = (
        required_width
        + params.return_left_cm
        + params.return_right_cm
        + params.side_hems_cm * 2 * params.curtain_count
    )
    total_width = _round_up_to_repeat(total_width, params.horizontal_repeat_cm)

    raw_drop = drop + params.header_hem_cm + params.bottom_hem_cm + params.pooling_cm
    total_drop = _round_up_to_repeat(raw_drop, params.vertical_repeat_cm)

    horizontal = params.orientation == ORIENTATION_HORIZONTAL
    # the dimension the fabric width has to cover, and the length cut per piece
    covered, cut_length = (total_drop, total_width) if horizontal else (total_width, total_drop)

    fabric_width = to_number(params.fabric_width_cm) or 0.0
    if fabric_width > 0:
        widths = safe_ceil(covered / fabric_width)
    else:
        widths = 0
        warnings.append("Fabric width not set - widths required cannot be calculated")
        logger.warning("Fabric width missing; widths_required = 0")

    seams = max(0, widths - 1)
    seam_allowance = seams * params.seam_hems_cm * 2
    waste_factor = 1 + (params.waste_percent or 0.0) / 100
    linear_meters = ((cut_length + seam_allowance) / 100) * widths * waste_factor

    if widths > 0:
        leftover_total = max(0.0, widths * fabric_width - covered)
        leftover_per_panel = leftover_total / widths
    else:
        leftover_total = leftover_per_panel = 0.0

    return CurtainUsageResult(
        orientation=ORIENTATION_HORIZONTAL if horizontal else ORIENTATION_VERTICAL,
        required_width_cm=required_width,
        total_width_cm=total_width,
        total_drop_cm=total_drop,
        fabric_width_cm=fabric_width,
        widths_required=widths,
        seams_required=seams,
        seam_allowance_total_cm=seam_allowance,
        seam_labor_hours=seams * SEAM_LABOR_HOURS_PER_SEAM,
        linear_meters=linear_meters,
        leftover_per_panel_cm=leftover_per_panel,
        leftover_total_cm=leftover_total,
        warnings=tuple(warnings),
    )


# ---------------------------------------------------------------------------
# Blinds
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BlindHems:
    header_hem_cm: float = 0.0
    bottom_hem_cm: float = 0.0
    side_hem_cm: float = 0.0
    waste_percent: float = 0.0
    # hem names that fell through to the centralised default
    defaulted: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BlindSqmResult:
    sqm: float
    sqm_raw: float
    effective_width_cm: float
    effective_height_cm: float
    width_calc_note: str
    height_calc_note: str
    formula: str


# logical hem -> (user-editable field, legacy fields ...)
_BLIND_HEM_FIELDS: Dict[str, Tuple[str, ...]] = {
    "header_hem_cm": ("blind_header_hem_cm", "header_allowance", "header_hem"),
    "bottom_hem_cm": ("blind_bottom_hem_cm", "bottom_hem", "bottom_allowance"),
    "side_hem_cm":   ("blind_side_hem_cm", "side_hems", "side_hem"),
}


def get_blind_hem_defaults(
    template: Any,
    defaults: Optional[Mapping[str, float]] = None,
) -> BlindHems:
    """
    Resolve blind hems from a template record.

    Priority per hem: user-editable ``blind_*_hem_cm`` > legacy field names >
    ``defaults`` (BLIND_HEM_DEFAULTS, all 0).  Templates synced from outside
    carry only the legacy names, so a missing hem is 0 rather than a guess.
    """
    table = dict(BLIND_HEM_DEFAULTS)
    if defaults:
        table.update(defaults)

    resolved: Dict[str, float] = {}
    defaulted: List[str] = []
    for hem, names in _BLIND_HEM_FIELDS.items():
        value = resolve_first([get_field(template, name) for name in names], fallback=None)
        if value is None:
            value = float(table.get(hem, 0.0))
            defaulted.append(hem)
        resolved[hem] = value

    return BlindHems(
        header_hem_cm=resolved["header_hem_cm"],
        bottom_hem_cm=resolved["bottom_hem_cm"],
        side_hem_cm=resolved["side_hem_cm"],
        waste_percent=resolve_first([get_field(template, "waste_percent")], 0.0),
        defaulted=tuple(defaulted),
    )


def calculate_blind_sqm(rail_width_cm: Any, drop_cm: Any, hems: Optional[BlindHems] = None) -> BlindSqmResult:
    """
    effective_width  = rail + 2 × side_hem
    effective_height = drop + header_hem + bottom_hem
    sqm              = effective_width × effective_height / 10000 × (1 + waste%)

    Raises InvalidDimensionError when rail width or drop is ≤ 0.
    """
    rail = _require_positive("rail_width_cm", rail_width_cm)
    drop = _require_positive("drop_cm", drop_cm)
    hems = hems or BlindHems()

    eff_width = rail + hems.side_hem_cm * 2
    eff_height = drop + hems.header_hem_cm + hems.bottom_hem_cm
    sqm_raw = eff_width * eff_height / 10000
    sqm = sqm_raw * (1 + hems.waste_percent / 100)

    width_note = f"{rail:g}cm + 2 × {hems.side_hem_cm:g}cm side hems = {eff_width:g}cm"
    height_note = (
        f"{drop:g}cm + {hems.header_hem_cm:g}cm header + "
        f"{hems.bottom_hem_cm:g}cm bottom = {eff_height:g}cm"
    )
    formula = f"{eff_width:g}cm × {eff_height:g}cm = {sqm_raw:.2f}sqm"
    if hems.waste_percent:
        formula += f" + {hems.waste_percent:g}% waste = {sqm:.2f}sqm"

    return BlindSqmResult(
        sqm=sqm,
        sqm_raw=sqm_raw,
        effective_width_cm=eff_width,
        effective_height_cm=eff_height,
        width_calc_note=width_note,
        height_calc_note=height_note,
        formula=formula,
    )


# ---------------------------------------------------------------------------
# Wallpaper
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WallpaperUsageResult:
    strips_needed: int
    length_per_strip_m: float
    strips_per_roll: int
    rolls_needed: int
    rolls_with_waste: int
    leftover_strips: int
    leftover_length_m: float
    total_length_m: float
    wall_area_sqm: float
    waste_area_sqm: float
    warnings: Tuple[str, ...] = ()


def calculate_wallpaper_usage(
    wall_width_cm: Any,
    wall_height_cm: Any,
    roll_width_cm: Any,
    roll_length_m: Any,
    pattern_repeat_cm: Any = 0.0,
    waste_percent: Any = 0.0,
) -> WallpaperUsageResult:
    """
    strips_needed   = ceil(wall_width / roll_width)
    length_per_strip = ceil((height + repeat) / repeat) × repeat   (repeat > 0)
                     = height                                       (no repeat)
    strips_per_roll = floor(roll_length / length_per_strip)
    rolls_needed    = ceil(strips_needed / strips_per_roll)

    A strip longer than the roll (strips_per_roll == 0) is reported as a
    warning with zero rolls instead of dividing by zero.
    """
    wall_w = _require_positive("wall_width_cm", wall_width_cm)
    wall_h = _require_positive("wall_height_cm", wall_height_cm)
    roll_w = _require_positive("roll_width_cm", roll_width_cm)
    roll_len_cm = _require_positive("roll_length_m", roll_length_m) * 100
    repeat = max(0.0, to_number(pattern_repeat_cm) or 0.0)
    waste = max(0.0, to_number(waste_percent) or 0.0)
    warnings: List[str] = []

    strips_needed = safe_ceil(wall_w / roll_w)
    if repeat > 0:
        strip_cm = safe_ceil((wall_h + repeat) / repeat) * repeat
    else:
        strip_cm = wall_h
    strips_per_roll = safe_floor(roll_len_cm / strip_cm)

    if strips_per_roll == 0:
        msg = (f"Strip length {strip_cm / 100:.2f}m exceeds roll length "
               f"{roll_len_cm / 100:.2f}m - no full strip can be cut from a roll")
        warnings.append(msg)
        logger.warning(msg)
        rolls_needed = rolls_with_waste = leftover_strips = 0
    else:
        rolls_needed = safe_ceil(strips_needed / strips_per_roll)
        rolls_with_waste = safe_ceil(rolls_needed * (1 + waste / 100))
        leftover_strips = rolls_needed * strips_per_roll - strips_needed

    wall_area = wall_w * wall_h / 10000
    coverage = rolls_needed * (roll_len_cm / 100) * (roll_w / 100)

    return WallpaperUsageResult(
        strips_needed=strips_needed,
        length_per_strip_m=strip_cm / 100,
        strips_per_roll=strips_per_roll,
        rolls_needed=rolls_needed,
        rolls_with_waste=rolls_with_waste,
        leftover_strips=leftover_strips,
        leftover_length_m=leftover_strips * strip_cm / 100,
        total_length_m=strips_needed * strip_cm / 100,
        wall_area_sqm=wall_area,
        waste_area_sqm=coverage - wall_area,
        warnings=tuple(warnings),
    )


# ---------------------------------------------------------------------------
# Form-level entry point
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FabricUsageResult:
    meters: float
    yards: float
    orientation: str                  # vertical | horizontal | sqm
    widths_required: int
    seams_required: int
    seam_labor_hours: float
    fullness: float
    sqm: float = 0.0
    details: Any = None               # CurtainUsageResult | BlindSqmResult
    comparison: Optional[Dict[str, Any]] = None
    warnings: Tuple[str, ...] = field(default_factory=tuple)


def _find_template(form_data: Mapping[str, Any], treatment_types_data: Any) -> Any:
    if treatment_types_data is None:
        return None
    if isinstance(treatment_types_data, Mapping) or not isinstance(treatment_types_data, (list, tuple)):
        return treatment_types_data
    wanted = form_data.get("treatment_type_id") or form_data.get("template_id")
    for template in treatment_types_data:
        if wanted is not None and str(get_field(template, "id")) == str(wanted):
            return template
    return treatment_types_data[0] if len(treatment_types_data) == 1 else None


def _is_rotated(form_data: Mapping[str, Any], template: Any) -> bool:
    rotated = form_data.get("fabric_rotated")
    if isinstance(rotated, str):
        return rotated.strip().lower() == "true"
    if rotated is not None:
        return bool(rotated)
    direction = form_data.get("roll_direction") or get_field(template, "fabric_orientation")
    return str(direction or "").lower() == ORIENTATION_HORIZONTAL


def calculate_fabric_usage(
    form_data: Mapping[str, Any],
    treatment_types_data: Any,
    selected_fabric_item: Any = None,
    heading_item: Any = None,
) -> FabricUsageResult:
    """
    Fabric usage for a job form.

    Resolution order:
      fullness      heading item > form ``heading_fullness`` > template
                    ``fullness_ratio``/``default_fullness`` > 1 (warning)
      hems          form > template > 0 (warning for header/bottom)
      fabric width  fabric item > form
      repeats       fabric item > form
      orientation   ``fabric_rotated`` / ``roll_direction`` / template ``fabric_orientation``

    Blind templates return square metres (orientation ``"sqm"``).
    """
    template = _find_template(form_data, treatment_types_data)
    warnings: List[str] = []

    rail = resolve_first([form_data.get("rail_width"), form_data.get("measurement_a")], 0.0)
    drop = resolve_first([form_data.get("drop"), form_data.get("measurement_b")], 0.0)

    fullness = resolve_first(
        [
            lambda: get_field(heading_item, "fullness_ratio"),
            lambda: get_field(heading_item, "fullness"),
            form_data.get("heading_fullness"),
            lambda: get_field(template, "fullness_ratio"),
            lambda: get_field(template, "default_fullness"),
        ],
        fallback=None,
        positive=True,
    )
    if fullness is None:
        fullness = DEFAULT_FULLNESS_RATIO
        warnings.append("Fullness ratio not set - using 1.0 (flat fabric)")

    if template is not None and is_blind(template):
        hems = get_blind_hem_defaults(template)
        blind = calculate_blind_sqm(rail, drop, hems)
        return FabricUsageResult(
            meters=blind.sqm,
            yards=blind.sqm * SQM_TO_SQYD,
            orientation="sqm",
            widths_required=1,
            seams_required=0,
            seam_labor_hours=0.0,
            fullness=fullness,
            sqm=blind.sqm,
            details=blind,
            warnings=tuple(f"Blind {hem.replace('_cm', '').replace('_', ' ')} not set - using 0cm"
                           for hem in hems.defaulted),
        )

    def hem(form_key: str, *template_keys: str, label: Optional[str] = None) -> float:
        value = resolve_first(
            [form_data.get(form_key)] + [get_field(template, key) for key in template_keys],
            fallback=None,
        )
        if value is None:
            if label:
                warnings.append(f"{label} not set - using 0cm")
            return 0.0
        return value

    header = hem("header_hem", "header_allowance", "header_hem", label="Header hem")
    bottom = hem("bottom_hem", "bottom_hem", "bottom_allowance", label="Bottom hem")
    side = hem("side_hem", "side_hems", "side_hem")
    seam = hem("seam_hem", "seam_hems", "seam_allowance")

    fabric_width = resolve_first(
        [
            lambda: get_field(selected_fabric_item, "fabric_width_cm"),
            lambda: get_field(selected_fabric_item, "fabric_width"),
            form_data.get("fabric_width_cm"),
            form_data.get("fabric_width"),
        ],
        fallback=None,
        positive=True,
    )
    vertical_repeat = resolve_first(
        [
            lambda: get_field(selected_fabric_item, "pattern_repeat_vertical"),
            form_data.get("vertical_pattern_repeat_cm"),
            form_data.get("pattern_repeat_vertical"),
        ],
        0.0,
        positive=True,
    )
    horizontal_repeat = resolve_first(
        [
            lambda: get_field(selected_fabric_item, "pattern_repeat_horizontal"),
            form_data.get("horizontal_pattern_repeat_cm"),
            form_data.get("pattern_repeat_horizontal"),
        ],
        0.0,
        positive=True,
    )

    panel_config = str(
        form_data.get("panel_configuration")
        or form_data.get("curtain_type")
        or get_field(template, "panel_configuration")
        or DEFAULT_PANEL_CONFIGURATION
    ).lower()
    curtain_count = 2 if panel_config in PAIR_CONFIGURATIONS else 1

    base_params = dict(
        rail_width_cm=rail,
        drop_cm=drop,
        fullness=fullness,
        fabric_width_cm=fabric_width,
        curtain_count=curtain_count,
        side_hems_cm=side,
        header_hem_cm=header,
        bottom_hem_cm=bottom,
        pooling_cm=resolve_first([form_data.get("pooling"), form_data.get("pooling_amount")], 0.0),
        return_left_cm=resolve_first([form_data.get("return_left"), get_field(template, "return_left")], 0.0),
        return_right_cm=resolve_first([form_data.get("return_right"), get_field(template, "return_right")], 0.0),
        seam_hems_cm=seam,
        vertical_repeat_cm=vertical_repeat,
        horizontal_repeat_cm=horizontal_repeat,
        waste_percent=resolve_first([form_data.get("waste_percent"), get_field(template, "waste_percent")], 0.0),
    )
    vertical = calculate_curtain_usage(CurtainUsageInput(orientation=ORIENTATION_VERTICAL, **base_params))
    horizontal = calculate_curtain_usage(CurtainUsageInput(orientation=ORIENTATION_HORIZONTAL, **base_params))
    selected = horizontal if _is_rotated(form_data, template) else vertical

    comparison = None
    if vertical.widths_required and horizontal.widths_required:
        better = ORIENTATION_VERTICAL if vertical.linear_meters <= horizontal.linear_meters else ORIENTATION_HORIZONTAL
        comparison = {
            "vertical_meters": round(vertical.linear_meters, 2),
            "horizontal_meters": round(horizontal.linear_meters, 2),
            "savings_meters": round(abs(vertical.linear_meters - horizontal.linear_meters), 2),
            "recommendation": better,
        }

    logger.debug("Fabric usage: %s %.2fm over %d width(s)",
                 selected.orientation, selected.linear_meters, selected.widths_required)

    return FabricUsageResult(
        meters=selected.linear_meters,
        yards=selected.yards,
        orientation=selected.orientation,
        widths_required=selected.widths_required,
        seams_required=selected.seams_required,
        seam_labor_hours=selected.seam_labor_hours,
        fullness=fullness,
        details=selected,
        comparison=comparison,
        warnings=tuple(warnings) + selected.warnings,
    )
