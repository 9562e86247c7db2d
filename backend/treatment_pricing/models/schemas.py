"""
Input records and result models for treatment pricing.

Input models accept the loose records the job/inventory screens store:
unknown keys are kept (extra="allow"), numeric fields take numbers or
numeric strings, and blank/unparseable strings read as "not set".
Result models are frozen and hold tuples so a returned calculation can't be
changed after the fact.
"""
from typing import Annotated, Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from treatment_pricing.config import DEFAULT_CURRENCY
from treatment_pricing.services.fabric_engine import WallpaperUsageResult
from treatment_pricing.services.field_resolver import to_number
from treatment_pricing.services.labor_engine import LaborResult


def _lenient_number(value: Any) -> Any:
    if isinstance(value, str):
        return to_number(value)
    return value


Number = Annotated[Optional[float], BeforeValidator(_lenient_number)]
RecordId = Optional[Union[int, str]]


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class LiningType(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    type: str
    price_per_metre: Number = 0.0
    labour_per_curtain: Number = 0.0


class TreatmentTemplate(BaseModel):
    """Product template: allowances, fullness, pricing method and make-up charges."""
    model_config = ConfigDict(extra="allow")

    id: RecordId = None
    name: Optional[str] = None
    pricing_type: Optional[str] = None
    treatment_category: Optional[str] = None
    category: Optional[str] = None
    panel_configuration: Optional[str] = None

    side_hems: Number = None
    header_allowance: Number = None
    header_hem: Number = None
    bottom_hem: Number = None
    bottom_allowance: Number = None
    return_left: Number = None
    return_right: Number = None
    seam_hems: Number = None
    waste_percent: Number = None
    fullness_ratio: Number = None
    default_fullness: Number = None

    blind_header_hem_cm: Number = None
    blind_bottom_hem_cm: Number = None
    blind_side_hem_cm: Number = None

    includes_fabric_price: bool = False
    machine_price_per_metre: Number = None
    machine_price_per_drop: Number = None
    machine_price_per_panel: Number = None
    heading_upcharge_per_metre: Number = None
    heading_upcharge_per_curtain: Number = None
    lining_types: List[LiningType] = Field(default_factory=list)
    pricing_grid_data: Optional[Any] = None

    fabric_orientation: Optional[str] = None
    labor_rate: Number = None
    treatment_complexity: Optional[str] = None


class Measurements(BaseModel):
    """Per-window measurements, already in centimetres."""
    model_config = ConfigDict(extra="allow")

    rail_width: Number = None
    measurement_a: Number = None
    drop: Number = None
    measurement_b: Number = None
    pooling_amount: Number = None
    fabric_width_cm: Number = None
    vertical_pattern_repeat_cm: Number = None
    horizontal_pattern_repeat_cm: Number = None
    wall_width: Number = None
    wall_height: Number = None
    curtain_type: Optional[str] = None
    fabric_rotated: Optional[bool] = None


class MaterialItem(BaseModel):
    """Inventory record: fabric, wallpaper, heading tape or any priced material."""
    model_config = ConfigDict(extra="allow")

    id: RecordId = None
    name: Optional[str] = None
    category: Optional[str] = None
    cost_price: Number = None
    price_per_meter: Number = None
    unit_price: Number = None
    selling_price: Number = None
    fabric_width_cm: Number = None
    fabric_width: Number = None
    fullness_ratio: Number = None
    pattern_repeat_vertical: Number = None
    pattern_repeat_horizontal: Number = None
    wallpaper_roll_width: Number = None
    wallpaper_roll_length: Number = None
    wallpaper_sold_by: Optional[str] = None
    pricing_grid_data: Optional[Any] = None
    pricing_grid_markup: Number = None
    image_url: Optional[str] = None


class OptionNode(BaseModel):
    """
    A priced option.  Flat options use only the top-level fields; hierarchical
    trees nest category -> subcategories -> sub_subcategories -> extras.
    ``pricing_method`` of "inherit" (or unset) takes the parent's method.
    """
    model_config = ConfigDict(extra="allow")

    id: RecordId = None
    name: Optional[str] = None
    description: Optional[str] = None
    base_price: Number = None
    price: Number = None
    pricing_method: Optional[str] = None
    calculation_method: Optional[str] = None
    pricing_grid_data: Optional[Any] = None
    image_url: Optional[str] = None
    is_required: bool = False
    is_default: bool = False
    subcategories: List["OptionNode"] = Field(default_factory=list)
    sub_subcategories: List["OptionNode"] = Field(default_factory=list)
    extras: List["OptionNode"] = Field(default_factory=list)


OptionNode.model_rebuild()


class BundleRule(BaseModel):
    model_config = ConfigDict(extra="allow")

    child_item_key: str
    qty_formula: Optional[str] = None
    child_unit_price: Number = 0.0


class HardwareSelection(BaseModel):
    """Track/rod chosen for the treatment plus how its accessories are priced."""
    model_config = ConfigDict(extra="allow")

    id: RecordId = None
    name: Optional[str] = None
    base_price: Number = 0.0
    bundle_rules: List[BundleRule] = Field(default_factory=list)
    accessory_prices: Dict[str, float] = Field(default_factory=dict)
    mount_type: Optional[str] = None
    image_url: Optional[str] = None


class TreatmentPricingInput(BaseModel):
    template: TreatmentTemplate
    measurements: Measurements
    fabric_item: Optional[MaterialItem] = None
    selected_heading: RecordId = None
    selected_lining: Optional[str] = None
    # resolved option records, each treated as selected
    selected_options: List[OptionNode] = Field(default_factory=list)
    # ids selected against the option trees below
    selected_option_ids: List[Union[int, str]] = Field(default_factory=list)
    flat_options: List[OptionNode] = Field(default_factory=list)
    hierarchical_options: List[OptionNode] = Field(default_factory=list)
    default_option_pricing_method: str = "fixed"
    inventory_items: List[MaterialItem] = Field(default_factory=list)
    pricing_grid_data: Optional[Any] = None
    hardware: Optional[HardwareSelection] = None
    currency: str = DEFAULT_CURRENCY


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class BreakdownItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    unit_price: Optional[float] = None
    total_cost: float
    category: str
    pricing_method: Optional[str] = None
    calculation: Optional[str] = None
    image_url: Optional[str] = None


class CalculationDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    treatment_category: str
    pricing_type: str
    curtain_count: int
    fullness_ratio: float
    linear_meters: float = 0.0
    sqm: float = 0.0
    widths_required: int = 0
    seams_required: int = 0
    required_width_cm: float = 0.0
    total_width_with_allowances_cm: float = 0.0
    total_drop_cm: float = 0.0
    fabric_width_cm: float = 0.0
    side_hems_cm: float = 0.0
    header_hem_cm: float = 0.0
    bottom_hem_cm: float = 0.0
    return_left_cm: float = 0.0
    return_right_cm: float = 0.0
    pooling_cm: float = 0.0
    seam_allowance_total_cm: float = 0.0
    waste_percent: float = 0.0
    leftover_per_panel_cm: float = 0.0
    leftover_total_cm: float = 0.0
    effective_width_cm: float = 0.0
    effective_height_cm: float = 0.0
    orientation: Optional[str] = None
    grid_price: Optional[float] = None
    wallpaper: Optional[WallpaperUsageResult] = None
    breakdown: Tuple[BreakdownItem, ...] = ()


class TreatmentPricingResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    linear_meters: float
    sqm: float
    widths_required: int
    price_per_meter: float
    fabric_cost: float
    lining_cost: float
    manufacturing_cost: float
    options_cost: float
    heading_cost: float
    hardware_cost: float
    total_cost: float
    currency: str
    lining_details: Optional[LiningType] = None
    labor: Optional[LaborResult] = None
    calculation_details: CalculationDetails
    warnings: Tuple[str, ...] = ()
