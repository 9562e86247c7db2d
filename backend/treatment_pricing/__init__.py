"""
Treatment pricing engine: material quantities and itemised cost breakdowns
for curtains, blinds, wallpaper and other made-to-measure window treatments.
"""

from treatment_pricing.models.schemas import (
    BreakdownItem,
    CalculationDetails,
    HardwareSelection,
    MaterialItem,
    Measurements,
    OptionNode,
    TreatmentPricingInput,
    TreatmentPricingResult,
    TreatmentTemplate,
)
from treatment_pricing.services.accessory_engine import calculate_hardware_accessories, resolve_accessories
from treatment_pricing.services.errors import (
    DivisionByZeroError,
    ExpressionError,
    InvalidDimensionError,
    InvalidExpressionError,
    PricingError,
    UnknownVariableError,
    UnresolvedFabricWidthError,
)
from treatment_pricing.services.expression_engine import evaluate
from treatment_pricing.services.fabric_engine import (
    calculate_blind_sqm,
    calculate_curtain_usage,
    calculate_fabric_usage,
    calculate_wallpaper_usage,
)
from treatment_pricing.services.labor_engine import calculate_labor
from treatment_pricing.services.options_engine import aggregate_options
from treatment_pricing.services.pricing_grid import get_price_from_grid
from treatment_pricing.services.pricing_methods import PricingContext, calculate_price, resolve_pricing_method
from treatment_pricing.services.treatment_engine import TreatmentPricingEngine, calculate_treatment_pricing

__version__ = "0.1.0"

__all__ = [
    "BreakdownItem",
    "CalculationDetails",
    "DivisionByZeroError",
    "ExpressionError",
    "HardwareSelection",
    "InvalidDimensionError",
    "InvalidExpressionError",
    "MaterialItem",
    "Measurements",
    "OptionNode",
    "PricingContext",
    "PricingError",
    "TreatmentPricingEngine",
    "TreatmentPricingInput",
    "TreatmentPricingResult",
    "TreatmentTemplate",
    "UnknownVariableError",
    "UnresolvedFabricWidthError",
    "aggregate_options",
    "calculate_blind_sqm",
    "calculate_curtain_usage",
    "calculate_fabric_usage",
    "calculate_hardware_accessories",
    "calculate_labor",
    "calculate_price",
    "calculate_treatment_pricing",
    "calculate_wallpaper_usage",
    "evaluate",
    "get_price_from_grid",
    "resolve_accessories",
    "resolve_pricing_method",
]
