"""
treatment_engine.py — Treatment pricing orchestrator.

Given a template, measurements, the selected material and heading / lining /
option / hardware selections, produces an itemised TreatmentPricingResult:

  1. Detect category (curtain / blind / wallpaper / other)
  2. Material quantities: linear metres, sqm or wallpaper rolls
  3. Base price: cost_price > price_per_meter > unit_price > selling_price
  4. Fabric cost: pricing grid (falls back when the grid misses), per-sqm for
     blinds, by roll / metre / sqm for wallpaper, linear metres otherwise
  5. Lining: metres × price_per_metre + labour_per_curtain × curtains
  6. Manufacturing: 0 for all-inclusive grids, per-sqm rate for blinds,
     machine per-metre / per-drop / per-panel for everything else
  7. Options, 8. heading, hardware accessories
  9. total = fabric + lining + manufacturing + options + heading + hardware

Missing configuration never raises: a documented default is used and a
warning is added to the result.  Non-positive width/drop raise
InvalidDimensionError; a priced curtain fabric with no width raises
UnresolvedFabricWidthError.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from treatment_pricing.config import (
    CATEGORY_BLIND,
    CATEGORY_CURTAIN,
    CATEGORY_OTHER,
    CATEGORY_WALLPAPER,
    CURRENCY_SYMBOLS,
    DEFAULT_FULLNESS_RATIO,
    DEFAULT_PANEL_CONFIGURATION,
    DEFAULT_PRICING_TYPE,
    LOGGER_PREFIX,
    NO_COST_HEADINGS,
    NO_LINING,
    PAIR_CONFIGURATIONS,
)
from treatment_pricing.models.schemas import (
    BreakdownItem,
    CalculationDetails,
    LiningType,
    MaterialItem,
    TreatmentPricingInput,
    TreatmentPricingResult,
)
from treatment_pricing.services.accessory_engine import AccessoryEngine, build_hardware_breakdown_items
from treatment_pricing.services.errors import InvalidDimensionError, UnresolvedFabricWidthError
from treatment_pricing.services.fabric_engine import (
    ORIENTATION_HORIZONTAL,
    ORIENTATION_VERTICAL,
    BlindSqmResult,
    CurtainUsageInput,
    CurtainUsageResult,
    WallpaperUsageResult,
    calculate_blind_sqm,
    calculate_curtain_usage,
    calculate_wallpaper_usage,
    get_blind_hem_defaults,
)
from treatment_pricing.services.field_resolver import get_field, resolve_first
from treatment_pricing.services.labor_engine import LaborEngine, LaborResult
from treatment_pricing.services.options_engine import OptionsAggregate, OptionsEngine
from treatment_pricing.services.pricing_grid import get_price_from_grid
from treatment_pricing.services.pricing_methods import (
    FIXED,
    PER_LINEAR_METER,
    PER_ROLL,
    PER_SQM,
    PRICING_GRID,
    PricingContext,
    calculate_price,
    normalize_pricing_method,
)
from treatment_pricing.services.treatment_category import detect_treatment_category

_FABRIC_LABELS = {
    CATEGORY_CURTAIN:   "Fabric",
    CATEGORY_BLIND:     "Material",
    CATEGORY_WALLPAPER: "Wallpaper",
    CATEGORY_OTHER:     "Material",
}

# method used when a grid-priced treatment has no grid cell to price from
_GRID_FALLBACKS = {
    CATEGORY_BLIND: PER_SQM,
    CATEGORY_OTHER: FIXED,
}


@dataclass
class _Quantities:
    """Material quantities for one calculation, before any pricing."""
    linear_meters: float = 0.0
    sqm: float = 0.0
    widths_required: int = 0
    curtain_count: int = 1
    fullness: float = DEFAULT_FULLNESS_RATIO
    curtain: Optional[CurtainUsageResult] = None
    curtain_params: Optional[CurtainUsageInput] = None
    blind: Optional[BlindSqmResult] = None
    blind_hems: Dict[str, float] = field(default_factory=dict)
    wallpaper: Optional[WallpaperUsageResult] = None


@dataclass
class _FabricPricing:
    cost: float = 0.0
    quantity: Optional[float] = None
    unit: Optional[str] = None
    unit_price: Optional[float] = None
    method: Optional[str] = None
    grid_price: Optional[float] = None
    calculation: Optional[str] = None


class TreatmentPricingEngine:
    """
    Stateless pricing orchestrator; one instance can price any number of
    treatments, concurrently or not.
    """

    def __init__(
        self,
        blind_hem_defaults: Optional[Mapping[str, float]] = None,
        logger: Optional[logging.Logger] = None,
        accessory_engine: Optional[AccessoryEngine] = None,
        options_engine: Optional[OptionsEngine] = None,
        labor_engine: Optional[LaborEngine] = None,
    ) -> None:
        self.blind_hem_defaults = dict(blind_hem_defaults or {})
        self.log = logger or logging.getLogger(f"{LOGGER_PREFIX}.treatment")
        self.accessories = accessory_engine or AccessoryEngine()
        self.options = options_engine or OptionsEngine()
        self.labor = labor_engine or LaborEngine()

    # -----------------------------------------------------------------------
    # Entry point
    # -----------------------------------------------------------------------

    def calculate(self, pricing_input: Union[TreatmentPricingInput, Mapping[str, Any]]) -> TreatmentPricingResult:
        started = time.perf_counter()
        if isinstance(pricing_input, TreatmentPricingInput):
            request = pricing_input
        else:
            request = TreatmentPricingInput.model_validate(pricing_input)

        template = request.template
        measurements = request.measurements
        fabric = request.fabric_item or MaterialItem()
        warnings: List[str] = []
        symbol = CURRENCY_SYMBOLS.get(request.currency.upper(), "")

        category = detect_treatment_category(template)
        pricing_type = normalize_pricing_method(template.pricing_type) or DEFAULT_PRICING_TYPE[category]
        self.log.debug("Template '%s' classified as %s (%s)", template.name, category, pricing_type)

        width, height = self._dimensions(category, measurements)
        price_per_unit = resolve_first(
            [fabric.cost_price, fabric.price_per_meter, fabric.unit_price, fabric.selling_price],
            0.0,
            positive=True,
        )

        qty = self._quantities(category, template, measurements, fabric, width, height, warnings)
        if (
            category == CATEGORY_CURTAIN
            and qty.widths_required == 0
            and pricing_type != PRICING_GRID
            and price_per_unit > 0
        ):
            raise UnresolvedFabricWidthError(fabric.name or "")

        fabric_pricing = self._fabric_cost(
            category, pricing_type, request, fabric, qty, width, height, price_per_unit, symbol, warnings,
        )
        lining_cost, lining = self._lining_cost(template, request.selected_lining, qty, warnings)
        manufacturing_lines = self._manufacturing_lines(template, category, pricing_type, qty)
        manufacturing_cost = sum((line.total_cost for line in manufacturing_lines), 0.0)

        options = self._options(request, qty, width, height, fabric_pricing.cost, symbol)
        heading_lines = self._heading_lines(request, width, qty.curtain_count, warnings)
        heading_cost = sum((line.total_cost for line in heading_lines), 0.0)

        hardware_result = None
        hardware_cost = 0.0
        if request.hardware is not None:
            hardware = request.hardware
            rules = hardware.bundle_rules or hardware.accessory_prices
            hardware_result = self.accessories.calculate_hardware_accessories(
                rules, hardware.base_price or 0.0, width, qty.fullness,
                hardware.mount_type or "both", symbol, height,
            )
            hardware_cost = hardware_result.grand_total_price

        labor = self._labor(template, width, height, qty, warnings)

        total_cost = (
            fabric_pricing.cost + lining_cost + manufacturing_cost
            + options.total_cost + heading_cost + hardware_cost
        )

        breakdown = self._breakdown(
            category, fabric, fabric_pricing, lining, lining_cost, qty,
            manufacturing_lines, options, heading_lines, request, hardware_result,
        )
        details = self._details(category, pricing_type, qty, fabric_pricing, breakdown)

        result = TreatmentPricingResult(
            linear_meters=qty.linear_meters,
            sqm=qty.sqm,
            widths_required=qty.widths_required,
            price_per_meter=price_per_unit,
            fabric_cost=fabric_pricing.cost,
            lining_cost=lining_cost,
            manufacturing_cost=manufacturing_cost,
            options_cost=options.total_cost,
            heading_cost=heading_cost,
            hardware_cost=hardware_cost,
            total_cost=total_cost,
            currency=request.currency,
            lining_details=lining,
            labor=labor,
            calculation_details=details,
            warnings=tuple(warnings),
        )

        self.log.info(
            "Priced '%s': %.2f %s", template.name or template.id, total_cost, request.currency,
            extra={
                "template_id": template.id,
                "treatment_category": category,
                "pricing_type": pricing_type,
                "total_cost": round(total_cost, 2),
                "duration_ms": round((time.perf_counter() - started) * 1000, 3),
            },
        )
        return result

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _warn(self, warnings: List[str], message: str) -> None:
        warnings.append(message)
        self.log.warning(message)

    def _dimensions(self, category: str, m) -> tuple:
        if category == CATEGORY_WALLPAPER:
            width = resolve_first([m.wall_width, m.rail_width, m.measurement_a], 0.0)
            height = resolve_first([m.wall_height, m.drop, m.measurement_b], 0.0)
        else:
            width = resolve_first([m.rail_width, m.measurement_a], 0.0)
            height = resolve_first([m.drop, m.measurement_b], 0.0)
        if width <= 0:
            raise InvalidDimensionError("rail_width", width)
        if height <= 0:
            raise InvalidDimensionError("drop", height)
        return width, height

    def _quantities(self, category, template, m, fabric, width, height, warnings) -> _Quantities:
        if category == CATEGORY_CURTAIN:
            return self._curtain_quantities(template, m, fabric, width, height, warnings)

        if category == CATEGORY_BLIND:
            hems = get_blind_hem_defaults(template, self.blind_hem_defaults)
            for hem, label in (("header_hem_cm", "Header hem"), ("bottom_hem_cm", "Bottom hem")):
                if hem in hems.defaulted:
                    self._warn(warnings, f"{label} not set on template - using "
                                         f"{getattr(hems, hem):g}cm")
            blind = calculate_blind_sqm(width, height, hems)
            blind_count = 2 if str(m.curtain_type or "").lower() == "double" else 1
            return _Quantities(
                sqm=blind.sqm * blind_count,
                widths_required=1,
                curtain_count=blind_count,
                blind=blind,
                blind_hems={
                    "side_hems_cm": hems.side_hem_cm,
                    "header_hem_cm": hems.header_hem_cm,
                    "bottom_hem_cm": hems.bottom_hem_cm,
                    "waste_percent": hems.waste_percent,
                },
            )

        if category == CATEGORY_WALLPAPER:
            roll_width = resolve_first(
                [fabric.wallpaper_roll_width, fabric.fabric_width_cm, fabric.fabric_width], None, positive=True,
            )
            roll_length = resolve_first([fabric.wallpaper_roll_length], None, positive=True)
            if roll_width is None or roll_length is None:
                self._warn(warnings, "Wallpaper roll width/length not set - rolls cannot be calculated")
                return _Quantities(sqm=width * height / 10000)
            usage = calculate_wallpaper_usage(
                width, height, roll_width, roll_length,
                resolve_first([fabric.pattern_repeat_vertical, m.vertical_pattern_repeat_cm], 0.0),
                resolve_first([template.waste_percent], 0.0),
            )
            for message in usage.warnings:
                self._warn(warnings, message)
            return _Quantities(
                linear_meters=usage.total_length_m,
                sqm=usage.wall_area_sqm,
                widths_required=usage.strips_needed,
                wallpaper=usage,
            )

        return _Quantities(sqm=width * height / 10000)

    def _curtain_quantities(self, template, m, fabric, width, height, warnings) -> _Quantities:
        fullness = resolve_first([template.fullness_ratio, template.default_fullness], None, positive=True)
        if fullness is None:
            fullness = DEFAULT_FULLNESS_RATIO
            self._warn(warnings, f"Fullness ratio not set on template - using {fullness:g}")

        header = resolve_first([template.header_allowance, template.header_hem], None)
        if header is None:
            header = 0.0
            self._warn(warnings, "Header hem not set on template - using 0cm")
        bottom = resolve_first([template.bottom_hem, template.bottom_allowance], None)
        if bottom is None:
            bottom = 0.0
            self._warn(warnings, "Bottom hem not set on template - using 0cm")

        panel = str(template.panel_configuration or DEFAULT_PANEL_CONFIGURATION).lower()
        curtain_count = 2 if panel in PAIR_CONFIGURATIONS else 1
        rotated = bool(m.fabric_rotated) or str(template.fabric_orientation or "").lower() == ORIENTATION_HORIZONTAL

        params = CurtainUsageInput(
            rail_width_cm=width,
            drop_cm=height,
            fullness=fullness,
            fabric_width_cm=resolve_first(
                [fabric.fabric_width_cm, fabric.fabric_width, m.fabric_width_cm, get_field(m, "fabric_width")],
                None,
                positive=True,
            ),
            curtain_count=curtain_count,
            side_hems_cm=resolve_first([template.side_hems], 0.0),
            header_hem_cm=header,
            bottom_hem_cm=bottom,
            pooling_cm=resolve_first([m.pooling_amount, get_field(m, "pooling")], 0.0),
            return_left_cm=resolve_first([template.return_left], 0.0),
            return_right_cm=resolve_first([template.return_right], 0.0),
            seam_hems_cm=resolve_first([template.seam_hems], 0.0),
            vertical_repeat_cm=resolve_first(
                [fabric.pattern_repeat_vertical, m.vertical_pattern_repeat_cm], 0.0, positive=True,
            ),
            horizontal_repeat_cm=resolve_first(
                [fabric.pattern_repeat_horizontal, m.horizontal_pattern_repeat_cm], 0.0, positive=True,
            ),
            waste_percent=resolve_first([template.waste_percent], 0.0),
            orientation=ORIENTATION_HORIZONTAL if rotated else ORIENTATION_VERTICAL,
        )
        usage = calculate_curtain_usage(params)
        for message in usage.warnings:
            self._warn(warnings, message)

        return _Quantities(
            linear_meters=usage.linear_meters,
            widths_required=usage.widths_required,
            curtain_count=curtain_count,
            fullness=fullness,
            curtain=usage,
            curtain_params=params,
        )

    def _fabric_cost(
        self, category, pricing_type, request, fabric, qty, width, height, price, symbol, warnings,
    ) -> _FabricPricing:
        if pricing_type == PRICING_GRID:
            grid_data = request.pricing_grid_data or fabric.pricing_grid_data or request.template.pricing_grid_data
            if grid_data is None:
                self._warn(warnings, "Pricing grid selected but no grid data is attached - "
                                     "using the material price instead")
            else:
                raw = get_price_from_grid(grid_data, width, height)
                if raw > 0:
                    markup = resolve_first([fabric.pricing_grid_markup], 0.0)
                    multiplier = qty.curtain_count if category == CATEGORY_BLIND else 1
                    grid_price = raw * (1 + markup / 100) * multiplier
                    return _FabricPricing(
                        cost=grid_price, quantity=multiplier, unit="unit",
                        unit_price=grid_price / multiplier, method=PRICING_GRID, grid_price=grid_price,
                        calculation=f"Grid {width:g} × {height:g}cm = {symbol}{grid_price:.2f}",
                    )
                self._warn(warnings, f"No pricing grid cell for {width:g} × {height:g}cm - "
                                     "using the material price instead")
            fallback = _GRID_FALLBACKS.get(category, pricing_type)
            return self._fabric_cost_without_grid(category, fallback, fabric, qty, width, height, price, symbol)

        return self._fabric_cost_without_grid(category, pricing_type, fabric, qty, width, height, price, symbol)

    def _fabric_cost_without_grid(self, category, pricing_type, fabric, qty, width, height, price, symbol):
        if category == CATEGORY_BLIND and pricing_type == PER_SQM:
            cost = qty.sqm * price
            return _FabricPricing(cost, qty.sqm, "sqm", price, PER_SQM,
                                  calculation=f"{qty.sqm:.2f}sqm × {symbol}{price:.2f} = {symbol}{cost:.2f}")

        if category == CATEGORY_WALLPAPER:
            usage = qty.wallpaper
            if usage is None:
                return _FabricPricing(method=pricing_type)
            sold_by = normalize_pricing_method(fabric.wallpaper_sold_by) or pricing_type
            if sold_by == PER_LINEAR_METER:
                amount, unit = usage.total_length_m, "m"
            elif sold_by == PER_SQM:
                amount, unit = usage.wall_area_sqm, "sqm"
            else:
                amount, unit, sold_by = usage.rolls_with_waste, "roll", PER_ROLL
            cost = amount * price
            return _FabricPricing(cost, amount, unit, price, sold_by,
                                  calculation=f"{amount:g} {unit} × {symbol}{price:.2f} = {symbol}{cost:.2f}")

        if category in (CATEGORY_BLIND, CATEGORY_OTHER):
            priced = calculate_price(pricing_type, PricingContext(
                base_cost=price, rail_width_cm=width, drop_cm=height, fullness=qty.fullness,
                curtain_count=qty.curtain_count, widths_required=qty.widths_required, currency_symbol=symbol,
            ))
            return _FabricPricing(priced.cost, priced.quantity, priced.unit, price, priced.method,
                                  calculation=priced.calculation)

        cost = qty.linear_meters * price
        return _FabricPricing(cost, qty.linear_meters, "m", price, PER_LINEAR_METER,
                              calculation=f"{qty.linear_meters:.2f}m × {symbol}{price:.2f} = {symbol}{cost:.2f}")

    def _lining_cost(self, template, selected_lining, qty, warnings):
        name = str(selected_lining or "").strip()
        if name.lower() in NO_LINING:
            return 0.0, None
        lining: Optional[LiningType] = next(
            (lt for lt in template.lining_types if lt.type.strip().lower() == name.lower()), None,
        )
        if lining is None:
            self._warn(warnings, f"Lining '{name}' is not configured on this template - lining not priced")
            return 0.0, None
        cost = (
            qty.linear_meters * (lining.price_per_metre or 0.0)
            + (lining.labour_per_curtain or 0.0) * qty.curtain_count
        )
        return cost, lining

    def _manufacturing_lines(self, template, category, pricing_type, qty) -> List[BreakdownItem]:
        if pricing_type == PRICING_GRID and template.includes_fabric_price:
            return []
        if category == CATEGORY_BLIND:
            charges = [("manufacturing", template.machine_price_per_metre, qty.sqm, "sqm")]
        else:
            charges = [
                ("manufacturing-metre", template.machine_price_per_metre, qty.linear_meters, "m"),
                ("manufacturing-drop", template.machine_price_per_drop, qty.curtain_count, "drop"),
                ("manufacturing-panel", template.machine_price_per_panel, qty.curtain_count, "panel"),
            ]
        lines: List[BreakdownItem] = []
        for line_id, rate, quantity, unit in charges:
            cost = (rate or 0.0) * quantity
            if cost > 0:
                lines.append(BreakdownItem(
                    id=line_id, name="Manufacturing", quantity=quantity, unit=unit,
                    unit_price=rate, total_cost=cost, category="manufacturing",
                ))
        return lines

    def _options(self, request, qty, width, height, fabric_cost, symbol) -> OptionsAggregate:
        flat = []
        selected_ids = [str(option_id) for option_id in request.selected_option_ids]
        for idx, option in enumerate(request.selected_options):
            if option.id is None:
                option = option.model_copy(update={"id": f"selected-option-{idx}"})
            flat.append(option)
            selected_ids.append(str(option.id))
        flat.extend(request.flat_options)

        context = PricingContext(
            rail_width_cm=width,
            drop_cm=height,
            fullness=qty.fullness,
            curtain_count=qty.curtain_count,
            widths_required=qty.widths_required,
            fabric_cost=fabric_cost,
            currency_symbol=symbol,
        )
        return self.options.aggregate(
            selected_ids, flat, request.hierarchical_options, request.default_option_pricing_method, context,
        )

    def _heading_lines(self, request, width, curtain_count, warnings) -> List[BreakdownItem]:
        """Heading tape from inventory plus template upcharges, one line per pricing unit."""
        heading_id = request.selected_heading
        if heading_id is None or str(heading_id).strip().lower() in NO_COST_HEADINGS:
            return []

        rail_m = width / 100
        template = request.template
        lines: List[BreakdownItem] = []
        item = next(
            (
                inv for inv in request.inventory_items
                if str(inv.id) == str(heading_id) and str(inv.category or "").lower() == "heading"
            ),
            None,
        )
        if item is None:
            self._warn(warnings, f"Heading '{heading_id}' not found in inventory - heading tape not priced")
        else:
            rate = resolve_first([item.price_per_meter, item.selling_price, item.unit_price], 0.0, positive=True)
            if rate > 0:
                lines.append(BreakdownItem(
                    id="heading", name=item.name or "Heading", quantity=rail_m, unit="m",
                    unit_price=rate, total_cost=rate * rail_m, category="heading",
                ))

        per_metre = template.heading_upcharge_per_metre or 0.0
        if per_metre:
            lines.append(BreakdownItem(
                id="heading-upcharge-metre", name="Heading upcharge", quantity=rail_m, unit="m",
                unit_price=per_metre, total_cost=per_metre * rail_m, category="heading",
            ))
        per_curtain = template.heading_upcharge_per_curtain or 0.0
        if per_curtain:
            lines.append(BreakdownItem(
                id="heading-upcharge-panel", name="Heading upcharge", quantity=curtain_count, unit="panel",
                unit_price=per_curtain, total_cost=per_curtain * curtain_count, category="heading",
            ))
        return lines

    def _labor(self, template, width, height, qty, warnings) -> Optional[LaborResult]:
        if not template.labor_rate:
            return None
        complexity = template.treatment_complexity
        if complexity and complexity.strip().lower() not in self.labor.complexity_multipliers:
            self._warn(warnings, f"Unknown treatment complexity '{complexity}' - using moderate")
            complexity = None
        return self.labor.calculate_labor({
            "rail_width": width,
            "drop": height,
            "fullness": qty.fullness,
            "labor_rate": template.labor_rate,
            "seam_labor_hours": qty.curtain.seam_labor_hours if qty.curtain else 0.0,
            "treatment_complexity": complexity,
        })

    def _breakdown(
        self, category, fabric, fabric_pricing, lining, lining_cost, qty,
        manufacturing_lines, options, heading_lines, request, hardware_result,
    ) -> tuple:
        items: List[BreakdownItem] = []

        if fabric_pricing.cost > 0:
            items.append(BreakdownItem(
                id="fabric",
                name=fabric.name or _FABRIC_LABELS[category],
                description=fabric_pricing.calculation,
                quantity=fabric_pricing.quantity,
                unit=fabric_pricing.unit,
                unit_price=fabric_pricing.unit_price,
                total_cost=fabric_pricing.cost,
                category="fabric",
                pricing_method=fabric_pricing.method,
                image_url=fabric.image_url,
            ))

        if lining_cost > 0:
            material = qty.linear_meters * (lining.price_per_metre or 0.0)
            labour = (lining.labour_per_curtain or 0.0) * qty.curtain_count
            if material > 0:
                items.append(BreakdownItem(
                    id="lining",
                    name=f"Lining - {lining.type}",
                    quantity=qty.linear_meters,
                    unit="m",
                    unit_price=lining.price_per_metre,
                    total_cost=material,
                    category="lining",
                ))
            if labour > 0:
                items.append(BreakdownItem(
                    id="lining-labour",
                    name=f"Lining labour - {lining.type}",
                    quantity=qty.curtain_count,
                    unit="panel",
                    unit_price=lining.labour_per_curtain,
                    total_cost=labour,
                    category="lining",
                ))

        items.extend(manufacturing_lines)

        for option in options.option_details:
            items.append(BreakdownItem(
                id=f"option-{option.id}",
                name=option.name,
                description=option.description,
                quantity=option.quantity,
                unit=option.unit,
                unit_price=option.base_price,
                total_cost=option.cost,
                category="option",
                pricing_method=option.pricing_method,
                calculation=option.calculation,
                image_url=option.image_url,
            ))

        items.extend(heading_lines)

        if hardware_result is not None and hardware_result.grand_total_price > 0:
            hardware = request.hardware
            items.extend(build_hardware_breakdown_items(hardware.name, hardware_result, hardware.image_url))

        return tuple(items)

    def _details(self, category, pricing_type, qty, fabric_pricing, breakdown) -> CalculationDetails:
        values: Dict[str, Any] = dict(
            treatment_category=category,
            pricing_type=pricing_type,
            curtain_count=qty.curtain_count,
            fullness_ratio=qty.fullness,
            linear_meters=qty.linear_meters,
            sqm=qty.sqm,
            widths_required=qty.widths_required,
            grid_price=fabric_pricing.grid_price,
            wallpaper=qty.wallpaper,
            breakdown=breakdown,
        )
        if qty.curtain is not None:
            usage, params = qty.curtain, qty.curtain_params
            values.update(
                seams_required=usage.seams_required,
                required_width_cm=usage.required_width_cm,
                total_width_with_allowances_cm=usage.total_width_cm,
                total_drop_cm=usage.total_drop_cm,
                fabric_width_cm=usage.fabric_width_cm,
                side_hems_cm=params.side_hems_cm,
                header_hem_cm=params.header_hem_cm,
                bottom_hem_cm=params.bottom_hem_cm,
                return_left_cm=params.return_left_cm,
                return_right_cm=params.return_right_cm,
                pooling_cm=params.pooling_cm,
                seam_allowance_total_cm=usage.seam_allowance_total_cm,
                waste_percent=params.waste_percent,
                leftover_per_panel_cm=usage.leftover_per_panel_cm,
                leftover_total_cm=usage.leftover_total_cm,
                orientation=usage.orientation,
            )
        if qty.blind is not None:
            values.update(
                effective_width_cm=qty.blind.effective_width_cm,
                effective_height_cm=qty.blind.effective_height_cm,
                total_drop_cm=qty.blind.effective_height_cm,
                **qty.blind_hems,
            )
        return CalculationDetails(**values)


def calculate_treatment_pricing(
    pricing_input: Union[TreatmentPricingInput, Mapping[str, Any]],
    logger: Optional[logging.Logger] = None,
) -> TreatmentPricingResult:
    """Price one treatment; see TreatmentPricingEngine.calculate."""
    return TreatmentPricingEngine(logger=logger).calculate(pricing_input)
