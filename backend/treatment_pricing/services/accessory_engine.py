"""
accessory_engine.py — Hardware accessory quantities from bundle-rule formulas.

A track or pole carries either bundle rules (child_item_key, qty_formula,
child_unit_price) or a plain {accessory_key: unit_price} map.  Quantities
come from the rule's own formula, falling back to DEFAULT_ACCESSORY_FORMULAS,
evaluated by the safe expression engine:

    quantity = ceil(max(0, formula(rail_width_cm, fullness, ...)))

Accessories with quantity 0 are dropped, as are brackets that don't apply to
the mount type (ceiling mounts skip wall brackets and vice versa).
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from treatment_pricing.config import DEFAULT_ACCESSORY_FORMULAS, LOGGER_PREFIX, MOUNT_TYPES
from treatment_pricing.models.schemas import BreakdownItem, BundleRule
from treatment_pricing.services.errors import UnknownVariableError
from treatment_pricing.services.expression_engine import evaluate
from treatment_pricing.services.field_resolver import safe_ceil, to_number

RulesOrPrices = Union[Sequence[Any], Mapping[str, Any]]


@dataclass(frozen=True)
class AccessoryItem:
    key: str
    name: str
    quantity: int
    unit_price: float
    total_price: float
    formula: str
    formula_description: str


@dataclass(frozen=True)
class HardwareAccessoryResult:
    hardware_base_price: float
    accessories: Tuple[AccessoryItem, ...]
    accessories_total_price: float
    grand_total_price: float
    breakdown: Tuple[str, ...]


def format_accessory_name(key: str) -> str:
    """'wall_single_bracket' -> 'Wall Single Bracket'."""
    return " ".join(part.capitalize() for part in key.replace("_", " ").split())


def build_accessory_context(
    rail_width_cm: float,
    fullness: float = 1.0,
    drop_cm: Optional[float] = None,
) -> Dict[str, float]:
    """Variables visible to quantity formulas."""
    context = {
        "rail_width_cm": rail_width_cm,
        "rail_width": rail_width_cm,
        "width_cm": rail_width_cm,
        "fullness": fullness,
        "fullness_ratio": fullness,
    }
    if drop_cm is not None:
        context["drop_cm"] = drop_cm
        context["drop"] = drop_cm
    return context


def _excluded_by_mount(key: str, mount_type: str) -> bool:
    if "bracket" not in key:
        return False
    if mount_type == "ceiling":
        return key.startswith("wall")
    if mount_type == "wall":
        return key.startswith("ceiling")
    return False


def _normalise_rules(rules: RulesOrPrices) -> List[BundleRule]:
    """Bundle rules as given, or one formula-less rule per accessory-price entry."""
    if isinstance(rules, Mapping):
        return [
            BundleRule(child_item_key=str(key), child_unit_price=to_number(price) or 0.0)
            for key, price in rules.items()
        ]
    normalised = []
    for rule in rules or []:
        if isinstance(rule, BundleRule):
            normalised.append(rule)
        else:
            normalised.append(BundleRule.model_validate(rule))
    return normalised


class AccessoryEngine:
    """Resolves accessory quantities and prices for one hardware selection."""

    def __init__(
        self,
        default_formulas: Optional[Mapping[str, Mapping[str, str]]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.default_formulas = dict(DEFAULT_ACCESSORY_FORMULAS)
        if default_formulas:
            self.default_formulas.update(default_formulas)
        self.log = logger or logging.getLogger(f"{LOGGER_PREFIX}.accessories")

    def resolve_accessories(
        self,
        rules: RulesOrPrices,
        context: Mapping[str, Any],
        mount_type: Optional[str] = "both",
    ) -> Tuple[Tuple[AccessoryItem, ...], float]:
        """
        Returns (accessories, accessories_total) in rule order.

        A rule's own qty_formula takes precedence over the default table.
        A rule with no formula anywhere is skipped; a formula naming an
        unknown variable counts as quantity 0 and is skipped.  Malformed
        formulas and division by zero propagate as ExpressionError.
        """
        mount = (mount_type or "both").strip().lower()
        if mount not in MOUNT_TYPES:
            self.log.warning("Unknown mount type '%s', keeping all accessories", mount_type)
            mount = "both"

        accessories: List[AccessoryItem] = []
        total = 0.0
        for rule in _normalise_rules(rules):
            key = rule.child_item_key
            if _excluded_by_mount(key, mount):
                self.log.debug("Accessory '%s' skipped for %s mount", key, mount)
                continue

            default = self.default_formulas.get(key)
            formula = rule.qty_formula if rule.qty_formula and rule.qty_formula.strip() else None
            if formula is None and default is not None:
                formula = default["formula"]
            if formula is None:
                self.log.info("No quantity formula for accessory '%s'; skipped", key)
                continue

            try:
                value = evaluate(formula, context)
            except UnknownVariableError as exc:
                self.log.warning("Accessory '%s' formula '%s' skipped: %s", key, formula, exc)
                continue

            quantity = safe_ceil(max(0.0, value))
            if quantity <= 0:
                continue

            unit_price = rule.child_unit_price or 0.0
            line_total = quantity * unit_price
            total += line_total
            accessories.append(AccessoryItem(
                key=key,
                name=format_accessory_name(key),
                quantity=quantity,
                unit_price=unit_price,
                total_price=line_total,
                formula=formula,
                formula_description=default["description"] if default else formula,
            ))

        return tuple(accessories), total

    def calculate_hardware_accessories(
        self,
        rules_or_prices: RulesOrPrices,
        base_price: float,
        rail_width_cm: float,
        fullness: float = 1.0,
        mount_type: Optional[str] = "both",
        currency_symbol: str = "$",
        drop_cm: Optional[float] = None,
    ) -> HardwareAccessoryResult:
        context = build_accessory_context(rail_width_cm, fullness, drop_cm)
        accessories, accessories_total = self.resolve_accessories(rules_or_prices, context, mount_type)
        base = to_number(base_price) or 0.0

        lines = []
        for acc in accessories:
            if acc.unit_price > 0:
                lines.append(
                    f"{acc.name}: {acc.quantity} × {currency_symbol}{acc.unit_price:.2f} = "
                    f"{currency_symbol}{acc.total_price:.2f} ({acc.formula_description})"
                )
            else:
                lines.append(f"{acc.name}: {acc.quantity} (included)")

        return HardwareAccessoryResult(
            hardware_base_price=base,
            accessories=accessories,
            accessories_total_price=accessories_total,
            grand_total_price=base + accessories_total,
            breakdown=tuple(lines),
        )


def resolve_accessories(
    rules: RulesOrPrices,
    context: Mapping[str, Any],
    mount_type: Optional[str] = "both",
) -> Tuple[Tuple[AccessoryItem, ...], float]:
    return AccessoryEngine().resolve_accessories(rules, context, mount_type)


def calculate_hardware_accessories(
    rules_or_prices: RulesOrPrices,
    base_price: float,
    rail_width_cm: float,
    fullness: float = 1.0,
    mount_type: Optional[str] = "both",
    currency_symbol: str = "$",
) -> HardwareAccessoryResult:
    return AccessoryEngine().calculate_hardware_accessories(
        rules_or_prices, base_price, rail_width_cm, fullness, mount_type, currency_symbol,
    )


def build_hardware_breakdown_items(
    hardware_name: str,
    result: HardwareAccessoryResult,
    image_url: Optional[str] = None,
) -> List[BreakdownItem]:
    """One 'hardware' line for the base item plus a 'hardware_accessory' line per accessory."""
    items = [BreakdownItem(
        id="hardware-main",
        name=hardware_name or "Hardware",
        description="Base price",
        quantity=1,
        unit="unit",
        unit_price=result.hardware_base_price,
        total_cost=result.hardware_base_price,
        category="hardware",
        image_url=image_url,
    )]
    for idx, acc in enumerate(result.accessories):
        items.append(BreakdownItem(
            id=f"hardware-acc-{idx}",
            name=acc.name,
            description=acc.formula_description,
            quantity=acc.quantity,
            unit="unit",
            unit_price=acc.unit_price,
            total_cost=acc.total_price,
            category="hardware_accessory",
            calculation=acc.formula,
        ))
    return items
