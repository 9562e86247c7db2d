"""
options_engine.py — Prices the options selected on a treatment.

Walks flat options first, then hierarchical trees
(category → subcategories → sub_subcategories → extras), pricing every node
whose id is selected.  Pricing methods resolve top-down: a node marked
``inherit`` (or with no method) takes its parent's effective method, and a
category falls back to its ``calculation_method`` and then to the
window-covering default.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from treatment_pricing.config import LOGGER_PREFIX
from treatment_pricing.models.schemas import OptionNode
from treatment_pricing.services.field_resolver import resolve_first
from treatment_pricing.services.pricing_methods import (
    FIXED,
    PricingContext,
    calculate_price,
    resolve_pricing_method,
)

# child collections in traversal order
_CHILD_FIELDS = ("subcategories", "sub_subcategories", "extras")


@dataclass(frozen=True)
class OptionCost:
    id: str
    name: str
    description: Optional[str]
    base_price: float
    pricing_method: str
    cost: float
    calculation: str
    quantity: float
    unit: str
    image_url: Optional[str] = None


@dataclass(frozen=True)
class OptionsAggregate:
    total_cost: float
    option_details: Tuple[OptionCost, ...]


def _as_node(option: Any) -> OptionNode:
    return option if isinstance(option, OptionNode) else OptionNode.model_validate(option)


def _walk(node: OptionNode, parent_method: Optional[str]) -> Iterator[Tuple[OptionNode, str]]:
    """Yield (node, effective method) depth-first in declared order."""
    own = node.pricing_method or node.calculation_method
    method = resolve_pricing_method(own, parent_method) or FIXED
    yield node, method
    for field_name in _CHILD_FIELDS:
        for child in getattr(node, field_name):
            yield from _walk(child, method)


class OptionsEngine:

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.log = logger or logging.getLogger(f"{LOGGER_PREFIX}.options")

    def aggregate(
        self,
        selected_ids: Iterable[Any],
        flat_options: Sequence[Any] = (),
        hierarchical_options: Sequence[Any] = (),
        default_method: Optional[str] = FIXED,
        context: Optional[PricingContext] = None,
    ) -> OptionsAggregate:
        """
        Sum the cost of every selected option.

        Each option is priced with its own base price (``base_price``, else
        ``price``) against ``context``.  Selected ids with no matching option
        are stale selections and contribute nothing.
        """
        wanted: Set[str] = {str(option_id) for option_id in selected_ids}
        context = context or PricingContext()
        details: List[OptionCost] = []
        seen: Set[str] = set()

        candidates: List[Tuple[OptionNode, str]] = []
        for option in flat_options:
            node = _as_node(option)
            candidates.append((node, resolve_pricing_method(node.pricing_method, default_method) or FIXED))
        for category in hierarchical_options:
            candidates.extend(_walk(_as_node(category), default_method))

        for node, method in candidates:
            node_id = str(node.id)
            if node.id is None or node_id not in wanted or node_id in seen:
                continue
            seen.add(node_id)

            base_price = resolve_first([node.base_price, node.price], 0.0)
            priced = calculate_price(method, replace(
                context,
                base_cost=base_price,
                pricing_grid_data=node.pricing_grid_data or context.pricing_grid_data,
            ))
            details.append(OptionCost(
                id=node_id,
                name=node.name or node_id,
                description=node.description,
                base_price=base_price,
                pricing_method=priced.method,
                cost=priced.cost,
                calculation=priced.calculation,
                quantity=priced.quantity,
                unit=priced.unit,
                image_url=node.image_url,
            ))
            self.log.debug("Option '%s' (%s): %s", node.name, priced.method, priced.calculation)

        stale = wanted - seen
        if stale:
            self.log.debug("Skipping %d stale option selection(s): %s", len(stale), sorted(stale))

        return OptionsAggregate(
            total_cost=sum(detail.cost for detail in details),
            option_details=tuple(details),
        )


def aggregate_options(
    selected_ids: Iterable[Any],
    flat_options: Sequence[Any] = (),
    hierarchical_options: Sequence[Any] = (),
    default_method: Optional[str] = FIXED,
    context: Optional[PricingContext] = None,
) -> OptionsAggregate:
    return OptionsEngine().aggregate(selected_ids, flat_options, hierarchical_options, default_method, context)
