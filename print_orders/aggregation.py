"""Consumption, cost and profit aggregation for print orders."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional

from .domain import UNASSIGNED, FulfillmentStatus, MaterialTotal, Order

CostLookup = Callable[[str], Optional[float]]

@dataclass(slots=True)
class OrderTotals:
    """Derived financial figures for a single order."""

    totals_by_material: Dict[str, MaterialTotal]
    revenue: float
    expenses: Optional[float]
    profit: float


@dataclass(slots=True)
class OrderStatistics:
    """Aggregate figures over a collection of orders."""

    order_count: int = 0
    status_counts: Dict[FulfillmentStatus, int] = field(default_factory=dict)
    revenue: float = 0.0
    expenses: float = 0.0
    profit: float = 0.0
    material_usage: Dict[str, MaterialTotal] = field(default_factory=dict)


def recompute(order: Order, cost_lookup: CostLookup) -> OrderTotals:
    """Derive per-material totals, revenue, expenses and profit.

    ``cost_lookup`` maps a material id to its cost per kilogram, or ``None``
    when the material is unknown. Expenses stay ``None`` unless at least one
    assigned material resolved to a cost, so that "no cost data" is never
    reported as a zero cost.
    """

    totals: Dict[str, MaterialTotal] = {}
    revenue = 0.0
    expenses_sum = 0.0
    has_assigned_material = False

    for piece in order.pieces:
        for part in piece.parts:
            mass = part.required_mass * piece.quantity
            key = part.selected_material_id or UNASSIGNED
            bucket = totals.setdefault(key, MaterialTotal())
            bucket.total_mass += mass
            if not part.selected_material_id:
                continue
            cost_per_kilo = cost_lookup(part.selected_material_id)
            if cost_per_kilo is None:
                continue
            cost = mass / 1000 * cost_per_kilo
            bucket.total_cost += cost
            expenses_sum += cost
            has_assigned_material = True
        if piece.unit_price is not None:
            revenue += piece.unit_price * piece.quantity

    expenses = expenses_sum if has_assigned_material else None
    profit = revenue - expenses if expenses is not None else revenue
    return OrderTotals(
        totals_by_material=totals,
        revenue=revenue,
        expenses=expenses,
        profit=profit,
    )


def apply_totals(order: Order, totals: OrderTotals) -> Order:
    order.totals_by_material = totals.totals_by_material
    order.revenue = totals.revenue
    order.expenses = totals.expenses
    order.profit = totals.profit
    return order


def summarize(
    orders: Iterable[Order], cost_lookup: Optional[CostLookup] = None
) -> OrderStatistics:
    """Combine the stored figures of ``orders`` into one summary.

    When ``cost_lookup`` is given the totals are recomputed against current
    material costs instead of the values stored on each order.
    """

    statistics = OrderStatistics()
    status_counts: Counter = Counter()
    for order in orders:
        totals = (
            recompute(order, cost_lookup)
            if cost_lookup is not None
            else OrderTotals(
                totals_by_material=order.totals_by_material,
                revenue=order.revenue,
                expenses=order.expenses,
                profit=order.profit,
            )
        )
        statistics.order_count += 1
        status_counts[order.status] += 1
        statistics.revenue += totals.revenue
        statistics.expenses += totals.expenses or 0.0
        statistics.profit += totals.profit
        for material_id, material_total in totals.totals_by_material.items():
            usage = statistics.material_usage.setdefault(material_id, MaterialTotal())
            usage.total_mass += material_total.total_mass
            usage.total_cost += material_total.total_cost
    statistics.status_counts = {
        status: status_counts.get(status, 0) for status in FulfillmentStatus
    }
    return statistics


__all__ = [
    "CostLookup",
    "OrderTotals",
    "OrderStatistics",
    "recompute",
    "apply_totals",
    "summarize",
]
