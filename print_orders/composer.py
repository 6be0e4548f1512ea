"""Construction and editing of the piece/part tree of an order."""

from __future__ import annotations

from copy import deepcopy
from datetime import date
from typing import List, Optional

from .aggregation import CostLookup, apply_totals, recompute
from .domain import (
    IncompleteOrder,
    IndexOutOfRange,
    InvalidPrice,
    InvalidQuantity,
    InvalidTemplate,
    InvalidTitle,
    Order,
    Part,
    Piece,
    ProductTemplate,
    generate_id,
)


def _validate_title(title: str) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise InvalidTitle("Order title is required")
    return cleaned


def _validate_quantity(quantity: object) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantity(f"Quantity must be a positive integer, got {quantity!r}")
    if quantity < 1:
        raise InvalidQuantity(f"Quantity must be a positive integer, got {quantity!r}")
    return quantity


def _validate_price(price: Optional[float]) -> Optional[float]:
    if price is None:
        return None
    if price < 0:
        raise InvalidPrice(f"Unit price must not be negative, got {price!r}")
    return float(price)


def _check_index(sequence: list, index: int, label: str) -> None:
    if isinstance(index, bool) or not isinstance(index, int):
        raise IndexOutOfRange(f"{label} index must be an integer, got {index!r}")
    if index < 0 or index >= len(sequence):
        raise IndexOutOfRange(
            f"{label} index {index} out of range for {len(sequence)} entries"
        )


def create_order(
    title: str,
    owner_id: Optional[str],
    *,
    due_date: Optional[date] = None,
) -> Order:
    """Return a fresh order with no pieces and zero totals."""

    return Order(
        id=generate_id(),
        title=_validate_title(title),
        owner_id=owner_id,
        due_date=due_date,
    )


def submission_problems(order: Order) -> List[str]:
    """List everything that keeps ``order`` from being submitted."""

    problems: List[str] = []
    if not order.title.strip():
        problems.append("Order title is required")
    for piece in order.pieces:
        if any(not part.selected_material_id for part in piece.parts):
            problems.append(
                f"Please select a filament for all parts in {piece.product_title}"
            )
        if not piece.unit_price or piece.unit_price <= 0:
            problems.append(f"Please set a price for {piece.product_title}")
    return problems


def ensure_submittable(order: Order) -> Order:
    problems = submission_problems(order)
    if problems:
        raise IncompleteOrder(problems)
    return order


class OrderComposer:
    """Pure editing operations over the piece/part tree of an order.

    Every operation works on a deep copy of the given order and recomputes
    the aggregated totals before returning it, so callers never observe an
    order whose totals are stale.
    """

    def __init__(self, cost_lookup: CostLookup) -> None:
        self._cost_lookup = cost_lookup

    def _finish(self, order: Order) -> Order:
        for piece in order.pieces:
            count = order.printed_counts.get(piece.id)
            if count is not None and count > piece.quantity:
                order.printed_counts[piece.id] = piece.quantity
        return apply_totals(order, recompute(order, self._cost_lookup))

    def refresh(self, order: Order) -> Order:
        """Recompute totals, e.g. after material costs changed."""

        return self._finish(deepcopy(order))

    def add_piece(
        self,
        order: Order,
        template: ProductTemplate,
        quantity: int = 1,
        *,
        unit_price: Optional[float] = None,
    ) -> Order:
        if not template.parts and not template.has_declared_price:
            raise InvalidTemplate(
                f"Product {template.title!r} defines neither parts nor a price"
            )
        if any(part.required_mass < 0 for part in template.parts):
            raise InvalidTemplate(
                f"Product {template.title!r} declares a negative part mass"
            )
        quantity = _validate_quantity(quantity)
        price = _validate_price(
            unit_price if unit_price is not None else template.single_price
        )
        piece = Piece(
            product_id=template.id,
            product_title=template.title,
            quantity=quantity,
            unit_price=price,
            parts=[
                Part(label=part.label, required_mass=part.required_mass)
                for part in template.parts
            ],
        )
        updated = deepcopy(order)
        updated.pieces.append(piece)
        return self._finish(updated)

    def duplicate_piece(self, order: Order, index: int) -> Order:
        _check_index(order.pieces, index, "Piece")
        updated = deepcopy(order)
        copy = deepcopy(updated.pieces[index])
        copy.id = generate_id()
        updated.pieces.insert(index + 1, copy)
        return self._finish(updated)

    def remove_piece(self, order: Order, index: int) -> Order:
        _check_index(order.pieces, index, "Piece")
        updated = deepcopy(order)
        removed = updated.pieces.pop(index)
        updated.printed_counts.pop(removed.id, None)
        return self._finish(updated)

    def update_piece_quantity(self, order: Order, index: int, quantity: int) -> Order:
        _check_index(order.pieces, index, "Piece")
        quantity = _validate_quantity(quantity)
        updated = deepcopy(order)
        updated.pieces[index].quantity = quantity
        return self._finish(updated)

    def set_piece_price(
        self, order: Order, index: int, unit_price: Optional[float]
    ) -> Order:
        _check_index(order.pieces, index, "Piece")
        price = _validate_price(unit_price)
        updated = deepcopy(order)
        updated.pieces[index].unit_price = price
        return self._finish(updated)

    def set_part_material(
        self,
        order: Order,
        piece_index: int,
        part_index: int,
        material_id: Optional[str],
    ) -> Order:
        _check_index(order.pieces, piece_index, "Piece")
        _check_index(order.pieces[piece_index].parts, part_index, "Part")
        updated = deepcopy(order)
        updated.pieces[piece_index].parts[part_index].selected_material_id = (
            material_id or None
        )
        return self._finish(updated)

    def rename(self, order: Order, title: str) -> Order:
        updated = deepcopy(order)
        updated.title = _validate_title(title)
        return self._finish(updated)

    def set_due_date(self, order: Order, due_date: Optional[date]) -> Order:
        updated = deepcopy(order)
        updated.due_date = due_date
        return self._finish(updated)


__all__ = [
    "OrderComposer",
    "create_order",
    "submission_problems",
    "ensure_submittable",
]
