"""Fulfillment status transitions for print orders.

``Not Started``, ``Printing`` and ``Printed`` are derived from the printed
counters of the pieces. ``Done`` is only reached through :func:`mark_done`
and left through :func:`restore` (back to ``Printed``) or
:func:`mark_printed`.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Dict

from .domain import (
    FulfillmentStatus,
    IndexOutOfRange,
    InvalidQuantity,
    InvalidTransition,
    Order,
)


def clamped_counts(order: Order) -> Dict[str, int]:
    """Return the progress counters limited to ``[0, quantity]`` per piece.

    Entries for pieces that are no longer part of the order are dropped.
    """

    counts: Dict[str, int] = {}
    for piece in order.pieces:
        if piece.id in order.printed_counts:
            value = order.printed_counts[piece.id]
            counts[piece.id] = min(max(value, 0), piece.quantity)
    return counts


def derive_status(order: Order) -> FulfillmentStatus:
    counts = clamped_counts(order)
    if not any(count > 0 for count in counts.values()):
        return FulfillmentStatus.NOT_STARTED
    if all(counts.get(piece.id, 0) == piece.quantity for piece in order.pieces):
        return FulfillmentStatus.PRINTED
    return FulfillmentStatus.PRINTING


def set_printed_count(
    order: Order, piece_index: int, count: int, *, sticky_done: bool = True
) -> Order:
    """Record progress for one piece and re-derive the status.

    With ``sticky_done`` an order marked ``Done`` keeps that status; the
    counters are still updated.
    """

    if isinstance(piece_index, bool) or not isinstance(piece_index, int):
        raise IndexOutOfRange(f"Piece index must be an integer, got {piece_index!r}")
    if piece_index < 0 or piece_index >= len(order.pieces):
        raise IndexOutOfRange(
            f"Piece index {piece_index} out of range for {len(order.pieces)} pieces"
        )
    if isinstance(count, bool) or not isinstance(count, int):
        raise InvalidQuantity(f"Printed count must be an integer, got {count!r}")
    updated = deepcopy(order)
    piece = updated.pieces[piece_index]
    updated.printed_counts[piece.id] = min(max(count, 0), piece.quantity)
    updated.printed_counts = clamped_counts(updated)
    if sticky_done and updated.status == FulfillmentStatus.DONE:
        return updated
    updated.status = derive_status(updated)
    return updated


def mark_printed(order: Order) -> Order:
    updated = deepcopy(order)
    updated.printed_counts = {piece.id: piece.quantity for piece in updated.pieces}
    updated.status = FulfillmentStatus.PRINTED
    return updated


def mark_done(order: Order) -> Order:
    updated = deepcopy(order)
    updated.status = FulfillmentStatus.DONE
    return updated


def restore(order: Order) -> Order:
    if order.status != FulfillmentStatus.DONE:
        raise InvalidTransition(
            f"Only orders in status {FulfillmentStatus.DONE.value!r} can be restored, "
            f"order {order.id!r} is {order.status.value!r}"
        )
    updated = deepcopy(order)
    updated.status = FulfillmentStatus.PRINTED
    return updated


def hide(order: Order) -> Order:
    updated = deepcopy(order)
    updated.hidden = True
    return updated


__all__ = [
    "clamped_counts",
    "derive_status",
    "set_printed_count",
    "mark_printed",
    "mark_done",
    "restore",
    "hide",
]
