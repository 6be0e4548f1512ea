"""Order engine for a small 3D-printing shop.

This package composes print orders from product templates, aggregates
filament consumption and cost per order, and tracks fulfillment progress
from per-piece print counters.
"""

from .aggregation import OrderStatistics, OrderTotals, recompute
from .composer import OrderComposer, create_order
from .domain import (
    UNASSIGNED,
    Filament,
    FulfillmentStatus,
    IncompleteOrder,
    IndexOutOfRange,
    InvalidPrice,
    InvalidQuantity,
    InvalidTemplate,
    InvalidTitle,
    InvalidTransition,
    MaterialTotal,
    Order,
    OrderError,
    Part,
    Piece,
    ProductPart,
    ProductTemplate,
)
from .services import OrderListing, OrderService

__all__ = [
    "UNASSIGNED",
    "Filament",
    "FulfillmentStatus",
    "IncompleteOrder",
    "IndexOutOfRange",
    "InvalidPrice",
    "InvalidQuantity",
    "InvalidTemplate",
    "InvalidTitle",
    "InvalidTransition",
    "MaterialTotal",
    "Order",
    "OrderError",
    "Part",
    "Piece",
    "ProductPart",
    "ProductTemplate",
    "OrderComposer",
    "create_order",
    "OrderStatistics",
    "OrderTotals",
    "recompute",
    "OrderListing",
    "OrderService",
]
