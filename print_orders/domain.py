"""Core data structures for the 3D-print order engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

UNASSIGNED = "unassigned"


def generate_id() -> str:
    return str(uuid4())


class FulfillmentStatus(str, Enum):
    """Lifecycle stages for a print order."""

    NOT_STARTED = "Not Started"
    PRINTING = "Printing"
    PRINTED = "Printed"
    DONE = "Done"


class FilamentType(str, Enum):
    """Categorical attributes of a filament spool."""

    NORMAL = "normal"
    MULTICOLOR = "multicolor"
    SILK = "silk"
    MATTE = "matte"
    SPEED = "speed"


# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------
class OrderError(ValueError):
    """Base exception for rejected order operations."""


class InvalidTemplate(OrderError):
    """Raised when a product template has neither parts nor a price."""


class InvalidQuantity(OrderError):
    """Raised for non-positive or non-integer quantities and counts."""


class InvalidPrice(OrderError):
    """Raised when a unit price is negative."""


class InvalidTitle(OrderError):
    """Raised when an order title is blank."""


class IndexOutOfRange(OrderError, IndexError):
    """Raised when a piece or part index is beyond bounds."""


class InvalidTransition(OrderError):
    """Raised when a status command is not allowed from the current state."""


class IncompleteOrder(OrderError):
    """Raised when an order is not ready to be submitted."""

    def __init__(self, problems: Sequence[str]) -> None:
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "Order is incomplete")


# ----------------------------------------------------------------------
# Catalog records
# ----------------------------------------------------------------------
@dataclass(slots=True)
class Filament:
    """A filament spool type available in the inventory."""

    id: str
    title: str
    brand: str
    price_per_kilo: float
    colors: Tuple[str, ...] = tuple()
    types: Tuple[FilamentType, ...] = (FilamentType.NORMAL,)
    href: str = ""
    num_spools_owned: int = 0
    total_used: float = 0.0
    owner_id: Optional[str] = None
    hidden: bool = False


@dataclass(slots=True)
class ProductPart:
    """A material requirement declared on a product template."""

    label: str
    required_mass: float
    description: str = ""


@dataclass(slots=True)
class ProductTemplate:
    """Product master data used as the source of order pieces.

    A template carries either a single ``price`` or a set of
    ``price_variants`` (for example one price per size).
    """

    id: str
    title: str
    parts: List[ProductPart] = field(default_factory=list)
    price: Optional[float] = None
    price_variants: Dict[str, float] = field(default_factory=dict)
    print_time_hours: float = 0.0
    owner_id: Optional[str] = None
    hidden: bool = False

    @property
    def single_price(self) -> Optional[float]:
        if self.price_variants:
            return None
        return self.price

    @property
    def has_declared_price(self) -> bool:
        if self.price is not None and self.price > 0:
            return True
        return any(value > 0 for value in self.price_variants.values())


@dataclass(slots=True)
class UserAccount:
    """Per-user index of owned records."""

    id: str
    order_ids: List[str] = field(default_factory=list)
    filament_ids: List[str] = field(default_factory=list)
    product_ids: List[str] = field(default_factory=list)


# ----------------------------------------------------------------------
# Order aggregate
# ----------------------------------------------------------------------
@dataclass(slots=True)
class Part:
    """One material requirement inside a piece."""

    label: str
    required_mass: float
    selected_material_id: Optional[str] = None


@dataclass(slots=True)
class Piece:
    """A product snapshot with a quantity inside an order."""

    product_id: str
    product_title: str
    quantity: int = 1
    unit_price: Optional[float] = None
    parts: List[Part] = field(default_factory=list)
    id: str = field(default_factory=generate_id)


@dataclass(slots=True)
class MaterialTotal:
    total_mass: float = 0.0
    total_cost: float = 0.0


@dataclass(slots=True)
class Order:
    """Persisted aggregate of pieces, derived totals and fulfillment state."""

    id: str
    title: str
    owner_id: Optional[str]
    due_date: Optional[date] = None
    hidden: bool = False
    status: FulfillmentStatus = FulfillmentStatus.NOT_STARTED
    pieces: List[Piece] = field(default_factory=list)
    totals_by_material: Dict[str, MaterialTotal] = field(default_factory=dict)
    revenue: float = 0.0
    expenses: Optional[float] = None
    profit: float = 0.0
    # keyed by Piece.id so removals never shift progress onto another piece
    printed_counts: Dict[str, int] = field(default_factory=dict)
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def printed_count(self, index: int) -> int:
        return self.printed_counts.get(self.pieces[index].id, 0)

    def printed_counts_by_index(self) -> Dict[int, int]:
        """Positional view of the progress counters."""

        return {
            index: self.printed_counts[piece.id]
            for index, piece in enumerate(self.pieces)
            if piece.id in self.printed_counts
        }


__all__ = [
    "UNASSIGNED",
    "generate_id",
    "FulfillmentStatus",
    "FilamentType",
    "OrderError",
    "InvalidTemplate",
    "InvalidQuantity",
    "InvalidPrice",
    "InvalidTitle",
    "IndexOutOfRange",
    "InvalidTransition",
    "IncompleteOrder",
    "Filament",
    "ProductPart",
    "ProductTemplate",
    "UserAccount",
    "Part",
    "Piece",
    "MaterialTotal",
    "Order",
]
