"""Service layer that wires catalogs, persistence and the order engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from . import fulfillment
from .aggregation import OrderStatistics, summarize
from .composer import OrderComposer, create_order, ensure_submittable
from .config import FulfillmentOptions
from .domain import (
    Filament,
    FilamentType,
    FulfillmentStatus,
    InvalidPrice,
    InvalidTemplate,
    Order,
    ProductPart,
    ProductTemplate,
    UserAccount,
    generate_id,
)
from .repository import InMemoryRepository, RecordNotFoundError, Repository

logger = logging.getLogger(__name__)

ORDER_SORT_KEYS = ("title", "due_date", "status", "revenue", "profit")


class AuthenticationRequired(PermissionError):
    """Raised when an operation needs a signed-in owner."""


@dataclass(slots=True)
class OrderListing:
    """Options for listing the orders of one owner."""

    include_done: bool = False
    include_hidden: bool = False
    sort_key: str = "due_date"
    descending: bool = False


def _sort_orders(orders: List[Order], sort_key: str, descending: bool) -> List[Order]:
    if sort_key not in ORDER_SORT_KEYS:
        raise ValueError(
            f"Unknown sort key {sort_key!r}, expected one of {', '.join(ORDER_SORT_KEYS)}"
        )

    def value(order: Order):
        if sort_key == "status":
            return order.status.value
        if sort_key == "title":
            return order.title.lower()
        return getattr(order, sort_key)

    if sort_key == "due_date":
        # a missing due date ranks below every date
        return sorted(
            orders,
            key=lambda order: (order.due_date is not None, order.due_date or date.min),
            reverse=descending,
        )
    return sorted(orders, key=value, reverse=descending)


class OrderService:
    """Facade that exposes order use-cases to clients."""

    def __init__(
        self,
        filament_repo: Optional[Repository[Filament]] = None,
        product_repo: Optional[Repository[ProductTemplate]] = None,
        order_repo: Optional[Repository[Order]] = None,
        user_repo: Optional[Repository[UserAccount]] = None,
        *,
        fulfillment_options: Optional[FulfillmentOptions] = None,
    ) -> None:
        self.filaments = filament_repo if filament_repo is not None else InMemoryRepository()
        self.products = product_repo if product_repo is not None else InMemoryRepository()
        self.orders = order_repo if order_repo is not None else InMemoryRepository()
        self.users = user_repo if user_repo is not None else InMemoryRepository()
        self.fulfillment_options = fulfillment_options or FulfillmentOptions()
        self.composer = OrderComposer(self.cost_per_kilo)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def _require_owner(self, owner_id: Optional[str]) -> str:
        if not owner_id:
            raise AuthenticationRequired("You must be signed in to create an order")
        return owner_id

    def ensure_user(self, user_id: str) -> UserAccount:
        if user_id in self.users:
            return self.users.get(user_id)
        account = UserAccount(id=user_id)
        self.users.add(account.id, account)
        return account

    def append_order_to_user(self, user_id: str, order_id: str) -> UserAccount:
        account = self.ensure_user(user_id)
        if order_id not in account.order_ids:
            account.order_ids.append(order_id)
            self.users.upsert(account.id, account)
        return account

    # ------------------------------------------------------------------
    # Catalogs
    # ------------------------------------------------------------------
    def register_filament(
        self,
        title: str,
        brand: str,
        *,
        price_per_kilo: float,
        owner_id: Optional[str] = None,
        colors: Sequence[str] = (),
        types: Sequence[FilamentType] = (FilamentType.NORMAL,),
        href: str = "",
        num_spools_owned: int = 0,
    ) -> Filament:
        if price_per_kilo < 0:
            raise InvalidPrice("Filament price per kilo must not be negative")
        filament = Filament(
            id=generate_id(),
            title=title,
            brand=brand,
            price_per_kilo=price_per_kilo,
            colors=tuple(colors),
            types=tuple(dict.fromkeys(types)),
            href=href,
            num_spools_owned=num_spools_owned,
            owner_id=owner_id,
        )
        self.filaments.add(filament.id, filament)
        if owner_id:
            account = self.ensure_user(owner_id)
            account.filament_ids.append(filament.id)
            self.users.upsert(account.id, account)
        return filament

    def update_filament_price(self, filament_id: str, price_per_kilo: float) -> Filament:
        if price_per_kilo < 0:
            raise InvalidPrice("Filament price per kilo must not be negative")
        filament = self.filaments.get(filament_id)
        filament.price_per_kilo = price_per_kilo
        self.filaments.upsert(filament.id, filament)
        return filament

    def register_product(
        self,
        title: str,
        parts: Iterable[Tuple[str, float]],
        *,
        price: Optional[float] = None,
        price_variants: Optional[dict] = None,
        print_time_hours: float = 0.0,
        owner_id: Optional[str] = None,
    ) -> ProductTemplate:
        product_parts = [
            ProductPart(label=label, required_mass=required_mass)
            for label, required_mass in parts
        ]
        if any(part.required_mass < 0 for part in product_parts):
            raise InvalidTemplate(f"Product {title!r} declares a negative part mass")
        product = ProductTemplate(
            id=generate_id(),
            title=title,
            parts=product_parts,
            price=price,
            price_variants=dict(price_variants or {}),
            print_time_hours=print_time_hours,
            owner_id=owner_id,
        )
        self.products.add(product.id, product)
        if owner_id:
            account = self.ensure_user(owner_id)
            account.product_ids.append(product.id)
            self.users.upsert(account.id, account)
        return product

    def resolve_price(self, product_id: str, variant: Optional[str] = None) -> Optional[float]:
        """Pick the unit price of a product, resolving size variants."""

        product = self.products.get(product_id)
        if not product.price_variants:
            return product.price
        if variant is None:
            return None
        try:
            return product.price_variants[variant]
        except KeyError as exc:
            raise RecordNotFoundError(
                f"Product {product.title!r} has no price variant {variant!r}"
            ) from exc

    def cost_per_kilo(self, material_id: str) -> Optional[float]:
        if material_id not in self.filaments:
            return None
        return self.filaments.get(material_id).price_per_kilo or 0.0

    # ------------------------------------------------------------------
    # Order composition
    # ------------------------------------------------------------------
    def _save(self, order: Order) -> Order:
        self.orders.upsert(order.id, order)
        return order

    def create_order(
        self,
        owner_id: Optional[str],
        title: str,
        *,
        due_date: Optional[date] = None,
    ) -> Order:
        owner = self._require_owner(owner_id)
        order = create_order(title, owner, due_date=due_date)
        self.orders.add(order.id, order)
        self.append_order_to_user(owner, order.id)
        logger.info("Created order %s (%s) for %s", order.id, order.title, owner)
        return order

    def get_order(self, order_id: str) -> Order:
        return self.orders.get(order_id)

    def add_piece(
        self,
        order_id: str,
        product_id: str,
        quantity: int = 1,
        *,
        variant: Optional[str] = None,
    ) -> Order:
        order = self.orders.get(order_id)
        product = self.products.get(product_id)
        unit_price = self.resolve_price(product_id, variant)
        updated = self.composer.add_piece(order, product, quantity, unit_price=unit_price)
        logger.info("Added %s x%d to order %s", product.title, quantity, order_id)
        return self._save(updated)

    def duplicate_piece(self, order_id: str, index: int) -> Order:
        updated = self.composer.duplicate_piece(self.orders.get(order_id), index)
        return self._save(updated)

    def remove_piece(self, order_id: str, index: int) -> Order:
        updated = self.composer.remove_piece(self.orders.get(order_id), index)
        logger.info("Removed piece %d from order %s", index, order_id)
        return self._save(updated)

    def update_piece_quantity(self, order_id: str, index: int, quantity: int) -> Order:
        updated = self.composer.update_piece_quantity(
            self.orders.get(order_id), index, quantity
        )
        return self._save(updated)

    def set_piece_price(
        self, order_id: str, index: int, unit_price: Optional[float]
    ) -> Order:
        updated = self.composer.set_piece_price(
            self.orders.get(order_id), index, unit_price
        )
        return self._save(updated)

    def set_part_material(
        self,
        order_id: str,
        piece_index: int,
        part_index: int,
        material_id: Optional[str],
    ) -> Order:
        if material_id and material_id not in self.filaments:
            raise RecordNotFoundError(f"Filament {material_id!r} does not exist")
        updated = self.composer.set_part_material(
            self.orders.get(order_id), piece_index, part_index, material_id
        )
        return self._save(updated)

    def update_order_details(
        self,
        order_id: str,
        *,
        title: Optional[str] = None,
        due_date: Optional[date] = None,
        clear_due_date: bool = False,
    ) -> Order:
        order = self.orders.get(order_id)
        if title is not None:
            order = self.composer.rename(order, title)
        if due_date is not None or clear_due_date:
            order = self.composer.set_due_date(order, due_date)
        return self._save(order)

    def submit_order(self, order_id: str) -> Order:
        """Validate that an order is complete and persist fresh totals."""

        order = self.composer.refresh(self.orders.get(order_id))
        ensure_submittable(order)
        return self._save(order)

    def refresh_totals(self, order_id: str) -> Order:
        return self._save(self.composer.refresh(self.orders.get(order_id)))

    # ------------------------------------------------------------------
    # Fulfillment
    # ------------------------------------------------------------------
    def set_printed_count(self, order_id: str, piece_index: int, count: int) -> Order:
        order = self.orders.get(order_id)
        updated = fulfillment.set_printed_count(
            order,
            piece_index,
            count,
            sticky_done=self.fulfillment_options.sticky_done,
        )
        if updated.status != order.status:
            logger.info(
                "Order %s moved from %s to %s",
                order_id,
                order.status.value,
                updated.status.value,
            )
        return self._save(updated)

    def mark_printed(self, order_id: str) -> Order:
        updated = fulfillment.mark_printed(self.orders.get(order_id))
        logger.info("Order %s marked printed", order_id)
        return self._save(updated)

    def mark_done(self, order_id: str) -> Order:
        updated = fulfillment.mark_done(self.orders.get(order_id))
        logger.info("Order %s marked done", order_id)
        return self._save(updated)

    def restore_order(self, order_id: str) -> Order:
        updated = fulfillment.restore(self.orders.get(order_id))
        logger.info("Order %s restored to %s", order_id, updated.status.value)
        return self._save(updated)

    def hide_order(self, order_id: str) -> Order:
        updated = fulfillment.hide(self.orders.get(order_id))
        logger.info("Order %s hidden", order_id)
        return self._save(updated)

    def update_fulfillment_options(self, *, sticky_done: bool) -> FulfillmentOptions:
        self.fulfillment_options = FulfillmentOptions(sticky_done=sticky_done)
        return self.fulfillment_options

    # ------------------------------------------------------------------
    # Listings and statistics
    # ------------------------------------------------------------------
    def _owner_orders(self, owner_id: str) -> List[Order]:
        if owner_id not in self.users:
            return []
        orders: List[Order] = []
        for order_id in self.users.get(owner_id).order_ids:
            try:
                orders.append(self.orders.get(order_id))
            except RecordNotFoundError:
                logger.warning("User %s references missing order %s", owner_id, order_id)
        return orders

    def list_orders(
        self, owner_id: str, listing: Optional[OrderListing] = None
    ) -> List[Order]:
        listing = listing or OrderListing()
        orders = [
            order
            for order in self._owner_orders(owner_id)
            if (listing.include_hidden or not order.hidden)
            and (listing.include_done or order.status != FulfillmentStatus.DONE)
        ]
        return _sort_orders(orders, listing.sort_key, listing.descending)

    def order_statistics(self, owner_id: str) -> OrderStatistics:
        visible = [order for order in self._owner_orders(owner_id) if not order.hidden]
        return summarize(visible)


__all__ = [
    "AuthenticationRequired",
    "OrderListing",
    "OrderService",
    "ORDER_SORT_KEYS",
]
