"""Demonstration script for the print order engine."""

from __future__ import annotations

from datetime import date, timedelta
from pprint import pprint

from . import OrderService
from .config import configure_logging
from .domain import FilamentType


def main() -> None:
    configure_logging("INFO")
    service = OrderService()
    owner = "demo-user"

    # Filaments
    galaxy_black = service.register_filament(
        title="Galaxy Black PLA",
        brand="Prusament",
        price_per_kilo=29.99,
        owner_id=owner,
        colors=["#1b1b1f"],
        types=[FilamentType.NORMAL],
        num_spools_owned=3,
    )
    silk_gold = service.register_filament(
        title="Silk Gold",
        brand="eSUN",
        price_per_kilo=22.50,
        owner_id=owner,
        colors=["#d4a017"],
        types=[FilamentType.SILK],
        num_spools_owned=1,
    )

    # Products
    dragon = service.register_product(
        title="Articulated Dragon",
        parts=[("Body", 85.0), ("Wings", 22.5)],
        price=35.0,
        print_time_hours=9.5,
        owner_id=owner,
    )
    planter = service.register_product(
        title="Hex Planter",
        parts=[("Pot", 140.0), ("Saucer", 40.0)],
        price_variants={"small": 12.0, "large": 24.0},
        print_time_hours=6.0,
        owner_id=owner,
    )

    order = service.create_order(
        owner, "Market stall restock", due_date=date.today() + timedelta(days=7)
    )
    service.add_piece(order.id, dragon.id, quantity=2)
    service.add_piece(order.id, planter.id, variant="large")
    service.set_part_material(order.id, 0, 0, galaxy_black.id)
    service.set_part_material(order.id, 0, 1, silk_gold.id)
    service.set_part_material(order.id, 1, 0, galaxy_black.id)
    order = service.set_part_material(order.id, 1, 1, galaxy_black.id)

    print("Totals by filament:")
    pprint(order.totals_by_material)
    print(
        f"Revenue ${order.revenue:.2f} - Expenses ${order.expenses or 0:.2f}"
        f" = Profit ${order.profit:.2f}"
    )

    service.submit_order(order.id)
    for piece_index, count in [(0, 1), (0, 2), (1, 1)]:
        order = service.set_printed_count(order.id, piece_index, count)
        print(f"Piece {piece_index} printed {count}: {order.status.value}")
    order = service.mark_done(order.id)
    print(f"Order {order.title!r} is {order.status.value}")

    print("Statistics:")
    pprint(service.order_statistics(owner))


if __name__ == "__main__":
    main()
