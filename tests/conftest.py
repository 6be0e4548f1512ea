"""
Shared fixtures for order engine tests.
"""
import pytest

from print_orders.composer import OrderComposer, create_order
from print_orders.domain import ProductPart, ProductTemplate
from print_orders.services import OrderService

COSTS = {"A": 20.0, "B": 30.0, "free": 0.0}


def cost_lookup(material_id):
    return COSTS.get(material_id)


@pytest.fixture
def composer():
    return OrderComposer(cost_lookup)


@pytest.fixture
def empty_order():
    return create_order("Birthday gifts", "user-1")


@pytest.fixture
def keychain():
    """Single-part product, 10g, $5."""
    return ProductTemplate(
        id="keychain",
        title="Keychain",
        parts=[ProductPart(label="Body", required_mass=10.0)],
        price=5.0,
    )


@pytest.fixture
def vase():
    """Two-part product, $10."""
    return ProductTemplate(
        id="vase",
        title="Vase",
        parts=[
            ProductPart(label="Shell", required_mass=120.0),
            ProductPart(label="Base", required_mass=30.0),
        ],
        price=10.0,
    )


@pytest.fixture
def two_piece_order(composer, empty_order, keychain, vase):
    """Keychain x1 ($5) followed by vase x2 ($10)."""
    order = composer.add_piece(empty_order, keychain)
    return composer.add_piece(order, vase, quantity=2)


@pytest.fixture
def service():
    return OrderService()
