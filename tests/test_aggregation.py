"""Tests for the aggregation module."""
import pytest

from print_orders.aggregation import apply_totals, recompute, summarize
from print_orders.composer import create_order
from print_orders.domain import (
    UNASSIGNED,
    FulfillmentStatus,
    MaterialTotal,
    Part,
    Piece,
)

from conftest import cost_lookup


def _order_with(*pieces):
    order = create_order("Test", "user-1")
    order.pieces.extend(pieces)
    return order


class TestRecompute:
    """Per-material totals and order financials."""

    def test_mass_and_cost_scale_with_quantity(self):
        order = _order_with(
            Piece(
                product_id="p",
                product_title="P",
                quantity=2,
                parts=[Part(label="Body", required_mass=10.0, selected_material_id="A")],
            )
        )
        totals = recompute(order, cost_lookup)
        assert totals.totals_by_material["A"].total_mass == pytest.approx(20.0)
        assert totals.totals_by_material["A"].total_cost == pytest.approx(0.40)
        assert totals.expenses == pytest.approx(0.40)

    def test_revenue_sums_priced_pieces(self):
        order = _order_with(
            Piece(product_id="a", product_title="A", quantity=1, unit_price=5.0),
            Piece(product_id="b", product_title="B", quantity=2, unit_price=10.0),
        )
        assert recompute(order, cost_lookup).revenue == pytest.approx(25.0)

    def test_unpriced_piece_contributes_nothing(self):
        order = _order_with(
            Piece(product_id="a", product_title="A", quantity=3, unit_price=None),
            Piece(product_id="b", product_title="B", quantity=1, unit_price=4.0),
        )
        assert recompute(order, cost_lookup).revenue == pytest.approx(4.0)

    def test_no_assigned_material_leaves_expenses_unknown(self):
        order = _order_with(
            Piece(
                product_id="a",
                product_title="A",
                quantity=1,
                unit_price=8.0,
                parts=[Part(label="Body", required_mass=50.0)],
            )
        )
        totals = recompute(order, cost_lookup)
        assert totals.expenses is None
        assert totals.profit == pytest.approx(8.0)
        assert set(totals.totals_by_material) == {UNASSIGNED}
        assert totals.totals_by_material[UNASSIGNED].total_mass == pytest.approx(50.0)
        assert totals.totals_by_material[UNASSIGNED].total_cost == 0.0

    def test_zero_cost_material_is_a_known_zero(self):
        order = _order_with(
            Piece(
                product_id="a",
                product_title="A",
                unit_price=3.0,
                parts=[Part(label="Body", required_mass=50.0, selected_material_id="free")],
            )
        )
        totals = recompute(order, cost_lookup)
        assert totals.expenses == 0.0
        assert totals.profit == pytest.approx(3.0)

    def test_unknown_material_keeps_mass_but_no_cost(self):
        order = _order_with(
            Piece(
                product_id="a",
                product_title="A",
                unit_price=3.0,
                parts=[Part(label="Body", required_mass=15.0, selected_material_id="ghost")],
            )
        )
        totals = recompute(order, cost_lookup)
        assert totals.totals_by_material["ghost"].total_mass == pytest.approx(15.0)
        assert totals.totals_by_material["ghost"].total_cost == 0.0
        assert totals.expenses is None

    def test_partial_assignment_buckets_and_profit(self):
        order = _order_with(
            Piece(
                product_id="a",
                product_title="A",
                quantity=2,
                unit_price=10.0,
                parts=[
                    Part(label="Shell", required_mass=100.0, selected_material_id="A"),
                    Part(label="Base", required_mass=25.0, selected_material_id="B"),
                    Part(label="Lid", required_mass=5.0),
                ],
            )
        )
        totals = recompute(order, cost_lookup)
        assert set(totals.totals_by_material) == {"A", "B", UNASSIGNED}
        # A: 200g @ 20/kg = 4.0, B: 50g @ 30/kg = 1.5
        assert totals.expenses == pytest.approx(5.5)
        assert totals.profit == pytest.approx(20.0 - 5.5)
        assert totals.totals_by_material[UNASSIGNED].total_mass == pytest.approx(10.0)

    def test_empty_order_is_all_zero(self):
        totals = recompute(create_order("Empty", None), cost_lookup)
        assert totals.totals_by_material == {}
        assert totals.revenue == 0.0
        assert totals.expenses is None
        assert totals.profit == 0.0

    def test_apply_totals_writes_order_fields(self):
        order = _order_with(Piece(product_id="a", product_title="A", unit_price=2.0))
        apply_totals(order, recompute(order, cost_lookup))
        assert order.revenue == pytest.approx(2.0)
        assert order.profit == pytest.approx(2.0)
        assert order.expenses is None


class TestSummarize:
    """Statistics across orders."""

    def test_summarize_adds_up_stored_figures(self):
        first = create_order("One", "u")
        first.revenue, first.expenses, first.profit = 10.0, 4.0, 6.0
        first.totals_by_material = {"A": MaterialTotal(total_mass=200.0, total_cost=4.0)}
        second = create_order("Two", "u")
        second.revenue, second.expenses, second.profit = 5.0, None, 5.0
        second.status = FulfillmentStatus.DONE
        second.totals_by_material = {"A": MaterialTotal(total_mass=50.0, total_cost=1.0)}

        statistics = summarize([first, second])

        assert statistics.order_count == 2
        assert statistics.revenue == pytest.approx(15.0)
        assert statistics.expenses == pytest.approx(4.0)
        assert statistics.profit == pytest.approx(11.0)
        assert statistics.material_usage["A"].total_mass == pytest.approx(250.0)
        assert statistics.status_counts[FulfillmentStatus.NOT_STARTED] == 1
        assert statistics.status_counts[FulfillmentStatus.DONE] == 1
        assert statistics.status_counts[FulfillmentStatus.PRINTING] == 0

    def test_summarize_can_recompute_with_current_costs(self):
        order = _order_with(
            Piece(
                product_id="a",
                product_title="A",
                unit_price=1.0,
                parts=[Part(label="Body", required_mass=1000.0, selected_material_id="B")],
            )
        )
        statistics = summarize([order], cost_lookup)
        assert statistics.expenses == pytest.approx(30.0)
        assert statistics.profit == pytest.approx(-29.0)
