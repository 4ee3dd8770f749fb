"""
Cart behaviour: stock ceilings, clamping and totals.

The cart never touches the database, so plain objects stand in for
catalog items here.
"""

from types import SimpleNamespace

import pytest

from retaildesk.cart import Cart, CartError


def _item(item_id, *, price, stock, name=None):
    return SimpleNamespace(
        id=item_id,
        item_code=f"C-{item_id}",
        item_name=name or f"Item {item_id}",
        unit_price_cents=price,
        quantity=stock,
    )


@pytest.fixture
def drill():
    return _item(1, price=1000, stock=5, name="Cordless Drill")


@pytest.fixture
def bits():
    return _item(2, price=500, stock=3, name="Drill Bit Set")


class TestAdd:

    def test_new_line_gets_requested_quantity(self, drill):
        cart = Cart()
        line = cart.add(drill, 3)
        assert line.quantity == 3
        assert cart.item_count() == 3

    def test_default_quantity_is_one(self, drill):
        cart = Cart()
        assert cart.add(drill).quantity == 1

    def test_existing_line_grows(self, drill):
        cart = Cart()
        cart.add(drill, 2)
        cart.add(drill, 2)
        assert cart.get_line(drill.id).quantity == 4
        assert len(cart.lines) == 1

    def test_exceeding_stock_is_refused_and_cart_unchanged(self, drill):
        cart = Cart()
        cart.add(drill, 4)
        with pytest.raises(CartError) as exc:
            cart.add(drill, 2)
        assert exc.value.details["available"] == 5
        assert cart.get_line(drill.id).quantity == 4

    def test_out_of_stock_item_refused(self):
        cart = Cart()
        with pytest.raises(CartError):
            cart.add(_item(9, price=100, stock=0))
        assert cart.is_empty

    def test_non_positive_quantity_refused(self, drill):
        cart = Cart()
        with pytest.raises(CartError):
            cart.add(drill, 0)
        assert cart.is_empty

    def test_line_snapshots_price_and_stock(self, drill):
        cart = Cart()
        cart.add(drill, 1)
        drill.unit_price_cents = 9999
        drill.quantity = 100
        line = cart.get_line(drill.id)
        assert line.unit_price_cents == 1000
        assert line.available_stock == 5


class TestUpdateQuantity:

    def test_zero_is_refused(self, drill):
        cart = Cart()
        cart.add(drill, 2)
        with pytest.raises(CartError):
            cart.update_quantity(drill.id, 0)
        assert cart.get_line(drill.id).quantity == 2

    def test_above_stock_is_clamped(self, drill):
        cart = Cart()
        cart.add(drill, 1)
        line = cart.update_quantity(drill.id, drill.quantity + 1)
        assert line.quantity == 5

    def test_unknown_line_refused(self, drill):
        with pytest.raises(CartError):
            Cart().update_quantity(drill.id, 1)


class TestTotals:

    def test_mixed_cart_total(self, drill, bits):
        cart = Cart()
        cart.add(drill, 2)
        cart.add(bits, 1)

        assert cart.total() == 2500
        assert cart.total_cents == 2500
        assert [line.subtotal_cents for line in cart.lines] == [2000, 500]
        assert cart.item_count() == 3

    def test_remove_and_clear(self, drill, bits):
        cart = Cart()
        cart.add(drill)
        cart.add(bits)
        cart.remove(drill.id)
        assert [line.item_id for line in cart.lines] == [bits.id]
        cart.clear()
        assert cart.is_empty
        assert cart.total() == 0

    def test_to_dict(self, drill):
        cart = Cart()
        cart.add(drill, 2)
        data = cart.to_dict()
        assert data["total_cents"] == 2000
        assert data["lines"][0]["subtotal_cents"] == 2000
