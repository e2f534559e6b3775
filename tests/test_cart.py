"""Tests for the cart line merger."""

from dataclasses import replace
from decimal import Decimal

import pytest

from food_ordering.pricing.calculator import InvalidQuantityError
from food_ordering.pricing.cart import (
    Cart,
    CartLineNotFoundError,
    GuestLine,
    ItemUnavailableError,
    add_to_cart,
    cart_item_count,
    cart_subtotal,
    clear_cart,
    merge_guest_lines,
    remove_line,
    update_line,
)
from food_ordering.pricing.catalog import ItemStatus
from food_ordering.pricing.selection import SelectedCustomization
from food_ordering.pricing.validator import CustomizationValidationError, ValidationCode


def sel(group_id, *option_ids, text=None):
    return SelectedCustomization(group_id, tuple(option_ids), text)


@pytest.fixture
def cart():
    return Cart(user_id="user-1")


class TestAddToCart:

    def test_new_line_is_priced_from_catalog(self, cart, curry):
        line = add_to_cart(cart, curry, 2, [sel("spice", "hot")])
        assert len(cart.lines) == 1
        assert line.unit_price == Decimal("13.50")
        assert line.total_price == Decimal("27.00")
        assert line.id

    def test_equivalent_selection_merges(self, cart, curry):
        first = add_to_cart(cart, curry, 1, [sel("spice", "hot"), sel("extras", "rice", "naan")])
        second = add_to_cart(cart, curry, 2, [sel("extras", "naan", "rice"), sel("spice", "hot")])

        assert second is first
        assert len(cart.lines) == 1
        assert first.quantity == 3
        assert first.total_price == Decimal("50.25")

    def test_different_selection_gets_new_line(self, cart, curry):
        add_to_cart(cart, curry, 1, [sel("spice", "hot")])
        add_to_cart(cart, curry, 1, [sel("spice", "mild")])
        assert len(cart.lines) == 2

    def test_merge_overwrites_special_instructions(self, cart, curry):
        add_to_cart(cart, curry, 1, [sel("spice", "mild")], "no onions")
        line = add_to_cart(cart, curry, 1, [sel("spice", "mild")], "extra napkins")
        assert line.special_instructions == "extra napkins"

    def test_merge_reprices_from_current_catalog(self, cart, curry):
        line = add_to_cart(cart, curry, 1, [sel("spice", "mild")])
        line.unit_price = Decimal("0.01")
        line.total_price = Decimal("0.01")

        add_to_cart(cart, curry, 1, [sel("spice", "mild")])
        assert line.unit_price == Decimal("12.00")
        assert line.total_price == Decimal("24.00")

    def test_invalid_selection_leaves_cart_untouched(self, cart, curry):
        with pytest.raises(CustomizationValidationError) as exc_info:
            add_to_cart(cart, curry, 1, [sel("extras", "rice")])
        assert [e.code for e in exc_info.value.errors] == [ValidationCode.MISSING_REQUIRED]
        assert cart.lines == []

    def test_unavailable_item_is_refused(self, cart, curry):
        sold_out = replace(curry, status=ItemStatus.SOLD_OUT)
        with pytest.raises(ItemUnavailableError) as exc_info:
            add_to_cart(cart, sold_out, 1, [sel("spice", "mild")])
        assert exc_info.value.status == ItemStatus.SOLD_OUT

    def test_low_stock_item_is_not_orderable(self, cart, curry):
        with pytest.raises(ItemUnavailableError):
            add_to_cart(cart, replace(curry, status=ItemStatus.LOW_STOCK), 1, [sel("spice", "mild")])

    def test_quantity_below_one_is_refused(self, cart, curry):
        with pytest.raises(InvalidQuantityError):
            add_to_cart(cart, curry, 0, [sel("spice", "mild")])
        assert cart.lines == []


class TestLineOperations:

    def test_update_quantity_reprices(self, cart, curry):
        line = add_to_cart(cart, curry, 1, [sel("spice", "hot")])
        update_line(cart, line.id, curry, quantity=4)
        assert line.quantity == 4
        assert line.total_price == Decimal("54.00")

    def test_update_selections_revalidates(self, cart, curry):
        line = add_to_cart(cart, curry, 1, [sel("spice", "hot")])
        with pytest.raises(CustomizationValidationError):
            update_line(cart, line.id, curry, selections=[sel("spice", "mild"), sel("extras", "paneer")])
        assert line.selections == (sel("spice", "hot"),)

        update_line(cart, line.id, curry, selections=[sel("spice", "mild"), sel("extras", "raita")])
        assert line.unit_price == Decimal("12.75")

    def test_update_clears_instructions_only_when_given(self, cart, curry):
        line = add_to_cart(cart, curry, 1, [sel("spice", "hot")], "ring the bell")
        update_line(cart, line.id, curry, quantity=2)
        assert line.special_instructions == "ring the bell"
        update_line(cart, line.id, curry, special_instructions=None)
        assert line.special_instructions is None

    def test_update_unknown_line(self, cart, curry):
        with pytest.raises(CartLineNotFoundError):
            update_line(cart, "nope", curry, quantity=2)

    def test_remove_and_clear(self, cart, curry):
        first = add_to_cart(cart, curry, 1, [sel("spice", "hot")])
        add_to_cart(cart, curry, 1, [sel("spice", "mild")])

        assert remove_line(cart, first.id) is first
        assert len(cart.lines) == 1
        clear_cart(cart)
        assert cart.lines == []

    def test_subtotal_and_item_count(self, cart, curry):
        add_to_cart(cart, curry, 2, [sel("spice", "hot")])
        add_to_cart(cart, curry, 1, [sel("spice", "mild")])
        assert cart_subtotal(cart) == Decimal("39.00")
        assert cart_item_count(cart) == 3

    def test_empty_cart_subtotal(self, cart):
        assert cart_subtotal(cart) == Decimal("0.00")


class TestMergeGuestLines:

    def test_guest_lines_merge_into_existing(self, cart, curry):
        add_to_cart(cart, curry, 1, [sel("spice", "hot")], "no cilantro")
        report = merge_guest_lines(
            cart,
            [GuestLine("curry", 2, (sel("spice", "hot"),))],
            {"curry": curry}.get,
        )
        assert len(report.merged) == 1
        assert cart.lines[0].quantity == 3
        assert cart.lines[0].special_instructions == "no cilantro"

    def test_bad_guest_lines_are_skipped(self, cart, curry):
        sold_out = replace(curry, item_id="sold_out_curry", status=ItemStatus.SOLD_OUT)
        lookup = {"curry": curry, "sold_out_curry": sold_out}.get

        report = merge_guest_lines(cart, [
            GuestLine("ghost", 1),
            GuestLine("sold_out_curry", 1, (sel("spice", "mild"),)),
            GuestLine("curry", 0, (sel("spice", "mild"),)),
            GuestLine("curry", 1, (sel("extras", "rice"),)),
            GuestLine("curry", 1, (sel("spice", "mild"),)),
        ], lookup)

        assert [s.reason for s in report.skipped] == [
            "not_found",
            "unavailable",
            "invalid_quantity",
            "invalid_customization",
        ]
        assert report.skipped[3].errors[0].code == ValidationCode.MISSING_REQUIRED
        assert len(report.merged) == 1
        assert len(cart.lines) == 1
