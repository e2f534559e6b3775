"""Tests for the price calculator."""

from decimal import Decimal

import pytest

from food_ordering.pricing.calculator import (
    InvalidQuantityError,
    compute_tax,
    delivery_fee_for,
    package_savings,
    price,
    quote_order,
    round_money,
    to_money,
    within_tolerance,
)
from food_ordering.pricing.catalog import MenuItem, Package, PackageItem
from food_ordering.pricing.selection import SelectedCustomization
from food_ordering.services.stores import demo_catalog


def sel(group_id, *option_ids, text=None):
    return SelectedCustomization(group_id, tuple(option_ids), text)


@pytest.fixture
def catalog():
    return {item.id: item for item in demo_catalog()}


class TestPrice:
    """Unit and line totals."""

    def test_base_price_without_selections(self, curry):
        breakdown = price(curry, [], 1)
        assert breakdown.unit_price == Decimal("12.00")
        assert breakdown.total_price == Decimal("12.00")

    def test_modifiers_are_added_to_unit_price(self, curry):
        breakdown = price(curry, [sel("spice", "hot"), sel("extras", "rice", "naan")], 2)
        assert breakdown.unit_price == Decimal("16.75")
        assert breakdown.total_price == Decimal("33.50")

    def test_negative_modifier(self, catalog):
        breakdown = price(catalog["pizza_margherita"], [sel("size", "small")], 1)
        assert breakdown.unit_price == Decimal("12.99")

    def test_three_at_nine_twenty_five(self):
        item = MenuItem("wrap", "Falafel Wrap", Decimal("9.25"))
        breakdown = price(item, [], 3)
        assert breakdown.unit_price == Decimal("9.25")
        assert breakdown.total_price == Decimal("27.75")

    def test_unknown_group_and_option_are_ignored(self, curry):
        breakdown = price(curry, [sel("sauce", "bbq"), sel("spice", "volcanic")], 1)
        assert breakdown.unit_price == Decimal("12.00")

    def test_total_uses_unrounded_unit_price(self):
        item = MenuItem("sample", "Sample", Decimal("1.005"))
        breakdown = price(item, [], 3)
        assert breakdown.unit_price == Decimal("1.01")
        assert breakdown.total_price == Decimal("3.02")

    def test_order_of_selections_does_not_matter(self, curry):
        forward = price(curry, [sel("spice", "hot"), sel("extras", "rice", "raita")], 1)
        backward = price(curry, [sel("extras", "raita", "rice"), sel("spice", "hot")], 1)
        assert forward == backward

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_below_one_raises(self, curry, quantity):
        with pytest.raises(InvalidQuantityError) as exc_info:
            price(curry, [], quantity)
        assert exc_info.value.quantity == quantity

    def test_package_is_priced_like_a_menu_item(self, catalog):
        breakdown = price(catalog["weekly_lunch_box"], [sel("spice_level", "hot")], 2)
        assert breakdown.unit_price == Decimal("56.50")
        assert breakdown.total_price == Decimal("113.00")


class TestMoney:
    """Rounding and tolerance helpers."""

    def test_round_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("2.344")) == Decimal("2.34")

    def test_float_goes_through_str(self):
        assert to_money(0.1) == Decimal("0.1")

    def test_difference_of_one_cent_is_tolerated(self):
        assert within_tolerance(Decimal("10.01"), Decimal("10.00"))

    def test_difference_above_one_cent_is_not_tolerated(self):
        assert not within_tolerance(Decimal("10.011"), Decimal("10.00"))

    def test_custom_epsilon(self):
        assert within_tolerance("10.05", "10.00", epsilon="0.05")
        assert not within_tolerance("10.06", "10.00", epsilon="0.05")


class TestOrderQuote:
    """Tax, delivery fee and total."""

    def test_compute_tax(self):
        assert compute_tax(Decimal("100.00"), Decimal("0.13")) == Decimal("13.00")

    def test_delivery_quote(self):
        quote = quote_order(Decimal("27.75"), delivery=True, tax_rate=Decimal("0.13"), delivery_fee=Decimal("5.99"))
        assert quote.subtotal == Decimal("27.75")
        assert quote.tax == Decimal("3.61")
        assert quote.delivery_fee == Decimal("5.99")
        assert quote.total == Decimal("37.35")

    def test_pickup_has_no_delivery_fee(self):
        quote = quote_order(Decimal("27.75"), delivery=False, tax_rate=Decimal("0.13"), delivery_fee=Decimal("5.99"))
        assert quote.delivery_fee == Decimal("0.00")
        assert quote.total == Decimal("31.36")

    def test_to_dict(self):
        quote = quote_order("10", delivery=True, tax_rate="0", delivery_fee="2")
        assert quote.to_dict() == {
            "subtotal": Decimal("10.00"),
            "tax": Decimal("0.00"),
            "delivery_fee": Decimal("2.00"),
            "total": Decimal("12.00"),
        }

    @pytest.mark.parametrize("distance,expected", [
        (None, "5.99"),
        (0, "5.99"),
        (3, "3.99"),
        (5, "3.99"),
        (7.5, "5.99"),
        (10, "5.99"),
        (12, "7.99"),
    ])
    def test_delivery_fee_steps(self, distance, expected):
        assert delivery_fee_for(distance) == Decimal(expected)


class TestPackageSavings:

    def test_savings_against_items_bought_separately(self, catalog):
        package = Package(
            "combo",
            "Curry Combo",
            Decimal("50.00"),
            included_items=(PackageItem("butter_chicken", 3), PackageItem("caesar_salad", 2)),
        )
        savings = package_savings(package, catalog.get)
        assert savings.original_price == Decimal("53.98")
        assert savings.savings == Decimal("3.98")

    def test_savings_never_negative(self, catalog):
        savings = package_savings(catalog["weekly_lunch_box"], catalog.get)
        assert savings.original_price == Decimal("53.98")
        assert savings.savings == Decimal("0.00")

    def test_missing_items_are_skipped(self, catalog):
        package = Package("combo", "Combo", Decimal("5.00"), included_items=(PackageItem("ghost", 2),))
        assert package_savings(package, catalog.get).original_price == Decimal("0.00")
