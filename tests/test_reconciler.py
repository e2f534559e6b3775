"""Tests for the order total reconciler."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from food_ordering.pricing.catalog import (
    CustomizationOption,
    ItemStatus,
    MenuItem,
)
from food_ordering.pricing.reconciler import (
    RejectionCode,
    SubmittedOrder,
    SubmittedOrderLine,
    reconcile,
)
from food_ordering.pricing.selection import SelectedCustomization
from food_ordering.pricing.status import DeliveryType
from food_ordering.pricing.validator import ValidationCode

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
HOT = (SelectedCustomization("spice", ("hot",)),)
MILD = (SelectedCustomization("spice", ("mild",)),)


def line(item_id="curry", quantity=1, total="13.50", selections=HOT, line_id="l1"):
    return SubmittedOrderLine(
        line_id=line_id,
        catalog_item_id=item_id,
        quantity=quantity,
        unit_price=Decimal(total) / quantity if quantity > 0 else Decimal(total),
        total_price=Decimal(total),
        selections=selections,
    )


def order(lines, subtotal, tax="0.00", fee="0.00", total=None, **kwargs):
    subtotal, tax, fee = Decimal(subtotal), Decimal(tax), Decimal(fee)
    kwargs.setdefault("delivery_type", DeliveryType.PICKUP)
    return SubmittedOrder(
        lines=lines,
        subtotal=subtotal,
        tax=tax,
        delivery_fee=fee,
        total=Decimal(total) if total is not None else subtotal + tax + fee,
        **kwargs,
    )


@pytest.fixture
def catalog(curry):
    return {curry.id: curry}


@pytest.fixture
def run(catalog, address):
    def _run(submitted, **kwargs):
        addresses = {(address.user_id, address.id): address}
        return reconcile(
            submitted,
            "user-1",
            catalog_lookup=catalog.get,
            address_lookup=lambda user_id, address_id: addresses.get((user_id, address_id)),
            clock=lambda: NOW,
            **kwargs,
        )
    return _run


class TestAccepted:

    def test_matching_order_is_reconciled(self, run):
        result = run(order([line(quantity=2, total="27.00")], "27.00", tax="3.51", fee="5.99",
                           delivery_type=DeliveryType.DELIVERY, delivery_address_id="addr-1"))

        assert result.success
        assert result.rejection is None
        assert result.checked_lines == 1
        reconciled = result.order
        assert reconciled.user_id == "user-1"
        assert reconciled.subtotal == Decimal("27.00")
        assert reconciled.total == Decimal("36.50")
        assert reconciled.lines[0].unit_price == Decimal("13.50")

    def test_server_figures_replace_client_figures(self, run):
        result = run(order([line(total="13.51")], "13.49", total="13.50"))

        assert result.success
        assert result.order.lines[0].total_price == Decimal("13.50")
        assert result.order.subtotal == Decimal("13.50")
        assert result.order.total == Decimal("13.50")

    def test_three_at_nine_twenty_five(self, run, catalog):
        catalog["wrap"] = MenuItem("wrap", "Falafel Wrap", Decimal("9.25"))
        result = run(order([line("wrap", 3, "27.75", selections=())], "27.75"))
        assert result.success
        assert result.order.lines[0].total_price == Decimal("27.75")


class TestTolerance:

    def test_total_off_by_one_cent_is_accepted(self, run):
        assert run(order([line()], "13.50", total="13.51")).success

    def test_total_off_by_more_than_one_cent_is_rejected(self, run):
        result = run(order([line()], "13.50", total="13.511"))
        assert result.rejection.code == RejectionCode.TOTAL_MISMATCH
        assert result.rejection.expected == Decimal("13.50")
        assert result.rejection.submitted == Decimal("13.511")

    def test_subtotal_within_tolerance_is_accepted(self, run, catalog):
        catalog["platter"] = MenuItem("platter", "Platter", Decimal("20.01"))
        assert run(order([line("platter", total="20.01", selections=())], "20.00")).success

    def test_subtotal_outside_tolerance_is_rejected(self, run, catalog):
        catalog["platter"] = MenuItem("platter", "Platter", Decimal("20.00"))
        result = run(order([line("platter", total="20.00", selections=())], "20.02"))
        assert result.rejection.code == RejectionCode.SUBTOTAL_MISMATCH

    def test_line_price_mismatch(self, run):
        result = run(order([line(total="9.99")], "9.99"))
        rejection = result.rejection
        assert rejection.code == RejectionCode.PRICE_MISMATCH
        assert rejection.line_id == "l1"
        assert rejection.expected == Decimal("13.50")

    def test_custom_epsilon(self, run):
        assert run(order([line(total="13.55")], "13.55"), epsilon="0.05").success


class TestRejected:

    def test_quantity_below_one(self, run):
        result = run(order([line(quantity=0, total="0")], "0"))
        assert result.rejection.code == RejectionCode.INVALID_QUANTITY

    def test_unknown_item(self, run):
        result = run(order([line("ghost")], "13.50"))
        assert result.rejection.code == RejectionCode.ITEM_UNAVAILABLE
        assert result.rejection.item_id == "ghost"

    def test_inactive_item(self, run, catalog, curry):
        catalog["curry"] = replace(curry, status=ItemStatus.INACTIVE)
        assert run(order([line()], "13.50")).rejection.code == RejectionCode.ITEM_UNAVAILABLE

    def test_option_no_longer_available(self, run, catalog, curry, spice_group):
        no_hot = replace(spice_group, options=(
            spice_group.options[0],
            spice_group.options[1],
            CustomizationOption("hot", "Hot", Decimal("1.50"), is_available=False),
        ))
        catalog["curry"] = replace(curry, groups=(no_hot,))

        result = run(order([line()], "13.50"))
        assert result.rejection.code == RejectionCode.INVALID_CUSTOMIZATION
        assert result.rejection.errors[0].code == ValidationCode.OPTION_UNAVAILABLE

    def test_revalidation_can_be_disabled(self, run, catalog, curry, spice_group):
        no_hot = replace(spice_group, options=(
            CustomizationOption("hot", "Hot", Decimal("1.50"), is_available=False),
        ))
        catalog["curry"] = replace(curry, groups=(no_hot,))
        assert run(order([line()], "13.50"), revalidate_customizations=False).success

    @pytest.mark.parametrize("tax,fee", [("-0.01", "0"), ("0", "100.01"), ("10000.01", "0")])
    def test_charges_out_of_range(self, run, tax, fee):
        result = run(order([line()], "13.50", tax=tax, fee=fee))
        assert result.rejection.code == RejectionCode.CHARGE_OUT_OF_RANGE

    def test_delivery_without_address(self, run):
        result = run(order([line()], "13.50", delivery_type=DeliveryType.DELIVERY))
        assert not result.success
        assert result.order is None
        assert result.rejection.code == RejectionCode.MISSING_DELIVERY_ADDRESS

    def test_unknown_address(self, run):
        submitted = order([line()], "13.50", delivery_type=DeliveryType.DELIVERY, delivery_address_id="addr-2")
        assert run(submitted).rejection.code == RejectionCode.ADDRESS_NOT_FOUND

    def test_pickup_needs_no_address(self, run):
        assert run(order([line()], "13.50", delivery_type=DeliveryType.PICKUP)).success

    def test_schedule_in_past(self, run):
        result = run(order([line()], "13.50", scheduled_for=NOW - timedelta(minutes=1)))
        assert result.rejection.code == RejectionCode.SCHEDULE_IN_PAST

    def test_schedule_now_is_rejected(self, run):
        assert run(order([line()], "13.50", scheduled_for=NOW)).rejection.code == RejectionCode.SCHEDULE_IN_PAST

    def test_naive_schedule_is_treated_as_utc(self, run):
        future = (NOW + timedelta(hours=2)).replace(tzinfo=None)
        assert run(order([line()], "13.50", scheduled_for=future)).success

    def test_first_failure_wins(self, run):
        """A bad line price is reported even though the total is also wrong."""
        result = run(order([line(total="1.00")], "1.00", total="999"))
        assert result.rejection.code == RejectionCode.PRICE_MISMATCH

    def test_rejection_to_dict(self, run):
        data = run(order([line(total="9.99")], "9.99")).rejection.to_dict()
        assert data["code"] == "price_mismatch"
        assert data["expected"] == "13.50"
        assert data["submitted"] == "9.99"
        assert data["errors"] == []

    def test_duplicate_line_ids_are_checked_independently(self, run):
        result = run(order([line(), line(selections=MILD, total="12.00")], "25.50"))
        assert result.success
        assert [ln.total_price for ln in result.order.lines] == [Decimal("13.50"), Decimal("12.00")]
