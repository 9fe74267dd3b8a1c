"""
Pricing arithmetic tests.

Pure functions, no database: effective unit price, voucher discount
(percentage in basis points, fixed amount in cents), final total.
"""

import pytest

from storefront.models.vouchers import DISCOUNT_FIXED_AMOUNT, DISCOUNT_PERCENTAGE
from storefront.services.pricing import (
    PricedLine,
    VoucherTerms,
    effective_unit_price,
    final_total_cents,
    infer_legacy_discount,
    subtotal_cents,
    to_cents,
    voucher_discount_cents,
)
from storefront.validation import ValidationError


CAP = 100_000


def _line(unit, qty, item_id=1):
    return PricedLine(cart_item_id=item_id, product_id=item_id, product_name="x", quantity=qty, unit_price_cents=unit)


class TestEffectivePrice:
    def test_discount_price_wins(self):
        assert effective_unit_price(50_000, 40_000) == 40_000

    def test_list_price_without_discount(self):
        assert effective_unit_price(50_000, None) == 50_000

    def test_subtotal_uses_line_totals(self):
        lines = [_line(40_000, 2, 1), _line(1_250, 3, 2)]
        assert subtotal_cents(lines) == 80_000 + 3_750


class TestVoucherDiscount:
    def test_percentage_in_basis_points(self):
        terms = VoucherTerms(DISCOUNT_PERCENTAGE, 2_000)
        assert voucher_discount_cents(100_000, terms, default_cap_cents=CAP) == 20_000

    def test_percentage_rounds_half_up(self):
        # 12.5% of 1.01 is 12.625 cents
        terms = VoucherTerms(DISCOUNT_PERCENTAGE, 1_250)
        assert voucher_discount_cents(101, terms, default_cap_cents=CAP) == 13

    def test_percentage_uses_voucher_cap(self):
        terms = VoucherTerms(DISCOUNT_PERCENTAGE, 5_000, max_discount_cents=10_000)
        assert voucher_discount_cents(100_000, terms, default_cap_cents=CAP) == 10_000

    def test_percentage_falls_back_to_default_cap(self):
        terms = VoucherTerms(DISCOUNT_PERCENTAGE, 5_000)
        assert voucher_discount_cents(1_000_000, terms, default_cap_cents=CAP) == CAP

    def test_fixed_amount(self):
        terms = VoucherTerms(DISCOUNT_FIXED_AMOUNT, 10_000)
        assert voucher_discount_cents(60_000, terms, default_cap_cents=CAP) == 10_000

    def test_fixed_amount_never_exceeds_subtotal(self):
        terms = VoucherTerms(DISCOUNT_FIXED_AMOUNT, 150_000)
        discount = voucher_discount_cents(100_000, terms, default_cap_cents=CAP)
        assert discount == 100_000
        assert final_total_cents(100_000, discount) == 0

    def test_empty_subtotal_gets_nothing(self):
        terms = VoucherTerms(DISCOUNT_FIXED_AMOUNT, 10_000)
        assert voucher_discount_cents(0, terms, default_cap_cents=CAP) == 0

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            voucher_discount_cents(1_000, VoucherTerms("BOGUS", 1), default_cap_cents=CAP)

    def test_final_total_floors_at_zero(self):
        assert final_total_cents(500, 900) == 0


class TestUnitConversion:
    @pytest.mark.parametrize(
        "value,expected",
        [(10, 1_000), ("19.99", 1_999), (0.005, 1), ("1000", 100_000)],
    )
    def test_to_cents(self, value, expected):
        assert to_cents(value) == expected

    @pytest.mark.parametrize("value", [True, "abc", "nan", None])
    def test_to_cents_rejects_non_numbers(self, value):
        with pytest.raises(ValidationError):
            to_cents(value)

    def test_legacy_small_amount_is_percentage(self):
        assert infer_legacy_discount(15) == (DISCOUNT_PERCENTAGE, 1_500)

    def test_legacy_boundary_is_percentage(self):
        assert infer_legacy_discount(100) == (DISCOUNT_PERCENTAGE, 10_000)

    def test_legacy_large_amount_is_fixed(self):
        assert infer_legacy_discount(250) == (DISCOUNT_FIXED_AMOUNT, 25_000)
