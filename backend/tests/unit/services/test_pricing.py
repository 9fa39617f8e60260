"""
Unit Tests for payable amount calculation
"""
from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import pytest

from academy.services.pricing import (
    build_upi_url,
    razorpay_payable_amount,
    to_paise,
    upi_payable_amount,
)


class TestRazorpayGrossUp:

    def test_reference_price(self):
        # 10000 / (1 - 0.02 * 1.18) = 10241.70... -> 10242
        assert razorpay_payable_amount(10000) == 10242
        assert to_paise(razorpay_payable_amount(10000)) == 1024200

    @pytest.mark.parametrize("price", [1, 499, 999, 4999, 25000])
    def test_settlement_covers_price(self, price):
        payable = razorpay_payable_amount(price)
        fee = Decimal(payable) * Decimal("0.02") * Decimal("1.18")

        assert Decimal(payable) - fee >= price
        assert payable - 1 - (payable - 1) * Decimal("0.0236") < price

    def test_zero_price(self):
        assert razorpay_payable_amount(0) == 0

    def test_explicit_rates(self):
        assert razorpay_payable_amount(1000, fee="0.03", gst="0") == 1031

    def test_rates_that_leave_nothing_rejected(self):
        with pytest.raises(ValueError):
            razorpay_payable_amount(1000, fee="1", gst="0.18")


class TestUpiAmount:

    def test_price_plus_gst(self):
        assert upi_payable_amount(10000) == Decimal("11800.00")

    def test_rounded_to_paise(self):
        assert upi_payable_amount(333) == Decimal("392.94")

    def test_upi_url(self):
        url = build_upi_url(Decimal("589.82"), "Payment for UPSC Mock Series - a@b.in",
                            vpa="academy@upi", payee_name="Tushti IAS")

        parsed = urlparse(url)
        params = parse_qs(parsed.query)
        assert url.startswith("upi://pay?pa=academy@upi")
        assert params["am"] == ["589.82"]
        assert params["cu"] == ["INR"]
        assert params["pn"] == ["Tushti IAS"]
        assert params["tn"] == ["Payment for UPSC Mock Series - a@b.in"]
