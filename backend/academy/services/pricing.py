"""
Payable amounts for the two payment rails.

Razorpay deducts a gateway fee plus GST on that fee from every settlement,
so the buyer is charged a grossed-up amount that nets the catalog price:

    payable = ceil(price / (1 - fee * (1 + gst)))

Manual UPI has no gateway fee; the buyer pays the price plus GST.
All arithmetic is Decimal so results do not depend on float rounding.
"""

from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Optional, Union
from urllib.parse import urlencode, quote

from academy.core.config import settings

Number = Union[int, Decimal, str]

PAISE_PER_RUPEE = 100


def _as_decimal(value: Optional[Number], default: Decimal) -> Decimal:
    return default if value is None else Decimal(str(value))


def razorpay_payable_amount(price: Number, fee: Optional[Number] = None, gst: Optional[Number] = None) -> int:
    """Gross-up a rupee price for the Razorpay fee; rounded up to the whole rupee"""
    fee_rate = _as_decimal(fee, settings.GATEWAY_FEE_PERCENT)
    gst_rate = _as_decimal(gst, settings.GST_PERCENT)

    net_share = 1 - fee_rate * (1 + gst_rate)
    if net_share <= 0:
        raise ValueError("Gateway fee and GST leave nothing to settle")

    payable = Decimal(str(price)) / net_share
    return int(payable.to_integral_value(rounding=ROUND_CEILING))


def to_paise(rupees: int) -> int:
    return rupees * PAISE_PER_RUPEE


def upi_payable_amount(price: Number, gst: Optional[Number] = None) -> Decimal:
    """Price plus GST, in rupees with two decimals"""
    gst_rate = _as_decimal(gst, settings.GST_PERCENT)
    return (Decimal(str(price)) * (1 + gst_rate)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def build_upi_url(amount: Decimal, note: str, vpa: Optional[str] = None, payee_name: Optional[str] = None) -> str:
    """upi://pay deep link understood by UPI apps"""
    params = {
        "pa": vpa if vpa is not None else settings.UPI_VPA,
        "pn": payee_name if payee_name is not None else settings.UPI_PAYEE_NAME,
        "am": f"{amount:.2f}",
        "cu": "INR",
        "tn": note,
    }
    return "upi://pay?" + urlencode(params, quote_via=quote, safe="@")
