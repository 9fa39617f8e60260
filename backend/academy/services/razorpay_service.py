"""
Razorpay gateway adapter: order creation and checkout signature checks.
"""

import asyncio
import hashlib
import hmac
from typing import Any, Dict, Optional

import razorpay

from academy.core.config import settings
from academy.core.exceptions import PaymentGatewayError, ServiceNotConfiguredError
from academy.core.logging_config import logger


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 hex digest of "order_id|payment_id" as Razorpay checkout signs it"""
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class RazorpayService:
    def __init__(self):
        self._client = None

    def _get_client(self) -> razorpay.Client:
        """Lazy initialization of the Razorpay SDK client"""
        if self._client is None:
            self._client = razorpay.Client(
                auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
            )
        return self._client

    @staticmethod
    def ensure_configured() -> None:
        if not settings.razorpay_configured():
            raise ServiceNotConfiguredError("Payment service")

    async def create_order(self, amount_paise: int, receipt: str, notes: Dict[str, Any]) -> Dict[str, Any]:
        """Create a Razorpay order; the SDK is blocking so it runs in a worker thread"""
        self.ensure_configured()

        order_data = {
            "amount": amount_paise,
            "currency": settings.PAYMENT_CURRENCY,
            "receipt": receipt,
            "notes": notes,
        }

        try:
            order = await asyncio.to_thread(self._get_client().order.create, data=order_data)
        except Exception as e:
            logger.log_upstream_failure("Razorpay", "order.create", e, receipt=receipt)
            raise PaymentGatewayError(str(e))

        logger.info(f"[Payment] Created Razorpay order {order.get('id')} for {amount_paise} paise")
        return order

    def verify_signature(self, order_id: str, payment_id: str, signature: str,
                         secret: Optional[str] = None) -> bool:
        """Constant-time comparison against the recomputed checkout signature"""
        if secret is None:
            self.ensure_configured()
            secret = settings.RAZORPAY_KEY_SECRET
        expected = compute_signature(order_id, payment_id, secret)
        return hmac.compare_digest(expected.encode(), (signature or "").encode())


razorpay_service = RazorpayService()
