from typing import Any, Dict, Optional

import razorpay
from razorpay.errors import SignatureVerificationError

from storefront.core.config import settings
from storefront.core.exceptions import UpstreamUnavailable
from storefront.core.logger import get_logger

logger = get_logger("payment")


class RazorpayGateway:
    def __init__(self, key_id: str = settings.RAZORPAY_KEY_ID, key_secret: str = settings.RAZORPAY_KEY_SECRET):
        self.key_id = key_id
        self.client = razorpay.Client(auth=(key_id, key_secret))

    def create_order(self, amount: float, receipt: str, notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        # Amount needed in paise
        data = {
            "amount": int(round(amount * 100)),
            "currency": "INR",
            "receipt": receipt,
            "payment_capture": 1,
        }
        if notes:
            data["notes"] = notes

        try:
            return self.client.order.create(data=data)
        except Exception as e:
            logger.error("Razorpay order creation failed for %s: %s", receipt, e)
            raise UpstreamUnavailable("Failed to create payment order", status_code=500) from e

    def verify_signature(self, razorpay_order_id: str, razorpay_payment_id: str, razorpay_signature: str) -> bool:
        try:
            self.client.utility.verify_payment_signature({
                "razorpay_order_id": razorpay_order_id,
                "razorpay_payment_id": razorpay_payment_id,
                "razorpay_signature": razorpay_signature,
            })
        except SignatureVerificationError:
            return False
        return True


razorpay_gateway = RazorpayGateway()
