import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from storefront.core.config import settings
from storefront.core.exceptions import InvalidInput
from storefront.core.logger import get_logger
from storefront.services.shiprocket import ShiprocketClient

logger = get_logger("shipping")

PINCODE_RE = re.compile(r"^\d{6}$")
STANDARD_COURIER = "Standard Delivery"
STANDARD_ESTIMATE = "5-7"


def validate_pincode(pincode: Optional[str]) -> str:
    pincode = (pincode or "").strip()
    if not PINCODE_RE.match(pincode):
        raise InvalidInput("Valid pincode is required")
    return pincode


def static_charge(cart_total: float) -> float:
    """Flat-rate charge used whenever the carrier cannot quote."""
    return 0.0 if cart_total >= settings.FREE_SHIPPING_THRESHOLD else float(settings.DEFAULT_SHIPPING_CHARGE)


@dataclass
class ExpressOption:
    charge: float
    estimated_days: str
    courier_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "charge": self.charge,
            "estimatedDays": self.estimated_days,
            "courierName": self.courier_name,
        }


@dataclass
class ShippingQuote:
    serviceable: bool
    charge: float = 0.0
    cod_charges: float = 0.0
    estimated_days: str = STANDARD_ESTIMATE
    courier_name: str = STANDARD_COURIER
    is_free_shipping: bool = False
    express_option: Optional[ExpressOption] = None
    pincode_details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.serviceable:
            return {"serviceable": False, "error": "Delivery not available for this pincode"}
        return {
            "serviceable": True,
            "shipping": {
                "charge": self.charge,
                "codCharges": self.cod_charges,
                "estimatedDays": self.estimated_days,
                "courierName": self.courier_name,
                "isFreeShipping": self.is_free_shipping,
                "freeShippingThreshold": settings.FREE_SHIPPING_THRESHOLD,
            },
            "expressOption": self.express_option.to_dict() if self.express_option else None,
            "pincodeDetails": self.pincode_details,
        }


class ShippingService:
    def __init__(self, carrier: ShiprocketClient):
        self.carrier = carrier

    def static_quote(self, cart_total: float, cod: bool) -> ShippingQuote:
        charge = static_charge(cart_total)
        return ShippingQuote(
            serviceable=True,
            charge=charge,
            cod_charges=float(settings.COD_SURCHARGE) if cod else 0.0,
            is_free_shipping=charge == 0,
        )

    def resolve_shipping(
        self,
        pincode: str,
        weight: float = settings.DEFAULT_WEIGHT_KG,
        cod: bool = False,
        cart_total: float = 0,
    ) -> ShippingQuote:
        """Quote delivery to ``pincode``.

        Only a malformed pincode is an error. A pincode the carrier refuses is
        reported as unserviceable; any carrier failure falls back to the
        static policy so checkout is never blocked on shipping.
        """
        pincode = validate_pincode(pincode)

        try:
            details = self.carrier.check_pincode_serviceability(pincode)
            if details is None:
                return ShippingQuote(serviceable=False)

            quotes = self.carrier.calculate_shipping_charges(
                settings.PICKUP_PINCODE, pincode, weight, cod, cart_total
            )
            if quotes is None:
                logger.info("No courier quotes for %s, using default charges", pincode)
                return self.static_quote(cart_total, cod)

            is_free = cart_total >= settings.FREE_SHIPPING_THRESHOLD
            cheapest, fastest = quotes.cheapest, quotes.fastest
            return ShippingQuote(
                serviceable=True,
                charge=0.0 if is_free else (cheapest.charge or float(settings.DEFAULT_SHIPPING_CHARGE)),
                cod_charges=cheapest.cod_charges,
                estimated_days=cheapest.estimated_days or STANDARD_ESTIMATE,
                courier_name=cheapest.courier_name or STANDARD_COURIER,
                is_free_shipping=is_free,
                express_option=ExpressOption(
                    charge=0.0 if is_free else fastest.charge,
                    estimated_days=fastest.estimated_days,
                    courier_name=fastest.courier_name,
                ) if fastest else None,
                pincode_details=details,
            )
        except Exception as e:
            logger.warning("Shipping calculation failed for %s, using default charges: %s", pincode, e)
            return self.static_quote(cart_total, cod)

    def check_pincode(self, pincode: str) -> Dict[str, Any]:
        pincode = validate_pincode(pincode)
        try:
            details = self.carrier.check_pincode_serviceability(pincode)
        except Exception as e:
            # Default to serviceable, the rate lookup decides at checkout
            logger.warning("Pincode check failed for %s: %s", pincode, e)
            return {"serviceable": True, "details": None}
        return {"serviceable": details is not None, "details": details}
