"""
Shiprocket API client.

Docs: https://apidocs.shiprocket.in/

Only the calls checkout needs are wrapped: login, postcode details and
courier serviceability / rates. Transport failures raise
``UpstreamUnavailable``; clean "no" answers come back as ``None``.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import requests

from storefront.core.config import settings
from storefront.core.exceptions import UpstreamUnavailable
from storefront.core.logger import get_logger

logger = get_logger("shiprocket")

# Shiprocket tokens are valid for 10 days
TOKEN_TTL = timedelta(days=9)


@dataclass
class CourierOption:
    courier_id: Optional[int]
    courier_name: str
    charge: float
    cod_charges: float
    estimated_days: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CourierOption":
        return cls(
            courier_id=data.get("courier_company_id"),
            courier_name=data.get("courier_name") or "Standard Delivery",
            charge=float(data.get("freight_charge") or 0),
            cod_charges=float(data.get("cod_charges") or 0),
            estimated_days=str(data.get("estimated_delivery_days") or ""),
        )

    def delivery_days(self) -> float:
        try:
            return float(self.estimated_days)
        except ValueError:
            return float("inf")


@dataclass
class CourierQuotes:
    cheapest: CourierOption
    fastest: CourierOption
    options: List[CourierOption] = field(default_factory=list)


class ShiprocketClient:
    def __init__(
        self,
        base_url: str = settings.SHIPROCKET_BASE_URL,
        email: str = settings.SHIPROCKET_EMAIL,
        password: str = settings.SHIPROCKET_PASSWORD,
        timeout: float = settings.SHIPROCKET_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.email = email
        self.password = password
        self.timeout = timeout
        self.session = requests.Session()
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

    def _call(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.session.request(method, f"{self.base_url}{endpoint}", timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Shiprocket %s %s failed: %s", method, endpoint, e)
            raise UpstreamUnavailable("Shipping partner unavailable") from e

    def get_auth_token(self) -> str:
        if self._token and self._token_expires_at and self._token_expires_at > datetime.utcnow():
            return self._token

        data = self._call("POST", "/auth/login", json={"email": self.email, "password": self.password})
        token = data.get("token")
        if not token:
            logger.error("Shiprocket login returned no token")
            raise UpstreamUnavailable("Failed to get Shiprocket token")

        self._token = token
        self._token_expires_at = datetime.utcnow() + TOKEN_TTL
        return token

    def request(self, endpoint: str, method: str = "GET", params: Optional[dict] = None, body: Optional[dict] = None) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.get_auth_token()}"}
        return self._call(method, endpoint, params=params, json=body, headers=headers)

    def check_pincode_serviceability(self, pincode: str) -> Optional[Dict[str, Any]]:
        """Postcode details when Shiprocket serves ``pincode``, else None."""
        result = self.request("/open/postcode/details", params={"postcode": pincode})
        if result.get("success"):
            return result.get("postcode_details") or {}
        return None

    def get_available_couriers(
        self,
        pickup_pincode: str,
        delivery_pincode: str,
        weight: float,
        cod: bool = False,
        declared_value: float = 0,
    ) -> List[Dict[str, Any]]:
        params = {
            "pickup_postcode": pickup_pincode,
            "delivery_postcode": delivery_pincode,
            "weight": weight,
            "cod": 1 if cod else 0,
        }
        if declared_value:
            params["declared_value"] = declared_value
        result = self.request("/courier/serviceability/", params=params)
        data = result.get("data") or {}
        return data.get("available_courier_companies") or []

    def calculate_shipping_charges(
        self,
        pickup_pincode: str,
        delivery_pincode: str,
        weight: float,
        cod: bool = False,
        declared_value: float = 0,
    ) -> Optional[CourierQuotes]:
        """Cheapest and fastest courier for the route, None if nobody serves it."""
        couriers = self.get_available_couriers(pickup_pincode, delivery_pincode, weight, cod, declared_value)
        if not couriers:
            return None

        options = sorted((CourierOption.from_api(c) for c in couriers), key=lambda o: o.charge)
        return CourierQuotes(
            cheapest=options[0],
            fastest=min(options, key=lambda o: o.delivery_days()),
            options=options,
        )


shiprocket_client = ShiprocketClient()
