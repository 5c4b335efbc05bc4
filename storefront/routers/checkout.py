from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import Field
from sqlmodel import Session

from storefront.db.session import get_session
from storefront.models.order import PaymentMethod
from storefront.models.user import User
from storefront.routers.addresses import AddressBase
from storefront.routers.auth import get_current_user_optional
from storefront.core.config import settings
from storefront.core.exceptions import InvalidInput
from storefront.core.schemas import CamelModel
from storefront.services.coupon import CouponService, format_inr
from storefront.services.order import OrderService
from storefront.services.payment import RazorpayGateway, razorpay_gateway
from storefront.services.shipping import ShippingService
from storefront.services.shiprocket import shiprocket_client

router = APIRouter()

class CouponApply(CamelModel):
    code: Optional[str] = None
    cart_total: float = Field(default=0, ge=0)

class ShippingRequest(CamelModel):
    pincode: Optional[str] = None
    weight: float = Field(default=settings.DEFAULT_WEIGHT_KG, gt=0)
    cod: bool = False
    cart_total: float = Field(default=0, ge=0)

class CheckoutItem(CamelModel):
    product_id: int
    quantity: int = Field(ge=1)

class CheckoutRequest(CamelModel):
    items: List[CheckoutItem] = []
    shipping_address: Optional[AddressBase] = None
    billing_address: Optional[AddressBase] = None
    payment_method: Optional[str] = None  # COD, RAZORPAY
    coupon_code: Optional[str] = None
    customer_notes: Optional[str] = Field(default=None, max_length=1000)

class PaymentVerification(CamelModel):
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    order_id: Optional[int] = None

def get_coupon_service(session: Session = Depends(get_session)) -> CouponService:
    return CouponService(session)

def get_shipping_service() -> ShippingService:
    return ShippingService(shiprocket_client)

def get_payment_gateway() -> RazorpayGateway:
    return razorpay_gateway

def get_order_service(session: Session = Depends(get_session), gateway: RazorpayGateway = Depends(get_payment_gateway)) -> OrderService:
    return OrderService(session, gateway)

@router.post("")
def place_order(
    checkout_in: CheckoutRequest,
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: OrderService = Depends(get_order_service),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    """Create an order from the cart. Guests may check out without logging in."""
    if not checkout_in.items:
        raise InvalidInput("Cart is empty")
    if not checkout_in.shipping_address:
        raise InvalidInput("Shipping address is required")
    if not checkout_in.payment_method:
        raise InvalidInput("Payment method is required")
    try:
        payment_method = PaymentMethod(checkout_in.payment_method.lower())
    except ValueError:
        raise InvalidInput("Invalid payment method")

    order, razorpay_order = service.place_order(
        user_id=current_user.id if current_user else None,
        items_data=[{"product_id": item.product_id, "quantity": item.quantity} for item in checkout_in.items],
        shipping_address=checkout_in.shipping_address,
        billing_address=checkout_in.billing_address,
        payment_method=payment_method,
        coupon_code=checkout_in.coupon_code,
        customer_notes=checkout_in.customer_notes,
    )

    return {
        "success": True,
        "order": {
            "id": order.id,
            "orderNumber": order.order_number,
            "subtotal": order.subtotal,
            "discount": order.discount,
            "shippingCharge": order.shipping_charge,
            "tax": order.tax,
            "total": order.total,
            "paymentMethod": order.payment_method.value,
            "status": order.status.value,
        },
        "razorpay": {
            "orderId": razorpay_order["id"],
            "amount": razorpay_order["amount"],
            "currency": razorpay_order["currency"],
            "keyId": gateway.key_id,
        } if razorpay_order else None,
    }

@router.post("/coupon")
def apply_coupon(
    coupon_in: CouponApply,
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: CouponService = Depends(get_coupon_service),
):
    """Validate a coupon against the cart total and return the discount"""
    resolution = service.resolve_coupon(
        coupon_in.code, coupon_in.cart_total, current_user.id if current_user else None
    )
    resolution.raise_if_invalid()

    coupon = resolution.coupon
    return {
        "valid": True,
        "coupon": {
            "code": coupon.code,
            "description": coupon.description,
            "discountType": coupon.discount_type.value,
            "discountValue": coupon.discount_value,
            "maxDiscount": coupon.max_discount,
            "minOrderAmount": coupon.min_order_amount,
        },
        "discount": resolution.discount,
        "message": f"Coupon applied! You save ₹{format_inr(resolution.discount)}",
    }

@router.post("/shipping")
def calculate_shipping(shipping_in: ShippingRequest, service: ShippingService = Depends(get_shipping_service)):
    quote = service.resolve_shipping(
        shipping_in.pincode,
        weight=shipping_in.weight,
        cod=shipping_in.cod,
        cart_total=shipping_in.cart_total,
    )
    return quote.to_dict()

@router.get("/shipping")
def check_pincode(pincode: Optional[str] = None, service: ShippingService = Depends(get_shipping_service)):
    return service.check_pincode(pincode)

@router.post("/verify-payment")
def verify_payment(payment_in: PaymentVerification, service: OrderService = Depends(get_order_service)):
    if not all([payment_in.razorpay_order_id, payment_in.razorpay_payment_id, payment_in.razorpay_signature, payment_in.order_id]):
        raise InvalidInput("Missing required fields")

    order = service.verify_payment(
        payment_in.order_id,
        payment_in.razorpay_order_id,
        payment_in.razorpay_payment_id,
        payment_in.razorpay_signature,
    )
    return {
        "success": True,
        "message": "Payment verified successfully",
        "order": {
            "id": order.id,
            "orderNumber": order.order_number,
            "status": order.status.value,
        },
    }
