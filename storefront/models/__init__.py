# Import all models to register them with SQLModel
from storefront.models.user import User
from storefront.models.product import Product
from storefront.models.coupon import Coupon, CouponType
from storefront.models.order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from storefront.models.address import Address

__all__ = [
    "User",
    "Product",
    "Coupon",
    "CouponType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Address",
]
