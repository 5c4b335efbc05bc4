import random
import string
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from storefront.core.config import settings
from storefront.core.exceptions import InvalidInput, NotFound
from storefront.core.logger import get_logger
from storefront.models.coupon import Coupon
from storefront.models.order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from storefront.models.product import Product
from storefront.services.coupon import CouponService, normalize_code
from storefront.services.payment import RazorpayGateway
from storefront.services.shipping import static_charge

logger = get_logger("orders")

BASE36 = string.digits + string.ascii_uppercase


def to_base36(number: int) -> str:
    digits = ""
    while True:
        number, remainder = divmod(number, 36)
        digits = BASE36[remainder] + digits
        if not number:
            return digits


def generate_order_number() -> str:
    timestamp = to_base36(int(time.time() * 1000))
    suffix = "".join(random.choices(BASE36, k=4))
    return f"SCB{timestamp}{suffix}"


class OrderService:
    def __init__(self, session: Session, gateway: Optional[RazorpayGateway] = None):
        self.session = session
        self.gateway = gateway
        self.coupons = CouponService(session)

    def _price_items(self, items_data: List[dict]) -> tuple[float, List[OrderItem]]:
        if not items_data:
            raise InvalidInput("Cart is empty")

        # Calculate actual total from products (prevent frontend amount injection)
        subtotal = 0.0
        order_items = []
        for item in items_data:
            product = self.session.get(Product, item["product_id"])
            if not product or not product.is_active:
                raise InvalidInput(f"Product not found: {item['product_id']}")
            if not product.is_in_stock or product.stock_quantity < item["quantity"]:
                raise InvalidInput(f"{product.name} is out of stock")

            total = product.price * item["quantity"]
            subtotal += total
            order_items.append(OrderItem(
                product_id=product.id,
                name=product.name,
                sku=product.sku or product.slug,
                price=product.price,
                quantity=item["quantity"],
                total=total,
            ))
        return subtotal, order_items

    def _apply_coupon(self, coupon_code: Optional[str], subtotal: float, user_id: Optional[int]) -> tuple[float, Optional[Coupon]]:
        if not normalize_code(coupon_code):
            return 0.0, None

        resolution = self.coupons.resolve_coupon(coupon_code, subtotal, user_id)
        if not resolution.valid or resolution.discount <= 0:
            # The coupon endpoint already explained the rejection, checkout just proceeds without it
            logger.info("Ignoring coupon %s at checkout: %s", normalize_code(coupon_code), resolution.reason)
            return 0.0, None
        return resolution.discount, resolution.coupon

    def _reduce_stock(self, order: Order):
        for item in order.items:
            if not item.product_id:
                continue
            product = self.session.get(Product, item.product_id)
            if product:
                product.stock_quantity = max(0, product.stock_quantity - item.quantity)
                if product.stock_quantity == 0:
                    product.is_in_stock = False
                product.updated_at = datetime.utcnow()
                self.session.add(product)

    def place_order(
        self,
        user_id: Optional[int],
        items_data: List[dict],
        shipping_address,
        payment_method: PaymentMethod,
        billing_address=None,
        coupon_code: Optional[str] = None,
        customer_notes: Optional[str] = None,
    ) -> tuple[Order, Optional[Dict[str, Any]]]:
        """Create an order and, for online payment, its Razorpay order.

        Everything (order, coupon redemption, stock, payment order) is
        committed together or not at all.
        """
        subtotal, order_items = self._price_items(items_data)
        discount, coupon = self._apply_coupon(coupon_code, subtotal, user_id)

        shipping_charge = static_charge(subtotal)
        tax = round((subtotal - discount) * settings.GST_RATE, 2)
        total = round(subtotal - discount + shipping_charge + tax, 2)

        order = Order(
            order_number=generate_order_number(),
            user_id=user_id,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.COD_PENDING if payment_method == PaymentMethod.COD else PaymentStatus.PENDING,
            payment_method=payment_method,
            subtotal=subtotal,
            discount=discount,
            shipping_charge=shipping_charge,
            tax=tax,
            total=total,
            coupon_id=coupon.id if coupon else None,
            coupon_code=coupon.code if coupon else None,
            coupon_discount=discount,
            shipping_name=shipping_address.full_name,
            shipping_mobile=shipping_address.mobile,
            shipping_address1=shipping_address.address_line1,
            shipping_address2=shipping_address.address_line2,
            shipping_landmark=shipping_address.landmark,
            shipping_city=shipping_address.city,
            shipping_state=shipping_address.state,
            shipping_pincode=shipping_address.pincode,
            shipping_country=shipping_address.country or "India",
            customer_notes=customer_notes,
        )
        if billing_address:
            order.billing_name = billing_address.full_name
            order.billing_mobile = billing_address.mobile
            order.billing_address1 = billing_address.address_line1
            order.billing_address2 = billing_address.address_line2
            order.billing_city = billing_address.city
            order.billing_state = billing_address.state
            order.billing_pincode = billing_address.pincode
            order.billing_country = billing_address.country
        order.items = order_items

        razorpay_order = None
        try:
            self.session.add(order)
            self.session.flush()

            if coupon:
                self.coupons.redeem_coupon(coupon)

            if payment_method == PaymentMethod.RAZORPAY:
                razorpay_order = self.gateway.create_order(
                    total,
                    receipt=order.order_number,
                    notes={"orderId": str(order.id), "orderNumber": order.order_number},
                )
                order.razorpay_order_id = razorpay_order.get("id")
            else:
                # COD orders are confirmed immediately
                order.status = OrderStatus.CONFIRMED
                self._reduce_stock(order)

            self.session.add(order)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(order)
        logger.info("Placed order %s (%s) total=%.2f", order.order_number, payment_method.value, order.total)
        return order, razorpay_order

    def verify_payment(self, order_id: int, razorpay_order_id: str, razorpay_payment_id: str, razorpay_signature: str) -> Order:
        order = self.session.get(Order, order_id)
        if not order:
            raise NotFound("Order not found")

        if order.payment_status == PaymentStatus.PAID:
            return order

        # Only the Razorpay order created for this order can pay for it
        if order.payment_method != PaymentMethod.RAZORPAY or order.razorpay_order_id != razorpay_order_id:
            logger.warning("Payment %s does not belong to order %s", razorpay_order_id, order.order_number)
            raise InvalidInput("Payment verification failed")

        is_valid = self.gateway.verify_signature(razorpay_order_id, razorpay_payment_id, razorpay_signature)

        if not is_valid:
            order.payment_status = PaymentStatus.FAILED
            order.updated_at = datetime.utcnow()
            self.session.add(order)
            self.session.commit()
            logger.warning("Payment verification failed for order %s", order.order_number)
            raise InvalidInput("Payment verification failed")

        order.razorpay_payment_id = razorpay_payment_id
        order.razorpay_signature = razorpay_signature
        order.payment_status = PaymentStatus.PAID
        order.status = OrderStatus.CONFIRMED
        order.paid_at = datetime.utcnow()
        order.updated_at = order.paid_at
        self._reduce_stock(order)

        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        logger.info("Payment %s captured for order %s", razorpay_payment_id, order.order_number)
        return order

    def get_user_orders(self, user_id: int) -> List[Order]:
        return self.session.exec(
            select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc())
        ).all()

    def get_by_order_number(self, order_number: str) -> Order:
        order = self.session.exec(
            select(Order).where(Order.order_number == order_number.strip().upper())
        ).first()
        if not order:
            raise NotFound("Order not found")
        return order

    def update_status(self, order_id: int, new_status: OrderStatus, tracking_id: Optional[str] = None) -> Order:
        order = self.session.get(Order, order_id)
        if not order:
            raise NotFound("Order not found")

        order.status = new_status
        order.updated_at = datetime.utcnow()
        if tracking_id:
            order.tracking_id = tracking_id

        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        return order
