from typing import List, Optional
from datetime import datetime
from sqlmodel import Field, Relationship, SQLModel
from sqlalchemy import Index
from enum import Enum

class PaymentMethod(str, Enum):
    COD = "cod"
    RAZORPAY = "razorpay"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    COD_PENDING = "cod_pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"

class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

# Orders in these states do not count towards a user's coupon usage
EXCLUDED_FROM_COUPON_USAGE = [OrderStatus.CANCELLED, OrderStatus.REFUNDED]

class OrderItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    product_id: Optional[int] = Field(default=None, foreign_key="product.id")

    # Snapshot at purchase time
    name: str
    sku: Optional[str] = None
    price: float
    quantity: int
    total: float

class Order(SQLModel, table=True):
    __table_args__ = (
        Index("ix_order_user_coupon_status", "user_id", "coupon_id", "status"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(unique=True, index=True)  # e.g. SCBM2X7K9QAB12
    user_id: Optional[int] = Field(default=None, foreign_key="user.id")  # None for guest checkout

    status: OrderStatus = Field(default=OrderStatus.PENDING)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    payment_method: PaymentMethod = Field(default=PaymentMethod.COD)

    # Amounts
    subtotal: float
    discount: float = Field(default=0.0)
    shipping_charge: float = Field(default=0.0)
    tax: float = Field(default=0.0)
    total: float

    # Coupon
    coupon_id: Optional[int] = Field(default=None, foreign_key="coupon.id")
    coupon_code: Optional[str] = None  # Kept for display after a coupon is edited or deleted
    coupon_discount: float = Field(default=0.0)

    # Shipping
    shipping_name: str
    shipping_mobile: str
    shipping_address1: str
    shipping_address2: Optional[str] = None
    shipping_landmark: Optional[str] = None
    shipping_city: str
    shipping_state: str
    shipping_pincode: str
    shipping_country: str = Field(default="India")

    # Billing (falls back to shipping when empty)
    billing_name: Optional[str] = None
    billing_mobile: Optional[str] = None
    billing_address1: Optional[str] = None
    billing_address2: Optional[str] = None
    billing_city: Optional[str] = None
    billing_state: Optional[str] = None
    billing_pincode: Optional[str] = None
    billing_country: Optional[str] = None

    customer_notes: Optional[str] = None
    tracking_id: Optional[str] = None

    # Razorpay
    razorpay_order_id: Optional[str] = Field(default=None, index=True)
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    paid_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    items: List["OrderItem"] = Relationship(sa_relationship_kwargs={"cascade": "all, delete-orphan"})
