from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel
from enum import Enum

class CouponType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"

class Coupon(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # Coupon Details
    code: str = Field(unique=True, index=True)  # Always stored upper-case, e.g. "SAVE10"
    name: str
    title: Optional[str] = None
    description: Optional[str] = None

    # Discount
    discount_type: CouponType = Field(default=CouponType.PERCENTAGE)
    discount_value: float  # Percentage (0-100) or fixed amount
    max_discount: Optional[float] = None  # Max discount cap for percentage coupons

    # Minimum Order
    min_order_amount: Optional[float] = None

    # Usage Limits
    usage_limit: Optional[int] = None  # Total usage limit (null = unlimited)
    usage_count: int = Field(default=0)  # Incremented when an order redeems the coupon
    per_user_limit: int = Field(default=1)  # 0 = unlimited per user

    # Validity
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    # Status
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
