from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, update
from sqlmodel import Session, select

from storefront.core.exceptions import CouponRejected, InvalidInput, NotFound
from storefront.core.logger import get_logger
from storefront.models.coupon import Coupon, CouponType
from storefront.models.order import EXCLUDED_FROM_COUPON_USAGE, Order

logger = get_logger("coupons")

# Admin list sort keys (as sent by the console) -> columns
SORTABLE_COLUMNS = {
    "createdAt": Coupon.created_at,
    "updatedAt": Coupon.updated_at,
    "code": Coupon.code,
    "name": Coupon.name,
    "discountValue": Coupon.discount_value,
    "usageCount": Coupon.usage_count,
    "startDate": Coupon.start_date,
    "endDate": Coupon.end_date,
}

_REQUIRED_FIELDS = ("code", "name", "discount_type", "discount_value", "per_user_limit", "is_active")

# Optional amounts/limits where 0 means "not set"
_ZERO_MEANS_UNSET = ("min_order_amount", "max_discount", "usage_limit")


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def format_inr(amount: float) -> str:
    if float(amount).is_integer():
        return f"{int(amount):,}"
    return f"{amount:,.2f}"


def calculate_discount(coupon: Coupon, cart_total: float) -> float:
    """Discount for ``cart_total``, never negative and never above the cart."""
    if coupon.discount_type == CouponType.PERCENTAGE:
        discount = cart_total * coupon.discount_value / 100
        if coupon.max_discount:
            discount = min(discount, coupon.max_discount)
    else:  # FIXED
        discount = coupon.discount_value

    return max(0.0, min(round(discount, 2), cart_total))


@dataclass
class CouponResolution:
    valid: bool
    discount: float = 0.0
    reason: Optional[str] = None
    min_amount: Optional[float] = None
    coupon: Optional[Coupon] = None

    def raise_if_invalid(self):
        if self.valid:
            return
        extra = {"minAmount": self.min_amount} if self.min_amount is not None else None
        raise CouponRejected(self.reason, extra=extra)


class CouponService:
    def __init__(self, session: Session):
        self.session = session

    def get_by_code(self, code: str) -> Optional[Coupon]:
        return self.session.exec(
            select(Coupon).where(Coupon.code == normalize_code(code))
        ).first()

    def count_user_usage(self, coupon: Coupon, user_id: int) -> int:
        return self.session.exec(
            select(func.count()).select_from(Order).where(
                Order.user_id == user_id,
                Order.coupon_id == coupon.id,
                Order.status.not_in(EXCLUDED_FROM_COUPON_USAGE),
            )
        ).one()

    def resolve_coupon(self, code: str, cart_total: float, user_id: Optional[int] = None) -> CouponResolution:
        """Check eligibility in a fixed order and compute the discount.

        The first failing check decides the rejection reason. Nothing is
        written; usage is only counted when an order redeems the coupon.
        """
        if not normalize_code(code):
            raise InvalidInput("Coupon code is required")

        coupon = self.get_by_code(code)
        if not coupon:
            return CouponResolution(valid=False, reason="Invalid coupon code")

        if not coupon.is_active:
            return CouponResolution(valid=False, reason="This coupon is no longer active", coupon=coupon)

        now = datetime.utcnow()
        if coupon.start_date and coupon.start_date > now:
            return CouponResolution(valid=False, reason="This coupon is not yet active", coupon=coupon)
        if coupon.end_date and coupon.end_date < now:
            return CouponResolution(valid=False, reason="This coupon has expired", coupon=coupon)

        if coupon.usage_limit and coupon.usage_count >= coupon.usage_limit:
            return CouponResolution(valid=False, reason="This coupon has reached its usage limit", coupon=coupon)

        if coupon.min_order_amount and cart_total < coupon.min_order_amount:
            return CouponResolution(
                valid=False,
                reason=f"Minimum order amount of ₹{format_inr(coupon.min_order_amount)} required",
                min_amount=coupon.min_order_amount,
                coupon=coupon,
            )

        if user_id is not None and coupon.per_user_limit > 0:
            if self.count_user_usage(coupon, user_id) >= coupon.per_user_limit:
                return CouponResolution(valid=False, reason="You have already used this coupon", coupon=coupon)

        return CouponResolution(valid=True, discount=calculate_discount(coupon, cart_total), coupon=coupon)

    def redeem_coupon(self, coupon: Coupon):
        """Count one use of ``coupon`` inside the caller's transaction.

        The increment is conditional on the limit so two checkouts racing for
        the last use cannot both succeed. Does not commit.
        """
        result = self.session.exec(
            update(Coupon)
            .where(
                Coupon.id == coupon.id,
                or_(Coupon.usage_limit.is_(None), Coupon.usage_count < Coupon.usage_limit),
            )
            .values(usage_count=Coupon.usage_count + 1)
        )
        if result.rowcount == 0:
            logger.warning("Coupon %s exhausted during checkout", coupon.code)
            raise CouponRejected("This coupon has reached its usage limit")

    # Admin console

    def list_coupons(
        self,
        page: int = 1,
        limit: int = 20,
        search: str = "",
        status: str = "",
        discount_type: str = "",
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> tuple[List[Coupon], int]:
        now = datetime.utcnow()
        conditions = []

        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                Coupon.code.ilike(pattern),
                Coupon.name.ilike(pattern),
                Coupon.title.ilike(pattern),
                Coupon.description.ilike(pattern),
            ))

        if status == "active":
            conditions.extend(self._active_conditions(now))
        elif status == "inactive":
            conditions.append(Coupon.is_active == False)  # noqa: E712
        elif status == "expired":
            conditions.append(Coupon.end_date < now)

        if discount_type:
            conditions.append(Coupon.discount_type == discount_type)

        total = self.session.exec(select(func.count()).select_from(Coupon).where(*conditions)).one()

        column = SORTABLE_COLUMNS.get(sort_by, Coupon.created_at)
        order = column.asc() if sort_order == "asc" else column.desc()
        coupons = self.session.exec(
            select(Coupon).where(*conditions).order_by(order).offset((page - 1) * limit).limit(limit)
        ).all()
        return coupons, total

    def get_stats(self) -> Dict[str, int]:
        now = datetime.utcnow()
        next_week = now + timedelta(days=7)

        def count(*conditions) -> int:
            return self.session.exec(select(func.count()).select_from(Coupon).where(*conditions)).one()

        total_usage = self.session.exec(select(func.sum(Coupon.usage_count))).one()
        return {
            "total": count(),
            "active": count(*self._active_conditions(now)),
            "expired": count(Coupon.end_date < now),
            "expiringSoon": count(Coupon.is_active == True, Coupon.end_date >= now, Coupon.end_date <= next_week),  # noqa: E712
            "totalUsage": total_usage or 0,
        }

    @staticmethod
    def _active_conditions(now: datetime) -> list:
        return [
            Coupon.is_active == True,  # noqa: E712
            or_(Coupon.start_date.is_(None), Coupon.start_date <= now),
            or_(Coupon.end_date.is_(None), Coupon.end_date >= now),
        ]

    def get_coupon(self, coupon_id: int) -> Coupon:
        coupon = self.session.get(Coupon, coupon_id)
        if not coupon:
            raise NotFound("Coupon not found")
        return coupon

    def create_coupon(self, data: Dict[str, Any]) -> Coupon:
        data = self._clean(data)
        if self.get_by_code(data["code"]):
            raise InvalidInput("Coupon code already exists")
        self._check_discount(data.get("discount_type", CouponType.PERCENTAGE), data["discount_value"])
        self._check_dates(data.get("start_date"), data.get("end_date"))

        coupon = Coupon(**data)
        self.session.add(coupon)
        self.session.commit()
        self.session.refresh(coupon)
        logger.info("Created coupon %s", coupon.code)
        return coupon

    def update_coupon(self, coupon_id: int, data: Dict[str, Any]) -> Coupon:
        coupon = self.get_coupon(coupon_id)
        # null on a required column means "leave unchanged"
        data = {k: v for k, v in data.items() if v is not None or k not in _REQUIRED_FIELDS}
        data = self._clean(data)

        if "code" in data and data["code"] != coupon.code and self.get_by_code(data["code"]):
            raise InvalidInput("Coupon code already exists")
        if "discount_type" in data or "discount_value" in data:
            self._check_discount(
                data.get("discount_type", coupon.discount_type),
                data.get("discount_value", coupon.discount_value),
            )
        self._check_dates(data.get("start_date", coupon.start_date), data.get("end_date", coupon.end_date))

        for key, value in data.items():
            setattr(coupon, key, value)
        coupon.updated_at = datetime.utcnow()

        self.session.add(coupon)
        self.session.commit()
        self.session.refresh(coupon)
        return coupon

    def delete_coupon(self, coupon_id: int):
        coupon = self.get_coupon(coupon_id)
        # Orders keep the code string; drop the reference so the delete is allowed
        orders = self.session.exec(select(Order).where(Order.coupon_id == coupon.id)).all()
        for order in orders:
            order.coupon_id = None
            self.session.add(order)
        self.session.delete(coupon)
        self.session.commit()
        logger.info("Deleted coupon %s", coupon.code)

    @staticmethod
    def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(data)
        if "code" in data:
            data["code"] = normalize_code(data["code"])
            if not data["code"]:
                raise InvalidInput("Coupon code is required")
        for key in _ZERO_MEANS_UNSET:
            if key in data and not data[key]:
                data[key] = None
        # Validity windows are compared against naive UTC
        for key in ("start_date", "end_date"):
            value = data.get(key)
            if value is not None and value.tzinfo is not None:
                data[key] = value.astimezone(timezone.utc).replace(tzinfo=None)
        return data

    @staticmethod
    def _check_dates(start_date: Optional[datetime], end_date: Optional[datetime]):
        if start_date and end_date and end_date < start_date:
            raise InvalidInput("End date cannot be before start date")

    @staticmethod
    def _check_discount(discount_type: CouponType, value: float):
        if discount_type == CouponType.PERCENTAGE and (value < 0 or value > 100):
            raise InvalidInput("Percentage discount must be between 0 and 100")
        if discount_type == CouponType.FIXED and value < 0:
            raise InvalidInput("Fixed discount must be positive")
