from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlmodel import Session

from storefront.db.session import get_session
from storefront.models.coupon import Coupon, CouponType
from storefront.models.user import User
from storefront.routers.auth import get_current_admin
from storefront.core.exceptions import InvalidInput
from storefront.core.schemas import CamelModel
from storefront.services.coupon import CouponService

router = APIRouter()

class CouponCreate(CamelModel):
    code: Optional[str] = Field(default=None, max_length=50)
    name: Optional[str] = Field(default=None, max_length=100)
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    discount_type: CouponType = CouponType.PERCENTAGE
    discount_value: Optional[float] = None
    min_order_amount: Optional[float] = Field(default=None, ge=0)
    max_discount: Optional[float] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, ge=0)
    per_user_limit: int = Field(default=1, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool = True

class CouponUpdate(CamelModel):
    code: Optional[str] = Field(default=None, max_length=50)
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    discount_type: Optional[CouponType] = None
    discount_value: Optional[float] = None
    min_order_amount: Optional[float] = Field(default=None, ge=0)
    max_discount: Optional[float] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, ge=0)
    per_user_limit: Optional[int] = Field(default=None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None

def serialize_coupon(coupon: Coupon) -> dict:
    return {
        "id": coupon.id,
        "code": coupon.code,
        "name": coupon.name,
        "title": coupon.title,
        "description": coupon.description,
        "discountType": coupon.discount_type.value,
        "discountValue": coupon.discount_value,
        "minOrderAmount": coupon.min_order_amount,
        "maxDiscount": coupon.max_discount,
        "usageLimit": coupon.usage_limit,
        "usageCount": coupon.usage_count,
        "perUserLimit": coupon.per_user_limit,
        "startDate": coupon.start_date.isoformat() if coupon.start_date else None,
        "endDate": coupon.end_date.isoformat() if coupon.end_date else None,
        "isActive": coupon.is_active,
        "createdAt": coupon.created_at.isoformat(),
        "updatedAt": coupon.updated_at.isoformat(),
    }

def get_coupon_service(session: Session = Depends(get_session)) -> CouponService:
    return CouponService(session)

@router.get("/coupons")
def list_coupons(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = "",
    status: str = Query("", pattern="^(active|inactive|expired)?$"),
    discount_type: Optional[CouponType] = Query(None, alias="discountType"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    admin: User = Depends(get_current_admin),
    service: CouponService = Depends(get_coupon_service),
):
    """List coupons with filters, search, pagination and stats"""
    coupons, total = service.list_coupons(
        page=page,
        limit=limit,
        search=search,
        status=status,
        discount_type=discount_type,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {
        "coupons": [serialize_coupon(c) for c in coupons],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": (total + limit - 1) // limit,
        },
        "stats": service.get_stats(),
    }

@router.post("/coupons", status_code=201)
def create_coupon(
    coupon_in: CouponCreate,
    admin: User = Depends(get_current_admin),
    service: CouponService = Depends(get_coupon_service),
):
    if not coupon_in.code or not coupon_in.name or coupon_in.discount_value is None:
        raise InvalidInput("Code, name, and discount value are required")

    coupon = service.create_coupon(coupon_in.model_dump())
    return {"success": True, "coupon": serialize_coupon(coupon), "message": "Coupon created successfully"}

@router.get("/coupons/{coupon_id}")
def get_coupon(coupon_id: int, admin: User = Depends(get_current_admin), service: CouponService = Depends(get_coupon_service)):
    return {"coupon": serialize_coupon(service.get_coupon(coupon_id))}

@router.put("/coupons/{coupon_id}")
def update_coupon(
    coupon_id: int,
    coupon_in: CouponUpdate,
    admin: User = Depends(get_current_admin),
    service: CouponService = Depends(get_coupon_service),
):
    coupon = service.update_coupon(coupon_id, coupon_in.model_dump(exclude_unset=True))
    return {"success": True, "coupon": serialize_coupon(coupon), "message": "Coupon updated successfully"}

@router.delete("/coupons/{coupon_id}")
def delete_coupon(coupon_id: int, admin: User = Depends(get_current_admin), service: CouponService = Depends(get_coupon_service)):
    service.delete_coupon(coupon_id)
    return {"success": True, "message": "Coupon deleted successfully"}
