from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from storefront.db.session import get_session
from storefront.models.order import Order, OrderStatus
from storefront.models.user import User
from storefront.routers.auth import get_current_admin, get_current_user, get_current_user_optional
from storefront.services.order import OrderService

router = APIRouter()

class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    tracking_id: Optional[str] = None

def get_order_service(session: Session = Depends(get_session)) -> OrderService:
    return OrderService(session)

def serialize_order(order: Order) -> dict:
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "items": [
            {
                "productId": item.product_id,
                "name": item.name,
                "sku": item.sku,
                "price": item.price,
                "quantity": item.quantity,
                "total": item.total,
            }
            for item in order.items
        ],
        "subtotal": order.subtotal,
        "discount": order.discount,
        "couponCode": order.coupon_code,
        "couponDiscount": order.coupon_discount,
        "shippingCharge": order.shipping_charge,
        "tax": order.tax,
        "total": order.total,
        "status": order.status.value,
        "paymentStatus": order.payment_status.value,
        "paymentMethod": order.payment_method.value,
        "shippingAddress": {
            "fullName": order.shipping_name,
            "mobile": order.shipping_mobile,
            "addressLine1": order.shipping_address1,
            "addressLine2": order.shipping_address2,
            "landmark": order.shipping_landmark,
            "city": order.shipping_city,
            "state": order.shipping_state,
            "pincode": order.shipping_pincode,
            "country": order.shipping_country,
        },
        "trackingId": order.tracking_id,
        "paidAt": order.paid_at.isoformat() if order.paid_at else None,
        "date": order.created_at.isoformat(),
    }

@router.get("/")
def list_orders(current_user: User = Depends(get_current_user), service: OrderService = Depends(get_order_service)):
    """Orders placed by the current user, newest first"""
    return {"orders": [serialize_order(order) for order in service.get_user_orders(current_user.id)]}

@router.get("/{order_number}")
def get_order(
    order_number: str,
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: OrderService = Depends(get_order_service)
):
    order = service.get_by_order_number(order_number)

    # Guest orders are reachable by order number; account orders only by their owner or an admin
    if order.user_id is not None:
        if not current_user:
            raise HTTPException(status_code=401, detail="Please login to continue")
        if order.user_id != current_user.id and not current_user.is_superuser:
            raise HTTPException(status_code=403, detail="Not authorized")

    return {"order": serialize_order(order)}

@router.patch("/{order_id}/status")
def update_order_status(
    order_id: int,
    status_in: OrderStatusUpdate,
    admin: User = Depends(get_current_admin),
    service: OrderService = Depends(get_order_service)
):
    order = service.update_status(order_id, status_in.status, status_in.tracking_id)
    return {"success": True, "order": serialize_order(order)}
