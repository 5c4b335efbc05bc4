from sqlmodel import select

from storefront.models.order import Order, OrderStatus, PaymentStatus

from tests.fakes import SHIPPING_ADDRESS


def _checkout(client, product, payment_method="cod", quantity=2, coupon_code=None, headers=None):
    payload = {
        "items": [{"productId": product.id, "quantity": quantity}],
        "shippingAddress": SHIPPING_ADDRESS,
        "paymentMethod": payment_method,
    }
    if coupon_code:
        payload["couponCode"] = coupon_code
    return client.post("/api/checkout", json=payload, headers=headers or {})


# Coupons

def test_apply_coupon(client, make_coupon):
    make_coupon(description="10% off up to ₹500")

    response = client.post("/api/checkout/coupon", json={"code": "save10", "cartTotal": 8000})

    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["discount"] == 500
    assert data["message"] == "Coupon applied! You save ₹500"
    assert data["coupon"]["code"] == "SAVE10"
    assert data["coupon"]["discountType"] == "percentage"


def test_apply_coupon_below_minimum(client, make_coupon):
    make_coupon(min_order_amount=20000)

    response = client.post("/api/checkout/coupon", json={"code": "SAVE10", "cartTotal": 15000})

    assert response.status_code == 400
    assert response.json() == {"error": "Minimum order amount of ₹20,000 required", "minAmount": 20000}


def test_apply_coupon_requires_code(client):
    response = client.post("/api/checkout/coupon", json={"cartTotal": 1000})
    assert response.status_code == 400
    assert response.json() == {"error": "Coupon code is required"}


def test_apply_unknown_coupon(client):
    response = client.post("/api/checkout/coupon", json={"code": "GHOST", "cartTotal": 1000})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid coupon code"}


def test_apply_coupon_already_used_by_user(client, make_coupon, product, user_headers):
    make_coupon()
    assert _checkout(client, product, coupon_code="SAVE10", headers=user_headers).status_code == 200

    response = client.post("/api/checkout/coupon", json={"code": "SAVE10", "cartTotal": 8000}, headers=user_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "You have already used this coupon"}
    # Guests are not subject to the per-user limit
    assert client.post("/api/checkout/coupon", json={"code": "SAVE10", "cartTotal": 8000}).status_code == 200


# Shipping

def test_shipping_rejects_bad_pincode(client):
    response = client.post("/api/checkout/shipping", json={"pincode": "12345"})
    assert response.status_code == 400
    assert response.json() == {"error": "Valid pincode is required"}


def test_shipping_quote(client):
    response = client.post("/api/checkout/shipping", json={"pincode": "411001", "cartTotal": 5000, "cod": True})

    assert response.status_code == 200
    data = response.json()
    assert data["serviceable"] is True
    assert data["shipping"]["charge"] == 79
    assert data["expressOption"]["courierName"] == "Bluedart Air"


def test_shipping_unserviceable(client, carrier):
    carrier.details = None
    response = client.post("/api/checkout/shipping", json={"pincode": "411001"})
    assert response.status_code == 200
    assert response.json() == {"serviceable": False, "error": "Delivery not available for this pincode"}


def test_pincode_lookup(client):
    response = client.get("/api/checkout/shipping", params={"pincode": "411001"})
    assert response.status_code == 200
    assert response.json() == {"serviceable": True, "details": {"city": "Pune", "state": "Maharashtra"}}

    assert client.get("/api/checkout/shipping").status_code == 400


# Placing orders

def test_cod_order_with_coupon(client, session, make_coupon, product):
    coupon = make_coupon()

    response = _checkout(client, product, coupon_code="save10")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["razorpay"] is None
    order = data["order"]
    assert order["subtotal"] == 8000
    assert order["discount"] == 500
    assert order["shippingCharge"] == 99
    assert order["tax"] == 1350
    assert order["total"] == 8949
    assert order["status"] == "confirmed"
    assert order["orderNumber"].startswith("SCB")

    session.refresh(coupon)
    session.refresh(product)
    assert coupon.usage_count == 1
    assert product.stock_quantity == 3

    saved = session.get(Order, order["id"])
    assert saved.coupon_id == coupon.id
    assert saved.coupon_code == "SAVE10"
    assert saved.payment_status == PaymentStatus.COD_PENDING
    assert len(saved.items) == 1


def test_ineligible_coupon_is_ignored_at_checkout(client, session, make_coupon, product):
    coupon = make_coupon(min_order_amount=20000)

    response = _checkout(client, product, coupon_code="SAVE10")

    assert response.status_code == 200
    assert response.json()["order"]["discount"] == 0
    session.refresh(coupon)
    assert coupon.usage_count == 0


def test_free_shipping_above_threshold(client, product):
    response = _checkout(client, product, quantity=3)
    order = response.json()["order"]
    assert order["subtotal"] == 12000
    assert order["shippingCharge"] == 0
    assert order["total"] == 12000 + 2160


def test_razorpay_order_and_verification(client, session, gateway, product):
    response = _checkout(client, product, payment_method="RAZORPAY")

    assert response.status_code == 200
    data = response.json()
    assert data["order"]["status"] == "pending"
    assert data["razorpay"] == {
        "orderId": "order_rzp_1",
        "amount": round(data["order"]["total"] * 100),
        "currency": "INR",
        "keyId": "rzp_test_key",
    }
    session.refresh(product)
    assert product.stock_quantity == 5

    verify = client.post("/api/checkout/verify-payment", json={
        "razorpayOrderId": "order_rzp_1",
        "razorpayPaymentId": "pay_123",
        "razorpaySignature": "sig",
        "orderId": data["order"]["id"],
    })

    assert verify.status_code == 200
    assert verify.json()["order"]["status"] == "confirmed"
    order = session.get(Order, data["order"]["id"])
    session.refresh(order)
    assert order.payment_status == PaymentStatus.PAID
    assert order.razorpay_payment_id == "pay_123"
    session.refresh(product)
    assert product.stock_quantity == 3


def test_bad_signature_marks_payment_failed(client, session, gateway, product):
    order_id = _checkout(client, product, payment_method="razorpay").json()["order"]["id"]
    gateway.signature_valid = False

    response = client.post("/api/checkout/verify-payment", json={
        "razorpayOrderId": "order_rzp_1",
        "razorpayPaymentId": "pay_123",
        "razorpaySignature": "forged",
        "orderId": order_id,
    })

    assert response.status_code == 400
    assert response.json() == {"error": "Payment verification failed"}
    order = session.get(Order, order_id)
    session.refresh(order)
    assert order.payment_status == PaymentStatus.FAILED
    assert order.status == OrderStatus.PENDING


def test_cod_order_cannot_be_marked_paid(client, session, gateway, product):
    order_id = _checkout(client, product).json()["order"]["id"]

    response = client.post("/api/checkout/verify-payment", json={
        "razorpayOrderId": "order_other",
        "razorpayPaymentId": "pay_123",
        "razorpaySignature": "valid-for-another-order",
        "orderId": order_id,
    })

    assert response.status_code == 400
    assert response.json() == {"error": "Payment verification failed"}
    order = session.get(Order, order_id)
    session.refresh(order)
    session.refresh(product)
    assert order.payment_status == PaymentStatus.COD_PENDING
    assert product.stock_quantity == 3


def test_payment_for_another_razorpay_order_is_rejected(client, session, gateway, product):
    order_id = _checkout(client, product, payment_method="razorpay").json()["order"]["id"]

    response = client.post("/api/checkout/verify-payment", json={
        "razorpayOrderId": "order_other",
        "razorpayPaymentId": "pay_123",
        "razorpaySignature": "valid-for-another-order",
        "orderId": order_id,
    })

    assert response.status_code == 400
    order = session.get(Order, order_id)
    session.refresh(order)
    session.refresh(product)
    assert order.payment_status == PaymentStatus.PENDING
    assert order.razorpay_payment_id is None
    assert product.stock_quantity == 5


def test_cart_total_cannot_be_negative(client, make_coupon):
    make_coupon()

    response = client.post("/api/checkout/coupon", json={"code": "SAVE10", "cartTotal": -100})
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"
    assert "cartTotal" in response.json()["errors"]

    response = client.post("/api/checkout/shipping", json={"pincode": "411001", "cartTotal": -1})
    assert response.status_code == 400
    assert "cartTotal" in response.json()["errors"]


def test_verify_payment_requires_all_fields(client):
    response = client.post("/api/checkout/verify-payment", json={"razorpayOrderId": "order_rzp_1"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields"}


def test_gateway_failure_rolls_back(client, session, gateway, make_coupon, product):
    coupon = make_coupon()
    gateway.fail = True

    response = _checkout(client, product, payment_method="razorpay", coupon_code="SAVE10")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to create payment order"}
    assert session.exec(select(Order)).all() == []
    session.refresh(coupon)
    assert coupon.usage_count == 0


def test_exhausted_coupon_is_ignored(client, session, make_coupon, product):
    make_coupon(usage_limit=1, usage_count=1)
    response = _checkout(client, product, coupon_code="SAVE10")
    assert response.json()["order"]["discount"] == 0


def test_checkout_validation(client, product):
    assert client.post("/api/checkout", json={"items": []}).json() == {"error": "Cart is empty"}

    response = client.post("/api/checkout", json={
        "items": [{"productId": product.id, "quantity": 1}],
        "paymentMethod": "cod",
    })
    assert response.json() == {"error": "Shipping address is required"}

    response = _checkout(client, product, payment_method="upi")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid payment method"}


def test_checkout_rejects_bad_address(client, product):
    address = dict(SHIPPING_ADDRESS, mobile="12345")
    response = client.post("/api/checkout", json={
        "items": [{"productId": product.id, "quantity": 1}],
        "shippingAddress": address,
        "paymentMethod": "cod",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"
    assert "shippingAddress.mobile" in response.json()["errors"]


def test_out_of_stock(client, session, product):
    response = _checkout(client, product, quantity=6)
    assert response.status_code == 400
    assert response.json() == {"error": "RTX 4060 Ti is out of stock"}
    assert session.exec(select(Order)).all() == []


def test_unknown_product(client):
    response = client.post("/api/checkout", json={
        "items": [{"productId": 999, "quantity": 1}],
        "shippingAddress": SHIPPING_ADDRESS,
        "paymentMethod": "cod",
    })
    assert response.status_code == 400
    assert response.json() == {"error": "Product not found: 999"}
