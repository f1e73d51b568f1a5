"""Checkout: turns a user's cart into an order, a payment and stock movements."""
from flask import current_app

from ..errors import Conflict, NotFound, ValidationError
from ..extensions import cache, db
from ..model import Address, Cart, Order, OrderItem, Payment, Product
from ..model.order import ORDER_STATUSES, PAYMENT_METHODS
from ..model.payment import public_id
from ..utils.clock import utcnow
from ..utils.money import D, round_money
from .cart_service import recalc_cart

# allowed moves for the admin status endpoint
STATUS_FLOW = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": {"refunded"},
    "cancelled": set(),
    "refunded": set(),
}


def create_order(user, payload) -> Order:
    """Check out ``user``'s cart in one transaction.

    Product rows are locked, stock is checked and decremented, and the cart
    is emptied. Any failure rolls the whole checkout back.
    """
    payment_method = (payload.get("payment_method") or "").strip().lower()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError("payment_method must be one of: " + ", ".join(PAYMENT_METHODS))
    shipping_address = Address.from_dict(payload.get("shipping_address"), "shipping_address")
    billing_raw = payload.get("billing_address")
    billing_address = Address.from_dict(billing_raw, "billing_address") if billing_raw else shipping_address

    try:
        cart = Cart.query.filter_by(user_id=user.id).first()
        if cart is None or not cart.items:
            raise ValidationError("Cart is empty")

        ids = sorted({i.product_id for i in cart.items})
        products = (
            db.session.query(Product)
            .filter(Product.id.in_(ids))
            .with_for_update()
            .all()
        )
        pmap = {p.id: p for p in products}

        order_items = []
        for it in cart.items:
            p = pmap.get(it.product_id)
            if p is None or p.status != "active":
                raise Conflict(f"Product {it.product_id} is no longer available")
            if not p.in_stock_for(it.quantity):
                raise ValidationError(f"Insufficient stock for {p.name}")

            it.price = p.price  # charge the current price
            order_items.append(OrderItem(
                product_id=p.id,
                seller_id=p.seller_id,
                name=p.name,
                variant_name=it.variant_name,
                variant_value=it.variant_value,
                quantity=it.quantity,
                price=p.price,
                total=round_money(D(p.price) * it.quantity),
            ))
            p.decrement_stock(it.quantity)

        recalc_cart(cart)
        order = Order(
            order_id=public_id("ORD"),
            user_id=user.id,
            status="pending",
            shipping_address=shipping_address,
            billing_address=billing_address,
            subtotal=cart.subtotal,
            shipping=cart.shipping,
            tax=cart.tax,
            discount=cart.discount,
            total=cart.total,
            payment_method=payment_method,
            payment_status="pending",
            notes=payload.get("notes"),
            items=order_items,
        )
        db.session.add(order)
        db.session.flush()

        payment = Payment(
            order_pk=order.id,
            user_id=user.id,
            amount=order.total,
            method=payment_method,
            gateway="cod" if payment_method == "cod" else None,
        )
        if payment_method != "cod":
            # no gateway integration; non-cash methods settle immediately
            payment.mark_completed()
            order.payment_status = "completed"
            order.status = "confirmed"
        db.session.add(payment)

        cart.clear()
        recalc_cart(cart)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    cache.delete_pattern("products:*")
    for pid in ids:
        cache.delete(f"product:{pid}")
    current_app.logger.info("order %s placed by user %s (%s)", order.order_id, user.id, payment_method)
    return order


def get_order_for(user, order_id) -> Order:
    order = Order.query.filter_by(order_id=order_id).first()
    if order is None:
        raise NotFound("Order not found")
    if user.role == "admin" or order.user_id == user.id:
        return order
    if user.role == "seller" and any(i.seller_id == user.id for i in order.items):
        return order
    # do not reveal other users' orders
    raise NotFound("Order not found")


def update_status(order_id, status, tracking_carrier=None, tracking_number=None) -> Order:
    order = Order.query.filter_by(order_id=order_id).first()
    if order is None:
        raise NotFound("Order not found")
    status = (status or "").strip().lower()
    if status not in ORDER_STATUSES:
        raise ValidationError("status must be one of: " + ", ".join(ORDER_STATUSES))
    if status != order.status and status not in STATUS_FLOW[order.status]:
        raise ValidationError(f"Cannot move order from {order.status} to {status}")

    order.status = status
    if tracking_carrier:
        order.tracking_carrier = tracking_carrier
    if tracking_number:
        order.tracking_number = tracking_number
    now = utcnow()
    if status == "shipped" and order.shipped_at is None:
        order.shipped_at = now
    if status == "delivered":
        order.delivered_at = now
        if order.payment_method == "cod":
            for payment in order.payments:
                if payment.status == "pending":
                    payment.mark_completed()
            order.payment_status = "completed"
    db.session.commit()
    current_app.logger.info("order %s moved to %s", order.order_id, status)
    return order
