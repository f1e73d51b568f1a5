from datetime import datetime, timedelta

from flask import request
from flask_jwt_extended import current_user, jwt_required

from . import bp
from ..errors import ValidationError
from ..model import Order, OrderItem
from ..services import order_service
from ..utils.api import ok
from ..utils.decorators import role_required
from ..utils.pagination import page_args, paginate
from ..utils.payload import json_body


def _date_filters(q):
    start = request.args.get("start")
    end = request.args.get("end")
    try:
        if start:
            q = q.filter(Order.created_at >= datetime.fromisoformat(start))
        if end:
            # inclusive for the whole day
            q = q.filter(Order.created_at < datetime.fromisoformat(end) + timedelta(days=1))
    except ValueError:
        raise ValidationError("start/end must be YYYY-MM-DD")
    return q


@bp.post("")
@jwt_required()
def create_order():
    payload = json_body()
    order = order_service.create_order(current_user, payload)
    resp = ok("Order placed successfully", {"order": order.as_api()}, status=201)
    resp.headers["X-Order-Id"] = order.order_id
    return resp


@bp.get("")
@jwt_required()
def my_orders():
    """
    Query params:
      - page, limit
      - status=pending|confirmed|processing|shipped|delivered|cancelled|refunded
      - start=YYYY-MM-DD, end=YYYY-MM-DD (inclusive)
    """
    q = Order.query.filter(Order.user_id == current_user.id)
    status = request.args.get("status")
    if status:
        q = q.filter(Order.status == status)
    q = _date_filters(q).order_by(Order.created_at.desc(), Order.id.desc())

    page, limit = page_args(request.args)
    items, meta = paginate(q, page, limit)
    return ok("orders", {"orders": [o.as_api() for o in items], "pagination": meta})


@bp.get("/seller")
@role_required("seller", "admin", message="Seller access required")
def seller_orders():
    """Orders containing the seller's products, with only the seller's lines."""
    q = (
        Order.query
        .join(OrderItem, OrderItem.order_pk == Order.id)
        .filter(OrderItem.seller_id == current_user.id)
        .distinct()
    )
    status = request.args.get("status")
    if status:
        q = q.filter(Order.status == status)
    q = _date_filters(q).order_by(Order.created_at.desc(), Order.id.desc())

    page, limit = page_args(request.args)
    items, meta = paginate(q, page, limit)
    orders = [
        o.as_api(items=[i for i in o.items if i.seller_id == current_user.id])
        for o in items
    ]
    return ok("seller orders", {"orders": orders, "pagination": meta})


@bp.get("/<order_id>")
@jwt_required()
def get_order(order_id):
    order = order_service.get_order_for(current_user, order_id)
    items = None
    if current_user.role == "seller" and order.user_id != current_user.id:
        items = [i for i in order.items if i.seller_id == current_user.id]
    return ok("order", {"order": order.as_api(items=items)})


@bp.patch("/<order_id>/status")
@role_required("admin", message="Admin access required")
def update_order_status(order_id):
    data = json_body()
    order = order_service.update_status(
        order_id,
        data.get("status"),
        tracking_carrier=data.get("tracking_carrier"),
        tracking_number=data.get("tracking_number"),
    )
    return ok("Order status updated", {"order": order.as_api()})
