"""Admin dashboard figures and sales reports."""
from datetime import datetime, timedelta
from io import StringIO

import pandas as pd
from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..model import Order, OrderItem, Product, User
from ..utils.clock import utcnow
from ..utils.money import to_float

DEFAULT_REPORT_DAYS = 30
TOP_PRODUCTS = 10


def dashboard():
    users_by_role = dict(db.session.query(User.role, func.count(User.id)).group_by(User.role).all())
    orders_by_status = dict(db.session.query(Order.status, func.count(Order.id)).group_by(Order.status).all())
    revenue = (
        db.session.query(func.coalesce(func.sum(Order.total), 0))
        .filter(Order.payment_status == "completed")
        .scalar()
    )
    pending_sellers = User.query.filter_by(role="seller", seller_approved=False).count()
    recent = Order.query.order_by(Order.created_at.desc(), Order.id.desc()).limit(5).all()

    return {
        "users": {"total": sum(users_by_role.values()), "by_role": users_by_role},
        "sellers_pending_approval": pending_sellers,
        "products": {
            "total": db.session.query(func.count(Product.id)).scalar(),
            "active": Product.query.filter_by(status="active").count(),
            "out_of_stock": Product.query.filter_by(status="out_of_stock").count(),
        },
        "orders": {"total": sum(orders_by_status.values()), "by_status": orders_by_status},
        "revenue": to_float(revenue),
        "recent_orders": [
            {"order_id": o.order_id, "status": o.status, "total": to_float(o.total),
             "created_at": o.created_at.isoformat() if o.created_at else None}
            for o in recent
        ],
    }


def parse_range(start=None, end=None):
    """Resolve YYYY-MM-DD bounds into [since, until); defaults to the last 30 days."""
    try:
        until = datetime.fromisoformat(end) + timedelta(days=1) if end else utcnow()
        since = datetime.fromisoformat(start) if start else until - timedelta(days=DEFAULT_REPORT_DAYS)
    except ValueError:
        raise ValidationError("start/end must be YYYY-MM-DD")
    if since >= until:
        raise ValidationError("start must be before end")
    return since, until


def _delivered_orders(since, until):
    rows = (
        db.session.query(Order.order_id, Order.created_at, Order.total)
        .filter(Order.status == "delivered", Order.created_at >= since, Order.created_at < until)
        .all()
    )
    return pd.DataFrame(
        [{"order_id": oid, "created_at": created, "total": float(total or 0)} for oid, created, total in rows],
        columns=["order_id", "created_at", "total"],
    )


def _delivered_lines(since, until):
    rows = (
        db.session.query(OrderItem.product_id, OrderItem.name, OrderItem.quantity, OrderItem.total)
        .join(Order, OrderItem.order_pk == Order.id)
        .filter(Order.status == "delivered", Order.created_at >= since, Order.created_at < until)
        .all()
    )
    return pd.DataFrame(
        [{"product_id": pid, "name": name, "quantity": qty, "revenue": float(total or 0)}
         for pid, name, qty, total in rows],
        columns=["product_id", "name", "quantity", "revenue"],
    )


def sales_by_day(since, until):
    df = _delivered_orders(since, until)
    if df.empty:
        return []
    df["date"] = pd.to_datetime(df["created_at"]).dt.strftime("%Y-%m-%d")
    daily = (
        df.groupby("date")
        .agg(orders=("order_id", "count"), revenue=("total", "sum"))
        .reset_index()
        .sort_values("date")
    )
    return [
        {"date": r.date, "orders": int(r.orders), "revenue": round(float(r.revenue), 2)}
        for r in daily.itertuples(index=False)
    ]


def product_performance(since, until, top=TOP_PRODUCTS):
    df = _delivered_lines(since, until)
    if df.empty:
        return []
    perf = (
        df.groupby(["product_id", "name"])
        .agg(units_sold=("quantity", "sum"), revenue=("revenue", "sum"))
        .reset_index()
        .sort_values(["revenue", "units_sold"], ascending=False)
        .head(top)
    )
    return [
        {"product_id": int(r.product_id), "name": r.name,
         "units_sold": int(r.units_sold), "revenue": round(float(r.revenue), 2)}
        for r in perf.itertuples(index=False)
    ]


def sales_report(start=None, end=None):
    since, until = parse_range(start, end)
    daily = sales_by_day(since, until)
    return {
        "range": {"start": since.strftime("%Y-%m-%d"), "end": end or until.strftime("%Y-%m-%d")},
        "totals": {
            "orders": sum(d["orders"] for d in daily),
            "revenue": round(sum(d["revenue"] for d in daily), 2),
        },
        "sales_by_day": daily,
        "top_products": product_performance(since, until),
    }


def sales_csv(report) -> str:
    buf = StringIO()
    pd.DataFrame(report["sales_by_day"], columns=["date", "orders", "revenue"]).to_csv(buf, index=False)
    return buf.getvalue()
