from sqlalchemy.sql import func

from ..extensions import db
from ..utils.money import to_float
from .types import AddressType

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled", "refunded")
PAYMENT_METHODS = ("card", "paypal", "cod", "wallet")


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(40), unique=True, nullable=False, index=True)  # e.g. "ORD1718000000000k3j9x"
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default="pending", index=True)

    shipping_address = db.Column(AddressType, nullable=False)
    billing_address = db.Column(AddressType, nullable=False)

    # money snapshot
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    shipping = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default="pending")

    tracking_carrier = db.Column(db.String(64))
    tracking_number = db.Column(db.String(128))
    shipped_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    user = db.relationship("User", lazy="joined")
    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def as_api(self, items=None):
        items = self.items if items is None else items
        return {
            "id": self.id,
            "order_id": self.order_id,
            "user": {"id": self.user_id, "name": self.user.name if self.user else None},
            "status": self.status,
            "items": [i.as_api() for i in items],
            "shipping_address": self.shipping_address.to_dict() if self.shipping_address else None,
            "billing_address": self.billing_address.to_dict() if self.billing_address else None,
            "summary": {
                "subtotal": to_float(self.subtotal),
                "shipping": to_float(self.shipping),
                "tax": to_float(self.tax),
                "discount": to_float(self.discount),
                "total": to_float(self.total),
            },
            "payment": {"method": self.payment_method, "status": self.payment_status},
            "tracking": {
                "carrier": self.tracking_carrier,
                "tracking_number": self.tracking_number,
                "shipped_at": self.shipped_at.isoformat() if self.shipped_at else None,
                "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            },
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_pk = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255))
    variant_name = db.Column(db.String(64))
    variant_value = db.Column(db.String(64))
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    def as_api(self):
        return {
            "product_id": self.product_id,
            "seller_id": self.seller_id,
            "name": self.name,
            "variant": {"name": self.variant_name, "value": self.variant_value} if self.variant_name else None,
            "quantity": self.quantity,
            "price": to_float(self.price),
            "total": to_float(self.total),
        }
