# blissora/model/cart.py
from __future__ import annotations

from decimal import Decimal

from sqlalchemy.sql import func

from ..extensions import db
from ..utils.money import D, round_money, to_float


class Cart(db.Model):
    __tablename__ = "cart"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False, index=True)

    # applied coupon snapshot
    coupon_code = db.Column(db.String(64), nullable=True)
    coupon_discount_type = db.Column(db.String(16), nullable=True)   # "percentage" | "fixed" | None
    coupon_discount_value = db.Column(db.Numeric(12, 2), nullable=True)
    coupon_max_discount = db.Column(db.Numeric(12, 2), nullable=True)

    # cached summary, refreshed by recalculate()
    items_count = db.Column(db.Integer, nullable=False, default=0)
    total_quantity = db.Column(db.Integer, nullable=False, default=0)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    shipping = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    items = db.relationship(
        "CartItem",
        backref="cart",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CartItem.id.asc()",
    )

    # --------- money helpers / totals ----------
    def coupon_discount_dec(self, subtotal: Decimal) -> Decimal:
        dtype = (self.coupon_discount_type or "").lower().strip()
        dval = D(self.coupon_discount_value)
        if not self.coupon_code or dval <= 0:
            return D(0)
        if dtype == "percentage":
            amount = subtotal * dval / D(100)
            if self.coupon_max_discount is not None and amount > D(self.coupon_max_discount):
                amount = D(self.coupon_max_discount)
            return round_money(amount)
        if dtype == "fixed":
            return round_money(min(dval, subtotal))
        return D(0)

    def recalculate(self, tax_rate, free_shipping_threshold, shipping_fee) -> None:
        """Refresh the cached summary from items and coupon."""
        subtotal = round_money(sum((i.line_total_dec() for i in self.items), D(0)))
        discount = self.coupon_discount_dec(subtotal)
        if not self.items:
            shipping = D(0)
        else:
            shipping = D(0) if subtotal > D(free_shipping_threshold) else round_money(shipping_fee)
        tax = round_money((subtotal - discount) * D(tax_rate))
        total = round_money(subtotal - discount + shipping + tax)

        self.items_count = len(self.items)
        self.total_quantity = sum(int(i.quantity or 0) for i in self.items)
        self.subtotal = subtotal
        self.discount = discount
        self.shipping = shipping
        self.tax = tax
        self.total = max(D(0), total)

    def clear(self) -> None:
        self.items.clear()
        self.coupon_code = None
        self.coupon_discount_type = None
        self.coupon_discount_value = None
        self.coupon_max_discount = None

    def find_item(self, product_id, variant_name=None, variant_value=None):
        for it in self.items:
            if it.product_id == product_id and it.same_variant(variant_name, variant_value):
                return it
        return None

    def as_api(self):
        return {
            "id": self.id,
            "items": [i.as_api() for i in self.items],
            "coupon": {
                "code": self.coupon_code,
                "discount_type": self.coupon_discount_type,
                "discount_value": to_float(self.coupon_discount_value),
                "max_discount": to_float(self.coupon_max_discount) if self.coupon_max_discount is not None else None,
            } if self.coupon_code else None,
            "summary": {
                "items_count": self.items_count,
                "total_quantity": self.total_quantity,
                "subtotal": to_float(self.subtotal),
                "shipping": to_float(self.shipping),
                "tax": to_float(self.tax),
                "discount": to_float(self.discount),
                "total": to_float(self.total),
            },
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class CartItem(db.Model):
    __tablename__ = "cart_item"

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("cart.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)   # unit price at add time

    variant_name = db.Column(db.String(64), nullable=True)
    variant_value = db.Column(db.String(64), nullable=True)

    product = db.relationship("Product", lazy="joined")

    def same_variant(self, name, value) -> bool:
        if not self.variant_name and not name:
            return True
        if not self.variant_name or not name:
            return False
        return self.variant_name == name and self.variant_value == value

    def line_total_dec(self) -> Decimal:
        return round_money(D(self.price) * D(self.quantity))

    def as_api(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.product.name if self.product else None,
            "image_url": self.product.primary_image() if self.product else None,
            "seller_id": self.seller_id,
            "quantity": self.quantity,
            "price": to_float(self.price),
            "variant": {"name": self.variant_name, "value": self.variant_value} if self.variant_name else None,
            "line_total": to_float(self.line_total_dec()),
        }
