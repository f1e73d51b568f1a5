# --- blissora/model/coupon.py ---
from sqlalchemy.sql import func

from ..extensions import db


class Coupon(db.Model):
    __tablename__ = "coupon"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)

    # "percentage" or "fixed"
    discount_type = db.Column(db.String(16), nullable=False, default="percentage")
    value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    max_discount = db.Column(db.Numeric(12, 2), nullable=True)   # cap for percentage coupons

    active = db.Column(db.Boolean, default=True, index=True)
    starts_at = db.Column(db.DateTime, nullable=True)
    ends_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now())

    def is_live(self, now) -> bool:
        if not self.active:
            return False
        if self.starts_at and now < self.starts_at:
            return False
        if self.ends_at and now > self.ends_at:
            return False
        return True
