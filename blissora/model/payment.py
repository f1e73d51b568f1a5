# blissora/model/payment.py
import secrets
import time
from datetime import timedelta

from sqlalchemy.sql import func

from ..extensions import db
from ..errors import ValidationError
from ..utils.clock import utcnow
from ..utils.money import D, round_money, to_float

PAYMENT_METHODS = ("card", "upi", "netbanking", "wallet", "cod", "paypal")
PAYMENT_STATUSES = ("pending", "processing", "completed", "failed", "refunded", "cancelled")

TIMEFRAMES = {
    "day": None,
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}


def public_id(prefix: str) -> str:
    return f"{prefix}{int(time.time() * 1000)}{secrets.token_hex(4)}"


class Payment(db.Model):
    __tablename__ = "payment"

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.String(40), unique=True, nullable=False, index=True, default=lambda: public_id("PAY"))
    order_pk = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="INR")
    method = db.Column(db.String(16), nullable=False)
    gateway = db.Column(db.String(16), nullable=True)   # razorpay | stripe | paypal | paytm | cod
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    gateway_payment_id = db.Column(db.String(128), nullable=True, index=True)
    gateway_order_id = db.Column(db.String(128), nullable=True)
    gateway_raw = db.Column(db.JSON, nullable=True)

    notes = db.Column(db.Text)
    completed_at = db.Column(db.DateTime)
    failed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)

    order = db.relationship("Order", backref=db.backref("payments", lazy="selectin"))
    refunds = db.relationship(
        "PaymentRefund",
        backref="payment",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PaymentRefund.id.asc()",
    )

    def _apply_gateway(self, gateway_response):
        gateway_response = gateway_response or {}
        self.gateway_payment_id = gateway_response.get("gateway_payment_id", self.gateway_payment_id)
        self.gateway_order_id = gateway_response.get("gateway_order_id", self.gateway_order_id)
        self.gateway_raw = gateway_response or self.gateway_raw

    def mark_completed(self, gateway_response=None):
        self.status = "completed"
        self._apply_gateway(gateway_response)
        self.completed_at = utcnow()

    def mark_failed(self, gateway_response=None):
        self.status = "failed"
        self._apply_gateway(gateway_response)
        self.failed_at = utcnow()

    def refunded_total(self):
        return sum((D(r.amount) for r in self.refunds if r.status != "failed"), D(0))

    def process_refund(self, amount, reason=None):
        if self.status != "completed":
            raise ValidationError("Cannot refund a payment that is not completed")
        amount = round_money(amount)
        if amount <= 0:
            raise ValidationError("Refund amount must be positive")
        already = self.refunded_total()
        if already + amount > D(self.amount):
            raise ValidationError("Refund amount exceeds payment amount")

        refund = PaymentRefund(refund_id=public_id("REF"), amount=amount, reason=reason, status="pending")
        self.refunds.append(refund)
        if already + amount == D(self.amount):
            self.status = "refunded"
        return refund

    @classmethod
    def stats(cls, timeframe="month"):
        now = utcnow()
        if timeframe not in TIMEFRAMES:
            raise ValidationError("timeframe must be one of: " + ", ".join(TIMEFRAMES))
        span = TIMEFRAMES[timeframe]
        since = now.replace(hour=0, minute=0, second=0, microsecond=0) if span is None else now - span

        rows = (
            db.session.query(cls.status, func.count(cls.id), func.coalesce(func.sum(cls.amount), 0))
            .filter(cls.created_at >= since)
            .group_by(cls.status)
            .all()
        )
        overview = (
            db.session.query(func.count(cls.id), func.coalesce(func.sum(cls.amount), 0), func.avg(cls.amount))
            .filter(cls.created_at >= since)
            .one()
        )
        return {
            "by_status": [
                {"status": status, "count": count, "total_amount": to_float(total)}
                for status, count, total in rows
            ],
            "overview": {
                "total_transactions": overview[0] or 0,
                "total_revenue": to_float(overview[1]),
                "average_transaction": to_float(overview[2] or 0),
            },
        }

    def as_api(self):
        return {
            "payment_id": self.payment_id,
            "order_id": self.order.order_id if self.order else None,
            "amount": to_float(self.amount),
            "currency": self.currency,
            "method": self.method,
            "gateway": self.gateway,
            "status": self.status,
            "refunds": [r.as_api() for r in self.refunds],
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "failed_at": self.failed_at.isoformat() if self.failed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class PaymentRefund(db.Model):
    __tablename__ = "payment_refund"

    id = db.Column(db.Integer, primary_key=True)
    payment_pk = db.Column(db.Integer, db.ForeignKey("payment.id"), nullable=False, index=True)
    refund_id = db.Column(db.String(40), unique=True, nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    reason = db.Column(db.String(255))
    status = db.Column(db.String(16), nullable=False, default="pending")  # pending | processed | failed
    processed_at = db.Column(db.DateTime)

    def as_api(self):
        return {
            "refund_id": self.refund_id,
            "amount": to_float(self.amount),
            "reason": self.reason,
            "status": self.status,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }
