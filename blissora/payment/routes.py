from decimal import InvalidOperation

from flask import current_app, request
from flask_jwt_extended import current_user, jwt_required

from . import bp
from ..errors import NotFound, ValidationError
from ..extensions import db
from ..model import Payment
from ..utils.api import ok
from ..utils.decorators import role_required
from ..utils.money import D
from ..utils.payload import json_body


@bp.get("/stats")
@role_required("admin", message="Admin access required")
def payment_stats():
    timeframe = (request.args.get("timeframe") or "month").strip().lower()
    return ok("payment stats", {"timeframe": timeframe, **Payment.stats(timeframe)})


@bp.get("/<payment_id>")
@jwt_required()
def get_payment(payment_id):
    payment = Payment.query.filter_by(payment_id=payment_id).first()
    if payment is None or (current_user.role != "admin" and payment.user_id != current_user.id):
        raise NotFound("Payment not found")
    return ok("payment", {"payment": payment.as_api()})


@bp.post("/<payment_id>/refund")
@role_required("admin", message="Admin access required")
def refund_payment(payment_id):
    payment = Payment.query.filter_by(payment_id=payment_id).first()
    if payment is None:
        raise NotFound("Payment not found")

    data = json_body()
    if data.get("amount") is None:
        amount = D(payment.amount) - payment.refunded_total()
    else:
        try:
            amount = D(data["amount"])
        except InvalidOperation:
            raise ValidationError("amount must be a number")
    refund = payment.process_refund(amount, reason=data.get("reason"))
    if payment.status == "refunded" and payment.order is not None:
        payment.order.payment_status = "refunded"
    db.session.commit()

    current_app.logger.info("refund %s issued on payment %s", refund.refund_id, payment.payment_id)
    return ok("Refund initiated", {"refund": refund.as_api(), "payment": payment.as_api()})
