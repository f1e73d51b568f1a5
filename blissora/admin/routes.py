from io import BytesIO

from flask import current_app, request, send_file

from . import bp
from ..errors import NotFound, ValidationError
from ..extensions import db
from ..model import User
from ..services import analytics_service
from ..utils.api import ok
from ..utils.decorators import role_required
from ..utils.pagination import to_int
from ..utils.payload import json_body

SELLER_ACTIONS = ("approve", "suspend")


@bp.get("/dashboard")
@role_required("admin", message="Admin access required")
def dashboard():
    return ok("dashboard", {"stats": analytics_service.dashboard()})


@bp.get("/reports")
@role_required("admin", message="Admin access required")
def reports():
    """
    Query params:
      start, end -> YYYY-MM-DD (inclusive), default last 30 days
      format     -> json | csv
    """
    report = analytics_service.sales_report(request.args.get("start"), request.args.get("end"))
    if (request.args.get("format") or "json").lower() == "csv":
        output = BytesIO(analytics_service.sales_csv(report).encode("utf-8"))
        return send_file(
            output,
            as_attachment=True,
            download_name=f"sales_{report['range']['start']}_{report['range']['end']}.csv",
            mimetype="text/csv",
        )
    return ok("sales report", {"report": report})


@bp.post("/sellers")
@role_required("admin", message="Admin access required")
def manage_seller():
    data = json_body()
    action = (data.get("action") or "").strip().lower()
    if action not in SELLER_ACTIONS:
        raise ValidationError("action must be one of: " + ", ".join(SELLER_ACTIONS))

    seller_id = to_int(data.get("seller_id"))
    seller = db.session.get(User, seller_id) if seller_id is not None else None
    if seller is None or seller.role != "seller":
        raise NotFound("Seller not found")

    if action == "approve":
        seller.seller_approved = True
    else:
        seller.seller_approved = False
        seller.clear_session()
    db.session.commit()

    current_app.logger.info("seller %s %sd by admin", seller.id, action)
    return ok(f"Seller {action}d", {"seller": seller.as_dict()})
