from flask import request
from flask_jwt_extended import current_user, get_current_user, jwt_required

from . import bp
from ..errors import Conflict, ValidationError
from ..extensions import db
from ..services import review_service
from ..utils.api import ok
from ..utils.decorators import role_required
from ..utils.pagination import page_args, paginate, to_int
from ..utils.payload import json_body


@bp.get("/product/<int:product_id>")
def product_reviews(product_id):
    """
    Query params:
      rating   -> 1..5
      verified -> true|false
      sort     -> newest | oldest | rating_high | rating_low | helpful
      page, limit
    """
    verified = (request.args.get("verified") or "").strip().lower()
    q = review_service.product_reviews(
        product_id,
        rating=to_int(request.args.get("rating")),
        verified={"true": True, "false": False}.get(verified),
        sort=request.args.get("sort") or "newest",
    )
    page, limit = page_args(request.args)
    items, meta = paginate(q, page, limit)
    return ok("reviews", {"reviews": [r.as_api() for r in items], "pagination": meta})


@bp.get("/product/<int:product_id>/stats")
def product_review_stats(product_id):
    review_service.get_product(product_id)
    return ok("review stats", {"stats": review_service.rating_summary(product_id)})


@bp.post("")
@jwt_required()
def create_review():
    data = json_body()
    review = review_service.create_review(current_user, data)
    return ok("Review submitted for moderation", {"review": review.as_api()}, status=201)


@bp.post("/<int:review_id>/helpful")
@jwt_required()
def mark_helpful(review_id):
    review = review_service.get_review(review_id)
    if review.user_id == current_user.id:
        raise ValidationError("You cannot vote on your own review")
    if not review.mark_helpful(get_current_user()):
        raise Conflict("Already marked as helpful")
    db.session.commit()
    return ok("Marked as helpful", {"helpful_count": review.helpful_count})


@bp.delete("/<int:review_id>/helpful")
@jwt_required()
def remove_helpful(review_id):
    review = review_service.get_review(review_id)
    if not review.remove_helpful(get_current_user()):
        raise ValidationError("You have not marked this review as helpful")
    db.session.commit()
    return ok("Helpful vote removed", {"helpful_count": review.helpful_count})


@bp.post("/<int:review_id>/report")
@jwt_required()
def report_review(review_id):
    data = json_body()
    reason = (data.get("reason") or "").strip()
    if not reason:
        raise ValidationError("reason is required")
    review = review_service.get_review(review_id)
    if not review.report(get_current_user(), reason[:255]):
        raise Conflict("You have already reported this review")
    db.session.commit()
    return ok("Review reported")


@bp.patch("/<int:review_id>/moderate")
@role_required("admin", message="Admin access required")
def moderate_review(review_id):
    data = json_body()
    review = review_service.moderate(
        review_id,
        data.get("status"),
        notes=data.get("moderator_notes"),
        featured=data.get("featured"),
    )
    return ok("Review moderated", {"review": review.as_api()})
