from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import Conflict, NotFound, ValidationError
from ..extensions import cache, db
from ..model import Order, OrderItem, Product, Review
from ..model.review import REVIEW_STATUSES
from ..utils.pagination import to_int

MAX_IMAGES = 5


def get_product(product_id) -> Product:
    product_id = to_int(product_id)
    product = db.session.get(Product, product_id) if product_id is not None else None
    if product is None:
        raise NotFound("Product not found")
    return product


def get_review(review_id) -> Review:
    review = db.session.get(Review, review_id)
    if review is None:
        raise NotFound("Review not found")
    return review


def has_delivered_purchase(user_id, product_id) -> bool:
    row = (
        db.session.query(Order.id)
        .join(OrderItem, OrderItem.order_pk == Order.id)
        .filter(Order.user_id == user_id,
                Order.status == "delivered",
                OrderItem.product_id == product_id)
        .first()
    )
    return row is not None


def create_review(user, data) -> Review:
    product = get_product(data.get("product_id"))

    rating = to_int(data.get("rating"))
    if rating is None or not 1 <= rating <= 5:
        raise ValidationError("rating must be between 1 and 5")
    title = (data.get("title") or "").strip()
    comment = (data.get("comment") or "").strip()
    if len(title) > 100:
        raise ValidationError("title must be at most 100 characters")
    if len(comment) > 1000:
        raise ValidationError("comment must be at most 1000 characters")
    images = data.get("images") or []
    if not isinstance(images, list) or len(images) > MAX_IMAGES:
        raise ValidationError(f"images must be a list of at most {MAX_IMAGES}")

    order = Order.query.filter_by(order_id=data.get("order_id"), user_id=user.id).first()
    if order is None:
        raise NotFound("Order not found")
    if not any(i.product_id == product.id for i in order.items):
        raise ValidationError("This order does not contain the product")
    if Review.query.filter_by(product_id=product.id, user_id=user.id).first() is not None:
        raise Conflict("You have already reviewed this product")

    review = Review(
        product_id=product.id,
        user_id=user.id,
        order_pk=order.id,
        rating=rating,
        title=title or None,
        comment=comment or None,
        images=[img for img in images if isinstance(img, dict) and img.get("url")],
        verified_purchase=has_delivered_purchase(user.id, product.id),
    )
    db.session.add(review)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise Conflict("You have already reviewed this product") from e
    current_app.logger.info("user %s reviewed product %s", user.id, product.id)
    return review


def product_reviews(product_id, rating=None, verified=None, sort="newest"):
    """Approved reviews for a product as a query, filtered and sorted."""
    product = get_product(product_id)
    q = Review.query.filter(Review.product_id == product.id, Review.status == "approved")
    if rating is not None:
        q = q.filter(Review.rating == rating)
    if verified is not None:
        q = q.filter(Review.verified_purchase.is_(verified))
    order_by = {
        "newest": (Review.created_at.desc(),),
        "oldest": (Review.created_at.asc(),),
        "rating_high": (Review.rating.desc(), Review.created_at.desc()),
        "rating_low": (Review.rating.asc(), Review.created_at.desc()),
        "helpful": (Review.helpful_count.desc(), Review.created_at.desc()),
    }.get(sort, (Review.created_at.desc(),))
    return q.order_by(Review.featured.desc(), *order_by, Review.id.desc())


def rating_summary(product_id):
    rows = (
        db.session.query(Review.rating, func.count(Review.id))
        .filter(Review.product_id == product_id, Review.status == "approved")
        .group_by(Review.rating)
        .all()
    )
    distribution = {str(star): 0 for star in range(1, 6)}
    for rating, n in rows:
        distribution[str(rating)] = n
    count = sum(distribution.values())
    total = sum(int(star) * n for star, n in distribution.items())
    average = round(total / count, 1) if count else 0.0
    return {"average": average, "count": count, "distribution": distribution}


def refresh_product_rating(product: Product):
    summary = rating_summary(product.id)
    product.rating_average = summary["average"]
    product.rating_count = summary["count"]
    product.rating_distribution = summary["distribution"]
    return summary


def moderate(review_id, status, notes=None, featured=None) -> Review:
    review = get_review(review_id)
    status = (status or "").strip().lower()
    if status not in REVIEW_STATUSES:
        raise ValidationError("status must be one of: " + ", ".join(REVIEW_STATUSES))

    review.status = status
    if notes is not None:
        review.moderator_notes = notes
    if featured is not None:
        review.featured = bool(featured)
    db.session.flush()

    product = db.session.get(Product, review.product_id)
    refresh_product_rating(product)
    db.session.commit()
    cache.delete(f"product:{product.id}")
    cache.delete_pattern("products:*")
    current_app.logger.info("review %s moderated to %s", review.id, status)
    return review
