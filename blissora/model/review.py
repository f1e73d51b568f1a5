# blissora/model/review.py
from sqlalchemy.sql import func

from ..extensions import db

REVIEW_STATUSES = ("pending", "approved", "rejected", "spam")

review_helpful = db.Table(
    "review_helpful",
    db.Column("review_id", db.Integer, db.ForeignKey("review.id"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
)


class Review(db.Model):
    __tablename__ = "review"
    __table_args__ = (db.UniqueConstraint("product_id", "user_id", name="uq_review_product_user"),)

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    order_pk = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)

    rating = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(100))
    comment = db.Column(db.String(1000))
    images = db.Column(db.JSON, nullable=False, default=list)   # [{url, alt}]
    verified_purchase = db.Column(db.Boolean, nullable=False, default=False)

    helpful_count = db.Column(db.Integer, nullable=False, default=0)
    report_count = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    moderator_notes = db.Column(db.Text)
    featured = db.Column(db.Boolean, nullable=False, default=False)

    seller_response = db.Column(db.Text)
    seller_responded_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)

    user = db.relationship("User", lazy="joined")
    helpful_users = db.relationship("User", secondary=review_helpful, lazy="selectin")
    reports = db.relationship("ReviewReport", backref="review", cascade="all, delete-orphan", lazy="selectin")

    def mark_helpful(self, user) -> bool:
        if user in self.helpful_users:
            return False
        self.helpful_users.append(user)
        self.helpful_count = len(self.helpful_users)
        return True

    def remove_helpful(self, user) -> bool:
        if user not in self.helpful_users:
            return False
        self.helpful_users.remove(user)
        self.helpful_count = len(self.helpful_users)
        return True

    def report(self, user, reason) -> bool:
        if any(r.user_id == user.id for r in self.reports):
            return False
        self.reports.append(ReviewReport(user_id=user.id, reason=reason))
        self.report_count = len(self.reports)
        return True

    def as_api(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "user": {"id": self.user_id, "name": self.user.name if self.user else None,
                     "avatar": self.user.avatar if self.user else None},
            "rating": self.rating,
            "title": self.title,
            "comment": self.comment,
            "images": self.images or [],
            "verified_purchase": self.verified_purchase,
            "helpful_count": self.helpful_count,
            "status": self.status,
            "featured": self.featured,
            "seller_response": {
                "comment": self.seller_response,
                "responded_at": self.seller_responded_at.isoformat() if self.seller_responded_at else None,
            } if self.seller_response else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ReviewReport(db.Model):
    __tablename__ = "review_report"
    __table_args__ = (db.UniqueConstraint("review_id", "user_id", name="uq_review_report_user"),)

    id = db.Column(db.Integer, primary_key=True)
    review_id = db.Column(db.Integer, db.ForeignKey("review.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    reason = db.Column(db.String(255))
