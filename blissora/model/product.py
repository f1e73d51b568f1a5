# blissora/model/product.py
from sqlalchemy.sql import func

from ..extensions import db

PRODUCT_STATUSES = {"active", "inactive", "draft", "out_of_stock"}


def _empty_distribution():
    return {str(star): 0 for star in range(1, 6)}


class Product(db.Model):
    __tablename__ = "product"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")
    slug = db.Column(db.String(255), unique=True, index=True)

    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("category.id"), nullable=False, index=True)

    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    compare_price = db.Column(db.Numeric(12, 2), nullable=True)
    cost = db.Column(db.Numeric(12, 2), nullable=True)

    # inventory
    sku = db.Column(db.String(64), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    track_quantity = db.Column(db.Boolean, nullable=False, default=True)
    allow_backorder = db.Column(db.Boolean, nullable=False, default=False)

    attributes = db.Column(db.JSON, nullable=False, default=list)   # [{name, value}]
    tags = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    is_featured = db.Column(db.Boolean, nullable=False, default=False)

    rating_average = db.Column(db.Float, nullable=False, default=0.0)
    rating_count = db.Column(db.Integer, nullable=False, default=0)
    rating_distribution = db.Column(db.JSON, nullable=False, default=_empty_distribution)

    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    seller = db.relationship("User", lazy="joined")
    images = db.relationship(
        "ProductImage",
        backref="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProductImage.id.asc()",
    )

    def in_stock_for(self, qty: int) -> bool:
        if not self.track_quantity or self.allow_backorder:
            return True
        return (self.quantity or 0) >= qty

    def decrement_stock(self, qty: int) -> None:
        if not self.track_quantity:
            return
        self.quantity = (self.quantity or 0) - qty
        if self.quantity <= 0:
            self.status = "out_of_stock"

    def primary_image(self):
        for img in self.images:
            if img.is_primary:
                return img.url
        return self.images[0].url if self.images else None

    def as_summary(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "price": float(self.price or 0),
            "image_url": self.primary_image(),
            "rating": {"average": self.rating_average, "count": self.rating_count},
        }

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "price": float(self.price or 0),
            "compare_price": float(self.compare_price) if self.compare_price is not None else None,
            "inventory": {
                "sku": self.sku,
                "quantity": self.quantity,
                "track_quantity": self.track_quantity,
                "allow_backorder": self.allow_backorder,
            },
            "attributes": self.attributes or [],
            "tags": self.tags or [],
            "status": self.status,
            "is_featured": self.is_featured,
            "rating": {
                "average": self.rating_average,
                "count": self.rating_count,
                "distribution": self.rating_distribution or _empty_distribution(),
            },
            "images": [img.as_api() for img in self.images],
            "seller": {
                "id": self.seller_id,
                "name": self.seller.name if self.seller else None,
                "store_name": self.seller.store_name if self.seller else None,
            },
            "category": {"id": self.category.id, "name": self.category.name} if self.category else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ProductImage(db.Model):
    __tablename__ = "product_image"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)
    url = db.Column(db.String(1024), nullable=False)
    alt = db.Column(db.String(255))
    is_primary = db.Column(db.Boolean, default=False)

    def as_api(self):
        return {"id": self.id, "url": self.url, "alt": self.alt, "is_primary": self.is_primary}
