# --- blissora/model/category.py ---
from sqlalchemy.sql import func

from ..extensions import db


class Category(db.Model):
    __tablename__ = "category"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    slug = db.Column(db.String(160), nullable=False, unique=True, index=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("category.id"), nullable=True, index=True)
    image_url = db.Column(db.String(1024), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)  # active | inactive
    display_order = db.Column(db.Integer, nullable=False, default=0)
    featured = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, server_default=func.now())

    parent = db.relationship("Category", remote_side=[id], backref="children")
    products = db.relationship("Product", backref="category", lazy=True)

    def breadcrumb(self):
        trail = []
        node = self
        while node is not None:
            trail.insert(0, {"id": node.id, "name": node.name, "slug": node.slug})
            node = node.parent
        return trail

    def as_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "parent_id": self.parent_id,
            "image_url": self.image_url,
            "status": self.status,
            "display_order": self.display_order,
            "featured": self.featured,
        }
