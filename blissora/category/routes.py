from flask import current_app, request
from sqlalchemy import asc, func

from . import bp
from ..errors import Conflict, NotFound, ValidationError
from ..extensions import db
from ..model import Category, Product
from ..utils.api import ok
from ..utils.decorators import role_required
from ..utils.pagination import to_int
from ..utils.payload import json_body
from ..utils.text import slugify


def _product_counts():
    rows = (
        db.session.query(Product.category_id, func.count(Product.id))
        .filter(Product.status == "active")
        .group_by(Product.category_id)
        .all()
    )
    return {cat_id: n for cat_id, n in rows}


def _ordered(query):
    return query.order_by(asc(Category.display_order), asc(Category.name))


@bp.get("")
def list_categories():
    """
    q        -> substring match on name
    parent   -> only children of this category ("root" for top level)
    featured -> true|false
    """
    q = (request.args.get("q") or "").strip()
    parent = (request.args.get("parent") or "").strip()
    featured = (request.args.get("featured") or "").strip().lower()

    qry = Category.query.filter(Category.status == "active")
    if q:
        qry = qry.filter(Category.name.ilike(f"%{q}%"))
    if parent == "root":
        qry = qry.filter(Category.parent_id.is_(None))
    elif parent:
        qry = qry.filter(Category.parent_id == to_int(parent))
    if featured in {"true", "false"}:
        qry = qry.filter(Category.featured.is_(featured == "true"))

    counts = _product_counts()
    categories = [{**c.as_dict(), "product_count": counts.get(c.id, 0)} for c in _ordered(qry).all()]
    return ok("categories", {"categories": categories})


@bp.get("/tree")
def category_tree():
    rows = _ordered(Category.query.filter(Category.status == "active")).all()
    counts = _product_counts()

    nodes = {c.id: {**c.as_dict(), "product_count": counts.get(c.id, 0), "children": []} for c in rows}
    roots = []
    for c in rows:
        node = nodes[c.id]
        parent = nodes.get(c.parent_id)
        (parent["children"] if parent else roots).append(node)
    return ok("category tree", {"categories": roots})


@bp.get("/<int:category_id>/breadcrumb")
def breadcrumb(category_id):
    category = db.session.get(Category, category_id)
    if not category:
        raise NotFound("Category not found")
    return ok("breadcrumb", {"breadcrumb": category.breadcrumb()})


@bp.post("")
@role_required("admin", message="Admin access required")
def create_category():
    data = json_body()
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")
    if Category.query.filter(Category.name.ilike(name)).first():
        raise Conflict("category name already exists")

    slug = slugify(data.get("slug") or name)
    if not slug:
        raise ValidationError("name must contain letters or digits")
    if Category.query.filter_by(slug=slug).first():
        raise Conflict("category slug already exists")

    parent_id = to_int(data.get("parent_id"))
    if data.get("parent_id") is not None and (parent_id is None or db.session.get(Category, parent_id) is None):
        raise ValidationError("parent category not found")

    c = Category(
        name=name,
        slug=slug,
        description=data.get("description"),
        parent_id=parent_id,
        image_url=data.get("image_url"),
        display_order=to_int(data.get("display_order"), 0),
        featured=bool(data.get("featured")),
    )
    db.session.add(c)
    db.session.commit()
    current_app.logger.info("category %s created", c.id)
    return ok("Category created", {"category": c.as_dict()}, status=201)
