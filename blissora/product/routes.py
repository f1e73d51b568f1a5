import json

from flask import current_app, request
from flask_jwt_extended import current_user
from sqlalchemy import asc, desc, or_

from . import bp
from ..errors import Forbidden, NotFound, ValidationError
from ..extensions import cache, db
from ..model import Category, Product, ProductImage
from ..model.product import PRODUCT_STATUSES
from ..utils.api import ok
from ..utils.decorators import approved_seller_required
from ..utils.money import D
from ..utils.pagination import page_args, paginate, to_int
from ..utils.payload import json_body
from ..utils.text import slugify

LIST_CACHE_PREFIX = "products:"
MAX_SEARCH_LENGTH = 100
EDITABLE_FIELDS = {
    "name", "description", "price", "compare_price", "cost", "sku", "quantity",
    "track_quantity", "allow_backorder", "attributes", "tags", "status", "is_featured", "category_id",
}


# ---------- helpers ----------
def _parse_bool(v, default=False):
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in {"1", "true", "yes", "y", "on"}


def _parse_money(v, field, required=False):
    if v is None or v == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    try:
        value = D(v)
    except Exception:
        raise ValidationError(f"{field} must be a number")
    if not value.is_finite():
        raise ValidationError(f"{field} must be a number")
    if value < 0:
        raise ValidationError(f"{field} must be >= 0")
    return value


def _unique_slug(name):
    base = slugify(name) or "product"
    slug, counter = base, 1
    while Product.query.filter_by(slug=slug).first() is not None:
        slug = f"{base}-{counter}"
        counter += 1
    return slug


SORT_COLUMNS = {
    "created_at": Product.created_at,
    "price": Product.price,
    "name": Product.name,
    "rating": Product.rating_average,
}


def _sort_products(query, sort_by, sort_order):
    direction = asc if sort_order == "asc" else desc
    return query.order_by(direction(SORT_COLUMNS[sort_by]), desc(Product.id))


def _list_filters(args):
    """Known listing parameters, normalised; anything else in ``args`` is ignored."""
    min_price = _parse_money(args.get("min_price"), "min_price")
    max_price = _parse_money(args.get("max_price"), "max_price")
    status = args.get("status") or "active"
    if status not in PRODUCT_STATUSES:
        raise ValidationError("status must be one of: " + ", ".join(sorted(PRODUCT_STATUSES)))
    sort_by = args.get("sort_by") or "created_at"
    page, limit = page_args(args, default_limit=12)
    return {
        "status": status,
        "category": to_int(args.get("category")),
        "seller": to_int(args.get("seller")),
        "min_price": str(min_price) if min_price is not None else None,
        "max_price": str(max_price) if max_price is not None else None,
        "search": (args.get("search") or "").strip()[:MAX_SEARCH_LENGTH],
        "sort_by": sort_by if sort_by in SORT_COLUMNS else "created_at",
        "sort_order": "asc" if (args.get("sort_order") or "").lower() == "asc" else "desc",
        "page": page,
        "limit": limit,
    }


def _apply_fields(product, data):
    for key in EDITABLE_FIELDS & data.keys():
        value = data[key]
        if key in {"price", "compare_price", "cost"}:
            value = _parse_money(value, key, required=(key == "price"))
        elif key == "quantity":
            value = to_int(value)
            if value is None or value < 0:
                raise ValidationError("quantity must be a non-negative integer")
        elif key in {"track_quantity", "allow_backorder", "is_featured"}:
            value = _parse_bool(value)
        elif key == "status" and value not in PRODUCT_STATUSES:
            raise ValidationError("status must be one of: " + ", ".join(sorted(PRODUCT_STATUSES)))
        elif key == "category_id":
            value = to_int(value)
            if value is None or db.session.get(Category, value) is None:
                raise ValidationError("category not found")
        elif key in {"attributes", "tags"} and not isinstance(value, list):
            raise ValidationError(f"{key} must be a list")
        setattr(product, key, value)

    if "images" in data:
        images = data["images"] or []
        if not isinstance(images, list):
            raise ValidationError("images must be a list")
        product.images = [
            ProductImage(url=img["url"], alt=img.get("alt"), is_primary=bool(img.get("is_primary")))
            for img in images if isinstance(img, dict) and img.get("url")
        ]


def _invalidate(product_id=None):
    cache.delete_pattern(LIST_CACHE_PREFIX + "*")
    if product_id is not None:
        cache.delete(f"product:{product_id}")


# ---------- routes ----------
@bp.get("")
def list_products():
    """
    Query params:
      category, seller   -> ids
      min_price, max_price
      search             -> substring match on name/description
      status             -> default "active"
      sort_by            -> created_at | price | name | rating
      sort_order         -> asc | desc
      page, limit        -> default 1, 12 (cap 100)
    """
    filters = _list_filters(request.args)
    cache_key = LIST_CACHE_PREFIX + json.dumps(filters, sort_keys=True)
    cached = cache.get_json(cache_key)
    if cached is not None:
        return ok("products", cached)

    q = Product.query.filter(Product.status == filters["status"])
    if filters["category"] is not None:
        q = q.filter(Product.category_id == filters["category"])
    if filters["seller"] is not None:
        q = q.filter(Product.seller_id == filters["seller"])
    if filters["min_price"] is not None:
        q = q.filter(Product.price >= D(filters["min_price"]))
    if filters["max_price"] is not None:
        q = q.filter(Product.price <= D(filters["max_price"]))
    if filters["search"]:
        like = f"%{filters['search']}%"
        q = q.filter(or_(Product.name.ilike(like), Product.description.ilike(like)))

    q = _sort_products(q, filters["sort_by"], filters["sort_order"])
    items, meta = paginate(q, filters["page"], filters["limit"])

    result = {"products": [p.as_api() for p in items], "pagination": meta}
    cache.set_json(cache_key, result, current_app.config["PRODUCT_LIST_CACHE_TTL"])
    return ok("products", result)


@bp.get("/<int:product_id>")
def get_product(product_id):
    cache_key = f"product:{product_id}"
    cached = cache.get_json(cache_key)
    if cached is not None:
        return ok("product", cached)

    product = db.session.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")

    related = (
        Product.query
        .filter(Product.category_id == product.category_id,
                Product.id != product.id,
                Product.status == "active")
        .limit(4)
        .all()
    )
    result = {
        "product": product.as_api(),
        "related_products": [p.as_summary() for p in related],
    }
    cache.set_json(cache_key, result, current_app.config["PRODUCT_LIST_CACHE_TTL"])
    return ok("product", result)


@bp.post("")
@approved_seller_required
def create_product():
    data = json_body()
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")
    if not (data.get("description") or "").strip():
        raise ValidationError("description is required")
    if data.get("category_id") is None:
        raise ValidationError("category_id is required")
    if data.get("quantity") is None:
        raise ValidationError("quantity is required")

    product = Product(name=name, seller_id=current_user.id, slug=_unique_slug(name))
    _apply_fields(product, {**data, "name": name, "price": data.get("price")})
    db.session.add(product)
    db.session.commit()
    _invalidate()

    current_app.logger.info("seller %s created product %s", current_user.id, product.id)
    return ok("Product created successfully", {"product": product.as_api()}, status=201)


@bp.put("/<int:product_id>")
@approved_seller_required
def update_product(product_id):
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")
    if current_user.role != "admin" and product.seller_id != current_user.id:
        raise Forbidden("You can only edit your own products")

    data = json_body()
    _apply_fields(product, data)
    db.session.commit()
    _invalidate(product.id)
    return ok("Product updated successfully", {"product": product.as_api()})
