# --- blissora/utils/pagination.py ---
import math


def to_int(v, default=None):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def page_args(args, default_limit=10, max_limit=100):
    page = max(to_int(args.get("page"), 1), 1)
    limit = min(max(to_int(args.get("limit"), default_limit), 1), max_limit)
    return page, limit


def paginate(query, page, limit):
    """Run ``query`` for one page; returns (items, pagination meta)."""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
