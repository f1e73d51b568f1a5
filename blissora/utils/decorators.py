# ------- blissora/utils/decorators.py -------
from functools import wraps

from flask_jwt_extended import current_user, verify_jwt_in_request

from ..errors import Forbidden, Unauthorized


def _current_user():
    verify_jwt_in_request()
    return current_user


def role_required(*roles, message: str | None = None):
    """Require a valid access token whose user holds one of ``roles``."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = _current_user()
            if not u:
                raise Unauthorized()
            if u.role not in roles:
                raise Forbidden(message or "Forbidden")
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def approved_seller_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        u = _current_user()
        if not u:
            raise Unauthorized()
        if u.role == "admin":
            return fn(*args, **kwargs)
        if u.role != "seller":
            raise Forbidden("Only sellers can manage products")
        if not u.seller_approved:
            raise Forbidden("Seller account is awaiting approval")
        return fn(*args, **kwargs)
    return wrapper
