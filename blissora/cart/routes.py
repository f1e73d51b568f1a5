from flask_jwt_extended import current_user, jwt_required

from . import bp
from ..extensions import db
from ..services import cart_service
from ..utils.api import ok
from ..utils.payload import json_body


def _cart():
    return cart_service.get_or_create_cart(current_user.id)


def _done(message, cart, status=200):
    db.session.commit()
    return ok(message, {"cart": cart.as_api()}, status=status)


@bp.get("")
@jwt_required()
def get_cart():
    cart = _cart()
    cart_service.recalc_cart(cart)
    return _done("cart", cart)


@bp.post("/items")
@jwt_required()
def add_item():
    data = json_body()
    cart = _cart()
    cart_service.add_item(
        cart,
        product_id=data.get("product_id"),
        quantity=data.get("quantity", 1),
        variant_name=data.get("variant_name"),
        variant_value=data.get("variant_value"),
    )
    return _done("Item added to cart", cart, status=201)


@bp.patch("/items/<int:item_id>")
@jwt_required()
def update_item(item_id):
    data = json_body()
    cart = _cart()
    cart_service.update_item(cart, item_id, data.get("quantity"))
    return _done("Cart item updated", cart)


@bp.delete("/items/<int:item_id>")
@jwt_required()
def remove_item(item_id):
    cart = _cart()
    cart_service.remove_item(cart, item_id)
    return _done("Item removed from cart", cart)


@bp.delete("")
@jwt_required()
def clear_cart():
    cart = _cart()
    cart_service.clear_cart(cart)
    return _done("Cart cleared", cart)


@bp.post("/coupon")
@jwt_required()
def apply_coupon():
    data = json_body()
    cart = _cart()
    cart_service.apply_coupon(cart, data.get("code"))
    return _done("Coupon applied", cart)


@bp.delete("/coupon")
@jwt_required()
def remove_coupon():
    cart = _cart()
    cart_service.remove_coupon(cart)
    return _done("Coupon removed", cart)
