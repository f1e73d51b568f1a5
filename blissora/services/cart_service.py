from flask import current_app

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..model import Cart, CartItem, Coupon, Product
from ..utils.clock import utcnow
from ..utils.money import D
from ..utils.pagination import to_int

MAX_LINE_QUANTITY = 100


def get_or_create_cart(user_id) -> Cart:
    cart = Cart.query.filter_by(user_id=user_id).first()
    if cart is None:
        cart = Cart(user_id=user_id)
        db.session.add(cart)
        db.session.flush()
    return cart


def recalc_cart(cart: Cart):
    """Refresh cached totals using the configured tax and shipping rules."""
    cfg = current_app.config
    cart.recalculate(
        tax_rate=D(cfg["TAX_RATE"]),
        free_shipping_threshold=D(cfg["FREE_SHIPPING_THRESHOLD"]),
        shipping_fee=D(cfg["SHIPPING_FEE"]),
    )
    db.session.flush()


def _parse_quantity(value):
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise ValidationError("quantity must be an integer")
    if qty < 1 or qty > MAX_LINE_QUANTITY:
        raise ValidationError(f"quantity must be between 1 and {MAX_LINE_QUANTITY}")
    return qty


def _purchasable(product_id) -> Product:
    product_id = to_int(product_id)
    product = db.session.get(Product, product_id) if product_id is not None else None
    if product is None or product.status != "active":
        raise NotFound("Product not available")
    return product


def add_item(cart: Cart, product_id, quantity=1, variant_name=None, variant_value=None) -> CartItem:
    qty = _parse_quantity(quantity)
    product = _purchasable(product_id)

    item = cart.find_item(product.id, variant_name, variant_value)
    new_qty = qty + (item.quantity if item else 0)
    if new_qty > MAX_LINE_QUANTITY:
        raise ValidationError(f"quantity must be between 1 and {MAX_LINE_QUANTITY}")
    if not product.in_stock_for(new_qty):
        raise ValidationError(f"Only {product.quantity} left in stock for {product.name}")

    if item is None:
        item = CartItem(
            product_id=product.id,
            seller_id=product.seller_id,
            quantity=qty,
            price=product.price,
            variant_name=variant_name,
            variant_value=variant_value,
        )
        cart.items.append(item)
    else:
        item.quantity = new_qty
        item.price = product.price
    recalc_cart(cart)
    return item


def _own_item(cart: Cart, item_id) -> CartItem:
    for it in cart.items:
        if it.id == item_id:
            return it
    raise NotFound("Cart item not found")


def update_item(cart: Cart, item_id, quantity) -> CartItem:
    item = _own_item(cart, item_id)
    qty = _parse_quantity(quantity)
    product = _purchasable(item.product_id)
    if not product.in_stock_for(qty):
        raise ValidationError(f"Only {product.quantity} left in stock for {product.name}")
    item.quantity = qty
    recalc_cart(cart)
    return item


def remove_item(cart: Cart, item_id):
    item = _own_item(cart, item_id)
    cart.items.remove(item)
    recalc_cart(cart)


def clear_cart(cart: Cart):
    cart.clear()
    recalc_cart(cart)


def apply_coupon(cart: Cart, code) -> Coupon:
    code = (code or "").strip().upper()
    if not code:
        raise ValidationError("coupon code is required")
    if not cart.items:
        raise ValidationError("cart is empty")
    coupon = Coupon.query.filter(db.func.upper(Coupon.code) == code).first()
    if coupon is None or not coupon.is_live(utcnow()):
        raise ValidationError("invalid or inactive coupon")

    cart.coupon_code = coupon.code
    cart.coupon_discount_type = coupon.discount_type
    cart.coupon_discount_value = coupon.value
    cart.coupon_max_discount = coupon.max_discount
    recalc_cart(cart)
    return coupon


def remove_coupon(cart: Cart):
    cart.coupon_code = None
    cart.coupon_discount_type = None
    cart.coupon_discount_value = None
    cart.coupon_max_discount = None
    recalc_cart(cart)
