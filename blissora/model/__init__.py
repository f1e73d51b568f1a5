# ------ blissora/model/__init__.py ------

from .user import User
from .category import Category
from .product import Product, ProductImage
from .coupon import Coupon
from .cart import Cart, CartItem
from .order import Order, OrderItem
from .payment import Payment, PaymentRefund
from .review import Review, ReviewReport
from .types import Address

__all__ = [
    "User",
    "Category",
    "Product",
    "ProductImage",
    "Coupon",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "Payment",
    "PaymentRefund",
    "Review",
    "ReviewReport",
    "Address",
]
