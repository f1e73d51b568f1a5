"""
Shared pytest fixtures for the Blissora API tests.

Every test gets its own app built from ``TestingConfig``: an in-memory SQLite
database, fast password hashing, mail disabled and the in-process cache.
Database work in tests runs inside ``app.app_context()`` blocks so requests
made through the test client get their own session, as they do in
production.
"""

from decimal import Decimal

import pytest

from blissora import create_app
from blissora.extensions import db
from blissora.model import Category, Coupon, Product, User

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_client(app):
    """Extra test clients, each with its own cookie jar."""
    return app.test_client


# =============================================================================
# Factories (return ids; rows are detached once the context closes)
# =============================================================================

@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(email=None, name="Test User", role="user", password=DEFAULT_PASSWORD, **extra):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        with app.app_context():
            user = User(email=email, name=name, role=role, **extra)
            if password:
                user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make


@pytest.fixture
def make_category(app):
    counter = {"n": 0}

    def _make(name=None, parent_id=None):
        counter["n"] += 1
        name = name or f"Category {counter['n']}"
        with app.app_context():
            category = Category(name=name, slug=name.lower().replace(" ", "-"), parent_id=parent_id)
            db.session.add(category)
            db.session.commit()
            return category.id

    return _make


@pytest.fixture
def seller_id(make_user):
    return make_user(email="seller@example.com", name="Seller", role="seller",
                     store_name="Seller Store", seller_approved=True)


@pytest.fixture
def make_product(app, make_category, seller_id):
    counter = {"n": 0}

    def _make(name=None, price="100.00", quantity=10, category_id=None, **extra):
        counter["n"] += 1
        name = name or f"Product {counter['n']}"
        category_id = category_id or make_category()
        with app.app_context():
            product = Product(
                name=name,
                description=f"{name} description",
                slug=f"product-{counter['n']}",
                seller_id=extra.pop("seller_id", seller_id),
                category_id=category_id,
                price=Decimal(price),
                quantity=quantity,
                **extra,
            )
            db.session.add(product)
            db.session.commit()
            return product.id

    return _make


@pytest.fixture
def make_coupon(app):
    def _make(code="SAVE10", discount_type="percentage", value="10", **extra):
        with app.app_context():
            coupon = Coupon(code=code, discount_type=discount_type, value=Decimal(value), **extra)
            db.session.add(coupon)
            db.session.commit()
            return coupon.id

    return _make


# =============================================================================
# Request helpers
# =============================================================================

def login(client, email, password=DEFAULT_PASSWORD):
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp


def refresh_token_of(client):
    cookie = client.get_cookie("refreshToken")
    return cookie.value if cookie else None


@pytest.fixture
def buyer(client, make_user):
    """A logged-in buyer: (client, user id)."""
    user_id = make_user(email="buyer@example.com", name="Buyer")
    login(client, "buyer@example.com")
    return client, user_id


@pytest.fixture
def admin(make_client, make_user):
    """A logged-in admin on its own client: (client, user id)."""
    user_id = make_user(email="admin@example.com", name="Admin", role="admin")
    c = make_client()
    login(c, "admin@example.com")
    return c, user_id


ADDRESS = {
    "name": "Asha Rao",
    "phone": "9999999999",
    "line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "KA",
    "country": "IN",
    "zip_code": "560001",
}
