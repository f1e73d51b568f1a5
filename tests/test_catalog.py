from conftest import login

from blissora.extensions import cache, db
from blissora.model import Product


def _seller_client(make_client, make_user, approved=True, email="maker@example.com"):
    make_user(email=email, name="Maker", role="seller", store_name="Maker Co", seller_approved=approved)
    c = make_client()
    login(c, email)
    return c


def _product_body(category_id, **overrides):
    return {
        "name": "Hand Woven Basket",
        "description": "Made from river reed",
        "price": "249.50",
        "quantity": 12,
        "category_id": category_id,
        "images": [{"url": "https://img/basket.png", "is_primary": True}],
        **overrides,
    }


# ---- products ----

def test_approved_seller_creates_product_with_slug(make_client, make_user, make_category):
    c = _seller_client(make_client, make_user)
    category_id = make_category()

    resp = c.post("/products", json=_product_body(category_id))
    assert resp.status_code == 201
    product = resp.get_json()["data"]["product"]
    assert product["slug"] == "hand-woven-basket"
    assert product["price"] == 249.5
    assert product["images"][0]["is_primary"] is True
    assert product["seller"]["store_name"] == "Maker Co"

    again = c.post("/products", json=_product_body(category_id)).get_json()["data"]["product"]
    assert again["slug"] == "hand-woven-basket-1"


def test_unapproved_seller_and_buyer_cannot_create(make_client, make_user, make_category, buyer):
    category_id = make_category()
    pending = _seller_client(make_client, make_user, approved=False)
    resp = pending.post("/products", json=_product_body(category_id))
    assert resp.status_code == 403
    assert resp.get_json()["message"] == "Seller account is awaiting approval"

    buyer_client, _ = buyer
    assert buyer_client.post("/products", json=_product_body(category_id)).status_code == 403


def test_create_product_validation(make_client, make_user, make_category):
    c = _seller_client(make_client, make_user)
    category_id = make_category()
    assert c.post("/products", json=_product_body(category_id, price=None)).status_code == 400
    assert c.post("/products", json=_product_body(category_id, price="-1")).status_code == 400
    assert c.post("/products", json=_product_body(9999)).status_code == 400
    assert c.post("/products", json=_product_body(category_id, quantity=-3)).status_code == 400


def test_only_owner_updates_product(make_client, make_user, make_product, seller_id):
    product_id = make_product()
    other = _seller_client(make_client, make_user, email="other@example.com")
    assert other.put(f"/products/{product_id}", json={"price": "1"}).status_code == 403

    owner = make_client()
    login(owner, "seller@example.com")
    resp = owner.put(f"/products/{product_id}", json={"price": "120", "tags": ["sale"]})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["product"]["price"] == 120.0
    assert resp.get_json()["data"]["product"]["tags"] == ["sale"]


def test_list_filters_and_paginates(client, make_product, make_category):
    toys = make_category("Toys")
    books = make_category("Books")
    make_product(name="Robot", price="300", category_id=toys)
    make_product(name="Kite", price="80", category_id=toys)
    make_product(name="Atlas", price="500", category_id=books)
    make_product(name="Hidden", price="10", category_id=books, status="draft")

    data = client.get("/products").get_json()["data"]
    assert data["pagination"]["total"] == 3

    data = client.get("/products", query_string={"category": toys, "sort_by": "price", "sort_order": "asc"}).get_json()["data"]
    assert [p["name"] for p in data["products"]] == ["Kite", "Robot"]

    data = client.get("/products", query_string={"min_price": 100, "max_price": 400}).get_json()["data"]
    assert [p["name"] for p in data["products"]] == ["Robot"]

    data = client.get("/products", query_string={"search": "atl"}).get_json()["data"]
    assert [p["name"] for p in data["products"]] == ["Atlas"]

    data = client.get("/products", query_string={"limit": 2, "page": 2}).get_json()["data"]
    assert len(data["products"]) == 1
    assert data["pagination"]["pages"] == 2


def test_listing_is_cached_until_a_write(client, app, make_client, make_product):
    product_id = make_product(name="Lamp")
    assert client.get("/products").get_json()["data"]["products"][0]["name"] == "Lamp"

    with app.app_context():
        db.session.get(Product, product_id).name = "Renamed Behind The Cache"
        db.session.commit()
    assert client.get("/products").get_json()["data"]["products"][0]["name"] == "Lamp"

    owner = make_client()
    login(owner, "seller@example.com")
    owner.put(f"/products/{product_id}", json={"name": "Desk Lamp"})
    assert client.get("/products").get_json()["data"]["products"][0]["name"] == "Desk Lamp"


def test_unknown_query_params_share_one_cache_entry(client, make_product):
    make_product(name="Lamp")
    for i in range(20):
        assert client.get("/products", query_string={"x": i}).status_code == 200
    assert len(cache.backend) == 1

    # equivalent spellings of the same listing also share it
    client.get("/products", query_string={"status": "active", "page": "1", "sort_order": "DESC"})
    assert len(cache.backend) == 1


def test_list_rejects_bad_numbers_and_status(client):
    for value in ("NaN", "Infinity", "abc", "-5"):
        resp = client.get("/products", query_string={"min_price": value})
        assert resp.status_code == 400, value
    assert client.get("/products", query_string={"status": "archived"}).status_code == 400


def test_product_write_requires_json_object(make_client, make_user, make_category):
    c = _seller_client(make_client, make_user)
    resp = c.post("/products", json=[_product_body(make_category())])
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Request body must be a JSON object"


def test_get_product_with_related(client, make_product, make_category):
    category_id = make_category()
    main = make_product(name="Main", category_id=category_id)
    for i in range(5):
        make_product(name=f"Related {i}", category_id=category_id)
    make_product(name="Elsewhere")

    data = client.get(f"/products/{main}").get_json()["data"]
    assert data["product"]["name"] == "Main"
    assert len(data["related_products"]) == 4
    assert all(p["name"].startswith("Related") for p in data["related_products"])
    assert cache.get_json(f"product:{main}") is not None


def test_get_missing_product(client):
    resp = client.get("/products/404")
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "Product not found"


# ---- categories ----

def test_admin_creates_category_with_slug(admin, client):
    admin_client, _ = admin
    resp = admin_client.post("/categories", json={"name": "Home & Living"})
    assert resp.status_code == 201
    assert resp.get_json()["data"]["category"]["slug"] == "home-living"

    assert admin_client.post("/categories", json={"name": "home & living"}).status_code == 409
    assert client.post("/categories", json={"name": "Garden"}).status_code == 401


def test_buyer_cannot_create_category(buyer):
    buyer_client, _ = buyer
    assert buyer_client.post("/categories", json={"name": "Garden"}).status_code == 403


def test_category_tree_counts_and_breadcrumb(client, make_category, make_product):
    root = make_category("Electronics")
    child = make_category("Phones", parent_id=root)
    grandchild = make_category("Cases", parent_id=child)
    make_product(category_id=child)
    make_product(category_id=child)

    listing = client.get("/categories").get_json()["data"]["categories"]
    counts = {c["name"]: c["product_count"] for c in listing}
    assert counts == {"Cases": 0, "Electronics": 0, "Phones": 2}

    tree = client.get("/categories/tree").get_json()["data"]["categories"]
    assert [c["name"] for c in tree] == ["Electronics"]
    assert tree[0]["children"][0]["name"] == "Phones"
    assert tree[0]["children"][0]["children"][0]["name"] == "Cases"

    trail = client.get(f"/categories/{grandchild}/breadcrumb").get_json()["data"]["breadcrumb"]
    assert [c["name"] for c in trail] == ["Electronics", "Phones", "Cases"]
