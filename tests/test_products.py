import pytest

import database

PRODUCT_BODY = {
    "name": {"en": "Pixel", "ar": "بكسل"},
    "basePrice": 300,
    "attributes": [{"key_en": "Screen", "key_ar": "الشاشة", "value_en": "6 in", "value_ar": "6 بوصة"}],
    "variations": [{
        "name_en": "Storage",
        "name_ar": "السعة",
        "options": [{"name_en": "256GB", "name_ar": "256", "skus": [{"name_en": "256GB", "name_ar": "256", "price": 350}]}],
    }],
}


def test_create_product_assigns_variation_ids(client, admin_headers, category):
    res = client.post("/api/products", json={**PRODUCT_BODY, "category": category}, headers=admin_headers)
    assert res.status_code == 201
    product = res.json()
    variation = product["variations"][0]
    assert variation["id"]
    assert variation["options"][0]["id"]
    sku = variation["options"][0]["skus"][0]
    assert sku["id"] and sku["stock"] == 0
    assert product["numReviews"] == 0
    assert product["pricing"] == {"displayPrice": 300, "originalPrice": None, "discountPercentage": 0}


def test_create_product_unknown_category(client, admin_headers):
    res = client.post(
        "/api/products",
        json={**PRODUCT_BODY, "category": "64b7f0c2a1b2c3d4e5f60718"},
        headers=admin_headers,
    )
    assert res.status_code == 404


def test_create_product_foreign_sub_category(client, admin_headers, category):
    res = client.post(
        "/api/products",
        json={**PRODUCT_BODY, "category": category, "subCategory": "elsewhere"},
        headers=admin_headers,
    )
    assert res.status_code == 400


def test_create_product_rejects_negative_price(client, admin_headers, category):
    res = client.post("/api/products", json={**PRODUCT_BODY, "category": category, "basePrice": -1}, headers=admin_headers)
    assert res.status_code == 400
    assert "basePrice" in res.json()["message"]


def test_list_and_search(client, product, category):
    assert len(client.get("/api/products").json()) == 1
    assert len(client.get("/api/products", params={"category": category}).json()) == 1
    assert len(client.get("/api/products", params={"q": "galax"}).json()) == 1
    assert client.get("/api/products", params={"q": "iphone"}).json() == []


def test_product_carries_active_advertisement_pricing(client, product):
    database.create_document("advertisement", {
        "title": {"en": "Phone week", "ar": "أسبوع الهواتف"},
        "image": "/uploads/advertisements/a.png",
        "type": "slide",
        "isActive": True,
        "order": 0,
        "startDate": None,
        "endDate": None,
        "originalPrice": 100,
        "discountedPrice": 80,
        "productRef": product,
    })
    body = client.get(f"/api/products/{product}").json()
    assert body["advertisement"]["discountPercentage"] == pytest.approx(20)
    assert body["pricing"]["originalPrice"] == 100
    assert body["pricing"]["displayPrice"] == pytest.approx(80)


def test_inactive_advertisement_is_not_attached(client, product):
    database.create_document("advertisement", {
        "title": {"en": "Old", "ar": "قديم"},
        "image": "/uploads/advertisements/b.png",
        "isActive": False,
        "originalPrice": 100,
        "discountedPrice": 50,
        "productRef": product,
    })
    body = client.get(f"/api/products/{product}").json()
    assert body["advertisement"] is None
    assert body["pricing"]["displayPrice"] == 100


def test_get_product_bad_and_missing_ids(client):
    assert client.get("/api/products/not-an-id").status_code == 400
    assert client.get("/api/products/64b7f0c2a1b2c3d4e5f60718").status_code == 404


def test_update_and_delete_product(client, admin_headers, product, category):
    res = client.put(
        f"/api/products/{product}",
        json={**PRODUCT_BODY, "category": category, "basePrice": 250},
        headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json()["basePrice"] == 250

    assert client.delete(f"/api/products/{product}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/products/{product}", headers=admin_headers).status_code == 404


def test_reviews_keep_aggregates_in_sync(client, product, user_headers, user_factory):
    other = user_factory(name="Omar", email="omar@example.com")
    other_headers = {"Authorization": f"Bearer {other['token']}"}

    url = f"/api/products/{product}/reviews"
    assert client.post(url, json={"rating": 5, "comment": "Great"}, headers=user_headers).status_code == 201
    assert client.post(url, json={"rating": 2, "comment": "Meh"}, headers=other_headers).status_code == 201

    body = client.get(f"/api/products/{product}").json()
    assert body["numReviews"] == len(body["reviews"]) == 2
    assert body["averageRating"] == pytest.approx(3.5)
    assert {r["name"] for r in body["reviews"]} == {"Sara", "Omar"}


def test_second_review_by_same_user_rejected(client, product, user_headers):
    url = f"/api/products/{product}/reviews"
    client.post(url, json={"rating": 4, "comment": "Nice"}, headers=user_headers)
    res = client.post(url, json={"rating": 1, "comment": "Changed my mind"}, headers=user_headers)
    assert res.status_code == 400
    assert res.json()["message"] == "Product already reviewed"


def test_review_rating_bounds(client, product, user_headers):
    res = client.post(f"/api/products/{product}/reviews", json={"rating": 6, "comment": "!"}, headers=user_headers)
    assert res.status_code == 400


def test_categories(client, admin_headers):
    res = client.post(
        "/api/categories",
        json={"name": {"en": "Laptops", "ar": "حواسيب"}, "subCategories": [{"name": {"en": "Gaming", "ar": "ألعاب"}}]},
        headers=admin_headers,
    )
    assert res.status_code == 201
    assert res.json()["subCategories"][0]["id"]
    assert [c["name"]["en"] for c in client.get("/api/categories").json()] == ["Laptops"]
