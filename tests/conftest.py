import os
import tempfile
from datetime import timedelta

os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="souq-uploads-"))

import mongomock  # noqa: E402
import pytest  # noqa: E402

import database  # noqa: E402

database.db = mongomock.MongoClient()["souq_test"]

from fastapi.testclient import TestClient  # noqa: E402

import auth  # noqa: E402
import storage  # noqa: E402
from main import app  # noqa: E402

COLLECTIONS = ("user", "product", "category", "advertisement", "discount", "order")


@pytest.fixture(autouse=True)
def mongo():
    for name in COLLECTIONS:
        database.db.drop_collection(name)
    database.ensure_indexes()
    yield database.db


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    root = tmp_path / "uploads"
    root.mkdir()
    monkeypatch.setattr(storage, "UPLOAD_ROOT", str(root))
    return root


@pytest.fixture
def client():
    return TestClient(app)


def make_user(name="Sara", email="sara@example.com", is_admin=False):
    user_id = database.create_document("user", {
        "name": name,
        "email": email,
        "password_hash": auth.hash_password("secret123"),
        "is_admin": is_admin,
    })
    token = auth.create_token({"id": user_id, "email": email, "is_admin": is_admin})
    return {"id": user_id, "name": name, "email": email, "token": token}


@pytest.fixture
def user():
    return make_user()


@pytest.fixture
def admin():
    return make_user(name="Admin", email="admin@example.com", is_admin=True)


@pytest.fixture
def user_headers(user):
    return {"Authorization": f"Bearer {user['token']}"}


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {admin['token']}"}


@pytest.fixture
def make_discount():
    def _make(code="SAVE10", kind=None, min_order=0, is_active=True, starts_in_days=-1, ends_in_days=30, **extra):
        now = database.utcnow()
        doc = {
            "code": code,
            "minOrderAmount": min_order,
            "isActive": is_active,
            "startDate": now + timedelta(days=starts_in_days),
            "endDate": now + timedelta(days=ends_in_days),
            **extra,
        }
        if kind is not None:
            doc["kind"] = kind
        return database.create_document("discount", doc)
    return _make


@pytest.fixture
def category(mongo):
    new_id = database.create_document("category", {
        "name": {"en": "Phones", "ar": "هواتف"},
        "subCategories": [{"id": "sub-android", "name": {"en": "Android", "ar": "أندرويد"}}],
    })
    return new_id


@pytest.fixture
def product(category):
    return database.create_document("product", {
        "name": {"en": "Galaxy S", "ar": "جالاكسي"},
        "description": {"en": "A phone", "ar": "هاتف"},
        "basePrice": 100.0,
        "mainImage": "/uploads/products/galaxy.png",
        "category": category,
        "attributes": [],
        "variations": [{
            "id": "var-color",
            "name_en": "Color",
            "name_ar": "اللون",
            "options": [{
                "id": "opt-black",
                "name_en": "Black",
                "name_ar": "أسود",
                "skus": [{"id": "sku-black-128", "name_en": "128GB", "name_ar": "128 جيجا", "price": 120.0, "stock": 5}],
            }],
        }],
        "reviews": [],
        "averageRating": 0,
        "numReviews": 0,
    })


@pytest.fixture
def user_factory():
    return make_user
