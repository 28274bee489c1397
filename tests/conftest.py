import os

import pytest

os.environ.setdefault("LOG_LEVEL", "DEBUG")

from storefront_sync import create_app

from fake_firestore import FakeFirestore
from helpers import WEBHOOK_SECRET

TEST_CONFIG = {
    "TESTING": True,
    "SHOPIFY_WEBHOOK_SECRET": WEBHOOK_SECRET,
    "SHOPIFY_STORE_URL": "lunera-test.myshopify.com",
    "SHOPIFY_ACCESS_TOKEN": "shpat_test",
    "BASE_URL": "https://sync.example.com",
    "DEFAULT_STOREFRONT": "LUNERA",
}


@pytest.fixture()
def db():
    return FakeFirestore()


@pytest.fixture()
def app(db):
    return create_app(dict(TEST_CONFIG), db=db)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def store():
    return {
        "domain": TEST_CONFIG["SHOPIFY_STORE_URL"],
        "token": TEST_CONFIG["SHOPIFY_ACCESS_TOKEN"],
        "secret": WEBHOOK_SECRET,
        "api_version": "2025-01",
        "name": "SHOPIFY",
    }
