import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import issue_token
from config import Settings
from database import PlantStore
from main import create_app

BUYER = "buyer@example.com"


@pytest.fixture
def settings():
    return Settings(secret_key="test-secret", database_name="plantNet_test")


@pytest.fixture
def store(settings):
    return PlantStore(mongomock.MongoClient(), settings.database_name)


@pytest.fixture
def client(settings, store):
    app = create_app(settings=settings, store=store)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_client(client, settings):
    client.cookies.set("token", issue_token({"email": BUYER}, settings))
    return client


@pytest.fixture
def plant(store):
    doc = {"name": "Monstera", "category": "Indoor", "image": "monstera.jpg", "price": 25.0, "quantity": 10}
    doc["_id"] = store.insert_plant(dict(doc)).inserted_id
    return doc
