import mongomock
import pytest
from fastapi.testclient import TestClient

from main import create_app


@pytest.fixture
def collection():
    return mongomock.MongoClient()["restaurants-app"]["restaurants"]


@pytest.fixture
def client(collection):
    return TestClient(create_app(collection))
