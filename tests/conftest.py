"""Shared fixtures: an in-memory Mongo database and tokens signed with a test key."""

import mongomock
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from auth import TokenVerifier, get_verifier
from database import get_db
from main import app

SECRET = "test-secret"


def make_token(**claims) -> str:
    return jwt.encode(claims, SECRET, algorithm="HS256")


def bearer(**claims) -> dict:
    return {"Authorization": f"Bearer {make_token(**claims)}"}


@pytest.fixture
def db():
    return mongomock.MongoClient().carrental


@pytest.fixture
def verifier():
    return TokenVerifier({"secret": SECRET})


@pytest.fixture
def client(db, verifier):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_verifier] = lambda: verifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def car_admin():
    return bearer(email="ops@autoluxe.com")


@pytest.fixture
def category_admin():
    return bearer(email="ops@esrent.ae")


@pytest.fixture
def sample_car():
    return {
        "name": "X5 xDrive40i",
        "brand": "BMW",
        "transmission": "Automatic",
        "fuelType": "Petrol",
        "type": "SUV",
        "seats": 5,
        "year": 2023,
        "dailyPrice": 450,
        "tags": ["luxury", "family"],
        "description": "Spacious premium SUV",
    }
