"""
Fixtures for the HTTP layer: a fresh application and container per test.
"""

from typing import Any, Dict, Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from storefront.api.app import create_app
from storefront.api.dependencies import DependencyContainer, get_container
from storefront.config import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        bcrypt_rounds=4,
        order_sweep_interval_seconds=0,
        retry_base_delay_seconds=0.001,
        retry_max_delay_seconds=0.01,
        admin_username="admin",
        admin_password="admin",
    )


@pytest.fixture
def container(settings: Settings) -> DependencyContainer:
    return DependencyContainer(settings)


@pytest.fixture
def app(settings: Settings, container: DependencyContainer) -> FastAPI:
    app = create_app(settings)
    app.dependency_overrides[get_container] = lambda: container
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Anonymous client; the lifespan creates the bootstrap admin."""
    with TestClient(app) as test_client:
        yield test_client


def login(client: TestClient, username: str, password: str) -> None:
    response = client.post(
        "/api/auth/login", json={"username": username, "password": password}
    )
    assert response.status_code == 200, response.text


@pytest.fixture
def admin_client(client: TestClient) -> TestClient:
    login(client, "admin", "admin")
    return client


def create_product(
    client: TestClient, name: str = "Widget", price: Any = 100, stock: int = 10
) -> Dict[str, Any]:
    response = client.post(
        "/api/products", json={"name": name, "price": price, "stock": stock}
    )
    assert response.status_code == 201, response.text
    return response.json()


def register_client(
    client: TestClient,
    email: str = "client@example.com",
    tier: str = "BASIC",
    password: str = "pw",
) -> Dict[str, Any]:
    response = client.post(
        "/api/clients",
        json={
            "fullName": "Test Client",
            "email": email,
            "password": password,
            "tier": tier,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def place_order(
    client: TestClient, client_id: int, product_id: int, quantity: int = 1
) -> Dict[str, Any]:
    response = client.post(
        "/api/orders",
        json={
            "clientId": client_id,
            "items": [{"productId": product_id, "quantity": quantity}],
        },
    )
    assert response.status_code == 201, response.text
    return response.json()
