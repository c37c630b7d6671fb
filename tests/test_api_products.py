"""HTTP-level tests for the /products routes."""

import logging
import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite://")

from laptop_inventory import create_app
from laptop_inventory.core.config import AppSettings
from laptop_inventory.db.session import get_db
from laptop_inventory.routers import api_products


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    settings = AppSettings(
        ALLOWED_ORIGINS="http://localhost:5500,http://127.0.0.1:5500",
        METRICS_ENABLED=False,
    )
    app = create_app(settings, engine=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client


def unit(serial, **overrides):
    data = {
        "serial": serial,
        "brand": "HP",
        "model": "X",
        "processor": "i5",
        "ram": "8GB",
        "storage": "256GB",
    }
    data.update(overrides)
    return data


def test_create_returns_201_with_camel_case_body(client):
    resp = client.post("/products", json=unit("S1", purchaseDate="2024-02-10"))

    assert resp.status_code == 201
    body = resp.json()
    assert body["serial"] == "S1"
    assert body["groupingKey"] == "hp-x-i5-8gb-256gb"
    assert body["imageUrl"] is None
    assert body["status"] == "Available"
    assert body["purchaseDate"] == "2024-02-10"
    assert isinstance(body["id"], int)
    assert body["createdAt"] and body["updatedAt"]


def test_create_missing_fields_is_400(client):
    resp = client.post("/products", json={"serial": "S1", "brand": "HP"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "validation_error"
    assert body["message"].startswith("Missing required fields")
    assert body["details"]["missing"] == ["model", "processor", "ram"]


def test_create_duplicate_serial_is_400(client):
    assert client.post("/products", json=unit("S1")).status_code == 201

    resp = client.post("/products", json=unit("S1"))

    assert resp.status_code == 400
    assert resp.json()["code"] == "conflict"
    assert len(client.get("/products").json()) == 1


def test_create_bad_status_is_400(client):
    resp = client.post("/products", json=unit("S1", status="Lost"))

    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"


def test_scenario_image_propagation(client):
    a = client.post("/products", json=unit("S1")).json()
    b = client.post("/products", json=unit("S2", imageUrl="http://img/1")).json()
    assert a["groupingKey"] == "hp-x-i5-8gb-256gb"
    assert b["imageUrl"] is None

    resp = client.put(f"/products/{a['id']}", json={"imageUrl": "http://img/2"})

    assert resp.status_code == 200
    body = resp.json()
    assert isinstance(body, list)
    assert {item["serial"] for item in body} == {"S1", "S2"}
    assert all(item["imageUrl"] == "http://img/2" for item in body)


def test_update_fields_returns_single_unit(client):
    a = client.post("/products", json=unit("S1")).json()

    resp = client.put(f"/products/{a['id']}", json={"status": "Sold", "ram": "16GB"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "Sold"
    assert body["ram"] == "16GB"
    assert body["groupingKey"] == "hp-x-i5-8gb-256gb"
    assert body["storage"] == "256GB"


def test_update_unknown_id_is_404(client):
    resp = client.put("/products/999", json={"ram": "16GB"})

    assert resp.status_code == 404
    assert resp.json()["message"] == "Cannot find laptop with ID 999"


def test_update_invalid_id_is_400(client):
    resp = client.put("/products/abc", json={"ram": "16GB"})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid laptop ID format"


def test_update_serial_conflict_is_400(client):
    client.post("/products", json=unit("S1"))
    b = client.post("/products", json=unit("S2")).json()

    resp = client.put(f"/products/{b['id']}", json={"serial": "S1"})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Another laptop with this serial number already exists"


def test_unique_and_brand_listing(client):
    client.post("/products", json=unit("S1"))
    client.post("/products", json=unit("S2"))
    client.post("/products", json=unit("S3", brand="Dell", model="Latitude"))
    client.post("/products", json=unit("S4", brand="Dell", model="Latitude", ram="32GB"))

    unique = client.get("/products/unique")
    assert unique.status_code == 200
    assert [item["serial"] for item in unique.json()] == ["S1", "S3", "S4"]

    dell = client.get("/products/brand/Dell")
    assert [item["serial"] for item in dell.json()] == ["S3", "S4"]
    assert client.get("/products/brand/dell").json() == []


def test_delete_returns_message_and_snapshot(client):
    a = client.post("/products", json=unit("S1")).json()

    resp = client.delete(f"/products/{a['id']}")

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Laptop deleted successfully"
    assert body["deletedProduct"]["serial"] == "S1"
    assert client.get("/products").json() == []


def test_delete_unknown_id_is_404(client):
    client.post("/products", json=unit("S1"))

    resp = client.delete("/products/42")

    assert resp.status_code == 404
    assert len(client.get("/products").json()) == 1


def test_store_failure_is_500(client, monkeypatch):
    def broken(db):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(api_products, "list_laptops", broken)

    resp = client.get("/products")

    assert resp.status_code == 500
    body = resp.json()
    assert body["code"] == "store_error"
    assert body["message"] == "Server error"


def test_cors_allows_listed_origin_only(client):
    allowed = client.get("/products", headers={"Origin": "http://localhost:5500"})
    assert allowed.headers["access-control-allow-origin"] == "http://localhost:5500"

    blocked = client.get("/products", headers={"Origin": "http://evil.example"})
    assert "access-control-allow-origin" not in blocked.headers

    no_origin = client.get("/products")
    assert no_origin.status_code == 200


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "abc123"})

    assert resp.json() == {"ok": True}
    assert resp.headers["X-Request-ID"] == "abc123"
    assert resp.headers["X-Response-Time"].endswith("ms")


@pytest.mark.parametrize("bad_id", ["99999999999999999999999", "²"])
def test_malformed_ids_are_400_on_put_and_delete(client, bad_id):
    client.post("/products", json=unit("S1"))

    put = client.put(f"/products/{bad_id}", json={"ram": "16GB"})
    delete = client.delete(f"/products/{bad_id}")

    for resp in (put, delete):
        assert resp.status_code == 400
        assert resp.json() == {"code": "validation_error", "message": "Invalid laptop ID format"}
    assert len(client.get("/products").json()) == 1


def test_request_log_names_matched_route(client, caplog):
    created = client.post("/products", json=unit("S1")).json()

    with caplog.at_level(logging.INFO, logger="laptop_inventory.request"):
        client.put(f"/products/{created['id']}", json={"status": "Sold"})

    record = next(r for r in caplog.records if r.getMessage() == "request.completed")
    assert record.extra_data["route"] == "/products/{laptop_id}"
    assert record.extra_data["laptop_id"] == str(created["id"])
    assert record.extra_data["status"] == 200
