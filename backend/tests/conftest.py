"""
Shared fixtures: an isolated in-memory database per test, the store and
coordinator built on it, a FastAPI test client, and sample documents for
each supported import format.
"""
import os

# Keep the module-level engine off disk and quiet before postgirl is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import postgirl.models  # noqa: E402,F401
from postgirl.database import Base, get_db  # noqa: E402
from postgirl.main import app  # noqa: E402
from postgirl.services.collection_store import SqlCollectionStore  # noqa: E402
from postgirl.services.import_export import ConversionCoordinator  # noqa: E402

POSTMAN_SCHEMA = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"
WORKSPACE_ID = "ws-test"


# ==================== Database ====================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return SqlCollectionStore(db)


@pytest.fixture
def coordinator(store):
    return ConversionCoordinator(store)


@pytest.fixture
def client(engine):
    """Test client whose requests share the per-test database."""
    testing_session = sessionmaker(bind=engine, autoflush=False)

    def override_get_db():
        session = testing_session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ==================== Sample documents ====================

@pytest.fixture
def postman_collection():
    """Postman v2.1 collection with one folder and three requests."""
    return {
        "info": {
            "_postman_id": "8d1f3c52-0000-4000-8000-000000000001",
            "name": "Users API",
            "description": "User management endpoints",
            "schema": POSTMAN_SCHEMA,
        },
        "item": [
            {
                "name": "List users",
                "request": {
                    "method": "GET",
                    "url": {"raw": "https://api.example.com/users?page=1"},
                    "header": [
                        {"key": "Accept", "value": "application/json"},
                        {"key": "X-Debug", "value": "1", "disabled": True},
                    ],
                },
            },
            {
                "name": "Admin",
                "item": [
                    {
                        "name": "Create user",
                        "request": {
                            "method": "post",
                            "url": "https://api.example.com/users",
                            "header": [{"key": "Content-Type", "value": "application/json"}],
                            "body": {"mode": "raw", "raw": '{"name": "Ada"}'},
                        },
                    },
                    {
                        "name": "Delete user",
                        "request": {
                            "method": "DELETE",
                            "url": {"raw": "https://api.example.com/users/1"},
                        },
                    },
                ],
            },
        ],
    }


@pytest.fixture
def insomnia_export():
    """Insomnia v4 export with one workspace, one folder and two requests."""
    return {
        "_type": "export",
        "__export_format": 4,
        "__export_source": "insomnia.desktop.app:v2023.5.8",
        "resources": [
            {"_id": "wrk_1", "_type": "workspace", "name": "Billing", "description": "Billing service"},
            {"_id": "fld_1", "_type": "request_group", "parentId": "wrk_1", "name": "Invoices"},
            {
                "_id": "req_1",
                "_type": "request",
                "parentId": "fld_1",
                "name": "List invoices",
                "method": "GET",
                "url": "https://billing.example.com/invoices",
                "headers": [{"name": "Accept", "value": "application/json"}],
                "parameters": [{"name": "status", "value": "open"}],
                "body": {},
            },
            {
                "_id": "req_2",
                "_type": "request",
                "parentId": "fld_1",
                "name": "Create invoice",
                "method": "POST",
                "url": "https://billing.example.com/invoices",
                "headers": [{"name": "Content-Type", "value": "application/json"}],
                "body": {"mimeType": "application/json", "text": '{"amount": 10}'},
            },
        ],
    }


@pytest.fixture
def openapi_document():
    """OpenAPI 3.0 document with two paths and three operations."""
    return {
        "openapi": "3.0.3",
        "info": {"title": "Pet Store", "version": "1.0.0", "description": "Pets"},
        "servers": [{"url": "https://petstore.example.com/v1/"}],
        "paths": {
            "/pets": {
                "get": {
                    "summary": "List pets",
                    "parameters": [
                        {"name": "limit", "in": "query", "schema": {"type": "integer", "default": 20}},
                        {"name": "X-Trace", "in": "header", "schema": {"type": "string", "default": "on"}},
                        {"name": "tag", "in": "query", "schema": {"type": "string"}},
                    ],
                },
                "post": {
                    "operationId": "createPet",
                    "requestBody": {
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/Pet"},
                            },
                        },
                    },
                },
            },
            "/pets/{petId}": {
                "get": {},
            },
        },
        "components": {
            "schemas": {
                "Pet": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "age": {"type": "integer"},
                        "kind": {"type": "string", "enum": ["dog", "cat"]},
                        "tags": {"type": "array", "items": {"type": "string"}},
                    },
                },
            },
        },
    }
