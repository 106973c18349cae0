import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from jose import jwt
from mongomock_motor import AsyncMongoMockClient

from vehicle_service.config import Settings, get_settings
from vehicle_service.database import ensure_indexes, get_database
from vehicle_service.dependencies import (
    get_directory_client, get_event_sink, get_shopware_client, get_usage_emitter,
)
from vehicle_service.main import create_app
from vehicle_service.observability import EventSink
from vehicle_service.services.directory import DirectoryClient
from vehicle_service.services.shopware import ShopwareClient
from vehicle_service.services.usage_events import UsageEventEmitter
from vehicle_service.services.vehicle_store import VehicleStore

TEST_SECRET = "test-secret"
SHOPWARE_URL = "https://shopware.test"
USERS_URL = "https://users.test"
TENANTS_URL = "https://tenants.test"
SHOPWARE_TENANT = "77"

OWNER_ID = str(ObjectId())
OTHER_USER_ID = str(ObjectId())
TENANT_ID = str(ObjectId())


class FakeUpstream:
    """Routes keyed by (method, url). Anything unregistered answers 503."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Tuple[int, Any]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url: str, status_code: int = 200, body: Any = None) -> None:
        self.routes[(method.upper(), url)] = (status_code, body if body is not None else {})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, body = self.routes.get(
            (request.method, str(request.url)), (503, {"message": "service unavailable"})
        )
        return httpx.Response(status_code, json=body)

    def calls(self, method: str, url_part: str = "") -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and url_part in str(r.url)]

    def json_body(self, request: httpx.Request) -> Dict[str, Any]:
        return json.loads(request.content)


class RecordingQueue:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.jobs: List[Tuple[str, Dict[str, Any]]] = []

    def enqueue(self, job_path, payload):
        if self.fail:
            raise ConnectionError("redis is down")
        self.jobs.append((job_path, payload))


class RecordingSink(EventSink):
    def __init__(self):
        super().__init__()
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, event, level=20, **fields):
        self.events.append((event, fields))
        super().emit(event, level=level, **fields)

    def names(self) -> List[str]:
        return [name for name, _ in self.events]


def make_token(**claims) -> str:
    return jwt.encode(claims, TEST_SECRET, algorithm="HS256")


def auth_headers(**overrides) -> Dict[str, str]:
    claims = {
        "id": OWNER_ID,
        "email": "owner@example.com",
        "userRole": "customer",
        "tenantId": TENANT_ID,
        "tenantType": "Agency",
        "tier": "Pro",
    }
    claims.update(overrides)
    return {"Authorization": f"Bearer {make_token(**claims)}"}


def run(coro):
    return asyncio.run(coro)


def vehicle_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "userId": OWNER_ID,
        "vin": "1HGCM82633A123456",
        "make": "Honda",
        "model": "Civic",
        "year": 2020,
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        JWT_SECRET=TEST_SECRET,
        SHOPWARE_API_URL=SHOPWARE_URL,
        SHOPWARE_TENANT_ID=SHOPWARE_TENANT,
        SHOPWARE_X_API_PARTNER_ID="partner-1",
        SHOPWARE_X_API_SECRET="s3cret",
        USER_BASE_URL=USERS_URL,
        TENANT_SERVICE_URL=TENANTS_URL,
        ENVIRONMENT="test",
    )


@pytest.fixture()
def database():
    db = AsyncMongoMockClient()["vehicle_management_test"]
    run(ensure_indexes(db))
    return db


@pytest.fixture()
def store(database) -> VehicleStore:
    return VehicleStore(database)


@pytest.fixture()
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture()
def directory(settings, upstream) -> DirectoryClient:
    return DirectoryClient(settings, transport=httpx.MockTransport(upstream.handler))


@pytest.fixture()
def shopware(settings, directory, upstream) -> ShopwareClient:
    return ShopwareClient(settings, directory, transport=httpx.MockTransport(upstream.handler))


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture()
def usage(settings, queue, sink) -> UsageEventEmitter:
    return UsageEventEmitter(queue, settings.USAGE_EVENT_JOB, sink)


@pytest.fixture()
def client(settings, database, directory, shopware, usage, sink):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_database] = lambda: database
    app.dependency_overrides[get_directory_client] = lambda: directory
    app.dependency_overrides[get_shopware_client] = lambda: shopware
    app.dependency_overrides[get_usage_emitter] = lambda: usage
    app.dependency_overrides[get_event_sink] = lambda: sink
    # no context manager: the lifespan would dial the real MongoDB and Redis
    return TestClient(app, raise_server_exceptions=False)


def seed_vehicle(store: VehicleStore, **overrides) -> Dict[str, Any]:
    return run(store.create(vehicle_payload(**overrides)))


def stored(store: VehicleStore, vehicle_id) -> Optional[Dict[str, Any]]:
    return run(store.find_by_id(str(vehicle_id)))
