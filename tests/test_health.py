from vehicle_service.database import get_database


class _Database:
    def __init__(self, healthy: bool):
        self.healthy = healthy

    async def command(self, name):
        from pymongo.errors import ServerSelectionTimeoutError

        if not self.healthy:
            raise ServerSelectionTimeoutError("no servers")
        return {"ok": 1}


def test_root(client) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "Vehicle Management API is running!"}


def test_health_reports_database_state(client) -> None:
    client.app.dependency_overrides[get_database] = lambda: _Database(True)
    healthy = client.get("/health")
    client.app.dependency_overrides[get_database] = lambda: _Database(False)
    unhealthy = client.get("/health")

    assert healthy.status_code == 200
    assert healthy.json()["status"] == "Healthy"
    assert unhealthy.status_code == 503
    assert unhealthy.json()["database"] == "offline"
