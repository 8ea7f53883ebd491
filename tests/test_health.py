"""Health endpoint tests."""


def test_health_returns_ok(client):
    """Health endpoint should return server status and version."""
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["server"] == "ok"
    assert data["redis"] == "ok"
    assert "version" in data
    assert data["connections"] == 0
    assert data["authenticated_users"] == 0


def test_health_is_open(client):
    """No token needed — load balancers probe this."""
    assert client.get("/api/v1/health").status_code == 200


def test_health_degraded_when_bus_down(client, app_bus):
    app_bus.available = False
    data = client.get("/api/v1/health").json()
    assert data["status"] == "degraded"
    assert data["redis"].startswith("error")


def test_health_degraded_when_consumers_stopped(client):
    client.portal.call(client.app.state.propagator.stop)

    data = client.get("/api/v1/health").json()
    assert data["status"] == "degraded"
    assert data["propagator"].startswith("error")
