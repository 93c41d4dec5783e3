def test_root_and_health(client):
    assert client.get("/").json() == {"success": True, "message": "Dental Booking API is running"}

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"


def test_security_headers_on_api_responses(client):
    response = client.get("/health")

    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store"
    assert "default-src 'none'" in response.headers["Content-Security-Policy"]
    assert response.headers["Strict-Transport-Security"].startswith("max-age=")


def test_no_hsts_in_development(make_client):
    response = make_client(environment="development").get("/health")

    assert "Strict-Transport-Security" not in response.headers


def test_security_headers_can_be_disabled(make_client):
    response = make_client(security_headers_enabled=False).get("/health")

    assert "X-Frame-Options" not in response.headers


def test_errors_carry_security_headers(client):
    response = client.get("/api/appointments")

    assert response.status_code == 401
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/nowhere")

    assert response.status_code == 404
    assert response.json()["success"] is False
    assert response.json()["error"] == "NOT_FOUND"


def test_cors_allows_configured_origin(client):
    response = client.options(
        "/api/appointments",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_cors_allows_preview_deployments(client):
    response = client.get("/health", headers={"Origin": "https://dental-preview-abc.vercel.app"})

    assert response.headers["access-control-allow-origin"] == "https://dental-preview-abc.vercel.app"
