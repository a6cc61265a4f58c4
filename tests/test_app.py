from conftest import auth_headers


def test_root_has_security_headers(client):
    response = client.get("/")
    assert response.json() == {"message": "ServiceHub API is running"}
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store, no-cache, must-revalidate"


def test_health_is_excluded_from_headers(client):
    response = client.get("/health")
    assert response.json() == {"status": "healthy"}
    assert "X-Frame-Options" not in response.headers


def test_validation_errors_use_detail(client, customer):
    response = client.post("/api/bookings", headers=auth_headers(customer), json={})
    assert response.status_code == 422
    assert isinstance(response.json()["detail"], list)


def test_http_errors_use_detail(client):
    response = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "whatever"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid email or password"}
