def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True

    r = client.get("/healthz")
    assert r.status_code == 200


def test_api_requires_login(client):
    for path in ("/api/current-user", "/api/work-orders", "/api/batch-records", "/api/dashboard/stats"):
        r = client.get(path)
        assert r.status_code == 401, path
        assert r.json["error"] == "Authentication required"

    # Writes without a session are 401 too, even with no CSRF token
    r = client.post("/api/work-orders", json={})
    assert r.status_code == 401
    assert r.json["error"] == "Authentication required"
    r = client.patch("/api/batch-records/1", json={"isComplete": True})
    assert r.status_code == 401
    r = client.post("/api/auth/logout")
    assert r.status_code == 401


def test_login_returns_user_without_password(client):
    r = client.post("/api/auth/login", json={"username": "John.Cooper", "password": "pw"})
    assert r.status_code == 200
    user = r.json["user"]
    assert user["username"] == "john.cooper"
    assert user["fullName"] == "John Cooper"
    assert user["role"] == "operator"
    assert "passwordHash" not in user and "password_hash" not in user
    assert r.json["csrfToken"]


def test_login_bad_credentials(client):
    r = client.post("/api/auth/login", json={"username": "john.cooper", "password": "nope"})
    assert r.status_code == 401
    assert r.json["error"] == "Invalid credentials"

    r = client.post("/api/auth/login", json={"username": "nobody", "password": "pw"})
    assert r.status_code == 401


def test_login_rate_limited(client):
    for _ in range(5):
        r = client.post("/api/auth/login", json={"username": "john.cooper", "password": "nope"})
        assert r.status_code == 401
    r = client.post("/api/auth/login", json={"username": "john.cooper", "password": "pw"})
    assert r.status_code == 429


def test_current_user(client, login):
    login("sara.williams")
    r = client.get("/api/current-user")
    assert r.status_code == 200
    assert r.json["username"] == "sara.williams"
    assert r.json["role"] == "quality_controller"
    assert r.json["csrfToken"] == client.environ_base["HTTP_X_CSRF_TOKEN"]


def test_mutation_without_csrf_token_is_forbidden(client, login):
    login()
    client.environ_base.pop("HTTP_X_CSRF_TOKEN")
    r = client.post(
        "/api/work-orders",
        json={"productId": 1, "batchSize": 10, "assignedOperatorId": 2, "startDate": "2024-01-01"},
    )
    assert r.status_code == 403

    r = client.post(
        "/api/work-orders",
        json={"productId": 1, "batchSize": 10, "assignedOperatorId": 2, "startDate": "2024-01-01"},
        headers={"X-CSRF-Token": "wrong"},
    )
    assert r.status_code == 403

    r = client.get("/api/work-orders")
    assert r.json == []


def test_logout_clears_session(client, login):
    login()
    r = client.post("/api/auth/logout")
    assert r.status_code == 200
    r = client.get("/api/current-user")
    assert r.status_code == 401


def test_users_and_products(client, login):
    login()
    r = client.get("/api/users")
    assert r.status_code == 200
    assert [u["username"] for u in r.json] == ["admin", "john.cooper", "maria.johnson", "sara.williams"]

    r = client.get("/api/users/4")
    assert r.json["fullName"] == "Sara Williams"

    r = client.get("/api/users/999")
    assert r.status_code == 404
    assert r.json["error"] == "User not found"

    r = client.get("/api/products")
    assert [p["name"] for p in r.json][:2] == ["Hydrating Moisturizer", "Vitamin C Serum"]
    assert len(r.json) == 5


def test_unknown_api_route_is_json_404(client, login):
    login()
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.json["error"] == "Not found"
