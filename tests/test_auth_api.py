def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "OK"


def test_signup_returns_identity_and_token(client):
    response = client.post(
        "/api/auth/signup", json={"name": "Ana", "email": "ana@example.com", "password": "secret123"}
    )
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Ana"
    assert body["email"] == "ana@example.com"
    assert body["id"] and body["token"]
    assert "passwordHash" not in body


def test_signup_rejects_duplicates_and_short_passwords(client, user):
    duplicate = client.post(
        "/api/auth/signup", json={"name": "Ana", "email": "ana@example.com", "password": "secret123"}
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["message"] == "User already exists"

    short = client.post("/api/auth/signup", json={"name": "Cy", "email": "cy@example.com", "password": "123"})
    assert short.status_code == 400
    assert "password" in short.json()["message"]

    missing = client.post("/api/auth/signup", json={"email": "cy@example.com", "password": "secret123"})
    assert missing.status_code == 400


def test_login(client, user):
    response = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["id"] == user["id"]

    wrong = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "nope-nope"})
    assert wrong.status_code == 401
    assert wrong.json()["message"] == "Invalid credentials"

    unknown = client.post("/api/auth/login", json={"email": "who@example.com", "password": "secret123"})
    assert unknown.status_code == 401


def test_me_requires_a_valid_token(client, user, auth_headers):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    response = client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"id": user["id"], "name": "Ana", "email": "ana@example.com"}


def test_profile_update_name_and_email(client, auth_headers, other_headers):
    taken = client.put("/api/auth/profile", json={"email": "bo@example.com"}, headers=auth_headers)
    assert taken.status_code == 400
    assert taken.json()["message"] == "Email already in use"

    response = client.put(
        "/api/auth/profile", json={"name": "Ana Maria", "email": "ana.maria@example.com"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Ana Maria"
    assert response.json()["message"] == "Profile updated successfully"

    login = client.post("/api/auth/login", json={"email": "ana.maria@example.com", "password": "secret123"})
    assert login.status_code == 200


def test_profile_password_change(client, auth_headers):
    missing_current = client.put("/api/auth/profile", json={"newPassword": "another1"}, headers=auth_headers)
    assert missing_current.status_code == 400

    wrong_current = client.put(
        "/api/auth/profile", json={"currentPassword": "bad-pass", "newPassword": "another1"}, headers=auth_headers
    )
    assert wrong_current.status_code == 401

    too_short = client.put(
        "/api/auth/profile", json={"currentPassword": "secret123", "newPassword": "abc"}, headers=auth_headers
    )
    assert too_short.status_code == 400

    changed = client.put(
        "/api/auth/profile", json={"currentPassword": "secret123", "newPassword": "another1"}, headers=auth_headers
    )
    assert changed.status_code == 200
    assert client.post("/api/auth/login", json={"email": "ana@example.com", "password": "another1"}).status_code == 200
    assert client.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret123"}).status_code == 401
