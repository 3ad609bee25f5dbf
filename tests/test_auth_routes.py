# =============================================================================
# tests/test_auth_routes.py - Auth Endpoint Tests
# =============================================================================

class TestRegister:
    def test_register_creates_user(self, client, fake_db):
        response = client.post("/api/auth/register", json={
            "email": "new@example.com",
            "password": "secret123",
            "first_name": " Nia ",
            "account_type": "owner"
        })
        assert response.status_code == 201
        assert response.json()["email"] == "new@example.com"

        call = fake_db.auth.sign_up_calls[0]
        assert call["options"]["data"] == {"account_type": "owner", "first_name": "Nia"}
        assert call["options"]["email_redirect_to"] == "https://app.example.com/auth?confirm=true"

    def test_duplicate_email(self, client, owner):
        response = client.post("/api/auth/register", json={
            "email": "owner@example.com",
            "password": "secret123"
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "User already exists"

    def test_invalid_account_type(self, client):
        response = client.post("/api/auth/register", json={
            "email": "x@example.com",
            "password": "secret123",
            "account_type": "contractor"
        })
        assert response.status_code == 422


class TestLogin:
    def test_login_returns_token(self, client, owner):
        response = client.post("/api/auth/login", json={
            "email": "owner@example.com",
            "password": "password123"
        })
        assert response.status_code == 200
        body = response.json()
        assert body["access_token"] == f"token-{owner.id}"
        assert body["token_type"] == "bearer"

    def test_wrong_password(self, client, owner):
        response = client.post("/api/auth/login", json={
            "email": "owner@example.com",
            "password": "nope"
        })
        assert response.status_code == 401


class TestMe:
    def test_epc_user(self, client, project, auth_headers):
        response = client.get("/api/auth/me", headers=auth_headers())
        assert response.status_code == 200
        body = response.json()
        assert body["first_name"] == "Olivia"
        assert body["account_type"] == "epc"
        assert body["can_edit"] is True
        assert body["is_super_admin"] is False
        assert body["has_completed_project_setup"] is True
        assert "piles:import" in body["capabilities"]

    def test_owner_account_is_read_only(self, client, fake_db, auth_headers):
        fake_db.add_user("rep@example.com", "rep-token", account_type="owner")
        body = client.get("/api/auth/me", headers=auth_headers("rep-token")).json()
        assert body["can_edit"] is False
        assert body["has_completed_project_setup"] is False
        assert "piles:create" not in body["capabilities"]

    def test_super_admin(self, client, fake_db, owner, auth_headers):
        fake_db.insert_row("super_admins", {"user_id": owner.id})
        body = client.get("/api/auth/me", headers=auth_headers()).json()
        assert body["is_super_admin"] is True
        assert "admin:access" in body["capabilities"]

    def test_missing_token(self, client):
        assert client.get("/api/auth/me").status_code in (401, 403)

    def test_unknown_token(self, client, auth_headers):
        response = client.get("/api/auth/me", headers=auth_headers("bogus"))
        assert response.status_code == 401


def test_forgot_password_always_succeeds(client, fake_db):
    response = client.post("/api/auth/forgot-password", json={"email": "anyone@example.com"})
    assert response.status_code == 200
    email, options = fake_db.auth.reset_requests[0]
    assert email == "anyone@example.com"
    assert options["redirect_to"] == "https://app.example.com/auth/reset-password"


def test_logout(client, owner, auth_headers):
    response = client.post("/api/auth/logout", headers=auth_headers())
    assert response.status_code == 200
