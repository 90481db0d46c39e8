from fastapi.testclient import TestClient

from tests.helpers.common import TEST_PASSWORD


def test_signup_redirects_to_login(client: TestClient):
    response = client.post("/auth/signup", json={"email": "fresh@test.com", "password": "secret1", "name": "Fresh"})

    assert response.status_code == 201
    body = response.json()
    assert body["data"]["redirect_to"] == "/login"
    assert body["data"]["user"]["email"] == "fresh@test.com"
    assert body["data"]["user"]["role"] == "member"
    assert body["notice"]["title"] == "Account created"


def test_signup_duplicate_email_conflicts(client: TestClient, account_factory):
    account = account_factory()

    response = client.post("/auth/signup", json={"email": account.email, "password": "secret1", "name": "Again"})

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


def test_signup_validation_errors(client: TestClient):
    response = client.post("/auth/signup", json={"email": "not-an-email", "password": "123", "name": ""})

    assert response.status_code == 422
    body = response.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    fields = {error["loc"][-1] for error in body["error"]["details"]["validation_errors"]}
    assert {"email", "password", "name"} <= fields


def test_login_and_session(client: TestClient, account_factory):
    account = account_factory(name="Session User")

    response = client.post("/auth/login", json={"email": account.email, "password": TEST_PASSWORD})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["redirect_to"] == "/dashboard"

    headers = {"Authorization": f"Bearer {data['token']['access_token']}"}
    session = client.get("/auth/session", headers=headers).json()["data"]
    assert session["current_user"]["name"] == "Session User"
    assert session["is_loading"] is False
    assert session["is_admin"] is False


def test_login_with_wrong_password(client: TestClient, account_factory):
    account = account_factory()

    response = client.post("/auth/login", json={"email": account.email, "password": "nope-nope"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_anonymous_session(client: TestClient):
    response = client.get("/auth/session")

    assert response.status_code == 200
    assert response.json()["data"] == {"current_user": None, "is_loading": False, "is_admin": False}


def test_logout_revokes_token(client: TestClient, user_headers):
    response = client.post("/auth/logout", headers=user_headers)

    assert response.status_code == 200
    assert response.json()["data"]["redirect_to"] == "/"
    assert client.get("/auth/session", headers=user_headers).json()["data"]["current_user"] is None


def test_refresh_issues_new_token(client: TestClient, user_headers):
    response = client.post("/auth/refresh", headers=user_headers)

    assert response.status_code == 200
    new_token = response.json()["data"]["token"]["access_token"]
    session = client.get("/auth/session", headers={"Authorization": f"Bearer {new_token}"}).json()["data"]
    assert session["current_user"] is not None


def test_refresh_without_token(client: TestClient):
    assert client.post("/auth/refresh").status_code == 401


def test_update_profile(client: TestClient, user_headers):
    response = client.put("/auth/profile", json={"name": "Renamed", "avatar": "https://img.test/a.png"}, headers=user_headers)

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Renamed"
    session = client.get("/auth/session", headers=user_headers).json()["data"]
    assert session["current_user"]["avatar"] == "https://img.test/a.png"


def test_update_profile_needs_a_field(client: TestClient, user_headers):
    response = client.put("/auth/profile", json={}, headers=user_headers)

    assert response.status_code == 422


def test_update_profile_requires_login(client: TestClient):
    response = client.put("/auth/profile", json={"name": "Anyone"})

    assert response.status_code == 401
    assert response.json()["redirect_to"] == "/login?redirect=/auth/profile"


def test_admin_sets_role(client: TestClient, admin_headers, account_factory, login):
    member = account_factory()

    response = client.put(f"/admin/users/{member.id}/role", json={"role": "admin"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["role"] == "admin"
    member_headers = {"Authorization": f"Bearer {login(member.email)}"}
    assert client.get("/auth/session", headers=member_headers).json()["data"]["is_admin"] is True


def test_member_cannot_set_role(client: TestClient, user_headers, account_factory):
    other = account_factory()

    response = client.put(f"/admin/users/{other.id}/role", json={"role": "admin"}, headers=user_headers)

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"
