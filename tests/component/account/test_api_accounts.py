"""
Component Tests for Account Service API
"""

from tests.fixtures import ADMIN_ID, CLIENT_ID, RECEIVER_ID, auth_headers


class TestSession:

    def test_me(self, client):
        response = client.get("/api/v1/accounts/me", headers=auth_headers(CLIENT_ID))

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == CLIENT_ID
        assert body["role"] == "client"
        assert body["is_fallback"] is False

    def test_me_creates_profile(self, client, datastore):
        headers = {"X-User-Id": "user-0099", "X-User-Email": "carol@example.com", "X-User-Name": "Carol"}

        response = client.get("/api/v1/accounts/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["full_name"] == "Carol"
        assert len(datastore.rows("profiles", {"id": "user-0099"})) == 1

    def test_me_as_impersonated_user(self, client):
        response = client.get("/api/v1/accounts/me", headers=auth_headers(ADMIN_ID, impersonate=RECEIVER_ID))

        assert response.status_code == 200
        assert response.json()["id"] == RECEIVER_ID

    def test_me_anonymous(self, client):
        assert client.get("/api/v1/accounts/me").status_code == 401


class TestAdminEndpoints:

    def test_list_users(self, client):
        response = client.get("/api/v1/accounts?limit=3", headers=auth_headers(ADMIN_ID))

        assert response.status_code == 200
        assert response.json()["count"] == 3

    def test_list_users_requires_admin(self, client):
        assert client.get("/api/v1/accounts", headers=auth_headers(CLIENT_ID)).status_code == 403

    def test_promote_user(self, client):
        response = client.put(
            f"/api/v1/accounts/{RECEIVER_ID}/role", json={"role": "admin"}, headers=auth_headers(ADMIN_ID)
        )

        assert response.status_code == 200
        assert response.json()["role"] == "admin"

    def test_promote_unknown_user(self, client):
        response = client.put(
            "/api/v1/accounts/nobody/role", json={"role": "admin"}, headers=auth_headers(ADMIN_ID)
        )
        assert response.status_code == 404

    def test_edit_profile(self, client, datastore):
        response = client.patch(
            f"/api/v1/accounts/{RECEIVER_ID}",
            json={"full_name": "Ben R.", "address": "4 Canal Street, Amsterdam"},
            headers=auth_headers(ADMIN_ID),
        )

        assert response.status_code == 200
        assert response.json()["full_name"] == "Ben R."
        assert datastore.rows("profiles", {"id": RECEIVER_ID})[0]["address"] == "4 Canal Street, Amsterdam"

    def test_edit_profile_requires_admin(self, client):
        response = client.patch(
            f"/api/v1/accounts/{CLIENT_ID}", json={"full_name": "Me"}, headers=auth_headers(CLIENT_ID)
        )
        assert response.status_code == 403

    def test_edit_profile_errors(self, client):
        headers = auth_headers(ADMIN_ID)
        assert client.patch("/api/v1/accounts/nobody", json={"phone": "1"}, headers=headers).status_code == 404
        assert client.patch(
            f"/api/v1/accounts/{CLIENT_ID}", json={"email": "b@y.com"}, headers=headers
        ).status_code == 422
        assert client.patch(
            f"/api/v1/accounts/{CLIENT_ID}", json={"email": "not-an-email"}, headers=headers
        ).status_code == 422

    def test_invite(self, client, datastore):
        response = client.post(
            "/api/v1/accounts/invites",
            json={"email": "carol@example.com", "role": "admin"},
            headers=auth_headers(ADMIN_ID),
        )

        assert response.status_code == 200
        assert response.json()["invited_by"] == ADMIN_ID
        assert datastore.rows("user_invites")[0]["role"] == "admin"

    def test_invite_invalid_email(self, client):
        response = client.post(
            "/api/v1/accounts/invites", json={"email": "carol"}, headers=auth_headers(ADMIN_ID)
        )
        assert response.status_code == 422

    def test_invite_store_failure(self, client, datastore):
        datastore.fail_on("upsert", "user_invites")

        response = client.post(
            "/api/v1/accounts/invites", json={"email": "carol@example.com"}, headers=auth_headers(ADMIN_ID)
        )
        assert response.status_code == 502
