"""
Tests for the user endpoints.
"""

from datetime import datetime, timedelta

from sqlalchemy import func, select

from rest_api.models import Address, User


def user_payload(**overrides):
    payload = {
        "name": "Ana",
        "email": "ana@example.com",
        "password": "secret123",
        "password_confirmation": "secret123",
    }
    payload.update(overrides)
    return payload


ADDRESS = {
    "name": "Home",
    "street": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
    "country": "US",
}


class TestListUsers:

    def test_list_is_sorted_by_name(self, client, make_user):
        make_user(name="Zoe")
        make_user(name="Ana")

        response = client.get("/api/users")
        assert response.status_code == 200
        assert [u["name"] for u in response.json()["data"]] == ["Ana", "Zoe"]

    def test_password_is_never_serialized(self, client, make_user):
        make_user()

        user = client.get("/api/users").json()["data"][0]
        assert "password" not in user
        assert "roles" not in user

    def test_filters_relations_counts_and_sort(self, client, make_user, seed_roles):
        make_user(name="Ana", roles=seed_roles[:1])
        make_user(name="Bob", roles=seed_roles)
        make_user(name="Cid", email="cid@example.com")

        response = client.get(
            "/api/users",
            params={"with": "roles", "withCount": "roles", "sort": "-roles_count"},
        )
        data = response.json()["data"]
        assert [u["name"] for u in data] == ["Bob", "Ana", "Cid"]
        assert [u["roles_count"] for u in data] == [3, 1, 0]
        assert "users" not in data[0]["roles"][0]

        response = client.get("/api/users", params={"where[email]": "cid@example.com"})
        assert [u["name"] for u in response.json()["data"]] == ["Cid"]

    def test_unknown_where_field_is_rejected(self, client):
        response = client.get("/api/users", params={"where[password]": "x"})
        assert response.status_code == 422
        body = response.json()
        assert body["message"] == "The given data was invalid."
        assert body["errors"]["where"] == [
            "Invalid filtering field(s) requested for where. "
            "The following were disallowed: password"
        ]

    def test_unknown_relation_is_rejected(self, client):
        response = client.get("/api/users", params={"with": "roles,tokens"})
        assert response.status_code == 422
        assert response.json()["errors"]["with"] == [
            "Invalid relation(s) requested for with: tokens"
        ]

    def test_unknown_sort_field_is_rejected(self, client):
        response = client.get("/api/users", params={"sort": "nonexistent_field"})
        assert response.status_code == 422
        assert "sort" in response.json()["errors"]


class TestShowUser:

    def test_show_with_relations(self, client, make_user, make_address, seed_roles):
        user = make_user(roles=seed_roles[:2])
        make_address(user)

        response = client.get(
            f"/api/users/{user.id}", params={"with": "roles,addresses", "withCount": "addresses"}
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["roles"]) == 2
        assert len(data["addresses"]) == 1
        assert data["addresses_count"] == 1

    def test_timestamps_are_utc(self, client, make_user):
        user = make_user()

        data = client.get(f"/api/users/{user.id}").json()["data"]
        for key in ("created_at", "updated_at"):
            value = datetime.fromisoformat(data[key].replace("Z", "+00:00"))
            assert value.utcoffset() == timedelta(0)

    def test_missing_user(self, client):
        response = client.get("/api/users/999")
        assert response.status_code == 404
        assert response.json() == {"message": "Resource not found."}


class TestCreateUser:

    def test_create_with_roles(self, client, db_session, seed_roles):
        response = client.post(
            "/api/users",
            json=user_payload(role_ids=[seed_roles[0].id], addresses=[ADDRESS]),
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["email"] == "ana@example.com"
        assert [r["name"] for r in data["roles"]] == ["Admin"]
        assert "addresses" not in data
        assert "password" not in data
        assert db_session.scalar(select(func.count()).select_from(Address)) == 1

    def test_create_and_load_requested_relations(self, client):
        response = client.post(
            "/api/users",
            params={"with": "addresses", "withCount": "roles"},
            json=user_payload(addresses=[ADDRESS, {**ADDRESS, "name": "Office"}]),
        )
        data = response.json()["data"]
        assert sorted(a["name"] for a in data["addresses"]) == ["Home", "Office"]
        assert data["roles_count"] == 0

    def test_password_is_hashed(self, client, db_session):
        client.post("/api/users", json=user_payload())

        user = db_session.scalar(select(User))
        assert user.password.startswith("$2")

    def test_password_confirmation_must_match(self, client):
        response = client.post(
            "/api/users", json=user_payload(password_confirmation="different")
        )
        assert response.status_code == 422
        assert "password_confirmation" in response.json()["errors"]

    def test_invalid_email(self, client):
        response = client.post("/api/users", json=user_payload(email="not-an-email"))
        assert response.status_code == 422
        assert "email" in response.json()["errors"]

    def test_duplicate_email_is_conflict(self, client, make_user):
        make_user(email="ana@example.com")

        response = client.post("/api/users", json=user_payload(name="Other"))
        assert response.status_code == 409
        assert response.json()["message"] == "Error creating model User"

    def test_unknown_role_rolls_back(self, client, db_session):
        response = client.post("/api/users", json=user_payload(role_ids=[999]))

        assert response.status_code == 409
        assert response.json()["message"] == "Error updating model User"
        assert db_session.scalar(select(func.count()).select_from(User)) == 0

    def test_inline_address_fields_are_validated(self, client):
        response = client.post(
            "/api/users",
            json=user_payload(addresses=[{**ADDRESS, "postal_code": "x" * 21}]),
        )
        assert response.status_code == 422
        assert "addresses.0.postal_code" in response.json()["errors"]


class TestUpdateUser:

    def test_update_fields(self, client, make_user):
        user = make_user(name="Ana")

        response = client.put(f"/api/users/{user.id}", json={"name": "Ana Maria"})
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Ana Maria"

    def test_unchanged_is_bad_request(self, client, make_user):
        user = make_user(name="Ana")

        response = client.put(f"/api/users/{user.id}", json={"name": "Ana"})
        assert response.status_code == 400
        assert response.json()["message"] == (
            f"Model User was not modified. Record ID: {user.id}. Attempted fields: name."
        )

    def test_role_change_alone_is_ok(self, client, make_user, seed_roles):
        user = make_user(name="Ana", roles=seed_roles[:1])

        response = client.put(
            f"/api/users/{user.id}", json={"name": "Ana", "role_ids": [seed_roles[2].id]}
        )
        assert response.status_code == 200
        assert [r["id"] for r in response.json()["data"]["roles"]] == [seed_roles[2].id]

    def test_empty_body(self, client, make_user):
        user = make_user()

        response = client.put(f"/api/users/{user.id}", json={"unknown": "x"})
        assert response.status_code == 422
        assert response.json()["errors"] == {
            "update": ["No valid fields were submitted for update."]
        }

    def test_new_password_needs_confirmation(self, client, make_user):
        user = make_user()

        response = client.put(f"/api/users/{user.id}", json={"password": "another123"})
        assert response.status_code == 422
        assert "password_confirmation" in response.json()["errors"]

    def test_missing_user(self, client):
        response = client.put("/api/users/999", json={"name": "x"})
        assert response.status_code == 404

    def test_duplicate_name_is_conflict(self, client, make_user):
        make_user(name="Ana")
        bob = make_user(name="Bob")

        response = client.put(f"/api/users/{bob.id}", json={"name": "Ana"})
        assert response.status_code == 409
        assert response.json()["message"] == "Error updating model User"


class TestDeleteUser:

    def test_delete(self, client, make_user, seed_roles):
        user = make_user(roles=seed_roles)

        response = client.delete(f"/api/users/{user.id}")
        assert response.status_code == 200
        assert response.json() == {"data": []}
        assert client.get(f"/api/users/{user.id}").status_code == 404

    def test_delete_blocked_by_addresses(self, client, make_user, make_address):
        user = make_user()
        make_address(user)

        response = client.delete(f"/api/users/{user.id}")
        assert response.status_code == 409
        assert response.json() == {
            "message": "This record cannot be deleted because it has related data."
        }
        assert client.get(f"/api/users/{user.id}").status_code == 200

    def test_missing_user(self, client):
        assert client.delete("/api/users/999").status_code == 404

    def test_bulk_delete(self, client, make_user):
        first, second = make_user(), make_user()
        kept = make_user()

        response = client.request(
            "DELETE", "/api/users", json={"ids": [first.id, second.id, "x", -3]}
        )
        assert response.status_code == 200
        assert response.json() == {"data": {"deleted": 2}}
        assert [u["id"] for u in client.get("/api/users").json()["data"]] == [kept.id]
