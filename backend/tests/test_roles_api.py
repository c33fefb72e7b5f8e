"""
Tests for the role endpoints.
"""

from sqlalchemy import select

from rest_api.models import role_user


class TestRoles:

    def test_list_with_member_counts(self, client, make_user, seed_roles):
        make_user(roles=seed_roles[:2])
        make_user(roles=seed_roles[:1])

        response = client.get("/api/roles", params={"withCount": "users", "sort": "-name"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert [(r["name"], r["users_count"]) for r in data] == [
            ("Viewer", 0),
            ("Editor", 1),
            ("Admin", 2),
        ]

    def test_filter_by_name(self, client, seed_roles):
        response = client.get("/api/roles", params={"where[name]": "Editor"})
        assert [r["id"] for r in response.json()["data"]] == [seed_roles[1].id]

    def test_sort_plus_prefix(self, client, seed_roles):
        response = client.get("/api/roles?sort=%2Bname")
        assert [r["name"] for r in response.json()["data"]] == ["Admin", "Editor", "Viewer"]

    def test_create_with_members(self, client, make_user):
        first, second = make_user(), make_user()

        response = client.post(
            "/api/roles",
            json={"name": "Ops", "description": "Operations", "user_ids": [first.id, second.id]},
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["description"] == "Operations"
        assert sorted(u["id"] for u in data["users"]) == sorted([first.id, second.id])
        assert all("password" not in u for u in data["users"])

    def test_create_requires_name(self, client):
        response = client.post("/api/roles", json={"description": "No name"})
        assert response.status_code == 422
        assert "name" in response.json()["errors"]

    def test_create_without_fields(self, client):
        response = client.post("/api/roles", json={})
        assert response.status_code == 422

    def test_duplicate_name_is_conflict(self, client, seed_roles):
        response = client.post("/api/roles", json={"name": "Admin"})
        assert response.status_code == 409

    def test_sync_members(self, client, db_session, make_user, seed_roles):
        u1, u2, u3 = make_user(), make_user(), make_user()
        admin = seed_roles[0]
        client.put(f"/api/roles/{admin.id}", json={"user_ids": [u1.id, u2.id]})

        response = client.put(f"/api/roles/{admin.id}", json={"user_ids": [u2.id, u3.id]})
        assert response.status_code == 200

        members = set(db_session.scalars(
            select(role_user.c.user_id).where(role_user.c.role_id == admin.id)
        ))
        assert members == {u2.id, u3.id}

        response = client.put(f"/api/roles/{admin.id}", json={"user_ids": []})
        assert response.status_code == 200
        assert response.json()["data"]["users"] == []

    def test_same_members_is_not_modified(self, client, make_user, seed_roles):
        user = make_user(roles=seed_roles[:1])

        response = client.put(f"/api/roles/{seed_roles[0].id}", json={"user_ids": [user.id]})
        assert response.status_code == 400

    def test_show_with_users(self, client, make_user, seed_roles):
        make_user(roles=seed_roles[:1])

        response = client.get(f"/api/roles/{seed_roles[0].id}", params={"with": "users"})
        assert len(response.json()["data"]["users"]) == 1

    def test_delete_detaches_members(self, client, db_session, make_user, seed_roles):
        make_user(roles=seed_roles)

        response = client.delete(f"/api/roles/{seed_roles[0].id}")
        assert response.status_code == 200
        assert response.json() == {"data": []}
        assert set(db_session.scalars(select(role_user.c.role_id))) == {
            seed_roles[1].id,
            seed_roles[2].id,
        }
