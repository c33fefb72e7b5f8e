"""
Tests for the generic repository.
"""

import pytest
from sqlalchemy import func, select

from rest_api.models import Address, Role, User, role_user
from rest_api.repositories import (
    BaseRepository,
    get_address_repository,
    get_role_repository,
    get_user_repository,
    sanitize_ids,
)
from rest_api.services.crud.query_options import QueryOptions
from shared.utils.exceptions import ModelOperationError, OperationKind, UnknownRelationError


def role_ids_of(db_session, user_id):
    return set(db_session.scalars(select(role_user.c.role_id).where(role_user.c.user_id == user_id)))


class TestSanitizeIds:

    def test_keeps_positive_integers_once(self):
        assert sanitize_ids([3, "2", 3, -1, 0, "x", None, True, 2.0]) == [3, 2]

    def test_none_gives_nothing(self):
        assert sanitize_ids(None) == []


class TestReads:

    def test_generic_repository_needs_a_model(self, db_session):
        with pytest.raises(TypeError):
            BaseRepository(db_session)

    def test_find_missing_raises_not_found(self, db_session):
        with pytest.raises(ModelOperationError) as exc:
            get_user_repository(db_session).find(999)
        assert exc.value.kind is OperationKind.NOT_FOUND
        assert exc.value.status_code == 404

    def test_find_all_filters_on_whereable_fields(self, db_session, make_user):
        make_user(name="Ana")
        bob = make_user(name="Bob")

        users = get_user_repository(db_session).find_all(QueryOptions(where={"name": "Bob"}))
        assert [u.id for u in users] == [bob.id]

    def test_find_all_ignores_non_whitelisted_where(self, db_session, make_user):
        make_user()
        make_user()

        users = get_user_repository(db_session).find_all(QueryOptions(where={"password": "x"}))
        assert len(users) == 2

    def test_uncoercible_filter_matches_nothing(self, db_session, make_user, make_address):
        make_address(make_user())

        addresses = get_address_repository(db_session).find_all(
            QueryOptions(where={"user_id": "abc"})
        )
        assert addresses == []

    def test_default_sort_is_first_sortable(self, db_session, make_role):
        make_role("Viewer")
        make_role("Admin")
        make_role("Editor")

        roles = get_role_repository(db_session).find_all()
        assert [r.name for r in roles] == ["Admin", "Editor", "Viewer"]

    def test_unknown_sort_falls_back_to_default(self, db_session, make_role):
        make_role("b")
        make_role("a")

        roles = get_role_repository(db_session).find_all(QueryOptions(sort=["-nonexistent_field"]))
        assert [r.name for r in roles] == ["a", "b"]

    def test_sort_descending(self, db_session, make_role):
        make_role("a")
        make_role("b")

        roles = get_role_repository(db_session).find_all(QueryOptions(sort=["-name"]))
        assert [r.name for r in roles] == ["b", "a"]

    def test_sort_by_aggregate_count(self, db_session, make_user, seed_roles):
        few = make_user(name="Few", roles=seed_roles[:1])
        many = make_user(name="Many", roles=seed_roles)

        users = get_user_repository(db_session).find_all(
            QueryOptions(sort=["-roles_count"], with_count=["roles"])
        )
        assert [u.id for u in users] == [many.id, few.id]
        assert users[0].loaded_aggregates() == {"roles_count": 3}

    def test_counts_skip_soft_deleted_children(self, db_session, make_user, make_address):
        user = make_user()
        make_address(user)
        make_address(user, is_active=False)

        found = get_user_repository(db_session).find_with_options(
            user.id, QueryOptions(with_count=["addresses"], with_=["addresses"])
        )
        assert found.loaded_aggregates() == {"addresses_count": 1}
        assert len(found.addresses) == 1

    def test_with_loads_only_whitelisted_relations(self, db_session, make_user, make_address):
        user = make_user()
        address = make_address(user)
        db_session.expunge_all()

        found = get_address_repository(db_session).find_with_options(
            address.id, QueryOptions(with_=["user"])
        )
        assert found.user.id == user.id


class TestWrites:

    def test_create_duplicate_is_conflict(self, db_session, make_role):
        make_role("Admin")
        repo = get_role_repository(db_session)

        with pytest.raises(ModelOperationError) as exc:
            repo.create({"name": "Admin"})
        db_session.rollback()

        assert exc.value.kind is OperationKind.CREATE_FAILED
        assert exc.value.status_code == 409
        assert exc.value.__cause__ is not None

    def test_update_without_changes_is_not_modified(self, db_session, make_role):
        role = make_role("Admin", "Full access")

        with pytest.raises(ModelOperationError) as exc:
            get_role_repository(db_session).update(role.id, {"name": "Admin"})
        assert exc.value.kind is OperationKind.NOT_MODIFIED
        assert exc.value.status_code == 400

    def test_update_applies_changes(self, db_session, make_role):
        role = make_role("Admin")

        updated = get_role_repository(db_session).update(role.id, {"description": "All"})
        assert updated.description == "All"

    def test_first_or_create(self, db_session, make_role):
        existing = make_role("Admin")
        repo = get_role_repository(db_session)

        found, created = repo.first_or_create({"name": "Admin"}, {"description": "x"})
        assert (found.id, created) == (existing.id, False)
        assert found.description is None

        new, created = repo.first_or_create({"name": "Editor"}, {"description": "y"})
        assert created and new.description == "y"

    def test_update_or_create(self, db_session, make_role):
        existing = make_role("Admin")
        repo = get_role_repository(db_session)

        found, created = repo.update_or_create({"name": "Admin"}, {"description": "x"})
        assert (found.id, created) == (existing.id, False)
        assert found.description == "x"

    def test_insert_creates_each_row(self, db_session):
        roles = get_role_repository(db_session).insert([{"name": "a"}, {"name": "b"}])
        assert all(r.id is not None for r in roles)

    def test_fill_and_save(self, db_session, make_role):
        role = make_role("Admin")
        repo = get_role_repository(db_session)

        filled = repo.fill(role.id, {"description": "x"})
        assert repo.save(filled) is True
        assert repo.save(filled) is False


class TestSync:

    def test_replaces_the_related_set(self, db_session, make_user, make_role):
        r1, r2, r3 = make_role(), make_role(), make_role()
        user = make_user(roles=[r1, r2])

        result = get_user_repository(db_session).sync(user.id, "roles", [r2.id, r3.id])

        assert result.attached == [r3.id]
        assert result.detached == [r1.id]
        assert result.unchanged == [r2.id]
        assert result.changed
        assert role_ids_of(db_session, user.id) == {r2.id, r3.id}

    def test_empty_list_detaches_all(self, db_session, make_user, seed_roles):
        user = make_user(roles=seed_roles)

        result = get_user_repository(db_session).sync(user.id, "roles", [])
        assert len(result.detached) == 3
        assert role_ids_of(db_session, user.id) == set()

    def test_same_set_is_unchanged(self, db_session, make_user, seed_roles):
        user = make_user(roles=seed_roles)

        result = get_user_repository(db_session).sync(
            user.id, "roles", [str(r.id) for r in seed_roles]
        )
        assert not result.changed

    def test_relation_is_reloaded_after_sync(self, db_session, make_user, seed_roles):
        user = make_user(roles=seed_roles[:1])
        assert len(user.roles) == 1

        get_user_repository(db_session).sync(user.id, "roles", [r.id for r in seed_roles])
        assert len(user.roles) == 3

    def test_missing_related_row_fails_update(self, db_session, make_user):
        user = make_user()

        with pytest.raises(ModelOperationError) as exc:
            get_user_repository(db_session).sync(user.id, "roles", [999])
        db_session.rollback()

        assert exc.value.kind is OperationKind.UPDATE_FAILED
        assert exc.value.status_code == 409

    def test_one_to_many_relation_cannot_be_synced(self, db_session, make_user):
        user = make_user()

        with pytest.raises(UnknownRelationError):
            get_user_repository(db_session).sync(user.id, "addresses", [1])

    def test_undeclared_relation_cannot_be_synced(self, db_session, make_user):
        user = make_user()

        with pytest.raises(UnknownRelationError):
            get_user_repository(db_session).sync(user.id, "tokens", [1])


class TestCreateMany:

    def test_children_point_at_the_parent(self, db_session, make_user):
        owner = make_user()
        other = make_user()

        children = get_user_repository(db_session).create_many(
            owner,
            "addresses",
            [{"user_id": other.id, "name": "Home", "street": "1 Main", "city": "Lima",
              "postal_code": "15001", "country": "PE", "is_active": False}],
        )

        assert [c.user_id for c in children] == [owner.id]
        # Not fillable, so the model default applies
        assert children[0].is_active is True

    def test_many_to_many_relation_is_rejected(self, db_session, make_user):
        with pytest.raises(UnknownRelationError):
            get_user_repository(db_session).create_many(make_user(), "roles", [{}])

    def test_invalid_child_is_create_failed_for_child_model(self, db_session, make_user):
        owner = make_user()

        with pytest.raises(ModelOperationError) as exc:
            get_user_repository(db_session).create_many(owner, "addresses", [{"name": "x"}])
        db_session.rollback()

        assert exc.value.kind is OperationKind.CREATE_FAILED
        assert exc.value.model_name == "Address"


class TestDelete:

    def test_delete_blocked_by_dependent_rows(self, db_session, make_user, make_address):
        user = make_user()
        make_address(user)

        with pytest.raises(ModelOperationError) as exc:
            get_user_repository(db_session).delete(user.id)
        db_session.rollback()

        assert exc.value.kind is OperationKind.DELETE_BLOCKED
        assert exc.value.status_code == 409
        assert db_session.get(User, user.id) is not None

    def test_delete_removes_pivot_rows(self, db_session, make_user, seed_roles):
        user = make_user(roles=seed_roles)

        assert get_user_repository(db_session).delete(user.id) is True
        db_session.commit()

        assert db_session.scalar(select(func.count()).select_from(role_user)) == 0
        assert db_session.scalar(select(func.count()).select_from(Role)) == 3

    def test_soft_delete_and_restore(self, db_session, make_user, make_address):
        address = make_address(make_user())
        repo = get_address_repository(db_session)

        repo.delete(address.id)
        assert address.is_active is False
        assert address.deleted_at is not None
        with pytest.raises(ModelOperationError):
            repo.find(address.id)

        repo.restore(address.id)
        assert repo.find(address.id).deleted_at is None

    def test_restore_without_soft_delete_fails(self, db_session, make_role):
        role = make_role()

        with pytest.raises(ModelOperationError) as exc:
            get_role_repository(db_session).restore(role.id)
        assert exc.value.kind is OperationKind.RESTORE_FAILED

    def test_force_delete_removes_soft_deleted_row(self, db_session, make_user, make_address):
        address = make_address(make_user(), is_active=False)

        get_address_repository(db_session).force_delete(address.id)
        db_session.commit()

        assert db_session.get(Address, address.id) is None

    def test_delete_multiple(self, db_session, make_role):
        a, b, c = make_role(), make_role(), make_role()

        count = get_role_repository(db_session).delete_multiple([a.id, str(b.id), "x", -1, a.id])
        db_session.commit()

        assert count == 2
        assert [r.id for r in db_session.scalars(select(Role))] == [c.id]

    def test_delete_multiple_with_nothing_valid(self, db_session):
        assert get_role_repository(db_session).delete_multiple(["x", 0, None]) == 0

    def test_delete_multiple_soft_deletes(self, db_session, make_user, make_address):
        user = make_user()
        first, second = make_address(user), make_address(user)

        count = get_address_repository(db_session).delete_multiple([first.id, second.id])
        db_session.commit()

        assert count == 2
        assert db_session.scalar(
            select(func.count()).select_from(Address).where(Address.is_active.is_(True))
        ) == 0
