from __future__ import annotations

from unittest import mock

import pytest

from assessment import hashing
from assessment.errors import DuplicateError, NotFoundError, StorageError, ValidationError
from assessment.identifiers import Identifier
from assessment.models import AccountType
from assessment.storage import DocumentStore
from assessment.users import UserDirectory


def test_create_user_stores_salted_hash(users: UserDirectory) -> None:
    user_id = users.create_user("alice", "pw1", "Alice A")

    user = users.find_user_by_id(user_id)
    assert user is not None
    assert user.username == "alice"
    assert user.full_name == "Alice A"
    assert len(user.salt) == 32
    assert user.password_hash == hashing.compute_hash("pw1", user.salt)


def test_account_type_defaults_to_student(users: UserDirectory) -> None:
    student = users.find_user_by_id(users.create_user("s1", "pw", "Student One"))
    other = users.find_user_by_id(users.create_user("s2", "pw", "Student Two", "administrator"))
    assessor = users.find_user_by_id(users.create_user("a1", "pw", "Assessor", "assessor"))

    assert student.account_type is AccountType.STUDENT
    assert other.account_type is AccountType.STUDENT
    assert assessor.account_type is AccountType.ASSESSOR


def test_duplicate_user_name_is_rejected_without_changes(users: UserDirectory) -> None:
    first_id = users.create_user("alice", "pw1", "Alice A")
    before = users.find_user_by_id(first_id)

    with pytest.raises(DuplicateError) as excinfo:
        users.create_user("alice", "pw2", "Alice B")

    assert excinfo.value.value == "alice"
    assert str(excinfo.value) == "Duplicate key: The user name 'alice' already exists."
    assert users.find_user_by_id(first_id) == before
    assert users.find_user_by_username("alice") == before


def test_register_reports_duplicates_as_message(users: UserDirectory) -> None:
    created = users.register("bob", "pw", "Bob")
    duplicate = users.register("bob", "pw", "Bobby")

    assert created.created and created.user_id is not None
    assert not duplicate.created
    assert "'bob'" in duplicate.message


def test_register_degrades_other_store_failures(users: UserDirectory, store: DocumentStore) -> None:
    with mock.patch.object(store, "create", side_effect=StorageError("disk full")):
        with pytest.raises(StorageError):
            users.create_user("carol", "pw", "Carol")
        result = users.register("carol", "pw", "Carol")

    assert not result.created
    assert result.message == "Unable to create the user account."


def test_lookup_by_username_is_case_sensitive(users: UserDirectory) -> None:
    users.create_user("alice", "pw", "Alice")
    assert users.find_user_by_username("alice") is not None
    assert users.find_user_by_username("Alice") is None


def test_malformed_identifier_is_not_found(users: UserDirectory) -> None:
    assert users.find_user_by_id("not-a-valid-id") is None
    assert users.find_user_by_id(None) is None
    with pytest.raises(ValidationError):
        users.get_user_by_id("zzz")


def test_unknown_identifier_is_not_found(users: UserDirectory) -> None:
    assert users.find_user_by_id(Identifier.generate()) is None
    with pytest.raises(NotFoundError):
        users.get_user_by_id(Identifier.generate())


def test_ambiguous_matches_are_not_found(users: UserDirectory, store: DocumentStore) -> None:
    document = {"user_name": "twin", "hash": "h", "salt": "s", "full_name": "Twin", "account_type": "student"}
    ambiguous = {Identifier.generate(): document, Identifier.generate(): dict(document)}

    with mock.patch.object(store, "read", return_value=ambiguous):
        assert users.find_user_by_username("twin") is None


def test_storage_failure_during_lookup_is_not_found(users: UserDirectory, store: DocumentStore) -> None:
    with mock.patch.object(store, "read", side_effect=StorageError("unavailable")):
        assert users.find_user_by_username("alice") is None


def test_update_user_field_accepts_whitelisted_fields(users: UserDirectory) -> None:
    user_id = users.create_user("alice", "pw", "Alice")

    assert users.update_user_field(user_id, "full_name", "Alice Liddell")
    assert users.find_user_by_id(user_id).full_name == "Alice Liddell"


@pytest.mark.parametrize("field", ["account_type", "accountType", "user_name", "_id"])
def test_update_user_field_rejects_other_fields(users: UserDirectory, store: DocumentStore, field: str) -> None:
    user_id = users.create_user("alice", "pw", "Alice")

    with mock.patch.object(store, "update", wraps=store.update) as update:
        assert not users.update_user_field(user_id, field, "assessor")
    update.assert_not_called()
    assert users.find_user_by_id(user_id).account_type is AccountType.STUDENT


def test_update_user_field_for_unknown_user_fails(users: UserDirectory) -> None:
    assert not users.update_user_field(Identifier.generate(), "full_name", "Ghost")


def test_set_password_replaces_salt_and_hash(users: UserDirectory) -> None:
    user_id = users.create_user("alice", "old-password", "Alice")
    before = users.find_user_by_id(user_id)

    assert users.set_password(user_id, "new-password")
    after = users.find_user_by_id(user_id)
    assert after.salt != before.salt
    assert hashing.verify("new-password", after.salt, after.password_hash)


def test_list_students_exposes_only_names(users: UserDirectory) -> None:
    alice = users.create_user("alice", "pw", "Alice A")
    users.create_user("tutor", "pw", "Tutor T", "assessor")
    bob = users.create_user("bob", "pw", "Bob B")

    students = users.list_students()
    assert list(students) == [str(alice), str(bob)]
    assert students[str(alice)].to_dict() == {"user_name": "alice", "full_name": "Alice A"}


def test_oversized_password_is_a_registration_failure(users: UserDirectory) -> None:
    with pytest.raises(ValidationError):
        users.create_user("longpw", "x" * 5000, "Long Pw")

    result = users.register("longpw", "x" * 5000, "Long Pw")
    assert not result.created
    assert "maximum size" in result.message
    assert users.find_user_by_username("longpw") is None


def test_oversized_new_password_leaves_credentials_unchanged(users: UserDirectory) -> None:
    user_id = users.create_user("alice", "old-password", "Alice")
    before = users.find_user_by_id(user_id)

    assert not users.set_password(user_id, "y" * 5000)
    assert users.find_user_by_id(user_id) == before
