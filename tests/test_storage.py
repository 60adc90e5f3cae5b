from __future__ import annotations

from pathlib import Path

import pytest

from assessment.errors import StorageError, UniqueConstraintViolation
from assessment.identifiers import Identifier
from assessment.storage import ALL_DOCUMENTS, DocumentStore, resolve_database_path


def _user(name: str, account_type: str = "student") -> dict:
    return {"user_name": name, "hash": "h", "salt": "s", "full_name": name.title(), "account_type": account_type}


def test_create_and_read_by_identifier(store: DocumentStore) -> None:
    user_id = store.create("users", _user("alice"))

    assert isinstance(user_id, Identifier)
    found = store.read("users", {"_id": user_id})
    assert found == {user_id: _user("alice")}


def test_read_filters_on_document_fields(store: DocumentStore) -> None:
    store.create("users", _user("alice"))
    bob = store.create("users", _user("bob", "assessor"))

    assessors = store.read("users", {"account_type": "assessor"})
    assert list(assessors) == [bob]
    assert store.read("users", {"user_name": "nobody"}) == {}


def test_read_all_documents_preserves_insertion_order(store: DocumentStore) -> None:
    first = store.create("groups", {"name": "A", "members": []})
    second = store.create("groups", {"name": "B", "members": []})
    store.create("users", _user("alice"))

    assert list(store.read("groups", ALL_DOCUMENTS)) == [first, second]


def test_duplicate_user_name_raises_unique_constraint_violation(store: DocumentStore) -> None:
    store.create("users", _user("alice"))

    with pytest.raises(UniqueConstraintViolation) as excinfo:
        store.create("users", _user("alice"))

    assert excinfo.value.field == "user_name"
    assert excinfo.value.value == "alice"
    assert len(store.read("users")) == 1


def test_user_name_uniqueness_is_case_sensitive(store: DocumentStore) -> None:
    store.create("users", _user("alice"))
    store.create("users", _user("Alice"))
    assert len(store.read("users")) == 2


def test_group_names_are_not_unique(store: DocumentStore) -> None:
    store.create("groups", {"name": "Team", "members": ["a"]})
    store.create("groups", {"name": "Team", "members": ["b"]})
    assert len(store.read("groups", {"name": "Team"})) == 2


def test_update_merges_fields(store: DocumentStore) -> None:
    user_id = store.create("users", _user("alice"))

    assert store.update("users", {"_id": user_id}, {"full_name": "Alice Liddell"})
    document = store.read("users", {"_id": user_id})[user_id]
    assert document["full_name"] == "Alice Liddell"
    assert document["user_name"] == "alice"


def test_update_without_match_returns_false(store: DocumentStore) -> None:
    assert not store.update("users", {"_id": Identifier.generate()}, {"full_name": "x"})


def test_delete_reports_whether_anything_was_removed(store: DocumentStore) -> None:
    group_id = store.create("groups", {"name": "A", "members": []})

    assert store.delete("groups", {"_id": group_id})
    assert not store.delete("groups", {"_id": group_id})
    assert store.read("groups") == {}


def test_documents_may_not_set_their_own_identifier(store: DocumentStore) -> None:
    with pytest.raises(StorageError):
        store.create("users", {"_id": "abc", **_user("alice")})


def test_invalid_field_names_are_rejected(store: DocumentStore) -> None:
    with pytest.raises(StorageError):
        store.read("users", {"user_name') OR 1=1 --": "x"})


def test_transaction_commits_on_success(store: DocumentStore) -> None:
    with store.transaction() as tx:
        user_id = tx.create("users", _user("alice"))
        assert list(tx.read("users")) == [user_id]

    assert list(store.read("users")) == [user_id]


def test_transaction_rolls_back_on_error(store: DocumentStore) -> None:
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.create("users", _user("alice"))
            raise RuntimeError("abort")

    assert store.read("users") == {}


def test_unopenable_store_raises_storage_error(tmp_path: Path) -> None:
    directory = tmp_path / "as-directory"
    directory.mkdir()
    broken = DocumentStore(directory)

    with pytest.raises(StorageError):
        broken.read("users")


def test_resolve_database_path_prefers_explicit_value(tmp_path: Path) -> None:
    explicit = tmp_path / "custom.sqlite3"
    assert resolve_database_path(str(explicit)) == explicit.resolve()
    assert resolve_database_path(None).name == "assessment.sqlite3"
