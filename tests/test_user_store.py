"""Unit tests for auth/store.py -- UserStore queries and token primitives.

Covers:
- create_user returns the record with an empty token list; duplicates conflict
- usernames are case-sensitive
- update_user replaces fields and reports conflicts
- token primitives: append order, remove exactly one, clear, missing-user signals
- update_user_tokens replaces the collection wholesale
- delete_user removes the user and its sessions
- driver failures surface as StoreError
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError

from auth.errors import ConflictError, StoreError
from auth.store import UserStore


def test_create_user_returns_record(store: UserStore) -> None:
    user = store.create_user("alice", "digest")
    assert user.id is not None
    assert user.username == "alice"
    assert user.hashed_password == "digest"
    assert user.tokens == []
    assert user.created_at


def test_duplicate_username_conflicts(store: UserStore) -> None:
    first = store.create_user("bob", "digest-1")
    with pytest.raises(ConflictError):
        store.create_user("bob", "digest-2")
    unchanged = store.get_by_id(first.id)
    assert unchanged.hashed_password == "digest-1"
    assert len(store.list_users()) == 1


def test_usernames_are_case_sensitive(store: UserStore) -> None:
    store.create_user("Alice", "d1")
    store.create_user("alice", "d2")
    assert store.get_by_username("Alice").hashed_password == "d1"
    assert store.get_by_username("alice").hashed_password == "d2"
    assert store.get_by_username("ALICE") is None


def test_lookups_return_none_when_absent(store: UserStore) -> None:
    assert store.get_by_id(999) is None
    assert store.get_by_username("nobody") is None
    assert store.delete_user(999) is None
    assert store.update_user(999, username="x") is None
    assert store.update_user_tokens(999, ["t"]) is None


def test_update_user_replaces_fields(store: UserStore) -> None:
    user = store.create_user("carol", "old")
    updated = store.update_user(user.id, username="caroline", hashed_password="new")
    assert updated.username == "caroline"
    assert updated.hashed_password == "new"
    assert store.get_by_username("carol") is None


def test_update_user_to_taken_name_conflicts(store: UserStore) -> None:
    store.create_user("dave", "d")
    erin = store.create_user("erin", "e")
    with pytest.raises(ConflictError):
        store.update_user(erin.id, username="dave")
    assert store.get_by_id(erin.id).username == "erin"


def test_append_keeps_issue_order(store: UserStore) -> None:
    user = store.create_user("frank", "d")
    for t in ("t1", "t2", "t3"):
        assert store.append_token(user.id, t) is True
    assert store.get_by_id(user.id).tokens == ["t1", "t2", "t3"]


def test_remove_deletes_exactly_one_entry(store: UserStore) -> None:
    user = store.create_user("grace", "d")
    for t in ("dup", "other", "dup"):
        store.append_token(user.id, t)
    assert store.remove_token(user.id, "dup") is True
    assert store.get_by_id(user.id).tokens == ["other", "dup"]


def test_remove_absent_token_is_noop(store: UserStore) -> None:
    user = store.create_user("heidi", "d")
    store.append_token(user.id, "t1")
    assert store.remove_token(user.id, "never-issued") is True
    assert store.get_by_id(user.id).tokens == ["t1"]


def test_token_primitives_signal_missing_user(store: UserStore) -> None:
    assert store.append_token(999, "t") is False
    assert store.remove_token(999, "t") is False
    assert store.clear_tokens(999) is False
    assert store.exists(999) is False


def test_clear_only_touches_one_user(store: UserStore) -> None:
    ivan = store.create_user("ivan", "d")
    judy = store.create_user("judy", "d")
    store.append_token(ivan.id, "i1")
    store.append_token(judy.id, "j1")
    assert store.clear_tokens(ivan.id) is True
    assert store.get_by_id(ivan.id).tokens == []
    assert store.get_by_id(judy.id).tokens == ["j1"]
    assert store.has_token(judy.id, "j1")
    assert not store.has_token(ivan.id, "i1")


def test_token_is_scoped_to_owner(store: UserStore) -> None:
    ivan = store.create_user("ivan", "d")
    judy = store.create_user("judy", "d")
    store.append_token(ivan.id, "shared")
    assert store.has_token(ivan.id, "shared")
    assert not store.has_token(judy.id, "shared")


def test_update_user_tokens_replaces_collection(store: UserStore) -> None:
    user = store.create_user("kate", "d")
    store.append_token(user.id, "old")
    updated = store.update_user_tokens(user.id, ["a", "b"])
    assert updated.tokens == ["a", "b"]
    assert store.update_user_tokens(user.id, []).tokens == []


def test_count_tokens(store: UserStore) -> None:
    user = store.create_user("leo", "d")
    assert store.count_tokens(user.id) == 0
    store.append_token(user.id, "t1")
    store.append_token(user.id, "t2")
    assert store.count_tokens(user.id) == 2


def test_delete_user_cascades_sessions(store: UserStore) -> None:
    user = store.create_user("mallory", "d")
    store.append_token(user.id, "t1")
    deleted = store.delete_user(user.id)
    assert deleted.username == "mallory"
    assert deleted.tokens == ["t1"]
    assert store.get_by_id(user.id) is None
    assert store.count_tokens(user.id) == 0


def test_list_users_omits_tokens(store: UserStore) -> None:
    user = store.create_user("nina", "d")
    store.append_token(user.id, "t1")
    (listed,) = store.list_users()
    assert listed.username == "nina"
    assert listed.tokens == []


def test_driver_failure_becomes_store_error(store: UserStore, monkeypatch) -> None:
    # A database file in a directory that does not exist cannot be opened.
    monkeypatch.setattr(store, "engine", create_engine("sqlite:////nonexistent-dir/threadline/auth.db"))
    with pytest.raises(StoreError) as exc_info:
        store.get_by_id(1)
    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert store.ping() is False


def test_ids_beyond_integer_range_are_absent(store: UserStore) -> None:
    assert store.get_by_id(10**25) is None
    assert store.exists(10**25) is False


def test_ping(store: UserStore) -> None:
    assert store.ping() is True


def test_user_repr_hides_secrets(store: UserStore) -> None:
    user = store.create_user("olga", "secret-digest")
    store.append_token(user.id, "secret-token")
    text = repr(store.get_by_id(user.id))
    assert "secret-digest" not in text
    assert "secret-token" not in text
