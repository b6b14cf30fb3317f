"""Tests for the admin CLI in main.py.

Covers:
- create-user registers an account with one session
- sessions reports the live session count
- revoke-sessions is a forced logout-all
- unknown users and duplicate names exit 1
"""

import pytest

from auth.store import UserStore
from main import main


def test_create_user(store: UserStore, capsys) -> None:
    assert main(["create-user", "alice", "--password", "pw123"], store=store) == 0
    user = store.get_by_username("alice")
    assert user is not None
    assert len(user.tokens) == 1
    assert "Created user 'alice'" in capsys.readouterr().out


def test_create_user_duplicate(store: UserStore, capsys) -> None:
    main(["create-user", "alice", "--password", "pw123"], store=store)
    assert main(["create-user", "alice", "--password", "other"], store=store) == 1
    assert "already taken" in capsys.readouterr().out


def test_sessions_and_revoke(store: UserStore, capsys) -> None:
    main(["create-user", "alice", "--password", "pw123"], store=store)
    uid = store.get_by_username("alice").id
    store.append_token(uid, "second-session")

    assert main(["sessions", "alice"], store=store) == 0
    assert "2 live session(s)" in capsys.readouterr().out

    assert main(["revoke-sessions", "alice"], store=store) == 0
    assert store.get_by_id(uid).tokens == []


@pytest.mark.parametrize("command", ["sessions", "revoke-sessions"])
def test_unknown_user(store: UserStore, capsys, command: str) -> None:
    assert main([command, "ghost"], store=store) == 1
    assert "No user named 'ghost'" in capsys.readouterr().out


def test_create_user_rejects_overlong_password(store: UserStore, capsys) -> None:
    assert main(["create-user", "alice", "--password", "p" * 100], store=store) == 1
    assert "72 bytes" in capsys.readouterr().out
    assert store.get_by_username("alice") is None
