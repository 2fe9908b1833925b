from __future__ import annotations

import threading

import pytest

from identivault.core.auth import Account, Session
from identivault.db import (
    AlreadyExistsError,
    InMemoryAccountStorage,
    InMemorySessionProvider,
    NotFoundError,
)

from .helpers.fakes import FakeClock


def _account(i: int, **kw) -> Account:
    return Account(id=f"id{i}", name=f"user{i}", credential_hash=b"$argon2id$x", **kw)


def test_account_round_trip_and_lookup_by_name():
    store = InMemoryAccountStorage()
    store.save_user(_account(1))
    assert store.get_user("id1").name == "user1"
    assert store.get_user_by_name("user1").id == "id1"
    with pytest.raises(NotFoundError):
        store.get_user_by_name("nobody")


def test_account_ids_and_names_are_unique():
    store = InMemoryAccountStorage()
    store.save_user(_account(1))
    with pytest.raises(AlreadyExistsError):
        store.save_user(Account(id="id1", name="other", credential_hash=b"h"))
    with pytest.raises(AlreadyExistsError):
        store.save_user(Account(id="id2", name="user1", credential_hash=b"h"))


def test_update_rejects_taken_name_and_unknown_fields():
    store = InMemoryAccountStorage()
    store.save_user(_account(1))
    store.save_user(_account(2))
    with pytest.raises(AlreadyExistsError):
        store.update_user("id2", {"name": "user1"})
    with pytest.raises(ValueError):
        store.update_user("id2", {"id": "id9"})
    with pytest.raises(NotFoundError):
        store.update_user("id9", {"name": "x"})

    store.update_user("id2", {"name": "user2"})
    assert store.get_user("id2").name == "user2"


def test_list_users_paging():
    store = InMemoryAccountStorage()
    for i in range(4):
        store.save_user(_account(i))
    assert [a.id for a in store.list_users(0, 0)] == ["id0", "id1", "id2", "id3"]
    assert [a.id for a in store.list_users(2, 1)] == ["id1", "id2"]
    assert len(store) == 4


def test_concurrent_saves_of_same_name_admit_one():
    store = InMemoryAccountStorage()
    errors = []

    def save(i):
        try:
            store.save_user(Account(id=f"id{i}", name="same", credential_hash=b"h"))
        except AlreadyExistsError:
            errors.append(i)

    threads = [threading.Thread(target=save, args=(i,)) for i in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store) == 1
    assert len(errors) == 9


def test_session_provider_gc_uses_its_clock():
    clock = FakeClock(start=1000)
    provider = InMemorySessionProvider(clock=clock)
    provider.add(Session(id="s1", owner_id="u", created_at=900, expires_on=1010))

    provider.gc()
    assert len(provider) == 1

    clock.advance(11)
    provider.gc()
    assert len(provider) == 0


def test_session_provider_update_requires_existing():
    provider = InMemorySessionProvider()
    with pytest.raises(NotFoundError):
        provider.update(Session(id="s1", owner_id="u", created_at=1, expires_on=2))
