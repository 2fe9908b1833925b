from __future__ import annotations

import pytest

from identivault.core.auth import AccountRepository, Argon2Hasher, SessionManager
from identivault.core.config import HashingConfig, VaultConfig
from identivault.db import InMemorySessionProvider

from .helpers.fakes import FakeClock, RecordingAccountStorage


# Argon2's minimum costs; keeps the suite fast while exercising the real codec.
FAST_HASHING = HashingConfig(memory_cost=8, time_cost=1, parallelism=1, hash_length=16, salt_length=8)


@pytest.fixture
def hasher():
    return Argon2Hasher(FAST_HASHING)


@pytest.fixture
def storage():
    return RecordingAccountStorage()


@pytest.fixture
def repo(storage, hasher):
    return AccountRepository(storage, hasher=hasher)


@pytest.fixture
def admin(repo):
    return repo.create("root", b"rootpw", is_admin=True)


@pytest.fixture
def alice(repo):
    return repo.create("alice", b"sixchr")


@pytest.fixture
def bob(repo):
    return repo.create("bob", b"bobpass")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider(clock):
    return InMemorySessionProvider(clock=clock)


@pytest.fixture
def sessions(provider):
    manager = SessionManager(provider)
    yield manager
    manager.close()


@pytest.fixture(autouse=True)
def _reset_config_singleton():
    VaultConfig.reset_instance()
    yield
    VaultConfig.reset_instance()
