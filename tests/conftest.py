"""Shared fixtures: a deterministic node on an in-memory store."""

import pytest

from nodeblog.clock import SettableClock
from nodeblog.core import AuthorFactory
from nodeblog.db.store import InMemoryBlogStore
from nodeblog.node import build_node


START_MILLIS = 1_700_000_000_000


@pytest.fixture
def clock():
    return SettableClock(START_MILLIS)


@pytest.fixture
def store(clock):
    return InMemoryBlogStore(clock)


@pytest.fixture
def local_author():
    return AuthorFactory.create_local_author("alice")


@pytest.fixture
def remote_author():
    return AuthorFactory.create_local_author("bob")


@pytest.fixture
def node(clock, store, local_author):
    return build_node(clock=clock, store=store, local_author=local_author)
