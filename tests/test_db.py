"""
Tests for store configuration and the PostgreSQL store's error mapping.

The PostgreSQL store is driven through a fake connection here; no
database is needed.
"""

import pytest

from nodeblog.db import (
    BlogStoreDriver,
    DatabaseConfig,
    DuplicateMessageError,
    LockTimeoutError,
    NoSuchBlogError,
    PostgresBlogStore,
    get_blogstore_driver,
    get_database_url,
)


class TestDatabaseConfig:

    def test_from_url(self):
        config = DatabaseConfig.from_url("postgresql://bob:s3cret@db:6543/blogs?sslmode=require")
        assert config.host == "db"
        assert config.port == 6543
        assert config.database == "blogs"
        assert config.user == "bob"
        assert config.password == "s3cret"
        assert config.ssl_mode == "require"

    def test_url_without_password(self):
        config = DatabaseConfig(password="s3cret")
        assert "s3cret" not in config.to_url(include_password=False)
        assert "s3cret" in config.to_url()

    def test_default_database(self):
        assert DatabaseConfig.from_url("postgresql://db").database == "nodeblog"


class TestDriverSelection:

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("BLOGSTORE_DRIVER", "DATABASE_URL", "DATABASE_HOST"):
            monkeypatch.delenv(name, raising=False)

    def test_memory_by_default(self):
        assert get_database_url() is None
        assert get_blogstore_driver() == BlogStoreDriver.MEMORY

    def test_database_url_selects_psycopg2(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://db/nodeblog")
        assert get_blogstore_driver() == BlogStoreDriver.PSYCOPG2

    def test_explicit_driver(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://db/nodeblog")
        monkeypatch.setenv("BLOGSTORE_DRIVER", "memory")
        assert get_blogstore_driver() == BlogStoreDriver.MEMORY

    def test_unknown_driver(self, monkeypatch):
        monkeypatch.setenv("BLOGSTORE_DRIVER", "sqlite")
        with pytest.raises(ValueError, match="Unknown BLOGSTORE_DRIVER"):
            get_blogstore_driver()


class FakePgError(Exception):
    def __init__(self, pgcode):
        super().__init__(pgcode)
        self.pgcode = pgcode


class FakeCursor:
    def __init__(self, conn):
        self._conn = conn
        self._result = None

    def execute(self, sql, params=None):
        self._conn.statements.append(sql)
        if "INSERT INTO blog_messages" in sql and self._conn.insert_error is not None:
            raise FakePgError(self._conn.insert_error)
        if "FROM blogs WHERE blog_id" in sql:
            self._result = (1,) if self._conn.blog_exists else None
        elif "MAX(time_received)" in sql:
            self._result = (self._conn.last_time_received,)

    def fetchone(self):
        return self._result

    def close(self):
        pass


class FakeConnection:
    def __init__(self, blog_exists=True, insert_error=None, last_time_received=0):
        self.blog_exists = blog_exists
        self.insert_error = insert_error
        self.last_time_received = last_time_received
        self.statements = []
        self.committed = False
        self.rolled_back = False
        self.autocommit = True

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        pass


class TestPostgresBlogStore:

    @pytest.fixture
    def post(self, node, local_author):
        blog = node.blog_manager.get_personal_blog(local_author)
        return node.post_factory.create_blog_post(blog.id, 5, None, local_author, "hi")

    def test_time_received_monotonic(self, clock, post):
        conn = FakeConnection(last_time_received=clock.current_time_millis() + 100)
        store = PostgresBlogStore(lambda: conn, clock)

        header = store.add_message(post, local=True)
        assert header.time_received == clock.current_time_millis() + 100
        assert conn.committed
        assert any("LOCK TABLE blog_messages" in s for s in conn.statements)

    def test_unknown_blog(self, clock, post):
        conn = FakeConnection(blog_exists=False)
        store = PostgresBlogStore(lambda: conn, clock)

        with pytest.raises(NoSuchBlogError):
            store.add_message(post, local=True)
        assert conn.rolled_back

    def test_duplicate(self, clock, post):
        conn = FakeConnection(insert_error="23505")
        store = PostgresBlogStore(lambda: conn, clock)

        with pytest.raises(DuplicateMessageError):
            store.add_message(post, local=False)

    def test_lock_timeout(self, clock, post):
        conn = FakeConnection(insert_error="55P03")
        store = PostgresBlogStore(lambda: conn, clock)

        with pytest.raises(LockTimeoutError):
            store.add_message(post, local=False)

    def test_other_errors_propagate(self, clock, post):
        conn = FakeConnection(insert_error="XX000")
        store = PostgresBlogStore(lambda: conn, clock)

        with pytest.raises(FakePgError):
            store.add_message(post, local=False)
