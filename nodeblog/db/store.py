"""
Blog Store Abstraction

This module defines the BlogStore interface and provides two implementations:
- InMemoryBlogStore: For development and testing
- PostgresBlogStore: For durable deployments

The BlogStore is responsible for:
- Knowing which blogs exist (own and peer blogs)
- Persisting posts exactly once per message id
- Assigning time_received on arrival

The BlogManager retains responsibility for:
- Building headers with author status
- Validating posts received from peers

ORDERING CONTRACT:
time_received never decreases across add_message() calls on one store,
and headers of a blog are returned in insertion order. Together these
give a stable, local arrival order that does not depend on the
author-claimed timestamp.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Generator, Optional

from ..clock import Clock, SystemClock
from ..schemas import Author, Blog, BlogPost, BlogPostHeader


# ============================================================
# EXCEPTIONS
# ============================================================

class BlogStoreError(Exception):
    """Base exception for blog store errors."""
    pass


class NoSuchBlogError(BlogStoreError):
    """Raised when a blog id is not known to the store."""
    pass


class NoSuchMessageError(BlogStoreError):
    """Raised when a message id is not known to the store."""
    pass


class DuplicateMessageError(BlogStoreError):
    """Raised when a message id has already been stored."""
    pass


class LockTimeoutError(BlogStoreError):
    """Raised when lock acquisition times out (store busy)."""
    pass


# ============================================================
# ABSTRACT BASE CLASS
# ============================================================

class BlogStore(ABC):
    """
    Abstract base class for blog storage.

    Implementations must ensure:
    1. add_message is atomic: a post is either fully stored or absent
    2. time_received is non-decreasing in commit order
    3. Readers never observe a partially written post
    """

    @abstractmethod
    def add_blog(self, blog: Blog) -> None:
        """Add a blog. Adding a known blog again is a no-op."""
        pass

    @abstractmethod
    def get_blogs(self) -> list[Blog]:
        """All known blogs, in the order they were added."""
        pass

    @abstractmethod
    def contains_blog(self, blog_id: bytes) -> bool:
        pass

    @abstractmethod
    def add_message(self, post: BlogPost, local: bool) -> BlogPostHeader:
        """
        Store a post and assign its time_received.

        Raises:
            NoSuchBlogError: If the post's blog is unknown
            DuplicateMessageError: If the message id is already stored
        """
        pass

    @abstractmethod
    def get_message_headers(self, blog_id: bytes) -> list[BlogPostHeader]:
        """
        Headers of every post in a blog, in insertion order.

        Raises:
            NoSuchBlogError: If the blog is unknown
        """
        pass

    @abstractmethod
    def get_message_header(self, blog_id: bytes, message_id: bytes) -> BlogPostHeader:
        """
        Raises:
            NoSuchMessageError: If the blog holds no such message
        """
        pass

    @abstractmethod
    def get_message_text(self, message_id: bytes) -> str:
        """
        Raises:
            NoSuchMessageError: If the message is unknown
        """
        pass

    @abstractmethod
    def get_message(self, message_id: bytes) -> BlogPost:
        """
        Full post including signature, for re-verification.

        Raises:
            NoSuchMessageError: If the message is unknown
        """
        pass

    @abstractmethod
    def list_messages(self) -> list[BlogPost]:
        """Every stored post, in insertion order."""
        pass

    @abstractmethod
    def get_message_count(self) -> int:
        pass

    def ping(self) -> bool:
        """Check that the store is reachable."""
        self.get_message_count()
        return True


# ============================================================
# IN-MEMORY IMPLEMENTATION
# ============================================================

@dataclass(frozen=True)
class _StoredMessage:
    post: BlogPost
    time_received: int
    local: bool

    def header(self) -> BlogPostHeader:
        return BlogPostHeader(
            id=self.post.message_id,
            blog_id=self.post.blog_id,
            parent_id=self.post.parent_id,
            author=self.post.author,
            timestamp=self.post.timestamp,
            time_received=self.time_received,
        )


class InMemoryBlogStore(BlogStore):
    """
    In-memory implementation of BlogStore.

    Suitable for:
    - Development
    - Testing

    NOT suitable for:
    - Production (no durability)
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or SystemClock()
        self._lock = Lock()
        self._blogs: dict[bytes, Blog] = {}
        self._blog_messages: dict[bytes, list[bytes]] = {}
        self._messages: dict[bytes, _StoredMessage] = {}
        self._last_time_received = 0

    def add_blog(self, blog: Blog) -> None:
        with self._lock:
            if blog.id not in self._blogs:
                self._blogs[blog.id] = blog
                self._blog_messages[blog.id] = []

    def get_blogs(self) -> list[Blog]:
        with self._lock:
            return list(self._blogs.values())

    def contains_blog(self, blog_id: bytes) -> bool:
        with self._lock:
            return blog_id in self._blogs

    def add_message(self, post: BlogPost, local: bool) -> BlogPostHeader:
        with self._lock:
            if post.blog_id not in self._blogs:
                raise NoSuchBlogError(f"Unknown blog {post.blog_id.hex()}")
            if post.message_id in self._messages:
                raise DuplicateMessageError(
                    f"Message {post.message_id.hex()} already stored"
                )

            time_received = max(self._clock.current_time_millis(), self._last_time_received)
            stored = _StoredMessage(post=post, time_received=time_received, local=local)

            self._messages[post.message_id] = stored
            self._blog_messages[post.blog_id].append(post.message_id)
            self._last_time_received = time_received
            return stored.header()

    def get_message_headers(self, blog_id: bytes) -> list[BlogPostHeader]:
        with self._lock:
            if blog_id not in self._blogs:
                raise NoSuchBlogError(f"Unknown blog {blog_id.hex()}")
            return [self._messages[m].header() for m in self._blog_messages[blog_id]]

    def get_message_header(self, blog_id: bytes, message_id: bytes) -> BlogPostHeader:
        with self._lock:
            stored = self._messages.get(message_id)
            if stored is None or stored.post.blog_id != blog_id:
                raise NoSuchMessageError(f"Unknown message {message_id.hex()}")
            return stored.header()

    def get_message_text(self, message_id: bytes) -> str:
        return self.get_message(message_id).text

    def get_message(self, message_id: bytes) -> BlogPost:
        with self._lock:
            stored = self._messages.get(message_id)
            if stored is None:
                raise NoSuchMessageError(f"Unknown message {message_id.hex()}")
            return stored.post

    def list_messages(self) -> list[BlogPost]:
        with self._lock:
            return [stored.post for stored in self._messages.values()]

    def get_message_count(self) -> int:
        with self._lock:
            return len(self._messages)

    def clear(self) -> None:
        """Clear all blogs and posts (for testing only)."""
        with self._lock:
            self._blogs.clear()
            self._blog_messages.clear()
            self._messages.clear()
            self._last_time_received = 0


# ============================================================
# POSTGRESQL IMPLEMENTATION (SYNC)
# ============================================================

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS blogs (
    seq BIGSERIAL,
    blog_id BYTEA PRIMARY KEY,
    author_id BYTEA NOT NULL,
    author_name TEXT NOT NULL,
    author_public_key BYTEA NOT NULL,
    author_format_version INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS blog_messages (
    seq BIGSERIAL,
    message_id BYTEA PRIMARY KEY,
    blog_id BYTEA NOT NULL REFERENCES blogs (blog_id),
    parent_id BYTEA,
    author_id BYTEA NOT NULL,
    author_name TEXT NOT NULL,
    author_public_key BYTEA NOT NULL,
    author_format_version INTEGER NOT NULL,
    timestamp BIGINT NOT NULL,
    time_received BIGINT NOT NULL,
    text TEXT NOT NULL,
    signature BYTEA NOT NULL,
    is_local BOOLEAN NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_blog_messages_blog_seq ON blog_messages (blog_id, seq);
"""

_MESSAGE_COLUMNS = """
    message_id, blog_id, parent_id,
    author_id, author_name, author_public_key, author_format_version,
    timestamp, time_received, text, signature
"""


class PostgresBlogStore(BlogStore):
    """
    PostgreSQL implementation of BlogStore.

    Provides:
    - Durability (posts survive restarts)
    - Concurrency safety: appends serialize on a table lock so
      time_received stays monotonic across workers

    THREAD SAFETY:
    Every call opens its own connection from the factory, so one store
    instance can be shared by all request threads.

    Usage:
        store = PostgresBlogStore(lambda: psycopg2.connect(dsn), clock)
        store.ensure_schema()
    """

    LOCK_TIMEOUT_MS = 2000
    STATEMENT_TIMEOUT_MS = 10000

    PGCODE_UNIQUE_VIOLATION = '23505'
    PGCODE_LOCK_NOT_AVAILABLE = '55P03'
    PGCODE_QUERY_CANCELED = '57014'

    def __init__(
        self,
        connection_factory: Callable[[], Any],
        clock: Optional[Clock] = None,
        lock_timeout_ms: int = LOCK_TIMEOUT_MS,
        statement_timeout_ms: int = STATEMENT_TIMEOUT_MS,
    ):
        """
        Args:
            connection_factory: Callable that returns a psycopg2 connection.
            clock: Source of time_received. Defaults to the system clock.
        """
        self._connection_factory = connection_factory
        self._clock = clock or SystemClock()
        self._lock_timeout_ms = lock_timeout_ms
        self._statement_timeout_ms = statement_timeout_ms

    @contextmanager
    def _cursor(self, write: bool = False) -> Generator[Any, None, None]:
        """Connection + cursor scoped to one unit of work."""
        conn = self._connection_factory()
        conn.autocommit = False
        cursor = conn.cursor()
        try:
            if write:
                cursor.execute(f"SET LOCAL lock_timeout = '{self._lock_timeout_ms}ms'")
                cursor.execute(f"SET LOCAL statement_timeout = '{self._statement_timeout_ms}ms'")
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            try:
                cursor.close()
            finally:
                conn.close()

    def ensure_schema(self) -> None:
        """Create tables if they do not exist."""
        with self._cursor(write=True) as cursor:
            cursor.execute(SCHEMA_SQL)

    @staticmethod
    def _row_to_author(row: tuple) -> Author:
        author_id, name, public_key, format_version = row
        return Author(
            format_version=format_version,
            id=bytes(author_id),
            name=name,
            public_key=bytes(public_key),
        )

    def _row_to_post(self, row: tuple) -> BlogPost:
        return BlogPost(
            message_id=bytes(row[0]),
            blog_id=bytes(row[1]),
            parent_id=bytes(row[2]) if row[2] is not None else None,
            author=self._row_to_author(row[3:7]),
            timestamp=row[7],
            text=row[9],
            signature=bytes(row[10]),
        )

    def _row_to_header(self, row: tuple) -> BlogPostHeader:
        return BlogPostHeader(
            id=bytes(row[0]),
            blog_id=bytes(row[1]),
            parent_id=bytes(row[2]) if row[2] is not None else None,
            author=self._row_to_author(row[3:7]),
            timestamp=row[7],
            time_received=row[8],
        )

    def _error_kind(self, e: Exception) -> Optional[str]:
        """Classify a PostgreSQL error by its SQLSTATE."""
        pgcode = getattr(e, 'pgcode', None)
        if pgcode == self.PGCODE_UNIQUE_VIOLATION:
            return "duplicate"
        if pgcode in (self.PGCODE_LOCK_NOT_AVAILABLE, self.PGCODE_QUERY_CANCELED):
            return "lock"
        return None

    def add_blog(self, blog: Blog) -> None:
        with self._cursor(write=True) as cursor:
            cursor.execute("""
                INSERT INTO blogs (
                    blog_id, author_id, author_name,
                    author_public_key, author_format_version
                ) VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (blog_id) DO NOTHING
            """, (
                blog.id,
                blog.author.id,
                blog.author.name,
                blog.author.public_key,
                blog.author.format_version,
            ))

    def get_blogs(self) -> list[Blog]:
        with self._cursor() as cursor:
            cursor.execute("""
                SELECT blog_id, author_id, author_name,
                       author_public_key, author_format_version
                FROM blogs
                ORDER BY seq
            """)
            return [
                Blog(id=bytes(row[0]), author=self._row_to_author(row[1:5]))
                for row in cursor.fetchall()
            ]

    def contains_blog(self, blog_id: bytes) -> bool:
        with self._cursor() as cursor:
            cursor.execute("SELECT 1 FROM blogs WHERE blog_id = %s", (blog_id,))
            return cursor.fetchone() is not None

    def add_message(self, post: BlogPost, local: bool) -> BlogPostHeader:
        try:
            with self._cursor(write=True) as cursor:
                # Serialize appends so time_received is monotonic across workers
                cursor.execute("LOCK TABLE blog_messages IN SHARE ROW EXCLUSIVE MODE")

                cursor.execute("SELECT 1 FROM blogs WHERE blog_id = %s", (post.blog_id,))
                if cursor.fetchone() is None:
                    raise NoSuchBlogError(f"Unknown blog {post.blog_id.hex()}")

                cursor.execute("SELECT COALESCE(MAX(time_received), 0) FROM blog_messages")
                last_time_received = cursor.fetchone()[0]
                time_received = max(self._clock.current_time_millis(), last_time_received)

                cursor.execute("""
                    INSERT INTO blog_messages (
                        message_id, blog_id, parent_id,
                        author_id, author_name, author_public_key, author_format_version,
                        timestamp, time_received, text, signature, is_local
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """, (
                    post.message_id,
                    post.blog_id,
                    post.parent_id,
                    post.author.id,
                    post.author.name,
                    post.author.public_key,
                    post.author.format_version,
                    post.timestamp,
                    time_received,
                    post.text,
                    post.signature,
                    local,
                ))
        except BlogStoreError:
            raise
        except Exception as e:
            kind = self._error_kind(e)
            if kind == "duplicate":
                raise DuplicateMessageError(
                    f"Message {post.message_id.hex()} already stored"
                ) from e
            if kind == "lock":
                raise LockTimeoutError(
                    "Blog store busy - could not acquire lock. Try again."
                ) from e
            raise

        return BlogPostHeader(
            id=post.message_id,
            blog_id=post.blog_id,
            parent_id=post.parent_id,
            author=post.author,
            timestamp=post.timestamp,
            time_received=time_received,
        )

    def get_message_headers(self, blog_id: bytes) -> list[BlogPostHeader]:
        with self._cursor() as cursor:
            cursor.execute("SELECT 1 FROM blogs WHERE blog_id = %s", (blog_id,))
            if cursor.fetchone() is None:
                raise NoSuchBlogError(f"Unknown blog {blog_id.hex()}")
            cursor.execute(f"""
                SELECT {_MESSAGE_COLUMNS}
                FROM blog_messages
                WHERE blog_id = %s
                ORDER BY seq
            """, (blog_id,))
            return [self._row_to_header(row) for row in cursor.fetchall()]

    def get_message_header(self, blog_id: bytes, message_id: bytes) -> BlogPostHeader:
        with self._cursor() as cursor:
            cursor.execute(f"""
                SELECT {_MESSAGE_COLUMNS}
                FROM blog_messages
                WHERE blog_id = %s AND message_id = %s
            """, (blog_id, message_id))
            row = cursor.fetchone()
            if row is None:
                raise NoSuchMessageError(f"Unknown message {message_id.hex()}")
            return self._row_to_header(row)

    def get_message_text(self, message_id: bytes) -> str:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT text FROM blog_messages WHERE message_id = %s",
                (message_id,),
            )
            row = cursor.fetchone()
            if row is None:
                raise NoSuchMessageError(f"Unknown message {message_id.hex()}")
            return row[0]

    def get_message(self, message_id: bytes) -> BlogPost:
        with self._cursor() as cursor:
            cursor.execute(f"""
                SELECT {_MESSAGE_COLUMNS}
                FROM blog_messages
                WHERE message_id = %s
            """, (message_id,))
            row = cursor.fetchone()
            if row is None:
                raise NoSuchMessageError(f"Unknown message {message_id.hex()}")
            return self._row_to_post(row)

    def list_messages(self) -> list[BlogPost]:
        with self._cursor() as cursor:
            cursor.execute(f"""
                SELECT {_MESSAGE_COLUMNS}
                FROM blog_messages
                ORDER BY seq
            """)
            return [self._row_to_post(row) for row in cursor.fetchall()]

    def get_message_count(self) -> int:
        with self._cursor() as cursor:
            cursor.execute("SELECT COUNT(*) FROM blog_messages")
            return cursor.fetchone()[0]
