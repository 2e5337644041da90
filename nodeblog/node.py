"""
Node Composition Root

Builds the object graph once at process start:
    store → identity → blog manager → post factory → controller

Request handling receives the finished Node and never looks
collaborators up on its own.

Store selection follows nodeblog.db.config:
- BLOGSTORE_DRIVER: Explicit driver selection (memory, psycopg2)
- DATABASE_URL or DATABASE_HOST: Database connection (auto-selects psycopg2)
- Neither set: in-memory (development)
"""

from dataclasses import dataclass
from typing import Optional

from .clock import Clock, SystemClock
from .core import (
    BlogController,
    BlogManager,
    BlogPostFactory,
    IdentityManager,
    load_identity_from_env,
)
from .db.config import BlogStoreDriver, DatabaseConfig, get_blogstore_driver, get_database_url
from .db.store import BlogStore, InMemoryBlogStore
from .observability import MetricsCollector, get_logger, get_metrics
from .schemas import LocalAuthor

logger = get_logger(__name__)


@dataclass(frozen=True)
class Node:
    """The wired collaborators of one running node."""
    clock: Clock
    store: BlogStore
    identity_manager: IdentityManager
    blog_manager: BlogManager
    post_factory: BlogPostFactory
    controller: BlogController
    metrics: MetricsCollector


def create_blog_store(clock: Clock) -> BlogStore:
    """
    Create the BlogStore selected by configuration.

    Raises:
        ValueError: If a database driver is selected but none is configured
    """
    driver = get_blogstore_driver()

    if driver == BlogStoreDriver.MEMORY:
        logger.info("Using in-memory blog store (no persistence)")
        return InMemoryBlogStore(clock)

    db_url = get_database_url()
    if db_url is None:
        raise ValueError(f"BLOGSTORE_DRIVER is {driver.value} but no database is configured")

    config = DatabaseConfig.from_url(db_url) if "://" in db_url else DatabaseConfig.from_env()
    return _create_psycopg2_store(config, clock)


def _create_psycopg2_store(config: DatabaseConfig, clock: Clock) -> BlogStore:
    """Create PostgresBlogStore with psycopg2."""
    import psycopg2
    from .db.store import PostgresBlogStore

    def connection_factory():
        return psycopg2.connect(config.to_dsn())

    store = PostgresBlogStore(connection_factory, clock)
    store.ensure_schema()
    logger.info(
        "PostgreSQL blog store ready",
        url=config.to_url(include_password=False),
    )
    return store


def build_node(
    clock: Optional[Clock] = None,
    store: Optional[BlogStore] = None,
    local_author: Optional[LocalAuthor] = None,
    max_text_length: Optional[int] = None,
    metrics: Optional[MetricsCollector] = None,
) -> Node:
    """
    Wire a node.

    Args:
        clock: Defaults to the system clock
        store: Defaults to the configured store
        local_author: Defaults to the identity from the environment
        max_text_length: Lower post length limit (bytes)
        metrics: Defaults to the process-wide collector

    Raises:
        ValueError: If max_text_length exceeds MAX_BLOG_POST_TEXT_LENGTH
    """
    clock = clock or SystemClock()
    store = store or create_blog_store(clock)
    local_author = local_author or load_identity_from_env()
    metrics = metrics if metrics is not None else get_metrics()

    identity_manager = IdentityManager()
    identity_manager.register_local_author(local_author)

    blog_manager = BlogManager(store, identity_manager, metrics)
    blog_manager.add_personal_blog(local_author)

    post_factory = BlogPostFactory()
    controller_kwargs = {}
    if max_text_length is not None:
        controller_kwargs["max_text_length"] = max_text_length
    controller = BlogController(
        blog_manager=blog_manager,
        post_factory=post_factory,
        identity_manager=identity_manager,
        clock=clock,
        metrics=metrics,
        **controller_kwargs,
    )

    logger.info(
        "Node ready",
        store_type=type(store).__name__,
        post_count=store.get_message_count(),
    )

    return Node(
        clock=clock,
        store=store,
        identity_manager=identity_manager,
        blog_manager=blog_manager,
        post_factory=post_factory,
        controller=controller,
        metrics=metrics,
    )
