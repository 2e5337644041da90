"""
Database Layer for the node blog

Provides:
- BlogStore abstraction (InMemory for dev, Postgres for durable nodes)
- Environment-based configuration
"""

from .store import (
    BlogStore,
    InMemoryBlogStore,
    PostgresBlogStore,
    BlogStoreError,
    NoSuchBlogError,
    NoSuchMessageError,
    DuplicateMessageError,
    LockTimeoutError,
)
from .config import BlogStoreDriver, DatabaseConfig, get_database_url, get_blogstore_driver

__all__ = [
    "BlogStore",
    "InMemoryBlogStore",
    "PostgresBlogStore",
    "BlogStoreError",
    "NoSuchBlogError",
    "NoSuchMessageError",
    "DuplicateMessageError",
    "LockTimeoutError",
    "BlogStoreDriver",
    "DatabaseConfig",
    "get_database_url",
    "get_blogstore_driver",
]
