"""
Canonical Blog Schemas

A blog is a per-author stream of posts.
Posts are immutable: once signed and stored they never change.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .author import Author, AuthorStatus


# 32 KiB message body minus room for the author, signature and framing
MAX_BLOG_POST_TEXT_LENGTH = 32 * 1024 - 1024


class Blog(BaseModel):
    """A content stream owned by one author."""
    model_config = ConfigDict(frozen=True)

    id: bytes = Field(
        ...,
        description="Derived from the owning author's id"
    )

    author: Author = Field(
        ...,
        description="Owner of the blog"
    )


class BlogPost(BaseModel):
    """
    A signed blog post, ready for the store.

    The message id is content-addressed: it covers the blog id,
    the timestamp and the signed body.
    """
    model_config = ConfigDict(frozen=True)

    message_id: bytes
    blog_id: bytes
    parent_id: Optional[bytes] = Field(
        default=None,
        description="Post being replied to (None for top-level posts)"
    )
    author: Author
    timestamp: int = Field(
        ...,
        description="Author-claimed creation time (ms since epoch)"
    )
    text: str
    signature: bytes


class BlogPostHeader(BaseModel):
    """
    Metadata of a stored post.

    The body text is fetched separately by message id.
    """
    model_config = ConfigDict(frozen=True)

    id: bytes
    blog_id: bytes
    parent_id: Optional[bytes] = None
    author: Author
    author_status: AuthorStatus = AuthorStatus.UNKNOWN
    timestamp: int = Field(
        ...,
        description="Author-claimed creation time (ms since epoch)"
    )
    time_received: int = Field(
        ...,
        description="Local arrival time assigned by the store (ms since epoch)"
    )
