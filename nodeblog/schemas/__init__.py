# Canonical Schemas for the node blog
# Authors, blogs and posts as they flow between identity, store and API.

from .author import (
    Author,
    AuthorStatus,
    LocalAuthor,
    FORMAT_VERSION,
    MAX_AUTHOR_NAME_LENGTH,
    PUBLIC_KEY_LENGTH,
)
from .blog import (
    Blog,
    BlogPost,
    BlogPostHeader,
    MAX_BLOG_POST_TEXT_LENGTH,
)

__all__ = [
    # Author
    "Author",
    "AuthorStatus",
    "LocalAuthor",
    "FORMAT_VERSION",
    "MAX_AUTHOR_NAME_LENGTH",
    "PUBLIC_KEY_LENGTH",
    # Blog
    "Blog",
    "BlogPost",
    "BlogPostHeader",
    "MAX_BLOG_POST_TEXT_LENGTH",
]
