"""
Blog Controller - Personal Blog Feed and Publishing

Two operations:
- list_posts: every known post, oldest arrival first
- create_post: validate, sign, store, and read back one post

Rules (enforced in code):
- Text must encode as UTF-8 and fit the limit in bytes, checked before anything else happens
- Time comes from the injected Clock, never the wall clock
- The feed is ordered by time_received, not the author-claimed timestamp
- Collaborator errors are not caught here; a failed read aborts the listing

The controller holds no mutable state of its own. One instance serves
every request; counters go to the injected MetricsCollector.
"""

from typing import Any, Optional

from ..api.output import output_header
from ..clock import Clock
from ..observability import MetricsCollector, get_logger
from ..schemas import MAX_BLOG_POST_TEXT_LENGTH
from .blogs import BlogManager, BlogPostFactory
from .identity import IdentityManager

logger = get_logger(__name__)


class ValidationError(Exception):
    """Raised when client input fails validation."""
    pass


def utf8_is_too_long(text: str, max_length: int) -> bool:
    """
    Check text length in UTF-8 bytes.

    Raises:
        UnicodeEncodeError: If text holds lone surrogates
    """
    return len(text.encode("utf-8")) > max_length


class BlogController:
    """
    Orchestrates reads and writes against the blog manager.
    """

    def __init__(
        self,
        blog_manager: BlogManager,
        post_factory: BlogPostFactory,
        identity_manager: IdentityManager,
        clock: Clock,
        max_text_length: int = MAX_BLOG_POST_TEXT_LENGTH,
        metrics: Optional[MetricsCollector] = None,
    ):
        """
        Raises:
            ValueError: If max_text_length exceeds MAX_BLOG_POST_TEXT_LENGTH
        """
        if max_text_length > MAX_BLOG_POST_TEXT_LENGTH:
            raise ValueError(
                f"max_text_length {max_text_length} exceeds "
                f"the post limit of {MAX_BLOG_POST_TEXT_LENGTH} bytes"
            )
        self._blog_manager = blog_manager
        self._post_factory = post_factory
        self._identity_manager = identity_manager
        self._clock = clock
        self._max_text_length = max_text_length
        self._metrics = metrics if metrics is not None else MetricsCollector()

    def list_posts(self) -> list[dict[str, Any]]:
        """
        All posts known to the node.

        Returns:
            Output records sorted by time_received (stable, so ties keep
            the store's insertion order)
        """
        headers = [
            header
            for blog in self._blog_manager.blogs
            for header in self._blog_manager.get_post_headers(blog.id)
        ]
        headers.sort(key=lambda h: h.time_received)

        posts = [
            output_header(header, self._blog_manager.get_post_text(header.id))
            for header in headers
        ]
        self._metrics.listings_served += 1
        return posts

    def _reject(self, reason: str, message: str) -> ValidationError:
        self._metrics.posts_rejected += 1
        logger.warning("Rejected blog post", reason=reason)
        return ValidationError(message)

    def create_post(self, text: str) -> dict[str, Any]:
        """
        Publish a top-level post to the local author's personal blog.

        Raises:
            ValidationError: If text is not valid UTF-8 or exceeds the maximum length
        """
        try:
            too_long = utf8_is_too_long(text, self._max_text_length)
        except UnicodeEncodeError as e:
            raise self._reject("not_utf8", "Blog post text is not valid UTF-8") from e
        if too_long:
            raise self._reject("too_long", "Blog post text is too long")

        author = self._identity_manager.local_author
        blog = self._blog_manager.get_personal_blog(author)
        now = self._clock.current_time_millis()
        post = self._post_factory.create_blog_post(blog.id, now, None, author, text)
        self._blog_manager.add_local_post(post)
        header = self._blog_manager.get_post_header(blog.id, post.message_id)

        self._metrics.posts_created += 1
        return output_header(header, text)
