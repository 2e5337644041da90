"""
Blog Manager - Posts, Blogs and Sync Ingestion

The blog manager sits between request handling and the BlogStore:
- Resolves personal blogs from authors
- Builds headers with the author's trust status
- Accepts local posts and validated posts received from peers

The post factory signs and addresses posts:
- Signature covers blog id, parent id, text and timestamp
- Message id covers blog id, timestamp and the signed body

A post that arrives from a peer is checked against all of the
above before it is stored. A post built locally is trusted.
"""

from typing import Optional

from ..db.store import BlogStore
from ..observability import MetricsCollector, get_logger
from ..schemas import (
    Author,
    Blog,
    BlogPost,
    BlogPostHeader,
    LocalAuthor,
    MAX_BLOG_POST_TEXT_LENGTH,
)
from .hasher import Hasher
from .identity import IdentityManager
from .signer import Signer, SIGNING_LABEL_POST

logger = get_logger(__name__)


class InvalidPostError(Exception):
    """Raised when a post fails validation."""
    pass


def _public_author(author: Author) -> Author:
    """Strip the private key from a local author."""
    if isinstance(author, LocalAuthor):
        return author.as_author()
    return author


def _check_text(text: str) -> None:
    try:
        encoded = text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidPostError("Blog post text is not valid UTF-8") from e
    if len(encoded) > MAX_BLOG_POST_TEXT_LENGTH:
        raise InvalidPostError("Blog post text is too long")


def _signed_content(
    blog_id: bytes,
    timestamp: int,
    parent_id: Optional[bytes],
    text: str,
) -> bytes:
    return Hasher.canonical_bytes({
        "blogId": blog_id,
        "parentId": parent_id,
        "text": text,
        "timestamp": timestamp,
    })


def _message_body(
    author: Author,
    parent_id: Optional[bytes],
    text: str,
    signature: bytes,
) -> bytes:
    return Hasher.canonical_bytes({
        "author": {
            "formatVersion": author.format_version,
            "name": author.name,
            "publicKey": author.public_key,
        },
        "parentId": parent_id,
        "signature": signature,
        "text": text,
    })


class BlogPostFactory:
    """Builds signed, content-addressed blog posts."""

    def create_blog_post(
        self,
        blog_id: bytes,
        timestamp: int,
        parent_id: Optional[bytes],
        author: LocalAuthor,
        text: str,
    ) -> BlogPost:
        """
        Sign and address a new post.

        Raises:
            InvalidPostError: If the text is not valid UTF-8 or exceeds the maximum length
        """
        _check_text(text)

        signature = Signer.sign(
            SIGNING_LABEL_POST,
            _signed_content(blog_id, timestamp, parent_id, text),
            author.private_key,
        )
        public = _public_author(author)
        body = _message_body(public, parent_id, text, signature)

        return BlogPost(
            message_id=Hasher.message_id(blog_id, timestamp, body),
            blog_id=blog_id,
            parent_id=parent_id,
            author=public,
            timestamp=timestamp,
            text=text,
            signature=signature,
        )


class BlogManager:
    """
    Read and write access to blogs.

    Stateless apart from its collaborators; safe to share across requests.
    """

    def __init__(
        self,
        store: BlogStore,
        identity_manager: IdentityManager,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._store = store
        self._identity_manager = identity_manager
        self._metrics = metrics if metrics is not None else MetricsCollector()

    @property
    def store(self) -> BlogStore:
        return self._store

    @property
    def blogs(self) -> list[Blog]:
        """Every blog known to this node, own and subscribed."""
        return self._store.get_blogs()

    def get_personal_blog(self, author: Author) -> Blog:
        """The personal blog of an author. Derived, not looked up."""
        return Blog(id=Hasher.blog_id(author.id), author=_public_author(author))

    def add_personal_blog(self, author: Author) -> Blog:
        """Make an author's personal blog known to the store."""
        blog = self.get_personal_blog(author)
        self._store.add_blog(blog)
        return blog

    def add_blog(self, blog: Blog) -> None:
        """
        Subscribe to a peer's blog.

        Raises:
            InvalidPostError: If the blog id does not belong to its author
        """
        if blog.id != Hasher.blog_id(blog.author.id):
            raise InvalidPostError("Blog id does not match its author")
        self._store.add_blog(blog)

    def _with_status(self, header: BlogPostHeader) -> BlogPostHeader:
        status = self._identity_manager.get_author_status(header.author.id)
        return header.model_copy(update={"author_status": status})

    def get_post_headers(self, blog_id: bytes) -> list[BlogPostHeader]:
        return [self._with_status(h) for h in self._store.get_message_headers(blog_id)]

    def get_post_header(self, blog_id: bytes, message_id: bytes) -> BlogPostHeader:
        return self._with_status(self._store.get_message_header(blog_id, message_id))

    def get_post_text(self, message_id: bytes) -> str:
        return self._store.get_message_text(message_id)

    def add_local_post(self, post: BlogPost) -> None:
        """Store a post created on this node and queue it for peers."""
        header = self._store.add_message(post, local=True)
        logger.info(
            "Local blog post stored",
            message_id=post.message_id.hex(),
            blog_id=post.blog_id.hex(),
            time_received=header.time_received,
        )

    def verify_post(self, post: BlogPost) -> None:
        """
        Check a post's integrity.

        Raises:
            InvalidPostError: On any mismatch
        """
        _check_text(post.text)

        author = post.author
        if author.id != Hasher.author_id(author.format_version, author.public_key):
            raise InvalidPostError("Author id does not match public key")

        if post.blog_id != Hasher.blog_id(author.id):
            raise InvalidPostError("Post author does not own the blog")

        signed = _signed_content(post.blog_id, post.timestamp, post.parent_id, post.text)
        if not Signer.verify(SIGNING_LABEL_POST, signed, post.signature, author.public_key):
            raise InvalidPostError("Invalid post signature")

        body = _message_body(author, post.parent_id, post.text, post.signature)
        if post.message_id != Hasher.message_id(post.blog_id, post.timestamp, body):
            raise InvalidPostError("Message id does not match content")

    def add_remote_post(self, post: BlogPost) -> None:
        """
        Store a post delivered by the sync layer.

        Raises:
            InvalidPostError: If the post fails verification
            NoSuchBlogError: If the node is not subscribed to the blog
        """
        try:
            self.verify_post(post)
        except InvalidPostError as e:
            self._metrics.remote_posts_rejected += 1
            logger.warning(
                "Rejected remote blog post",
                message_id=post.message_id.hex(),
                reason=str(e),
            )
            raise
        header = self._store.add_message(post, local=False)
        logger.info(
            "Remote blog post stored",
            message_id=post.message_id.hex(),
            blog_id=post.blog_id.hex(),
            time_received=header.time_received,
        )
