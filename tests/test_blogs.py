"""
Tests for identities, the blog manager and the in-memory store.
"""

import base64

import pytest

from nodeblog.core import (
    AuthorFactory,
    IdentityError,
    IdentityManager,
    InvalidPostError,
    load_identity_from_env,
)
from nodeblog.db.store import DuplicateMessageError, NoSuchBlogError
from nodeblog.schemas import AuthorStatus, Blog


class TestAuthorFactory:

    def test_same_key_same_id(self, local_author):
        again = AuthorFactory.local_author_from_private_key("renamed", local_author.private_key)
        assert again.id == local_author.id
        assert again.public_key == local_author.public_key

    def test_name_required(self):
        with pytest.raises(IdentityError):
            AuthorFactory.create_local_author("")

    def test_name_length_in_bytes(self):
        AuthorFactory.create_local_author("a" * 50)
        with pytest.raises(IdentityError):
            AuthorFactory.create_local_author("ü" * 26)

    def test_public_key_length(self):
        with pytest.raises(IdentityError):
            AuthorFactory.create_author("bob", b"\x01" * 31)

    def test_bad_private_key(self):
        with pytest.raises(IdentityError):
            AuthorFactory.local_author_from_private_key("bob", b"short")

    def test_private_key_not_in_repr(self, local_author):
        assert repr(local_author.private_key) not in repr(local_author)


class TestIdentityManager:

    def test_status(self, local_author, remote_author):
        manager = IdentityManager()
        manager.register_local_author(local_author)

        assert manager.get_author_status(local_author.id) == AuthorStatus.OURSELVES
        assert manager.get_author_status(remote_author.id) == AuthorStatus.UNKNOWN

    def test_second_identity_refused(self, local_author, remote_author):
        manager = IdentityManager(local_author)
        manager.register_local_author(local_author)
        with pytest.raises(IdentityError):
            manager.register_local_author(remote_author)

    def test_load_from_env(self, monkeypatch, local_author):
        encoded = base64.b64encode(local_author.private_key).decode("ascii")
        monkeypatch.setenv("NODEBLOG_PRIVATE_KEY", encoded)
        monkeypatch.setenv("NODEBLOG_AUTHOR_NAME", "alice")

        loaded = load_identity_from_env()
        assert loaded.id == local_author.id
        assert loaded.name == "alice"

    def test_malformed_env_key(self, monkeypatch):
        monkeypatch.setenv("NODEBLOG_PRIVATE_KEY", "not base64!")
        with pytest.raises(IdentityError):
            load_identity_from_env()

    def test_production_requires_key(self, monkeypatch):
        monkeypatch.delenv("NODEBLOG_PRIVATE_KEY", raising=False)
        monkeypatch.setenv("NODEBLOG_PRODUCTION", "true")
        with pytest.raises(IdentityError):
            load_identity_from_env()

    def test_ephemeral_identity_in_development(self, monkeypatch):
        monkeypatch.delenv("NODEBLOG_PRIVATE_KEY", raising=False)
        monkeypatch.delenv("NODEBLOG_PRODUCTION", raising=False)
        with pytest.warns(UserWarning):
            author = load_identity_from_env()
        assert len(author.public_key) == 32


class TestRemoteIngestion:
    """Posts received from peers are verified before storage."""

    @pytest.fixture
    def remote_blog(self, node, remote_author):
        blog = node.blog_manager.get_personal_blog(remote_author)
        node.blog_manager.add_blog(blog)
        return blog

    @pytest.fixture
    def remote_post(self, node, remote_blog, remote_author):
        return node.post_factory.create_blog_post(
            remote_blog.id, 1000, None, remote_author, "from bob"
        )

    def test_valid_post_stored(self, node, remote_post):
        node.blog_manager.add_remote_post(remote_post)
        assert node.store.get_message(remote_post.message_id) == remote_post

    def test_author_is_public(self, remote_post):
        assert not hasattr(remote_post.author, "private_key")

    def test_tampered_text_rejected(self, node, remote_post):
        tampered = remote_post.model_copy(update={"text": "from mallory"})
        before = node.metrics.remote_posts_rejected

        with pytest.raises(InvalidPostError, match="signature"):
            node.blog_manager.add_remote_post(tampered)

        assert node.metrics.remote_posts_rejected == before + 1
        assert node.store.get_message_count() == 0

    def test_unencodable_text_rejected(self, node, remote_post):
        tampered = remote_post.model_copy(update={"text": "from \udc00bob"})
        with pytest.raises(InvalidPostError, match="not valid UTF-8"):
            node.blog_manager.add_remote_post(tampered)
        assert node.store.get_message_count() == 0

    def test_tampered_signature_rejected(self, node, remote_post):
        bad = bytes([remote_post.signature[0] ^ 1]) + remote_post.signature[1:]
        tampered = remote_post.model_copy(update={"signature": bad})
        with pytest.raises(InvalidPostError):
            node.blog_manager.add_remote_post(tampered)

    def test_tampered_timestamp_rejected(self, node, remote_post):
        tampered = remote_post.model_copy(update={"timestamp": 2000})
        with pytest.raises(InvalidPostError):
            node.blog_manager.add_remote_post(tampered)

    def test_wrong_message_id_rejected(self, node, remote_post):
        tampered = remote_post.model_copy(update={"message_id": b"\x00" * 32})
        with pytest.raises(InvalidPostError, match="Message id"):
            node.blog_manager.add_remote_post(tampered)

    def test_post_to_foreign_blog_rejected(self, node, remote_post, local_author):
        own_blog = node.blog_manager.get_personal_blog(local_author)
        tampered = remote_post.model_copy(update={"blog_id": own_blog.id})
        with pytest.raises(InvalidPostError, match="own the blog"):
            node.blog_manager.add_remote_post(tampered)

    def test_duplicate_rejected(self, node, remote_post):
        node.blog_manager.add_remote_post(remote_post)
        with pytest.raises(DuplicateMessageError):
            node.blog_manager.add_remote_post(remote_post)

    def test_unsubscribed_blog(self, node, remote_author):
        blog = node.blog_manager.get_personal_blog(remote_author)
        post = node.post_factory.create_blog_post(blog.id, 1000, None, remote_author, "x")
        with pytest.raises(NoSuchBlogError):
            node.blog_manager.add_remote_post(post)

    def test_blog_id_must_match_author(self, node, remote_author, local_author):
        forged = Blog(
            id=node.blog_manager.get_personal_blog(local_author).id,
            author=remote_author.as_author(),
        )
        with pytest.raises(InvalidPostError):
            node.blog_manager.add_blog(forged)


class TestInMemoryBlogStore:

    def test_add_blog_idempotent(self, store, local_author, node):
        blog = node.blog_manager.get_personal_blog(local_author)
        store.add_blog(blog)
        store.add_blog(blog)
        assert store.get_blogs() == [blog]

    def test_time_received_monotonic(self, node, clock):
        first = node.controller.create_post("a")
        clock.set(0)
        second = node.controller.create_post("b")
        assert second["timeReceived"] >= first["timeReceived"]

    def test_unknown_blog_headers(self, store):
        with pytest.raises(NoSuchBlogError):
            store.get_message_headers(b"\x09" * 32)

    def test_clear(self, node):
        node.controller.create_post("a")
        node.store.clear()
        assert node.store.get_message_count() == 0
        assert node.store.get_blogs() == []
