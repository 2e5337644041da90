"""
Identity Manager - Local Author and Key Management

This module owns the node's cryptographic identity.

KEY SOURCES:
1. NODEBLOG_PRIVATE_KEY: base64-encoded Ed25519 seed
   - The same key always yields the same author id and personal blog
2. Otherwise an ephemeral keypair is generated (development only)
   - A new author on every restart; refused in production mode

NODEBLOG_AUTHOR_NAME sets the display name (default "node").

Only one local identity is supported. The manager keeps a single
LocalAuthor; supporting several profiles would key it by author id.
"""

import base64
import binascii
import os
import warnings
from threading import Lock
from typing import Optional

from ..observability import get_logger, is_production
from ..schemas import (
    Author,
    AuthorStatus,
    LocalAuthor,
    FORMAT_VERSION,
    MAX_AUTHOR_NAME_LENGTH,
    PUBLIC_KEY_LENGTH,
)
from .hasher import Hasher
from .signer import Signer

logger = get_logger(__name__)


class IdentityError(Exception):
    """Base exception for identity errors."""
    pass


class NoLocalIdentityError(IdentityError):
    """Raised when the node has no local author configured."""
    pass


class AuthorFactory:
    """
    Builds authors with validated fields and derived ids.
    """

    @staticmethod
    def _validate_name(name: str) -> None:
        if not name:
            raise IdentityError("Author name must not be empty")
        if len(name.encode("utf-8")) > MAX_AUTHOR_NAME_LENGTH:
            raise IdentityError(
                f"Author name exceeds {MAX_AUTHOR_NAME_LENGTH} bytes"
            )

    @classmethod
    def create_author(
        cls,
        name: str,
        public_key: bytes,
        format_version: int = FORMAT_VERSION,
    ) -> Author:
        """Create a (possibly remote) author from its public key."""
        cls._validate_name(name)
        if len(public_key) != PUBLIC_KEY_LENGTH:
            raise IdentityError(
                f"Public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}"
            )
        return Author(
            format_version=format_version,
            id=Hasher.author_id(format_version, public_key),
            name=name,
            public_key=public_key,
        )

    @classmethod
    def local_author_from_private_key(cls, name: str, private_key: bytes) -> LocalAuthor:
        """Rebuild a local author from a stored private key."""
        cls._validate_name(name)
        try:
            public_key = Signer.public_key_for(private_key)
        except (ValueError, TypeError) as e:
            raise IdentityError(f"Invalid private key: {e}") from e
        return LocalAuthor(
            format_version=FORMAT_VERSION,
            id=Hasher.author_id(FORMAT_VERSION, public_key),
            name=name,
            public_key=public_key,
            private_key=private_key,
        )

    @classmethod
    def create_local_author(cls, name: str) -> LocalAuthor:
        """Create a new local author with a fresh keypair."""
        private_key, _ = Signer.generate_keypair()
        return cls.local_author_from_private_key(name, private_key)


class IdentityManager:
    """
    Holds the local author.

    The author is registered once at startup and read on every
    request; reads take no lock beyond a reference load.
    """

    def __init__(self, local_author: Optional[LocalAuthor] = None):
        self._lock = Lock()
        self._local_author: Optional[LocalAuthor] = local_author

    def register_local_author(self, author: LocalAuthor) -> None:
        """
        Register the node's own author.

        Raises:
            IdentityError: If a different local author is already registered
        """
        with self._lock:
            current = self._local_author
            if current is not None and current.id != author.id:
                raise IdentityError("A local author is already registered")
            self._local_author = author
        logger.info(
            "Local author registered",
            author_name=author.name,
            author_id=author.id.hex(),
        )

    @property
    def has_local_author(self) -> bool:
        return self._local_author is not None

    @property
    def local_author(self) -> LocalAuthor:
        """
        Get the local author.

        Raises:
            NoLocalIdentityError: If no author has been registered
        """
        author = self._local_author
        if author is None:
            raise NoLocalIdentityError("No local identity configured")
        return author

    def get_author_status(self, author_id: bytes) -> AuthorStatus:
        """Trust state of an author relative to this node."""
        author = self._local_author
        if author is not None and author.id == author_id:
            return AuthorStatus.OURSELVES
        return AuthorStatus.UNKNOWN


def load_identity_from_env() -> LocalAuthor:
    """
    Load the local author from the environment.

    Returns:
        The configured author, or an ephemeral one in development mode

    Raises:
        IdentityError: If the key is malformed, or missing in production mode
    """
    name = os.environ.get("NODEBLOG_AUTHOR_NAME", "node")
    encoded = os.environ.get("NODEBLOG_PRIVATE_KEY", "")

    if encoded:
        try:
            private_key = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise IdentityError("NODEBLOG_PRIVATE_KEY is not valid base64") from e
        author = AuthorFactory.local_author_from_private_key(name, private_key)
        logger.info("Local identity loaded from environment", author_name=name)
        return author

    if is_production():
        raise IdentityError(
            "NODEBLOG_PRIVATE_KEY must be set in production. Generate with:\n"
            "python -m tools.manage generate-identity"
        )

    warnings.warn(
        "Local identity not configured. Generating ephemeral identity for development. "
        "It changes on each restart - NOT suitable for production!",
        stacklevel=2
    )
    author = AuthorFactory.create_local_author(name)
    logger.warning("Generated ephemeral local identity", author_name=name)
    return author
