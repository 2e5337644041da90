"""
Canonical Author Schema

An author is a cryptographic identity.
The id is derived from the public key, so it cannot be reassigned.
"""

from enum import Enum, auto

from pydantic import BaseModel, ConfigDict, Field


FORMAT_VERSION = 1
PUBLIC_KEY_LENGTH = 32
MAX_AUTHOR_NAME_LENGTH = 50


class AuthorStatus(Enum):
    """
    Trust state of an author as seen from this node.
    """
    NONE = auto()
    ANONYMOUS = auto()
    UNKNOWN = auto()
    UNVERIFIED = auto()
    VERIFIED = auto()
    OURSELVES = auto()


class Author(BaseModel):
    """
    A pseudonymous identity.

    Every post is:
    - Signed with the author's key
    - Attributable to this id
    """
    model_config = ConfigDict(frozen=True)

    format_version: int = Field(
        ...,
        description="Identity encoding version"
    )

    id: bytes = Field(
        ...,
        description="SHA-256 of the format version and public key"
    )

    name: str = Field(
        ...,
        description="Display name, not unique"
    )

    public_key: bytes = Field(
        ...,
        description="Raw Ed25519 public key"
    )


class LocalAuthor(Author):
    """An author whose private key is held by this node."""

    private_key: bytes = Field(
        ...,
        repr=False,
        description="Raw Ed25519 seed (never leaves the node)"
    )

    def as_author(self) -> Author:
        """Drop the private key."""
        return Author(
            format_version=self.format_version,
            id=self.id,
            name=self.name,
            public_key=self.public_key,
        )
