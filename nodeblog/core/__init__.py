# Core blog services
from .hasher import Hasher, CanonicalSerializationError
from .signer import Signer
from .identity import (
    AuthorFactory,
    IdentityManager,
    IdentityError,
    NoLocalIdentityError,
    load_identity_from_env,
)
from .blogs import BlogManager, BlogPostFactory, InvalidPostError
from .controller import BlogController, ValidationError

__all__ = [
    "Hasher",
    "CanonicalSerializationError",
    "Signer",
    "AuthorFactory",
    "IdentityManager",
    "IdentityError",
    "NoLocalIdentityError",
    "load_identity_from_env",
    "BlogManager",
    "BlogPostFactory",
    "InvalidPostError",
    "BlogController",
    "ValidationError",
]
